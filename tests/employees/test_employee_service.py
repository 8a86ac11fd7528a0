"""Tests for EmployeeService and the employee endpoints."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch
from uuid import uuid4

import pytest

from learnhub.auth.permissions import UserRole
from learnhub.config import Settings
from learnhub.email.schemas import SendEmailResponse
from learnhub.employees.csv_import import EmployeeRow
from learnhub.employees.models import Employee, EmployeeStatus
from learnhub.employees.schemas import (
    BulkUploadResponse,
    ChangeStatusRequest,
    CreateEmployeeRequest,
)
from learnhub.employees.service import (
    EmployeeExistsError,
    EmployeeNotFoundError,
    EmployeeService,
    InvalidStatusChangeError,
)


TAKEN_EMAIL = "taken@acme.io"


class _Rows(list):
    def one(self):
        return self[0] if self else None


@pytest.fixture
def email_service() -> Mock:
    service = Mock()
    service.send_pre_joining_welcome = AsyncMock(
        return_value=SendEmailResponse(success=True, message_id="msg-1")
    )
    return service


@pytest.fixture
def employee_service(mock_session: Mock, email_service: Mock) -> EmployeeService:
    async def aexecute(statement, params=None):
        if "employees_by_email" in statement and params == [TAKEN_EMAIL]:
            return _Rows([SimpleNamespace(employee_id=uuid4())])
        return _Rows()

    mock_session.aexecute = AsyncMock(side_effect=aexecute)
    return EmployeeService(
        session=mock_session, keyspace="test_keyspace", email_service=email_service
    )


@pytest.fixture
def employee() -> Employee:
    return Employee(
        first_name="Ana",
        last_name="Lima",
        email="Ana.Lima@Acme.io",
        current_status=EmployeeStatus.ACTIVE.value,
    )


def _request(**overrides) -> CreateEmployeeRequest:
    data = {
        "first_name": " Ana ",
        "last_name": "Lima",
        "email": "ana@acme.io",
        "employee_code": "EMP010",
        "date_of_joining": date(2026, 11, 2),
    }
    data.update(overrides)
    return CreateEmployeeRequest(**data)


class TestCreateEmployee:
    """Tests for create_employee."""

    @pytest.mark.asyncio
    async def test_create_writes_lookups_and_history(
        self, employee_service: EmployeeService, mock_session: Mock
    ) -> None:
        employee = await employee_service.create_employee(_request())

        assert employee.first_name == "Ana"
        assert employee.current_status == EmployeeStatus.PRE_JOINING.value
        assert employee.role == UserRole.INTERN.value
        statements = [c.args[0] for c in mock_session.aexecute.call_args_list]
        assert any("INSERT INTO test_keyspace.employees_by_email" in s for s in statements)
        assert any("INSERT INTO test_keyspace.employees_by_code" in s for s in statements)
        assert any("employee_status_history" in s for s in statements)

    @pytest.mark.asyncio
    async def test_pre_joining_gets_welcome_email(
        self, employee_service: EmployeeService, email_service: Mock
    ) -> None:
        await employee_service.create_employee(_request())

        email_service.send_pre_joining_welcome.assert_awaited_once()
        kwargs = email_service.send_pre_joining_welcome.call_args.kwargs
        assert kwargs["to"] == "ana@acme.io"
        assert kwargs["date_of_joining"] == date(2026, 11, 2)

    @pytest.mark.asyncio
    async def test_active_employee_gets_no_welcome_email(
        self, employee_service: EmployeeService, email_service: Mock
    ) -> None:
        await employee_service.create_employee(
            _request(current_status=EmployeeStatus.ACTIVE)
        )
        email_service.send_pre_joining_welcome.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_email_does_not_fail_creation(
        self, employee_service: EmployeeService, email_service: Mock
    ) -> None:
        email_service.send_pre_joining_welcome.return_value = SendEmailResponse(
            success=False, error="boom"
        )
        employee = await employee_service.create_employee(_request())
        assert employee.email == "ana@acme.io"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(
        self, employee_service: EmployeeService
    ) -> None:
        with pytest.raises(EmployeeExistsError, match="already registered"):
            await employee_service.create_employee(_request(email=TAKEN_EMAIL))


class TestChangeStatus:
    """Tests for change_status."""

    @pytest.mark.asyncio
    async def test_status_change_recorded(
        self, employee_service: EmployeeService, employee: Employee, mock_session: Mock
    ) -> None:
        employee_service.get_employee = AsyncMock(return_value=employee)
        changed_by = uuid4()

        updated = await employee_service.change_status(
            employee.id, EmployeeStatus.ON_LEAVE, " Parental leave ", changed_by
        )

        assert updated.current_status == "On Leave"
        history_call = mock_session.aexecute.call_args_list[-1]
        params = history_call.args[1]
        assert params[3] == "Active"
        assert params[4] == "On Leave"
        assert params[5] == "Parental leave"
        assert params[6] == changed_by

    @pytest.mark.asyncio
    async def test_same_status_rejected(
        self, employee_service: EmployeeService, employee: Employee
    ) -> None:
        employee_service.get_employee = AsyncMock(return_value=employee)

        with pytest.raises(InvalidStatusChangeError):
            await employee_service.change_status(
                employee.id, EmployeeStatus.ACTIVE, "No change"
            )

    @pytest.mark.asyncio
    async def test_blank_reason_rejected(
        self, employee_service: EmployeeService, employee: Employee
    ) -> None:
        employee_service.get_employee = AsyncMock(return_value=employee)

        with pytest.raises(InvalidStatusChangeError):
            await employee_service.change_status(
                employee.id, EmployeeStatus.TERMINATED, "   "
            )

    @pytest.mark.asyncio
    async def test_unknown_employee(self, employee_service: EmployeeService) -> None:
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.change_status(
                uuid4(), EmployeeStatus.ACTIVE, "Joined"
            )

    def test_request_rejects_blank_reason(self) -> None:
        with pytest.raises(ValueError):
            ChangeStatusRequest(new_status=EmployeeStatus.ACTIVE, reason="  ")


class TestBulkCreate:
    """Tests for bulk_create."""

    @pytest.mark.asyncio
    async def test_invalid_row_rejects_everything(
        self, employee_service: EmployeeService, mock_session: Mock
    ) -> None:
        rows = [
            EmployeeRow(2, "Ana", "Lima", "ana@acme.io"),
            EmployeeRow(3, "Bo", None, "bo@acme.io"),
        ]

        response = await employee_service.bulk_create(rows, max_rows=500)

        assert response.created == []
        assert response.validation_errors == ["Row 3: Last name is required"]
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_rejected_by_schema_rejects_everything(
        self, employee_service: EmployeeService, mock_session: Mock
    ) -> None:
        rows = [
            EmployeeRow(2, "Ana", "Lima", "ana@acme.io"),
            EmployeeRow(3, "Bob", "Ray", "bob..ray@acme.io"),
        ]

        response = await employee_service.bulk_create(rows, max_rows=500)

        assert response.created == []
        assert response.failed == []
        assert response.validation_errors == ["Row 3: Invalid email format"]
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_taken_email_fails_only_that_row(
        self, employee_service: EmployeeService
    ) -> None:
        rows = [
            EmployeeRow(2, "Ana", "Lima", "ana@acme.io"),
            EmployeeRow(3, "Bo", "Chen", TAKEN_EMAIL),
        ]

        response = await employee_service.bulk_create(rows, max_rows=500)

        assert [e.email for e in response.created] == ["ana@acme.io"]
        assert len(response.failed) == 1
        assert response.failed[0].row == 3
        assert response.failed[0].error.startswith("Row 3: Email")


@pytest.fixture
def api_employee_service(app) -> Mock:
    service = Mock()
    app.state.employee_service = service
    return service


class TestEmployeeEndpoints:
    """Tests for /v1/employees."""

    def test_template_download(self, client, auth_headers, api_employee_service) -> None:
        response = client.get(
            "/v1/employees/template.csv", headers=auth_headers(UserRole.HR)
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "employee_template.csv" in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("first_name,last_name,email")

    def test_bulk_upload_requires_csv(
        self, client, auth_headers, api_employee_service
    ) -> None:
        response = client.post(
            "/v1/employees/bulk",
            files={"file": ("employees.xlsx", b"data", "application/octet-stream")},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Please upload a CSV file"

    def test_bulk_upload_header_only(
        self, client, auth_headers, api_employee_service
    ) -> None:
        response = client.post(
            "/v1/employees/bulk",
            files={"file": ("employees.csv", b"first_name,last_name,email\n", "text/csv")},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No valid employee data found in file"

    def test_bulk_upload_too_large(
        self, client, auth_headers, api_employee_service
    ) -> None:
        api_employee_service.bulk_create = AsyncMock(return_value=BulkUploadResponse())
        small_limit = Settings(environment="testing", employee_bulk_upload_max_file_size_kb=1)
        content = b"first_name,last_name,email\n" + b"Ana,Lima,ana@acme.io\n" * 100

        with patch("learnhub.employees.router.get_settings", return_value=small_limit):
            response = client.post(
                "/v1/employees/bulk",
                files={"file": ("employees.csv", content, "text/csv")},
                headers=auth_headers(UserRole.HR),
            )

        assert response.status_code == 413
        assert response.json()["message"] == "CSV file exceeds 1 KB"
        api_employee_service.bulk_create.assert_not_awaited()

    def test_bulk_upload_passes_rows(
        self, client, auth_headers, api_employee_service
    ) -> None:
        api_employee_service.bulk_create = AsyncMock(return_value=BulkUploadResponse())
        content = b"first_name,last_name,email\nAna,Lima,ana@acme.io\n"

        response = client.post(
            "/v1/employees/bulk",
            files={"file": ("employees.csv", content, "text/csv")},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 200
        rows = api_employee_service.bulk_create.call_args.args[0]
        assert rows[0].email == "ana@acme.io"

    def test_manager_cannot_create(
        self, client, auth_headers, api_employee_service
    ) -> None:
        response = client.post(
            "/v1/employees",
            json={"first_name": "Ana", "last_name": "Lima", "email": "ana@acme.io"},
            headers=auth_headers(UserRole.MANAGER),
        )
        assert response.status_code == 403

    def test_duplicate_employee_is_conflict(
        self, client, auth_headers, api_employee_service
    ) -> None:
        api_employee_service.create_employee = AsyncMock(
            side_effect=EmployeeExistsError("Email ana@acme.io is already registered")
        )

        response = client.post(
            "/v1/employees",
            json={"first_name": "Ana", "last_name": "Lima", "email": "ana@acme.io"},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 409
