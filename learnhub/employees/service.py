"""Employee service layer.

Business logic for:
- Employee profiles with unique email and employee code
- Status lifecycle with an append-only history
- Bulk creation from CSV uploads
- Pre-joining welcome emails
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.employees.csv_import import EmployeeRow, validate_rows
from learnhub.employees.models import Employee, EmployeeStatus, StatusChange
from learnhub.employees.schemas import (
    BulkUploadFailure,
    BulkUploadResponse,
    CreateEmployeeRequest,
    EmployeeResponse,
    UpdateEmployeeRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.email.service import EmailService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EmployeeError(Exception):
    """Base employee error."""

    def __init__(self, message: str, code: str = "employee_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EmployeeNotFoundError(EmployeeError):
    def __init__(self, message: str = "Employee not found"):
        super().__init__(message, "employee_not_found")


class EmployeeExistsError(EmployeeError):
    """Email or employee code already taken."""

    def __init__(self, message: str = "Employee already exists"):
        super().__init__(message, "employee_exists")


class InvalidStatusChangeError(EmployeeError):
    def __init__(self, message: str = "Invalid status change"):
        super().__init__(message, "invalid_status_change")


# ==============================================================================
# Employee Service
# ==============================================================================


class EmployeeService:
    """Service for employee profiles and their status lifecycle."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        email_service: "EmailService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.email_service = email_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employees WHERE id = ?"
        )
        self._list = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employees LIMIT ?"
        )
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employees
            (id, first_name, last_name, email, phone, employee_code, department,
             designation, date_of_joining, current_status, role, manager_id,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._set_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.employees
            SET current_status = ?, updated_at = ?
            WHERE id = ?
        """)

        # Uniqueness lookups
        self._get_by_email = self.session.prepare(
            f"SELECT employee_id FROM {self.keyspace}.employees_by_email WHERE email = ?"
        )
        self._insert_email = self.session.prepare(
            f"INSERT INTO {self.keyspace}.employees_by_email (email, employee_id) VALUES (?, ?)"
        )
        self._get_by_code = self.session.prepare(f"""
            SELECT employee_id FROM {self.keyspace}.employees_by_code
            WHERE employee_code = ?
        """)
        self._insert_code = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employees_by_code (employee_code, employee_id)
            VALUES (?, ?)
        """)

        # Status history
        self._insert_history = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employee_status_history
            (employee_id, changed_at, id, old_status, new_status, reason, changed_by)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_history = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employee_status_history WHERE employee_id = ?"
        )

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------

    async def get_employee(self, employee_id: UUID) -> Employee | None:
        result = await self.session.aexecute(self._get_by_id, [employee_id])
        row = result.one()
        return Employee.from_row(row) if row else None

    async def require_employee(self, employee_id: UUID) -> Employee:
        employee = await self.get_employee(employee_id)
        if not employee:
            raise EmployeeNotFoundError
        return employee

    async def email_exists(self, email: str) -> bool:
        result = await self.session.aexecute(self._get_by_email, [email.lower().strip()])
        return result.one() is not None

    async def code_exists(self, employee_code: str) -> bool:
        result = await self.session.aexecute(self._get_by_code, [employee_code])
        return result.one() is not None

    async def list_employees(
        self,
        status: EmployeeStatus | None = None,
        department: str | None = None,
        limit: int = 100,
    ) -> list[Employee]:
        """List employees sorted by name, optionally filtered."""
        rows = await self.session.aexecute(self._list, [limit * 4])
        employees = [Employee.from_row(row) for row in rows]
        if status is not None:
            employees = [e for e in employees if e.current_status == status.value]
        if department:
            wanted = department.lower()
            employees = [
                e for e in employees if (e.department or "").lower() == wanted
            ]
        employees.sort(key=lambda e: (e.last_name.lower(), e.first_name.lower()))
        return employees[:limit]

    async def get_status_history(self, employee_id: UUID) -> list[StatusChange]:
        """Status changes, newest first.

        Raises:
            EmployeeNotFoundError: If employee doesn't exist
        """
        await self.require_employee(employee_id)
        rows = await self.session.aexecute(self._get_history, [employee_id])
        return [StatusChange.from_row(row) for row in rows]

    # --------------------------------------------------------------------------
    # Writes
    # --------------------------------------------------------------------------

    async def _save(self, employee: Employee) -> None:
        await self.session.aexecute(
            self._upsert,
            [
                employee.id,
                employee.first_name,
                employee.last_name,
                employee.email,
                employee.phone,
                employee.employee_code,
                employee.department,
                employee.designation,
                employee.date_of_joining,
                employee.current_status,
                employee.role,
                employee.manager_id,
                employee.created_at,
                employee.updated_at,
            ],
        )

    async def _append_history(self, change: StatusChange) -> None:
        await self.session.aexecute(
            self._insert_history,
            [
                change.employee_id,
                change.changed_at,
                change.id,
                change.old_status,
                change.new_status,
                change.reason,
                change.changed_by,
            ],
        )

    async def create_employee(
        self,
        data: CreateEmployeeRequest,
        created_by: UUID | None = None,
        notify: bool = True,
    ) -> Employee:
        """Create an employee.

        Pre-Joining employees get a welcome email when mail is configured.

        Raises:
            EmployeeExistsError: If the email or employee code is taken
        """
        if await self.email_exists(data.email):
            raise EmployeeExistsError(f"Email {data.email} is already registered")
        if data.employee_code and await self.code_exists(data.employee_code):
            raise EmployeeExistsError(
                f"Employee code {data.employee_code} already exists"
            )

        employee = Employee(
            first_name=data.first_name,
            last_name=data.last_name,
            email=str(data.email),
            phone=data.phone,
            employee_code=data.employee_code,
            department=data.department,
            designation=data.designation,
            date_of_joining=data.date_of_joining,
            current_status=data.current_status.value,
            role=data.role.value,
            manager_id=data.manager_id,
        )
        await self._save(employee)
        await self.session.aexecute(self._insert_email, [employee.email, employee.id])
        if employee.employee_code:
            await self.session.aexecute(
                self._insert_code, [employee.employee_code, employee.id]
            )
        await self._append_history(
            StatusChange(
                employee_id=employee.id,
                old_status=None,
                new_status=employee.current_status,
                reason="Employee created",
                changed_by=created_by,
                changed_at=employee.created_at,
            )
        )

        logger.info(
            "employee_created",
            employee_id=str(employee.id),
            status=employee.current_status,
            created_by=str(created_by) if created_by else None,
        )

        if notify and employee.current_status == EmployeeStatus.PRE_JOINING.value:
            await self._send_pre_joining_welcome(employee)
        return employee

    async def _send_pre_joining_welcome(self, employee: Employee) -> None:
        if self.email_service is None:
            return
        result = await self.email_service.send_pre_joining_welcome(
            to=employee.email,
            first_name=employee.first_name,
            last_name=employee.last_name,
            date_of_joining=employee.date_of_joining,
        )
        if not result.success:
            logger.warning(
                "pre_joining_email_failed",
                employee_id=str(employee.id),
                error=result.error,
            )

    async def update_employee(
        self, employee_id: UUID, data: UpdateEmployeeRequest
    ) -> Employee:
        """Update profile fields that were provided.

        Raises:
            EmployeeNotFoundError: If employee doesn't exist
        """
        employee = await self.require_employee(employee_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(employee, field, getattr(value, "value", value))
        employee.updated_at = datetime.now(UTC)

        await self._save(employee)
        logger.info(
            "employee_updated", employee_id=str(employee_id), fields=sorted(changes)
        )
        return employee

    async def change_status(
        self,
        employee_id: UUID,
        new_status: EmployeeStatus,
        reason: str,
        changed_by: UUID | None = None,
    ) -> Employee:
        """Move an employee to a new status and record it in the history.

        Raises:
            EmployeeNotFoundError: If employee doesn't exist
            InvalidStatusChangeError: If the status is unchanged or the reason is blank
        """
        employee = await self.require_employee(employee_id)

        if not reason or not reason.strip():
            raise InvalidStatusChangeError("A reason for the status change is required")
        if employee.current_status == new_status.value:
            raise InvalidStatusChangeError(
                f"Employee is already {new_status.value}"
            )

        old_status = employee.current_status
        now = datetime.now(UTC)
        employee.current_status = new_status.value
        employee.updated_at = now

        await self.session.aexecute(
            self._set_status, [employee.current_status, now, employee.id]
        )
        await self._append_history(
            StatusChange(
                employee_id=employee.id,
                old_status=old_status,
                new_status=new_status.value,
                reason=reason.strip(),
                changed_by=changed_by,
                changed_at=now,
            )
        )

        logger.info(
            "employee_status_changed",
            employee_id=str(employee_id),
            old_status=old_status,
            new_status=new_status.value,
            changed_by=str(changed_by) if changed_by else None,
        )
        return employee

    async def bulk_create(
        self,
        rows: list[EmployeeRow],
        max_rows: int,
        created_by: UUID | None = None,
    ) -> BulkUploadResponse:
        """Create employees from parsed CSV rows.

        Any validation error rejects the whole upload. After that, rows are
        created one by one; a taken email or code fails only that row.
        """
        errors = validate_rows(rows, max_rows)
        if errors:
            logger.info("employee_bulk_upload_rejected", errors=len(errors))
            return BulkUploadResponse(validation_errors=errors)

        response = BulkUploadResponse()
        for row in rows:
            try:
                employee = await self.create_employee(row.to_request(), created_by)
            except EmployeeError as e:
                response.failed.append(
                    BulkUploadFailure(row=row.row_number, error=f"Row {row.row_number}: {e.message}")
                )
                continue
            response.created.append(EmployeeResponse.from_entity(employee))

        logger.info(
            "employee_bulk_upload_completed",
            created=len(response.created),
            failed=len(response.failed),
            created_by=str(created_by) if created_by else None,
        )
        return response
