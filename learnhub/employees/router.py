"""Employee management API endpoints.

Provides routes for:
- Employee CRUD and listing
- Status changes with history
- Bulk upload from CSV and the CSV template
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse

from learnhub.auth.dependencies import HRUser, ManagerUser
from learnhub.config import get_settings
from learnhub.core.logging import get_logger
from learnhub.employees.csv_import import TEMPLATE_CSV, CSVImportError, parse_employee_csv
from learnhub.employees.dependencies import EmployeeServiceDep, handle_employee_error
from learnhub.employees.models import EmployeeStatus
from learnhub.employees.schemas import (
    BulkUploadResponse,
    ChangeStatusRequest,
    CreateEmployeeRequest,
    EmployeeListResponse,
    EmployeeResponse,
    StatusChangeResponse,
    UpdateEmployeeRequest,
)
from learnhub.employees.service import EmployeeError


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/employees", tags=["employees"])


@router.get(
    "/template.csv",
    response_class=PlainTextResponse,
    summary="Download the bulk upload CSV template",
)
async def download_template(_: HRUser) -> PlainTextResponse:
    return PlainTextResponse(
        TEMPLATE_CSV,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="employee_template.csv"'},
    )


@router.post(
    "/bulk",
    response_model=BulkUploadResponse,
    summary="Bulk create employees from CSV",
)
async def bulk_upload(
    file: Annotated[UploadFile, File(description="CSV file with employees")],
    employee_service: EmployeeServiceDep,
    user: HRUser,
) -> BulkUploadResponse:
    """Create employees from a CSV file.

    If any row fails validation nothing is created and the messages are
    returned in ``validation_errors``.
    """
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload a CSV file",
        )

    settings = get_settings()
    max_bytes = settings.employee_bulk_upload_max_file_size_kb * 1024
    raw = await file.read(max_bytes + 1)
    if len(raw) > max_bytes:
        logger.warning(
            "employee_bulk_upload_too_large",
            filename=file.filename,
            max_bytes=max_bytes,
            user_id=str(user.id),
        )
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"CSV file exceeds {settings.employee_bulk_upload_max_file_size_kb} KB",
        )

    try:
        rows = parse_employee_csv(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        ) from e
    except CSVImportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from e

    logger.info(
        "employee_bulk_upload_started",
        filename=file.filename,
        rows=len(rows),
        user_id=str(user.id),
    )
    return await employee_service.bulk_create(
        rows, settings.employee_bulk_upload_max_rows, created_by=user.id
    )


@router.post(
    "",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create employee",
)
async def create_employee(
    data: CreateEmployeeRequest,
    employee_service: EmployeeServiceDep,
    user: HRUser,
    notify: bool = True,
) -> EmployeeResponse:
    try:
        employee = await employee_service.create_employee(data, user.id, notify=notify)
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return EmployeeResponse.from_entity(employee)


@router.get("", response_model=EmployeeListResponse, summary="List employees")
async def list_employees(
    employee_service: EmployeeServiceDep,
    _: ManagerUser,
    status_filter: Annotated[EmployeeStatus | None, Query(alias="status")] = None,
    department: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> EmployeeListResponse:
    employees = await employee_service.list_employees(
        status=status_filter, department=department, limit=limit
    )
    items = [EmployeeResponse.from_entity(e) for e in employees]
    return EmployeeListResponse(items=items, total=len(items))


@router.get("/{employee_id}", response_model=EmployeeResponse, summary="Get employee")
async def get_employee(
    employee_id: UUID,
    employee_service: EmployeeServiceDep,
    _: ManagerUser,
) -> EmployeeResponse:
    try:
        employee = await employee_service.require_employee(employee_id)
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return EmployeeResponse.from_entity(employee)


@router.patch(
    "/{employee_id}", response_model=EmployeeResponse, summary="Update employee"
)
async def update_employee(
    employee_id: UUID,
    data: UpdateEmployeeRequest,
    employee_service: EmployeeServiceDep,
    _: HRUser,
) -> EmployeeResponse:
    try:
        employee = await employee_service.update_employee(employee_id, data)
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return EmployeeResponse.from_entity(employee)


@router.post(
    "/{employee_id}/status",
    response_model=EmployeeResponse,
    summary="Change employee status",
)
async def change_status(
    employee_id: UUID,
    data: ChangeStatusRequest,
    employee_service: EmployeeServiceDep,
    user: HRUser,
) -> EmployeeResponse:
    try:
        employee = await employee_service.change_status(
            employee_id, data.new_status, data.reason, changed_by=user.id
        )
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return EmployeeResponse.from_entity(employee)


@router.get(
    "/{employee_id}/status-history",
    response_model=list[StatusChangeResponse],
    summary="Employee status history",
)
async def get_status_history(
    employee_id: UUID,
    employee_service: EmployeeServiceDep,
    _: HRUser,
) -> list[StatusChangeResponse]:
    try:
        history = await employee_service.get_status_history(employee_id)
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return [StatusChangeResponse.from_entity(h) for h in history]
