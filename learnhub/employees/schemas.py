"""Pydantic schemas for employee management."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from learnhub.auth.permissions import UserRole
from learnhub.employees.models import Employee, EmployeeStatus, StatusChange


class CreateEmployeeRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    employee_code: str | None = Field(None, max_length=50)
    department: str | None = Field(None, max_length=100)
    designation: str | None = Field(None, max_length=100)
    date_of_joining: date | None = None
    current_status: EmployeeStatus = EmployeeStatus.PRE_JOINING
    role: UserRole = UserRole.INTERN
    manager_id: UUID | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("employee_code", "phone", "department", "designation")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class UpdateEmployeeRequest(BaseModel):
    """Profile fields; status changes go through the status endpoint."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=30)
    department: str | None = Field(None, max_length=100)
    designation: str | None = Field(None, max_length=100)
    date_of_joining: date | None = None
    role: UserRole | None = None
    manager_id: UUID | None = None


class ChangeStatusRequest(BaseModel):
    new_status: EmployeeStatus
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A reason for the status change is required")
        return v


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    employee_code: str | None = None
    department: str | None = None
    designation: str | None = None
    date_of_joining: date | None = None
    current_status: EmployeeStatus
    role: UserRole
    manager_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: Employee) -> "EmployeeResponse":
        return cls.model_validate(entity)


class EmployeeListResponse(BaseModel):
    items: list[EmployeeResponse]
    total: int


class StatusChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    old_status: str | None = None
    new_status: str
    reason: str
    changed_by: UUID | None = None
    changed_at: datetime

    @classmethod
    def from_entity(cls, entity: StatusChange) -> "StatusChangeResponse":
        return cls.model_validate(entity)


class BulkUploadFailure(BaseModel):
    row: int
    error: str


class BulkUploadResponse(BaseModel):
    """Outcome of a CSV upload.

    When ``validation_errors`` is non-empty nothing was created.
    """

    created: list[EmployeeResponse] = Field(default_factory=list)
    failed: list[BulkUploadFailure] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
