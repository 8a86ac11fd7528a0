"""Database models for employees.

Cassandra table definitions for:
- employees: employee profiles
- employees_by_email: unique email lookup
- employees_by_code: unique employee code lookup
- employee_status_history: append-only status changes per employee
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.auth.permissions import UserRole


class EmployeeStatus(str, Enum):
    """Employment lifecycle status."""

    PRE_JOINING = "Pre-Joining"
    ACTIVE = "Active"
    ON_LEAVE = "On Leave"
    INACTIVE = "Inactive"
    TERMINATED = "Terminated"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_python_date(value: Any) -> date | None:
    """Convert a Cassandra ``Date`` (or a date) to ``datetime.date``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return value.date()


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

EMPLOYEES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees (
    id UUID PRIMARY KEY,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    phone TEXT,
    employee_code TEXT,
    department TEXT,
    designation TEXT,
    date_of_joining DATE,
    current_status TEXT,
    role TEXT,
    manager_id UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

EMPLOYEES_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees_by_email (
    email TEXT PRIMARY KEY,
    employee_id UUID
)
"""

EMPLOYEES_BY_CODE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees_by_code (
    employee_code TEXT PRIMARY KEY,
    employee_id UUID
)
"""

# Newest change first within an employee's partition
EMPLOYEE_STATUS_HISTORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employee_status_history (
    employee_id UUID,
    changed_at TIMESTAMP,
    id UUID,
    old_status TEXT,
    new_status TEXT,
    reason TEXT,
    changed_by UUID,
    PRIMARY KEY ((employee_id), changed_at, id)
) WITH CLUSTERING ORDER BY (changed_at DESC, id ASC)
"""

EMPLOYEES_TABLES_CQL = [
    EMPLOYEES_TABLE_CQL,
    EMPLOYEES_BY_EMAIL_TABLE_CQL,
    EMPLOYEES_BY_CODE_TABLE_CQL,
    EMPLOYEE_STATUS_HISTORY_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Employee:
    """Employee profile.

    Attributes:
        id: Unique identifier (UUID)
        first_name, last_name: Name parts
        email: Unique, stored lower-case
        employee_code: Optional HR code, unique when present
        date_of_joining: First working day
        current_status: EmployeeStatus value
        role: UserRole value used for portal access
        manager_id: Reporting manager
    """

    def __init__(
        self,
        first_name: str,
        last_name: str,
        email: str,
        id: UUID | None = None,
        phone: str | None = None,
        employee_code: str | None = None,
        department: str | None = None,
        designation: str | None = None,
        date_of_joining: date | None = None,
        current_status: str = EmployeeStatus.PRE_JOINING.value,
        role: str = UserRole.INTERN.value,
        manager_id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.first_name = first_name
        self.last_name = last_name
        self.email = email.lower().strip()
        self.phone = phone
        self.employee_code = employee_code
        self.department = department
        self.designation = designation
        self.date_of_joining = date_of_joining
        self.current_status = current_status
        self.role = role
        self.manager_id = manager_id
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: Any) -> "Employee":
        return cls(
            id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            email=row.email,
            phone=row.phone,
            employee_code=row.employee_code,
            department=row.department,
            designation=row.designation,
            date_of_joining=to_python_date(row.date_of_joining),
            current_status=row.current_status or EmployeeStatus.PRE_JOINING.value,
            role=row.role or UserRole.INTERN.value,
            manager_id=row.manager_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "employee_code": self.employee_code,
            "department": self.department,
            "designation": self.designation,
            "date_of_joining": self.date_of_joining,
            "current_status": self.current_status,
            "role": self.role,
            "manager_id": self.manager_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Employee {self.email} ({self.current_status})>"


class StatusChange:
    """One entry of an employee's status history."""

    def __init__(
        self,
        employee_id: UUID,
        old_status: str | None,
        new_status: str,
        reason: str,
        changed_by: UUID | None = None,
        id: UUID | None = None,
        changed_at: datetime | None = None,
    ):
        self.employee_id = employee_id
        self.id = id or uuid4()
        self.old_status = old_status
        self.new_status = new_status
        self.reason = reason
        self.changed_by = changed_by
        self.changed_at = ensure_utc_aware(changed_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "StatusChange":
        return cls(
            employee_id=row.employee_id,
            id=row.id,
            old_status=row.old_status,
            new_status=row.new_status,
            reason=row.reason,
            changed_by=row.changed_by,
            changed_at=row.changed_at,
        )

    def __repr__(self) -> str:
        return f"<StatusChange {self.old_status} -> {self.new_status}>"
