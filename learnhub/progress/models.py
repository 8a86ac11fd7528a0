"""Database models for enrollments and learning progress.

Cassandra table definitions for:
- enrollments: one row per (employee, course), partitioned by employee
- enrollments_by_course: lookup copy for "who is enrolled in this course?"
- module_progress: done/not-done per (employee, course, module)
- course_assessments: every assessment attempt, grouped by template

All progress tables are partitioned by employee so that a progress view
reads a single partition per table.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle.

    not_started -> in_progress on first module or assessment activity,
    not_started | in_progress -> completed on the gated mark-complete action.
    Nothing leaves completed.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.NOT_STARTED: frozenset(
        {EnrollmentStatus.IN_PROGRESS, EnrollmentStatus.COMPLETED}
    ),
    EnrollmentStatus.IN_PROGRESS: frozenset({EnrollmentStatus.COMPLETED}),
    EnrollmentStatus.COMPLETED: frozenset(),
}


def can_transition(current: EnrollmentStatus | str, target: EnrollmentStatus | str) -> bool:
    return EnrollmentStatus(target) in ALLOWED_TRANSITIONS[EnrollmentStatus(current)]


class AssessmentResultStatus(str, Enum):
    """Status of a single assessment attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PASSED = "passed"
    FAILED = "failed"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    employee_id UUID,
    course_id UUID,
    status TEXT,
    enrolled_date TIMESTAMP,
    completion_date TIMESTAMP,
    progress_percent INT,
    assigned_by UUID,
    updated_at TIMESTAMP,
    PRIMARY KEY (employee_id, course_id)
)
"""

# Lookup: employees per course (dual-written with enrollments)
ENROLLMENTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_course (
    course_id UUID,
    employee_id UUID,
    status TEXT,
    enrolled_date TIMESTAMP,
    completion_date TIMESTAMP,
    progress_percent INT,
    assigned_by UUID,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, employee_id)
)
"""

MODULE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_progress (
    employee_id UUID,
    course_id UUID,
    module_id UUID,
    completed BOOLEAN,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((employee_id), course_id, module_id)
)
"""

COURSE_ASSESSMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_assessments (
    employee_id UUID,
    course_id UUID,
    assessment_template_id UUID,
    id UUID,
    percentage DECIMAL,
    passing_score INT,
    status TEXT,
    submitted_at TIMESTAMP,
    PRIMARY KEY ((employee_id), course_id, assessment_template_id, id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_COURSE_TABLE_CQL,
    MODULE_PROGRESS_TABLE_CQL,
    COURSE_ASSESSMENTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """An employee's enrollment in a course.

    Attributes:
        employee_id: Enrolled employee
        course_id: Course
        status: EnrollmentStatus value
        enrolled_date: When the enrollment was created
        completion_date: When the course was marked complete
        progress_percent: Overall progress snapshot taken at completion;
            used as a floor for the displayed progress afterwards
        assigned_by: HR user who created the enrollment
    """

    def __init__(
        self,
        employee_id: UUID,
        course_id: UUID,
        status: str = EnrollmentStatus.NOT_STARTED.value,
        enrolled_date: datetime | None = None,
        completion_date: datetime | None = None,
        progress_percent: int = 0,
        assigned_by: UUID | None = None,
        updated_at: datetime | None = None,
    ):
        self.employee_id = employee_id
        self.course_id = course_id
        self.status = status
        self.enrolled_date = ensure_utc_aware(enrolled_date) or datetime.now(UTC)
        self.completion_date = ensure_utc_aware(completion_date)
        self.progress_percent = progress_percent or 0
        self.assigned_by = assigned_by
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        return cls(
            employee_id=row.employee_id,
            course_id=row.course_id,
            status=row.status or EnrollmentStatus.NOT_STARTED.value,
            enrolled_date=row.enrolled_date,
            completion_date=row.completion_date,
            progress_percent=row.progress_percent or 0,
            assigned_by=row.assigned_by,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "course_id": self.course_id,
            "status": self.status,
            "enrolled_date": self.enrolled_date,
            "completion_date": self.completion_date,
            "progress_percent": self.progress_percent,
            "assigned_by": self.assigned_by,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Enrollment employee={self.employee_id} course={self.course_id} {self.status}>"


class ModuleProgress:
    """Done/not-done state of one module for one employee."""

    def __init__(
        self,
        employee_id: UUID,
        course_id: UUID,
        module_id: UUID,
        completed: bool = False,
        completed_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.employee_id = employee_id
        self.course_id = course_id
        self.module_id = module_id
        self.completed = bool(completed)
        self.completed_at = ensure_utc_aware(completed_at)
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ModuleProgress":
        return cls(
            employee_id=row.employee_id,
            course_id=row.course_id,
            module_id=row.module_id,
            completed=row.completed,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "completed": self.completed,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<ModuleProgress module={self.module_id} completed={self.completed}>"


class AssessmentResult:
    """One attempt at an assessment template.

    ``passing_score`` is copied from the template when the attempt is
    recorded, so later template edits do not re-grade old attempts.
    """

    def __init__(
        self,
        employee_id: UUID,
        course_id: UUID,
        assessment_template_id: UUID,
        id: UUID | None = None,
        percentage: Decimal | None = None,
        passing_score: int | None = None,
        status: str = AssessmentResultStatus.COMPLETED.value,
        submitted_at: datetime | None = None,
    ):
        self.employee_id = employee_id
        self.course_id = course_id
        self.assessment_template_id = assessment_template_id
        self.id = id or uuid4()
        self.percentage = percentage
        self.passing_score = passing_score
        self.status = status
        self.submitted_at = ensure_utc_aware(submitted_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentResult":
        return cls(
            employee_id=row.employee_id,
            course_id=row.course_id,
            assessment_template_id=row.assessment_template_id,
            id=row.id,
            percentage=row.percentage,
            passing_score=row.passing_score,
            status=row.status,
            submitted_at=row.submitted_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "course_id": self.course_id,
            "assessment_template_id": self.assessment_template_id,
            "id": self.id,
            "percentage": self.percentage,
            "passing_score": self.passing_score,
            "status": self.status,
            "submitted_at": self.submitted_at,
        }

    def __repr__(self) -> str:
        return (
            f"<AssessmentResult template={self.assessment_template_id} "
            f"{self.percentage}% {self.status}>"
        )
