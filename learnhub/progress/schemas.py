"""Pydantic schemas for enrollments and progress.

Request and response models for:
- Enrollment (single and bulk)
- Module completion and assessment attempts
- Course progress and per-employee overview
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.progress.aggregator import CourseProgress, ProgressCounts
from learnhub.progress.models import (
    AssessmentResult,
    AssessmentResultStatus,
    Enrollment,
    EnrollmentStatus,
    ModuleProgress,
)


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    employee_id: UUID = Field(..., description="Employee to enroll")
    course_id: UUID = Field(..., description="Course to enroll in")
    notify: bool = Field(True, description="Send a course-assigned email")


class BulkEnrollRequest(BaseModel):
    """Enroll many employees into one course."""

    course_id: UUID
    employee_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    notify: bool = True


class BulkEnrollFailure(BaseModel):
    employee_id: UUID
    error: str


class BulkEnrollResponse(BaseModel):
    course_id: UUID
    enrolled: list[UUID] = Field(default_factory=list)
    skipped: list[UUID] = Field(
        default_factory=list, description="Already enrolled; left untouched"
    )
    failed: list[BulkEnrollFailure] = Field(default_factory=list)


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    enrolled_date: datetime
    completion_date: datetime | None = None
    progress_percent: int = 0
    assigned_by: UUID | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls(
            employee_id=entity.employee_id,
            course_id=entity.course_id,
            status=EnrollmentStatus(entity.status),
            enrolled_date=entity.enrolled_date,
            completion_date=entity.completion_date,
            progress_percent=entity.progress_percent,
            assigned_by=entity.assigned_by,
        )


# ==============================================================================
# Module / Assessment Progress Schemas
# ==============================================================================


class MarkModuleRequest(BaseModel):
    """Mark a module done (or undo it)."""

    course_id: UUID
    module_id: UUID
    completed: bool = True


class ModuleProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    module_id: UUID
    completed: bool
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ModuleProgress) -> "ModuleProgressResponse":
        return cls.model_validate(entity)


class RecordAssessmentRequest(BaseModel):
    """Record one assessment attempt.

    ``passing_score`` defaults to the template's passing score.
    """

    course_id: UUID
    assessment_template_id: UUID
    percentage: Decimal = Field(..., ge=0, le=100)
    passing_score: int | None = Field(None, ge=0, le=100)
    status: AssessmentResultStatus = AssessmentResultStatus.COMPLETED


class AssessmentResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    assessment_template_id: UUID
    percentage: Decimal | None = None
    passing_score: int | None = None
    status: str
    submitted_at: datetime
    passed: bool = False

    @classmethod
    def from_entity(
        cls, entity: AssessmentResult, passed: bool
    ) -> "AssessmentResultResponse":
        return cls(
            id=entity.id,
            course_id=entity.course_id,
            assessment_template_id=entity.assessment_template_id,
            percentage=entity.percentage,
            passing_score=entity.passing_score,
            status=entity.status,
            submitted_at=entity.submitted_at,
            passed=passed,
        )


# ==============================================================================
# Aggregated Progress Schemas
# ==============================================================================


class ProgressCountsResponse(BaseModel):
    completed: int
    total: int
    percentage: int = Field(..., ge=0, le=100)

    @classmethod
    def from_counts(cls, counts: ProgressCounts) -> "ProgressCountsResponse":
        return cls(**counts.to_dict())


class CourseProgressResponse(BaseModel):
    """Progress of one employee in one course."""

    employee_id: UUID
    course_id: UUID
    course_name: str | None = None
    status: EnrollmentStatus
    modules: ProgressCountsResponse
    assessments: ProgressCountsResponse
    overall_progress: int = Field(..., ge=0, le=100)
    can_mark_complete: bool
    completion_rule: str
    completion_rule_text: str
    enrolled_date: datetime | None = None
    completion_date: datetime | None = None

    @classmethod
    def build(
        cls,
        enrollment: Enrollment,
        progress: CourseProgress,
        course_name: str | None = None,
    ) -> "CourseProgressResponse":
        return cls(
            employee_id=enrollment.employee_id,
            course_id=enrollment.course_id,
            course_name=course_name,
            status=EnrollmentStatus(enrollment.status),
            modules=ProgressCountsResponse.from_counts(progress.modules),
            assessments=ProgressCountsResponse.from_counts(progress.assessments),
            overall_progress=progress.overall,
            # A completed enrollment has nothing left to mark.
            can_mark_complete=progress.can_mark_complete and not enrollment.is_completed,
            completion_rule=progress.completion_rule,
            completion_rule_text=progress.completion_rule_text,
            enrolled_date=enrollment.enrolled_date,
            completion_date=enrollment.completion_date,
        )


class EmployeeProgressOverview(BaseModel):
    employee_id: UUID
    courses: list[CourseProgressResponse]
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    average_progress: int = Field(..., ge=0, le=100)
