"""Pydantic schemas for the course catalogue.

Request and response models for:
- Courses: CRUD with completion rule
- Course modules: CRUD and reordering
- Assessment templates: CRUD
"""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.courses.models import (
    DEFAULT_MINIMUM_PASSING_PERCENTAGE,
    DEFAULT_PASSING_SCORE,
    AssessmentTemplate,
    CompletionRule,
    ContentType,
    Course,
    CourseModule,
    CourseStatus,
    DifficultyLevel,
)


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    course_name: str = Field(..., min_length=3, max_length=200, description="Course name")
    course_description: str | None = Field(
        None, max_length=5000, description="Course description"
    )
    course_type: str = Field(..., min_length=1, max_length=100, description="Course type")
    difficulty_level: DifficultyLevel = Field(
        DifficultyLevel.BEGINNER, description="Difficulty level"
    )
    target_role: str | None = Field(None, max_length=100, description="Target role")
    completion_rule: CompletionRule = Field(
        CompletionRule.PASS_ALL_ASSESSMENTS, description="Completion rule"
    )
    minimum_passing_percentage: int = Field(
        DEFAULT_MINIMUM_PASSING_PERCENTAGE,
        ge=0,
        le=100,
        description="Threshold for the minimum-percentage rule",
    )


class UpdateCourseRequest(BaseModel):
    """Course update request. Omitted fields are left unchanged."""

    course_name: str | None = Field(None, min_length=3, max_length=200)
    course_description: str | None = Field(None, max_length=5000)
    course_type: str | None = Field(None, min_length=1, max_length=100)
    difficulty_level: DifficultyLevel | None = None
    target_role: str | None = Field(None, max_length=100)
    status: CourseStatus | None = Field(None, description="Publication status")
    completion_rule: CompletionRule | None = None
    minimum_passing_percentage: int | None = Field(None, ge=0, le=100)


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_name: str
    course_description: str | None = None
    course_type: str | None = None
    difficulty_level: str | None = None
    target_role: str | None = None
    status: str
    completion_rule: str
    minimum_passing_percentage: int | None = None
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        return cls.model_validate(course)


class CourseDetailResponse(CourseResponse):
    """Course with content counts and the completion rule display text."""

    module_count: int = 0
    assessment_count: int = 0
    completion_rule_text: str


class CourseListResponse(BaseModel):
    items: list[CourseResponse]
    total: int


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    """Course module creation request.

    ``module_order`` defaults to one past the current last module.
    """

    module_name: str = Field(..., min_length=1, max_length=200, description="Module name")
    module_description: str | None = Field(None, max_length=5000)
    module_order: int | None = Field(None, ge=1, description="Position in the course")
    content_type: ContentType = Field(ContentType.TEXT, description="Content type")
    content_url: str | None = Field(None, max_length=2000, description="Content URL")
    content: str | None = Field(None, description="Inline content (text modules)")
    estimated_duration_minutes: int | None = Field(None, ge=1, le=1440)

    @model_validator(mode="after")
    def validate_content(self) -> Self:
        """Link-based modules need a URL."""
        needs_url = {ContentType.VIDEO, ContentType.PDF, ContentType.EXTERNAL_LINK}
        if self.content_type in needs_url and not self.content_url:
            msg = f"content_url is required for {self.content_type.value} modules"
            raise ValueError(msg)
        return self


class UpdateModuleRequest(BaseModel):
    module_name: str | None = Field(None, min_length=1, max_length=200)
    module_description: str | None = Field(None, max_length=5000)
    content_type: ContentType | None = None
    content_url: str | None = Field(None, max_length=2000)
    content: str | None = None
    estimated_duration_minutes: int | None = Field(None, ge=1, le=1440)


class ReorderModulesRequest(BaseModel):
    """New module order: every module id of the course, first to last."""

    module_ids: list[UUID] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique(self) -> Self:
        if len(set(self.module_ids)) != len(self.module_ids):
            msg = "module_ids must not contain duplicates"
            raise ValueError(msg)
        return self


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    module_name: str
    module_description: str | None = None
    module_order: int
    content_type: str | None = None
    content_url: str | None = None
    content: str | None = None
    estimated_duration_minutes: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, module: CourseModule) -> "ModuleResponse":
        return cls.model_validate(module)


# ==============================================================================
# Assessment Template Schemas
# ==============================================================================


class CreateAssessmentTemplateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    assessment_type: str = Field("quiz", max_length=50)
    passing_score: int = Field(DEFAULT_PASSING_SCORE, ge=0, le=100)
    is_mandatory: bool = True


class UpdateAssessmentTemplateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    assessment_type: str | None = Field(None, max_length=50)
    passing_score: int | None = Field(None, ge=0, le=100)
    is_mandatory: bool | None = None


class AssessmentTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    assessment_type: str | None = None
    passing_score: int | None = None
    is_mandatory: bool = True
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, template: AssessmentTemplate) -> "AssessmentTemplateResponse":
        return cls.model_validate(template)
