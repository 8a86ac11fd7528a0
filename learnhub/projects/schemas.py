"""Pydantic schemas for projects, assignments, submissions and evaluations."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.projects.models import (
    Project,
    ProjectAssignment,
    ProjectEvaluation,
    ProjectSubmission,
    ProjectType,
)


# ==============================================================================
# Project Schemas
# ==============================================================================


class CreateProjectRequest(BaseModel):
    """Project creation request."""

    project_name: str = Field(..., min_length=3, max_length=200)
    project_description: str = Field(..., min_length=1, max_length=5000)
    project_type: ProjectType = Field(ProjectType.TRAINING, description="Project type")
    duration_days: int | None = Field(None, ge=1, le=365, description="Expected duration")
    instructions: str = Field(..., min_length=1, max_length=10000)
    deliverables: str = Field(..., min_length=1, max_length=5000)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_name: str
    project_description: str
    project_type: str
    duration_days: int | None = None
    instructions: str
    deliverables: str
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, project: Project) -> "ProjectResponse":
        return cls.model_validate(project)


class ProjectListResponse(BaseModel):
    items: list[ProjectResponse]
    total: int


# ==============================================================================
# Assignment Schemas
# ==============================================================================


class AssignProjectRequest(BaseModel):
    """The full set of employees who should hold the project.

    Employees missing from the set lose their assignment unless they have
    already submitted.
    """

    assignee_ids: list[UUID] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def dedupe(self) -> Self:
        self.assignee_ids = list(dict.fromkeys(self.assignee_ids))
        return self


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: UUID
    assignee_id: UUID
    status: str
    assigned_by: UUID | None = None
    assigned_at: datetime
    started_at: datetime | None = None
    submitted_at: datetime | None = None
    evaluated_at: datetime | None = None

    @classmethod
    def from_entity(cls, assignment: ProjectAssignment) -> "AssignmentResponse":
        return cls.model_validate(assignment)


class AssignProjectResponse(BaseModel):
    added: list[UUID]
    removed: list[UUID]
    kept_locked: list[UUID] = Field(
        default_factory=list,
        description="Unselected assignees kept because they already submitted",
    )
    assignments: list[AssignmentResponse]


class AssignmentListResponse(BaseModel):
    items: list[AssignmentResponse]
    total: int


class MyProjectResponse(BaseModel):
    """A project as seen by its assignee."""

    project: ProjectResponse
    assignment: AssignmentResponse


# ==============================================================================
# Submission and Evaluation Schemas
# ==============================================================================


class SubmitProjectRequest(BaseModel):
    submission_content: str = Field(..., min_length=1, max_length=20000)
    file_url: str | None = Field(None, max_length=2000)


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    assignee_id: UUID
    submission_content: str
    file_url: str | None = None
    submitted_at: datetime

    @classmethod
    def from_entity(cls, submission: ProjectSubmission) -> "SubmissionResponse":
        return cls.model_validate(submission)


class EvaluateProjectRequest(BaseModel):
    """Scores are on a 0-10 scale; only the overall score is required."""

    overall_score: int = Field(..., ge=0, le=10)
    technical_score: int | None = Field(None, ge=0, le=10)
    quality_score: int | None = Field(None, ge=0, le=10)
    timeline_score: int | None = Field(None, ge=0, le=10)
    communication_score: int | None = Field(None, ge=0, le=10)
    innovation_score: int | None = Field(None, ge=0, le=10)
    strengths: str | None = Field(None, max_length=5000)
    areas_for_improvement: str | None = Field(None, max_length=5000)


class EvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    assignee_id: UUID
    submission_id: UUID
    evaluator_id: UUID
    overall_score: int
    technical_score: int | None = None
    quality_score: int | None = None
    timeline_score: int | None = None
    communication_score: int | None = None
    innovation_score: int | None = None
    strengths: str | None = None
    areas_for_improvement: str | None = None
    evaluated_at: datetime

    @classmethod
    def from_entity(cls, evaluation: ProjectEvaluation) -> "EvaluationResponse":
        return cls.model_validate(evaluation)


class EvaluationStatusResponse(BaseModel):
    """Review backlog of one project."""

    project_id: UUID
    project_name: str
    total_assignments: int
    submitted: int
    evaluated: int
    pending_evaluations: int
    oldest_pending_days: int | None = Field(
        None, description="Whole days since the oldest unevaluated submission"
    )
