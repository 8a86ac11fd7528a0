"""Database models for hands-on projects.

Cassandra table definitions for:
- projects: project brief, instructions and expected deliverables
- project_assignments: who works on a project, partitioned by project
- project_assignments_by_assignee: the same rows, partitioned by assignee
- project_submissions: one submission per assignment
- project_evaluations: one evaluation per submission
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ProjectType(str, Enum):
    INTERNAL = "Internal"
    CLIENT = "Client"
    TRAINING = "Training"
    RESEARCH = "Research"


class AssignmentStatus(str, Enum):
    """Lifecycle of a project assignment."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    SUBMITTED = "submitted"
    EVALUATED = "evaluated"


ALLOWED_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.NOT_STARTED: frozenset({AssignmentStatus.STARTED}),
    AssignmentStatus.STARTED: frozenset({AssignmentStatus.SUBMITTED}),
    AssignmentStatus.SUBMITTED: frozenset({AssignmentStatus.EVALUATED}),
    AssignmentStatus.EVALUATED: frozenset(),
}


def can_transition(current: AssignmentStatus | str, target: AssignmentStatus | str) -> bool:
    return AssignmentStatus(target) in ALLOWED_TRANSITIONS[AssignmentStatus(current)]


# Assignments past this point hold trainee work and survive re-assignment.
LOCKED_STATUSES = frozenset({AssignmentStatus.SUBMITTED, AssignmentStatus.EVALUATED})

SCORE_FIELDS = (
    "technical_score",
    "quality_score",
    "timeline_score",
    "communication_score",
    "innovation_score",
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PROJECTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.projects (
    id UUID PRIMARY KEY,
    project_name TEXT,
    project_description TEXT,
    project_type TEXT,
    duration_days INT,
    instructions TEXT,
    deliverables TEXT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

PROJECT_ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.project_assignments (
    project_id UUID,
    assignee_id UUID,
    status TEXT,
    assigned_by UUID,
    assigned_at TIMESTAMP,
    started_at TIMESTAMP,
    submitted_at TIMESTAMP,
    evaluated_at TIMESTAMP,
    PRIMARY KEY (project_id, assignee_id)
)
"""

# Same rows as project_assignments, read for "my projects"
PROJECT_ASSIGNMENTS_BY_ASSIGNEE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.project_assignments_by_assignee (
    assignee_id UUID,
    project_id UUID,
    status TEXT,
    assigned_by UUID,
    assigned_at TIMESTAMP,
    started_at TIMESTAMP,
    submitted_at TIMESTAMP,
    evaluated_at TIMESTAMP,
    PRIMARY KEY (assignee_id, project_id)
)
"""

PROJECT_SUBMISSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.project_submissions (
    project_id UUID,
    assignee_id UUID,
    id UUID,
    submission_content TEXT,
    file_url TEXT,
    submitted_at TIMESTAMP,
    PRIMARY KEY (project_id, assignee_id)
)
"""

PROJECT_EVALUATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.project_evaluations (
    project_id UUID,
    assignee_id UUID,
    id UUID,
    submission_id UUID,
    evaluator_id UUID,
    overall_score INT,
    technical_score INT,
    quality_score INT,
    timeline_score INT,
    communication_score INT,
    innovation_score INT,
    strengths TEXT,
    areas_for_improvement TEXT,
    evaluated_at TIMESTAMP,
    PRIMARY KEY (project_id, assignee_id)
)
"""

PROJECTS_TABLES_CQL = [
    PROJECTS_TABLE_CQL,
    PROJECT_ASSIGNMENTS_TABLE_CQL,
    PROJECT_ASSIGNMENTS_BY_ASSIGNEE_TABLE_CQL,
    PROJECT_SUBMISSIONS_TABLE_CQL,
    PROJECT_EVALUATIONS_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Entity Classes
# ==============================================================================


class Project:
    """A hands-on project that trainees are assigned to.

    Attributes:
        project_name: Display name
        project_type: ProjectType value
        duration_days: Expected effort in days
        instructions: What the assignee has to do
        deliverables: What the assignee has to hand in
    """

    def __init__(
        self,
        id: UUID | None = None,
        project_name: str = "",
        project_description: str = "",
        project_type: str = ProjectType.TRAINING.value,
        duration_days: int | None = None,
        instructions: str = "",
        deliverables: str = "",
        created_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.project_name = project_name.strip()
        self.project_description = project_description
        self.project_type = project_type
        self.duration_days = duration_days
        self.instructions = instructions
        self.deliverables = deliverables
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Project":
        return cls(
            id=row.id,
            project_name=row.project_name or "",
            project_description=row.project_description or "",
            project_type=row.project_type,
            duration_days=row.duration_days,
            instructions=row.instructions or "",
            deliverables=row.deliverables or "",
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_name": self.project_name,
            "project_description": self.project_description,
            "project_type": self.project_type,
            "duration_days": self.duration_days,
            "instructions": self.instructions,
            "deliverables": self.deliverables,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Project {self.project_name} ({self.project_type})>"


class ProjectAssignment:
    """An employee's assignment to a project, keyed by (project_id, assignee_id)."""

    def __init__(
        self,
        project_id: UUID,
        assignee_id: UUID,
        status: str = AssignmentStatus.NOT_STARTED.value,
        assigned_by: UUID | None = None,
        assigned_at: datetime | None = None,
        started_at: datetime | None = None,
        submitted_at: datetime | None = None,
        evaluated_at: datetime | None = None,
    ):
        self.project_id = project_id
        self.assignee_id = assignee_id
        self.status = status or AssignmentStatus.NOT_STARTED.value
        self.assigned_by = assigned_by
        self.assigned_at = ensure_utc_aware(assigned_at) or datetime.now(UTC)
        self.started_at = ensure_utc_aware(started_at)
        self.submitted_at = ensure_utc_aware(submitted_at)
        self.evaluated_at = ensure_utc_aware(evaluated_at)

    @property
    def is_locked(self) -> bool:
        return AssignmentStatus(self.status) in LOCKED_STATUSES

    @classmethod
    def from_row(cls, row: Any) -> "ProjectAssignment":
        return cls(
            project_id=row.project_id,
            assignee_id=row.assignee_id,
            status=row.status,
            assigned_by=row.assigned_by,
            assigned_at=row.assigned_at,
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            evaluated_at=row.evaluated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "assignee_id": self.assignee_id,
            "status": self.status,
            "assigned_by": self.assigned_by,
            "assigned_at": self.assigned_at,
            "started_at": self.started_at,
            "submitted_at": self.submitted_at,
            "evaluated_at": self.evaluated_at,
        }

    def __repr__(self) -> str:
        return f"<ProjectAssignment {self.project_id}/{self.assignee_id} ({self.status})>"


class ProjectSubmission:
    def __init__(
        self,
        project_id: UUID,
        assignee_id: UUID,
        id: UUID | None = None,
        submission_content: str = "",
        file_url: str | None = None,
        submitted_at: datetime | None = None,
    ):
        self.project_id = project_id
        self.assignee_id = assignee_id
        self.id = id or uuid4()
        self.submission_content = submission_content
        self.file_url = file_url
        self.submitted_at = ensure_utc_aware(submitted_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ProjectSubmission":
        return cls(
            project_id=row.project_id,
            assignee_id=row.assignee_id,
            id=row.id,
            submission_content=row.submission_content or "",
            file_url=row.file_url,
            submitted_at=row.submitted_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "assignee_id": self.assignee_id,
            "id": self.id,
            "submission_content": self.submission_content,
            "file_url": self.file_url,
            "submitted_at": self.submitted_at,
        }


class ProjectEvaluation:
    """Evaluator's scores (0-10) and written feedback on a submission."""

    def __init__(
        self,
        project_id: UUID,
        assignee_id: UUID,
        submission_id: UUID,
        evaluator_id: UUID,
        overall_score: int,
        id: UUID | None = None,
        technical_score: int | None = None,
        quality_score: int | None = None,
        timeline_score: int | None = None,
        communication_score: int | None = None,
        innovation_score: int | None = None,
        strengths: str | None = None,
        areas_for_improvement: str | None = None,
        evaluated_at: datetime | None = None,
    ):
        self.project_id = project_id
        self.assignee_id = assignee_id
        self.id = id or uuid4()
        self.submission_id = submission_id
        self.evaluator_id = evaluator_id
        self.overall_score = overall_score
        self.technical_score = technical_score
        self.quality_score = quality_score
        self.timeline_score = timeline_score
        self.communication_score = communication_score
        self.innovation_score = innovation_score
        self.strengths = strengths
        self.areas_for_improvement = areas_for_improvement
        self.evaluated_at = ensure_utc_aware(evaluated_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ProjectEvaluation":
        return cls(
            project_id=row.project_id,
            assignee_id=row.assignee_id,
            id=row.id,
            submission_id=row.submission_id,
            evaluator_id=row.evaluator_id,
            overall_score=row.overall_score,
            technical_score=row.technical_score,
            quality_score=row.quality_score,
            timeline_score=row.timeline_score,
            communication_score=row.communication_score,
            innovation_score=row.innovation_score,
            strengths=row.strengths,
            areas_for_improvement=row.areas_for_improvement,
            evaluated_at=row.evaluated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "assignee_id": self.assignee_id,
            "id": self.id,
            "submission_id": self.submission_id,
            "evaluator_id": self.evaluator_id,
            "overall_score": self.overall_score,
            **{name: getattr(self, name) for name in SCORE_FIELDS},
            "strengths": self.strengths,
            "areas_for_improvement": self.areas_for_improvement,
            "evaluated_at": self.evaluated_at,
        }

    def __repr__(self) -> str:
        return f"<ProjectEvaluation {self.project_id}/{self.assignee_id} {self.overall_score}/10>"
