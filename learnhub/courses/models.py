"""Database models for the course catalogue.

Cassandra table definitions for:
- courses: course metadata, completion rule and passing threshold
- course_modules: ordered learning content, partitioned by course
- assessment_templates: gradable units of a course, partitioned by course

Modules and templates are always read per course, so both tables use the
course id as partition key and never need a secondary index.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CompletionRule(str, Enum):
    """Rule configured on a course for when it counts as complete.

    Only the all-assessments gate is enforced when marking a course
    complete. The other two values are stored and shown to learners.
    """

    PASS_ALL_ASSESSMENTS = "pass_all_assessments"
    PASS_MINIMUM_PERCENTAGE = "pass_minimum_percentage"
    PASS_MANDATORY_ONLY = "pass_mandatory_only"


class DifficultyLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class ContentType(str, Enum):
    """Module content type."""

    TEXT = "text"
    VIDEO = "video"
    PDF = "pdf"
    EXTERNAL_LINK = "external_link"
    MIXED_CONTENT = "mixed_content"


COURSE_TYPES = ("Technical", "Soft skills", "Informative", "AI")

DEFAULT_PASSING_SCORE = 70
DEFAULT_MINIMUM_PASSING_PERCENTAGE = 70


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    course_name TEXT,
    course_description TEXT,
    course_type TEXT,
    difficulty_level TEXT,
    target_role TEXT,
    status TEXT,
    completion_rule TEXT,
    minimum_passing_percentage INT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_id UUID,
    id UUID,
    module_name TEXT,
    module_description TEXT,
    module_order INT,
    content_type TEXT,
    content_url TEXT,
    content TEXT,
    estimated_duration_minutes INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, id)
)
"""

ASSESSMENT_TEMPLATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_templates (
    course_id UUID,
    id UUID,
    title TEXT,
    description TEXT,
    assessment_type TEXT,
    passing_score INT,
    is_mandatory BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, id)
)
"""

COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
    ASSESSMENT_TEMPLATES_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """A course in the catalogue.

    Attributes:
        id: Unique identifier
        course_name: Display name
        course_description: Free-text description
        course_type: One of COURSE_TYPES (not enforced for imported data)
        difficulty_level: Beginner, Intermediate, Advanced or Expert
        target_role: Job role the course is aimed at
        status: draft, published or archived
        completion_rule: CompletionRule value
        minimum_passing_percentage: Threshold shown for the percentage rule
        created_by: User who created the course
    """

    def __init__(
        self,
        id: UUID | None = None,
        course_name: str = "",
        course_description: str | None = None,
        course_type: str | None = None,
        difficulty_level: str = DifficultyLevel.BEGINNER.value,
        target_role: str | None = None,
        status: str = CourseStatus.DRAFT.value,
        completion_rule: str = CompletionRule.PASS_ALL_ASSESSMENTS.value,
        minimum_passing_percentage: int | None = DEFAULT_MINIMUM_PASSING_PERCENTAGE,
        created_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_name = course_name.strip()
        self.course_description = course_description
        self.course_type = course_type
        self.difficulty_level = difficulty_level
        self.target_role = target_role
        self.status = status
        self.completion_rule = completion_rule or CompletionRule.PASS_ALL_ASSESSMENTS.value
        self.minimum_passing_percentage = minimum_passing_percentage
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        return cls(
            id=row.id,
            course_name=row.course_name or "",
            course_description=row.course_description,
            course_type=row.course_type,
            difficulty_level=row.difficulty_level,
            target_role=row.target_role,
            status=row.status,
            completion_rule=row.completion_rule,
            minimum_passing_percentage=row.minimum_passing_percentage,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_name": self.course_name,
            "course_description": self.course_description,
            "course_type": self.course_type,
            "difficulty_level": self.difficulty_level,
            "target_role": self.target_role,
            "status": self.status,
            "completion_rule": self.completion_rule,
            "minimum_passing_percentage": self.minimum_passing_percentage,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.course_name} ({self.status})>"


class CourseModule:
    """A unit of learning content inside a course.

    Modules are ordered by ``module_order``; ties keep insertion order.
    """

    def __init__(
        self,
        course_id: UUID,
        id: UUID | None = None,
        module_name: str = "",
        module_description: str | None = None,
        module_order: int = 1,
        content_type: str = ContentType.TEXT.value,
        content_url: str | None = None,
        content: str | None = None,
        estimated_duration_minutes: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.id = id or uuid4()
        self.module_name = module_name.strip()
        self.module_description = module_description
        self.module_order = module_order
        self.content_type = content_type
        self.content_url = content_url
        self.content = content
        self.estimated_duration_minutes = estimated_duration_minutes
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "CourseModule":
        return cls(
            course_id=row.course_id,
            id=row.id,
            module_name=row.module_name or "",
            module_description=row.module_description,
            module_order=row.module_order if row.module_order is not None else 0,
            content_type=row.content_type,
            content_url=row.content_url,
            content=row.content,
            estimated_duration_minutes=row.estimated_duration_minutes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "id": self.id,
            "module_name": self.module_name,
            "module_description": self.module_description,
            "module_order": self.module_order,
            "content_type": self.content_type,
            "content_url": self.content_url,
            "content": self.content,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<CourseModule {self.module_name} order={self.module_order}>"


class AssessmentTemplate:
    """A gradable unit of a course.

    A template is passed once any attempt reaches ``passing_score``.
    ``is_mandatory`` only feeds the display text of the mandatory-only rule.
    """

    def __init__(
        self,
        course_id: UUID,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        assessment_type: str = "quiz",
        passing_score: int | None = DEFAULT_PASSING_SCORE,
        is_mandatory: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.assessment_type = assessment_type
        self.passing_score = passing_score
        self.is_mandatory = bool(is_mandatory) if is_mandatory is not None else True
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentTemplate":
        return cls(
            course_id=row.course_id,
            id=row.id,
            title=row.title or "",
            description=row.description,
            assessment_type=row.assessment_type,
            passing_score=row.passing_score,
            is_mandatory=row.is_mandatory,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "assessment_type": self.assessment_type,
            "passing_score": self.passing_score,
            "is_mandatory": self.is_mandatory,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<AssessmentTemplate {self.title} pass={self.passing_score}>"
