"""Database models for live training sessions.

Cassandra table definitions for:
- training_sessions: scheduled sessions with trainer, attendees and meeting link
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.employees.models import EmployeeStatus


class SessionType(str, Enum):
    MONTHLY_REVIEW = "Monthly Review"
    WORKSHOP = "Workshop"
    INFORMATIVE = "Informative"
    ONE_ON_ONE = "One on One"
    WELCOME = "Welcome"
    PROJECT_BRIEF = "Project Brief"
    PRODUCT_KT = "Product KT"
    OTHER = "Other"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionAudience(str, Enum):
    """Whether a session mostly serves hires who have not started yet."""

    PRE_JOINING = "pre_joining"
    POST_JOINING = "post_joining"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

TRAINING_SESSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.training_sessions (
    id UUID PRIMARY KEY,
    session_name TEXT,
    session_type TEXT,
    trainer_id UUID,
    start_datetime TIMESTAMP,
    end_datetime TIMESTAMP,
    meeting_platform TEXT,
    meeting_link TEXT,
    status TEXT,
    attendee_ids SET<UUID>,
    notes TEXT,
    recording_url TEXT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

TRAINING_TABLES_CQL = [TRAINING_SESSIONS_TABLE_CQL]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def classify_audience(attendee_statuses: list[str | None]) -> SessionAudience:
    """Pre-joining when more than half of the attendees are still Pre-Joining.

    A session without attendees counts as post-joining.
    """
    pre_joining = sum(1 for s in attendee_statuses if s == EmployeeStatus.PRE_JOINING.value)
    if pre_joining * 2 > len(attendee_statuses):
        return SessionAudience.PRE_JOINING
    return SessionAudience.POST_JOINING


# ==============================================================================
# Entity Classes
# ==============================================================================


class TrainingSession:
    """A live session run by a trainer for a list of attendees.

    Attributes:
        session_type: SessionType value
        trainer_id: Employee running the session
        start_datetime, end_datetime: UTC bounds, end after start
        meeting_platform: Free text such as "Google Meet" or "Teams"
        attendee_ids: Invited employees, without duplicates
        notes, recording_url: Filled in when the session is completed
    """

    def __init__(
        self,
        start_datetime: datetime,
        end_datetime: datetime,
        id: UUID | None = None,
        session_name: str = "",
        session_type: str = SessionType.OTHER.value,
        trainer_id: UUID | None = None,
        meeting_platform: str | None = None,
        meeting_link: str = "",
        status: str = SessionStatus.SCHEDULED.value,
        attendee_ids: list[UUID] | None = None,
        notes: str | None = None,
        recording_url: str | None = None,
        created_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.session_name = session_name.strip()
        self.session_type = session_type
        self.trainer_id = trainer_id
        self.start_datetime = ensure_utc_aware(start_datetime)
        self.end_datetime = ensure_utc_aware(end_datetime)
        self.meeting_platform = meeting_platform
        self.meeting_link = meeting_link
        self.status = status or SessionStatus.SCHEDULED.value
        self.attendee_ids = list(dict.fromkeys(attendee_ids or []))
        self.notes = notes
        self.recording_url = recording_url
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_scheduled(self) -> bool:
        return self.status == SessionStatus.SCHEDULED.value

    def involves(self, employee_id: UUID) -> bool:
        return employee_id == self.trainer_id or employee_id in self.attendee_ids

    @classmethod
    def from_row(cls, row: Any) -> "TrainingSession":
        return cls(
            id=row.id,
            session_name=row.session_name or "",
            session_type=row.session_type,
            trainer_id=row.trainer_id,
            start_datetime=row.start_datetime,
            end_datetime=row.end_datetime,
            meeting_platform=row.meeting_platform,
            meeting_link=row.meeting_link or "",
            status=row.status,
            attendee_ids=list(row.attendee_ids or []),
            notes=row.notes,
            recording_url=row.recording_url,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_name": self.session_name,
            "session_type": self.session_type,
            "trainer_id": self.trainer_id,
            "start_datetime": self.start_datetime,
            "end_datetime": self.end_datetime,
            "meeting_platform": self.meeting_platform,
            "meeting_link": self.meeting_link,
            "status": self.status,
            "attendee_ids": self.attendee_ids,
            "notes": self.notes,
            "recording_url": self.recording_url,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<TrainingSession {self.session_name} ({self.status})>"
