"""Pydantic schemas for training sessions."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.training.models import (
    SessionAudience,
    SessionType,
    TrainingSession,
    ensure_utc_aware,
)


class CreateSessionRequest(BaseModel):
    """Session creation request. Datetimes without an offset are taken as UTC."""

    session_name: str = Field(..., min_length=3, max_length=200)
    session_type: SessionType = Field(SessionType.OTHER, description="Session type")
    trainer_id: UUID = Field(..., description="Employee running the session")
    start_datetime: datetime
    end_datetime: datetime
    meeting_platform: str | None = Field(None, max_length=100)
    meeting_link: str = Field(..., min_length=1, max_length=2000)
    attendee_ids: list[UUID] = Field(default_factory=list, max_length=500)
    notify: bool = Field(True, description="Email the trainer and attendees")

    @model_validator(mode="after")
    def check_times(self) -> Self:
        self.start_datetime = ensure_utc_aware(self.start_datetime)
        self.end_datetime = ensure_utc_aware(self.end_datetime)
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        self.attendee_ids = list(dict.fromkeys(self.attendee_ids))
        return self


class UpdateAttendeesRequest(BaseModel):
    """The full attendee list; only newly added attendees are notified."""

    attendee_ids: list[UUID] = Field(default_factory=list, max_length=500)
    notify: bool = True


class CompleteSessionRequest(BaseModel):
    notes: str | None = Field(None, max_length=10000)
    recording_url: str | None = Field(None, max_length=2000)


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_name: str
    session_type: str
    trainer_id: UUID | None = None
    start_datetime: datetime
    end_datetime: datetime
    meeting_platform: str | None = None
    meeting_link: str
    status: str
    attendee_ids: list[UUID]
    notes: str | None = None
    recording_url: str | None = None
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None
    audience: SessionAudience | None = None

    @classmethod
    def from_entity(
        cls, session: TrainingSession, audience: SessionAudience | None = None
    ) -> "SessionResponse":
        response = cls.model_validate(session)
        response.audience = audience
        return response


class SessionListResponse(BaseModel):
    items: list[SessionResponse]
    total: int


class UpdateAttendeesResponse(BaseModel):
    session: SessionResponse
    added: list[UUID]
    removed: list[UUID]
    notified: int = Field(0, description="Emails sent successfully")
