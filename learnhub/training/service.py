"""Training session service layer.

Business logic for:
- Scheduling sessions and inviting attendees
- Attendee changes, notifying only newly added attendees
- Completing, cancelling and deleting sessions
- Pre-/post-joining classification from attendee statuses
"""

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.training.models import (
    SessionAudience,
    SessionStatus,
    TrainingSession,
    classify_audience,
)
from learnhub.training.schemas import (
    CompleteSessionRequest,
    CreateSessionRequest,
    SessionResponse,
    UpdateAttendeesResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.email.service import EmailService
    from learnhub.employees.models import Employee
    from learnhub.employees.service import EmployeeService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class TrainingError(Exception):
    """Base training session error."""

    def __init__(self, message: str, code: str = "training_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SessionNotFoundError(TrainingError):
    def __init__(self, message: str = "Training session not found"):
        super().__init__(message, "session_not_found")


class SessionNotScheduledError(TrainingError):
    """Session already completed or cancelled."""

    def __init__(self, status: str):
        super().__init__(f"Session is {status}, not scheduled", "session_not_scheduled")


# ==============================================================================
# Training Service
# ==============================================================================


class TrainingService:
    """Service for live training sessions."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        employee_service: "EmployeeService | None" = None,
        email_service: "EmailService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.employee_service = employee_service
        self.email_service = email_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_session = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_sessions WHERE id = ?"
        )
        self._list_sessions = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_sessions LIMIT ?"
        )
        self._upsert_session = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.training_sessions
            (id, session_name, session_type, trainer_id, start_datetime, end_datetime,
             meeting_platform, meeting_link, status, attendee_ids, notes,
             recording_url, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_session = self.session.prepare(
            f"DELETE FROM {self.keyspace}.training_sessions WHERE id = ?"
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_session(self, session_id: UUID) -> TrainingSession | None:
        result = await self.session.aexecute(self._get_session, [session_id])
        row = result.one()
        return TrainingSession.from_row(row) if row else None

    async def require_session(self, session_id: UUID) -> TrainingSession:
        training = await self.get_session(session_id)
        if not training:
            raise SessionNotFoundError
        return training

    async def list_sessions(
        self,
        status: SessionStatus | None = None,
        upcoming_only: bool = False,
        limit: int = 100,
    ) -> list[TrainingSession]:
        """Sessions ordered by start time."""
        rows = await self.session.aexecute(self._list_sessions, [limit * 4])
        sessions = [TrainingSession.from_row(row) for row in rows]
        if status is not None:
            sessions = [s for s in sessions if s.status == status.value]
        if upcoming_only:
            now = datetime.now(UTC)
            sessions = [s for s in sessions if s.end_datetime > now]
        sessions.sort(key=lambda s: s.start_datetime)
        return sessions[:limit]

    async def list_employee_sessions(
        self, employee_id: UUID, limit: int = 100
    ) -> list[TrainingSession]:
        """Sessions the employee trains or attends."""
        sessions = await self.list_sessions(limit=limit * 4)
        return [s for s in sessions if s.involves(employee_id)][:limit]

    async def audience_of(self, training: TrainingSession) -> SessionAudience | None:
        """Classify from current attendee statuses; None without employee data."""
        if self.employee_service is None:
            return None
        attendees = await asyncio.gather(
            *(self.employee_service.get_employee(i) for i in training.attendee_ids)
        )
        return classify_audience([a.current_status for a in attendees if a is not None])

    async def to_response(self, training: TrainingSession) -> SessionResponse:
        return SessionResponse.from_entity(training, await self.audience_of(training))

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def _save(self, training: TrainingSession) -> None:
        await self.session.aexecute(
            self._upsert_session,
            [
                training.id,
                training.session_name,
                training.session_type,
                training.trainer_id,
                training.start_datetime,
                training.end_datetime,
                training.meeting_platform,
                training.meeting_link,
                training.status,
                set(training.attendee_ids),
                training.notes,
                training.recording_url,
                training.created_by,
                training.created_at,
                training.updated_at,
            ],
        )

    async def _require_employees(self, employee_ids: list[UUID]) -> None:
        if self.employee_service is None:
            return
        for employee_id in employee_ids:
            await self.employee_service.require_employee(employee_id)

    async def create_session(
        self, data: CreateSessionRequest, created_by: UUID
    ) -> TrainingSession:
        """Schedule a session and notify the trainer and every attendee."""
        await self._require_employees([data.trainer_id, *data.attendee_ids])
        training = TrainingSession(
            session_name=data.session_name,
            session_type=data.session_type.value,
            trainer_id=data.trainer_id,
            start_datetime=data.start_datetime,
            end_datetime=data.end_datetime,
            meeting_platform=data.meeting_platform,
            meeting_link=data.meeting_link,
            attendee_ids=data.attendee_ids,
            created_by=created_by,
        )
        await self._save(training)
        logger.info(
            "training_session_created",
            session_id=str(training.id),
            session_type=training.session_type,
            attendees=len(training.attendee_ids),
            created_by=str(created_by),
        )

        if data.notify:
            await self._notify(
                training, [training.trainer_id, *training.attendee_ids], newly_assigned=False
            )
        return training

    async def update_attendees(
        self, session_id: UUID, attendee_ids: list[UUID], notify: bool = True
    ) -> UpdateAttendeesResponse:
        """Replace the attendee list of a scheduled session."""
        training = await self.require_session(session_id)
        if not training.is_scheduled:
            raise SessionNotScheduledError(training.status)

        selected = list(dict.fromkeys(attendee_ids))
        added = [i for i in selected if i not in training.attendee_ids]
        removed = [i for i in training.attendee_ids if i not in selected]
        await self._require_employees(added)

        training.attendee_ids = selected
        training.updated_at = datetime.now(UTC)
        await self._save(training)
        logger.info(
            "training_attendees_updated",
            session_id=str(session_id),
            added=len(added),
            removed=len(removed),
        )

        notified = await self._notify(training, added, newly_assigned=True) if notify else 0
        return UpdateAttendeesResponse(
            session=await self.to_response(training),
            added=added,
            removed=removed,
            notified=notified,
        )

    async def complete_session(
        self, session_id: UUID, data: CompleteSessionRequest
    ) -> TrainingSession:
        training = await self.require_session(session_id)
        if not training.is_scheduled:
            raise SessionNotScheduledError(training.status)
        training.status = SessionStatus.COMPLETED.value
        if data.notes is not None:
            training.notes = data.notes
        if data.recording_url is not None:
            training.recording_url = data.recording_url
        training.updated_at = datetime.now(UTC)
        await self._save(training)
        logger.info("training_session_completed", session_id=str(session_id))
        return training

    async def cancel_session(self, session_id: UUID) -> TrainingSession:
        training = await self.require_session(session_id)
        if not training.is_scheduled:
            raise SessionNotScheduledError(training.status)
        training.status = SessionStatus.CANCELLED.value
        training.updated_at = datetime.now(UTC)
        await self._save(training)
        logger.info("training_session_cancelled", session_id=str(session_id))
        return training

    async def delete_session(self, session_id: UUID) -> None:
        await self.require_session(session_id)
        await self.session.aexecute(self._delete_session, [session_id])
        logger.info("training_session_deleted", session_id=str(session_id))

    # ==========================================================================
    # Notifications
    # ==========================================================================

    async def _notify(
        self,
        training: TrainingSession,
        recipient_ids: list[UUID | None],
        newly_assigned: bool,
    ) -> int:
        """Email each recipient once; returns how many sends succeeded."""
        if self.email_service is None or self.employee_service is None:
            return 0
        ids = list(dict.fromkeys(i for i in recipient_ids if i is not None))
        if not ids:
            return 0

        trainer = (
            await self.employee_service.get_employee(training.trainer_id)
            if training.trainer_id
            else None
        )
        trainer_name = trainer.full_name if trainer else "To be announced"
        recipients: list["Employee"] = [
            e
            for e in await asyncio.gather(*(self.employee_service.get_employee(i) for i in ids))
            if e is not None
        ]

        sent = 0
        for recipient in recipients:
            result = await self.email_service.send_training_session(
                to=recipient.email,
                recipient_name=recipient.full_name,
                session_name=training.session_name,
                session_type=training.session_type,
                start=training.start_datetime,
                end=training.end_datetime,
                trainer_name=trainer_name,
                meeting_link=training.meeting_link,
                meeting_platform=training.meeting_platform,
                newly_assigned=newly_assigned,
            )
            if result.success:
                sent += 1
            else:
                logger.warning(
                    "training_session_email_failed",
                    session_id=str(training.id),
                    employee_id=str(recipient.id),
                    error=result.error,
                )
        return sent
