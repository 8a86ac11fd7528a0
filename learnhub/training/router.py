"""Training session API endpoints.

HR schedules sessions and manages attendees; trainers and attendees read the
sessions they take part in.
"""

import asyncio
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learnhub.auth.dependencies import CurrentUser, HRUser, ManagerUser
from learnhub.auth.permissions import UserRole, has_permission
from learnhub.training.dependencies import (
    TrainingErrors,
    TrainingServiceDep,
    handle_training_error,
)
from learnhub.training.models import SessionAudience, SessionStatus
from learnhub.training.schemas import (
    CompleteSessionRequest,
    CreateSessionRequest,
    SessionListResponse,
    SessionResponse,
    UpdateAttendeesRequest,
    UpdateAttendeesResponse,
)


router = APIRouter(prefix="/v1/training-sessions", tags=["training"])


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule training session",
)
async def create_session(
    data: CreateSessionRequest,
    training_service: TrainingServiceDep,
    user: HRUser,
) -> SessionResponse:
    try:
        training = await training_service.create_session(data, user.id)
    except TrainingErrors as e:
        raise handle_training_error(e) from e
    return await training_service.to_response(training)


@router.get("", response_model=SessionListResponse, summary="List training sessions")
async def list_sessions(
    training_service: TrainingServiceDep,
    _: ManagerUser,
    status_filter: SessionStatus | None = None,
    audience: SessionAudience | None = None,
    upcoming_only: bool = False,
    limit: int = 100,
) -> SessionListResponse:
    """List sessions by start time, optionally only pre- or post-joining ones."""
    sessions = await training_service.list_sessions(
        status=status_filter, upcoming_only=upcoming_only, limit=limit
    )
    items = list(await asyncio.gather(*(training_service.to_response(s) for s in sessions)))
    if audience is not None:
        items = [i for i in items if i.audience == audience]
    return SessionListResponse(items=items, total=len(items))


@router.get("/my", response_model=SessionListResponse, summary="My training sessions")
async def my_sessions(
    training_service: TrainingServiceDep,
    user: CurrentUser,
) -> SessionListResponse:
    sessions = await training_service.list_employee_sessions(user.id)
    items = [SessionResponse.from_entity(s) for s in sessions]
    return SessionListResponse(items=items, total=len(items))


@router.get("/{session_id}", response_model=SessionResponse, summary="Get training session")
async def get_session(
    session_id: UUID,
    training_service: TrainingServiceDep,
    user: CurrentUser,
) -> SessionResponse:
    try:
        training = await training_service.require_session(session_id)
    except TrainingErrors as e:
        raise handle_training_error(e) from e
    if not training.involves(user.id) and not has_permission(user.role, UserRole.MANAGER):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not part of this session",
        )
    return await training_service.to_response(training)


@router.put(
    "/{session_id}/attendees",
    response_model=UpdateAttendeesResponse,
    summary="Set session attendees",
)
async def update_attendees(
    session_id: UUID,
    data: UpdateAttendeesRequest,
    training_service: TrainingServiceDep,
    _: HRUser,
) -> UpdateAttendeesResponse:
    try:
        return await training_service.update_attendees(
            session_id, data.attendee_ids, notify=data.notify
        )
    except TrainingErrors as e:
        raise handle_training_error(e) from e


@router.post(
    "/{session_id}/complete",
    response_model=SessionResponse,
    summary="Mark session completed",
)
async def complete_session(
    session_id: UUID,
    data: CompleteSessionRequest,
    training_service: TrainingServiceDep,
    _: HRUser,
) -> SessionResponse:
    try:
        training = await training_service.complete_session(session_id, data)
    except TrainingErrors as e:
        raise handle_training_error(e) from e
    return await training_service.to_response(training)


@router.post(
    "/{session_id}/cancel",
    response_model=SessionResponse,
    summary="Cancel session",
)
async def cancel_session(
    session_id: UUID,
    training_service: TrainingServiceDep,
    _: HRUser,
) -> SessionResponse:
    try:
        training = await training_service.cancel_session(session_id)
    except TrainingErrors as e:
        raise handle_training_error(e) from e
    return await training_service.to_response(training)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete session",
)
async def delete_session(
    session_id: UUID,
    training_service: TrainingServiceDep,
    _: HRUser,
) -> None:
    try:
        await training_service.delete_session(session_id)
    except TrainingErrors as e:
        raise handle_training_error(e) from e
