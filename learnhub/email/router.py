"""Email API endpoints.

Provides endpoints for:
- Checking email service status
- Sending emails (admin only)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from learnhub.auth.dependencies import AdminUser, HRUser
from learnhub.config import get_settings
from learnhub.core.logging import get_logger
from learnhub.email.schemas import (
    EmailStatusResponse,
    SendEmailRequest,
    SendEmailResponse,
)
from learnhub.email.service import EmailService


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/email", tags=["email"])

admin_router = APIRouter(prefix="/v1/admin/email", tags=["admin", "email"])


def get_optional_email_service(request: Request) -> EmailService | None:
    """EmailService from app state, or None when mail is disabled."""
    return getattr(request.app.state, "email_service", None)


def get_email_service(request: Request) -> EmailService:
    """Get EmailService from app state."""
    service = get_optional_email_service(request)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Email service not available",
        )
    return service


@router.get(
    "/status",
    response_model=EmailStatusResponse,
    summary="Get email service status",
)
async def get_email_status(_: HRUser) -> EmailStatusResponse:
    settings = get_settings()

    return EmailStatusResponse(
        enabled=settings.email_enabled,
        configured=settings.email_configured,
        sender_address=settings.email_sender_address
        if settings.email_configured
        else None,
    )


@admin_router.post(
    "/send",
    response_model=SendEmailResponse,
    summary="Send email (admin only)",
)
async def send_email(
    request: SendEmailRequest,
    admin: AdminUser,
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> SendEmailResponse:
    """Send an arbitrary email via the Gmail API."""
    logger.info(
        "admin_email_send_requested",
        admin_id=str(admin.id),
        to=[str(r.email) for r in request.to],
        subject=request.subject[:50],
    )

    return await email_service.send_email(request)
