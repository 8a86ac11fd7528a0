"""Email service using the Gmail API with a service account.

The service account uses domain-wide delegation to send as the configured
Google Workspace sender (scope ``https://www.googleapis.com/auth/gmail.send``).

Sending never raises to callers: failures are logged and reported through
``SendEmailResponse(success=False, error=...)`` so that a mail outage cannot
fail an enrollment or an employee import.
"""

import asyncio
import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING, Any

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from learnhub.core.logging import get_logger
from learnhub.email.schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from learnhub.email.templates import (
    render_course_assigned,
    render_course_completed,
    render_pre_joining_welcome,
    render_project_submitted,
    render_training_session,
)


if TYPE_CHECKING:
    from datetime import date, datetime


logger = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Sends LearnHub notifications through the Gmail API."""

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "LearnHub",
        app_url: str = "http://localhost:5173",
    ):
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.app_url = app_url.rstrip("/")
        self._service: Any = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> Any:
        """Build the Gmail API client on first use.

        Raises:
            FileNotFoundError: If the credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        ).with_subject(self.sender_address)

        self._service = build(
            "gmail",
            "v1",
            credentials=credentials,
            cache_discovery=False,
        )
        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    @staticmethod
    def _format_address(recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return str(recipient.email)

    def build_message(self, request: SendEmailRequest) -> dict[str, str]:
        """Encode a request as a Gmail API message (``{"raw": base64url}``)."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject
        if request.cc:
            message["Cc"] = ", ".join(self._format_address(r) for r in request.cc)
        if request.reply_to:
            message["Reply-To"] = str(request.reply_to)

        # Plain text first; clients prefer the last alternative.
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw}

    def _send_blocking(self, body: dict[str, str]) -> dict[str, Any]:
        service = self._get_service()
        return service.users().messages().send(userId="me", body=body).execute()

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email; the googleapiclient call runs in a worker thread."""
        recipients = [str(r.email) for r in request.to]
        try:
            result = await asyncio.to_thread(
                self._send_blocking, self.build_message(request)
            )
        except HttpError as e:
            logger.exception(
                "email_send_failed",
                to=recipients,
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=False, error=f"Gmail API error: {e}")
        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )
        except Exception as e:
            logger.exception("email_send_unexpected_error", to=recipients)
            return SendEmailResponse(success=False, error=f"Unexpected error: {e!s}")

        logger.info(
            "email_sent",
            message_id=result.get("id"),
            to=recipients,
            subject=request.subject[:50],
        )
        return SendEmailResponse(
            success=True,
            message_id=result.get("id"),
            thread_id=result.get("threadId"),
        )

    async def send_simple_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
        to_name: str | None = None,
    ) -> SendEmailResponse:
        request = SendEmailRequest(
            to=[EmailRecipient(email=to, name=to_name)],
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
        return await self.send_email(request)

    # ==========================================================================
    # LearnHub notifications
    # ==========================================================================

    async def send_pre_joining_welcome(
        self,
        to: str,
        first_name: str,
        last_name: str | None,
        date_of_joining: "date | None",
    ) -> SendEmailResponse:
        body_html, body_text = render_pre_joining_welcome(
            first_name, date_of_joining, self.app_url
        )
        return await self.send_simple_email(
            to=to,
            subject="Welcome! Getting ready for your first day",
            body_html=body_html,
            body_text=body_text,
            to_name=" ".join(p for p in (first_name, last_name) if p),
        )

    async def send_course_assigned(
        self,
        to: str,
        employee_name: str,
        course_id: str,
        course_name: str,
        completion_rule_text: str,
    ) -> SendEmailResponse:
        body_html, body_text = render_course_assigned(
            employee_name,
            course_name,
            f"{self.app_url}/courses/{course_id}",
            completion_rule_text,
        )
        return await self.send_simple_email(
            to=to,
            subject=f"New course assigned: {course_name}",
            body_html=body_html,
            body_text=body_text,
            to_name=employee_name,
        )

    async def send_course_completed(
        self,
        to: str,
        employee_name: str,
        course_name: str,
        completion_date: "datetime",
        progress_percent: int,
    ) -> SendEmailResponse:
        body_html, body_text = render_course_completed(
            employee_name,
            course_name,
            completion_date,
            progress_percent,
            f"{self.app_url}/my-courses",
        )
        return await self.send_simple_email(
            to=to,
            subject=f"Course completed: {course_name}",
            body_html=body_html,
            body_text=body_text,
            to_name=employee_name,
        )

    async def send_training_session(
        self,
        to: str,
        recipient_name: str,
        session_name: str,
        session_type: str,
        start: "datetime",
        end: "datetime",
        trainer_name: str,
        meeting_link: str,
        meeting_platform: str | None = None,
        newly_assigned: bool = False,
    ) -> SendEmailResponse:
        body_html, body_text = render_training_session(
            recipient_name,
            session_name,
            session_type,
            start,
            end,
            trainer_name,
            meeting_link,
            meeting_platform,
            newly_assigned,
        )
        prefix = "Training Session Assigned" if newly_assigned else "Training Session Scheduled"
        return await self.send_simple_email(
            to=to,
            subject=f"{prefix}: {session_name}",
            body_html=body_html,
            body_text=body_text,
            to_name=recipient_name,
        )

    async def send_project_submitted(
        self,
        to: str,
        reviewer_name: str,
        trainee_name: str,
        project_id: str,
        project_name: str,
    ) -> SendEmailResponse:
        body_html, body_text = render_project_submitted(
            reviewer_name,
            trainee_name,
            project_name,
            f"{self.app_url}/projects/{project_id}",
        )
        return await self.send_simple_email(
            to=to,
            subject=f"Project Submission: {project_name} by {trainee_name}",
            body_html=body_html,
            body_text=body_text,
            to_name=reviewer_name,
        )
