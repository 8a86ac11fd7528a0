"""Email module for sending notifications via the Gmail API."""

from learnhub.email.schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from learnhub.email.service import EmailService


__all__ = [
    "EmailRecipient",
    "EmailService",
    "SendEmailRequest",
    "SendEmailResponse",
]
