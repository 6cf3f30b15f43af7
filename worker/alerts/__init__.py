"""Email delivery for finished and failed audits."""

from worker.alerts.notifier import EmailReceipt, Notifier, build_highlights
from worker.alerts.providers import (
    EmailAttachment,
    EmailMessage,
    EmailProvider,
    NotificationResult,
)

__all__ = [
    "EmailAttachment",
    "EmailMessage",
    "EmailProvider",
    "EmailReceipt",
    "NotificationResult",
    "Notifier",
    "build_highlights",
]
