"""Audit delivery and failure alert emails."""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from api.exceptions import NotificationError
from api.schemas.audit import AuditRequest
from worker.alerts.providers import EmailAttachment, EmailMessage, EmailProvider, NotificationResult
from worker.models import ActionItem
from worker.reports.templating import render_template

logger = structlog.get_logger(__name__)

HIGHLIGHT_COUNT = 3


@dataclass
class EmailReceipt:
    """When each of the two delivery emails went out."""

    user_email_sent_at: datetime
    team_email_sent_at: datetime


def build_highlights(action_plan: list[ActionItem], limit: int = HIGHLIGHT_COUNT) -> list[str]:
    """``"<title> (<impact label>)"`` for the first ``limit`` action items."""
    return [f"{item.title} ({item.impact_label})" for item in action_plan[:limit]]


def report_filename(request: AuditRequest) -> str:
    return f"audit-report-{request.domain}.pdf"


class Notifier:
    """Composes and sends the audit emails."""

    def __init__(
        self,
        provider: EmailProvider,
        team_email: str,
        agency_name: str = "Digital Audit",
        contact_url: str = "",
    ):
        self.provider = provider
        self.team_email = team_email
        self.agency_name = agency_name
        self.contact_url = contact_url

    async def _deliver(self, message: EmailMessage, kind: str) -> NotificationResult:
        result = await self.provider.send(message)
        if not result.success:
            raise NotificationError(f"{kind} email to {message.recipient} failed: {result.error}")
        return result

    async def send_audit_emails(
        self,
        request: AuditRequest,
        pdf: bytes,
        action_plan: list[ActionItem],
    ) -> EmailReceipt:
        """
        Send the report to the requester, then the lead summary to the team.

        Both carry the PDF. The team email is not attempted if the first
        send fails.

        Raises:
            NotificationError: either send failed
        """
        attachment = EmailAttachment(filename=report_filename(request), content=pdf)

        user_result = await self._deliver(
            EmailMessage(
                recipient=request.email,
                subject=f"Your digital audit report is ready - {self.agency_name}",
                html=render_template(
                    "user_email.html.j2",
                    name=request.name,
                    domain=request.domain,
                    highlights=build_highlights(action_plan),
                    agency_name=self.agency_name,
                    contact_url=self.contact_url,
                ),
                attachments=[attachment],
            ),
            "user",
        )

        team_result = await self._deliver(
            EmailMessage(
                recipient=self.team_email,
                subject=f"New lead: {request.name} - {request.domain}",
                html=render_template("team_email.html.j2", request=request),
                attachments=[attachment],
            ),
            "team",
        )

        logger.info("audit_emails_sent", website=request.website)
        return EmailReceipt(
            user_email_sent_at=user_result.sent_at or datetime.now(UTC),
            team_email_sent_at=team_result.sent_at or datetime.now(UTC),
        )

    async def send_failure_alert(self, request: AuditRequest, error_text: str) -> None:
        """
        Tell the team an audit failed. No attachment.

        Raises:
            NotificationError: the alert could not be sent
        """
        await self._deliver(
            EmailMessage(
                recipient=self.team_email,
                subject=f"[ERROR] Audit pipeline failed for {request.website}",
                html=render_template(
                    "failure_alert.html.j2", request=request, error_text=error_text
                ),
            ),
            "failure alert",
        )
        logger.info("failure_alert_sent", website=request.website)
