"""Email delivery through the Resend HTTP API."""

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass
class NotificationResult:
    """Result of a notification delivery attempt."""

    success: bool
    channel: str
    error: str | None = None
    response_data: dict | None = None
    response_time_ms: int | None = None
    sent_at: datetime | None = None


@dataclass
class EmailAttachment:
    filename: str
    content: bytes

    def to_payload(self) -> dict:
        return {
            "filename": self.filename,
            "content": base64.b64encode(self.content).decode("ascii"),
        }


@dataclass
class EmailMessage:
    recipient: str
    subject: str
    html: str
    attachments: list[EmailAttachment] = field(default_factory=list)


def _mask(address: str) -> str:
    local, _, domain = address.partition("@")
    return f"{local[:2]}***@{domain}" if domain else "***"


class EmailProvider:
    """
    Sends one email per call.

    Without an API key, messages are only logged when ``log_only`` is set
    (local development); otherwise the send fails.
    """

    channel = "email"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 30.0,
        log_only: bool = False,
    ):
        self.client = client
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self.log_only = log_only

    async def send(self, message: EmailMessage) -> NotificationResult:
        """Deliver ``message``. Never raises; failures come back in the result."""
        if not self.api_key:
            if self.log_only:
                logger.info(
                    "email_notification_dev",
                    recipient=_mask(message.recipient),
                    subject=message.subject,
                    attachments=[a.filename for a in message.attachments],
                )
                return NotificationResult(
                    success=True,
                    channel=self.channel,
                    response_data={"mode": "development", "logged": True},
                    sent_at=datetime.now(UTC),
                )
            return NotificationResult(
                success=False,
                channel=self.channel,
                error="No email API key configured",
            )

        payload: dict = {
            "from": self.sender,
            "to": [message.recipient],
            "subject": message.subject,
            "html": message.html,
        }
        if message.attachments:
            payload["attachments"] = [a.to_payload() for a in message.attachments]

        start_time = datetime.now(UTC)

        try:
            response = await self.client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            logger.error("email_timeout", recipient=_mask(message.recipient))
            return NotificationResult(
                success=False,
                channel=self.channel,
                error="Request timeout",
                response_time_ms=int((datetime.now(UTC) - start_time).total_seconds() * 1000),
            )
        except httpx.HTTPError as e:
            logger.error("email_error", recipient=_mask(message.recipient), error=str(e))
            return NotificationResult(success=False, channel=self.channel, error=str(e))

        sent_at = datetime.now(UTC)
        elapsed_ms = int((sent_at - start_time).total_seconds() * 1000)

        if not response.is_success:
            logger.warning(
                "email_notification_failed",
                recipient=_mask(message.recipient),
                status_code=response.status_code,
            )
            return NotificationResult(
                success=False,
                channel=self.channel,
                error=f"HTTP {response.status_code}: {response.text[:200]}",
                response_time_ms=elapsed_ms,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.info(
            "email_notification_sent",
            recipient=_mask(message.recipient),
            subject=message.subject,
            message_id=data.get("id"),
            elapsed_ms=elapsed_ms,
        )
        return NotificationResult(
            success=True,
            channel=self.channel,
            response_data=data,
            response_time_ms=elapsed_ms,
            sent_at=sent_at,
        )
