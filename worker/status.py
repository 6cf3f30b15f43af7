"""Best-effort persistence of audit status and results."""

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.models.audit import AuditRecord, AuditStatus
from api.schemas.audit import AuditRequest
from worker.models import PerformanceResult, PresenceResult, ReportNarrative, ScrapedData

if TYPE_CHECKING:
    from worker.alerts.notifier import EmailReceipt

logger = structlog.get_logger(__name__)


class StatusStore:
    """
    Writes audit lifecycle changes to the ``audits`` table.

    Every write swallows and logs its own failure and reports success as a
    bool. A run never fails because its status row could not be written.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def create(self, request: AuditRequest) -> uuid.UUID | None:
        """Insert a new record in ``received`` state."""
        try:
            async with self.session_maker() as db:
                audit_id = uuid.uuid4()
                record = AuditRecord(
                    id=audit_id,
                    name=request.name,
                    email=request.email,
                    phone=request.phone,
                    website=request.website,
                    source=request.source.value,
                    status=AuditStatus.RECEIVED.value,
                )
                db.add(record)
                await db.commit()
                logger.info("audit_record_created", audit_id=str(audit_id))
                return audit_id
        except Exception as e:
            logger.error("audit_record_create_failed", website=request.website, error=str(e))
            return None

    async def _update(self, audit_id: uuid.UUID | None, values: dict[str, Any], event: str) -> bool:
        if audit_id is None:
            logger.warning(f"{event}_skipped", reason="no_audit_id")
            return False

        try:
            async with self.session_maker() as db:
                await db.execute(
                    update(AuditRecord)
                    .where(AuditRecord.id == audit_id)
                    .values(updated_at=datetime.now(UTC), **values)
                )
                await db.commit()
        except Exception as e:
            logger.error(f"{event}_failed", audit_id=str(audit_id), error=str(e))
            return False

        logger.info(event, audit_id=str(audit_id), status=values.get("status"))
        return True

    async def update_status(
        self,
        audit_id: uuid.UUID | None,
        status: AuditStatus,
        error_message: str | None = None,
    ) -> bool:
        values: dict[str, Any] = {"status": status.value}
        if error_message is not None:
            values["error_message"] = error_message
        return await self._update(audit_id, values, "status_updated")

    async def save_results(
        self,
        audit_id: uuid.UUID | None,
        scraped: ScrapedData,
        performance: PerformanceResult,
        presence: PresenceResult,
        narrative: ReportNarrative,
    ) -> bool:
        """Persist scores, presence flags and detail blobs; moves to ``generating_pdf``."""
        values = {
            "status": AuditStatus.GENERATING_PDF.value,
            "performance_score": performance.performance_score,
            "accessibility_score": performance.accessibility_score,
            "seo_score": performance.seo_score,
            "best_practices_score": performance.best_practices_score,
            "load_time_ms": scraped.load_time_ms,
            "ai_chatgpt": presence.found_in_chatgpt,
            "ai_gemini": presence.found_in_gemini,
            "ai_perplexity": presence.found_in_perplexity,
            "pagespeed_details": performance.to_details_dict(),
            "action_plan": [item.model_dump() for item in narrative.action_plan],
            "scraped_meta": scraped.to_meta_dict(),
        }
        return await self._update(audit_id, values, "results_saved")

    async def save_email_timestamps(
        self,
        audit_id: uuid.UUID | None,
        receipt: "EmailReceipt",
    ) -> bool:
        """Record delivery times and mark the audit ``completed``."""
        values = {
            "status": AuditStatus.COMPLETED.value,
            "user_email_sent_at": receipt.user_email_sent_at,
            "team_email_sent_at": receipt.team_email_sent_at,
            "completed_at": datetime.now(UTC),
        }
        return await self._update(audit_id, values, "email_timestamps_saved")

    async def get(self, audit_id: uuid.UUID) -> AuditRecord | None:
        """Load a record. Errors propagate to the caller."""
        async with self.session_maker() as db:
            result = await db.execute(select(AuditRecord).where(AuditRecord.id == audit_id))
            return result.scalar_one_or_none()
