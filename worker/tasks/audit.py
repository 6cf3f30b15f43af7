"""Audit pipeline orchestration.

One audit run collects the site, fans out to PageSpeed and the AI presence
check, synthesizes the narrative, renders the PDF and emails it, recording
each status transition on the audit record. Runs execute as detached asyncio
tasks owned by the pipeline, so the HTTP request that triggered them can
return immediately.
"""

import asyncio
import time
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.config import Settings
from api.logging import bind_audit_context
from api.metrics import (
    record_performance_fallback,
    record_run_finished,
    record_run_started,
    record_stage_duration,
)
from api.models.audit import AuditStatus, can_transition
from api.schemas.audit import AuditRequest
from api.sentry import capture_exception
from worker.alerts.notifier import EmailReceipt, Notifier
from worker.alerts.providers import EmailProvider
from worker.crawler.collector import SiteCollector
from worker.crawler.performance import PerformanceClient
from worker.models import (
    AuditData,
    PerformanceResult,
    PresenceResult,
    ReportNarrative,
    ScrapedData,
)
from worker.observation.presence import PresenceChecker
from worker.observation.providers import LLMClient, ProviderConfig
from worker.reports.renderer import DocumentRenderer
from worker.reports.synthesizer import ReportSynthesizer
from worker.status import StatusStore

logger = structlog.get_logger(__name__)


class InvalidTransitionError(Exception):
    """A run tried to move to a status that does not follow its current one."""

    def __init__(self, current: AuditStatus, target: AuditStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move audit from {current.value} to {target.value}")


@dataclass
class AuditHandle:
    """What ``submit`` hands back: the record id (if saved) and the running task."""

    audit_id: uuid.UUID | None
    task: asyncio.Task[None]


class AuditRun:
    """Tracks the status of one run and writes every transition through the store."""

    def __init__(self, audit_id: uuid.UUID | None, store: StatusStore):
        self.audit_id = audit_id
        self.store = store
        self.status = AuditStatus.RECEIVED

    def _move(self, target: AuditStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransitionError(self.status, target)
        self.status = target

    async def advance(self, target: AuditStatus, error_message: str | None = None) -> bool:
        self._move(target)
        return await self.store.update_status(self.audit_id, target, error_message)

    async def record_results(
        self,
        scraped: ScrapedData,
        performance: PerformanceResult,
        presence: PresenceResult,
        narrative: ReportNarrative,
    ) -> bool:
        """Persist results and move to ``generating_pdf`` in one write."""
        self._move(AuditStatus.GENERATING_PDF)
        return await self.store.save_results(
            self.audit_id, scraped, performance, presence, narrative
        )

    async def complete(self, receipt: EmailReceipt) -> bool:
        self._move(AuditStatus.COMPLETED)
        return await self.store.save_email_timestamps(self.audit_id, receipt)

    async def fail(self, error_message: str) -> bool:
        if self.status.is_terminal:
            logger.warning("audit_fail_ignored", status=self.status.value)
            return False
        return await self.advance(AuditStatus.FAILED, error_message)


class AuditPipeline:
    """Runs audits in the background. Construct once per process."""

    def __init__(
        self,
        store: StatusStore,
        collector: SiteCollector,
        performance: PerformanceClient,
        presence: PresenceChecker,
        synthesizer: ReportSynthesizer,
        renderer: DocumentRenderer,
        notifier: Notifier,
    ):
        self.store = store
        self.collector = collector
        self.performance = performance
        self.presence = presence
        self.synthesizer = synthesizer
        self.renderer = renderer
        self.notifier = notifier
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def active_runs(self) -> int:
        return len(self._tasks)

    async def submit(self, request: AuditRequest) -> AuditHandle:
        """
        Create the audit record and start the run without waiting for it.

        The record write is best-effort: the run starts even if it failed,
        and the returned ``audit_id`` is then ``None``.
        """
        audit_id = await self.store.create(request)
        task = asyncio.create_task(
            self.run(request, audit_id),
            name=f"audit-{audit_id or 'unsaved'}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return AuditHandle(audit_id=audit_id, task=task)

    async def run(self, request: AuditRequest, audit_id: uuid.UUID | None) -> None:
        """Execute one audit end-to-end. Failures are recorded and alerted, never raised."""
        bind_audit_context(str(audit_id) if audit_id else None, request.website)
        run = AuditRun(audit_id, self.store)
        started = time.perf_counter()
        outcome = "cancelled"

        record_run_started()
        logger.info("audit_started", source=request.source.value)

        try:
            await self._execute(request, run)
            outcome = "completed"
            logger.info(
                "audit_completed",
                duration_seconds=round(time.perf_counter() - started, 2),
            )
        except Exception as e:
            outcome = "failed"
            error_text = traceback.format_exc()
            error_message = f"{type(e).__name__}: {e}"
            failed_at = run.status

            logger.exception("audit_failed", status=failed_at.value, error=error_message)
            await run.fail(error_message)
            capture_exception(e, stage=failed_at.value)
            await self._send_failure_alert(request, error_text)
        finally:
            record_run_finished(outcome)

    async def _execute(self, request: AuditRequest, run: AuditRun) -> None:
        await run.advance(AuditStatus.SCRAPING)
        with self._stage("scraping"):
            scraped = await self.collector.collect(request.website)

        await run.advance(AuditStatus.ANALYZING)
        with self._stage("analyzing"):
            performance, presence = await self._gather_metrics(request, scraped)
            narrative = await self.synthesizer.synthesize(scraped, performance, presence)

        await run.record_results(scraped, performance, presence, narrative)
        with self._stage("generating_pdf"):
            pdf = await self.renderer.render(
                AuditData(
                    request=request,
                    scraped=scraped,
                    performance=performance,
                    presence=presence,
                    narrative=narrative,
                )
            )

        await run.advance(AuditStatus.SENDING_EMAIL)
        with self._stage("sending_email"):
            receipt = await self.notifier.send_audit_emails(request, pdf, narrative.action_plan)

        await run.complete(receipt)

    async def _gather_metrics(
        self, request: AuditRequest, scraped: ScrapedData
    ) -> tuple[PerformanceResult, PresenceResult]:
        """
        Run PageSpeed and the presence check concurrently.

        A PageSpeed failure degrades to zeroed scores; a presence failure is
        re-raised once both legs have settled.
        """
        business_name = scraped.title or request.domain
        performance, presence = await asyncio.gather(
            self.performance.fetch(request.website),
            self.presence.check(business_name, request.website),
            return_exceptions=True,
        )

        if isinstance(presence, BaseException):
            raise presence

        if isinstance(performance, Exception):
            logger.warning(
                "performance_fallback",
                error=f"{type(performance).__name__}: {performance}",
            )
            record_performance_fallback()
            performance = PerformanceResult.degraded()
        elif isinstance(performance, BaseException):
            raise performance

        return performance, presence

    async def _send_failure_alert(self, request: AuditRequest, error_text: str) -> None:
        try:
            await self.notifier.send_failure_alert(request, error_text)
        except Exception as e:
            logger.error("failure_alert_failed", error=str(e))

    @contextmanager
    def _stage(self, stage: str) -> Iterator[None]:
        started = time.perf_counter()
        logger.info("audit_stage_started", stage=stage)
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            record_stage_duration(stage, elapsed)
            logger.info("audit_stage_finished", stage=stage, duration_seconds=round(elapsed, 2))

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for in-flight runs.

        Runs still going after ``timeout`` seconds are cancelled.
        """
        if not self._tasks:
            return

        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("audit_runs_abandoned", count=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


def build_pipeline(
    settings: Settings,
    client: httpx.AsyncClient,
    session_maker: async_sessionmaker[AsyncSession],
) -> AuditPipeline:
    """Wire the pipeline's collaborators from settings and shared clients."""
    llm = LLMClient(
        client,
        ProviderConfig(
            api_key=settings.openrouter_api_key or "",
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            timeout_seconds=settings.llm_timeout_seconds,
            app_name=settings.agency_name,
        ),
    )
    email = EmailProvider(
        client,
        api_key=settings.resend_api_key,
        sender=settings.email_sender,
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout_seconds,
        log_only=settings.env == "development",
    )

    return AuditPipeline(
        store=StatusStore(session_maker),
        collector=SiteCollector(
            timeout_ms=settings.browser_timeout_ms,
            desktop_viewport=settings.desktop_viewport,
            mobile_viewport=settings.mobile_viewport,
        ),
        performance=PerformanceClient(
            client,
            api_url=settings.pagespeed_api_url,
            api_key=settings.pagespeed_api_key,
            timeout=settings.pagespeed_timeout_seconds,
        ),
        presence=PresenceChecker(
            llm,
            max_tokens=settings.llm_presence_max_tokens,
            language=settings.report_language,
        ),
        synthesizer=ReportSynthesizer(
            llm,
            max_tokens=settings.llm_max_tokens,
            language=settings.report_language,
            agency_name=settings.agency_name,
        ),
        renderer=DocumentRenderer(
            timeout_ms=settings.browser_timeout_ms,
            agency_name=settings.agency_name,
            contact_url=settings.contact_url,
        ),
        notifier=Notifier(
            email,
            team_email=settings.team_email,
            agency_name=settings.agency_name,
            contact_url=settings.contact_url,
        ),
    )
