"""Tests for the audit status state machine and background task ownership."""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.exceptions import LLMError
from api.models.audit import PIPELINE_ORDER, AuditStatus, can_transition
from api.schemas.audit import AuditRequest
from worker.models import PerformanceResult, PresenceResult, ScrapedData
from worker.tasks.audit import AuditPipeline, AuditRun, InvalidTransitionError


def _store() -> MagicMock:
    store = MagicMock()
    store.create = AsyncMock(return_value=uuid.uuid4())
    store.update_status = AsyncMock(return_value=True)
    store.save_results = AsyncMock(return_value=True)
    store.save_email_timestamps = AsyncMock(return_value=True)
    return store


def _pipeline(store: MagicMock) -> AuditPipeline:
    return AuditPipeline(
        store=store,
        collector=MagicMock(),
        performance=MagicMock(),
        presence=MagicMock(),
        synthesizer=MagicMock(),
        renderer=MagicMock(),
        notifier=MagicMock(),
    )


class TestCanTransition:
    def test_happy_path_steps(self) -> None:
        for current, target in zip(PIPELINE_ORDER, PIPELINE_ORDER[1:]):
            assert can_transition(current, target)

    def test_no_skipping_or_going_back(self) -> None:
        assert not can_transition(AuditStatus.RECEIVED, AuditStatus.ANALYZING)
        assert not can_transition(AuditStatus.ANALYZING, AuditStatus.SCRAPING)

    def test_failed_from_any_active_state(self) -> None:
        for status in PIPELINE_ORDER[:-1]:
            assert can_transition(status, AuditStatus.FAILED)

    def test_terminal_states_are_final(self) -> None:
        for target in AuditStatus:
            assert not can_transition(AuditStatus.COMPLETED, target)
            assert not can_transition(AuditStatus.FAILED, target)


class TestAuditRun:
    async def test_advance_writes_through_store(self) -> None:
        store = _store()
        audit_id = uuid.uuid4()
        run = AuditRun(audit_id, store)

        await run.advance(AuditStatus.SCRAPING)

        assert run.status == AuditStatus.SCRAPING
        store.update_status.assert_awaited_once_with(audit_id, AuditStatus.SCRAPING, None)

    async def test_illegal_step_raises(self) -> None:
        run = AuditRun(uuid.uuid4(), _store())

        with pytest.raises(InvalidTransitionError):
            await run.advance(AuditStatus.SENDING_EMAIL)

    async def test_store_failure_does_not_stop_the_run(self) -> None:
        store = _store()
        store.update_status = AsyncMock(return_value=False)
        run = AuditRun(None, store)

        await run.advance(AuditStatus.SCRAPING)

        assert run.status == AuditStatus.SCRAPING

    async def test_fail_after_terminal_is_ignored(self) -> None:
        store = _store()
        run = AuditRun(uuid.uuid4(), store)
        run.status = AuditStatus.COMPLETED

        assert await run.fail("late error") is False
        store.update_status.assert_not_awaited()


class TestAuditPipelineTasks:
    async def test_submit_returns_before_run_finishes(self, audit_request: AuditRequest) -> None:
        store = _store()
        pipeline = _pipeline(store)
        gate = asyncio.Event()

        async def slow_run(request: AuditRequest, audit_id: uuid.UUID | None) -> None:
            await gate.wait()

        pipeline.run = slow_run  # type: ignore[method-assign]

        handle = await pipeline.submit(audit_request)

        assert handle.audit_id == store.create.return_value
        assert not handle.task.done()
        assert pipeline.active_runs == 1

        gate.set()
        await handle.task
        await asyncio.sleep(0)
        assert pipeline.active_runs == 0

    async def test_submit_without_record(self, audit_request: AuditRequest) -> None:
        store = _store()
        store.create = AsyncMock(return_value=None)
        pipeline = _pipeline(store)
        pipeline.run = AsyncMock()  # type: ignore[method-assign]

        handle = await pipeline.submit(audit_request)
        await handle.task

        assert handle.audit_id is None
        assert handle.task.get_name() == "audit-unsaved"
        pipeline.run.assert_awaited_once_with(audit_request, None)

    async def test_drain_cancels_stragglers(self, audit_request: AuditRequest) -> None:
        pipeline = _pipeline(_store())

        async def forever(request: AuditRequest, audit_id: uuid.UUID | None) -> None:
            await asyncio.Event().wait()

        pipeline.run = forever  # type: ignore[method-assign]
        handle = await pipeline.submit(audit_request)

        await pipeline.drain(timeout=0.01)

        assert handle.task.cancelled()

    async def test_drain_with_nothing_running(self) -> None:
        await _pipeline(_store()).drain(timeout=0.01)


class TestGatherMetrics:
    async def test_legs_run_concurrently(
        self,
        audit_request: AuditRequest,
        scraped: ScrapedData,
        performance: PerformanceResult,
        presence: PresenceResult,
    ) -> None:
        """Each leg waits on the other, so only a concurrent launch can finish."""
        pipeline = _pipeline(_store())
        performance_started = asyncio.Event()
        presence_started = asyncio.Event()

        async def fetch(url: str) -> PerformanceResult:
            performance_started.set()
            await presence_started.wait()
            return performance

        async def check(business_name: str, url: str) -> PresenceResult:
            presence_started.set()
            await performance_started.wait()
            return presence

        pipeline.performance.fetch = fetch
        pipeline.presence.check = check

        result = await asyncio.wait_for(
            pipeline._gather_metrics(audit_request, scraped), timeout=1
        )

        assert result == (performance, presence)

    async def test_presence_failure_waits_for_performance(
        self,
        audit_request: AuditRequest,
        scraped: ScrapedData,
        performance: PerformanceResult,
    ) -> None:
        pipeline = _pipeline(_store())
        performance_done = asyncio.Event()

        async def fetch(url: str) -> PerformanceResult:
            await asyncio.sleep(0.01)
            performance_done.set()
            return performance

        pipeline.performance.fetch = fetch
        pipeline.presence.check = AsyncMock(side_effect=LLMError("HTTP 503: overloaded"))

        with pytest.raises(LLMError):
            await pipeline._gather_metrics(audit_request, scraped)

        assert performance_done.is_set()
