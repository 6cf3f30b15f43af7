"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import re
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

# Request metrics
REQUEST_COUNT = Counter(
    "audit_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "audit_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ERROR_COUNT = Counter(
    "audit_errors_total",
    "Total unhandled application errors",
    ["error_type", "endpoint"],
)

# Pipeline metrics
RUNS_TOTAL = Counter(
    "audit_runs_total",
    "Audit runs by outcome",
    ["outcome"],
)

RUNS_IN_PROGRESS = Gauge(
    "audit_runs_in_progress",
    "Audit runs currently executing",
)

STAGE_DURATION = Histogram(
    "audit_stage_duration_seconds",
    "Time spent in each pipeline stage",
    ["stage"],
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0, 300.0],
)

PERFORMANCE_FALLBACKS = Counter(
    "performance_fallbacks_total",
    "Runs that used the degraded performance result",
)

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    metrics: bytes = generate_latest()
    return metrics


def get_metrics_content_type() -> str:
    content_type: str = CONTENT_TYPE_LATEST
    return content_type


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    EXCLUDE_PATHS = {"/metrics", "/api/health", "/api/ready", "/favicon.ico"}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in self.EXCLUDE_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = _UUID_RE.sub("{id}", request.url.path)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            ERROR_COUNT.labels(error_type=type(e).__name__, endpoint=endpoint).inc()
            raise

        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()
        REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(
            time.perf_counter() - start_time
        )
        return response


def record_run_started() -> None:
    RUNS_IN_PROGRESS.inc()


def record_run_finished(outcome: str) -> None:
    """Record a finished run; ``outcome`` is ``completed`` or ``failed``."""
    RUNS_TOTAL.labels(outcome=outcome).inc()
    RUNS_IN_PROGRESS.dec()


def record_stage_duration(stage: str, seconds: float) -> None:
    STAGE_DURATION.labels(stage=stage).observe(seconds)


def record_performance_fallback() -> None:
    PERFORMANCE_FALLBACKS.inc()
