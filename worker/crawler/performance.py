"""PageSpeed Insights client and Core Web Vitals rating.

Runs a mobile Lighthouse audit through the PageSpeed Insights v5 API and
reduces the response to category scores, three Core Web Vitals and the
top improvement opportunities.
"""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from api.config import CLS_THRESHOLDS, INP_THRESHOLDS_MS, LCP_THRESHOLDS_MS
from api.exceptions import PerformanceError
from worker.models import Opportunity, PerformanceResult, Rating, WebVital

logger = structlog.get_logger(__name__)

CATEGORIES = ("performance", "accessibility", "seo", "best-practices")

# Lighthouse audits surfaced as opportunities, in display order
OPPORTUNITY_AUDITS = (
    "render-blocking-resources",
    "unused-css-rules",
    "unused-javascript",
    "modern-image-formats",
    "offscreen-images",
    "unminified-css",
    "unminified-javascript",
    "efficient-animated-content",
    "uses-responsive-images",
)
MAX_OPPORTUNITIES = 5


def _rate(value: float, thresholds: tuple[float, float]) -> Rating:
    good_max, needs_improvement_max = thresholds
    if value <= good_max:
        return "good"
    if value <= needs_improvement_max:
        return "needs-improvement"
    return "poor"


def rate_lcp(ms: float) -> Rating:
    return _rate(ms, LCP_THRESHOLDS_MS)


def rate_inp(ms: float) -> Rating:
    return _rate(ms, INP_THRESHOLDS_MS)


def rate_cls(value: float) -> Rating:
    return _rate(value, CLS_THRESHOLDS)


class _Category(BaseModel):
    score: float | None = None


class _Audit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    description: str = ""
    score: float | None = None
    numeric_value: float | None = Field(default=None, alias="numericValue")


class _LighthouseResult(BaseModel):
    categories: dict[str, _Category] = Field(default_factory=dict)
    audits: dict[str, _Audit] = Field(default_factory=dict)


class _PageSpeedResponse(BaseModel):
    lighthouse_result: _LighthouseResult = Field(alias="lighthouseResult")


def parse_pagespeed_response(data: Any) -> PerformanceResult:
    """
    Reduce a raw PageSpeed v5 response to a PerformanceResult.

    Missing categories score 0, missing vitals read as 0.

    Raises:
        PerformanceError: the response has no usable ``lighthouseResult``
    """
    try:
        lighthouse = _PageSpeedResponse.model_validate(data).lighthouse_result
    except PydanticValidationError as e:
        raise PerformanceError(f"Unexpected PageSpeed response: {e.error_count()} errors") from e

    def score(category: str) -> int:
        cat = lighthouse.categories.get(category)
        return round((cat.score or 0) * 100) if cat else 0

    def numeric(audit_id: str) -> float:
        audit = lighthouse.audits.get(audit_id)
        return (audit.numeric_value or 0) if audit else 0

    lcp_ms = numeric("largest-contentful-paint")
    inp_ms = numeric("interaction-to-next-paint")
    cls_value = numeric("cumulative-layout-shift")

    opportunities = []
    for audit_id in OPPORTUNITY_AUDITS:
        audit = lighthouse.audits.get(audit_id)
        if audit and audit.score is not None and audit.score < 1:
            opportunities.append(
                Opportunity(title=audit.title or audit_id, description=audit.description)
            )

    return PerformanceResult(
        performance_score=score("performance"),
        accessibility_score=score("accessibility"),
        seo_score=score("seo"),
        best_practices_score=score("best-practices"),
        lcp=WebVital(value=lcp_ms, unit="ms", rating=rate_lcp(lcp_ms)),
        inp=WebVital(value=inp_ms, unit="ms", rating=rate_inp(inp_ms)),
        cls=WebVital(value=cls_value, unit="", rating=rate_cls(cls_value)),
        opportunities=opportunities[:MAX_OPPORTUNITIES],
    )


class PerformanceClient:
    """Fetches PageSpeed Insights results over a shared HTTP client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed",
        api_key: str | None = None,
        timeout: float = 90.0,
    ):
        self.client = client
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def build_params(self, url: str) -> list[tuple[str, str]]:
        params = [("url", url)]
        params.extend(("category", category) for category in CATEGORIES)
        params.append(("strategy", "mobile"))
        if self.api_key:
            params.append(("key", self.api_key))
        return params

    async def fetch(self, url: str) -> PerformanceResult:
        """
        Run a mobile Lighthouse audit for ``url``.

        Raises:
            PerformanceError: HTTP failure, timeout or malformed response
        """
        try:
            response = await self.client.get(
                self.api_url,
                params=self.build_params(url),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise PerformanceError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise PerformanceError(f"Request failed: {e}") from e

        if not response.is_success:
            raise PerformanceError(
                f"PageSpeed API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PerformanceError("PageSpeed API returned invalid JSON") from e

        result = parse_pagespeed_response(data)
        logger.info(
            "pagespeed_fetched",
            url=url,
            performance=result.performance_score,
            lcp_ms=result.lcp.value,
            opportunities=len(result.opportunities),
        )
        return result
