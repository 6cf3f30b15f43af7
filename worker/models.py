"""Data carried between audit pipeline stages."""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.schemas.audit import AuditRequest

Rating = Literal["good", "needs-improvement", "poor"]
Impact = Literal["high", "medium", "low"]

IMPACT_LABELS: dict[str, str] = {
    "high": "High priority",
    "medium": "Medium priority",
    "low": "Low priority",
}


@dataclass(frozen=True)
class Heading:
    """A heading element on the page."""

    level: int
    text: str

    def to_dict(self) -> dict:
        return {"level": self.level, "text": self.text}


@dataclass(frozen=True)
class ScrapedData:
    """Signals collected from one rendered page load."""

    url: str
    title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""
    og_tags: dict[str, str] = field(default_factory=dict)
    headings: list[Heading] = field(default_factory=list)
    internal_link_count: int = 0
    external_link_count: int = 0
    image_count: int = 0
    images_with_alt: int = 0
    has_ssl: bool = False
    language: str = ""
    direction: str = ""
    has_viewport_meta: bool = False
    has_schema_org: bool = False
    load_time_ms: int = 0
    screenshot_desktop: bytes = field(default=b"", repr=False)
    screenshot_mobile: bytes = field(default=b"", repr=False)

    def to_prompt_dict(self) -> dict:
        """Every field except the screenshot buffers."""
        return {
            "url": self.url,
            "title": self.title,
            "meta_description": self.meta_description,
            "meta_keywords": self.meta_keywords,
            "og_tags": dict(self.og_tags),
            "headings": [h.to_dict() for h in self.headings],
            "internal_link_count": self.internal_link_count,
            "external_link_count": self.external_link_count,
            "image_count": self.image_count,
            "images_with_alt": self.images_with_alt,
            "has_ssl": self.has_ssl,
            "language": self.language,
            "direction": self.direction,
            "has_viewport_meta": self.has_viewport_meta,
            "has_schema_org": self.has_schema_org,
            "load_time_ms": self.load_time_ms,
        }

    def to_meta_dict(self) -> dict:
        """Subset persisted with the audit record."""
        return {
            "title": self.title,
            "meta_description": self.meta_description,
            "heading_count": len(self.headings),
            "internal_links": self.internal_link_count,
            "external_links": self.external_link_count,
            "image_count": self.image_count,
            "images_with_alt": self.images_with_alt,
            "has_ssl": self.has_ssl,
            "has_viewport_meta": self.has_viewport_meta,
            "has_schema_org": self.has_schema_org,
            "language": self.language,
        }


class WebVital(BaseModel):
    """One Core Web Vital measurement."""

    value: float
    unit: str
    rating: Rating


class Opportunity(BaseModel):
    """A PageSpeed improvement suggestion."""

    title: str
    description: str = ""


class PerformanceResult(BaseModel):
    """PageSpeed Insights scores, vitals and top opportunities."""

    performance_score: int = Field(ge=0, le=100)
    accessibility_score: int = Field(ge=0, le=100)
    seo_score: int = Field(ge=0, le=100)
    best_practices_score: int = Field(ge=0, le=100)
    lcp: WebVital
    inp: WebVital
    cls: WebVital
    opportunities: list[Opportunity] = Field(default_factory=list, max_length=5)

    @classmethod
    def degraded(cls) -> "PerformanceResult":
        """Zero-valued stand-in used when PageSpeed is unavailable."""
        return cls(
            performance_score=0,
            accessibility_score=0,
            seo_score=0,
            best_practices_score=0,
            lcp=WebVital(value=0, unit="ms", rating="needs-improvement"),
            inp=WebVital(value=0, unit="ms", rating="needs-improvement"),
            cls=WebVital(value=0, unit="", rating="needs-improvement"),
            opportunities=[],
        )

    def to_details_dict(self) -> dict:
        """Vitals and opportunities, as persisted on the audit record."""
        return self.model_dump(include={"lcp", "inp", "cls", "opportunities"})


class _CamelModel(BaseModel):
    """Accepts the camelCase keys of LLM replies as well as field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PresenceResult(_CamelModel):
    """Whether the business shows up in AI assistant answers."""

    summary: str = ""
    found_in_chatgpt: bool | None = Field(default=None, alias="foundInChatGPT")
    found_in_gemini: bool | None = None
    found_in_perplexity: bool | None = None
    details: str = ""


class ScreenshotObservations(_CamelModel):
    desktop: str = ""
    mobile: str = ""


class ActionItem(_CamelModel):
    """One recommended action. Priority only orders the display."""

    priority: int = Field(ge=1)
    title: str
    description: str = ""
    impact: Impact = "medium"

    @property
    def impact_label(self) -> str:
        return IMPACT_LABELS[self.impact]


class ReportNarrative(_CamelModel):
    """The written analysis returned by the report model."""

    executive_summary: str
    screenshot_observations: ScreenshotObservations = Field(
        default_factory=ScreenshotObservations
    )
    seo_analysis: str = ""
    ai_presence_analysis: str = ""
    competitor_positioning: str = ""
    action_plan: list[ActionItem] = Field(default_factory=list)
    next_steps: str = ""


@dataclass
class AuditData:
    """Everything the report document is rendered from."""

    request: AuditRequest
    scraped: ScrapedData
    performance: PerformanceResult
    presence: PresenceResult
    narrative: ReportNarrative
