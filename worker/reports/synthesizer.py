"""LLM synthesis of the audit narrative."""

import json

import structlog

from worker.models import PerformanceResult, PresenceResult, ReportNarrative, ScrapedData
from worker.observation.parser import parse_structured_output
from worker.observation.providers import LLMClient

logger = structlog.get_logger(__name__)

REPORT_CONTRACT = """{
  "executiveSummary": "3-4 sentence overview",
  "screenshotObservations": {
    "desktop": "Observations about the desktop appearance",
    "mobile": "Observations about the mobile appearance"
  },
  "seoAnalysis": "Detailed SEO analysis paragraph",
  "aiPresenceAnalysis": "AI presence analysis paragraph",
  "competitorPositioning": "Brief competitive analysis",
  "actionPlan": [
    { "priority": 1, "title": "Action title", "description": "What to do and why", "impact": "high" },
    { "priority": 2, "title": "...", "description": "...", "impact": "medium" }
  ],
  "nextSteps": "Closing paragraph inviting the reader to a free consultation"
}"""


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def build_analysis_prompt(
    scraped: ScrapedData,
    performance: PerformanceResult,
    presence: PresenceResult,
    language: str = "English",
    agency_name: str = "Digital Audit",
) -> str:
    """
    Build the report prompt.

    Includes every collected signal except the screenshots, plus the JSON
    shape the reply must follow.
    """
    data = scraped.to_prompt_dict()
    opportunities = [o.model_dump() for o in performance.opportunities]

    return f"""You are a senior digital marketing consultant at {agency_name}. You write in professional {language}: marketing-appropriate, not overly formal, not casual.

Analyze the following website data and produce a structured audit report in {language}.

## Website Data
- URL: {data["url"]}
- Title: {data["title"]}
- Meta Description: {data["meta_description"]}
- Meta Keywords: {data["meta_keywords"]}
- Open Graph Tags: {json.dumps(data["og_tags"], ensure_ascii=False)}
- Headings: {json.dumps(data["headings"], ensure_ascii=False)}
- Internal Links: {data["internal_link_count"]}
- External Links: {data["external_link_count"]}
- Images: {data["image_count"]} total, {data["images_with_alt"]} with alt text
- SSL: {_yes_no(data["has_ssl"])}
- Language: {data["language"]}, Direction: {data["direction"]}
- Viewport Meta: {_yes_no(data["has_viewport_meta"])}
- Schema.org: {_yes_no(data["has_schema_org"])}
- Load Time: {data["load_time_ms"]}ms

## PageSpeed Insights
- Performance: {performance.performance_score}/100
- Accessibility: {performance.accessibility_score}/100
- SEO: {performance.seo_score}/100
- Best Practices: {performance.best_practices_score}/100
- LCP: {performance.lcp.value}ms ({performance.lcp.rating})
- INP: {performance.inp.value}ms ({performance.inp.rating})
- CLS: {performance.cls.value} ({performance.cls.rating})
- Top Opportunities: {json.dumps(opportunities, ensure_ascii=False)}

## AI Presence
{presence.summary}
{presence.details}

## Instructions
Write ALL content in {language}. Be helpful and authoritative: point out issues without being alarmist and always offer solutions. Focus on actionable recommendations.

Respond with a JSON object (no markdown fencing) with this exact structure:
{REPORT_CONTRACT}

Include 5-8 action plan items ordered by impact. "impact" must be one of "high", "medium", "low". Return ONLY the JSON object."""


class ReportSynthesizer:
    """Turns collected signals into the written report via one model call."""

    def __init__(
        self,
        llm: LLMClient,
        max_tokens: int = 4096,
        language: str = "English",
        agency_name: str = "Digital Audit",
    ):
        self.llm = llm
        self.max_tokens = max_tokens
        self.language = language
        self.agency_name = agency_name

    async def synthesize(
        self,
        scraped: ScrapedData,
        performance: PerformanceResult,
        presence: PresenceResult,
    ) -> ReportNarrative:
        """
        Raises:
            LLMError: the completion request failed
            StructuredOutputError: the reply could not be parsed; no retry
        """
        prompt = build_analysis_prompt(
            scraped, performance, presence, self.language, self.agency_name
        )
        completion = await self.llm.complete(prompt, max_tokens=self.max_tokens)
        narrative = parse_structured_output(completion.content, ReportNarrative)

        logger.info(
            "report_synthesized",
            url=scraped.url,
            action_items=len(narrative.action_plan),
            completion_tokens=completion.usage.completion_tokens,
        )
        return narrative
