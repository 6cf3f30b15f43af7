"""Tests for recovering structured data from model replies."""

import pytest

from api.exceptions import StructuredOutputError
from worker.models import PresenceResult, ReportNarrative
from worker.observation.parser import (
    extract_json_object,
    parse_structured_output,
    strip_code_fence,
)

NARRATIVE_JSON = """{
  "executiveSummary": "Good site.",
  "screenshotObservations": {"desktop": "Clean", "mobile": "Cramped"},
  "seoAnalysis": "Fine.",
  "aiPresenceAnalysis": "Invisible.",
  "competitorPositioning": "Behind.",
  "actionPlan": [
    {"priority": 1, "title": "Add schema", "description": "JSON-LD", "impact": "high"}
  ],
  "nextSteps": "Call us."
}"""


class TestStripCodeFence:
    @pytest.mark.parametrize(
        "text",
        ['```json\n{"a": 1}\n```', '```\n{"a": 1}\n```', '  ```JSON {"a": 1} ```  ', '{"a": 1}'],
    )
    def test_fences_removed(self, text: str) -> None:
        assert strip_code_fence(text) == '{"a": 1}'


class TestExtractJsonObject:
    def test_plain_json(self) -> None:
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_json(self) -> None:
        assert extract_json_object('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_surrounding_prose(self) -> None:
        reply = 'Here is the report you asked for:\n{"a": {"b": 2}}\nLet me know!'
        assert extract_json_object(reply) == {"a": {"b": 2}}

    def test_no_object(self) -> None:
        with pytest.raises(StructuredOutputError, match="no JSON object found") as exc_info:
            extract_json_object("I could not produce a report.")
        assert exc_info.value.raw == "I could not produce a report."

    def test_broken_object(self) -> None:
        with pytest.raises(StructuredOutputError, match="invalid JSON"):
            extract_json_object('Sure: {"a": 1,, "b"} done')


class TestParseStructuredOutput:
    def test_narrative_from_camel_case(self) -> None:
        narrative = parse_structured_output(f"```json\n{NARRATIVE_JSON}\n```", ReportNarrative)

        assert narrative.executive_summary == "Good site."
        assert narrative.screenshot_observations.mobile == "Cramped"
        assert narrative.action_plan[0].title == "Add schema"
        assert narrative.action_plan[0].impact_label == "High priority"

    def test_presence_reply(self) -> None:
        reply = (
            '{"summary": "Rarely seen", "foundInChatGPT": true, "foundInGemini": null, '
            '"foundInPerplexity": false, "details": "..."}'
        )
        result = parse_structured_output(reply, PresenceResult)

        assert result.found_in_chatgpt is True
        assert result.found_in_gemini is None
        assert result.found_in_perplexity is False

    def test_non_object_json(self) -> None:
        with pytest.raises(StructuredOutputError, match="expected a JSON object"):
            parse_structured_output("[1, 2, 3]", PresenceResult)

    def test_schema_mismatch_names_fields(self) -> None:
        reply = '{"actionPlan": [{"priority": 0, "title": "x"}]}'
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output(reply, ReportNarrative)

        assert "ReportNarrative validation failed" in exc_info.value.message
        assert "executiveSummary" in exc_info.value.message

    def test_unknown_impact_rejected(self) -> None:
        reply = '{"executiveSummary": "x", "actionPlan": [{"priority": 1, "title": "t", "impact": "urgent"}]}'
        with pytest.raises(StructuredOutputError):
            parse_structured_output(reply, ReportNarrative)
