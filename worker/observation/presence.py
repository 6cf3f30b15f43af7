"""AI assistant presence check for the audited business."""

import structlog

from worker.models import PresenceResult
from worker.observation.parser import parse_structured_output
from worker.observation.providers import LLMClient

logger = structlog.get_logger(__name__)

PRESENCE_PROMPT = """Check if the business "{business_name}" (website: {url}) appears in AI search results. Search for the business name and related industry terms. Report whether this business is mentioned by AI assistants like ChatGPT, Gemini, or Perplexity when users ask about their industry/services.

Respond with a JSON object (no markdown fencing):
{{
  "summary": "Brief summary in {language}",
  "foundInChatGPT": true/false/null,
  "foundInGemini": true/false/null,
  "foundInPerplexity": true/false/null,
  "details": "Detailed findings in {language}"
}}

Use null when you cannot tell. Return ONLY the JSON object."""


def build_presence_prompt(business_name: str, url: str, language: str = "English") -> str:
    return PRESENCE_PROMPT.format(business_name=business_name, url=url, language=language)


class PresenceChecker:
    """Asks the model whether AI assistants know about a business."""

    def __init__(self, llm: LLMClient, max_tokens: int = 1024, language: str = "English"):
        self.llm = llm
        self.max_tokens = max_tokens
        self.language = language

    async def check(self, business_name: str, url: str) -> PresenceResult:
        """
        Raises:
            LLMError: the completion request failed
            StructuredOutputError: the reply could not be parsed
        """
        prompt = build_presence_prompt(business_name, url, self.language)
        completion = await self.llm.complete(prompt, max_tokens=self.max_tokens)
        result = parse_structured_output(completion.content, PresenceResult)

        logger.info(
            "presence_checked",
            business_name=business_name,
            chatgpt=result.found_in_chatgpt,
            gemini=result.found_in_gemini,
            perplexity=result.found_in_perplexity,
        )
        return result
