"""Chat-completions client for the report and presence prompts."""

import time
from dataclasses import dataclass, field

import httpx
import structlog

from api.exceptions import LLMError

logger = structlog.get_logger(__name__)


@dataclass
class ProviderConfig:
    """Connection settings for an OpenAI-compatible chat-completions endpoint."""

    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "anthropic/claude-sonnet-4"
    max_tokens: int = 4096
    timeout_seconds: float = 120.0
    app_name: str = "Digital Audit"


@dataclass
class UsageStats:
    """Token usage reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class Completion:
    """Text of a single model reply."""

    content: str
    model: str
    latency_ms: float = 0.0
    usage: UsageStats = field(default_factory=UsageStats)


class LLMClient:
    """Sends single-turn prompts to a chat-completions API (OpenRouter by default)."""

    def __init__(self, client: httpx.AsyncClient, config: ProviderConfig):
        self.client = client
        self.config = config

    async def complete(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float = 0.3,
    ) -> Completion:
        """
        Send one user message and return the assistant reply.

        Raises:
            LLMError: transport failure, non-2xx status or a reply without text
        """
        start_time = time.perf_counter()

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.config.app_name,
        }
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }

        try:
            response = await self.client.post(
                f"{self.config.base_url.rstrip('/')}/chat/completions",
                headers=headers,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise LLMError(f"Request timed out after {self.config.timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Request failed: {e}") from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            raise LLMError(f"HTTP {response.status_code}: {response.text[:500]}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
            usage_data = data.get("usage") or {}
            usage = UsageStats(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
            )
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise LLMError(f"Malformed completion response: {e!r}") from e

        if not isinstance(content, str) or not content.strip():
            raise LLMError("Completion contained no text")

        logger.info(
            "llm_completion",
            model=data.get("model", self.config.model),
            latency_ms=round(latency_ms, 1),
            **usage.to_dict(),
        )

        return Completion(
            content=content,
            model=data.get("model", self.config.model),
            latency_ms=latency_ms,
            usage=usage,
        )
