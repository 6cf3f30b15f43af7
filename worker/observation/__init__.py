"""LLM access for the audit: chat completions and structured replies.

Use explicit imports:
    from worker.observation.providers import LLMClient, ProviderConfig
    from worker.observation.parser import parse_structured_output
    from worker.observation.presence import PresenceChecker
"""

__all__ = [
    # Providers
    "LLMClient",
    "ProviderConfig",
    "Completion",
    # Parser
    "parse_structured_output",
    "extract_json_object",
    # Presence
    "PresenceChecker",
]
