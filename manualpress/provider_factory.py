"""Provider factory helpers for the translation stage.

Responsibilities:
- Resolve provider identifiers to concrete translator implementations.
- Keep orchestration independent from concrete provider class construction.
"""

from __future__ import annotations

from .config import ManualSettings
from .llm.clients import AnthropicMessagesClient, OpenAIChatClient
from .llm.rate_limiter import RateLimiter
from .llm.translator import LLMPageTranslator, Translator


class ProviderFactory:
    """Factory for provider-backed translators used by the pipeline."""

    @staticmethod
    def create_translator(
        settings: ManualSettings,
        api_key: str,
        rate_limiter: RateLimiter | None = None,
    ) -> Translator:
        """Create a page translator for the configured provider identifier."""

        client_options = {
            "api_key": api_key,
            "timeout_seconds": settings.request_timeout_seconds,
            "max_attempts": settings.max_attempts,
            "retry_backoff_base_seconds": settings.retry_base_delay_seconds,
            "rate_limiter": rate_limiter,
        }
        provider_id = settings.translation_provider
        if provider_id == "anthropic":
            return LLMPageTranslator(AnthropicMessagesClient(**client_options), settings)
        if provider_id == "openai":
            return LLMPageTranslator(OpenAIChatClient(**client_options), settings)
        raise ValueError(f"Unsupported translator provider `{provider_id}`.")
