"""Translation provider clients, prompts, and translators."""

from .clients import AnthropicMessagesClient, OpenAIChatClient, ProviderError
from .prompts import PromptLibrary
from .rate_limiter import RateLimiter
from .translator import LLMPageTranslator, Translator

__all__ = [
    "AnthropicMessagesClient",
    "LLMPageTranslator",
    "OpenAIChatClient",
    "PromptLibrary",
    "ProviderError",
    "RateLimiter",
    "Translator",
]
