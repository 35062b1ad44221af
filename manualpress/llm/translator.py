"""Page translation interfaces and provider integrations.

Responsibilities:
- Define a protocol for page translation implementations.
- Provide an LLM-backed page translator that records provenance metadata.
"""

from __future__ import annotations

from typing import Protocol

from ..config import ManualSettings
from ..models.datatypes import TranslationMetadata, TranslationRecord
from ..parsing import utc_timestamp
from .clients import AnthropicMessagesClient, OpenAIChatClient
from .prompts import PromptLibrary


class Translator(Protocol):
    """Protocol for page translators."""

    model: str

    def translate_page(self, page_num: int, source_text: str) -> TranslationRecord:
        """Translate one page of source text into a translation record."""


class LLMPageTranslator:
    """Translator that sends one page per provider request."""

    def __init__(
        self,
        client: AnthropicMessagesClient | OpenAIChatClient,
        settings: ManualSettings,
    ) -> None:
        self.client = client
        self.settings = settings
        self.model = settings.translation_model
        self.prompts = PromptLibrary(settings)

    @property
    def method(self) -> str:
        return f"{self.client.provider_id}-api"

    def translate_page(self, page_num: int, source_text: str) -> TranslationRecord:
        """Translate one page; provider errors propagate to the caller."""

        translation = self.client.complete_text(
            model=self.model,
            system_prompt=self.prompts.translation_system_prompt(),
            user_prompt=self.prompts.translate_prompt(page_num, source_text),
            max_tokens=self.settings.max_output_tokens,
        )
        return TranslationRecord(
            page_num=page_num,
            translation=translation,
            metadata=TranslationMetadata(
                translated_at=utc_timestamp(),
                method=self.method,
                model=self.model,
                attempts=max(1, self.client.last_attempts),
            ),
        )
