"""Prompt template library for page translation.

Responsibilities:
- Centralize prompt construction for manual page translation.
- Keep prompts deterministic for a given settings object.
"""

from __future__ import annotations

from ..config import ManualSettings


_LANGUAGE_NAMES = {
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
}


def language_name(code: str) -> str:
    """Return a readable language name for a language code."""

    return _LANGUAGE_NAMES.get(code.lower(), code)


class PromptLibrary:
    """Build prompt strings for page translation calls."""

    def __init__(self, settings: ManualSettings) -> None:
        self.settings = settings

    def translation_system_prompt(self) -> str:
        """Return the system prompt describing translation rules."""

        source = language_name(self.settings.source_language)
        target = language_name(self.settings.target_language)
        rules = [
            f"You are a professional technical translator from {source} to {target} "
            "for hardware synthesizer and sequencer manuals.",
            "Rules:",
        ]
        if self.settings.preserved_terms:
            terms = ", ".join(self.settings.preserved_terms)
            rules.append(f"- Keep these technical terms exactly as written: {terms}.")
        rules.append("- Keep button names, parameter names, and numeric values unchanged.")
        if self.settings.style_note:
            rules.append(f"- {self.settings.style_note}")
        rules.append("- Preserve markdown formatting, line breaks, and list structure.")
        rules.append("- Output ONLY the translation without preamble or commentary.")
        return "\n".join(rules)

    def translate_prompt(self, page_num: int, source_text: str) -> str:
        """Return the user prompt carrying one page of source text."""

        target = language_name(self.settings.target_language)
        return (
            f"Translate page {page_num} of the manual into {target}.\n\n"
            f"{source_text}"
        )
