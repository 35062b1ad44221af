"""Integration-test fixtures for deterministic provider behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from manualpress.llm.clients import AnthropicMessagesClient, OpenAIChatClient
from tests.conftest import DEMO_SLUG, write_settings
from tests.pdf_fixtures import DEMO_PAGES, write_text_pdf


def mocked_translation(user_prompt: str) -> str:
    """Return the prompt's page text with a marker line appended."""

    source_text = user_prompt.split("\n\n", 1)[1]
    return f"{source_text.strip()}\n(翻訳済み)"


@pytest.fixture(autouse=True)
def _mock_provider_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock provider calls in integration tests to avoid network access."""

    def _mock_complete_text(self, **kwargs: object) -> str:
        _ = self
        return mocked_translation(str(kwargs["user_prompt"]))

    monkeypatch.setattr(AnthropicMessagesClient, "complete_text", _mock_complete_text)
    monkeypatch.setattr(OpenAIChatClient, "complete_text", _mock_complete_text)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "integration-test-key")


@pytest.fixture
def cli_root(tmp_path: Path) -> Path:
    """Project root with one demo manual, used as `--root` for CLI runs."""

    write_settings(tmp_path)
    write_text_pdf(tmp_path / "manual-pdf" / DEMO_SLUG / "demo.pdf", DEMO_PAGES)
    return tmp_path
