"""Shared pytest fixtures for the manualpress test suite."""

from __future__ import annotations

import json
from pathlib import Path
import subprocess
import threading

import pytest

from manualpress.config import ConfigResolver, ManualConfig
from manualpress.llm.clients import ProviderError
from manualpress.models.datatypes import TranslationMetadata, TranslationRecord
from tests.pdf_fixtures import DEMO_PAGES, write_text_pdf

DEMO_SLUG = "demo-manual"


class FakeTranslator:
    """Deterministic translator double that can fail selected pages."""

    model = "fake-model"

    def __init__(self, fail_pages: tuple[int, ...] = ()) -> None:
        self.fail_pages = set(fail_pages)
        self.calls: list[int] = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def translate_page(self, page_num: int, source_text: str) -> TranslationRecord:
        with self._lock:
            self.calls.append(page_num)
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if page_num in self.fail_pages:
                raise ProviderError(
                    "Anthropic server error (HTTP 503).",
                    failure_kind="server_error",
                    status_code=503,
                )
            first_line = source_text.strip().splitlines()[0]
            return TranslationRecord(
                page_num=page_num,
                translation=f"{first_line}\n訳 {page_num}",
                metadata=TranslationMetadata(
                    translated_at="2026-01-01T00:00:00.000Z",
                    method="fake-api",
                    model=self.model,
                ),
            )
        finally:
            with self._lock:
                self._in_flight -= 1


def write_settings(root: Path, **settings: object) -> Path:
    """Write `pdf-config.json` with test-friendly defaults merged with overrides."""

    payload = {"imageDPI": 36, "batchSize": 2, "translationModel": "test-model"}
    payload.update(settings)
    path = root / "pdf-config.json"
    path.write_text(json.dumps({"settings": payload}), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ambient overrides and force deterministic `pypdf` text extraction."""

    for key in (
        "MANUALPRESS_TRANSLATION_MODEL",
        "MANUALPRESS_TRANSLATION_PROVIDER",
        "MANUALPRESS_BATCH_SIZE",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)

    real_run = subprocess.run

    def _run_without_pdftotext(*args: object, **kwargs: object) -> object:
        command = args[0] if args else kwargs.get("args")
        if isinstance(command, list) and command and "pdftotext" in str(command[0]).lower():
            raise FileNotFoundError("pdftotext")
        return real_run(*args, **kwargs)

    monkeypatch.setattr(subprocess, "run", _run_without_pdftotext)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create a project root with settings and a four-page demo manual."""

    write_settings(tmp_path)
    write_text_pdf(tmp_path / "manual-pdf" / DEMO_SLUG / "demo.pdf", DEMO_PAGES)
    return tmp_path


@pytest.fixture
def demo_config(project_root: Path) -> ManualConfig:
    return ConfigResolver(project_root).resolve(DEMO_SLUG)


@pytest.fixture
def fake_translator() -> FakeTranslator:
    return FakeTranslator()
