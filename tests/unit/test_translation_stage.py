"""Unit tests for the concurrent, resumable translation stage."""

from __future__ import annotations

import json

import pytest

from manualpress.config import ManualConfig
from manualpress.errors import ConfigError, StageFatalError
from manualpress.models.datatypes import TranslationRecord
from manualpress.pipeline.translation import EMPTY_SOURCE_METHOD, TranslationStage
from tests.conftest import FakeTranslator

PAGE_TEXTS = [
    "# Cover\nOXI ONE",
    "## Sequencer\nPress PLAY.",
    "",
    "## Mono Mode\nMIDI and CV.",
    "## Arpeggiator\nHold notes.",
]


def _write_extracted(config: ManualConfig, texts: list[str] = PAGE_TEXTS) -> None:
    config.extracted_dir.mkdir(parents=True, exist_ok=True)
    for page_num, text in enumerate(texts, start=1):
        (config.extracted_dir / f"page-{page_num:03d}.txt").write_text(text, encoding="utf-8")


def _stage(translator: FakeTranslator, progress: list[tuple[int, str]] | None = None) -> TranslationStage:
    def _on_page(_stage_name: str, page_num: int, _total: int, status: str) -> None:
        if progress is not None:
            progress.append((page_num, status))

    return TranslationStage(translator_factory=lambda _config: translator, progress_callback=_on_page)


def _record(config: ManualConfig, page_num: int) -> dict[str, object]:
    path = config.draft_dir / f"page-{page_num:03d}.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_translate_writes_one_record_per_page(demo_config: ManualConfig) -> None:
    """Every extracted page should get a record carrying its own page number."""

    _write_extracted(demo_config)
    translator = FakeTranslator()

    summary = _stage(translator).translate(demo_config)

    assert (summary.success, summary.skipped, summary.failed) == (5, 0, 0)
    assert summary.exit_code == 0
    for page_num in range(1, 6):
        assert _record(demo_config, page_num)["pageNum"] == page_num
    assert _record(demo_config, 2)["translation"] == "## Sequencer\n訳 2"
    assert _record(demo_config, 2)["metadata"]["method"] == "fake-api"  # type: ignore[index]


def test_empty_source_page_is_recorded_without_a_provider_call(
    demo_config: ManualConfig,
) -> None:
    _write_extracted(demo_config)
    translator = FakeTranslator()

    _stage(translator).translate(demo_config)

    assert 3 not in translator.calls
    record = _record(demo_config, 3)
    assert record["translation"] == ""
    assert record["metadata"]["method"] == EMPTY_SOURCE_METHOD  # type: ignore[index]
    assert record["metadata"]["attempts"] == 0  # type: ignore[index]


def test_failed_page_is_isolated_and_reported(demo_config: ManualConfig) -> None:
    """A failing page should not stop siblings in its batch or later batches."""

    _write_extracted(demo_config)
    progress: list[tuple[int, str]] = []

    summary = _stage(FakeTranslator(fail_pages=(2,)), progress).translate(demo_config)

    assert (summary.success, summary.skipped, summary.failed) == (4, 0, 1)
    assert summary.failed_pages == (2,)
    assert summary.exit_code == 1
    assert not (demo_config.draft_dir / "page-002.json").exists()
    for page_num in (1, 3, 4, 5):
        assert (demo_config.draft_dir / f"page-{page_num:03d}.json").is_file()

    report_path = demo_config.inbox_dir / "translation-error-page-002.json"
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["page"] == 2
    assert "HTTP 503" in report["error"]
    assert report["timestamp"].endswith("Z")
    assert (2, "failed") in progress
    assert sorted(page for page, _ in progress) == [1, 2, 3, 4, 5]


class _BrokenResponseTranslator(FakeTranslator):
    def translate_page(self, page_num: int, source_text: str) -> TranslationRecord:
        if page_num == 4:
            raise RuntimeError("unexpected response shape")
        return super().translate_page(page_num, source_text)


def test_unexpected_translator_error_is_isolated_to_its_page(
    demo_config: ManualConfig,
) -> None:
    _write_extracted(demo_config)

    summary = _stage(_BrokenResponseTranslator()).translate(demo_config)

    assert (summary.success, summary.skipped, summary.failed) == (4, 0, 1)
    assert summary.failed_pages == (4,)
    for page_num in (1, 2, 3, 5):
        assert (demo_config.draft_dir / f"page-{page_num:03d}.json").is_file()
    report_path = demo_config.inbox_dir / "translation-error-page-004.json"
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["page"] == 4
    assert "RuntimeError: unexpected response shape" in report["error"]


def test_rerun_translates_only_missing_pages_and_clears_error_report(
    demo_config: ManualConfig,
) -> None:
    _write_extracted(demo_config)
    _stage(FakeTranslator(fail_pages=(4,))).translate(demo_config)
    first_record = (demo_config.draft_dir / "page-001.json").read_bytes()
    retry_translator = FakeTranslator()

    summary = _stage(retry_translator).translate(demo_config)

    assert retry_translator.calls == [4]
    assert (summary.success, summary.skipped, summary.failed) == (1, 4, 0)
    assert (demo_config.draft_dir / "page-001.json").read_bytes() == first_record
    assert not (demo_config.inbox_dir / "translation-error-page-004.json").exists()


def test_fully_translated_manual_needs_no_translator(demo_config: ManualConfig) -> None:
    """A rerun with every record present should not build a provider client."""

    _write_extracted(demo_config)
    _stage(FakeTranslator()).translate(demo_config)

    def _no_factory(_config: ManualConfig) -> FakeTranslator:
        raise AssertionError("translator should not be created")

    summary = TranslationStage(translator_factory=_no_factory).translate(demo_config)

    assert (summary.success, summary.skipped, summary.failed) == (0, 5, 0)


def test_concurrency_never_exceeds_batch_size(demo_config: ManualConfig) -> None:
    _write_extracted(demo_config, [f"## Page {num}\nbody" for num in range(1, 10)])
    translator = FakeTranslator()

    _stage(translator).translate(demo_config)

    assert sorted(translator.calls) == list(range(1, 10))
    assert 1 <= translator.max_in_flight <= demo_config.settings.batch_size


def test_record_with_wrong_page_number_is_fatal(demo_config: ManualConfig) -> None:
    _write_extracted(demo_config)
    demo_config.draft_dir.mkdir(parents=True)
    (demo_config.draft_dir / "page-002.json").write_text(
        json.dumps({"pageNum": 3, "translation": "x"}), encoding="utf-8"
    )
    translator = FakeTranslator()

    with pytest.raises(StageFatalError, match="declares pageNum 3"):
        _stage(translator).translate(demo_config)

    assert translator.calls == []


def test_unreadable_record_is_fatal(demo_config: ManualConfig) -> None:
    _write_extracted(demo_config)
    demo_config.draft_dir.mkdir(parents=True)
    (demo_config.draft_dir / "page-001.json").write_text("{", encoding="utf-8")

    with pytest.raises(StageFatalError, match="Unreadable translation record"):
        _stage(FakeTranslator()).translate(demo_config)


def test_gap_in_extracted_pages_is_fatal(demo_config: ManualConfig) -> None:
    _write_extracted(demo_config)
    (demo_config.extracted_dir / "page-002.txt").unlink()

    with pytest.raises(StageFatalError) as exc_info:
        _stage(FakeTranslator()).translate(demo_config)

    assert exc_info.value.stage == "translate"


def test_missing_api_key_fails_before_any_page(demo_config: ManualConfig) -> None:
    """The default provider factory should require the provider API key."""

    _write_extracted(demo_config)

    with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
        TranslationStage().translate(demo_config)

    assert not demo_config.draft_dir.exists()
