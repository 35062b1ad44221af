"""Unit tests for chaining pipeline stages and their telemetry."""

from __future__ import annotations

import io

import pytest

from manualpress.config import ManualConfig
from manualpress.errors import StageFatalError
from manualpress.pipeline import ManualPipeline
from manualpress.registry import ManualRegistry
from manualpress.telemetry.logger import RunLogger
from tests.conftest import DEMO_SLUG, FakeTranslator


def test_run_all_publishes_a_registry_ready_manual(demo_config: ManualConfig) -> None:
    """Running every stage should leave a manual the registry accepts."""

    stages: list[tuple[str, int, int]] = []
    pages: list[tuple[int, str]] = []
    pipeline = ManualPipeline(
        stage_progress_callback=lambda name, index, total: stages.append((name, index, total)),
        page_progress_callback=lambda _stage, page, _total, status: pages.append((page, status)),
        translator_factory=lambda _config: FakeTranslator(),
    )

    result = pipeline.run_all(demo_config)

    assert result.page_count == result.rendered == result.extracted == 4
    assert result.translation.success == 4
    assert result.manifest is not None
    assert result.manifest.total_pages == 4
    assert result.manifest.content_pages == 3
    assert [name for name, _, _ in stages] == [
        "split",
        "render",
        "extract",
        "translate",
        "build",
        "manifest",
    ]
    assert stages[0][1:] == (1, 6)
    assert [artifact.page_num for artifact in result.artifacts] == [1, 2, 3, 4]
    assert all(artifact.record is not None for artifact in result.artifacts)
    assert sorted(page for page, _ in pages) == [1, 2, 3, 4]

    registry = ManualRegistry(demo_config.public_dir)
    assert registry.available_manuals() == [DEMO_SLUG]
    cover = registry.get_page(DEMO_SLUG, 1)
    assert cover is not None
    assert cover.title == "Cover"
    assert "cover" in cover.tags
    mono = registry.get_page(DEMO_SLUG, 4)
    assert mono is not None
    assert "mono-sequencer" in mono.tags


def test_run_all_stops_before_build_when_pages_fail(demo_config: ManualConfig) -> None:
    sink = io.StringIO()
    pipeline = ManualPipeline(
        run_logger=RunLogger(sink=sink),
        translator_factory=lambda _config: FakeTranslator(fail_pages=(2,)),
    )

    result = pipeline.run_all(demo_config)

    assert result.translation.failed_pages == (2,)
    assert result.artifacts[1].record is None
    assert result.artifacts[1].image is not None
    assert result.dataset is None
    assert result.manifest is None
    assert not demo_config.manifest_path.exists()
    assert "event=run_stopped" in sink.getvalue()


def test_stage_failure_is_logged_and_reraised(demo_config: ManualConfig) -> None:
    sink = io.StringIO()
    pipeline = ManualPipeline(run_logger=RunLogger(sink=sink))

    with pytest.raises(StageFatalError):
        pipeline.render(demo_config)

    log = sink.getvalue()
    assert "stage=render event=start" in log
    assert "stage=render event=failure error_type=StageFatalError" in log
    assert "event=complete" not in log


def test_stage_logs_never_contain_page_text(demo_config: ManualConfig) -> None:
    sink = io.StringIO()
    pipeline = ManualPipeline(
        run_logger=RunLogger(sink=sink),
        translator_factory=lambda _config: FakeTranslator(),
    )

    pipeline.run_all(demo_config)

    log = sink.getvalue()
    assert "[phase] level=INFO stage=split event=complete slug=demo-manual" in log
    assert "Press PLAY" not in log
    assert "訳" not in log
