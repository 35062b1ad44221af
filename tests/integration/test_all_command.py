"""End-to-end CLI tests for the full manual pipeline."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from manualpress.cli import app
from tests.conftest import DEMO_SLUG


def _invoke(*args: str):
    return CliRunner().invoke(app, list(args))


def test_all_command_publishes_manual_and_registry_check_accepts_it(cli_root: Path) -> None:
    """`all` should produce datasets, images, and a manifest the registry validates."""

    result = _invoke("all", "--slug", DEMO_SLUG, "--root", str(cli_root))

    assert result.exit_code == 0, result.output
    assert "[progress] command=all 1/6 stage=split" in result.output
    assert "[progress] command=all 6/6 stage=manifest" in result.output
    assert "[progress] command=all stage=translate page=" in result.output
    assert "Pages: 4" in result.output
    assert "Success: 4" in result.output
    assert "Total pages: 4" in result.output
    assert "Content pages: 3" in result.output

    data_dir = cli_root / "public" / DEMO_SLUG / "data"
    primary = json.loads((data_dir / "pages-ja.json").read_text(encoding="utf-8"))
    assert [page["pageNum"] for page in primary["pages"]] == [1, 2, 3, 4]
    assert primary["pages"][0]["content"].endswith("(翻訳済み)")
    assert primary["metadata"]["method"] == "anthropic-api"
    assert (data_dir / "pages-en.json").is_file()
    assert sorted(path.name for path in (cli_root / "public" / DEMO_SLUG / "pages").iterdir()) == [
        "page-001.png",
        "page-002.png",
        "page-003.png",
        "page-004.png",
    ]

    check = _invoke("registry-check", "--root", str(cli_root))

    assert check.exit_code == 0, check.output
    assert f"{DEMO_SLUG}: 4 pages (3 with content)" in check.output
    assert "Manuals: 1" in check.output


def test_rerunning_all_skips_translated_pages(cli_root: Path) -> None:
    _invoke("all", "--slug", DEMO_SLUG, "--root", str(cli_root))

    result = _invoke("all", "--slug", DEMO_SLUG, "--root", str(cli_root))

    assert result.exit_code == 0, result.output
    assert "Success: 0" in result.output
    assert "Skipped: 4" in result.output


def test_individual_stage_commands_chain(cli_root: Path) -> None:
    root = str(cli_root)
    for command, expected in (
        ("split", "Split pages: 4"),
        ("render", "Rendered images: 4 at 36 DPI"),
        ("extract", "Extracted text files: 4"),
        ("translate", "Success: 4"),
        ("build", "pages-ja.json: 4 pages"),
        ("manifest", "Title: DEMO MANUAL Manual"),
    ):
        result = _invoke(command, "--slug", DEMO_SLUG, "--root", root)
        assert result.exit_code == 0, result.output
        assert expected in result.output


def test_clean_command_resets_generated_artifacts(cli_root: Path) -> None:
    _invoke("all", "--slug", DEMO_SLUG, "--root", str(cli_root))

    result = _invoke("clean", "--slug", DEMO_SLUG, "--root", str(cli_root))

    assert result.exit_code == 0, result.output
    assert "Rendered images: removed 4 item(s)" in result.output
    assert not any((cli_root / "public" / DEMO_SLUG / "data").iterdir())
    assert (cli_root / "manual-pdf" / DEMO_SLUG / "demo.pdf").is_file()

    check = _invoke("registry-check", "--root", str(cli_root))
    assert "Manuals: 0" in check.output
