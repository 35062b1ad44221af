"""CLI tests for the offline migration commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from manualpress.cli import app
from tests.conftest import DEMO_SLUG


def _write(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_check_pages_dry_run_reports_without_writing(cli_root: Path) -> None:
    """Dry runs should list planned fixes, change nothing, and exit nonzero."""

    record_path = cli_root / "temp-processing" / DEMO_SLUG / "translations-draft" / "page-001.json"
    _write(record_path, {"pageNum": 7, "translation": "x"})

    result = CliRunner().invoke(
        app,
        ["migrate", "check-pages", "--slug", DEMO_SLUG, "--root", str(cli_root), "--fix", "--dry-run"],
    )

    assert result.exit_code == 1
    assert "[dry-run] page-001.json: pageNum 7 != 1" in result.output
    assert "would write" in result.output
    assert json.loads(record_path.read_text(encoding="utf-8"))["pageNum"] == 7


def test_check_pages_fix_rewrites_records(cli_root: Path) -> None:
    record_path = cli_root / "temp-processing" / DEMO_SLUG / "translations-draft" / "page-001.json"
    _write(record_path, {"pageNum": 7, "translation": "x"})

    result = CliRunner().invoke(
        app, ["migrate", "check-pages", "--slug", DEMO_SLUG, "--root", str(cli_root), "--fix"]
    )

    assert result.exit_code == 0, result.output
    assert json.loads(record_path.read_text(encoding="utf-8"))["pageNum"] == 1


def test_parts_and_bilingual_migrations_chain(cli_root: Path) -> None:
    data_dir = cli_root / "public" / DEMO_SLUG / "data"
    page = {
        "pageNum": 1,
        "image": f"/{DEMO_SLUG}/pages/page-001.png",
        "title": "Cover",
        "sectionName": None,
        "translation": "表紙",
        "hasContent": True,
        "tags": [],
    }
    _write(data_dir / "part-01.json", {"pages": [page]})
    runner = CliRunner()

    parts = runner.invoke(
        app, ["migrate", "parts-to-pages", "--slug", DEMO_SLUG, "--root", str(cli_root)]
    )
    bilingual = runner.invoke(
        app, ["migrate", "bilingual", "--slug", DEMO_SLUG, "--root", str(cli_root)]
    )

    assert parts.exit_code == 0, parts.output
    assert "parts-to-pages: wrote" in parts.output
    assert bilingual.exit_code == 0, bilingual.output
    primary = json.loads((data_dir / "pages-ja.json").read_text(encoding="utf-8"))
    assert primary["pages"][0]["content"] == "表紙"


def test_migration_rejects_invalid_slug(cli_root: Path) -> None:
    result = CliRunner().invoke(
        app, ["migrate", "bilingual", "--slug", "Bad Slug", "--root", str(cli_root)]
    )

    assert result.exit_code == 1
    assert "migrate bilingual failed at stage `config`" in result.output
