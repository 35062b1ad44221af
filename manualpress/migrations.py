"""One-way offline migrations for legacy manual data layouts.

Responsibilities:
- Merge legacy `part-XX.json` files into a single `pages.json`.
- Convert a single-language `pages.json` into bilingual `pages-<lang>.json` files.
- Detect and repair translation records whose `pageNum` disagrees with the filename.

Every migration honors `dry_run`: it reports the files it would write and writes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import StageFatalError
from .io.storage import ArtifactStore
from .parsing import page_filename, parse_page_filename, utc_timestamp

_STAGE = "migrate"


@dataclass(frozen=True, slots=True)
class PageNumberMismatch:
    """A translation record whose declared page number disagrees with its filename."""

    filename: str
    declared: object
    expected: int


@dataclass(frozen=True, slots=True)
class MigrationReport:
    """Outcome of one migration run."""

    name: str
    dry_run: bool
    written: tuple[Path, ...] = field(default_factory=tuple)
    skipped_reason: str | None = None
    mismatches: tuple[PageNumberMismatch, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = field(default_factory=tuple)


def _load(store: ArtifactStore, name: str) -> dict[str, Any]:
    try:
        return store.load_json_object(name)
    except ValueError as exc:
        raise StageFatalError(
            stage=_STAGE,
            detail=str(exc),
            hint="Fix or remove the malformed file and rerun the migration.",
        ) from exc


def _page_items(payload: dict[str, Any], source: str) -> list[dict[str, Any]]:
    pages = payload.get("pages")
    if not isinstance(pages, list) or not all(
        isinstance(item, dict) and isinstance(item.get("pageNum"), int) for item in pages
    ):
        raise StageFatalError(
            stage=_STAGE,
            detail=f"{source}: `pages` must be a list of objects with integer `pageNum`.",
            hint="Fix the legacy file by hand before migrating.",
        )
    return pages


def migrate_parts_to_pages(data_dir: Path, dry_run: bool = False) -> MigrationReport:
    """Merge `part-*.json` into `pages.json` sorted by page and drop manifest `parts`."""

    name = "parts-to-pages"
    if not data_dir.is_dir():
        return MigrationReport(name=name, dry_run=dry_run, skipped_reason="data directory not found")
    part_files = sorted(
        path.name
        for path in data_dir.iterdir()
        if path.is_file() and path.name.startswith("part-") and path.name.endswith(".json")
    )
    if not part_files:
        return MigrationReport(name=name, dry_run=dry_run, skipped_reason="no part files found")

    store = ArtifactStore(data_dir)
    pages: list[dict[str, Any]] = []
    metadata: dict[str, Any] | None = None
    for part_name in part_files:
        payload = _load(store, part_name)
        pages.extend(_page_items(payload, part_name))
        if metadata is None and isinstance(payload.get("metadata"), dict):
            metadata = payload["metadata"]
    pages.sort(key=lambda item: item["pageNum"])

    merged = {
        "metadata": metadata
        or {
            "processedAt": utc_timestamp(),
            "translationMethod": "page-by-page",
            "imageFormat": "png",
            "imageDPI": 300,
        },
        "pages": pages,
    }
    written = [data_dir / "pages.json"]
    manifest: dict[str, Any] | None = None
    if store.exists("manifest.json"):
        manifest = _load(store, "manifest.json")
        if "parts" in manifest or "_future_parts" in manifest:
            manifest.pop("parts", None)
            manifest.pop("_future_parts", None)
            written.append(data_dir / "manifest.json")
        else:
            manifest = None

    if not dry_run:
        store.save_json("pages.json", merged)
        if manifest is not None:
            store.save_json("manifest.json", manifest)
    return MigrationReport(name=name, dry_run=dry_run, written=tuple(written))


def migrate_to_bilingual(
    data_dir: Path,
    extracted_dir: Path,
    target_language: str = "ja",
    source_language: str = "en",
    dry_run: bool = False,
) -> MigrationReport:
    """Convert `pages.json` into `pages-<target>.json` plus `pages-<source>.json`.

    The legacy `translation` field becomes `content`. The source-language file
    is only produced when extracted page text exists. `pages.json` is kept.
    """

    name = "bilingual"
    store = ArtifactStore(data_dir)
    target_name = f"pages-{target_language}.json"
    if store.exists(target_name):
        return MigrationReport(name=name, dry_run=dry_run, skipped_reason="already migrated")
    if not store.exists("pages.json"):
        return MigrationReport(name=name, dry_run=dry_run, skipped_reason="no pages.json found")

    legacy = _load(store, "pages.json")
    legacy_pages = _page_items(legacy, "pages.json")
    legacy_metadata = legacy.get("metadata") if isinstance(legacy.get("metadata"), dict) else {}
    target_pages = [
        {
            "pageNum": page["pageNum"],
            "image": page.get("image", ""),
            "title": page.get("title", f"Page {page['pageNum']}"),
            "sectionName": page.get("sectionName"),
            "content": page.get("translation") or page.get("content") or "",
            "hasContent": bool(page.get("hasContent")),
            "tags": page.get("tags") or [],
        }
        for page in legacy_pages
    ]
    outputs: dict[str, dict[str, Any]] = {
        target_name: {
            "metadata": {**legacy_metadata, "language": target_language},
            "pages": target_pages,
        }
    }

    text_names = (
        [path.name for path in extracted_dir.iterdir() if parse_page_filename(path.name, "txt")]
        if extracted_dir.is_dir()
        else []
    )
    if text_names:
        source_pages = []
        for page in target_pages:
            text_path = extracted_dir / page_filename(page["pageNum"], "txt")
            content = text_path.read_text(encoding="utf-8").strip() if text_path.is_file() else ""
            source_pages.append({**page, "content": content, "hasContent": bool(content)})
        outputs[f"pages-{source_language}.json"] = {
            "metadata": {
                "processedAt": utc_timestamp(),
                "language": source_language,
                "method": "text-extraction",
                "imageFormat": legacy_metadata.get("imageFormat", "png"),
                "imageDPI": legacy_metadata.get("imageDPI", 300),
            },
            "pages": source_pages,
        }

    if not dry_run:
        for output_name, payload in outputs.items():
            store.save_json(output_name, payload)
    return MigrationReport(
        name=name,
        dry_run=dry_run,
        written=tuple(data_dir / output_name for output_name in outputs),
    )


def check_draft_page_numbers(
    draft_dir: Path,
    fix: bool = False,
    dry_run: bool = False,
) -> MigrationReport:
    """Report records whose `pageNum` disagrees with their filename; optionally fix them."""

    name = "check-pages"
    if not draft_dir.is_dir():
        return MigrationReport(name=name, dry_run=dry_run, skipped_reason="draft directory not found")

    store = ArtifactStore(draft_dir)
    mismatches: list[PageNumberMismatch] = []
    errors: list[str] = []
    written: list[Path] = []
    for path in sorted(draft_dir.iterdir()):
        expected = parse_page_filename(path.name, "json")
        if expected is None or not path.is_file():
            continue
        try:
            payload = store.load_json_object(path.name)
        except ValueError as exc:
            errors.append(str(exc))
            continue
        declared = payload.get("pageNum")
        if declared == expected and not isinstance(declared, bool):
            continue
        mismatches.append(PageNumberMismatch(filename=path.name, declared=declared, expected=expected))
        if fix:
            written.append(path)
            if not dry_run:
                store.save_json(path.name, {**payload, "pageNum": expected})

    return MigrationReport(
        name=name,
        dry_run=dry_run,
        written=tuple(written),
        mismatches=tuple(mismatches),
        errors=tuple(errors),
    )
