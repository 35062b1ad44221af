"""Page-indexed file discovery for stage inputs and outputs.

Responsibilities:
- Decode `page-NNN.<suffix>` names into page numbers exactly once, at ingestion.
- Validate that a stage directory holds the contiguous sequence 1..N.
- Remove stale page files left over from earlier, longer runs.
- Collect the per-page artifact set of a manual.
"""

from __future__ import annotations

from pathlib import Path

from ..config import ManualLayout
from ..errors import StageFatalError
from ..models.datatypes import PageArtifact
from ..parsing import page_filename, parse_page_filename


def scan_page_files(directory: Path, suffix: str, *, stage: str) -> list[tuple[int, Path]]:
    """Return `(page_num, path)` pairs sorted ascending and validated as 1..N.

    Files whose names start with `page-` and end with `.<suffix>` but are not
    canonical page names count as drift. Other files are ignored.

    Raises:
        StageFatalError: If the directory is missing, or the sequence has gaps,
            duplicates, or non-canonical page names.
    """

    if not directory.is_dir():
        raise StageFatalError(
            stage=stage,
            detail=f"Input directory not found: {directory}",
            hint="Run the previous pipeline stage for this manual first.",
        )

    pages: list[tuple[int, Path]] = []
    for path in directory.iterdir():
        if not path.is_file() or not path.name.endswith(f".{suffix}"):
            continue
        page_num = parse_page_filename(path.name, suffix)
        if page_num is None:
            if path.name.startswith("page-"):
                raise StageFatalError(
                    stage=stage,
                    detail=f"Non-canonical page file name: {path.name}",
                    hint="Run `manualpress clean` and rebuild the manual from the split stage.",
                )
            continue
        pages.append((page_num, path))

    pages.sort(key=lambda item: item[0])
    expected = list(range(1, len(pages) + 1))
    actual = [page_num for page_num, _ in pages]
    if actual != expected:
        missing = sorted(set(expected) - set(actual))
        raise StageFatalError(
            stage=stage,
            detail=(
                f"Page files in {directory} are not a contiguous 1..{len(pages)} sequence "
                f"(missing: {', '.join(str(num) for num in missing) or 'none'})."
            ),
            hint="Run `manualpress clean` and rebuild the manual from the split stage.",
        )
    return pages


def prune_stale_pages(directory: Path, suffix: str, page_count: int) -> int:
    """Delete canonical page files numbered above `page_count`; return removed count."""

    if not directory.is_dir():
        return 0
    removed = 0
    for path in directory.iterdir():
        page_num = parse_page_filename(path.name, suffix)
        if page_num is not None and page_num > page_count and path.is_file():
            path.unlink()
            removed += 1
    return removed


def collect_page_artifacts(layout: ManualLayout, page_count: int) -> tuple[PageArtifact, ...]:
    """Return one `PageArtifact` per page 1..`page_count` with the files present on disk."""

    def _existing(directory: Path, page_num: int, suffix: str) -> Path | None:
        path = directory / page_filename(page_num, suffix)
        return path if path.is_file() else None

    return tuple(
        PageArtifact(
            page_num=page_num,
            split_pdf=_existing(layout.split_dir, page_num, "pdf"),
            image=_existing(layout.image_dir, page_num, "png"),
            text=_existing(layout.extracted_dir, page_num, "txt"),
            record=_existing(layout.draft_dir, page_num, "json"),
        )
        for page_num in range(1, page_count + 1)
    )
