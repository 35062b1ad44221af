"""Reset of a manual's pipeline-owned directories.

Responsibilities:
- Empty and recreate every stage output directory of one slug.
- Never touch the source PDF directory.
"""

from __future__ import annotations

from pathlib import Path

from ..config import ManualLayout
from ..errors import StageFatalError
from ..io.storage import clear_directory
from ..models.datatypes import CleanedDirectory, CleanReport


def _is_within(path: Path, parent: Path) -> bool:
    resolved = path.resolve()
    resolved_parent = parent.resolve()
    return resolved == resolved_parent or resolved_parent in resolved.parents


class ManualCleaner:
    """Delete generated artifacts of one manual."""

    stage_name = "clean"

    def clean(self, config: ManualLayout) -> CleanReport:
        """Empty every owned directory and return per-directory removal stats."""

        targets = config.owned_directories()
        for label, path in targets:
            if _is_within(path, config.source_pdf_dir) or _is_within(config.source_pdf_dir, path):
                raise StageFatalError(
                    stage=self.stage_name,
                    detail=f"Refusing to clean {label.lower()} at {path}: overlaps the source PDF directory.",
                    hint="Fix the project layout so stage outputs live outside `manual-pdf/`.",
                )

        cleaned = []
        for label, path in targets:
            removed_items, removed_bytes = clear_directory(path)
            cleaned.append(
                CleanedDirectory(
                    label=label,
                    path=path,
                    removed_items=removed_items,
                    removed_bytes=removed_bytes,
                )
            )
        return CleanReport(slug=config.slug, directories=tuple(cleaned))
