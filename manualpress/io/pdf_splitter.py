"""Source PDF splitting into single-page PDFs.

Responsibilities:
- Parse the source PDF once and write `page-NNN.pdf` for every page 1..N.
- Keep the split directory all-or-nothing: a failed run leaves no page files.
- Remove stale split pages from earlier runs of a longer document.
"""

from __future__ import annotations

from pathlib import Path

from pypdf import PdfReader, PdfWriter

from ..config import ManualConfig
from ..errors import StageFatalError
from ..parsing import page_filename
from .page_files import prune_stale_pages


class PdfSplitter:
    """Split a manual's source PDF into one PDF file per page."""

    stage_name = "split"

    def split(self, config: ManualConfig) -> int:
        """Write one single-page PDF per source page and return the page count."""

        reader = self._open(config.source_pdf)
        try:
            page_count = len(reader.pages)
        except Exception as exc:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Failed to read page tree of {config.source_pdf.name}: {exc}",
                hint="Verify the source PDF opens in a PDF viewer.",
            ) from exc
        if page_count == 0:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Source PDF has no pages: {config.source_pdf.name}",
                hint="Replace the source PDF with a document that contains pages.",
            )

        split_dir = config.split_dir
        split_dir.mkdir(parents=True, exist_ok=True)
        try:
            for page_num, page in enumerate(reader.pages, start=1):
                writer = PdfWriter()
                writer.add_page(page)
                target = split_dir / page_filename(page_num, "pdf")
                with target.open("wb") as handle:
                    writer.write(handle)
        except Exception as exc:
            prune_stale_pages(split_dir, "pdf", 0)
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Failed while writing split pages: {exc}",
                hint="Check free disk space and permissions, then rerun `manualpress split`.",
            ) from exc

        prune_stale_pages(split_dir, "pdf", page_count)
        return page_count

    def _open(self, source_pdf: Path) -> PdfReader:
        try:
            return PdfReader(str(source_pdf))
        except Exception as exc:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Failed to parse source PDF {source_pdf.name}: {exc}",
                hint="Verify the source PDF is not corrupted or encrypted.",
            ) from exc
