"""PDF text extraction for single-page PDFs.

Responsibilities:
- Extract plain text from each split page with `pdftotext`.
- Fall back to `pypdf` when the system PDF tools are unavailable.
- Write trimmed, otherwise verbatim text as `page-NNN.txt`.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from pypdf import PdfReader

from ..config import ManualConfig
from ..errors import StageFatalError
from ..parsing import page_filename
from ..runtime_tools import resolve_executable
from ..telemetry.logger import RunLogger
from .page_files import prune_stale_pages, scan_page_files
from .storage import write_text_atomic


class PdfExtractionError(RuntimeError):
    """Raised when text extraction from PDF cannot be completed."""


class PdfTextExtractor:
    """Extractor for text-based PDFs using the `pdftotext` tool."""

    def extract(self, pdf_path: Path) -> str:
        """Extract the text of a single-page PDF; empty text is a valid result."""

        try:
            output = self._run_pdftotext(pdf_path)
            return output.replace("\f", "\n").strip()
        except PdfExtractionError as exc:
            if not self._is_missing_binary_error(exc):
                raise
        return self._extract_with_pypdf(pdf_path).strip()

    def _run_pdftotext(self, pdf_path: Path) -> str:
        if not pdf_path.exists():
            raise PdfExtractionError(f"Input PDF not found: {pdf_path}")

        command = [resolve_executable("pdftotext"), "-enc", "UTF-8"]
        command.extend([str(pdf_path), "-"])

        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise PdfExtractionError(
                "The `pdftotext` command is required but was not found."
            ) from exc

        if result.returncode != 0:
            details = result.stderr.strip() or "unknown error"
            raise PdfExtractionError(f"pdftotext failed for {pdf_path}: {details}")

        return result.stdout

    def _extract_with_pypdf(self, pdf_path: Path) -> str:
        """Extract page text with `pypdf` when system PDF tools are unavailable."""

        if not pdf_path.exists():
            raise PdfExtractionError(f"Input PDF not found: {pdf_path}")
        try:
            reader = PdfReader(str(pdf_path))
            texts = [(page.extract_text() or "") for page in reader.pages]
        except Exception as exc:
            raise PdfExtractionError(f"pypdf failed for {pdf_path}: {exc}") from exc
        return "\n".join(texts).replace("\f", "\n")

    def _is_missing_binary_error(self, error: PdfExtractionError) -> bool:
        """Return whether extraction failed due to unavailable external PDF binaries."""

        detail = str(error)
        return detail.endswith("command is required but was not found.")


class TextExtractionStage:
    """Extract text for every split page of one manual."""

    stage_name = "extract"

    def __init__(
        self,
        extractor: PdfTextExtractor | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._extractor = extractor if extractor is not None else PdfTextExtractor()
        self._run_logger = run_logger

    def extract_text(self, config: ManualConfig) -> int:
        """Write `page-NNN.txt` for each split page and return the count."""

        pages = scan_page_files(config.split_dir, "pdf", stage=self.stage_name)
        if not pages:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"No split pages found in {config.split_dir}",
                hint="Run `manualpress split` for this manual first.",
            )

        config.extracted_dir.mkdir(parents=True, exist_ok=True)
        for page_num, pdf_path in pages:
            try:
                text = self._extractor.extract(pdf_path)
            except PdfExtractionError as exc:
                raise StageFatalError(
                    stage=self.stage_name,
                    detail=f"Failed to extract text from page {page_num}: {exc}",
                    hint="Install poppler-utils (`pdftotext`) or verify the split page PDF.",
                ) from exc
            write_text_atomic(config.extracted_dir / page_filename(page_num, "txt"), text)
            if self._run_logger is not None:
                self._run_logger.log_page(
                    self.stage_name, page_num, "extracted", chars=len(text)
                )

        prune_stale_pages(config.extracted_dir, "txt", len(pages))
        return len(pages)
