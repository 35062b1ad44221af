"""Filesystem and PDF input/output stages."""

from .page_renderer import PageRenderer
from .pdf_splitter import PdfSplitter
from .pdf_text_extractor import PdfExtractionError, PdfTextExtractor, TextExtractionStage
from .storage import ArtifactStore

__all__ = [
    "ArtifactStore",
    "PageRenderer",
    "PdfExtractionError",
    "PdfSplitter",
    "PdfTextExtractor",
    "TextExtractionStage",
]
