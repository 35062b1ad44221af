"""Top-level package for manualpress.

This package converts a hardware manual PDF into page images, extracted text,
per-page translations, and bilingual page-indexed datasets for a static docs
viewer. The main orchestration entry point is `ManualPipeline`; published
manuals are read back through `ManualRegistry`.
"""

from .pipeline import ManualPipeline
from .registry import ManualRegistry

__all__ = ["ManualPipeline", "ManualRegistry", "__version__"]

__version__ = "0.1.0"
