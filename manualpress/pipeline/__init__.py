"""Manual pipeline package.

This package contains the stage implementations that turn a source PDF into
page-indexed datasets, plus the orchestration facade that chains them.
"""

from .orchestrator import ManualPipeline

__all__ = ["ManualPipeline"]
