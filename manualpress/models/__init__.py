"""Shared typed data models for manualpress.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    CleanedDirectory,
    CleanReport,
    DatasetCounts,
    DatasetMetadata,
    ManifestSource,
    ManualManifest,
    NavigationState,
    PageArtifact,
    PageEntry,
    PageOutcome,
    PagesDataset,
    PipelineRunResult,
    RegistryEntry,
    TranslationMetadata,
    TranslationRecord,
    TranslationSummary,
)

__all__ = [
    "CleanedDirectory",
    "CleanReport",
    "DatasetCounts",
    "DatasetMetadata",
    "ManifestSource",
    "ManualManifest",
    "NavigationState",
    "PageArtifact",
    "PageEntry",
    "PageOutcome",
    "PagesDataset",
    "PipelineRunResult",
    "RegistryEntry",
    "TranslationMetadata",
    "TranslationRecord",
    "TranslationSummary",
]
