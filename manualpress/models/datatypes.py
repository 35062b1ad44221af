"""Core datatypes shared across manualpress modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Carry an explicit `page_num` through every per-page record.

Key types:
- `PageArtifact`, `TranslationRecord`, `PageEntry`, `PagesDataset`,
  `ManualManifest`, `RegistryEntry`, and the stage summaries
  `TranslationSummary`, `DatasetCounts`, and `CleanReport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True, slots=True)
class PageArtifact:
    """Files derived from one source page.

    Attributes:
        page_num: 1-based page number.
        split_pdf: Single-page PDF produced by the splitter.
        image: Rendered PNG image.
        text: Extracted source-language text file.
        record: Translation record JSON file.
    """

    page_num: int
    split_pdf: Path | None = None
    image: Path | None = None
    text: Path | None = None
    record: Path | None = None


@dataclass(frozen=True, slots=True)
class TranslationMetadata:
    """Provenance of one translated page."""

    translated_at: str
    method: str
    model: str
    attempts: int = 1


@dataclass(frozen=True, slots=True)
class TranslationRecord:
    """Persisted translation output for one page; the unit of idempotence."""

    page_num: int
    translation: str
    metadata: TranslationMetadata


@dataclass(frozen=True, slots=True)
class PageEntry:
    """One render-ready dataset row.

    Attributes:
        page_num: 1-based page number.
        image: Public image path derived from slug and page number.
        title: First markdown heading of the page, or `Page N`.
        section_name: Detected section label, or `None`.
        content: Page text in the dataset language.
        has_content: Whether `content` is non-empty after trimming.
        tags: Keyword tags derived from title and section.
    """

    page_num: int
    image: str
    title: str
    section_name: str | None
    content: str
    has_content: bool
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class DatasetMetadata:
    """Header of one page-indexed dataset file."""

    processed_at: str
    language: str
    method: str
    image_format: str
    image_dpi: int


@dataclass(frozen=True, slots=True)
class PagesDataset:
    """Page-indexed dataset for one language."""

    metadata: DatasetMetadata
    pages: tuple[PageEntry, ...]

    @property
    def content_pages(self) -> int:
        """Return the number of pages that carry text."""

        return sum(1 for page in self.pages if page.has_content)


@dataclass(frozen=True, slots=True)
class ManifestSource:
    """Source-document provenance recorded in a manifest."""

    filename: str
    processed_at: str
    image_dpi: int
    image_format: str


@dataclass(frozen=True, slots=True)
class ManualManifest:
    """Aggregate metadata for one manual, regenerated wholesale on every build."""

    title: str
    version: str
    total_pages: int
    content_pages: int
    last_updated: str
    source: ManifestSource | None = None


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    """Validated manifest and datasets of one published manual."""

    manifest: ManualManifest
    pages: PagesDataset
    datasets: Mapping[str, PagesDataset] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PageOutcome:
    """Result of translating one page."""

    page_num: int
    status: str
    error: str | None = None


@dataclass(frozen=True, slots=True)
class TranslationSummary:
    """Aggregated translator counts for one run."""

    success: int
    skipped: int
    failed: int
    failed_pages: tuple[int, ...] = field(default_factory=tuple)

    @property
    def exit_code(self) -> int:
        """Return the process exit code implied by this summary."""

        return 1 if self.failed > 0 else 0


@dataclass(frozen=True, slots=True)
class DatasetCounts:
    """Page counts written by the dataset builder."""

    primary_language: str
    primary_pages: int
    secondary_language: str
    secondary_pages: int


@dataclass(frozen=True, slots=True)
class CleanedDirectory:
    """Removal statistics for one cleaned directory."""

    label: str
    path: Path
    removed_items: int
    removed_bytes: int


@dataclass(frozen=True, slots=True)
class CleanReport:
    """Result of resetting a manual's pipeline-owned directories."""

    slug: str
    directories: tuple[CleanedDirectory, ...]

    @property
    def removed_items(self) -> int:
        """Return the total number of removed top-level items."""

        return sum(item.removed_items for item in self.directories)


@dataclass(frozen=True, slots=True)
class PipelineRunResult:
    """Outcome of chaining all stages for one manual.

    `dataset` and `manifest` stay `None` when translation left failed pages.
    """

    page_count: int
    rendered: int
    extracted: int
    translation: TranslationSummary
    artifacts: tuple[PageArtifact, ...] = field(default_factory=tuple)
    dataset: DatasetCounts | None = None
    manifest: ManualManifest | None = None


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Previous/next availability for a page within a manual."""

    can_go_to_prev: bool
    can_go_to_next: bool
