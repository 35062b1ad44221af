"""Read-only registry of published manuals.

Responsibilities:
- Discover published manuals under the public directory.
- Load and validate each manual's manifest and datasets on first access.
- Answer manifest and page lookups for the site build.

Key types:
- `ManualRegistry`: read-through cache keyed by slug.
"""

from __future__ import annotations

from pathlib import Path
import re

from .errors import ConsistencyError, NotFoundError
from .io.storage import ArtifactStore
from .models.datatypes import (
    ManualManifest,
    NavigationState,
    PageEntry,
    PagesDataset,
    RegistryEntry,
)
from .pipeline.artifacts import dataset_from_payload, manifest_from_payload

_SLUG_RE = re.compile(r"[a-z0-9-]+")
_DATASET_RE = re.compile(r"pages-(?P<language>[A-Za-z0-9_-]+)\.json")

DEFAULT_BASE_PATH = "/manuals"


def asset_url(url: str, base_path: str = DEFAULT_BASE_PATH) -> str:
    """Prefix a public asset URL with the site base path.

    External `http(s)` URLs and URLs that already carry the prefix are
    returned unchanged.
    """

    if url.startswith("http"):
        return url
    prefix = base_path.rstrip("/")
    if not prefix or url.startswith(f"{prefix}/"):
        return url
    normalized = url if url.startswith("/") else f"/{url}"
    return f"{prefix}{normalized}"


def navigation_state(current_page: int, total_pages: int) -> NavigationState:
    """Return previous/next availability for `current_page`."""

    return NavigationState(
        can_go_to_prev=current_page > 1,
        can_go_to_next=current_page < total_pages,
    )


class ManualRegistry:
    """Validated, lazily loaded view over every manual under `public_dir`."""

    def __init__(self, public_dir: Path, primary_language: str = "ja") -> None:
        self.public_dir = public_dir
        self.primary_language = primary_language
        self._entries: dict[str, RegistryEntry] = {}
        self._slugs: tuple[str, ...] | None = None

    def available_manuals(self) -> list[str]:
        """Return slugs of all published manuals, sorted alphabetically."""

        if self._slugs is None:
            if self.public_dir.is_dir():
                self._slugs = tuple(
                    sorted(
                        path.name
                        for path in self.public_dir.iterdir()
                        if _SLUG_RE.fullmatch(path.name)
                        and (path / "data" / "manifest.json").is_file()
                    )
                )
            else:
                self._slugs = ()
        return list(self._slugs)

    def is_valid_manual(self, slug: str) -> bool:
        return slug in self.available_manuals()

    def get_entry(self, slug: str) -> RegistryEntry:
        """Return the validated entry for `slug`, loading it on first access."""

        entry = self._entries.get(slug)
        if entry is not None:
            return entry
        if not self.is_valid_manual(slug):
            raise NotFoundError(slug)
        entry = self._load_entry(slug)
        self._entries[slug] = entry
        return entry

    def get_manifest(self, slug: str) -> ManualManifest:
        """Return the manifest of `slug`; unknown slugs raise `NotFoundError`."""

        return self.get_entry(slug).manifest

    def get_pages(self, slug: str, language: str | None = None) -> tuple[PageEntry, ...]:
        """Return all pages of one dataset, or an empty tuple for unknown languages."""

        entry = self.get_entry(slug)
        dataset = entry.datasets.get(language or self.primary_language)
        if dataset is None:
            return ()
        return dataset.pages

    def get_page(self, slug: str, page_num: int, language: str | None = None) -> PageEntry | None:
        """Return page `page_num` of `slug`, or `None` outside `1..totalPages`."""

        pages = self.get_pages(slug, language)
        if page_num < 1 or page_num > len(pages):
            return None
        return pages[page_num - 1]

    def get_manual_title(self, slug: str) -> str:
        return self.get_manifest(slug).title

    def get_total_pages(self, slug: str) -> int:
        return self.get_manifest(slug).total_pages

    def page_exists(self, slug: str, page_num: int) -> bool:
        return 1 <= page_num <= self.get_total_pages(slug)

    def navigation_state(self, slug: str, page_num: int) -> NavigationState:
        return navigation_state(page_num, self.get_total_pages(slug))

    def all_page_numbers(self, slug: str) -> list[int]:
        """Return every page number of `slug` for static route generation."""

        return list(range(1, self.get_total_pages(slug) + 1))

    def validate_all(self) -> list[RegistryEntry]:
        """Load every discovered manual, raising on the first inconsistency."""

        return [self.get_entry(slug) for slug in self.available_manuals()]

    def _load_entry(self, slug: str) -> RegistryEntry:
        """Load manifest and datasets of one slug and run consistency checks."""

        data_dir = self.public_dir / slug / "data"
        store = ArtifactStore(data_dir)
        try:
            manifest = manifest_from_payload(store.load_json_object("manifest.json"), f"{slug}/manifest.json")
        except ValueError as exc:
            raise ConsistencyError(
                f"Manual `{slug}` has an unreadable manifest: {exc}",
                hint=f"Run `manualpress manifest --slug {slug}`.",
            ) from exc

        datasets: dict[str, PagesDataset] = {}
        for path in sorted(data_dir.iterdir()):
            match = _DATASET_RE.fullmatch(path.name)
            if match is None or not path.is_file():
                continue
            language = match.group("language")
            try:
                datasets[language] = dataset_from_payload(
                    store.load_json_object(path.name), f"{slug}/{path.name}"
                )
            except ValueError as exc:
                raise ConsistencyError(
                    f"Manual `{slug}` has an unreadable dataset: {exc}",
                    hint=f"Run `manualpress build --slug {slug}`.",
                ) from exc

        primary = datasets.get(self.primary_language)
        if primary is None:
            raise ConsistencyError(
                f"Manual `{slug}` has no `pages-{self.primary_language}.json` dataset.",
                hint=f"Run `manualpress build --slug {slug}`.",
            )

        self._check_counts(slug, manifest, primary)
        for language, dataset in datasets.items():
            self._check_sequence(slug, language, manifest, dataset)
        self._check_images(slug, primary)
        return RegistryEntry(manifest=manifest, pages=primary, datasets=datasets)

    @staticmethod
    def _check_counts(slug: str, manifest: ManualManifest, dataset: PagesDataset) -> None:
        if manifest.content_pages != dataset.content_pages:
            raise ConsistencyError(
                f"Manual `{slug}`: manifest contentPages {manifest.content_pages} "
                f"!= {dataset.content_pages} pages with content.",
                hint=f"Run `manualpress manifest --slug {slug}`.",
            )

    @staticmethod
    def _check_sequence(
        slug: str,
        language: str,
        manifest: ManualManifest,
        dataset: PagesDataset,
    ) -> None:
        if manifest.total_pages != len(dataset.pages):
            raise ConsistencyError(
                f"Manual `{slug}`: manifest totalPages {manifest.total_pages} "
                f"!= {len(dataset.pages)} pages in pages-{language}.json.",
                hint=f"Run `manualpress build --slug {slug}` and `manualpress manifest --slug {slug}`.",
            )
        for expected, entry in enumerate(dataset.pages, start=1):
            if entry.page_num != expected:
                raise ConsistencyError(
                    f"Manual `{slug}`: pages-{language}.json has pageNum {entry.page_num} "
                    f"at position {expected}.",
                    hint=f"Run `manualpress build --slug {slug}`.",
                )

    def _check_images(self, slug: str, dataset: PagesDataset) -> None:
        """Require every page image to resolve to an existing file under the slug."""

        slug_root = (self.public_dir / slug).resolve()
        for entry in dataset.pages:
            image_path = (self.public_dir / entry.image.lstrip("/")).resolve()
            if slug_root not in image_path.parents or not image_path.is_file():
                raise ConsistencyError(
                    f"Manual `{slug}`: image for page {entry.page_num} not found: {entry.image}",
                    hint=f"Run `manualpress render --slug {slug}`.",
                )
