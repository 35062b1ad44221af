"""Manifest builder for published manuals.

Responsibilities:
- Derive aggregate manifest metadata from the primary-language dataset.
- Persist `manifest.json` wholesale on every build.
"""

from __future__ import annotations

from ..config import ManualConfig
from ..errors import StageFatalError
from ..io.storage import ArtifactStore
from ..models.datatypes import ManifestSource, ManualManifest
from ..parsing import utc_timestamp
from .artifacts import dataset_from_payload, manifest_payload

MANIFEST_VERSION = "1.0.0"

_CURATED_TITLES = {
    "oxi-one-mk2": "OXI ONE MKII Manual",
    "oxi-coral": "OXI Coral Manual",
}


def manual_title(slug: str) -> str:
    """Return the display title for a slug."""

    curated = _CURATED_TITLES.get(slug)
    if curated is not None:
        return curated
    return f"{slug.upper().replace('-', ' ')} Manual"


class ManifestBuilder:
    """Build `manifest.json` from the primary-language dataset."""

    stage_name = "manifest"

    def build_manifest(self, config: ManualConfig) -> ManualManifest:
        """Compute and write the manifest; return the written record."""

        settings = config.settings
        dataset_path = config.dataset_path(settings.target_language)
        if not dataset_path.is_file():
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Dataset not found: {dataset_path}",
                hint="Run `manualpress build` for this manual first.",
            )
        store = ArtifactStore(config.data_dir)
        try:
            dataset = dataset_from_payload(store.load_json_object(dataset_path.name), dataset_path.name)
        except ValueError as exc:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Dataset is malformed: {exc}",
                hint="Run `manualpress build` to regenerate the dataset.",
            ) from exc

        manifest = ManualManifest(
            title=manual_title(config.slug),
            version=MANIFEST_VERSION,
            total_pages=len(dataset.pages),
            content_pages=dataset.content_pages,
            last_updated=utc_timestamp(),
            source=ManifestSource(
                filename=config.source_pdf.name,
                processed_at=dataset.metadata.processed_at,
                image_dpi=settings.image_dpi,
                image_format=settings.image_format,
            ),
        )
        store.save_json(config.manifest_path.name, manifest_payload(manifest))
        return manifest
