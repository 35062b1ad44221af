"""Pipeline orchestration for manualpress.

Responsibilities:
- Expose every stage of the manual pipeline as an independently runnable step.
- Chain the stages for one manual in a fixed order for `run_all`.

Key types:
- `ManualPipeline`: orchestration facade over the stage implementations.
"""

from __future__ import annotations

from collections.abc import Callable

from ..config import ManualConfig, ManualLayout
from ..errors import StageFatalError
from ..io.page_files import collect_page_artifacts
from ..io.page_renderer import PageRenderer
from ..io.pdf_splitter import PdfSplitter
from ..io.pdf_text_extractor import TextExtractionStage
from ..models.datatypes import (
    CleanReport,
    DatasetCounts,
    ManualManifest,
    PipelineRunResult,
    TranslationSummary,
)
from ..telemetry.logger import RunLogger
from .cleaning import ManualCleaner
from .dataset import DatasetBuilder
from .manifesting import ManifestBuilder
from .telemetry import PipelineTelemetryMixin
from .translation import PageProgressCallback, TranslationStage, TranslatorFactory


class ManualPipeline(PipelineTelemetryMixin):
    """Coordinate the stages that turn one source PDF into a published manual."""

    def __init__(
        self,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        page_progress_callback: PageProgressCallback | None = None,
        translator_factory: TranslatorFactory | None = None,
    ) -> None:
        """Initialize optional logging, progress hooks, and translator injection."""

        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._page_progress_callback = page_progress_callback
        self._translator_factory = translator_factory

    def split(self, config: ManualConfig) -> int:
        """Split the source PDF and return the page count."""

        return self._run_stage("split", config.slug, lambda: PdfSplitter().split(config))

    def render(self, config: ManualConfig) -> int:
        """Render split pages to PNG and return the image count."""

        renderer = PageRenderer(run_logger=self._run_logger)
        return self._run_stage("render", config.slug, lambda: renderer.render(config))

    def extract_text(self, config: ManualConfig) -> int:
        """Extract page text and return the text file count."""

        extractor = TextExtractionStage(run_logger=self._run_logger)
        return self._run_stage("extract", config.slug, lambda: extractor.extract_text(config))

    def translate(self, config: ManualConfig) -> TranslationSummary:
        """Translate pending pages and return the run summary."""

        stage = TranslationStage(
            translator_factory=self._translator_factory,
            run_logger=self._run_logger,
            progress_callback=self._page_progress_callback,
        )
        return self._run_stage("translate", config.slug, lambda: stage.translate(config))

    def build_dataset(self, config: ManualConfig) -> DatasetCounts:
        """Build both language datasets and return their page counts."""

        builder = DatasetBuilder(run_logger=self._run_logger)
        return self._run_stage("build", config.slug, lambda: builder.build_dataset(config))

    def build_manifest(self, config: ManualConfig) -> ManualManifest:
        """Write the manual manifest and return it."""

        return self._run_stage(
            "manifest", config.slug, lambda: ManifestBuilder().build_manifest(config)
        )

    def clean(self, config: ManualLayout) -> CleanReport:
        """Reset every pipeline-owned directory of the manual."""

        return self._run_stage("clean", config.slug, lambda: ManualCleaner().clean(config))

    def run_all(self, config: ManualConfig) -> PipelineRunResult:
        """Run split through manifest, stopping after a translation with failed pages."""

        page_count = self.split(config)
        rendered = self.render(config)
        extracted = self.extract_text(config)
        self._require_complete_pages(config, page_count)
        translation = self.translate(config)
        artifacts = collect_page_artifacts(config, page_count)
        if translation.failed > 0:
            if self._run_logger is not None:
                self._run_logger.log_warning(
                    "translate",
                    "run_stopped",
                    slug=config.slug,
                    failed=translation.failed,
                )
            return PipelineRunResult(
                page_count=page_count,
                rendered=rendered,
                extracted=extracted,
                translation=translation,
                artifacts=artifacts,
            )
        dataset = self.build_dataset(config)
        manifest = self.build_manifest(config)
        return PipelineRunResult(
            page_count=page_count,
            rendered=rendered,
            extracted=extracted,
            translation=translation,
            artifacts=artifacts,
            dataset=dataset,
            manifest=manifest,
        )

    @staticmethod
    def _require_complete_pages(config: ManualConfig, page_count: int) -> None:
        """Fail when any page lacks its split PDF, image, or extracted text."""

        incomplete = [
            artifact.page_num
            for artifact in collect_page_artifacts(config, page_count)
            if artifact.split_pdf is None or artifact.image is None or artifact.text is None
        ]
        if incomplete:
            raise StageFatalError(
                stage="extract",
                detail=(
                    f"Pages without a split PDF, image, or text file: "
                    f"{', '.join(str(num) for num in incomplete)}."
                ),
                hint="Run `manualpress clean` and rebuild the manual from the split stage.",
            )
