"""Translation stage for extracted page text.

Responsibilities:
- Translate every extracted page exactly once, skipping pages with a record.
- Run pages in disjoint batches on a bounded thread pool, batches in sequence.
- Isolate per-page failures into error reports and a run summary.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ..config import ManualConfig, resolve_api_key
from ..errors import PageError, StageFatalError
from ..io.page_files import scan_page_files
from ..io.storage import ArtifactStore
from ..llm.clients import ProviderError
from ..llm.translator import Translator
from ..models.datatypes import (
    PageOutcome,
    TranslationMetadata,
    TranslationRecord,
    TranslationSummary,
)
from ..parsing import page_filename, utc_timestamp
from ..provider_factory import ProviderFactory
from ..telemetry.logger import RunLogger
from .artifacts import (
    error_report_payload,
    translation_record_from_payload,
    translation_record_payload,
)

PageProgressCallback = Callable[[str, int, int, str], None]
TranslatorFactory = Callable[[ManualConfig], Translator]

EMPTY_SOURCE_METHOD = "empty-source"


def default_translator_factory(config: ManualConfig) -> Translator:
    """Build the configured provider translator using the environment API key."""

    api_key = resolve_api_key(config.settings)
    return ProviderFactory.create_translator(config.settings, api_key)


def error_report_name(page_num: int) -> str:
    return f"translation-error-{page_filename(page_num, 'json')}"


class TranslationStage:
    """Translate a manual's extracted pages into per-page translation records."""

    stage_name = "translate"

    def __init__(
        self,
        translator_factory: TranslatorFactory | None = None,
        run_logger: RunLogger | None = None,
        progress_callback: PageProgressCallback | None = None,
    ) -> None:
        self._translator_factory = translator_factory or default_translator_factory
        self._run_logger = run_logger
        self._progress_callback = progress_callback

    def translate(self, config: ManualConfig) -> TranslationSummary:
        """Translate all pending pages and return success/skipped/failed counts."""

        pages = scan_page_files(config.extracted_dir, "txt", stage=self.stage_name)
        if not pages:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"No extracted text files found in {config.extracted_dir}",
                hint="Run `manualpress extract` for this manual first.",
            )

        total = len(pages)
        drafts = ArtifactStore(config.draft_dir)
        outcomes: list[PageOutcome] = []
        pending: list[tuple[int, Path]] = []
        for page_num, text_path in pages:
            if self._has_record(drafts, page_num):
                outcomes.append(PageOutcome(page_num=page_num, status="skipped"))
                self._report(page_num, total, "skipped")
            else:
                pending.append((page_num, text_path))

        if pending:
            translator = self._translator_factory(config)
            batch_size = config.settings.batch_size
            for start in range(0, len(pending), batch_size):
                batch = pending[start : start + batch_size]
                outcomes.extend(self._run_batch(config, translator, batch, total))

        failed_pages = tuple(
            sorted(outcome.page_num for outcome in outcomes if outcome.status == "failed")
        )
        return TranslationSummary(
            success=sum(1 for outcome in outcomes if outcome.status == "success"),
            skipped=sum(1 for outcome in outcomes if outcome.status == "skipped"),
            failed=len(failed_pages),
            failed_pages=failed_pages,
        )

    def _has_record(self, drafts: ArtifactStore, page_num: int) -> bool:
        """Return whether a valid record exists; drifted records are fatal."""

        name = page_filename(page_num, "json")
        if not drafts.exists(name):
            return False
        try:
            record = translation_record_from_payload(drafts.load_json_object(name), name)
        except ValueError as exc:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Unreadable translation record: {exc}",
                hint=f"Delete `{drafts.root / name}` to translate the page again.",
            ) from exc
        if record.page_num != page_num:
            raise StageFatalError(
                stage=self.stage_name,
                detail=(
                    f"Translation record {name} declares pageNum {record.page_num}, "
                    f"expected {page_num}."
                ),
                hint="Run `manualpress migrate check-pages --fix` for this manual.",
            )
        return True

    def _run_batch(
        self,
        config: ManualConfig,
        translator: Translator,
        batch: list[tuple[int, Path]],
        total: int,
    ) -> list[PageOutcome]:
        """Translate one batch concurrently; collect outcomes as they complete."""

        outcomes: list[PageOutcome] = []
        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = {
                executor.submit(self._translate_page, config, translator, page_num, text_path): page_num
                for page_num, text_path in batch
            }
            for future in as_completed(futures):
                page_num = futures[future]
                try:
                    future.result()
                except PageError as exc:
                    self._write_error_report(config, page_num, exc.detail)
                    outcomes.append(PageOutcome(page_num=page_num, status="failed", error=exc.detail))
                    self._report(page_num, total, "failed")
                    continue
                outcomes.append(PageOutcome(page_num=page_num, status="success"))
                self._report(page_num, total, "success")
        return outcomes

    def _translate_page(
        self,
        config: ManualConfig,
        translator: Translator,
        page_num: int,
        text_path: Path,
    ) -> TranslationRecord:
        """Translate and persist one page; any failure is raised as `PageError`."""

        try:
            source_text = text_path.read_text(encoding="utf-8")
            if not source_text.strip():
                record = TranslationRecord(
                    page_num=page_num,
                    translation="",
                    metadata=TranslationMetadata(
                        translated_at=utc_timestamp(),
                        method=EMPTY_SOURCE_METHOD,
                        model=translator.model,
                        attempts=0,
                    ),
                )
            else:
                record = translator.translate_page(page_num, source_text)
            drafts = ArtifactStore(config.draft_dir)
            drafts.save_json(page_filename(page_num, "json"), translation_record_payload(record))
        except (ProviderError, OSError) as exc:
            raise PageError(
                stage=self.stage_name,
                page_num=page_num,
                detail=str(exc),
                hint="Rerun `manualpress translate`; completed pages are skipped.",
            ) from exc
        except Exception as exc:
            raise PageError(
                stage=self.stage_name,
                page_num=page_num,
                detail=f"{type(exc).__name__}: {exc}",
                hint="Check the translator output for this page, then rerun `manualpress translate`.",
            ) from exc
        ArtifactStore(config.inbox_dir).remove(error_report_name(page_num))
        return record

    def _write_error_report(self, config: ManualConfig, page_num: int, error: str) -> None:
        ArtifactStore(config.inbox_dir).save_json(
            error_report_name(page_num),
            error_report_payload(page_num, error, utc_timestamp()),
        )

    def _report(self, page_num: int, total: int, status: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_page(self.stage_name, page_num, status)
        if self._progress_callback is not None:
            self._progress_callback(self.stage_name, page_num, total, status)
