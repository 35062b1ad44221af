"""Dataset builder for page-indexed bilingual datasets.

Responsibilities:
- Assemble translation records and extracted text into `pages-<lang>.json`.
- Derive page titles, section names, and tags from the translated text.
- Validate record numbering against the extracted page sequence.
"""

from __future__ import annotations

import re

from ..config import ManualConfig
from ..errors import StageFatalError
from ..io.page_files import scan_page_files
from ..io.storage import ArtifactStore
from ..models.datatypes import (
    DatasetCounts,
    DatasetMetadata,
    PageEntry,
    PagesDataset,
    TranslationRecord,
)
from ..parsing import parse_page_filename, utc_timestamp
from ..telemetry.logger import RunLogger
from .artifacts import dataset_payload, translation_record_from_payload
from .translation import EMPTY_SOURCE_METHOD

_HEADING_RE = re.compile(r"^#{1,3}\s+(.+)$")

COVER_SECTION = "表紙・目次"
WORKFLOW_SECTION = "ワークフロー"
SEQUENCER_SECTION = "シーケンサーの基礎"
EXTRACTION_METHOD = "text-extraction"


def extract_title(markdown: str) -> str | None:
    """Return the first `#`..`###` heading text of a page, if any."""

    for line in markdown.splitlines():
        match = _HEADING_RE.match(line.strip())
        if match:
            return match.group(1).strip()
    return None


def detect_section(title: str | None, page_num: int) -> str | None:
    """Map a page title and number to a known manual section."""

    if not title:
        return None
    if page_num <= 2 or "表紙" in title or "目次" in title:
        return COVER_SECTION
    if "ワークフロー" in title or "Workflow" in title:
        return WORKFLOW_SECTION
    if "シーケンサー" in title or "Sequencer" in title:
        return SEQUENCER_SECTION
    return None


def generate_tags(title: str | None, section_name: str | None) -> tuple[str, ...]:
    """Derive keyword tags from a page title and section name."""

    if not title:
        return ()
    section = section_name or ""
    tags: list[str] = []
    if "表紙" in section:
        tags.append("cover")
    if "目次" in section:
        tags.append("table-of-contents")
    if "ワークフロー" in section:
        tags.append("workflow")
    if "シーケンサー" in section:
        tags.append("sequencer")

    if "Mono" in title:
        tags.append("mono-sequencer")
    if "Chord" in title or "コード" in title:
        tags.append("chords")
    if "Drum" in title or "ドラム" in title:
        tags.append("drums")
    if "Mod" in title or "モジュレーション" in title:
        tags.append("modulation")
    return tuple(tags)


def build_entry(config: ManualConfig, page_num: int, content: str) -> PageEntry:
    """Build a primary-language entry with derived title, section, and tags."""

    heading = extract_title(content)
    section_name = detect_section(heading, page_num)
    return PageEntry(
        page_num=page_num,
        image=config.image_url(page_num),
        title=heading or f"Page {page_num}",
        section_name=section_name,
        content=content,
        has_content=bool(content.strip()),
        tags=generate_tags(heading, section_name),
    )


def secondary_entry(primary: PageEntry, content: str) -> PageEntry:
    """Build a source-language entry sharing the primary entry's navigation fields."""

    return PageEntry(
        page_num=primary.page_num,
        image=primary.image,
        title=primary.title,
        section_name=primary.section_name,
        content=content,
        has_content=bool(content.strip()),
        tags=primary.tags,
    )


class DatasetBuilder:
    """Build both language datasets for one manual."""

    stage_name = "build"

    def __init__(self, run_logger: RunLogger | None = None) -> None:
        self._run_logger = run_logger

    def build_dataset(self, config: ManualConfig) -> DatasetCounts:
        """Write `pages-<target>.json` and, with extracted text, `pages-<source>.json`."""

        settings = config.settings
        source_texts = self._load_source_texts(config)
        records = self._load_records(config)
        if source_texts is not None:
            page_count = len(source_texts)
        else:
            page_count = max(records, default=0)
        if page_count == 0:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"No extracted text or translation records found for `{config.slug}`.",
                hint="Run `manualpress extract` and `manualpress translate` first.",
            )
        beyond = sorted(page_num for page_num in records if page_num > page_count)
        if beyond:
            raise StageFatalError(
                stage=self.stage_name,
                detail=(
                    f"Translation records exist beyond the last page {page_count}: "
                    f"{', '.join(str(num) for num in beyond)}."
                ),
                hint="Run `manualpress clean` and rebuild the manual from the split stage.",
            )

        missing = [num for num in range(1, page_count + 1) if num not in records]
        if missing and self._run_logger is not None:
            self._run_logger.log_warning(
                self.stage_name,
                "missing_translations",
                count=len(missing),
                first=missing[0],
            )

        processed_at = utc_timestamp()
        primary_entries = tuple(
            build_entry(
                config,
                page_num,
                records[page_num].translation if page_num in records else "",
            )
            for page_num in range(1, page_count + 1)
        )
        primary = PagesDataset(
            metadata=DatasetMetadata(
                processed_at=processed_at,
                language=settings.target_language,
                method=self._translation_method(records),
                image_format=settings.image_format,
                image_dpi=settings.image_dpi,
            ),
            pages=primary_entries,
        )
        store = ArtifactStore(config.data_dir)
        store.save_json(config.dataset_path(settings.target_language).name, dataset_payload(primary))

        secondary_pages = 0
        if source_texts is not None:
            secondary = PagesDataset(
                metadata=DatasetMetadata(
                    processed_at=processed_at,
                    language=settings.source_language,
                    method=EXTRACTION_METHOD,
                    image_format=settings.image_format,
                    image_dpi=settings.image_dpi,
                ),
                pages=tuple(
                    secondary_entry(entry, source_texts[entry.page_num - 1])
                    for entry in primary_entries
                ),
            )
            store.save_json(
                config.dataset_path(settings.source_language).name,
                dataset_payload(secondary),
            )
            secondary_pages = len(secondary.pages)

        return DatasetCounts(
            primary_language=settings.target_language,
            primary_pages=len(primary_entries),
            secondary_language=settings.source_language,
            secondary_pages=secondary_pages,
        )

    def _load_source_texts(self, config: ManualConfig) -> list[str] | None:
        if not config.extracted_dir.is_dir():
            return None
        pages = scan_page_files(config.extracted_dir, "txt", stage=self.stage_name)
        return [path.read_text(encoding="utf-8") for _, path in pages]

    def _load_records(self, config: ManualConfig) -> dict[int, TranslationRecord]:
        """Load translation records keyed by page number, rejecting drift."""

        records: dict[int, TranslationRecord] = {}
        if not config.draft_dir.is_dir():
            return records
        drafts = ArtifactStore(config.draft_dir)
        for path in sorted(config.draft_dir.iterdir()):
            if not path.is_file() or not path.name.endswith(".json"):
                continue
            file_page = parse_page_filename(path.name, "json")
            if file_page is None:
                if path.name.startswith("page-"):
                    raise StageFatalError(
                        stage=self.stage_name,
                        detail=f"Non-canonical translation record name: {path.name}",
                        hint="Rename or delete the file, then rerun `manualpress build`.",
                    )
                continue
            try:
                record = translation_record_from_payload(drafts.load_json_object(path.name), path.name)
            except ValueError as exc:
                raise StageFatalError(
                    stage=self.stage_name,
                    detail=f"Unreadable translation record: {exc}",
                    hint=f"Delete `{path}` and rerun `manualpress translate`.",
                ) from exc
            if record.page_num != file_page:
                raise StageFatalError(
                    stage=self.stage_name,
                    detail=(
                        f"Translation record {path.name} declares pageNum {record.page_num}, "
                        f"expected {file_page}."
                    ),
                    hint="Run `manualpress migrate check-pages --fix` for this manual.",
                )
            records[record.page_num] = record
        return records

    @staticmethod
    def _translation_method(records: dict[int, TranslationRecord]) -> str:
        methods = sorted(
            {
                record.metadata.method
                for record in records.values()
                if record.metadata.method != EMPTY_SOURCE_METHOD
            }
        )
        if methods:
            return ",".join(methods)
        return EMPTY_SOURCE_METHOD if records else "none"
