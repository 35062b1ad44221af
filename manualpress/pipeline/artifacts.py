"""Artifact serialization and loading helpers for the manual pipeline.

Responsibilities:
- Build the camelCase JSON payloads consumed by the web viewer.
- Load persisted payloads back into typed dataclass records.
- Reject malformed payloads with `ValueError` so callers can map them to
  stage-specific errors.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..models.datatypes import (
    DatasetMetadata,
    ManifestSource,
    ManualManifest,
    PageEntry,
    PagesDataset,
    TranslationMetadata,
    TranslationRecord,
)


def translation_record_payload(record: TranslationRecord) -> dict[str, object]:
    """Serialize one translation record."""

    return {
        "pageNum": record.page_num,
        "translation": record.translation,
        "metadata": {
            "translatedAt": record.metadata.translated_at,
            "method": record.metadata.method,
            "model": record.metadata.model,
            "attempts": record.metadata.attempts,
        },
    }


def error_report_payload(page_num: int, error: str, timestamp: str) -> dict[str, object]:
    """Serialize one per-page translation error report."""

    return {"page": page_num, "error": error, "timestamp": timestamp}


def page_entry_payload(entry: PageEntry) -> dict[str, object]:
    """Serialize one dataset page entry."""

    return {
        "pageNum": entry.page_num,
        "image": entry.image,
        "title": entry.title,
        "sectionName": entry.section_name,
        "content": entry.content,
        "hasContent": entry.has_content,
        "tags": list(entry.tags),
    }


def dataset_payload(dataset: PagesDataset) -> dict[str, object]:
    """Serialize a page-indexed dataset."""

    return {
        "metadata": {
            "processedAt": dataset.metadata.processed_at,
            "language": dataset.metadata.language,
            "method": dataset.metadata.method,
            "imageFormat": dataset.metadata.image_format,
            "imageDPI": dataset.metadata.image_dpi,
        },
        "pages": [page_entry_payload(entry) for entry in dataset.pages],
    }


def manifest_payload(manifest: ManualManifest) -> dict[str, object]:
    """Serialize a manual manifest."""

    payload: dict[str, object] = {
        "title": manifest.title,
        "version": manifest.version,
        "totalPages": manifest.total_pages,
        "contentPages": manifest.content_pages,
        "lastUpdated": manifest.last_updated,
    }
    if manifest.source is not None:
        payload["source"] = {
            "filename": manifest.source.filename,
            "processedAt": manifest.source.processed_at,
            "imageDPI": manifest.source.image_dpi,
            "imageFormat": manifest.source.image_format,
        }
    return payload


def _require(payload: Mapping[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    value = payload.get(key)
    if isinstance(value, bool) and kind is int:
        raise ValueError(f"{where}: `{key}` must be an integer.")
    if not isinstance(value, kind):
        raise ValueError(f"{where}: missing or malformed `{key}`.")
    return value


def translation_record_from_payload(payload: Mapping[str, Any], where: str) -> TranslationRecord:
    """Load one translation record payload."""

    page_num = _require(payload, "pageNum", int, where)
    translation = _require(payload, "translation", str, where)
    metadata = payload.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    attempts = metadata.get("attempts", 1)
    return TranslationRecord(
        page_num=page_num,
        translation=translation,
        metadata=TranslationMetadata(
            translated_at=str(metadata.get("translatedAt", "")),
            method=str(metadata.get("method", "unknown")),
            model=str(metadata.get("model", "unknown")),
            attempts=attempts if isinstance(attempts, int) and not isinstance(attempts, bool) else 1,
        ),
    )


def page_entry_from_payload(payload: Mapping[str, Any], where: str) -> PageEntry:
    """Load one dataset page entry payload."""

    section_name = payload.get("sectionName")
    if section_name is not None and not isinstance(section_name, str):
        raise ValueError(f"{where}: `sectionName` must be a string or null.")
    tags = payload.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise ValueError(f"{where}: `tags` must be a list of strings.")
    return PageEntry(
        page_num=_require(payload, "pageNum", int, where),
        image=_require(payload, "image", str, where),
        title=_require(payload, "title", str, where),
        section_name=section_name,
        content=_require(payload, "content", str, where),
        has_content=_require(payload, "hasContent", bool, where),
        tags=tuple(tags),
    )


def dataset_from_payload(payload: Mapping[str, Any], where: str) -> PagesDataset:
    """Load a page-indexed dataset payload."""

    metadata = _require(payload, "metadata", dict, where)
    pages = _require(payload, "pages", list, where)
    entries = []
    for index, item in enumerate(pages):
        if not isinstance(item, dict):
            raise ValueError(f"{where}: page item {index} is not an object.")
        entries.append(page_entry_from_payload(item, f"{where} pages[{index}]"))
    return PagesDataset(
        metadata=DatasetMetadata(
            processed_at=str(metadata.get("processedAt", "")),
            language=str(metadata.get("language", "")),
            method=str(metadata.get("method", "")),
            image_format=str(metadata.get("imageFormat", "png")),
            image_dpi=int(metadata.get("imageDPI", 0) or 0),
        ),
        pages=tuple(entries),
    )


def manifest_from_payload(payload: Mapping[str, Any], where: str) -> ManualManifest:
    """Load a manual manifest payload."""

    source_payload = payload.get("source")
    source = None
    if isinstance(source_payload, dict):
        source = ManifestSource(
            filename=str(source_payload.get("filename", "")),
            processed_at=str(source_payload.get("processedAt", "")),
            image_dpi=int(source_payload.get("imageDPI", 0) or 0),
            image_format=str(source_payload.get("imageFormat", "png")),
        )
    return ManualManifest(
        title=_require(payload, "title", str, where),
        version=str(payload.get("version", "")),
        total_pages=_require(payload, "totalPages", int, where),
        content_pages=_require(payload, "contentPages", int, where),
        last_updated=str(payload.get("lastUpdated", "")),
        source=source,
    )
