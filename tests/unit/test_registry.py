"""Unit tests for the read-only manual registry."""

from __future__ import annotations

import json

import pytest

from manualpress.config import ManualConfig
from manualpress.errors import ConsistencyError, NotFoundError
from manualpress.pipeline.dataset import DatasetBuilder
from manualpress.pipeline.manifesting import ManifestBuilder
from manualpress.pipeline.translation import TranslationStage
from manualpress.registry import ManualRegistry, asset_url, navigation_state
from tests.conftest import DEMO_SLUG, FakeTranslator


def _publish(config: ManualConfig) -> None:
    """Publish a three-page manual with placeholder images."""

    texts = ["# Cover", "## Sequencer\nPLAY", ""]
    config.extracted_dir.mkdir(parents=True, exist_ok=True)
    config.image_dir.mkdir(parents=True, exist_ok=True)
    for page_num, text in enumerate(texts, start=1):
        (config.extracted_dir / f"page-{page_num:03d}.txt").write_text(text, encoding="utf-8")
        (config.image_dir / f"page-{page_num:03d}.png").write_bytes(b"\x89PNG")
    TranslationStage(translator_factory=lambda _config: FakeTranslator()).translate(config)
    DatasetBuilder().build_dataset(config)
    ManifestBuilder().build_manifest(config)


@pytest.fixture
def registry(demo_config: ManualConfig) -> ManualRegistry:
    _publish(demo_config)
    return ManualRegistry(demo_config.public_dir)


def _rewrite_json(path, mutate) -> None:
    payload = json.loads(path.read_text(encoding="utf-8"))
    mutate(payload)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_available_manuals_lists_published_slugs(registry: ManualRegistry, demo_config) -> None:
    (demo_config.public_dir / "unpublished").mkdir()
    (demo_config.public_dir / "Bad_Slug" / "data").mkdir(parents=True)
    (demo_config.public_dir / "Bad_Slug" / "data" / "manifest.json").write_text("{}", encoding="utf-8")

    assert registry.available_manuals() == [DEMO_SLUG]
    assert registry.is_valid_manual(DEMO_SLUG)
    assert not registry.is_valid_manual("unpublished")


def test_get_manifest_and_pages(registry: ManualRegistry) -> None:
    """Lookups should return the manifest and 1-based pages of a manual."""

    manifest = registry.get_manifest(DEMO_SLUG)

    assert manifest.total_pages == 3
    assert manifest.content_pages == 2
    assert registry.get_manual_title(DEMO_SLUG) == "DEMO MANUAL Manual"
    page = registry.get_page(DEMO_SLUG, 2)
    assert page is not None
    assert page.page_num == 2
    assert page.title == "Sequencer"
    english = registry.get_page(DEMO_SLUG, 2, language="en")
    assert english is not None
    assert english.content == "## Sequencer\nPLAY"
    assert registry.all_page_numbers(DEMO_SLUG) == [1, 2, 3]


@pytest.mark.parametrize("page_num", [0, -1, 4, 100])
def test_get_page_outside_range_returns_none(registry: ManualRegistry, page_num: int) -> None:
    assert registry.get_page(DEMO_SLUG, page_num) is None
    assert not registry.page_exists(DEMO_SLUG, page_num)


def test_unknown_language_has_no_pages(registry: ManualRegistry) -> None:
    assert registry.get_pages(DEMO_SLUG, language="fr") == ()
    assert registry.get_page(DEMO_SLUG, 1, language="fr") is None


def test_unknown_slug_raises_not_found(registry: ManualRegistry) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        registry.get_manifest("missing-manual")

    assert isinstance(exc_info.value, LookupError)
    assert exc_info.value.slug == "missing-manual"


def test_entries_are_loaded_once(registry: ManualRegistry, demo_config) -> None:
    registry.get_manifest(DEMO_SLUG)
    demo_config.manifest_path.write_text("{", encoding="utf-8")

    assert registry.get_total_pages(DEMO_SLUG) == 3


def test_navigation_state() -> None:
    first = navigation_state(1, 3)
    assert (first.can_go_to_prev, first.can_go_to_next) == (False, True)
    last = navigation_state(3, 3)
    assert (last.can_go_to_prev, last.can_go_to_next) == (True, False)
    single = navigation_state(1, 1)
    assert (single.can_go_to_prev, single.can_go_to_next) == (False, False)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("/oxi/pages/page-001.png", "/manuals/oxi/pages/page-001.png"),
        ("oxi/pages/page-001.png", "/manuals/oxi/pages/page-001.png"),
        ("/manuals/oxi/pages/page-001.png", "/manuals/oxi/pages/page-001.png"),
        ("https://cdn.example.com/page.png", "https://cdn.example.com/page.png"),
    ],
)
def test_asset_url_applies_base_path_once(url: str, expected: str) -> None:
    assert asset_url(url) == expected


def test_asset_url_without_base_path() -> None:
    assert asset_url("/oxi/pages/page-001.png", base_path="") == "/oxi/pages/page-001.png"


def test_content_page_mismatch_is_a_consistency_error(demo_config) -> None:
    _publish(demo_config)
    _rewrite_json(demo_config.manifest_path, lambda payload: payload.update(contentPages=3))

    with pytest.raises(ConsistencyError, match="contentPages"):
        ManualRegistry(demo_config.public_dir).validate_all()


def test_total_page_mismatch_in_secondary_dataset_is_reported(demo_config) -> None:
    _publish(demo_config)
    _rewrite_json(demo_config.dataset_path("en"), lambda payload: payload["pages"].pop())

    with pytest.raises(ConsistencyError, match="pages-en.json"):
        ManualRegistry(demo_config.public_dir).get_manifest(DEMO_SLUG)


def test_out_of_order_pages_are_rejected(demo_config) -> None:
    _publish(demo_config)

    def _swap(payload: dict) -> None:
        payload["pages"][0]["pageNum"], payload["pages"][1]["pageNum"] = 2, 1

    _rewrite_json(demo_config.dataset_path("ja"), _swap)

    with pytest.raises(ConsistencyError, match="at position 1"):
        ManualRegistry(demo_config.public_dir).validate_all()


def test_missing_page_image_is_rejected(demo_config) -> None:
    _publish(demo_config)
    (demo_config.image_dir / "page-003.png").unlink()

    with pytest.raises(ConsistencyError, match="image for page 3"):
        ManualRegistry(demo_config.public_dir).validate_all()


def test_image_outside_slug_directory_is_rejected(demo_config) -> None:
    _publish(demo_config)
    (demo_config.public_dir / "shared.png").write_bytes(b"\x89PNG")
    _rewrite_json(
        demo_config.dataset_path("ja"),
        lambda payload: payload["pages"][0].update(image="/shared.png"),
    )

    with pytest.raises(ConsistencyError, match="image for page 1"):
        ManualRegistry(demo_config.public_dir).validate_all()


def test_missing_primary_dataset_is_rejected(demo_config) -> None:
    _publish(demo_config)

    with pytest.raises(ConsistencyError, match="pages-de.json"):
        ManualRegistry(demo_config.public_dir, primary_language="de").validate_all()
