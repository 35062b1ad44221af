"""Configuration model and resolver for manualpress.

Responsibilities:
- Validate manual slugs against a path-traversal-safe pattern.
- Load and validate the project-level `pdf-config.json` settings file.
- Locate the source PDF of a manual and compute every stage path from the slug.

Key types:
- `ManualSettings`: normalized processing settings shared by all manuals.
- `ManualConfig`: immutable per-run configuration of one manual.
- `ConfigResolver`: builds a `ManualConfig` for a slug under a project root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
import re
from typing import Any, Mapping

from .errors import ConfigError
from .parsing import (
    normalize_optional_string,
    page_filename,
    parse_positive_float,
    parse_positive_int,
)
from .telemetry.logger import RunLogger


SETTINGS_FILENAME = "pdf-config.json"
SOURCE_PDF_ROOT = "manual-pdf"
PUBLIC_ROOT = "public"
TEMP_ROOT = "temp-processing"
INBOX_ROOT = "__inbox"

_SLUG_RE = re.compile(r"[a-z0-9-]+")
_DEFAULT_TRANSLATION_MODEL = "claude-sonnet-4-5"
_DEFAULT_PRESERVED_TERMS = ("MIDI", "CV", "Gate", "Sequencer", "BPM", "LFO")
_DEFAULT_STYLE_NOTE = "Use technical documentation style (です・ます調)."
_SUPPORTED_PROVIDER_IDS = frozenset({"anthropic", "openai"})
_SUPPORTED_IMAGE_FORMATS = frozenset({"png"})
_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


@dataclass(frozen=True, slots=True)
class ManualSettings:
    """Processing settings read once from the project settings file.

    Attributes:
        image_dpi: Rasterization resolution for page images.
        image_format: Output image format; only `png` is supported.
        translation_model: Model identifier sent to the translation provider.
        batch_size: Number of pages translated concurrently per batch.
        translation_provider: Provider identifier (`anthropic` or `openai`).
        source_language: Language code of the source PDF text.
        target_language: Language code of the translated dataset.
        preserved_terms: Technical terms kept verbatim by the translator.
        style_note: Optional register instruction appended to the prompt.
        max_attempts: Total provider attempts per page, including the first.
        retry_base_delay_seconds: Backoff delay before the second attempt.
        request_timeout_seconds: HTTP timeout for one provider call.
        max_output_tokens: Output token ceiling for one provider call.
    """

    image_dpi: int = 300
    image_format: str = "png"
    translation_model: str = _DEFAULT_TRANSLATION_MODEL
    batch_size: int = 4
    translation_provider: str = "anthropic"
    source_language: str = "en"
    target_language: str = "ja"
    preserved_terms: tuple[str, ...] = _DEFAULT_PRESERVED_TERMS
    style_note: str | None = _DEFAULT_STYLE_NOTE
    max_attempts: int = 3
    retry_base_delay_seconds: float = 2.0
    request_timeout_seconds: float = 120.0
    max_output_tokens: int = 16000

    @property
    def render_scale(self) -> float:
        """Return the PDF-point to pixel scale factor (PDF points are 1/72 inch)."""

        return self.image_dpi / 72.0

    def api_key_env_var(self) -> str:
        """Return the environment variable holding the provider API key."""

        return _API_KEY_ENV[self.translation_provider]


@dataclass(frozen=True, slots=True)
class ManualLayout:
    """Filesystem layout of one manual under a project root.

    All directories are derived from `root_dir` and `slug` only, so layouts for
    different slugs never share an output location.
    """

    slug: str
    root_dir: Path

    @property
    def source_pdf_dir(self) -> Path:
        return self.root_dir / SOURCE_PDF_ROOT / self.slug

    @property
    def public_dir(self) -> Path:
        return self.root_dir / PUBLIC_ROOT

    @property
    def image_dir(self) -> Path:
        return self.public_dir / self.slug / "pages"

    @property
    def data_dir(self) -> Path:
        return self.public_dir / self.slug / "data"

    @property
    def split_dir(self) -> Path:
        return self.root_dir / TEMP_ROOT / self.slug / "split-pdf"

    @property
    def extracted_dir(self) -> Path:
        return self.root_dir / TEMP_ROOT / self.slug / "extracted"

    @property
    def draft_dir(self) -> Path:
        return self.root_dir / TEMP_ROOT / self.slug / "translations-draft"

    @property
    def inbox_dir(self) -> Path:
        return self.root_dir / INBOX_ROOT / self.slug

    @property
    def manifest_path(self) -> Path:
        return self.data_dir / "manifest.json"

    def dataset_path(self, language: str) -> Path:
        """Return the dataset file path for one language code."""

        return self.data_dir / f"pages-{language}.json"

    def image_url(self, page_num: int) -> str:
        """Return the public image path of a page, relative to the public root."""

        return f"/{self.slug}/pages/{page_filename(page_num, 'png')}"

    def owned_directories(self) -> tuple[tuple[str, Path], ...]:
        """Return labeled directories written by pipeline stages for this slug."""

        return (
            ("Rendered images", self.image_dir),
            ("Final datasets", self.data_dir),
            ("Page PDFs", self.split_dir),
            ("Extracted text", self.extracted_dir),
            ("Translation drafts", self.draft_dir),
            ("Error reports", self.inbox_dir),
        )


@dataclass(frozen=True, slots=True)
class ManualConfig(ManualLayout):
    """Resolved, read-only configuration of one manual for one pipeline run."""

    source_pdf: Path
    settings: ManualSettings = field(default_factory=ManualSettings)
    ignored_pdfs: tuple[Path, ...] = field(default_factory=tuple)


def validate_slug(slug: str | None) -> str:
    """Return the slug when it matches `^[a-z0-9-]+$`, else raise `ConfigError`."""

    if slug is None or slug == "":
        raise ConfigError(
            "Missing required --slug argument.",
            hint="Pass `--slug <manual-slug>`, for example `--slug oxi-one-mk2`.",
        )
    if _SLUG_RE.fullmatch(slug) is None:
        raise ConfigError(
            f'Invalid slug format: "{slug}".',
            hint=(
                "Slugs may only contain lowercase letters, digits, and hyphens; "
                "path traversal patterns such as `../` are rejected."
            ),
        )
    return slug


class SettingsLoader:
    """Build validated `ManualSettings` from the project settings file."""

    _FIELD_KEYS = {
        "imageDPI": "image_dpi",
        "imageFormat": "image_format",
        "translationModel": "translation_model",
        "batchSize": "batch_size",
        "translationProvider": "translation_provider",
        "sourceLanguage": "source_language",
        "targetLanguage": "target_language",
        "preservedTerms": "preserved_terms",
        "styleNote": "style_note",
        "maxAttempts": "max_attempts",
        "retryBaseDelaySeconds": "retry_base_delay_seconds",
        "requestTimeoutSeconds": "request_timeout_seconds",
        "maxOutputTokens": "max_output_tokens",
    }
    _ENV_OVERRIDES = {
        "MANUALPRESS_TRANSLATION_MODEL": "translationModel",
        "MANUALPRESS_TRANSLATION_PROVIDER": "translationProvider",
        "MANUALPRESS_BATCH_SIZE": "batchSize",
    }

    @staticmethod
    def from_file(path: Path, env: Mapping[str, str] | None = None) -> ManualSettings:
        """Load settings from `path`, applying environment overrides on top."""

        if not path.is_file():
            raise ConfigError(
                f"Configuration file not found: {path}",
                hint=f"Create `{SETTINGS_FILENAME}` in the project root.",
            )
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(
                f"Failed to parse {path.name}: {exc}",
                hint="Ensure the settings file contains valid JSON.",
            ) from exc
        if not isinstance(payload, dict):
            raise ConfigError(
                f"Invalid {path.name}: root must be a JSON object.",
                hint='Wrap settings as `{"settings": {...}}`.',
            )
        raw_settings = payload.get("settings")
        if not isinstance(raw_settings, dict):
            raise ConfigError(
                f'Invalid {path.name}: missing "settings" section.',
                hint='Add a "settings" object to the settings file.',
            )
        merged = dict(raw_settings)
        merged.update(SettingsLoader._env_values(os.environ if env is None else env))
        try:
            return SettingsLoader.from_mapping(merged)
        except ValueError as exc:
            raise ConfigError(
                f"Invalid {path.name}: {exc}",
                hint="Fix the reported setting and rerun the command.",
            ) from exc

    @staticmethod
    def from_mapping(payload: Mapping[str, Any]) -> ManualSettings:
        """Validate a camelCase settings mapping; unknown keys are ignored."""

        values: dict[str, Any] = {}
        for key, field_name in SettingsLoader._FIELD_KEYS.items():
            if key not in payload or payload[key] is None:
                continue
            values[field_name] = SettingsLoader._parse_field(field_name, key, payload[key])

        settings = ManualSettings(**values)
        if settings.translation_provider not in _SUPPORTED_PROVIDER_IDS:
            supported = ", ".join(sorted(_SUPPORTED_PROVIDER_IDS))
            raise ValueError(
                f"unsupported `translationProvider` value `{settings.translation_provider}`; "
                f"supported: {supported}."
            )
        if settings.image_format not in _SUPPORTED_IMAGE_FORMATS:
            raise ValueError(
                f"unsupported `imageFormat` value `{settings.image_format}`; supported: png."
            )
        return settings

    @staticmethod
    def _parse_field(field_name: str, key: str, raw_value: Any) -> Any:
        """Parse one settings value according to its field type."""

        if field_name in {"image_dpi", "batch_size", "max_attempts", "max_output_tokens"}:
            return parse_positive_int(raw_value, key)
        if field_name in {"retry_base_delay_seconds", "request_timeout_seconds"}:
            return parse_positive_float(raw_value, key)
        if field_name == "preserved_terms":
            if not isinstance(raw_value, list):
                raise ValueError(f"`{key}` must be a list of strings.")
            terms = [normalize_optional_string(item) for item in raw_value]
            return tuple(term for term in terms if term is not None)
        if field_name == "style_note":
            return normalize_optional_string(raw_value)

        value = normalize_optional_string(raw_value)
        if value is None:
            raise ValueError(f"`{key}` must be a non-empty string.")
        if field_name in {"image_format", "translation_provider"}:
            return value.lower()
        return value

    @staticmethod
    def _env_values(env: Mapping[str, str]) -> dict[str, str]:
        """Collect non-blank environment overrides keyed by settings key."""

        overrides: dict[str, str] = {}
        for env_key, settings_key in SettingsLoader._ENV_OVERRIDES.items():
            value = normalize_optional_string(env.get(env_key))
            if value is not None:
                overrides[settings_key] = value
        return overrides


class ConfigResolver:
    """Resolve `ManualConfig` instances for slugs under one project root."""

    def __init__(
        self,
        root_dir: Path,
        env: Mapping[str, str] | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.root_dir = root_dir
        self._env = env
        self._run_logger = run_logger

    def resolve(self, slug: str | None) -> ManualConfig:
        """Validate `slug`, load settings, and locate exactly one source PDF."""

        valid_slug = validate_slug(slug)
        settings = SettingsLoader.from_file(self.root_dir / SETTINGS_FILENAME, env=self._env)
        source_pdf, ignored = self._locate_source_pdf(valid_slug)
        if ignored and self._run_logger is not None:
            self._run_logger.log_warning(
                "config",
                "multiple_pdfs",
                slug=valid_slug,
                using=source_pdf.name,
                ignored=",".join(path.name for path in ignored),
            )
        return ManualConfig(
            slug=valid_slug,
            root_dir=self.root_dir,
            source_pdf=source_pdf,
            settings=settings,
            ignored_pdfs=ignored,
        )

    def layout(self, slug: str | None) -> ManualLayout:
        """Validate `slug` and return its layout without requiring a source PDF."""

        return ManualLayout(slug=validate_slug(slug), root_dir=self.root_dir)

    def load_settings(self) -> ManualSettings:
        """Return project settings, or defaults when no settings file exists."""

        path = self.root_dir / SETTINGS_FILENAME
        if not path.exists():
            return ManualSettings()
        return SettingsLoader.from_file(path, env=self._env)

    def _locate_source_pdf(self, slug: str) -> tuple[Path, tuple[Path, ...]]:
        """Pick the lexicographically first PDF under `manual-pdf/<slug>/`."""

        pdf_dir = self.root_dir / SOURCE_PDF_ROOT / slug
        candidates = sorted(
            (
                path
                for path in pdf_dir.glob("*.pdf")
                if path.is_file() and not path.name.startswith(".")
            ),
            key=lambda path: path.name,
        )
        if not candidates:
            raise ConfigError(
                f"No PDF file found in: {pdf_dir}",
                hint=f"Place the source PDF at `{SOURCE_PDF_ROOT}/{slug}/<filename>.pdf`.",
            )
        return candidates[0], tuple(candidates[1:])


def resolve_api_key(settings: ManualSettings, env: Mapping[str, str] | None = None) -> str:
    """Return the provider API key from the environment or raise `ConfigError`."""

    env_map: Mapping[str, str] = os.environ if env is None else env
    env_key = settings.api_key_env_var()
    api_key = normalize_optional_string(env_map.get(env_key))
    if api_key is None:
        raise ConfigError(
            f"{env_key} environment variable not set.",
            hint=f"Export `{env_key}=<your key>` before running the translate stage.",
        )
    return api_key
