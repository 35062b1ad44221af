"""Command-line interface for manualpress.

Responsibilities:
- Expose one command per pipeline stage plus `all`, `clean`, and registry checks.
- Resolve slug configuration and map failures to concise diagnostics.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_clean_report,
    echo_manifest,
    echo_migration_report,
    echo_translation_summary,
    exit_with_command_error,
)
from .config import PUBLIC_ROOT, ConfigResolver, ManualConfig
from .migrations import check_draft_page_numbers, migrate_parts_to_pages, migrate_to_bilingual
from .pipeline import ManualPipeline
from .registry import ManualRegistry
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="manualpress",
    no_args_is_help=True,
    help="Turn hardware manual PDFs into page-indexed bilingual datasets.",
)
migrate_app = typer.Typer(
    no_args_is_help=True,
    help="One-way offline migrations for legacy manual data.",
)
app.add_typer(migrate_app, name="migrate")

SlugOption = Annotated[
    str | None,
    typer.Option("--slug", help="Manual slug (lowercase letters, digits, hyphens)."),
]
RootOption = Annotated[
    Path,
    typer.Option("--root", help="Project root holding `pdf-config.json` and `manual-pdf/`."),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Report planned writes without changing any file."),
]


class BuildProgressIndicator:
    """Render deterministic progress lines for stages and translated pages."""

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        typer.echo(
            f"[progress] command={self._command_name} "
            f"{stage_index}/{stage_total} stage={stage_name}"
        )

    def on_page(self, stage_name: str, page_num: int, total: int, status: str) -> None:
        """Print one progress line for a finished page."""

        typer.echo(
            f"[progress] command={self._command_name} stage={stage_name} "
            f"page={page_num}/{total} status={status}"
        )


def _resolve(root: Path, slug: str | None, run_logger: RunLogger) -> ManualConfig:
    return ConfigResolver(root, run_logger=run_logger).resolve(slug)


def _pipeline(command_name: str, run_logger: RunLogger) -> ManualPipeline:
    progress = BuildProgressIndicator(command_name=command_name)
    return ManualPipeline(
        run_logger=run_logger,
        stage_progress_callback=progress.on_stage_start,
        page_progress_callback=progress.on_page,
    )


@app.command("split")
def split_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Split the source PDF into single-page PDFs."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        page_count = _pipeline("split", run_logger).split(config)
    except Exception as exc:
        exit_with_command_error("split", exc)

    typer.echo(f"Split pages: {page_count}")
    typer.echo(f"Output: {config.split_dir}")


@app.command("render")
def render_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Render split pages to PNG images."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        rendered = _pipeline("render", run_logger).render(config)
    except Exception as exc:
        exit_with_command_error("render", exc)

    typer.echo(f"Rendered images: {rendered} at {config.settings.image_dpi} DPI")
    typer.echo(f"Output: {config.image_dir}")


@app.command("extract")
def extract_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Extract text from split pages."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        extracted = _pipeline("extract", run_logger).extract_text(config)
    except Exception as exc:
        exit_with_command_error("extract", exc)

    typer.echo(f"Extracted text files: {extracted}")
    typer.echo(f"Output: {config.extracted_dir}")


@app.command("translate")
def translate_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Translate extracted pages; exits 1 when any page failed."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        summary = _pipeline("translate", run_logger).translate(config)
    except Exception as exc:
        exit_with_command_error("translate", exc)

    echo_translation_summary(summary)
    if summary.exit_code != 0:
        raise typer.Exit(code=summary.exit_code)


@app.command("build")
def build_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Build the page-indexed datasets for both languages."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        counts = _pipeline("build", run_logger).build_dataset(config)
    except Exception as exc:
        exit_with_command_error("build", exc)

    typer.echo(f"pages-{counts.primary_language}.json: {counts.primary_pages} pages")
    if counts.secondary_pages:
        typer.echo(f"pages-{counts.secondary_language}.json: {counts.secondary_pages} pages")


@app.command("manifest")
def manifest_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Write the manual manifest from the primary dataset."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        manifest = _pipeline("manifest", run_logger).build_manifest(config)
    except Exception as exc:
        exit_with_command_error("manifest", exc)

    echo_manifest(manifest)
    typer.echo(f"Manifest: {config.manifest_path}")


@app.command("clean")
def clean_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Delete every generated artifact of a manual, keeping its source PDF."""

    try:
        run_logger = RunLogger()
        layout = ConfigResolver(root, run_logger=run_logger).layout(slug)
        report = _pipeline("clean", run_logger).clean(layout)
    except Exception as exc:
        exit_with_command_error("clean", exc)

    echo_clean_report(report)


@app.command("all")
def all_command(slug: SlugOption = None, root: RootOption = Path(".")) -> None:
    """Run split, render, extract, translate, build, and manifest in order."""

    try:
        run_logger = RunLogger()
        config = _resolve(root, slug, run_logger)
        result = _pipeline("all", run_logger).run_all(config)
    except Exception as exc:
        exit_with_command_error("all", exc)

    typer.echo(f"Pages: {result.page_count}")
    echo_translation_summary(result.translation)
    if result.manifest is None:
        typer.secho(
            "Stopped before build: translation has failed pages.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    echo_manifest(result.manifest)


@app.command("registry-check")
def registry_check_command(
    root: RootOption = Path("."),
    language: Annotated[
        str,
        typer.Option("--language", help="Primary dataset language used for lookups."),
    ] = "ja",
) -> None:
    """Load and validate every published manual under `public/`."""

    try:
        registry = ManualRegistry(root / PUBLIC_ROOT, primary_language=language)
        entries = registry.validate_all()
    except Exception as exc:
        exit_with_command_error("registry-check", exc)

    for slug, entry in zip(registry.available_manuals(), entries):
        typer.echo(
            f"{slug}: {entry.manifest.total_pages} pages "
            f"({entry.manifest.content_pages} with content)"
        )
    typer.echo(f"Manuals: {len(entries)}")


@migrate_app.command("parts-to-pages")
def migrate_parts_command(
    slug: SlugOption = None,
    root: RootOption = Path("."),
    dry_run: DryRunOption = False,
) -> None:
    """Merge legacy `part-XX.json` files into `pages.json`."""

    try:
        layout = ConfigResolver(root).layout(slug)
        report = migrate_parts_to_pages(layout.data_dir, dry_run=dry_run)
    except Exception as exc:
        exit_with_command_error("migrate parts-to-pages", exc)

    echo_migration_report(report)


@migrate_app.command("bilingual")
def migrate_bilingual_command(
    slug: SlugOption = None,
    root: RootOption = Path("."),
    dry_run: DryRunOption = False,
) -> None:
    """Convert `pages.json` into per-language dataset files."""

    try:
        resolver = ConfigResolver(root)
        layout = resolver.layout(slug)
        settings = resolver.load_settings()
        report = migrate_to_bilingual(
            layout.data_dir,
            layout.extracted_dir,
            target_language=settings.target_language,
            source_language=settings.source_language,
            dry_run=dry_run,
        )
    except Exception as exc:
        exit_with_command_error("migrate bilingual", exc)

    echo_migration_report(report)


@migrate_app.command("check-pages")
def migrate_check_pages_command(
    slug: SlugOption = None,
    root: RootOption = Path("."),
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Rewrite mismatched records with the filename page number."),
    ] = False,
    dry_run: DryRunOption = False,
) -> None:
    """Report translation records whose `pageNum` disagrees with their filename."""

    try:
        layout = ConfigResolver(root).layout(slug)
        report = check_draft_page_numbers(layout.draft_dir, fix=fix, dry_run=dry_run)
    except Exception as exc:
        exit_with_command_error("migrate check-pages", exc)

    echo_migration_report(report)
    unresolved = report.mismatches and (not fix or dry_run)
    if unresolved or report.errors:
        raise typer.Exit(code=1)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
