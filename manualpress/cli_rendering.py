"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
translation summaries, clean reports, and migration reports.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .migrations import MigrationReport
from .models.datatypes import CleanReport, ManualManifest, TranslationSummary


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_translation_summary(summary: TranslationSummary) -> None:
    """Print translator success/skipped/failed counts."""

    typer.echo(f"Success: {summary.success}")
    typer.echo(f"Skipped: {summary.skipped}")
    typer.echo(f"Failed: {summary.failed}")
    if summary.failed_pages:
        pages = ", ".join(str(page) for page in summary.failed_pages)
        typer.secho(f"Failed pages: {pages}", fg=typer.colors.RED, err=True)
        typer.secho(
            "Hint: see `__inbox/<slug>/` error reports, then rerun `manualpress translate`.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def echo_manifest(manifest: ManualManifest) -> None:
    typer.echo(f"Title: {manifest.title}")
    typer.echo(f"Total pages: {manifest.total_pages}")
    typer.echo(f"Content pages: {manifest.content_pages}")


def echo_clean_report(report: CleanReport) -> None:
    """Print removed item counts and sizes per cleaned directory."""

    for item in report.directories:
        size_mb = item.removed_bytes / (1024 * 1024)
        typer.echo(f"{item.label}: removed {item.removed_items} item(s), {size_mb:.2f} MB ({item.path})")
    typer.echo(f"Cleaned `{report.slug}`: {report.removed_items} item(s) removed.")


def echo_migration_report(report: MigrationReport) -> None:
    """Print a migration outcome, marking dry runs explicitly."""

    prefix = "[dry-run] " if report.dry_run else ""
    if report.skipped_reason is not None:
        typer.echo(f"{prefix}{report.name}: skipped ({report.skipped_reason})")
        return
    for mismatch in report.mismatches:
        typer.echo(
            f"{prefix}{mismatch.filename}: pageNum {mismatch.declared} != {mismatch.expected}"
        )
    for error in report.errors:
        typer.secho(f"{prefix}{error}", fg=typer.colors.RED, err=True)
    verb = "would write" if report.dry_run else "wrote"
    for path in report.written:
        typer.echo(f"{prefix}{report.name}: {verb} {path}")
    if not report.written and not report.mismatches:
        typer.echo(f"{prefix}{report.name}: nothing to change")
