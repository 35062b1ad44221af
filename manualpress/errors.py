"""Domain exceptions for pipeline, registry, and CLI diagnostics."""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ConfigError(PipelineStageError):
    """Raised before any stage runs when slug, settings, or source PDF are invalid."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        super().__init__(stage="config", detail=detail, hint=hint)


class StageFatalError(PipelineStageError):
    """Raised when a structural failure invalidates page numbering for a manual."""


class PageError(PipelineStageError):
    """A single page failed irrecoverably; collected rather than raised by stages."""

    def __init__(
        self,
        *,
        stage: str,
        page_num: int,
        detail: str,
        hint: str | None = None,
    ) -> None:
        super().__init__(stage=stage, detail=detail, hint=hint)
        self.page_num = page_num


class ConsistencyError(PipelineStageError):
    """Raised at registry build time when a manual's published data disagrees."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        super().__init__(stage="registry", detail=detail, hint=hint)


class NotFoundError(PipelineStageError, LookupError):
    """Raised when a registry lookup names an unknown manual slug."""

    def __init__(self, slug: str) -> None:
        super().__init__(
            stage="registry",
            detail=f"Manual not found: {slug}",
            hint="Run `manualpress manifest --slug <slug>` to publish the manual first.",
        )
        self.slug = slug
