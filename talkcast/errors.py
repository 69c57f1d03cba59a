"""Domain exceptions for pipeline and CLI diagnostics.

Responsibilities:
- Provide the stage-scoped `PipelineStageError` rendered by the CLI.
- Define the run error taxonomy: fatal stage errors and per-unit failures.

Key types:
- `ExtractionError`, `FilterExhaustionError`, `AssemblyError`: fatal stage errors.
- `RewriteError`, `RenderFailure`: per-chapter failures, recoverable by exclusion.
- `ServiceError`: external service/tool failure with a diagnostic kind.
"""

from __future__ import annotations


class TalkcastError(RuntimeError):
    """Base class for Talkcast run errors."""


class PipelineStageError(TalkcastError):
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


class ExtractionError(PipelineStageError):
    """Raised when no chapters can be obtained from the document source."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize an extract-stage error."""

        super().__init__(stage="extract", detail=detail, hint=hint)


class FilterExhaustionError(PipelineStageError):
    """Raised when zero chapters pass the structural heading gate."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize a filter-stage error."""

        super().__init__(stage="filter", detail=detail, hint=hint)


class AssemblyError(PipelineStageError):
    """Raised when the combined artifact cannot be produced."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize an assemble-stage error."""

        super().__init__(stage="assemble", detail=detail, hint=hint)


class ServiceError(TalkcastError):
    """Raised when an external service or tool invocation fails."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize service error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code


class _ChapterFailure(TalkcastError):
    """Base for failures scoped to one chapter or narration unit."""

    def __init__(self, detail: str, *, order: int | None = None, title: str = "") -> None:
        """Initialize chapter identity for diagnostics."""

        super().__init__(detail)
        self.detail = detail
        self.order = order
        self.title = title

    def describe(self) -> str:
        """Return a one-line identity-qualified description."""

        if self.order is None:
            return self.detail
        return f"chapter {self.order} ({self.title}): {self.detail}"


class RewriteError(_ChapterFailure):
    """Raised when rewriting a chapter fails on any chunk."""

    def __init__(
        self,
        detail: str,
        *,
        order: int | None = None,
        title: str = "",
        chunk_index: int | None = None,
    ) -> None:
        """Initialize a rewrite failure with the failing chunk index."""

        super().__init__(detail, order=order, title=title)
        self.chunk_index = chunk_index


class RenderFailure(_ChapterFailure):
    """Raised when synthesis or transcoding fails for one unit."""
