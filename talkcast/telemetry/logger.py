"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic phase-level runtime logs through `loguru`.
- Report per-chapter exclusions with enough identity to diagnose them.
- Expose debug-level detail only when debug verbosity is enabled.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs for CLI-observable pipeline activity."""

    def __init__(self, sink: TextIO | None = None, *, debug: bool = False) -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._sink = sink or sys.stdout
        self.debug_enabled = debug
        _loguru_logger.remove()
        _loguru_logger.add(
            self._sink,
            format="{message}",
            level="DEBUG" if debug else "INFO",
            colorize=False,
        )

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_stage_start(self, stage: str) -> None:
        """Emit a stage-start runtime event."""

        self._emit("INFO", "start", stage)

    def log_stage_complete(self, stage: str) -> None:
        """Emit a stage-complete runtime event."""

        self._emit("INFO", "complete", stage)

    def log_stage_skipped(self, stage: str, reason: str) -> None:
        """Emit a stage-skipped runtime event."""

        self._emit("INFO", "skipped", stage, reason=reason)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)

    def log_chapter_skipped(self, stage: str, order: int, title: str, reason: str) -> None:
        """Emit a warning for one chapter excluded from a stage's output."""

        self._emit("WARNING", "chapter_skipped", stage, order=order, title=title, reason=reason)

    def event(self, stage: str, event: str, **context: object) -> None:
        """Emit an informational milestone event."""

        self._emit("INFO", event, stage, **context)

    def debug(self, stage: str, event: str, **context: object) -> None:
        """Emit a debug-level detail event, visible only with debug verbosity."""

        self._emit("DEBUG", event, stage, **context)
