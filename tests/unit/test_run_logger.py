"""Unit tests for structured run logging."""

from __future__ import annotations

import io

from talkcast.telemetry.logger import RunLogger


def test_stage_events_are_deterministic_lines() -> None:
    """Stage transitions should log one `[phase]` line each."""

    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)

    run_logger.log_stage_start("extract")
    run_logger.log_stage_complete("extract")
    run_logger.log_stage_skipped("feed", "skip_feed")
    run_logger.log_stage_failure("render", "RenderFailure")

    assert sink.getvalue().splitlines() == [
        "[phase] level=INFO stage=extract event=start",
        "[phase] level=INFO stage=extract event=complete",
        "[phase] level=INFO stage=feed event=skipped reason=skip_feed",
        "[phase] level=ERROR stage=render event=failure error_type=RenderFailure",
    ]


def test_chapter_skip_warning_identifies_the_chapter() -> None:
    """Skipped chapters should log order, sanitized title and reason."""

    sink = io.StringIO()
    RunLogger(sink=sink).log_chapter_skipped("rewrite", 3, "Loops & Lists", "timeout")

    assert sink.getvalue().strip() == (
        "[phase] level=WARNING stage=rewrite event=chapter_skipped "
        "order=3 reason=timeout title=Loops___Lists"
    )


def test_debug_events_require_debug_verbosity() -> None:
    """Debug detail should only appear when debug logging is enabled."""

    quiet_sink = io.StringIO()
    RunLogger(sink=quiet_sink).debug("render", "reuse", order=1)
    verbose_sink = io.StringIO()
    RunLogger(sink=verbose_sink, debug=True).debug("render", "reuse", order=1)

    assert quiet_sink.getvalue() == ""
    assert verbose_sink.getvalue().strip() == "[phase] level=DEBUG stage=render event=reuse order=1"


def test_event_context_blank_values_become_none() -> None:
    """Blank context values should serialize as `none`."""

    sink = io.StringIO()
    RunLogger(sink=sink).event("feed", "written", file="", episodes=2)

    assert sink.getvalue().strip() == (
        "[phase] level=INFO stage=feed event=written episodes=2 file=none"
    )
