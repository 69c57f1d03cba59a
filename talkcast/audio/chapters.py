"""Chapter-mark timing and chapter-metadata track rendering.

Responsibilities:
- Derive chapter marks from measured segment durations and the chapter pause.
- Render marks as an FFMETADATA1 text table for the mux tool.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..models.datatypes import ChapterMark, RenderedSegment
from ..text.slug import display_title

_FFMETADATA_SPECIAL = ("\\", "=", ";", "#", "\n")


def compute_chapter_marks(
    segments: Sequence[RenderedSegment], inter_chapter_pause_ms: int
) -> list[ChapterMark]:
    """Return chapter marks for ordered segments.

    `start[0] = 0`, `start[i] = end[i-1] + inter_chapter_pause_ms` and
    `end[i] = start[i] + duration[i]` in milliseconds. Every mark spans at
    least 1 ms so `start < end` holds for degenerate durations.
    """

    if inter_chapter_pause_ms < 0:
        raise ValueError("`inter_chapter_pause_ms` must be zero or positive.")
    marks: list[ChapterMark] = []
    start_ms = 0
    for segment in segments:
        duration_ms = max(1, round(segment.duration_seconds * 1000))
        end_ms = start_ms + duration_ms
        marks.append(
            ChapterMark(title=display_title(segment.title), start_ms=start_ms, end_ms=end_ms)
        )
        start_ms = end_ms + inter_chapter_pause_ms
    return marks


def _escape(value: str) -> str:
    """Escape FFMETADATA special characters with a backslash."""

    escaped = value
    for character in _FFMETADATA_SPECIAL:
        escaped = escaped.replace(character, f"\\{character}")
    return escaped


def build_ffmetadata(marks: Sequence[ChapterMark], *, title: str | None = None) -> str:
    """Render chapter marks as an FFMETADATA1 document with a 1/1000 time base."""

    lines = [";FFMETADATA1"]
    if title:
        lines.append(f"title={_escape(display_title(title))}")
    for mark in marks:
        lines.extend(
            [
                "",
                "[CHAPTER]",
                "TIMEBASE=1/1000",
                f"START={mark.start_ms}",
                f"END={mark.end_ms}",
                f"title={_escape(mark.title)}",
            ]
        )
    return "\n".join(lines) + "\n"


def chapter_marks_payload(marks: Sequence[ChapterMark]) -> dict[str, object]:
    """Return a JSON-serializable chapter table."""

    return {
        "timebase": "1/1000",
        "chapters": [
            {"title": mark.title, "start_ms": mark.start_ms, "end_ms": mark.end_ms}
            for mark in marks
        ],
    }
