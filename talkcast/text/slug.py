"""Deterministic naming helpers for persisted artifacts and chapter titles.

Responsibilities:
- Build order-prefixed filesystem-safe file stems that keep Unicode titles.
- Normalize titles for display and embedded chapter metadata.
"""

from __future__ import annotations

import re
import unicodedata

_MAX_STEM_CHARS = 80
_UNSAFE_FILENAME_CHARACTERS = re.compile(r'[\\/:*?"<>|\s]+')


def display_title(value: str) -> str:
    """Return a title with control characters removed and whitespace collapsed."""

    visible = "".join(
        character if unicodedata.category(character)[0] != "C" else " "
        for character in value
    )
    return " ".join(visible.split())


def sanitize_filename(value: str) -> str:
    """Return a filesystem-safe filename segment, keeping non-ASCII letters."""

    cleaned = _UNSAFE_FILENAME_CHARACTERS.sub("_", display_title(value)).strip("._")
    return cleaned[:_MAX_STEM_CHARS].rstrip("._") or "untitled"


def chapter_stem(order: int, title: str) -> str:
    """Return the deterministic `NN-title` stem for one chapter's artifacts."""

    return f"{order:02d}-{sanitize_filename(title)}"


def feed_slug(value: str) -> str:
    """Return a lowercase hyphenated slug used for feed filenames and GUIDs."""

    normalized = unicodedata.normalize("NFKC", value).lower()
    collapsed = re.sub(r"[^a-z0-9\u3040-\u30ff\u4e00-\u9fff]+", "-", normalized)
    return collapsed.strip("-") or "podcast"
