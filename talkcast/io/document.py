"""Document source contract used by the pipeline's extract and filter stages.

Responsibilities:
- Define the ordered-chapter source protocol.
- Provide the structural-heading predicate used as the content-quality gate.
"""

from __future__ import annotations

import re
from typing import Protocol

from ..models.datatypes import BookMeta, Chapter

_STRUCTURAL_HEADING = re.compile(r"<h[1-3](?:\s[^>]*)?>", re.IGNORECASE)


def has_structural_heading(raw_text: str) -> bool:
    """Return whether raw chapter text carries an `<h1>`-`<h3>` heading tag."""

    return _STRUCTURAL_HEADING.search(raw_text) is not None


class DocumentSource(Protocol):
    """Protocol for sources yielding ordered chapters of one document."""

    @property
    def book_meta(self) -> BookMeta:
        """Return metadata describing the source document."""

    def chapters(self) -> list[Chapter]:
        """Return chapters ordered by their 1-based `order`."""

    def has_structural_heading(self, chapter: Chapter) -> bool:
        """Return whether a chapter passes the structural heading gate."""
