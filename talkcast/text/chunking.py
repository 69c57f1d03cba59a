"""Chapter-text chunking for context-preserving transformation.

Responsibilities:
- Split long text into bounded chunks on paragraph, then sentence, boundaries.
- Carry a bounded overlap prefix from each chunk into the next one.
- Keep chunk texts exact slices so their concatenation reproduces the input.
"""

from __future__ import annotations

from collections.abc import Iterator
import re

from ..models.datatypes import TextChunk


class ChunkSplitter:
    """Greedily pack paragraphs (or sentences of oversized paragraphs) into chunks."""

    _PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")
    _SENTENCE_END = re.compile(
        r"[.!?][\"')\]}»”]*\s+|[。！？][」』）”]*\s*"
    )
    _COMMON_ABBREVIATIONS = frozenset(
        {
            "mr.",
            "mrs.",
            "ms.",
            "dr.",
            "prof.",
            "sr.",
            "jr.",
            "st.",
            "etc.",
            "e.g.",
            "i.e.",
            "vs.",
            "no.",
            "fig.",
            "al.",
        }
    )
    _ACRONYM_PATTERN = re.compile(r"(?:[A-Za-z]\.){2,}$")

    def __init__(self, overlap_ratio: float = 0.10) -> None:
        """Initialize the overlap bound as a fraction of the max chunk size."""

        if not 0.0 <= overlap_ratio < 1.0:
            raise ValueError("`overlap_ratio` must be in the range [0, 1).")
        self.overlap_ratio = overlap_ratio

    def split(self, text: str, max_chunk_size: int) -> list[TextChunk]:
        """Split text into ordered chunks no longer than `max_chunk_size`.

        Trailing whitespace of a chunk does not count toward the limit, so a
        paragraph that fits keeps its blank-line separator. A single sentence
        longer than `max_chunk_size` is emitted verbatim as its own chunk.
        Empty text yields an empty list.

        Args:
            text: Source text.
            max_chunk_size: Maximum chunk length in characters.

        Returns:
            Ordered chunks whose `text` fields concatenate to `text`.
        """

        if max_chunk_size <= 0:
            raise ValueError("`max_chunk_size` must be a positive integer.")
        if not text:
            return []

        overlap_limit = int(max_chunk_size * self.overlap_ratio)
        chunks: list[TextChunk] = []
        current: list[str] = []
        current_length = 0
        overlap = ""
        for piece in self._pieces(text, max_chunk_size):
            if current and current_length + self._measure(piece) > max_chunk_size:
                chunks.append(
                    TextChunk(
                        index=len(chunks),
                        text="".join(current),
                        overlap_prefix=overlap,
                    )
                )
                overlap = self._overlap_from(current[-1], overlap_limit)
                current = []
                current_length = 0
            current.append(piece)
            current_length += len(piece)

        if current:
            chunks.append(
                TextChunk(
                    index=len(chunks),
                    text="".join(current),
                    overlap_prefix=overlap,
                )
            )
        return chunks

    def _pieces(self, text: str, max_chunk_size: int) -> Iterator[str]:
        """Yield paragraphs, breaking oversized ones into sentences."""

        for paragraph in self._paragraphs(text):
            if self._measure(paragraph) <= max_chunk_size:
                yield paragraph
                continue
            for sentence in self._sentences(paragraph):
                yield sentence

    @staticmethod
    def _measure(piece: str) -> int:
        """Return the piece length without its trailing whitespace."""

        return len(piece.rstrip())

    def _paragraphs(self, text: str) -> list[str]:
        """Return paragraph slices with their trailing blank-line separators attached."""

        return self._slice_after(text, self._PARAGRAPH_BREAK.finditer(text))

    def _sentences(self, text: str) -> list[str]:
        """Return sentence slices with their trailing whitespace attached."""

        boundaries = (
            match
            for match in self._SENTENCE_END.finditer(text)
            if self._is_sentence_boundary(text, match.start())
        )
        return self._slice_after(text, boundaries)

    @staticmethod
    def _slice_after(text: str, matches: Iterator[re.Match[str]]) -> list[str]:
        """Cut text after each match end, keeping every character."""

        slices: list[str] = []
        start = 0
        for match in matches:
            if match.end() <= start:
                continue
            slices.append(text[start : match.end()])
            start = match.end()
        if start < len(text):
            slices.append(text[start:])
        return slices

    def _overlap_from(self, piece: str, limit: int) -> str:
        """Return the last complete sentence of a piece, bounded to `limit` characters."""

        if limit <= 0:
            return ""
        sentences = [item for item in self._sentences(piece) if item.strip()]
        if not sentences:
            return ""
        last_sentence = sentences[-1].strip()
        if len(last_sentence) <= limit:
            return last_sentence
        return self._tail(last_sentence, limit)

    @staticmethod
    def _tail(text: str, limit: int) -> str:
        """Return the trailing `limit` characters, starting on a word boundary when possible."""

        window = text[-limit:]
        cut = re.search(r"\s", window)
        if cut is not None and window[cut.end() :].strip():
            window = window[cut.end() :]
        return window.strip()

    def _is_sentence_boundary(self, text: str, punctuation_index: int) -> bool:
        """Return whether punctuation at index terminates a sentence."""

        if text[punctuation_index] != ".":
            return True
        return not self._is_abbreviation_period(text, punctuation_index)

    def _is_abbreviation_period(self, text: str, punctuation_index: int) -> bool:
        """Return whether a period belongs to a likely abbreviation token."""

        start = punctuation_index
        while start > 0 and (text[start - 1].isalpha() or text[start - 1] == "."):
            start -= 1
        token = text[start : punctuation_index + 1].lower()
        if token in self._COMMON_ABBREVIATIONS:
            return True

        acronym_start = max(0, punctuation_index - 8)
        acronym_window = text[acronym_start : punctuation_index + 1]
        return bool(self._ACRONYM_PATTERN.search(acronym_window))
