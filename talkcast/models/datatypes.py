"""Core datatypes shared across Talkcast modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Provide explicit typing for reproducibility and serialization.

Key types:
- `BookMeta`, `Chapter`, `TextChunk`, `NarrationUnit`, `RenderedSegment`,
  `AudioDuration`, `ChapterMark`, `CombinedArtifact`, `RenderBatch`,
  `SkippedChapter`, `VoiceInfo`, and `RunSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..errors import RenderFailure


@dataclass(frozen=True, slots=True)
class BookMeta:
    """Metadata describing the source book.

    Attributes:
        source_path: Path to the input document.
        title: Human-readable title.
        author: Optional author name.
        language: Narration language code.
    """

    source_path: Path
    title: str
    author: str | None
    language: str


@dataclass(frozen=True, slots=True)
class Chapter:
    """A chapter yielded by the document source.

    Attributes:
        order: 1-based, stable and unique chapter order.
        title: Chapter title or inferred label.
        raw_text: Raw chapter text, possibly carrying HTML markup.
    """

    order: int
    title: str
    raw_text: str


@dataclass(frozen=True, slots=True)
class TextChunk:
    """A bounded slice of one chapter's text.

    Attributes:
        index: 0-based chunk index within the chapter.
        text: Exact source slice; chunk texts concatenate back to the input.
        overlap_prefix: Tail of the previous chunk carried forward as boundary context.
    """

    index: int
    text: str
    overlap_prefix: str = ""

    @property
    def payload(self) -> str:
        """Return the text sent for transformation, with the overlap lead-in injected."""

        if not self.overlap_prefix:
            return self.text
        return f"{self.overlap_prefix}\n\n{self.text}"


@dataclass(frozen=True, slots=True)
class NarrationUnit:
    """Final speech-ready narration text for one chapter."""

    order: int
    title: str
    text: str
    rewritten: bool = True


@dataclass(frozen=True, slots=True)
class AudioDuration:
    """A duration reading for one audio artifact.

    Attributes:
        seconds: Duration in seconds.
        estimated: `True` when derived from a fallback estimate instead of a probe.
    """

    seconds: float
    estimated: bool = False


@dataclass(frozen=True, slots=True)
class RenderedSegment:
    """One chapter's rendered audio file and its measured duration.

    Attributes:
        order: Chapter order.
        title: Chapter title.
        audio_path: Rendered distributable audio file.
        duration_seconds: Duration measured from the rendered file.
        duration_estimated: Whether the duration came from the fallback estimate.
    """

    order: int
    title: str
    audio_path: Path
    duration_seconds: float
    duration_estimated: bool = False


@dataclass(frozen=True, slots=True)
class VoiceInfo:
    """One speech voice offered by the platform synthesizer."""

    name: str
    locale: str
    sample: str


@dataclass(frozen=True, slots=True)
class ChapterMark:
    """A (start, end, title) triple embedded in the combined artifact."""

    title: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True, slots=True)
class CombinedArtifact:
    """One combined audio file plus its chapter table.

    Attributes:
        audio_path: Combined audio file.
        marks: Chapter marks computed for the included segments.
        chapters_embedded: Whether the marks were muxed into the container.
        marks_path: JSON sidecar with the computed marks, when written.
    """

    audio_path: Path
    marks: tuple[ChapterMark, ...]
    chapters_embedded: bool
    marks_path: Path | None = None


@dataclass(slots=True)
class RenderBatch:
    """Result of rendering many units with partial-failure semantics."""

    segments: list[RenderedSegment] = field(default_factory=list)
    failures: list[RenderFailure] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SkippedChapter:
    """A chapter excluded from a stage's output, with the reason."""

    order: int
    title: str
    stage: str
    reason: str


@dataclass(slots=True)
class RunSummary:
    """Mutable record of one pipeline run, reported at run end.

    Attributes:
        book: Book metadata.
        output_dir: Root of the persisted layout.
        chapters_total: Number of chapters yielded by the source.
        filtered_out: Chapters dropped by the heading gate.
        skipped: Chapters excluded by per-chapter failures.
        narration: Narration units produced for this run.
        narration_paths: Written narration text files.
        segments: Rendered segments included in assembly.
        combined: Combined artifact, when assembled.
        feed_path: Written podcast feed, when generated.
        assembly_error: Detail of a failed assembly stage.
        stages_skipped: Stage names skipped by configuration.
    """

    book: BookMeta
    output_dir: Path
    chapters_total: int = 0
    filtered_out: list[Chapter] = field(default_factory=list)
    skipped: list[SkippedChapter] = field(default_factory=list)
    narration: list[NarrationUnit] = field(default_factory=list)
    narration_paths: list[Path] = field(default_factory=list)
    segments: list[RenderedSegment] = field(default_factory=list)
    combined: CombinedArtifact | None = None
    feed_path: Path | None = None
    assembly_error: str | None = None
    stages_skipped: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return whether the run finished without a fatal stage error."""

        return self.assembly_error is None
