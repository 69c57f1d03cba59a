"""Core stage execution helpers for the Talkcast pipeline.

Responsibilities:
- Execute extract/filter content stages and persist prepared chapter text.
- Execute the rewrite and render stages with per-chapter failure isolation.
- Execute assemble/feed stages and serialize run artifacts.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

from ..audio.assembler import ChapterAssembler
from ..audio.chapters import chapter_marks_payload
from ..audio.renderer import AudioRenderer
from ..config import TalkcastConfig
from ..errors import (
    ExtractionError,
    FilterExhaustionError,
    PipelineStageError,
    RenderFailure,
    RewriteError,
    ServiceError,
)
from ..feed.rss import PodcastFeedWriter
from ..io.document import DocumentSource
from ..io.epub_source import EpubDocumentSource
from ..io.storage import ArtifactStore
from ..llm.rewriter import ContextualRewriter, NarrationTransformer, TextTransform
from ..models.datatypes import (
    BookMeta,
    Chapter,
    CombinedArtifact,
    NarrationUnit,
    RenderedSegment,
    RunSummary,
    SkippedChapter,
)
from ..parsing import normalize_optional_string
from ..telemetry.logger import RunLogger
from ..text.chunking import ChunkSplitter
from ..text.formatter import TextFormatter

SourceFactory = Callable[[TalkcastConfig], DocumentSource]
TransformFactory = Callable[[TalkcastConfig], TextTransform]


def default_source_factory(config: TalkcastConfig) -> DocumentSource:
    """Open the configured input as an EPUB document source."""

    return EpubDocumentSource(config.input_path, language=config.language)


def default_transform_factory(config: TalkcastConfig) -> TextTransform:
    """Build the OpenAI-backed narration transform for a config.

    Raises:
        PipelineStageError: If no API key is configured.
    """

    if normalize_optional_string(config.api_key) is None:
        raise PipelineStageError(
            stage="rewrite",
            detail="OpenAI API key is not configured.",
            hint=(
                "Set `OPENAI_API_KEY`, run `talkcast credentials --set-api-key`, "
                "or pass `--skip-rewrite`."
            ),
        )
    return NarrationTransformer(
        model=config.model,
        temperature=config.temperature,
        max_output_tokens=config.max_output_tokens,
        language=config.language,
        api_key=config.api_key,
        timeout_seconds=config.request_timeout_seconds,
    )


def failure_reason(exc: Exception) -> str:
    """Return a short log-safe reason token for a per-chapter failure."""

    cause = exc.__cause__
    if isinstance(cause, ServiceError):
        return cause.failure_kind
    if cause is not None:
        return type(cause).__name__
    return type(exc).__name__


def chapters_metadata_payload(
    store: ArtifactStore, book: BookMeta, chapters: Sequence[Chapter], kept_orders: set[int]
) -> dict[str, object]:
    """Serialize book metadata and chapter listing with heading-gate status."""

    return {
        "book": {
            "title": book.title,
            "author": book.author,
            "language": book.language,
            "source_path": str(book.source_path),
        },
        "chapters": [
            {
                "order": chapter.order,
                "title": chapter.title,
                "filename": store.chapter_text_path(chapter.order, chapter.title).name,
                "kept": chapter.order in kept_orders,
            }
            for chapter in chapters
        ],
    }


def segments_payload(segments: Sequence[RenderedSegment]) -> dict[str, object]:
    """Serialize rendered segments with their duration provenance."""

    return {
        "segments": [
            {
                "order": segment.order,
                "title": segment.title,
                "file": segment.audio_path.name,
                "duration_seconds": segment.duration_seconds,
                "duration_estimated": segment.duration_estimated,
            }
            for segment in segments
        ]
    }


class PipelineExecutionMixin:
    """Provide stage-level pipeline helper methods."""

    _run_logger: RunLogger | None
    _source_factory: SourceFactory
    _transform_factory: TransformFactory
    _renderer: AudioRenderer | None

    @staticmethod
    def _store_for(config: TalkcastConfig) -> ArtifactStore:
        """Return the artifact store for a config's book and output root."""

        return ArtifactStore(config.output_dir, config.book_name, config.audio_format)

    def _renderer_for(self, config: TalkcastConfig) -> AudioRenderer:
        """Return the injected renderer or build one from config."""

        if self._renderer is not None:
            return self._renderer
        return AudioRenderer(
            voice=config.voice,
            rate=config.rate,
            audio_format=config.audio_format,
            bitrate=config.audio_bitrate,
            timeout_seconds=config.tool_timeout_seconds,
            formatter=TextFormatter(config.language),
            run_logger=self._run_logger,
        )

    def _extract(self, source: DocumentSource) -> tuple[BookMeta, list[Chapter]]:
        """Read book metadata and ordered chapters from the source.

        Raises:
            ExtractionError: If the source yields no chapters.
        """

        chapters = source.chapters()
        if not chapters:
            raise ExtractionError(
                "The document source yielded no chapters.",
                hint="Verify the input file contains readable chapter documents.",
            )
        return source.book_meta, chapters

    def _filter(
        self, source: DocumentSource, chapters: Sequence[Chapter]
    ) -> tuple[list[Chapter], list[Chapter]]:
        """Split chapters into those with a structural heading and those without.

        Raises:
            FilterExhaustionError: If no chapter carries a structural heading.
        """

        kept: list[Chapter] = []
        filtered: list[Chapter] = []
        for chapter in chapters:
            if source.has_structural_heading(chapter):
                kept.append(chapter)
            else:
                filtered.append(chapter)
                self._event("filter", "filtered", order=chapter.order, title=chapter.title)
        if not kept:
            raise FilterExhaustionError(
                f"None of the {len(chapters)} extracted chapters has an <h1>-<h3> heading.",
                hint="Check the input structure; front matter without headings is dropped.",
            )
        return kept, filtered

    def _persist_chapters(
        self,
        store: ArtifactStore,
        book: BookMeta,
        chapters: Sequence[Chapter],
        kept: Sequence[Chapter],
        formatter: TextFormatter,
    ) -> list[tuple[Chapter, str]]:
        """Write prepared chapter texts plus metadata; return kept prepared texts."""

        kept_orders = {chapter.order for chapter in kept}
        prepared: list[tuple[Chapter, str]] = []
        for chapter in chapters:
            text = formatter.prepare_for_rewrite(chapter.raw_text)
            store.save_text(store.chapter_text_path(chapter.order, chapter.title), text)
            if chapter.order in kept_orders:
                prepared.append((chapter, text))
        store.save_json(
            store.chapters_metadata_path,
            chapters_metadata_payload(store, book, chapters, kept_orders),
        )
        return prepared

    def _rewrite(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        prepared: Sequence[tuple[Chapter, str]],
        summary: RunSummary,
    ) -> list[NarrationUnit]:
        """Rewrite prepared chapters in order, excluding chapters that fail.

        Chapters with existing narration text are reused unless `overwrite` is set.
        """

        rewriter = ContextualRewriter(
            max_chunk_chars=config.max_chunk_chars,
            splitter=ChunkSplitter(overlap_ratio=config.overlap_ratio),
            run_logger=self._run_logger,
        )
        transform: TextTransform | None = None
        units: list[NarrationUnit] = []
        for chapter, text in prepared:
            existing = self._existing_narration(config, store, chapter, require_rewritten=True)
            if existing is not None:
                units.append(existing)
                continue
            if transform is None:
                transform = self._transform_factory(config)
            try:
                narration = rewriter.rewrite(
                    text, transform, order=chapter.order, title=chapter.title
                )
            except RewriteError as exc:
                self._skip_chapter(
                    summary,
                    SkippedChapter(chapter.order, chapter.title, "rewrite", exc.describe()),
                    failure_reason(exc),
                )
                continue
            self._discard_stale_audio(store, chapter)
            units.append(NarrationUnit(order=chapter.order, title=chapter.title, text=narration))
        return units

    def _passthrough(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        prepared: Sequence[tuple[Chapter, str]],
    ) -> list[NarrationUnit]:
        """Return narration units without rewriting, preferring existing narration text."""

        units: list[NarrationUnit] = []
        for chapter, text in prepared:
            existing = self._existing_narration(config, store, chapter)
            units.append(
                existing
                if existing is not None
                else NarrationUnit(
                    order=chapter.order, title=chapter.title, text=text, rewritten=False
                )
            )
        return units

    def _existing_narration(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        chapter: Chapter,
        *,
        require_rewritten: bool = False,
    ) -> NarrationUnit | None:
        """Load a previously written narration text unless overwriting.

        With `require_rewritten`, passthrough text left by a `skip_rewrite` run
        is not reused, so the chapter is rewritten.
        """

        path = store.narration_path(chapter.order, chapter.title)
        if config.overwrite or not store.has_content(path):
            return None
        rewritten = store.narration_is_rewritten(path)
        if require_rewritten and not rewritten:
            self._event("rewrite", "passthrough_replaced", order=chapter.order, file=path.name)
            return None
        self._event("rewrite", "reused", order=chapter.order, file=path.name)
        return NarrationUnit(
            order=chapter.order,
            title=chapter.title,
            text=store.load_text(path),
            rewritten=rewritten,
        )

    def _discard_stale_audio(self, store: ArtifactStore, chapter: Chapter) -> None:
        """Delete chapter audio rendered from narration text that was just replaced."""

        stale = store.audio_path(chapter.order, chapter.title)
        if stale.is_file():
            stale.unlink()
            self._event("rewrite", "stale_audio_removed", order=chapter.order, file=stale.name)

    @staticmethod
    def _write_narration(store: ArtifactStore, units: Sequence[NarrationUnit]) -> list[Path]:
        """Write narration text files in chapter order and record their rewrite flags."""

        paths = [
            store.save_text(store.narration_path(unit.order, unit.title), unit.text)
            for unit in units
        ]
        store.record_narration({path.name: unit.rewritten for path, unit in zip(paths, units)})
        return paths

    def _render(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        units: Sequence[NarrationUnit],
        summary: RunSummary,
    ) -> list[RenderedSegment]:
        """Render narration units, excluding failed units, and persist durations."""

        renderer = self._renderer_for(config)
        batch = renderer.render_many(
            units,
            lambda unit: store.audio_path(unit.order, unit.title),
            overwrite=config.overwrite,
        )
        for failure in batch.failures:
            self._record_render_failure(summary, failure)
        store.save_json(store.segments_path, segments_payload(batch.segments))
        return batch.segments

    def _record_render_failure(self, summary: RunSummary, failure: RenderFailure) -> None:
        """Record one render failure as a skipped chapter."""

        self._skip_chapter(
            summary,
            SkippedChapter(
                failure.order if failure.order is not None else 0,
                failure.title,
                "render",
                failure.describe(),
            ),
            failure_reason(failure),
        )

    def _assembler_for(self, config: TalkcastConfig) -> ChapterAssembler:
        """Build the chapter assembler for a config."""

        return ChapterAssembler(
            self._renderer_for(config),
            inter_chapter_pause_ms=config.inter_chapter_pause_ms,
            chapter_markers=config.chapter_markers,
            run_logger=self._run_logger,
        )

    def _assemble(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        book: BookMeta,
        segments: Sequence[RenderedSegment],
        units: Sequence[NarrationUnit],
    ) -> CombinedArtifact:
        """Assemble rendered segments into the combined artifact."""

        texts_by_order = {unit.order: unit.text for unit in units}
        combined = self._assembler_for(config).assemble(
            segments,
            [texts_by_order[segment.order] for segment in segments],
            store.combined_audio_path,
            title=book.title,
        )
        return self._save_marks(store, combined)

    def _combine_existing(
        self, config: TalkcastConfig, store: ArtifactStore, book: BookMeta, summary: RunSummary
    ) -> CombinedArtifact:
        """Rebuild the combined artifact from already-rendered chapter audio."""

        assembler = self._assembler_for(config)
        segments, texts = assembler.collect_rendered(store)
        summary.segments = segments
        combined = assembler.assemble(
            segments, texts, store.combined_audio_path, title=book.title
        )
        return self._save_marks(store, combined)

    @staticmethod
    def _save_marks(store: ArtifactStore, combined: CombinedArtifact) -> CombinedArtifact:
        """Persist computed chapter marks beside the combined artifact."""

        marks_path = store.save_json(
            store.chapter_marks_path, chapter_marks_payload(combined.marks)
        )
        return replace(combined, marks_path=marks_path)

    def _publish_feed(
        self,
        config: TalkcastConfig,
        store: ArtifactStore,
        book: BookMeta,
        segments: Sequence[RenderedSegment],
        combined: CombinedArtifact | None,
    ) -> Path:
        """Write the podcast RSS feed for rendered episodes."""

        writer = PodcastFeedWriter(
            base_url=config.feed_base_url or "",
            author=config.feed_author,
            image_url=config.feed_image_url,
            root=store.root,
        )
        path = writer.write(store.feed_path, book, segments, combined)
        self._event("feed", "written", file=path.name, episodes=len(segments))
        return path

    @staticmethod
    def _book_from_store(config: TalkcastConfig, store: ArtifactStore) -> BookMeta:
        """Recover book metadata recorded by an earlier run, falling back to config."""

        payload = store.load_json(store.chapters_metadata_path)
        recorded = payload.get("book")
        if not isinstance(recorded, dict):
            recorded = {}
        return BookMeta(
            source_path=config.input_path,
            title=normalize_optional_string(recorded.get("title")) or config.book_name,
            author=normalize_optional_string(recorded.get("author")) or config.feed_author,
            language=normalize_optional_string(recorded.get("language")) or config.language,
        )
