"""Pipeline orchestration for Talkcast.

Responsibilities:
- Define the stage order for the document-to-podcast flow.
- Honor stage-skip flags and the combine-only recovery mode.
- Isolate per-chapter failures and report them in a run summary.

Key types:
- `TalkcastPipeline`: orchestration facade.
"""

from __future__ import annotations

from collections.abc import Callable

from ..audio.renderer import AudioRenderer
from ..config import TalkcastConfig
from ..errors import AssemblyError
from ..io.document import DocumentSource
from ..io.storage import ArtifactStore
from ..models.datatypes import BookMeta, Chapter, CombinedArtifact, RunSummary
from ..parsing import normalize_optional_string
from ..telemetry.logger import RunLogger
from ..text.formatter import TextFormatter
from .execution import (
    PipelineExecutionMixin,
    SourceFactory,
    TransformFactory,
    default_source_factory,
    default_transform_factory,
)
from .telemetry import PipelineTelemetryMixin


class TalkcastPipeline(PipelineTelemetryMixin, PipelineExecutionMixin):
    """Coordinate all stages for a single Talkcast run.

    Runs move through `extract -> filter -> rewrite -> render -> assemble -> feed`.
    Rewrite, render and feed may be skipped by configuration; a skipped render
    ends the run once narration text is written. Chapters that fail to rewrite
    or render are logged, recorded in the summary and left out of later stages.
    """

    def __init__(
        self,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        *,
        source_factory: SourceFactory | None = None,
        transform_factory: TransformFactory | None = None,
        renderer: AudioRenderer | None = None,
    ) -> None:
        """Initialize logging hooks and optional collaborator overrides."""

        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._source_factory = source_factory or default_source_factory
        self._transform_factory = transform_factory or default_transform_factory
        self._renderer = renderer

    def run(self, config: TalkcastConfig, source: DocumentSource | None = None) -> RunSummary:
        """Run the pipeline for one book and return the run summary.

        Raises:
            ExtractionError: If no chapters can be obtained.
            FilterExhaustionError: If no chapter passes the heading gate.
            PipelineStageError: For other fatal stage failures.
        """

        config.validate()
        if config.combine_only:
            return self.run_combine_only(config)

        store = self._store_for(config)
        document = source if source is not None else self._source_factory(config)
        book, chapters = self._run_stage("extract", lambda: self._extract(document))
        summary = RunSummary(book=book, output_dir=config.output_dir, chapters_total=len(chapters))

        kept, summary.filtered_out = self._run_stage(
            "filter", lambda: self._filter(document, chapters)
        )
        prepared = self._persist_chapters(
            store, book, chapters, kept, TextFormatter(config.language)
        )

        if config.skip_rewrite:
            self._skip_stage(summary, "rewrite", "skip_rewrite")
            units = self._passthrough(config, store, prepared)
        else:
            units = self._run_stage(
                "rewrite", lambda: self._rewrite(config, store, prepared, summary)
            )
        summary.narration = units
        summary.narration_paths = self._write_narration(store, units)

        if config.skip_render:
            for stage_name in ("render", "assemble", "feed"):
                self._skip_stage(summary, stage_name, "skip_render")
            return summary

        summary.segments = self._run_stage(
            "render", lambda: self._render(config, store, units, summary)
        )
        self._run_assemble_stage(
            summary, lambda: self._assemble(config, store, book, summary.segments, units)
        )
        self._run_feed_stage(config, store, summary)
        return summary

    def run_combine_only(self, config: TalkcastConfig) -> RunSummary:
        """Rebuild the combined artifact and feed from already-rendered chapter audio."""

        config.validate()
        store = self._store_for(config)
        book = self._book_from_store(config, store)
        summary = RunSummary(book=book, output_dir=config.output_dir)
        for stage_name in ("extract", "filter", "rewrite", "render"):
            self._skip_stage(summary, stage_name, "combine_only")

        self._run_assemble_stage(
            summary, lambda: self._combine_existing(config, store, book, summary)
        )
        summary.chapters_total = len(summary.segments)
        self._run_feed_stage(config, store, summary)
        return summary

    def list_chapters(
        self, config: TalkcastConfig, source: DocumentSource | None = None
    ) -> tuple[BookMeta, list[tuple[Chapter, bool]]]:
        """List extracted chapters with their heading-gate status, writing nothing."""

        document = source if source is not None else self._source_factory(config)
        book, chapters = self._extract(document)
        return book, [(chapter, document.has_structural_heading(chapter)) for chapter in chapters]

    def _run_assemble_stage(
        self, summary: RunSummary, action: Callable[[], CombinedArtifact]
    ) -> None:
        """Run the assemble stage, recording an assembly failure instead of raising."""

        try:
            summary.combined = self._run_stage("assemble", action)
        except AssemblyError as exc:
            summary.assembly_error = exc.detail

    def _run_feed_stage(
        self, config: TalkcastConfig, store: ArtifactStore, summary: RunSummary
    ) -> None:
        """Run the feed stage when enabled and a base URL is configured."""

        if config.skip_feed:
            self._skip_stage(summary, "feed", "skip_feed")
            return
        if normalize_optional_string(config.feed_base_url) is None:
            self._skip_stage(summary, "feed", "no_feed_base_url")
            return
        summary.feed_path = self._run_stage(
            "feed",
            lambda: self._publish_feed(
                config, store, summary.book, summary.segments, summary.combined
            ),
        )
