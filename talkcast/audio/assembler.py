"""Combined-artifact assembly with embedded chapter markers.

Responsibilities:
- Build one narration script from ordered chapter texts with explicit pauses.
- Render that script in a single pass and mux the chapter table into it.
- Rebuild the combined artifact from rendered chapter audio (combine-only).
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ..errors import AssemblyError, RenderFailure, ServiceError
from ..io.storage import ArtifactStore
from ..models.datatypes import ChapterMark, CombinedArtifact, RenderedSegment
from ..telemetry.logger import RunLogger
from ..text.pauses import silence
from .chapters import build_ffmetadata, compute_chapter_marks
from .renderer import AudioRenderer


class ChapterAssembler:
    """Assemble rendered chapters into one chaptered audio file."""

    def __init__(
        self,
        renderer: AudioRenderer,
        *,
        inter_chapter_pause_ms: int = 2000,
        chapter_markers: bool = True,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize the renderer and the single inter-chapter pause value."""

        if inter_chapter_pause_ms < 0:
            raise ValueError("`inter_chapter_pause_ms` must be zero or positive.")
        self.renderer = renderer
        self.inter_chapter_pause_ms = inter_chapter_pause_ms
        self.chapter_markers = chapter_markers
        self._run_logger = run_logger

    def build_script(self, narration_texts: Sequence[str]) -> str:
        """Join speech-formatted chapter texts with the inter-chapter pause directive."""

        separator = f" {silence(self.inter_chapter_pause_ms)} "
        return separator.join(
            self.renderer.formatter.prepare_for_speech(text).strip() for text in narration_texts
        )

    def assemble(
        self,
        segments: Sequence[RenderedSegment],
        narration_texts: Sequence[str],
        output_path: Path,
        *,
        title: str | None = None,
    ) -> CombinedArtifact:
        """Compute marks, render the combined script once, and embed the chapter table.

        Args:
            segments: Rendered chapters in order, with measured durations.
            narration_texts: Narration text for each segment, in the same order.
            output_path: Combined audio destination.
            title: Optional container title.

        Raises:
            AssemblyError: If inputs are empty or mismatched, or rendering/muxing fails.
        """

        if not segments:
            raise AssemblyError(
                "No rendered chapters are available to assemble.",
                hint="Check earlier render failures, then rerun.",
            )
        if len(segments) != len(narration_texts):
            raise AssemblyError(
                f"Got {len(segments)} rendered chapters but {len(narration_texts)} narration texts."
            )

        marks = compute_chapter_marks(segments, self.inter_chapter_pause_ms)
        script = self.build_script(narration_texts)
        embedded = self._render_combined(script, marks, output_path, title)
        self._event("assembled", chapters=len(marks), embedded=embedded, file=output_path.name)
        return CombinedArtifact(
            audio_path=output_path,
            marks=tuple(marks),
            chapters_embedded=embedded,
        )

    def combine_only(self, store: ArtifactStore, *, title: str | None = None) -> CombinedArtifact:
        """Rebuild the combined artifact from previously rendered chapter audio.

        Each chapter audio file is re-measured and paired with its narration
        text; the narration script (not the old audio) is rendered fresh.
        """

        segments, texts = self.collect_rendered(store)
        return self.assemble(segments, texts, store.combined_audio_path, title=title)

    def collect_rendered(self, store: ArtifactStore) -> tuple[list[RenderedSegment], list[str]]:
        """Return re-measured segments and their narration texts from the store.

        Raises:
            AssemblyError: If no chapter audio with a matching narration text exists.
        """

        titles = store.chapter_titles()
        segments: list[RenderedSegment] = []
        texts: list[str] = []
        for order, audio_path in store.rendered_audio_files():
            narration_path = store.narration_for_audio(audio_path)
            chapter_title = titles.get(order) or self._title_from_stem(audio_path.stem)
            if not narration_path.is_file():
                if self._run_logger is not None:
                    self._run_logger.log_chapter_skipped(
                        "assemble", order, chapter_title, "missing_narration_text"
                    )
                continue
            duration = self.renderer.measure(audio_path)
            segments.append(
                RenderedSegment(
                    order=order,
                    title=chapter_title,
                    audio_path=audio_path,
                    duration_seconds=duration.seconds,
                    duration_estimated=duration.estimated,
                )
            )
            texts.append(narration_path.read_text(encoding="utf-8"))

        if not segments:
            raise AssemblyError(
                f"No rendered chapter audio with narration text found in `{store.audio_dir}`.",
                hint="Run a full build first; combine-only reuses existing chapter audio.",
            )
        return segments, texts

    def _render_combined(
        self,
        script: str,
        marks: Sequence[ChapterMark],
        output_path: Path,
        title: str | None,
    ) -> bool:
        """Render the script and mux chapters; return whether chapters were embedded."""

        if not (self.chapter_markers and marks):
            try:
                self.renderer.render_script(script, output_path)
            except RenderFailure as exc:
                raise AssemblyError(f"Rendering the combined script failed: {exc}") from exc
            return False

        output_path.parent.mkdir(parents=True, exist_ok=True)
        transient: list[Path] = []
        try:
            rendered_path = self.renderer.transient_path(
                output_path, output_path.suffix, transient
            )
            self.renderer.render_script(script, rendered_path)
            metadata_path = self.renderer.transient_path(output_path, ".ffmetadata.txt", transient)
            metadata_path.write_text(build_ffmetadata(marks, title=title), encoding="utf-8")
            self.renderer.run_tool(self._mux_command(rendered_path, metadata_path, output_path))
        except RenderFailure as exc:
            raise AssemblyError(f"Rendering the combined script failed: {exc}") from exc
        except (ServiceError, OSError) as exc:
            if output_path.exists():
                output_path.unlink()
            raise AssemblyError(
                f"Muxing chapter metadata into `{output_path.name}` failed: {exc}",
                hint="Verify ffmpeg is installed; rerun with `--combine-only` to retry assembly.",
            ) from exc
        finally:
            for path in transient:
                if path.exists():
                    path.unlink()
        return True

    @staticmethod
    def _mux_command(audio_path: Path, metadata_path: Path, output_path: Path) -> list[str]:
        """Return the ffmpeg command muxing a chapter table into an audio container."""

        command = [
            "ffmpeg",
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            str(audio_path),
            "-i",
            str(metadata_path),
            "-map",
            "0:a",
            "-map_metadata",
            "1",
            "-map_chapters",
            "1",
            "-c",
            "copy",
        ]
        if output_path.suffix == ".mp3":
            command.extend(["-id3v2_version", "3"])
        command.append(str(output_path))
        return command

    @staticmethod
    def _title_from_stem(stem: str) -> str:
        """Recover a readable title from an `NN-title` file stem."""

        _, _, title = stem.partition("-")
        return title.replace("_", " ").strip() or stem

    def _event(self, event: str, **context: object) -> None:
        """Emit one assemble-stage event when a logger is attached."""

        if self._run_logger is not None:
            self._run_logger.event("assemble", event, **context)
