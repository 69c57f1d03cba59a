"""Per-unit speech rendering with macOS `say` and ffmpeg.

Responsibilities:
- Render one text unit to distributable audio through transient files.
- Measure rendered durations with ffprobe, flagging fallback estimates.
- Render many units with partial-failure semantics.
- List the voices offered by the platform synthesizer.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import json
import os
from pathlib import Path
import re
import tempfile

from ..errors import RenderFailure, ServiceError
from ..models.datatypes import (
    AudioDuration,
    NarrationUnit,
    RenderBatch,
    RenderedSegment,
    VoiceInfo,
)
from ..runtime_tools import ToolRunner, run_tool
from ..telemetry.logger import RunLogger
from ..text.formatter import TextFormatter

_UNREADABLE_FALLBACK_SECONDS = 30.0
_MIN_ESTIMATE_SECONDS = 1.0
_VOICE_LINE = re.compile(
    r"^(?P<name>.+?)\s+(?P<locale>[a-z]{2,3}[_-][A-Za-z0-9_-]+)\s+#\s?(?P<sample>.*)$"
)
_CODECS = {"mp3": "libmp3lame", "m4a": "aac"}


class AudioRenderer:
    """Render narration text to audio files and measure their durations."""

    def __init__(
        self,
        *,
        voice: str = "Kyoko",
        rate: int = 180,
        audio_format: str = "mp3",
        bitrate: str = "192k",
        timeout_seconds: float | None = 1800.0,
        formatter: TextFormatter | None = None,
        tool_runner: ToolRunner = run_tool,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize voice, codec and tool settings."""

        if audio_format not in _CODECS:
            raise ValueError(f"Unsupported audio format `{audio_format}`.")
        self.voice = voice
        self.rate = rate
        self.audio_format = audio_format
        self.bitrate = bitrate
        self.timeout_seconds = timeout_seconds
        self.formatter = formatter if formatter is not None else TextFormatter()
        self._tool_runner = tool_runner
        self._run_logger = run_logger

    def render(
        self,
        text: str,
        output_path: Path,
        *,
        order: int | None = None,
        title: str = "",
    ) -> None:
        """Format text for speech and render it to `output_path`.

        Raises:
            RenderFailure: If synthesis or transcoding fails.
        """

        self.render_script(
            self.formatter.prepare_for_speech(text), output_path, order=order, title=title
        )

    def render_script(
        self,
        script: str,
        output_path: Path,
        *,
        order: int | None = None,
        title: str = "",
    ) -> None:
        """Render an already speech-formatted script to `output_path`.

        The script and raw synthesis output live in uniquely named transient
        files beside the output; both are removed on every exit path, and a
        partial output is removed on failure.

        Raises:
            RenderFailure: If synthesis or transcoding fails.
        """

        output_path.parent.mkdir(parents=True, exist_ok=True)
        transient: list[Path] = []
        try:
            script_path = self.transient_path(output_path, ".txt", transient)
            script_path.write_text(script, encoding="utf-8")
            raw_path = self.transient_path(output_path, ".aiff", transient)
            self._synthesize(script_path, raw_path)
            self._transcode(raw_path, output_path)
        except (ServiceError, OSError) as exc:
            if output_path.exists():
                output_path.unlink()
            raise RenderFailure(
                f"Rendering `{output_path.name}` failed: {exc}", order=order, title=title
            ) from exc
        finally:
            for path in transient:
                if path.exists():
                    path.unlink()

    def measure(self, audio_path: Path) -> AudioDuration:
        """Return the duration of an audio file, estimating when ffprobe fails."""

        command = [
            "ffprobe",
            "-v",
            "quiet",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            str(audio_path),
        ]
        try:
            completed = self._tool_runner(command, self.timeout_seconds)
            seconds = float(json.loads(completed.stdout)["format"]["duration"])
        except (ServiceError, ValueError, KeyError, TypeError) as exc:
            self._debug(
                "duration_probe_failed", file=audio_path.name, error_type=type(exc).__name__
            )
            return self._estimate_duration(audio_path)
        if seconds <= 0:
            return self._estimate_duration(audio_path)
        return AudioDuration(seconds=seconds)

    def measure_duration(self, audio_path: Path) -> float:
        """Return the duration in seconds; never raises."""

        return self.measure(audio_path).seconds

    def render_many(
        self,
        units: Sequence[NarrationUnit],
        path_for: Callable[[NarrationUnit], Path],
        *,
        overwrite: bool = False,
    ) -> RenderBatch:
        """Render units in order, continuing past failures.

        Existing non-empty outputs are reused (and re-measured) unless
        `overwrite` is set.
        """

        batch = RenderBatch()
        for unit in units:
            output_path = path_for(unit)
            reuse = (
                not overwrite and output_path.is_file() and output_path.stat().st_size > 0
            )
            if reuse:
                self._debug("reuse", order=unit.order, file=output_path.name)
            else:
                try:
                    self.render(unit.text, output_path, order=unit.order, title=unit.title)
                except RenderFailure as exc:
                    batch.failures.append(exc)
                    continue
            duration = self.measure(output_path)
            batch.segments.append(
                RenderedSegment(
                    order=unit.order,
                    title=unit.title,
                    audio_path=output_path,
                    duration_seconds=duration.seconds,
                    duration_estimated=duration.estimated,
                )
            )
        return batch

    def list_voices(self) -> list[VoiceInfo]:
        """Return voices reported by `say -v ?`."""

        completed = self._tool_runner(["say", "-v", "?"], self.timeout_seconds)
        voices: list[VoiceInfo] = []
        for line in completed.stdout.splitlines():
            match = _VOICE_LINE.match(line.strip())
            if match is not None:
                voices.append(
                    VoiceInfo(
                        name=match.group("name").strip(),
                        locale=match.group("locale"),
                        sample=match.group("sample").strip(),
                    )
                )
        return voices

    def _synthesize(self, script_path: Path, raw_path: Path) -> None:
        """Run the platform synthesizer on a script file."""

        self._tool_runner(
            [
                "say",
                "-v",
                self.voice,
                "-r",
                str(self.rate),
                "-f",
                str(script_path),
                "-o",
                str(raw_path),
            ],
            self.timeout_seconds,
        )

    def _transcode(self, raw_path: Path, output_path: Path) -> None:
        """Transcode raw synthesis output to the distributable codec."""

        self._tool_runner(
            [
                "ffmpeg",
                "-y",
                "-hide_banner",
                "-loglevel",
                "error",
                "-i",
                str(raw_path),
                "-vn",
                "-c:a",
                _CODECS[self.audio_format],
                "-b:a",
                self.bitrate,
                str(output_path),
            ],
            self.timeout_seconds,
        )

    def _estimate_duration(self, audio_path: Path) -> AudioDuration:
        """Estimate duration from file size and bitrate."""

        try:
            size_bytes = audio_path.stat().st_size
        except OSError:
            return AudioDuration(seconds=_UNREADABLE_FALLBACK_SECONDS, estimated=True)
        seconds = size_bytes * 8 / self._bitrate_bps()
        return AudioDuration(seconds=max(_MIN_ESTIMATE_SECONDS, seconds), estimated=True)

    def _bitrate_bps(self) -> int:
        """Parse the configured bitrate (`192k`, `128000`) into bits per second."""

        token = self.bitrate.strip().lower()
        multiplier = 1000 if token.endswith("k") else 1
        try:
            value = int(float(token.rstrip("k")) * multiplier)
        except ValueError:
            return 192_000
        return value if value > 0 else 192_000

    def run_tool(self, command: Sequence[str]) -> None:
        """Run one auxiliary tool invocation with the renderer's runner and timeout."""

        self._tool_runner(command, self.timeout_seconds)

    @staticmethod
    def transient_path(output_path: Path, suffix: str, registry: list[Path]) -> Path:
        """Create a uniquely named transient file beside the output and register it."""

        descriptor, name = tempfile.mkstemp(
            prefix=f".{output_path.stem}.", suffix=suffix, dir=output_path.parent
        )
        os.close(descriptor)
        path = Path(name)
        registry.append(path)
        return path

    def _debug(self, event: str, **context: object) -> None:
        """Emit one debug-level render event when a logger is attached."""

        if self._run_logger is not None:
            self._run_logger.debug("render", event, **context)
