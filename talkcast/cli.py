"""Command-line interface for Talkcast.

Responsibilities:
- Expose user-facing commands for pipeline operations.
- Convert CLI arguments into `TalkcastConfig` and run the pipeline.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .audio.renderer import AudioRenderer
from .cli_rendering import (
    echo_chapter_list,
    echo_run_summary,
    echo_voice_list,
    exit_with_command_error,
)
from .cli_runtime import resolve_api_key_sources, resolve_command_config
from .credentials import create_credential_store
from .errors import PipelineStageError
from .parsing import normalize_optional_string
from .pipeline import TalkcastPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="talkcast",
    no_args_is_help=True,
    help="Talkcast CLI: turn EPUB books into chaptered podcast audio.",
)


class BuildProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        """Initialize progress indicator metadata for a command invocation."""

        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _flag(enabled: bool) -> bool | None:
    """Map an opt-in flag to an override value, leaving unset flags to lower sources."""

    return True if enabled else None


@app.command("build")
def build_command(
    input_path: Annotated[
        Path | None,
        typer.Argument(help="Path to source EPUB. Required unless provided by `--config`."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output directory (overrides config file value)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
    voice: Annotated[str | None, typer.Option("--voice", help="`say` voice name.")] = None,
    rate: Annotated[
        int | None, typer.Option("--rate", help="Speech rate in words per minute.")
    ] = None,
    model: Annotated[
        str | None, typer.Option("--model", help="Narration rewrite model id.")
    ] = None,
    pause_ms: Annotated[
        int | None,
        typer.Option("--pause-ms", help="Pause between chapters in milliseconds."),
    ] = None,
    max_chunk_chars: Annotated[
        int | None,
        typer.Option("--max-chunk-chars", help="Maximum characters per rewrite chunk."),
    ] = None,
    language: Annotated[
        str | None, typer.Option("--language", help="Narration language code (`ja`, `en`).")
    ] = None,
    audio_format: Annotated[
        str | None, typer.Option("--format", help="Audio container: `mp3` or `m4a`.")
    ] = None,
    feed_base_url: Annotated[
        str | None,
        typer.Option("--feed-base-url", help="Public URL prefix for podcast feed enclosures."),
    ] = None,
    skip_rewrite: Annotated[
        bool, typer.Option("--skip-rewrite", help="Narrate prepared source text as-is.")
    ] = False,
    skip_render: Annotated[
        bool, typer.Option("--skip-render", help="Stop after narration text is written.")
    ] = False,
    skip_feed: Annotated[
        bool, typer.Option("--skip-feed", help="Do not write the podcast feed.")
    ] = False,
    combine_only: Annotated[
        bool,
        typer.Option(
            "--combine-only",
            help="Rebuild only the combined file from already-rendered chapter audio.",
        ),
    ] = False,
    no_chapters: Annotated[
        bool,
        typer.Option("--no-chapters", help="Do not embed chapter markers in the combined file."),
    ] = False,
    overwrite: Annotated[
        bool, typer.Option("--overwrite", help="Redo chapters whose artifacts already exist.")
    ] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug log output.")] = False,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="OpenAI API key override. Prefer `--prompt-api-key` to avoid shell history.",
        ),
    ] = None,
    prompt_api_key: Annotated[
        bool,
        typer.Option("--prompt-api-key", help="Prompt for API key with hidden input."),
    ] = False,
    store_api_key: Annotated[
        bool,
        typer.Option(
            "--store-api-key/--no-store-api-key",
            help="Persist CLI-entered API key to secure credential storage.",
        ),
    ] = True,
) -> None:
    """Run the document-to-podcast pipeline."""

    try:
        cli_api_key, secure_api_key = resolve_api_key_sources(
            api_key=api_key,
            prompt_api_key=prompt_api_key,
            store_api_key=store_api_key,
            credential_store_factory=create_credential_store,
        )
        config = resolve_command_config(
            config_file=config_file,
            cli_values={
                "input_path": input_path,
                "output_dir": out,
                "voice": voice,
                "rate": rate,
                "model": model,
                "inter_chapter_pause_ms": pause_ms,
                "max_chunk_chars": max_chunk_chars,
                "language": language,
                "audio_format": audio_format,
                "feed_base_url": feed_base_url,
                "skip_rewrite": _flag(skip_rewrite),
                "skip_render": _flag(skip_render),
                "skip_feed": _flag(skip_feed),
                "combine_only": _flag(combine_only),
                "chapter_markers": False if no_chapters else None,
                "overwrite": _flag(overwrite),
                "debug": _flag(debug),
                "api_key": cli_api_key,
            },
            secure_api_key=secure_api_key,
        )
        progress = BuildProgressIndicator(command_name="build")
        pipeline = TalkcastPipeline(
            run_logger=RunLogger(debug=config.debug),
            stage_progress_callback=progress.on_stage_start,
        )
        summary = pipeline.run(config)
    except Exception as exc:
        exit_with_command_error("build", exc)

    echo_run_summary(summary)
    if summary.assembly_error is not None:
        exit_with_command_error(
            "build",
            PipelineStageError(
                stage="assemble",
                detail=summary.assembly_error,
                hint="Chapter audio is kept; rerun with `--combine-only` to retry assembly.",
            ),
        )


@app.command("list-chapters")
def list_chapters_command(
    input_path: Annotated[Path, typer.Argument(help="Path to source EPUB.")],
    language: Annotated[
        str, typer.Option("--language", help="Fallback language code for book metadata.")
    ] = "ja",
) -> None:
    """List extracted chapters and whether each passes the heading filter."""

    try:
        config = resolve_command_config(
            config_file=None,
            cli_values={"input_path": input_path, "language": language},
        )
        book, rows = TalkcastPipeline().list_chapters(config)
    except Exception as exc:
        exit_with_command_error("list-chapters", exc)

    typer.echo(f"Book: {book.title}")
    echo_chapter_list(rows)


@app.command("voices")
def voices_command() -> None:
    """List the voices offered by the macOS `say` synthesizer."""

    try:
        voices = AudioRenderer().list_voices()
    except Exception as exc:
        exit_with_command_error("voices", exc)

    echo_voice_list(voices)


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored OpenAI API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "OpenAI API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored OpenAI API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
