"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
run summaries, chapter listing rows and voice listing rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import Chapter, RunSummary, VoiceInfo


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_run_summary(summary: RunSummary) -> None:
    """Print chapter counts, exclusions with reasons, and artifact paths."""

    kept = summary.chapters_total - len(summary.filtered_out)
    typer.echo(f"Book: {summary.book.title}")
    typer.echo(
        f"Chapters: total={summary.chapters_total} kept={kept} "
        f"filtered={len(summary.filtered_out)} skipped={len(summary.skipped)}"
    )
    for chapter in summary.filtered_out:
        typer.echo(f"Filtered: {chapter.order}. {chapter.title} (no structural heading)")
    for skipped in summary.skipped:
        typer.echo(f"Skipped [{skipped.stage}]: {skipped.order}. {skipped.title}: {skipped.reason}")
    if summary.stages_skipped:
        typer.echo(f"Stages skipped: {', '.join(summary.stages_skipped)}")

    typer.echo(f"Narration texts: {len(summary.narration_paths)}")
    typer.echo(f"Chapter audio: {len(summary.segments)}")
    estimated = [segment.order for segment in summary.segments if segment.duration_estimated]
    if estimated:
        typer.echo(f"Estimated durations for chapters: {', '.join(map(str, estimated))}")
    if summary.combined is not None:
        embedded = "embedded" if summary.combined.chapters_embedded else "not embedded"
        typer.echo(f"Combined audio: {summary.combined.audio_path} (chapters {embedded})")
        if summary.combined.marks_path is not None:
            typer.echo(f"Chapter marks: {summary.combined.marks_path}")
    else:
        typer.echo("Combined audio: (not written)")
    typer.echo(f"Feed: {summary.feed_path if summary.feed_path is not None else '(not written)'}")


def echo_chapter_list(rows: Sequence[tuple[Chapter, bool]]) -> None:
    """Print chapter order/title rows with heading-gate status."""

    for chapter, kept in sorted(rows, key=lambda item: item[0].order):
        status = "kept" if kept else "filtered"
        typer.echo(f"{chapter.order}. [{status}] {chapter.title}")


def echo_voice_list(voices: Sequence[VoiceInfo]) -> None:
    """Print voice name/locale rows with the sample sentence."""

    for voice in voices:
        typer.echo(f"{voice.name}\t{voice.locale}\t{voice.sample}")
