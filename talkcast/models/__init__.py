"""Shared typed data models for Talkcast.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AudioDuration,
    BookMeta,
    Chapter,
    ChapterMark,
    CombinedArtifact,
    NarrationUnit,
    RenderBatch,
    RenderedSegment,
    RunSummary,
    SkippedChapter,
    TextChunk,
    VoiceInfo,
)

__all__ = [
    "AudioDuration",
    "BookMeta",
    "Chapter",
    "ChapterMark",
    "CombinedArtifact",
    "NarrationUnit",
    "RenderBatch",
    "RenderedSegment",
    "RunSummary",
    "SkippedChapter",
    "TextChunk",
    "VoiceInfo",
]
