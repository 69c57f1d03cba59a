"""Audio rendering, chapter timing and assembly components."""

from .assembler import ChapterAssembler
from .chapters import build_ffmetadata, compute_chapter_marks
from .renderer import AudioRenderer

__all__ = ["AudioRenderer", "ChapterAssembler", "build_ffmetadata", "compute_chapter_marks"]
