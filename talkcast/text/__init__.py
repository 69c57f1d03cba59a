"""Text preparation and segmentation components.

This package provides chunking, speech formatting, pause annotation and
filename helpers used before the rewrite and render stages.
"""

from .chunking import ChunkSplitter
from .formatter import TextFormatter, symbol_rules
from .pauses import PauseAnnotator, SpeechRule, apply_rules, pause_rules, silence

__all__ = [
    "ChunkSplitter",
    "PauseAnnotator",
    "SpeechRule",
    "TextFormatter",
    "apply_rules",
    "pause_rules",
    "silence",
    "symbol_rules",
]
