"""Top-level package for Talkcast.

This package converts chaptered EPUB books into narrated podcast audio with
embedded chapter markers. The main orchestration entry point is
`TalkcastPipeline`.
"""

from .pipeline import TalkcastPipeline

__all__ = ["TalkcastPipeline", "__version__"]

__version__ = "0.1.0"
