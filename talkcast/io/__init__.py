"""Input/output stage components for Talkcast.

This package contains the EPUB document source and the artifact storage
layout used by the pipeline.
"""

from .document import DocumentSource, has_structural_heading
from .epub_source import EpubDocumentSource
from .storage import ArtifactStore

__all__ = ["ArtifactStore", "DocumentSource", "EpubDocumentSource", "has_structural_heading"]
