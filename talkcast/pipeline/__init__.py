"""Talkcast pipeline package.

This package contains orchestration, stage execution and stage telemetry
helpers for one document-to-podcast run.
"""

from .orchestrator import TalkcastPipeline

__all__ = ["TalkcastPipeline"]
