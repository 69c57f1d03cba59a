"""Runtime telemetry helpers for Talkcast pipeline runs."""

from .logger import RunLogger

__all__ = ["RunLogger"]
