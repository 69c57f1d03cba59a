"""Podcast feed publishing helpers."""

from .rss import PodcastFeedWriter, format_duration

__all__ = ["PodcastFeedWriter", "format_duration"]
