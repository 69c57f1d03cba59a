"""Podcast RSS feed generation for rendered chapters.

Responsibilities:
- Build an RSS 2.0 document with the iTunes podcast namespace.
- List the combined episode first, then chapter episodes by order.
- Map artifact paths under the output root to enclosure URLs under the base URL.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from urllib.parse import quote
import xml.etree.ElementTree as ET

from ..models.datatypes import BookMeta, CombinedArtifact, RenderedSegment
from ..text.slug import feed_slug

ITUNES_NAMESPACE = "http://www.itunes.com/dtds/podcast-1.0.dtd"
_MIME_TYPES = {".mp3": "audio/mpeg", ".m4a": "audio/mp4"}


def format_duration(seconds: float) -> str:
    """Format seconds as `HH:MM:SS`."""

    total = max(0, int(round(seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class PodcastFeedWriter:
    """Write an RSS podcast feed whose enclosures live under a base URL.

    The output tree below `root` is assumed to be published as-is at
    `base_url`, so an enclosure URL keeps the artifact's relative directory.
    """

    def __init__(
        self,
        *,
        base_url: str,
        root: Path,
        author: str | None = None,
        image_url: str | None = None,
        category: str = "Technology",
    ) -> None:
        """Initialize channel-level settings."""

        self.base_url = base_url.rstrip("/")
        self.root = root
        self.author = author
        self.image_url = image_url
        self.category = category

    def build(
        self,
        book: BookMeta,
        segments: Sequence[RenderedSegment],
        combined: CombinedArtifact | None = None,
        *,
        published_at: datetime | None = None,
    ) -> ET.ElementTree:
        """Build the feed document tree."""

        ET.register_namespace("itunes", ITUNES_NAMESPACE)
        published = published_at or datetime.now(timezone.utc)
        author = self.author or book.author or "Unknown"

        rss = ET.Element("rss", {"version": "2.0"})
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = book.title
        ET.SubElement(channel, "link").text = self.base_url
        ET.SubElement(channel, "description").text = f"{book.title} narrated as a podcast."
        ET.SubElement(channel, "language").text = book.language
        ET.SubElement(channel, "lastBuildDate").text = format_datetime(published)
        ET.SubElement(channel, self._itunes("author")).text = author
        ET.SubElement(channel, self._itunes("category"), {"text": self.category})
        ET.SubElement(channel, self._itunes("explicit")).text = "false"
        if self.image_url:
            ET.SubElement(channel, self._itunes("image"), {"href": self.image_url})

        if combined is not None:
            total_seconds = combined.marks[-1].end_ms / 1000 if combined.marks else 0.0
            self._add_episode(
                channel,
                title=f"{book.title} (complete)",
                audio_path=combined.audio_path,
                duration_seconds=total_seconds,
                guid=f"{feed_slug(book.title)}-complete",
                published=published,
            )
        for segment in sorted(segments, key=lambda item: item.order):
            self._add_episode(
                channel,
                title=segment.title,
                audio_path=segment.audio_path,
                duration_seconds=segment.duration_seconds,
                guid=f"{feed_slug(book.title)}-{segment.order:02d}",
                published=published,
                episode=segment.order,
            )
        ET.indent(rss)
        return ET.ElementTree(rss)

    def write(
        self,
        path: Path,
        book: BookMeta,
        segments: Sequence[RenderedSegment],
        combined: CombinedArtifact | None = None,
        *,
        published_at: datetime | None = None,
    ) -> Path:
        """Build the feed and write it as UTF-8 XML."""

        tree = self.build(book, segments, combined, published_at=published_at)
        path.parent.mkdir(parents=True, exist_ok=True)
        tree.write(path, encoding="utf-8", xml_declaration=True)
        return path

    def _add_episode(
        self,
        channel: ET.Element,
        *,
        title: str,
        audio_path: Path,
        duration_seconds: float,
        guid: str,
        published: datetime,
        episode: int | None = None,
    ) -> None:
        """Append one `<item>` element."""

        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = title
        ET.SubElement(item, "guid", {"isPermaLink": "false"}).text = guid
        ET.SubElement(item, "pubDate").text = format_datetime(published)
        length = audio_path.stat().st_size if audio_path.is_file() else 0
        ET.SubElement(
            item,
            "enclosure",
            {
                "url": self.enclosure_url(audio_path),
                "length": str(length),
                "type": _MIME_TYPES.get(audio_path.suffix, "audio/mpeg"),
            },
        )
        ET.SubElement(item, self._itunes("duration")).text = format_duration(duration_seconds)
        if episode is not None:
            ET.SubElement(item, self._itunes("episode")).text = str(episode)

    def enclosure_url(self, audio_path: Path) -> str:
        """Return the public URL of an artifact stored under the output root.

        Raises:
            ValueError: If `audio_path` is outside `root`.
        """

        relative = quote(audio_path.relative_to(self.root).as_posix(), safe="/")
        return f"{self.base_url}/{relative}"

    @staticmethod
    def _itunes(tag: str) -> str:
        """Return a namespaced iTunes tag name."""

        return f"{{{ITUNES_NAMESPACE}}}{tag}"
