"""Artifact storage and persisted output layout.

Responsibilities:
- Provide deterministic filesystem storage for text and JSON artifacts.
- Own the per-book directory layout and deterministic artifact names.
- Discover previously rendered chapter audio for combine-only recovery.
"""

from __future__ import annotations

import json
from pathlib import Path
import re

from ..text.slug import chapter_stem, feed_slug

_CHAPTER_FILE = re.compile(r"^(\d{2,})-.+$")


class ArtifactStore:
    """Filesystem-backed artifact store rooted at the run output directory.

    Layout for book `<book>`:
    - `<book>/NN-title.txt` prepared chapter text and `chapters-metadata.json`
    - `<book>_narrated/NN-title.txt` narration text and `narration.json` rewrite flags
    - `<book>_audio/NN-title.<fmt>` chapter audio and `segments.json`
    - `<book>_complete.<fmt>` combined audio and `<book>_complete.chapters.json`
    - `<book>-podcast.xml` podcast feed
    """

    def __init__(self, root: Path, book_name: str, audio_format: str = "mp3") -> None:
        """Initialize the store with a root output directory and book name."""

        self.root = root
        self.book_name = book_name
        self.audio_format = audio_format

    @property
    def chapters_dir(self) -> Path:
        """Directory holding prepared chapter texts."""

        return self.root / self.book_name

    @property
    def narration_dir(self) -> Path:
        """Directory holding narration texts."""

        return self.root / f"{self.book_name}_narrated"

    @property
    def audio_dir(self) -> Path:
        """Directory holding per-chapter rendered audio."""

        return self.root / f"{self.book_name}_audio"

    @property
    def chapters_metadata_path(self) -> Path:
        return self.chapters_dir / "chapters-metadata.json"

    @property
    def narration_index_path(self) -> Path:
        return self.narration_dir / "narration.json"

    @property
    def segments_path(self) -> Path:
        return self.audio_dir / "segments.json"

    @property
    def combined_audio_path(self) -> Path:
        return self.root / f"{self.book_name}_complete.{self.audio_format}"

    @property
    def chapter_marks_path(self) -> Path:
        return self.root / f"{self.book_name}_complete.chapters.json"

    @property
    def feed_path(self) -> Path:
        return self.root / f"{feed_slug(self.book_name)}-podcast.xml"

    def chapter_text_path(self, order: int, title: str) -> Path:
        """Return the prepared-text path for one chapter."""

        return self.chapters_dir / f"{chapter_stem(order, title)}.txt"

    def narration_path(self, order: int, title: str) -> Path:
        """Return the narration-text path for one chapter."""

        return self.narration_dir / f"{chapter_stem(order, title)}.txt"

    def audio_path(self, order: int, title: str) -> Path:
        """Return the rendered-audio path for one chapter."""

        return self.audio_dir / f"{chapter_stem(order, title)}.{self.audio_format}"

    def save_text(self, path: Path, content: str) -> Path:
        """Save text content and return final path."""

        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def save_json(self, path: Path, payload: dict[str, object]) -> Path:
        """Save JSON-serializable payload and return final path."""

        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        return target

    def load_text(self, path: Path) -> str:
        """Load text content from artifact storage."""

        return self._resolve(path).read_text(encoding="utf-8")

    def load_json(self, path: Path) -> dict[str, object]:
        """Load a JSON object artifact, returning an empty mapping when missing or invalid."""

        target = self._resolve(path)
        if not target.is_file():
            return {}
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return payload if isinstance(payload, dict) else {}

    def record_narration(self, rewritten_by_file: dict[str, bool]) -> Path:
        """Merge per-file rewrite flags into `narration.json` and return its path."""

        files = self.load_json(self.narration_index_path).get("files")
        entries = dict(files) if isinstance(files, dict) else {}
        for name, rewritten in rewritten_by_file.items():
            entries[name] = {"rewritten": rewritten}
        return self.save_json(self.narration_index_path, {"files": entries})

    def narration_is_rewritten(self, path: Path) -> bool:
        """Return whether a narration file holds transform output, not passthrough text.

        Files without a recorded flag count as passthrough.
        """

        files = self.load_json(self.narration_index_path).get("files")
        entry = files.get(path.name) if isinstance(files, dict) else None
        return isinstance(entry, dict) and entry.get("rewritten") is True

    def has_content(self, path: Path) -> bool:
        """Return whether an artifact exists and is non-empty."""

        target = self._resolve(path)
        return target.is_file() and target.stat().st_size > 0

    def _resolve(self, path: Path) -> Path:
        """Return `path` unchanged when already rooted, else relative to the store root."""

        if path.is_absolute() or path.is_relative_to(self.root):
            return path
        return self.root / path

    def rendered_audio_files(self) -> list[tuple[int, Path]]:
        """Return `(order, path)` for chapter audio files in order."""

        if not self.audio_dir.is_dir():
            return []
        found: list[tuple[int, Path]] = []
        for path in self.audio_dir.glob(f"*.{self.audio_format}"):
            match = _CHAPTER_FILE.match(path.stem)
            if match is not None and path.stat().st_size > 0:
                found.append((int(match.group(1)), path))
        return sorted(found, key=lambda item: (item[0], item[1].name))

    def narration_for_audio(self, audio_path: Path) -> Path:
        """Return the narration path that pairs with a chapter audio file."""

        return self.narration_dir / f"{audio_path.stem}.txt"

    def chapter_titles(self) -> dict[int, str]:
        """Return recorded chapter titles by order from `chapters-metadata.json`."""

        payload = self.load_json(self.chapters_metadata_path)
        chapters = payload.get("chapters")
        if not isinstance(chapters, list):
            return {}
        titles: dict[int, str] = {}
        for entry in chapters:
            if isinstance(entry, dict) and isinstance(entry.get("order"), int):
                titles[entry["order"]] = str(entry.get("title", ""))
        return titles
