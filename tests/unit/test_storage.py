"""Unit tests for the artifact store layout and discovery helpers."""

from __future__ import annotations

import json
from pathlib import Path

from talkcast.io.storage import ArtifactStore


def test_layout_paths_are_derived_from_book_name(tmp_path: Path) -> None:
    """Directories and files should follow the per-book naming scheme."""

    store = ArtifactStore(tmp_path, "My Book", "m4a")

    assert store.chapters_dir == tmp_path / "My Book"
    assert store.narration_dir == tmp_path / "My Book_narrated"
    assert store.audio_dir == tmp_path / "My Book_audio"
    assert store.combined_audio_path == tmp_path / "My Book_complete.m4a"
    assert store.chapter_marks_path == tmp_path / "My Book_complete.chapters.json"
    assert store.feed_path == tmp_path / "my-book-podcast.xml"
    assert store.chapter_text_path(2, "Loops") == tmp_path / "My Book" / "02-Loops.txt"
    assert store.narration_path(2, "Loops") == tmp_path / "My Book_narrated" / "02-Loops.txt"
    assert store.audio_path(2, "Loops") == tmp_path / "My Book_audio" / "02-Loops.m4a"


def test_save_and_load_resolve_relative_paths_against_root(tmp_path: Path) -> None:
    """Relative artifact paths should land under the store root exactly once."""

    store = ArtifactStore(tmp_path, "book")

    written = store.save_text(Path("notes/a.txt"), "hello")
    rooted = store.save_text(store.narration_path(1, "Intro"), "narration")

    assert written == tmp_path / "notes" / "a.txt"
    assert store.load_text(Path("notes/a.txt")) == "hello"
    assert rooted == tmp_path / "book_narrated" / "01-Intro.txt"
    assert store.has_content(rooted) is True


def test_save_json_is_sorted_and_unicode(tmp_path: Path) -> None:
    """JSON artifacts should be deterministic and keep non-ASCII text."""

    store = ArtifactStore(tmp_path, "book")

    path = store.save_json(tmp_path / "meta.json", {"b": 1, "a": "はじめに"})

    text = path.read_text(encoding="utf-8")
    assert text.index('"a"') < text.index('"b"')
    assert "はじめに" in text
    assert store.load_json(path) == {"a": "はじめに", "b": 1}


def test_load_json_returns_empty_mapping_for_missing_or_invalid(tmp_path: Path) -> None:
    """Unreadable JSON artifacts should load as empty mappings."""

    store = ArtifactStore(tmp_path, "book")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")

    assert store.load_json(tmp_path / "missing.json") == {}
    assert store.load_json(broken) == {}
    assert store.load_json(listing) == {}


def test_rendered_audio_files_are_ordered_and_filtered(tmp_path: Path) -> None:
    """Only non-empty `NN-title` audio files should be discovered, in order."""

    store = ArtifactStore(tmp_path, "book")
    store.audio_dir.mkdir(parents=True)
    (store.audio_dir / "10-Late.mp3").write_bytes(b"x")
    (store.audio_dir / "02-Early.mp3").write_bytes(b"x")
    (store.audio_dir / "03-Empty.mp3").write_bytes(b"")
    (store.audio_dir / "notes.mp3").write_bytes(b"x")
    (store.audio_dir / "04-Other.m4a").write_bytes(b"x")

    found = store.rendered_audio_files()

    assert [(order, path.name) for order, path in found] == [
        (2, "02-Early.mp3"),
        (10, "10-Late.mp3"),
    ]
    assert store.narration_for_audio(found[0][1]) == store.narration_dir / "02-Early.txt"


def test_rendered_audio_files_without_audio_dir(tmp_path: Path) -> None:
    """A missing audio directory yields no files."""

    assert ArtifactStore(tmp_path, "book").rendered_audio_files() == []


def test_chapter_titles_read_from_metadata(tmp_path: Path) -> None:
    """Recorded chapter titles should be keyed by order."""

    store = ArtifactStore(tmp_path, "book")
    store.chapters_dir.mkdir(parents=True)
    store.chapters_metadata_path.write_text(
        json.dumps(
            {
                "chapters": [
                    {"order": 1, "title": "Intro"},
                    {"order": "2", "title": "Ignored"},
                    {"order": 3, "title": "Loops"},
                ]
            }
        ),
        encoding="utf-8",
    )

    assert store.chapter_titles() == {1: "Intro", 3: "Loops"}


def test_narration_rewrite_flags_are_merged_and_default_to_passthrough(
    tmp_path: Path,
) -> None:
    """Only files recorded as rewritten should count as transform output."""

    store = ArtifactStore(tmp_path, "book")
    intro = store.save_text(store.narration_path(1, "Intro"), "Intro text")
    loops = store.save_text(store.narration_path(2, "Loops"), "Loops text")
    unknown = store.save_text(store.narration_path(3, "Extra"), "Extra text")

    store.record_narration({intro.name: False, loops.name: True})
    index_path = store.record_narration({intro.name: True})

    assert index_path == tmp_path / "book_narrated" / "narration.json"
    assert json.loads(index_path.read_text(encoding="utf-8")) == {
        "files": {
            "01-Intro.txt": {"rewritten": True},
            "02-Loops.txt": {"rewritten": True},
        }
    }
    assert store.narration_is_rewritten(intro) is True
    assert store.narration_is_rewritten(loops) is True
    assert store.narration_is_rewritten(unknown) is False
    store.record_narration({loops.name: False})
    assert store.narration_is_rewritten(loops) is False
