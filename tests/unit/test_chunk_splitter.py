"""Unit tests for paragraph/sentence chunking with overlap prefixes."""

from __future__ import annotations

import pytest

from talkcast.text.chunking import ChunkSplitter


def test_split_returns_empty_list_for_empty_text() -> None:
    """Empty input should produce no chunks."""

    assert ChunkSplitter().split("", 100) == []


def test_split_rejects_non_positive_max_chunk_size() -> None:
    """Chunk size must be a positive integer."""

    with pytest.raises(ValueError, match="max_chunk_size"):
        ChunkSplitter().split("text", 0)


def test_splitter_rejects_out_of_range_overlap_ratio() -> None:
    """Overlap ratio must stay within `[0, 1)`."""

    with pytest.raises(ValueError, match="overlap_ratio"):
        ChunkSplitter(overlap_ratio=1.0)


def test_oversized_sentence_without_terminator_is_one_verbatim_chunk() -> None:
    """Text with no sentence boundary should be emitted whole, without overlap."""

    text = "a" * 250

    chunks = ChunkSplitter().split(text, 100)

    assert len(chunks) == 1
    assert chunks[0].text == text
    assert chunks[0].overlap_prefix == ""
    assert chunks[0].payload == text


def test_sentence_split_keeps_abbreviations_attached() -> None:
    """A period after `Dr` should not end a sentence."""

    splitter = ChunkSplitter(overlap_ratio=0.0)

    chunks = splitter.split("Dr. Smith went home. Then he slept.", 25)

    assert [chunk.text for chunk in chunks] == ["Dr. Smith went home. ", "Then he slept."]
    assert [chunk.index for chunk in chunks] == [0, 1]


def test_overlap_prefix_carries_last_sentence_into_next_chunk() -> None:
    """The next chunk should be prefixed by the previous chunk's last sentence."""

    text = "Alpha beta gamma. Delta epsilon.\n\nZeta eta theta."

    chunks = ChunkSplitter(overlap_ratio=0.5).split(text, 40)

    assert [chunk.text for chunk in chunks] == [
        "Alpha beta gamma. Delta epsilon.\n\n",
        "Zeta eta theta.",
    ]
    assert chunks[0].overlap_prefix == ""
    assert chunks[1].overlap_prefix == "Delta epsilon."
    assert chunks[1].payload == "Delta epsilon.\n\nZeta eta theta."


def test_japanese_sentences_split_without_whitespace() -> None:
    """CJK full stops should act as sentence boundaries on their own."""

    text = "これは一文目です。これは二文目です。これは三文目です。"

    chunks = ChunkSplitter(overlap_ratio=0.5).split(text, 20)

    assert [chunk.text for chunk in chunks] == [
        "これは一文目です。これは二文目です。",
        "これは三文目です。",
    ]
    assert chunks[1].overlap_prefix == "これは二文目です。"


def test_chunks_cover_input_and_respect_bounds() -> None:
    """Chunk texts should reassemble the input, within size and overlap bounds."""

    paragraphs = [
        " ".join(f"Sentence {index}-{number} talks about loops." for number in range(6))
        for index in range(8)
    ]
    text = "\n\n".join(paragraphs)
    max_chunk_size = 220
    ratio = 0.2

    chunks = ChunkSplitter(overlap_ratio=ratio).split(text, max_chunk_size)

    assert "".join(chunk.text for chunk in chunks) == text
    assert len(chunks) > 1
    for chunk in chunks:
        assert len(chunk.text.rstrip()) <= max_chunk_size
        assert len(chunk.overlap_prefix) <= int(max_chunk_size * ratio)
    assert all(chunk.overlap_prefix for chunk in chunks[1:])


def test_zero_overlap_ratio_disables_overlap() -> None:
    """A zero ratio should never attach an overlap prefix."""

    text = "One two three. Four five six.\n\nSeven eight nine. Ten eleven twelve."

    chunks = ChunkSplitter(overlap_ratio=0.0).split(text, 40)

    assert len(chunks) == 2
    assert all(chunk.overlap_prefix == "" for chunk in chunks)


def test_paragraph_at_limit_keeps_separator_and_stays_whole() -> None:
    """A paragraph filling the limit should not be split by its own separator."""

    splitter = ChunkSplitter(overlap_ratio=0.0)

    chunks = splitter.split("a" * 20 + "\n\n" + "b" * 5, 20)

    assert [chunk.text for chunk in chunks] == ["a" * 20 + "\n\n", "b" * 5]
    assert [chunk.text for chunk in splitter.split("One. Two.\n\nThree.", 9)] == [
        "One. Two.\n\n",
        "Three.",
    ]


def test_trailing_separator_does_not_force_a_new_chunk() -> None:
    """Two short paragraphs should share a chunk when their text fits."""

    chunks = ChunkSplitter(overlap_ratio=0.0).split("Loops.\n\nLists.\n\n", 14)

    assert [chunk.text for chunk in chunks] == ["Loops.\n\nLists.\n\n"]
