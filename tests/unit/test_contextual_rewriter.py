"""Unit tests for the ordered, context-carrying chapter rewrite."""

from __future__ import annotations

import pytest

from talkcast.errors import RewriteError
from talkcast.llm.rewriter import ContextualRewriter, NarrationTransformer
from talkcast.text.chunking import ChunkSplitter

_CHAPTER = "a" * 28 + "\n\n" + "b" * 28 + "\n\n" + "c" * 28


class RecordingTransform:
    """Transform double that records calls and returns tagged output."""

    def __init__(self, fail_on_call: int | None = None) -> None:
        """Initialize call recording and an optional failing call number."""

        self.calls: list[tuple[str, str | None]] = []
        self.fail_on_call = fail_on_call

    def __call__(self, text: str, context: str | None) -> str:
        """Record one call and return `out(<last character>)`."""

        self.calls.append((text, context))
        if self.fail_on_call == len(self.calls):
            raise RuntimeError("model unavailable")
        return f"out({text.strip()[-1]})"


def test_short_text_is_transformed_once_without_context() -> None:
    """Text within the chunk bound should be one transform call with no context."""

    transform = RecordingTransform()
    rewriter = ContextualRewriter(max_chunk_chars=100)

    result = rewriter.rewrite("Short chapter.", transform)

    assert result == "out(.)"
    assert transform.calls == [("Short chapter.", None)]


def test_chunks_are_folded_in_order_with_previous_output_as_context() -> None:
    """Chunk i should receive the transformed output of chunk i-1 as context."""

    transform = RecordingTransform()
    rewriter = ContextualRewriter(
        max_chunk_chars=40, splitter=ChunkSplitter(overlap_ratio=0.0)
    )

    result = rewriter.rewrite(_CHAPTER, transform)

    assert [context for _, context in transform.calls] == [None, "out(a)", "out(b)"]
    assert [text.strip()[0] for text, _ in transform.calls] == ["a", "b", "c"]
    assert result == "out(a)\n\nout(b)\n\nout(c)"


def test_overlap_prefix_is_injected_into_transform_payload() -> None:
    """Continuation chunks should start with the bounded tail of the previous chunk."""

    transform = RecordingTransform()
    rewriter = ContextualRewriter(max_chunk_chars=40)

    rewriter.rewrite(_CHAPTER, transform)

    assert transform.calls[0][0] == "a" * 28 + "\n\n"
    assert transform.calls[1][0] == "aaaa\n\n" + "b" * 28 + "\n\n"
    assert transform.calls[2][0] == "bbbb\n\n" + "c" * 28


def test_failing_chunk_aborts_chapter_with_rewrite_error() -> None:
    """A failing chunk should raise with its index and stop further calls."""

    transform = RecordingTransform(fail_on_call=2)
    rewriter = ContextualRewriter(
        max_chunk_chars=40, splitter=ChunkSplitter(overlap_ratio=0.0)
    )

    with pytest.raises(RewriteError) as exc_info:
        rewriter.rewrite(_CHAPTER, transform, order=4, title="Loops")

    assert exc_info.value.chunk_index == 1
    assert exc_info.value.order == 4
    assert "model unavailable" in str(exc_info.value)
    assert len(transform.calls) == 2


def test_rewriter_rejects_non_positive_chunk_bound() -> None:
    """The chunk bound must be positive."""

    with pytest.raises(ValueError, match="max_chunk_chars"):
        ContextualRewriter(max_chunk_chars=0)


class _StubChatClient:
    """Chat client double recording keyword arguments."""

    def __init__(self) -> None:
        """Initialize call recording."""

        self.calls: list[dict[str, object]] = []

    def chat_completion_text(self, **kwargs: object) -> str:
        """Record the request and return fixed narration."""

        self.calls.append(kwargs)
        return "narrated"


def test_narration_transformer_uses_continuation_prompt_with_context() -> None:
    """First chunks and continuations should use distinct prompts and context."""

    client = _StubChatClient()
    transformer = NarrationTransformer(model="gpt-4.1-mini", language="en", client=client)

    assert transformer("First part.", None) == "narrated"
    assert transformer("Second part.", "narrated") == "narrated"

    first, second = client.calls
    assert first["prior_context"] is None
    assert str(first["user_prompt"]).startswith("Rewrite the following section")
    assert second["prior_context"] == "narrated"
    assert str(second["user_prompt"]).startswith("Continue the narration")
    assert "English" in str(first["system_prompt"])
    assert first["model"] == "gpt-4.1-mini"
