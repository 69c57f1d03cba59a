"""Context-preserving chunked rewrite of chapter text.

Responsibilities:
- Split oversized chapter text and transform chunks strictly in order.
- Feed each chunk's predecessor output to the transform as conversational context.
- Adapt the OpenAI chat client to the `transform(text, context)` contract.

Key types:
- `ContextualRewriter`: ordered fold of a transform over chapter chunks.
- `NarrationTransformer`: OpenAI-backed podcast narration transform.
"""

from __future__ import annotations

from collections.abc import Callable

from ..errors import RewriteError
from ..telemetry.logger import RunLogger
from ..text.chunking import ChunkSplitter
from .openai_client import OpenAIChatClient
from .prompts import PromptLibrary

TextTransform = Callable[[str, str | None], str]


class ContextualRewriter:
    """Rewrite chapter text chunk by chunk while carrying narrative context."""

    def __init__(
        self,
        *,
        max_chunk_chars: int = 4000,
        splitter: ChunkSplitter | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize chunking bounds and optional debug logging."""

        if max_chunk_chars <= 0:
            raise ValueError("`max_chunk_chars` must be a positive integer.")
        self.max_chunk_chars = max_chunk_chars
        self.splitter = splitter if splitter is not None else ChunkSplitter()
        self._run_logger = run_logger

    def rewrite(
        self,
        chapter_text: str,
        transform: TextTransform,
        *,
        order: int | None = None,
        title: str = "",
    ) -> str:
        """Return narration text for one chapter.

        Text that fits in one chunk is transformed once with no context. Longer
        text is split and folded over its chunks in order: chunk `i > 0` receives
        the transformed output of chunk `i - 1` as context. Outputs are joined
        by a paragraph break.

        Raises:
            RewriteError: If any chunk's transform fails; no partial output is returned.
        """

        if len(chapter_text) <= self.max_chunk_chars:
            return self._transform_chunk(transform, chapter_text, None, 0, order, title)

        chunks = self.splitter.split(chapter_text, self.max_chunk_chars)
        self._debug("chunked", order=order, chunks=len(chunks))
        outputs: list[str] = []
        context: str | None = None
        for chunk in chunks:
            context = self._transform_chunk(
                transform, chunk.payload, context, chunk.index, order, title
            )
            outputs.append(context)
        return "\n\n".join(outputs)

    def _transform_chunk(
        self,
        transform: TextTransform,
        text: str,
        context: str | None,
        chunk_index: int,
        order: int | None,
        title: str,
    ) -> str:
        """Run the transform on one chunk and convert any failure to `RewriteError`."""

        self._debug(
            "transform",
            order=order,
            chunk=chunk_index,
            chars=len(text),
            context_chars=len(context or ""),
        )
        try:
            return transform(text, context)
        except Exception as exc:
            raise RewriteError(
                f"Rewrite failed on chunk {chunk_index}: {exc}",
                order=order,
                title=title,
                chunk_index=chunk_index,
            ) from exc

    def _debug(self, event: str, **context: object) -> None:
        """Emit one debug-level rewrite event when a logger is attached."""

        if self._run_logger is not None:
            self._run_logger.debug("rewrite", event, **context)


class NarrationTransformer:
    """Callable transform that narrates text through OpenAI chat-completions."""

    def __init__(
        self,
        *,
        model: str,
        temperature: float = 0.7,
        max_output_tokens: int | None = 4000,
        language: str = "ja",
        api_key: str | None = None,
        timeout_seconds: float = 120.0,
        client: OpenAIChatClient | None = None,
        prompts: PromptLibrary | None = None,
    ) -> None:
        """Initialize model settings and the chat client."""

        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.client = (
            client
            if client is not None
            else OpenAIChatClient(api_key=api_key, timeout_seconds=timeout_seconds)
        )
        self.prompts = prompts if prompts is not None else PromptLibrary(language)

    def __call__(self, text: str, context: str | None) -> str:
        """Transform one chunk, continuing from `context` when present."""

        if context is None:
            user_prompt = self.prompts.first_chunk_prompt(text)
        else:
            user_prompt = self.prompts.continuation_prompt(text)
        return self.client.chat_completion_text(
            model=self.model,
            system_prompt=self.prompts.narrator_system_prompt(),
            user_prompt=user_prompt,
            prior_context=context,
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
        )
