"""LLM-facing components for narration rewriting.

This package defines the OpenAI chat client, prompt library and the
context-preserving chunked rewriter.
"""

from .openai_client import OpenAIChatClient
from .prompts import PromptLibrary
from .rewriter import ContextualRewriter, NarrationTransformer, TextTransform

__all__ = [
    "ContextualRewriter",
    "NarrationTransformer",
    "OpenAIChatClient",
    "PromptLibrary",
    "TextTransform",
]
