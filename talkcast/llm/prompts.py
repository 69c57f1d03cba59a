"""Prompt template library for the narration rewrite stage.

Responsibilities:
- Centralize prompt construction for first and continuation chunks.
- Keep prompts deterministic for a given language and input.
"""

from __future__ import annotations

_LANGUAGE_NAMES = {
    "ja": "Japanese",
    "en": "English",
}


class PromptLibrary:
    """Build prompt strings for podcast narration rewriting."""

    def __init__(self, language: str = "ja") -> None:
        """Initialize the narration language used by every prompt."""

        self.language = language

    @property
    def language_name(self) -> str:
        """Return the human-readable narration language name."""

        return _LANGUAGE_NAMES.get(self.language, self.language)

    def narrator_system_prompt(self) -> str:
        """Return the system prompt defining the podcast narrator persona."""

        return (
            "You are a friendly, conversational podcast narrator who explains technical "
            "books to listeners who cannot see the page. Rewrite the given text so it is "
            "pleasant and easy to follow by ear:\n"
            "- Simplify jargon and explain terms briefly when they first appear.\n"
            "- Paraphrase code, commands and URLs instead of reading them symbol by symbol.\n"
            "- Split long or complicated sentences into shorter spoken sentences.\n"
            "- Preserve all facts, names, numbers and the order of ideas.\n"
            f"- Write the narration in {self.language_name}.\n"
            "Return only the narration text, with no headings, lists or commentary."
        )

    def first_chunk_prompt(self, source_text: str) -> str:
        """Return the user prompt for a chapter (or its first chunk)."""

        return (
            "Rewrite the following section as spoken podcast narration.\n\n"
            f"{source_text}"
        )

    def continuation_prompt(self, source_text: str) -> str:
        """Return the user prompt for a chunk that continues earlier narration."""

        return (
            "Continue the narration with the next part of the same chapter.\n"
            "Requirements:\n"
            "- Continue naturally from your previous narration, without a new greeting "
            "or introduction.\n"
            "- You may refer back to earlier points (for example, \"as I mentioned\").\n"
            "- Do not restate content you have already narrated.\n"
            "- The passage may open with a short excerpt repeated from the end of the "
            "previous part for continuity; do not narrate that excerpt again.\n\n"
            f"{source_text}"
        )
