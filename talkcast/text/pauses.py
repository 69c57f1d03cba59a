"""Ordered speech rules: pause directives and symbol normalization.

Responsibilities:
- Express every text rewrite for speech as a pure `(pattern, replacement)` rule.
- Apply rule lists as a pipeline of explicit passes in a fixed documented order.
- Insert macOS `say` silence directives (`[[slnc N]]`) at pause points.

Key types:
- `SpeechRule`: one named regular-expression substitution.
- `PauseAnnotator`: the fixed pause-rule pipeline.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import re

COMMA_PAUSE_MS = 200
PERIOD_PAUSE_MS = 400
EXCLAMATION_PAUSE_MS = 450
PARAGRAPH_PAUSE_MS = 700
LINE_PAUSE_MS = 500
MARKER_LEAD_PAUSE_MS = 500
MARKER_TRAIL_PAUSE_MS = 200

_DISCOURSE_MARKERS: dict[str, tuple[str, ...]] = {
    "ja": ("さて", "ところで", "次に", "それでは", "つまり", "一方で", "例えば", "最後に"),
    "en": (
        "By the way",
        "In other words",
        "For example",
        "On the other hand",
        "Next",
        "Finally",
        "Now",
    ),
}


def silence(milliseconds: int) -> str:
    """Return the `say` silence directive for a pause length."""

    return f"[[slnc {int(milliseconds)}]]"


@dataclass(frozen=True, slots=True)
class SpeechRule:
    """A named, pure regular-expression substitution."""

    name: str
    pattern: re.Pattern[str]
    replacement: str

    @classmethod
    def compile(cls, name: str, pattern: str, replacement: str, flags: int = 0) -> SpeechRule:
        """Build a rule from a raw pattern string."""

        return cls(name=name, pattern=re.compile(pattern, flags), replacement=replacement)

    def apply(self, text: str) -> str:
        """Apply this rule to every match in `text`."""

        return self.pattern.sub(self.replacement, text)


def apply_rules(text: str, rules: Sequence[SpeechRule]) -> str:
    """Apply rules as sequential passes in list order."""

    for rule in rules:
        text = rule.apply(text)
    return text


def pause_rules(language: str = "ja") -> tuple[SpeechRule, ...]:
    """Return the pause rules for a language in their fixed application order.

    Order: exclamation/question, period-class, comma-class, paragraph break,
    line continuation, discourse markers. Directives contain none of the
    punctuation or newline characters matched by later rules.
    """

    markers = _DISCOURSE_MARKERS.get(language, _DISCOURSE_MARKERS["en"])
    marker_pattern = "|".join(re.escape(marker) for marker in markers)
    boundary = r"\s\]。、！？「" if language == "ja" else r"\s\]"
    marker_regex = rf"(?<![^{boundary}])({marker_pattern})(?![A-Za-z])"
    return (
        SpeechRule.compile(
            "exclamation_question",
            r"([!?！？]+)",
            rf"\1{silence(EXCLAMATION_PAUSE_MS)}",
        ),
        SpeechRule.compile(
            "period",
            r"(。|(?<!\.)\.(?=\s|$))",
            rf"\1{silence(PERIOD_PAUSE_MS)}",
        ),
        SpeechRule.compile(
            "comma",
            r"([,、，;；:：])(?!//)",
            rf"\1{silence(COMMA_PAUSE_MS)}",
        ),
        SpeechRule.compile(
            "paragraph_break",
            r"[ \t]*\n[ \t]*\n\s*",
            f"{silence(PARAGRAPH_PAUSE_MS)}\n\n",
        ),
        SpeechRule.compile(
            "line_continuation",
            r"(?<!\n)\n(?=[^\s])",
            f"\n{silence(LINE_PAUSE_MS)}",
        ),
        SpeechRule.compile(
            "discourse_marker",
            marker_regex,
            rf"{silence(MARKER_LEAD_PAUSE_MS)}\1{silence(MARKER_TRAIL_PAUSE_MS)}",
        ),
    )


class PauseAnnotator:
    """Insert synthesis pause directives with a fixed, pure rule pipeline."""

    def __init__(self, language: str = "ja") -> None:
        """Initialize the pause rule list for a narration language."""

        self.language = language
        self.rules = pause_rules(language)

    def annotate(self, text: str) -> str:
        """Return text with pause directives inserted; no side effects."""

        return apply_rules(text, self.rules)
