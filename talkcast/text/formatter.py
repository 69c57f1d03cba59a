"""Text preparation for rewrite input and speech output.

Responsibilities:
- Convert chapter markup into paragraph-structured plain text for rewriting.
- Normalize symbols, placeholders and acronyms for natural speech.
- Run the pause annotator as the final speech-formatting pass.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .pauses import PauseAnnotator, SpeechRule, apply_rules

_HTML_TAG = re.compile(r"<[A-Za-z][^>]*>")
_URL = re.compile(r"(?:https?://|www\.)[^\s)）]+")
_DROPPED_TAGS = ("script", "style", "nav", "header", "footer", "aside", "noscript")
_BLOCK_TAGS = [
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "p",
    "li",
    "blockquote",
    "pre",
    "dt",
    "dd",
    "figcaption",
]

_SYMBOL_READINGS: dict[str, dict[str, str]] = {
    "ja": {
        "dash": " ダッシュ ",
        "+": " プラス ",
        "*": " アスタリスク ",
        "/": " スラッシュ ",
        "\\": " バックスラッシュ ",
        "|": " パイプ ",
        "^": " キャレット ",
        "code": "コードの例として、",
        "url": "ウェブサイトのアドレス",
        "image": "画像、",
        "table": "表は省略します。",
    },
    "en": {
        "dash": " dash ",
        "+": " plus ",
        "*": " asterisk ",
        "/": " slash ",
        "\\": " backslash ",
        "|": " pipe ",
        "^": " caret ",
        "code": "Here is a code example: ",
        "url": "a web address",
        "image": "Image: ",
        "table": "A table is omitted here.",
    },
}

_ACRONYM_READINGS: dict[str, dict[str, str]] = {
    "ja": {
        "API": "エーピーアイ",
        "URL": "ユーアールエル",
        "SQL": "エスキューエル",
        "GUI": "ジーユーアイ",
        "CLI": "シーエルアイ",
        "JSON": "ジェイソン",
    },
}

_JAPANESE = r"\u3040-\u30ff\u4e00-\u9fff"


def symbol_rules(language: str = "ja") -> tuple[SpeechRule, ...]:
    """Return symbol-normalization rules for a language in application order."""

    readings = _SYMBOL_READINGS.get(language, _SYMBOL_READINGS["en"])
    rules = [
        SpeechRule.compile(
            "parenthesized_url", r"\s*[(（]\s*(?:https?://|www\.)[^)）]*[)）]", ""
        ),
        SpeechRule.compile("bare_url", _URL.pattern, "[URL]"),
        SpeechRule.compile("code_marker", r"\[code\]:\s*", readings["code"]),
        SpeechRule.compile("url_marker", r"\[URL\]", readings["url"]),
        SpeechRule.compile(
            "image_marker", r"\[image:\s*([^\]]*)\]", rf"{readings['image']}\1"
        ),
        SpeechRule.compile("table_marker", r"\[table omitted\]", readings["table"]),
        SpeechRule.compile("dash", r"-{2,3}", readings["dash"]),
    ]
    for symbol in ("+", "*", "/", "\\", "|", "^"):
        rules.append(
            SpeechRule.compile(f"symbol_{symbol}", re.escape(symbol), readings[symbol])
        )
    for acronym, reading in _ACRONYM_READINGS.get(language, {}).items():
        rules.append(
            SpeechRule.compile(
                f"acronym_{acronym}", rf"(?<![A-Za-z]){acronym}(?![A-Za-z])", reading
            )
        )
    if language == "ja":
        rules.extend(
            [
                SpeechRule.compile(
                    "ascii_before_japanese", rf"([A-Za-z0-9])([{_JAPANESE}])", r"\1 \2"
                ),
                SpeechRule.compile(
                    "japanese_before_ascii", rf"([{_JAPANESE}])([A-Za-z0-9])", r"\1 \2"
                ),
            ]
        )
    rules.append(SpeechRule.compile("horizontal_whitespace", r"[ \t　]+", " "))
    rules.append(SpeechRule.compile("line_edge_whitespace", r" ?\n ?", "\n"))
    return tuple(rules)


class TextFormatter:
    """Prepare chapter text for the rewrite and speech stages."""

    def __init__(self, language: str = "ja") -> None:
        """Initialize language-specific speech rules."""

        self.language = language
        self.symbol_rules = symbol_rules(language)
        self.pause_annotator = PauseAnnotator(language)

    def prepare_for_rewrite(self, raw_text: str) -> str:
        """Return paragraph-structured plain text from markup or plain input."""

        if _HTML_TAG.search(raw_text):
            return self._html_to_text(raw_text)
        return self._clean_plain_text(raw_text)

    def prepare_for_speech(self, text: str) -> str:
        """Return text normalized for the speech engine with pause directives."""

        normalized = apply_rules(text, self.symbol_rules).strip()
        return self.pause_annotator.annotate(normalized)

    def _html_to_text(self, html: str) -> str:
        """Flatten HTML into blank-line separated paragraphs."""

        soup = BeautifulSoup(html, "lxml")
        for element in soup(list(_DROPPED_TAGS)):
            element.decompose()
        for table in soup.find_all("table"):
            placeholder = soup.new_tag("p")
            placeholder.string = "[table omitted]"
            table.replace_with(placeholder)
        for image in soup.find_all("img"):
            alt = " ".join(str(image.get("alt", "")).split())
            image.replace_with(f"[image: {alt}]" if alt else "")
        for link in soup.find_all("a"):
            label = " ".join(link.get_text().split())
            href = str(link.get("href", ""))
            if label and href.startswith(("http://", "https://")) and label != href:
                link.replace_with(f"{label} ({href})")
            else:
                link.replace_with(label)
        for pre in soup.find_all("pre"):
            code = " ".join(pre.get_text().split())
            block = soup.new_tag("p")
            block.string = f"[code]: {code}" if code else ""
            pre.replace_with(block)

        paragraphs: list[str] = []
        for element in soup.find_all(_BLOCK_TAGS):
            if element.find_parent(_BLOCK_TAGS) is not None:
                continue
            text = " ".join(element.get_text().split())
            if text:
                paragraphs.append(text)
        if not paragraphs:
            fallback = " ".join(soup.get_text(" ").split())
            return fallback
        return "\n\n".join(paragraphs)

    def _clean_plain_text(self, text: str) -> str:
        """Collapse intra-paragraph whitespace and mask URLs in plain text."""

        paragraphs = []
        for paragraph in re.split(r"\n\s*\n", text):
            collapsed = " ".join(_URL.sub("[URL]", paragraph).split())
            if collapsed:
                paragraphs.append(collapsed)
        return "\n\n".join(paragraphs)
