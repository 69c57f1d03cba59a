"""EPUB document source backed by `ebooklib` and BeautifulSoup.

Responsibilities:
- Read spine documents in reading order as raw HTML chapters.
- Resolve chapter titles from the TOC, then headings, then the first short paragraph.
- Expose book metadata and the structural heading predicate.
"""

from __future__ import annotations

from pathlib import Path
import posixpath

from bs4 import BeautifulSoup
import ebooklib
from ebooklib import epub

from ..errors import ExtractionError
from ..models.datatypes import BookMeta, Chapter
from .document import has_structural_heading

_TITLE_PARAGRAPH_MIN_CHARS = 10
_TITLE_PARAGRAPH_MAX_CHARS = 100
_TITLE_PARAGRAPH_CUT_CHARS = 50


class EpubDocumentSource:
    """Yield ordered chapters from an EPUB file's spine documents."""

    def __init__(self, path: Path, *, language: str = "ja") -> None:
        """Initialize the source for one EPUB path; the file is read lazily."""

        self.path = path
        self.language = language
        self._book: epub.EpubBook | None = None

    @property
    def book_meta(self) -> BookMeta:
        """Return title/author metadata, falling back to the file stem."""

        book = self._read_book()
        return BookMeta(
            source_path=self.path,
            title=self._first_metadata(book, "title") or self.path.stem,
            author=self._first_metadata(book, "creator"),
            language=self._first_metadata(book, "language") or self.language,
        )

    def chapters(self) -> list[Chapter]:
        """Return one chapter per spine document, in reading order.

        Raises:
            ExtractionError: If the file cannot be read or holds no documents.
        """

        book = self._read_book()
        toc_titles = self._toc_titles(book)
        chapters: list[Chapter] = []
        for item in self._spine_documents(book):
            raw_html = item.get_content().decode("utf-8", errors="replace")
            order = len(chapters) + 1
            title = (
                toc_titles.get(self._normalize_href(item.get_name()))
                or self._title_from_content(raw_html)
                or f"Chapter {order}"
            )
            chapters.append(Chapter(order=order, title=title, raw_text=raw_html))

        if not chapters:
            raise ExtractionError(
                f"EPUB `{self.path}` contains no readable documents.",
                hint="Verify the file is a valid, non-empty EPUB.",
            )
        return chapters

    def has_structural_heading(self, chapter: Chapter) -> bool:
        """Return whether a chapter's raw HTML carries an `<h1>`-`<h3>` heading."""

        return has_structural_heading(chapter.raw_text)

    def _read_book(self) -> epub.EpubBook:
        """Read and cache the EPUB book, mapping failures to `ExtractionError`."""

        if self._book is not None:
            return self._book
        if not self.path.is_file():
            raise ExtractionError(
                f"Input EPUB not found: `{self.path}`.",
                hint="Pass an existing `.epub` file path.",
            )
        try:
            self._book = epub.read_epub(str(self.path), options={"ignore_ncx": False})
        except Exception as exc:
            raise ExtractionError(
                f"Failed to read EPUB `{self.path}`: {exc}",
                hint="Verify the file is a valid EPUB (zip container with an OPF package).",
            ) from exc
        return self._book

    @staticmethod
    def _spine_documents(book: epub.EpubBook) -> list[epub.EpubItem]:
        """Return spine items that are XHTML chapter documents, in spine order.

        The EPUB 3 navigation document is not a chapter and is skipped.
        """

        documents = []
        for item_id, _linear in book.spine:
            item = book.get_item_with_id(item_id)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            if isinstance(item, epub.EpubNav):
                continue
            documents.append(item)
        return documents

    @classmethod
    def _toc_titles(cls, book: epub.EpubBook) -> dict[str, str]:
        """Map document hrefs to the first TOC title that points at them."""

        titles: dict[str, str] = {}
        for title, href in cls._flatten_toc(book.toc):
            key = cls._normalize_href(href)
            normalized_title = " ".join(str(title or "").split())
            if key and normalized_title and key not in titles:
                titles[key] = normalized_title
        return titles

    @classmethod
    def _flatten_toc(cls, toc: object) -> list[tuple[str, str]]:
        """Flatten nested `ebooklib` TOC entries into `(title, href)` pairs."""

        entries: list[tuple[str, str]] = []
        for entry in toc or []:
            if isinstance(entry, tuple | list) and len(entry) == 2:
                section, children = entry
                if hasattr(section, "title") and hasattr(section, "href"):
                    entries.append((section.title, section.href))
                entries.extend(cls._flatten_toc(children))
            elif hasattr(entry, "title") and hasattr(entry, "href"):
                entries.append((entry.title, entry.href))
        return entries

    @staticmethod
    def _normalize_href(href: str | None) -> str:
        """Return an href without fragment, reduced to its basename."""

        if not href:
            return ""
        return posixpath.basename(href.split("#", 1)[0])

    @staticmethod
    def _title_from_content(raw_html: str) -> str | None:
        """Infer a title from the first `<h1>`, `<h2>`, or a short first paragraph."""

        soup = BeautifulSoup(raw_html, "lxml")
        for heading_tag in ("h1", "h2"):
            heading = soup.find(heading_tag)
            if heading is not None:
                text = " ".join(heading.get_text().split())
                if text:
                    return text

        paragraph = soup.find("p")
        if paragraph is None:
            return None
        text = " ".join(paragraph.get_text().split())
        if not _TITLE_PARAGRAPH_MIN_CHARS <= len(text) <= _TITLE_PARAGRAPH_MAX_CHARS:
            return None
        if len(text) > _TITLE_PARAGRAPH_CUT_CHARS:
            return f"{text[:_TITLE_PARAGRAPH_CUT_CHARS]}..."
        return text

    @staticmethod
    def _first_metadata(book: epub.EpubBook, field: str) -> str | None:
        """Return the first Dublin Core metadata value for a field."""

        values = book.get_metadata("DC", field)
        if values:
            value = values[0][0]
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
