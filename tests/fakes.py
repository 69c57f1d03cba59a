"""Tool-runner and EPUB test doubles shared by unit and integration tests."""

from __future__ import annotations

from collections.abc import Sequence
import json
from pathlib import Path
import subprocess

from ebooklib import epub

from talkcast.errors import ServiceError
from talkcast.io.document import has_structural_heading
from talkcast.models.datatypes import BookMeta, Chapter


class FakeToolRunner:
    """In-process stand-in for `say`, `ffmpeg` and `ffprobe` invocations.

    `say` writes a raw placeholder file, `ffmpeg` writes its last argument,
    and `ffprobe` reports durations from `durations` keyed by file name.
    Scripts containing a token from `fail_tokens` make `say` fail.
    """

    def __init__(self) -> None:
        """Initialize call recording and behavior knobs."""

        self.calls: list[list[str]] = []
        self.scripts: list[str] = []
        self.metadata: list[str] = []
        self.durations: dict[str, float] = {}
        self.default_duration = 10.0
        self.fail_tokens: set[str] = set()
        self.fail_tools: set[str] = set()
        self.probe_available = True

    def __call__(
        self, command: Sequence[str], timeout_seconds: float | None = None
    ) -> subprocess.CompletedProcess[str]:
        """Simulate one tool invocation."""

        _ = timeout_seconds
        args = list(command)
        self.calls.append(args)
        tool = args[0]
        if tool in self.fail_tools:
            raise ServiceError(
                f"Tool `{tool}` exited with status 1", failure_kind="tool_failed"
            )
        if tool == "say":
            return self._say(args)
        if tool == "ffmpeg":
            inputs = [args[index + 1] for index, arg in enumerate(args) if arg == "-i"]
            if len(inputs) > 1:
                self.metadata.append(Path(inputs[1]).read_text(encoding="utf-8"))
            Path(args[-1]).write_bytes(b"\x00" * 2400)
            return subprocess.CompletedProcess(args, 0, "", "")
        if tool == "ffprobe":
            if not self.probe_available:
                raise ServiceError(
                    "Tool `ffprobe` is not available on PATH.", failure_kind="tool_missing"
                )
            seconds = self.durations.get(Path(args[-1]).name, self.default_duration)
            stdout = json.dumps({"format": {"duration": f"{seconds:.6f}"}})
            return subprocess.CompletedProcess(args, 0, stdout, "")
        raise AssertionError(f"unexpected tool: {tool}")

    def _say(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Handle `say -v ?` listings and `say -f script -o raw` synthesis."""

        if args[1:] == ["-v", "?"]:
            stdout = (
                "Kyoko               ja_JP    # こんにちは、私の名前はKyokoです。\n"
                "Samantha            en_US    # Hello, my name is Samantha.\n"
            )
            return subprocess.CompletedProcess(args, 0, stdout, "")
        script = Path(args[args.index("-f") + 1]).read_text(encoding="utf-8")
        self.scripts.append(script)
        if any(token in script for token in self.fail_tokens):
            raise ServiceError("Tool `say` exited with status 1: boom", failure_kind="tool_failed")
        Path(args[args.index("-o") + 1]).write_bytes(b"RAW")
        return subprocess.CompletedProcess(args, 0, "", "")

    def tool_names(self) -> list[str]:
        """Return invoked tool names in call order."""

        return [call[0] for call in self.calls]


def write_sample_epub(path: Path) -> Path:
    """Write a two-document EPUB: a headingless intro and a headed chapter."""

    book = epub.EpubBook()
    book.set_identifier("talkcast-sample")
    book.set_title("Test Book")
    book.set_language("en")
    book.add_author("Jane Doe")

    intro = epub.EpubHtml(title="Intro", file_name="intro.xhtml", lang="en")
    intro.content = "<html><body><p>Welcome to the book, reader.</p></body></html>"
    loops = epub.EpubHtml(title="Loops", file_name="loops.xhtml", lang="en")
    loops.content = (
        "<html><body><h1>Loops</h1><p>Loops repeat work.</p>"
        "<p>Use them with care.</p></body></html>"
    )
    book.add_item(intro)
    book.add_item(loops)
    book.toc = (epub.Link("loops.xhtml", "Loops chapter", "loops"),)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [intro, loops]

    epub.write_epub(str(path), book)
    return path



class FakeDocumentSource:
    """In-memory document source yielding fixed `(title, raw_html)` chapters."""

    def __init__(
        self, chapters: list[tuple[str, str]], *, title: str = "Sample Book", language: str = "en"
    ) -> None:
        """Initialize chapters in order and book metadata."""

        self._chapters = [
            Chapter(order=index, title=chapter_title, raw_text=raw_html)
            for index, (chapter_title, raw_html) in enumerate(chapters, start=1)
        ]
        self._meta = BookMeta(
            source_path=Path("sample.epub"), title=title, author="Jane Doe", language=language
        )

    @property
    def book_meta(self) -> BookMeta:
        """Return fixed book metadata."""

        return self._meta

    def chapters(self) -> list[Chapter]:
        """Return the configured chapters."""

        return list(self._chapters)

    def has_structural_heading(self, chapter: Chapter) -> bool:
        """Apply the shared heading predicate."""

        return has_structural_heading(chapter.raw_text)


def headed_chapter(title: str, body: str) -> tuple[str, str]:
    """Return a chapter row whose markup carries an `<h1>` heading."""

    return title, f"<h1>{title}</h1><p>{body}</p>"
