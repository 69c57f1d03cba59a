"""CLI integration tests for build, listing, voices and credentials commands."""

from pathlib import Path

from pytest import MonkeyPatch
from typer.testing import CliRunner

from talkcast.cli import app
from talkcast.models.datatypes import VoiceInfo


class InMemoryCredentialStore:
    """Credential store double keeping the API key in memory."""

    def __init__(self, api_key: str | None = None) -> None:
        """Initialize the stored key."""

        self.api_key = api_key

    def is_available(self) -> bool:
        """Report the store as usable."""

        return True

    def get_api_key(self) -> str | None:
        """Return the stored key."""

        return self.api_key

    def set_api_key(self, api_key: str) -> None:
        """Store a key."""

        self.api_key = api_key

    def clear_api_key(self) -> bool:
        """Clear the stored key and report whether one was present."""

        had_key = self.api_key is not None
        self.api_key = None
        return had_key


def _use_store(monkeypatch: MonkeyPatch, store: InMemoryCredentialStore) -> None:
    """Route CLI credential lookups to `store`."""

    monkeypatch.setattr("talkcast.cli.create_credential_store", lambda: store)


def test_build_command_writes_narration_and_reports_summary(
    monkeypatch: MonkeyPatch, tmp_path: Path, sample_epub: Path
) -> None:
    """Build should narrate kept chapters and print the run summary."""

    _use_store(monkeypatch, InMemoryCredentialStore())
    out_dir = tmp_path / "out"
    runner = CliRunner()

    result = runner.invoke(
        app,
        [
            "build",
            str(sample_epub),
            "--out",
            str(out_dir),
            "--language",
            "en",
            "--skip-render",
            "--api-key",
            "test-key",
            "--no-store-api-key",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "[progress] command=build | 1/6 stage=extract" in result.output
    assert "[progress] command=build - 3/6 stage=rewrite" in result.output
    assert "Book: Test Book" in result.output
    assert "Chapters: total=2 kept=1 filtered=1 skipped=0" in result.output
    assert "Filtered: 1. Welcome to the book, reader. (no structural heading)" in result.output
    assert "Stages skipped: render, assemble, feed" in result.output
    assert "Narration texts: 1" in result.output
    assert "Combined audio: (not written)" in result.output
    narration = out_dir / "sample_narrated" / "02-Loops_chapter.txt"
    assert narration.read_text(encoding="utf-8") == "integration-mocked-narration."
    assert (out_dir / "sample" / "01-Welcome_to_the_book,_reader.txt").is_file()


def test_build_command_skip_rewrite_needs_no_api_key(
    monkeypatch: MonkeyPatch, tmp_path: Path, sample_epub: Path
) -> None:
    """Skipping rewrite should narrate prepared text without any key."""

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    _use_store(monkeypatch, InMemoryCredentialStore())
    out_dir = tmp_path / "out"
    runner = CliRunner()

    result = runner.invoke(
        app,
        [
            "build",
            str(sample_epub),
            "--out",
            str(out_dir),
            "--language",
            "en",
            "--skip-rewrite",
            "--skip-render",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Stages skipped: rewrite, render, assemble, feed" in result.output
    narration = out_dir / "sample_narrated" / "02-Loops_chapter.txt"
    assert narration.read_text(encoding="utf-8") == (
        "Loops\n\nLoops repeat work.\n\nUse them with care."
    )


def test_build_command_persists_new_cli_key(
    monkeypatch: MonkeyPatch, tmp_path: Path, sample_epub: Path
) -> None:
    """A CLI key should be stored securely unless `--no-store-api-key` is passed."""

    store = InMemoryCredentialStore()
    _use_store(monkeypatch, store)
    runner = CliRunner()

    result = runner.invoke(
        app,
        [
            "build",
            str(sample_epub),
            "--out",
            str(tmp_path / "out"),
            "--language",
            "en",
            "--skip-render",
            "--api-key",
            "fresh-key",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Stored API key in secure credential storage." in result.output
    assert store.api_key == "fresh-key"
    assert "fresh-key" not in result.output


def test_list_chapters_command_reports_heading_gate(sample_epub: Path) -> None:
    """List-chapters should print the book title and each chapter's gate status."""

    runner = CliRunner()

    result = runner.invoke(app, ["list-chapters", str(sample_epub), "--language", "en"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "Book: Test Book" in lines
    assert "1. [filtered] Welcome to the book, reader." in lines
    assert "2. [kept] Loops chapter" in lines


def test_voices_command_lists_voices(monkeypatch: MonkeyPatch) -> None:
    """Voices should print one tab separated row per voice."""

    monkeypatch.setattr(
        "talkcast.cli.AudioRenderer.list_voices",
        lambda self: [VoiceInfo("Kyoko", "ja_JP", "Hello"), VoiceInfo("Alex", "en_US", "Hi")],
    )
    runner = CliRunner()

    result = runner.invoke(app, ["voices"])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["Kyoko\tja_JP\tHello", "Alex\ten_US\tHi"]


def test_credentials_command_status_set_and_clear(monkeypatch: MonkeyPatch) -> None:
    """Credentials should report status and store or clear the key."""

    store = InMemoryCredentialStore()
    _use_store(monkeypatch, store)
    runner = CliRunner()

    status_result = runner.invoke(app, ["credentials"])
    set_result = runner.invoke(app, ["credentials", "--set-api-key"], input="secret-key\n")
    present_result = runner.invoke(app, ["credentials"])
    clear_result = runner.invoke(app, ["credentials", "--clear-api-key"])
    second_clear_result = runner.invoke(app, ["credentials", "--clear-api-key"])

    assert status_result.exit_code == 0, status_result.output
    assert "Secure credential storage: available" in status_result.output
    assert "Stored OpenAI API key: not set" in status_result.output
    assert set_result.exit_code == 0, set_result.output
    assert "API key stored in secure credential storage." in set_result.output
    assert "secret-key" not in set_result.output
    assert "Stored OpenAI API key: present" in present_result.output
    assert "Stored API key cleared from secure credential storage." in clear_result.output
    assert "No stored API key found in secure credential storage." in second_clear_result.output
    assert store.api_key is None


def test_credentials_command_rejects_conflicting_flags(monkeypatch: MonkeyPatch) -> None:
    """Setting and clearing in one invocation should fail at the credentials stage."""

    _use_store(monkeypatch, InMemoryCredentialStore())
    runner = CliRunner()

    result = runner.invoke(app, ["credentials", "--set-api-key", "--clear-api-key"])

    assert result.exit_code == 1
    assert "credentials failed at stage `credentials`" in result.output
