"""Shared pytest fixtures for the full Talkcast test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import FakeToolRunner, write_sample_epub


@pytest.fixture
def fake_tools() -> FakeToolRunner:
    """Provide a fresh fake tool runner."""

    return FakeToolRunner()


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Provide a small EPUB file on disk."""

    return write_sample_epub(tmp_path / "sample.epub")
