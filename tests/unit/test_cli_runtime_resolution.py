"""Unit tests for CLI API-key and config resolution helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from talkcast.cli_runtime import resolve_api_key_sources, resolve_command_config
from talkcast.errors import PipelineStageError


class _FakeCredentialStore:
    """In-memory credential store used by resolution tests."""

    def __init__(self, api_key: str | None = None, *, fail_on_set: bool = False) -> None:
        """Initialize the stored key and failure behavior."""

        self.api_key = api_key
        self.fail_on_set = fail_on_set
        self.set_calls: list[str] = []

    def get_api_key(self) -> str | None:
        """Return the stored key."""

        return self.api_key

    def set_api_key(self, api_key: str) -> None:
        """Record and store a key, or fail when configured to."""

        if self.fail_on_set:
            raise RuntimeError("no backend")
        self.set_calls.append(api_key)
        self.api_key = api_key


def test_cli_key_is_persisted_when_it_differs_from_stored_key() -> None:
    """A new CLI key should be written to secure storage."""

    store = _FakeCredentialStore("old-key")

    cli_key, secure_key = resolve_api_key_sources(
        api_key=" new-key ",
        prompt_api_key=False,
        store_api_key=True,
        credential_store_factory=lambda: store,
    )

    assert (cli_key, secure_key) == ("new-key", "old-key")
    assert store.set_calls == ["new-key"]


def test_cli_key_is_not_persisted_when_storing_is_disabled() -> None:
    """`--no-store-api-key` should leave secure storage untouched."""

    store = _FakeCredentialStore()

    cli_key, secure_key = resolve_api_key_sources(
        api_key="one-off",
        prompt_api_key=False,
        store_api_key=False,
        credential_store_factory=lambda: store,
    )

    assert (cli_key, secure_key) == ("one-off", None)
    assert store.set_calls == []


def test_storage_failure_is_a_credentials_stage_error() -> None:
    """Failing to persist a key should be reported at the credentials stage."""

    store = _FakeCredentialStore(fail_on_set=True)

    with pytest.raises(PipelineStageError) as exc_info:
        resolve_api_key_sources(
            api_key="new-key",
            prompt_api_key=False,
            store_api_key=True,
            credential_store_factory=lambda: store,
        )

    assert exc_info.value.stage == "credentials"
    assert "--no-store-api-key" in str(exc_info.value.hint)


def test_prompted_key_is_used(monkeypatch: pytest.MonkeyPatch) -> None:
    """The hidden prompt should supply the key when none is passed."""

    monkeypatch.setattr("talkcast.cli_runtime.typer.prompt", lambda *_args, **_kwargs: "typed")
    store = _FakeCredentialStore()

    cli_key, _ = resolve_api_key_sources(
        api_key=None,
        prompt_api_key=True,
        store_api_key=False,
        credential_store_factory=lambda: store,
    )

    assert cli_key == "typed"


def test_resolve_command_config_maps_missing_file() -> None:
    """A missing config file should be a config-stage error."""

    with pytest.raises(PipelineStageError, match="Config file not found") as exc_info:
        resolve_command_config(
            config_file=Path("missing-talkcast.yaml"), cli_values={}, env={}
        )
    assert exc_info.value.stage == "config"


def test_resolve_command_config_maps_invalid_values(tmp_path: Path) -> None:
    """Invalid values should be a config-stage error with the validation detail."""

    with pytest.raises(PipelineStageError, match="Invalid configuration") as exc_info:
        resolve_command_config(
            config_file=None,
            cli_values={"input_path": tmp_path / "b.epub", "audio_format": "wav"},
            env={},
        )
    assert "audio_format" in exc_info.value.detail
