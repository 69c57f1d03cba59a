"""CLI runtime resolution helpers.

This module isolates API-key prompting, secure key persistence and config
source resolution from the command wiring layer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Protocol

import typer

from .config import ConfigLoader, TalkcastConfig
from .credentials import create_credential_store
from .errors import PipelineStageError
from .parsing import normalize_optional_string


class CredentialStoreProtocol(Protocol):
    """Protocol for secure credential store operations used by CLI runtime resolution."""

    def get_api_key(self) -> str | None:
        """Return currently stored API key, if available."""

    def set_api_key(self, api_key: str) -> None:
        """Persist API key value in secure storage."""


def resolve_api_key_sources(
    api_key: str | None,
    prompt_api_key: bool,
    store_api_key: bool,
    credential_store_factory: Callable[[], CredentialStoreProtocol] = create_credential_store,
) -> tuple[str | None, str | None]:
    """Return `(cli_api_key, secure_api_key)` for config resolution.

    A key entered on the command line or through the hidden prompt is
    persisted to secure storage when `store_api_key` is set.
    """

    cli_api_key = normalize_optional_string(api_key)
    if cli_api_key is None and prompt_api_key:
        cli_api_key = normalize_optional_string(
            typer.prompt(
                "OpenAI API key (hidden; leave blank to skip)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )

    credential_store = credential_store_factory()
    secure_api_key = credential_store.get_api_key()

    if cli_api_key is not None and store_api_key and cli_api_key != secure_api_key:
        try:
            credential_store.set_api_key(cli_api_key)
            typer.echo("Stored API key in secure credential storage.")
        except Exception as exc:
            raise PipelineStageError(
                stage="credentials",
                detail=f"Failed to store API key securely: {exc}",
                hint=(
                    "Install and configure a keyring backend, or rerun with "
                    "`--no-store-api-key` for one-off usage."
                ),
            ) from exc

    return cli_api_key, secure_api_key


def resolve_command_config(
    *,
    config_file: Path | None,
    cli_values: Mapping[str, object],
    secure_api_key: str | None = None,
    env: Mapping[str, str] | None = None,
) -> TalkcastConfig:
    """Resolve the effective command config and map failures to `config` stage errors."""

    try:
        return ConfigLoader.resolve(
            cli_values=cli_values,
            config_path=config_file,
            env=env,
            secure_api_key=secure_api_key,
        )
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_file}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Pass `<input.epub>` or set `input_path` in `--config`, then fix invalid values.",
        ) from exc
    except OSError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_file}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc
