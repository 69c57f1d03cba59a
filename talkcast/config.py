"""Configuration model and loaders for Talkcast.

Responsibilities:
- Define runtime configuration as one explicit typed dataclass.
- Load partial settings from YAML files and environment variables.
- Resolve the effective configuration with deterministic source precedence.

Key types:
- `TalkcastConfig`: normalized runtime settings for a pipeline run.
- `ConfigLoader`: static construction helpers for `TalkcastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_permissive_boolean, parse_positive_number

_DEFAULT_MODEL = "gpt-4.1-mini"
_DEFAULT_VOICE = "Kyoko"
_SUPPORTED_AUDIO_FORMATS = frozenset({"mp3", "m4a"})


@dataclass(slots=True)
class TalkcastConfig:
    """Runtime configuration for one pipeline run.

    Attributes:
        input_path: Source EPUB path; its stem names the book's output directories.
        output_dir: Root directory for persisted artifacts.
        voice: `say` voice identifier.
        rate: Speech rate in words per minute.
        model: Text-transformation model identifier.
        temperature: Text-transformation sampling temperature.
        max_output_tokens: Token budget per transformation call.
        max_chunk_chars: Maximum chunk size for the contextual rewrite.
        overlap_ratio: Overlap prefix bound as a fraction of `max_chunk_chars`.
        inter_chapter_pause_ms: Pause between chapters, in text and in chapter marks.
        language: Narration language code driving speech rules and prompts.
        audio_format: Distributable audio container (`mp3` or `m4a`).
        audio_bitrate: Transcode bitrate.
        chapter_markers: Whether to embed a chapter table in the combined file.
        skip_rewrite: Skip the rewrite stage and narrate prepared source text.
        skip_render: Stop after narration text artifacts are written.
        skip_feed: Skip podcast feed generation.
        combine_only: Rebuild only the combined file from rendered chapter audio.
        overwrite: Redo units whose artifacts already exist.
        debug: Enable debug log verbosity.
        request_timeout_seconds: Bound for one transformation request.
        tool_timeout_seconds: Bound for one external tool invocation.
        api_key: Optional OpenAI API key (never persisted in artifacts).
        feed_base_url: Public URL prefix for feed enclosures.
        feed_author: Optional feed author.
        feed_image_url: Optional feed artwork URL.
    """

    input_path: Path
    output_dir: Path = Path("output")
    voice: str = _DEFAULT_VOICE
    rate: int = 180
    model: str = _DEFAULT_MODEL
    temperature: float = 0.7
    max_output_tokens: int = 4000
    max_chunk_chars: int = 4000
    overlap_ratio: float = 0.10
    inter_chapter_pause_ms: int = 2000
    language: str = "ja"
    audio_format: str = "mp3"
    audio_bitrate: str = "192k"
    chapter_markers: bool = True
    skip_rewrite: bool = False
    skip_render: bool = False
    skip_feed: bool = False
    combine_only: bool = False
    overwrite: bool = False
    debug: bool = False
    request_timeout_seconds: float = 120.0
    tool_timeout_seconds: float = 1800.0
    api_key: str | None = None
    feed_base_url: str | None = None
    feed_author: str | None = None
    feed_image_url: str | None = None

    @property
    def book_name(self) -> str:
        """Return the book name used to derive output directory names."""

        return self.input_path.stem

    def validate(self) -> None:
        """Validate runtime configuration values before pipeline execution."""

        for field_name in ("rate", "max_output_tokens", "max_chunk_chars"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"`{field_name}` must be a positive integer.")
        for field_name in ("request_timeout_seconds", "tool_timeout_seconds"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"`{field_name}` must be a positive number.")
        if self.inter_chapter_pause_ms < 0:
            raise ValueError("`inter_chapter_pause_ms` must be zero or positive.")
        if not 0.0 <= self.overlap_ratio <= 0.5:
            raise ValueError("`overlap_ratio` must be between 0 and 0.5.")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("`temperature` must be between 0 and 2.")
        if self.audio_format not in _SUPPORTED_AUDIO_FORMATS:
            supported = ", ".join(sorted(_SUPPORTED_AUDIO_FORMATS))
            raise ValueError(f"`audio_format` must be one of: {supported}.")
        for field_name in ("voice", "model", "language", "audio_bitrate"):
            if not str(getattr(self, field_name)).strip():
                raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `TalkcastConfig` from external sources."""

    _FIELD_KINDS: Mapping[str, str] = {
        "input_path": "path",
        "output_dir": "path",
        "voice": "string",
        "rate": "positive_int",
        "model": "string",
        "temperature": "number",
        "max_output_tokens": "positive_int",
        "max_chunk_chars": "positive_int",
        "overlap_ratio": "number",
        "inter_chapter_pause_ms": "non_negative_int",
        "language": "string",
        "audio_format": "string",
        "audio_bitrate": "string",
        "chapter_markers": "boolean",
        "skip_rewrite": "boolean",
        "skip_render": "boolean",
        "skip_feed": "boolean",
        "combine_only": "boolean",
        "overwrite": "boolean",
        "debug": "boolean",
        "request_timeout_seconds": "number",
        "tool_timeout_seconds": "number",
        "api_key": "string",
        "feed_base_url": "string",
        "feed_author": "string",
        "feed_image_url": "string",
    }
    _ENV_FIELDS: Mapping[str, str] = {
        "TALKCAST_INPUT": "input_path",
        "TALKCAST_OUTPUT_DIR": "output_dir",
        "TALKCAST_VOICE": "voice",
        "TALKCAST_RATE": "rate",
        "TALKCAST_MODEL": "model",
        "TALKCAST_PAUSE_MS": "inter_chapter_pause_ms",
        "TALKCAST_LANGUAGE": "language",
        "TALKCAST_DEBUG": "debug",
        "TALKCAST_FEED_BASE_URL": "feed_base_url",
        "OPENAI_API_KEY": "api_key",
    }

    @staticmethod
    def from_yaml(path: Path) -> TalkcastConfig:
        """Create a validated config from a YAML file."""

        values = ConfigLoader.yaml_values(path)
        return ConfigLoader._build(values, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> TalkcastConfig:
        """Create a validated config from environment variables."""

        values = ConfigLoader.env_values(env)
        return ConfigLoader._build(values, source_label="Environment")

    @staticmethod
    def resolve(
        *,
        cli_values: Mapping[str, object] | None = None,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
        secure_api_key: str | None = None,
    ) -> TalkcastConfig:
        """Resolve the effective config from all sources.

        Precedence per field is CLI, then YAML, then environment, then defaults.
        The API key resolves CLI, YAML, secure storage, then environment.
        """

        env_values = ConfigLoader.env_values(env)
        yaml_values = ConfigLoader.yaml_values(config_path) if config_path is not None else {}
        explicit = {
            key: value for key, value in (cli_values or {}).items() if value is not None
        }
        merged: dict[str, object] = {**env_values, **yaml_values, **explicit}

        api_key = (
            normalize_optional_string(explicit.get("api_key"))
            or normalize_optional_string(yaml_values.get("api_key"))
            or normalize_optional_string(secure_api_key)
            or normalize_optional_string(env_values.get("api_key"))
        )
        merged["api_key"] = api_key
        return ConfigLoader._build(merged, source_label="Configuration")

    @staticmethod
    def yaml_values(path: Path) -> dict[str, object]:
        """Read and validate a partial settings mapping from a YAML file."""

        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")

        source_label = f"YAML `{path}`"
        unknown = sorted(str(key) for key in payload if key not in ConfigLoader._FIELD_KINDS)
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")
        return {
            key: parsed
            for key, raw_value in payload.items()
            if (parsed := ConfigLoader._parse_value(key, raw_value, source_label)) is not None
        }

    @staticmethod
    def env_values(env: Mapping[str, str] | None = None) -> dict[str, object]:
        """Read a partial settings mapping from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        values: dict[str, object] = {}
        for env_key, field_name in ConfigLoader._ENV_FIELDS.items():
            if env_key not in env_map:
                continue
            parsed = ConfigLoader._parse_value(
                field_name, env_map[env_key], f"Environment variable `{env_key}`"
            )
            if parsed is not None:
                values[field_name] = parsed
        return values

    @staticmethod
    def _build(values: Mapping[str, object], source_label: str) -> TalkcastConfig:
        """Build a validated config from a normalized mapping."""

        if values.get("input_path") is None:
            raise ValueError(f"{source_label} requires a non-empty `input_path`.")
        known = {item.name for item in fields(TalkcastConfig)}
        config = TalkcastConfig(**{key: value for key, value in values.items() if key in known})
        config.validate()
        return config

    @staticmethod
    def _parse_value(key: str, raw_value: Any, source_label: str) -> object | None:
        """Parse one raw value by its field kind; blank values parse to `None`."""

        kind = ConfigLoader._FIELD_KINDS[key]
        if kind == "boolean":
            if raw_value is None:
                return None
            parsed = parse_permissive_boolean(raw_value)
            if parsed is None:
                raise ValueError(
                    f"{source_label} field `{key}` must be a boolean value "
                    "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                )
            return parsed

        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must not be a boolean.")
        normalized = normalize_optional_string(raw_value)
        if normalized is None:
            return None
        if kind == "path":
            return Path(normalized)
        if kind == "string":
            return normalized
        if kind == "number":
            try:
                return parse_positive_number(normalized, key, allow_zero=True)
            except ValueError as exc:
                raise ValueError(f"{source_label} field {exc}") from exc

        try:
            parsed_int = int(normalized)
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be an integer.") from exc
        if kind == "positive_int" and parsed_int <= 0:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        if kind == "non_negative_int" and parsed_int < 0:
            raise ValueError(f"{source_label} field `{key}` must be zero or positive.")
        return parsed_int
