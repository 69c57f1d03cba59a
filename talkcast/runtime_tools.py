"""Deterministic runtime executable resolution and invocation helpers.

Responsibilities:
- Resolve external executable names against the system `PATH`.
- Run external tools with a bounded timeout and map failures to `ServiceError`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import shutil
import subprocess

from .errors import ServiceError
from .parsing import normalize_optional_string

ToolRunner = Callable[[Sequence[str], float | None], subprocess.CompletedProcess[str]]

_MAX_STDERR_CHARS = 240


def resolve_executable(command_name: str) -> str:
    """Resolve an executable on `PATH`, falling back to the raw name.

    An unresolved name is returned unchanged so `subprocess` raises its native
    missing-binary error.
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized


def run_tool(
    command: Sequence[str], timeout_seconds: float | None = None
) -> subprocess.CompletedProcess[str]:
    """Run one external tool invocation and return its completed process.

    The first element is resolved with `resolve_executable`. Missing binaries,
    non-zero exits and timeouts are raised as `ServiceError` with kinds
    `tool_missing`, `tool_failed` and `timeout`.
    """

    if not command:
        raise ValueError("Tool command must not be empty.")
    tool_name = command[0]
    resolved = [resolve_executable(tool_name), *command[1:]]
    try:
        return subprocess.run(
            resolved,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as exc:
        raise ServiceError(
            f"Tool `{tool_name}` is not available on PATH.",
            failure_kind="tool_missing",
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise ServiceError(
            f"Tool `{tool_name}` timed out after {timeout_seconds} seconds.",
            failure_kind="timeout",
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = normalize_optional_string(exc.stderr) or "no stderr output"
        if len(stderr) > _MAX_STDERR_CHARS:
            stderr = f"{stderr[: _MAX_STDERR_CHARS - 3]}..."
        raise ServiceError(
            f"Tool `{tool_name}` exited with status {exc.returncode}: {stderr}",
            failure_kind="tool_failed",
        ) from exc

