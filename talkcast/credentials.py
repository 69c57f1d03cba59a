"""Keyring-backed storage for the OpenAI API key used by narration rewrites.

Responsibilities:
- Read, write and clear one API key entry under the `talkcast` keyring service.
- Treat a missing or failing keyring backend as "no stored key" on reads.
- Never log or echo the stored secret.
"""

from __future__ import annotations

from types import ModuleType
from typing import Any, Protocol

import keyring
from keyring.backends.fail import Keyring as FailKeyring
from keyring.errors import KeyringError, PasswordDeleteError

KEYRING_SERVICE = "talkcast"
KEYRING_ACCOUNT = "openai_api_key"


class CredentialStore(Protocol):
    """Operations the CLI needs from a secure API key store."""

    def is_available(self) -> bool: ...

    def get_api_key(self) -> str | None: ...

    def set_api_key(self, api_key: str) -> None: ...

    def clear_api_key(self) -> bool: ...


class KeyringCredentialStore:
    """API key store on top of the active `keyring` backend."""

    def __init__(
        self,
        service_name: str = KEYRING_SERVICE,
        account_name: str = KEYRING_ACCOUNT,
        *,
        backend: ModuleType | Any = keyring,
    ) -> None:
        """Initialize the keyring entry coordinates and backend module."""

        self.service_name = service_name
        self.account_name = account_name
        self._backend = backend

    def is_available(self) -> bool:
        """Return whether a real (non-failing) keyring backend is active."""

        try:
            return not isinstance(self._backend.get_keyring(), FailKeyring)
        except KeyringError:
            return False

    def get_api_key(self) -> str | None:
        """Return the stored key, or `None` when absent or unreadable."""

        if not self.is_available():
            return None
        try:
            stored = self._backend.get_password(self.service_name, self.account_name)
        except KeyringError:
            return None
        return (stored or "").strip() or None

    def set_api_key(self, api_key: str) -> None:
        """Store a stripped key.

        Raises:
            ValueError: If the key is blank.
            RuntimeError: If no usable keyring backend is configured.
        """

        key = api_key.strip()
        if not key:
            raise ValueError("API key must be a non-empty string.")
        if not self.is_available():
            raise RuntimeError(
                "Secure credential storage is unavailable: no keyring backend is configured."
            )
        self._backend.set_password(self.service_name, self.account_name, key)

    def clear_api_key(self) -> bool:
        """Delete the stored key and return whether one was removed."""

        if self.get_api_key() is None:
            return False
        try:
            self._backend.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Return the default keyring-backed store."""

    return KeyringCredentialStore()
