"""Storage for the ShipKit access token.

The token lives in the platform credential store (macOS Keychain, Windows
Credential Locker, Secret Service on Linux) through ``keyring``. The store is
passed to the workflow as an object so tests can swap in
``MemoryCredentialStore``.
"""

from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError


TOKEN_ACCOUNT = "token"


class CredentialStore:
    """Holds at most one token."""

    def get(self) -> Optional[str]:
        raise NotImplementedError

    def set(self, token: str) -> None:
        raise NotImplementedError

    def remove(self) -> bool:
        raise NotImplementedError


class KeyringCredentialStore(CredentialStore):
    """Token stored under a fixed keyring service namespace."""

    def __init__(self, service: str, account: str = TOKEN_ACCOUNT):
        self.service = service
        self.account = account

    def get(self) -> Optional[str]:
        """Return the stored token, or None if missing or the backend is unavailable."""
        try:
            token = keyring.get_password(self.service, self.account)
        except KeyringError:
            return None
        return token or None

    def set(self, token: str) -> None:
        keyring.set_password(self.service, self.account, token)

    def remove(self) -> bool:
        """Delete the stored token.

        Returns:
            bool: True if a token existed and was removed
        """
        if self.get() is None:
            return False
        try:
            keyring.delete_password(self.service, self.account)
        except (PasswordDeleteError, KeyringError):
            return False
        return True


class MemoryCredentialStore(CredentialStore):
    """In-process store, used by tests."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def remove(self) -> bool:
        existed = self._token is not None
        self._token = None
        return existed
