"""Lookup-service token storage via keyring (system credential store)."""

from __future__ import annotations

import contextlib
import logging

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "rtcleak:lookup"
KEYRING_USER = "api_token"


class TokenStore:
    """Store and retrieve the metadata lookup token."""

    @staticmethod
    def save(token: str) -> None:
        """Save token to system keyring."""
        import keyring

        keyring.set_password(KEYRING_SERVICE, KEYRING_USER, token)

    @staticmethod
    def load() -> str | None:
        """Load token from system keyring. Returns None if not found or unavailable."""
        import keyring
        import keyring.errors

        try:
            return keyring.get_password(KEYRING_SERVICE, KEYRING_USER)
        except keyring.errors.KeyringError as exc:
            logger.debug("Keyring unavailable: %s", exc)
            return None

    @staticmethod
    def delete() -> None:
        """Delete stored token."""
        import keyring
        import keyring.errors

        with contextlib.suppress(keyring.errors.PasswordDeleteError):
            keyring.delete_password(KEYRING_SERVICE, KEYRING_USER)
