"""
API credentials in the OS keyring.

The Gemini key lives in the platform credential vault (GNOME Keyring, macOS
Keychain, Windows Credential Locker). Reads fall back to an environment
variable so headless and CI runs work without a vault.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import keyring
from keyring.backends.fail import Keyring as FailKeyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialSpec:
    """Where a credential is kept: its keyring entry and its env fallback."""

    keyring_name: str
    env_var: Optional[str] = None


CREDENTIALS = {
    "gemini": CredentialSpec(keyring_name="gemini_api_key", env_var="GEMINI_API_KEY"),
}


class KeyringService:
    """Reads and writes credentials under one keyring service name."""

    SERVICE_NAME = "paperchat"

    def __init__(self, service_name: str = SERVICE_NAME) -> None:
        self.service_name = service_name
        self._available: Optional[bool] = None
        self._keyring_module = None

    @property
    def is_available(self) -> bool:
        """False when only the fail backend is installed (no usable vault)."""
        if self._available is None:
            backend = keyring.get_keyring()
            self._available = not isinstance(backend, FailKeyring)
            if self._available:
                self._keyring_module = keyring
                logger.debug("Using keyring backend %s", type(backend).__name__)
            else:
                logger.warning("No keyring backend available; credentials fall back to preferences")
        return self._available

    def _get_keyring(self):
        return self._keyring_module if self.is_available else None

    @staticmethod
    def _spec(name: str) -> CredentialSpec:
        return CREDENTIALS.get(name.lower(), CredentialSpec(keyring_name=name))

    def store_credential(self, name: str, value: str) -> bool:
        """Write a credential; False when there is no vault or the write fails."""
        backend = self._get_keyring()
        if backend is None:
            return False
        entry = self._spec(name).keyring_name
        try:
            backend.set_password(self.service_name, entry, value)
        except KeyringError as e:
            logger.error("Failed to store credential %s: %s", entry, e)
            return False
        return True

    def get_credential(self, name: str) -> Optional[str]:
        """Credential from the vault, else from its environment variable."""
        spec = self._spec(name)
        backend = self._get_keyring()
        if backend is not None:
            try:
                value = backend.get_password(self.service_name, spec.keyring_name)
            except KeyringError as e:
                logger.warning("Failed to read credential %s: %s", spec.keyring_name, e)
                value = None
            if value:
                return value

        if spec.env_var:
            return os.environ.get(spec.env_var) or None
        return None

    def delete_credential(self, name: str) -> bool:
        """Remove a credential; False when it was not stored."""
        backend = self._get_keyring()
        if backend is None:
            return False
        entry = self._spec(name).keyring_name
        try:
            backend.delete_password(self.service_name, entry)
        except KeyringError as e:
            logger.debug("Could not delete credential %s: %s", entry, e)
            return False
        return True


# Global singleton instance
_keyring_service: Optional[KeyringService] = None


def get_keyring_service() -> KeyringService:
    """Get the process-wide KeyringService."""
    global _keyring_service
    if _keyring_service is None:
        _keyring_service = KeyringService()
    return _keyring_service
