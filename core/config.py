"""
Typed access to user preferences.

The credential is resolved with a priority chain:
1. OS keyring (with the keyring service's environment variable fallback)
2. Stored preference (for environments without a keyring backend)
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from core.constants import DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT
from core.infrastructure.keyring_service import KeyringService, get_keyring_service
from core.protocols import PreferenceStore

logger = logging.getLogger(__name__)


class Preferences:
    """Preferences needed by the chat engine, backed by an injected store."""

    KEY_API_KEY = "gemini.api_key"
    KEY_MODEL = "gemini.model"
    KEY_SYSTEM_PROMPT = "gemini.system_prompt"
    KEY_CACHED_MODELS = "gemini.cached_models"
    KEY_LAST_MODELS_FETCH = "gemini.last_models_fetch"

    CREDENTIAL_NAME = "gemini"

    def __init__(
        self,
        store: PreferenceStore,
        keyring_service: Optional[KeyringService] = None,
    ):
        self._store = store
        self._keyring = keyring_service or get_keyring_service()

    @property
    def api_key(self) -> str:
        """Gemini API key, or empty string when not configured."""
        value = self._keyring.get_credential(self.CREDENTIAL_NAME)
        if value:
            return value
        return self._store.get(self.KEY_API_KEY, "").strip()

    @api_key.setter
    def api_key(self, value: str) -> None:
        value = (value or "").strip()
        if not value:
            self._keyring.delete_credential(self.CREDENTIAL_NAME)
            self._store.set(self.KEY_API_KEY, "")
            return
        if self._keyring.is_available and self._keyring.store_credential(
            self.CREDENTIAL_NAME, value
        ):
            return
        logger.info("Keyring unavailable, storing API key in preferences")
        self._store.set(self.KEY_API_KEY, value)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def model(self) -> str:
        """Selected model identifier."""
        return self._store.get(self.KEY_MODEL, "").strip() or DEFAULT_MODEL

    @model.setter
    def model(self, value: str) -> None:
        if value:
            self._store.set(self.KEY_MODEL, value.strip())

    @property
    def system_prompt(self) -> str:
        """Preamble prepended to the first user turn."""
        return self._store.get(self.KEY_SYSTEM_PROMPT, "") or DEFAULT_SYSTEM_PROMPT

    @system_prompt.setter
    def system_prompt(self, value: str) -> None:
        self._store.set(self.KEY_SYSTEM_PROMPT, value or "")

    @property
    def cached_models(self) -> Optional[list[dict]]:
        """Cached model list, or None when absent or unreadable."""
        raw = self._store.get(self.KEY_CACHED_MODELS, "")
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Error reading cached models: %s", exc)
            return None
        return data if isinstance(data, list) else None

    @property
    def last_models_fetch(self) -> Optional[int]:
        """Epoch milliseconds of the last successful model fetch."""
        raw = self._store.get(self.KEY_LAST_MODELS_FETCH, "")
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def cache_models(self, models: list[dict], fetched_at_ms: int) -> None:
        """Store a fetched model list with its timestamp."""
        self._store.set(self.KEY_CACHED_MODELS, json.dumps(models))
        self._store.set(self.KEY_LAST_MODELS_FETCH, str(fetched_at_ms))
