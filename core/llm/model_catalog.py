"""Available Gemini models, fetched from the API and cached in preferences."""

from __future__ import annotations

import logging
import re
import time
from typing import Optional

from core.config import Preferences
from core.constants import MODEL_CACHE_TTL_MS
from core.errors import ChatError, ValidationError
from core.llm.gemini import GeminiClient, model_id
from core.types import GeminiModel

logger = logging.getLogger(__name__)

_VERSION_PATTERN = re.compile(r"gemini-(\d+\.?\d*)")

DEFAULT_MODELS = [
    GeminiModel(
        name="models/gemini-2.5-flash",
        displayName="Gemini 2.5 Flash",
        supportedGenerationMethods=["generateContent"],
    ),
    GeminiModel(
        name="models/gemini-2.5-pro",
        displayName="Gemini 2.5 Pro",
        supportedGenerationMethods=["generateContent"],
    ),
    GeminiModel(
        name="models/gemini-2.0-flash-exp",
        displayName="Gemini 2.0 Flash (Experimental)",
        supportedGenerationMethods=["generateContent"],
    ),
    GeminiModel(
        name="models/gemini-1.5-pro",
        displayName="Gemini 1.5 Pro",
        supportedGenerationMethods=["generateContent"],
    ),
    GeminiModel(
        name="models/gemini-1.5-flash",
        displayName="Gemini 1.5 Flash",
        supportedGenerationMethods=["generateContent"],
    ),
]


def _now_ms() -> int:
    return int(time.time() * 1000)


def is_chat_model(model: GeminiModel) -> bool:
    """Gemini text models that support generateContent (no image-only models)."""
    name = model.name.lower()
    display_name = (model.display_name or "").lower()
    if not model.name.startswith("models/gemini-"):
        return False
    if "generateContent" not in model.supported_generation_methods:
        return False
    return "nano banana" not in display_name and "nano-banana" not in name


def _sort_key(model: GeminiModel) -> tuple:
    match = _VERSION_PATTERN.search(model.name)
    version = float(match.group(1)) if match else 0.0
    return ("-latest" not in model.name, -version, model.name)


def sort_models(models: list[GeminiModel]) -> list[GeminiModel]:
    """``-latest`` models first, then by version descending, then by name."""
    return sorted(models, key=_sort_key)


class ModelCatalog:
    """Model list with a 24 hour preference cache."""

    def __init__(self, client: GeminiClient, preferences: Preferences):
        self._client = client
        self._preferences = preferences

    async def fetch_models(self) -> list[GeminiModel]:
        """Fetch, filter, sort and cache the models for the configured key."""
        api_key = self._preferences.api_key
        if not api_key:
            raise ValidationError("API key not found")

        models = sort_models([m for m in await self._client.list_models(api_key) if is_chat_model(m)])
        self._preferences.cache_models(
            [m.model_dump(by_alias=True, exclude_none=True) for m in models],
            _now_ms(),
        )
        return models

    def is_cache_fresh(self, now_ms: Optional[int] = None) -> bool:
        last_fetch = self._preferences.last_models_fetch
        if last_fetch is None:
            return False
        now_ms = _now_ms() if now_ms is None else now_ms
        return now_ms - last_fetch < MODEL_CACHE_TTL_MS

    async def refresh_on_startup(self) -> None:
        """Refresh the cache silently; cached or default models remain on failure."""
        if not self._preferences.has_api_key:
            logger.info("No API key configured, skipping model fetch")
            return
        if self.is_cache_fresh():
            logger.info("Model cache is fresh, skipping fetch")
            return
        try:
            await self.fetch_models()
            logger.info("Models fetched and cached successfully")
        except (ChatError, ValueError) as exc:
            logger.warning("Failed to fetch models on startup: %s", exc)

    def cached_models(self) -> list[GeminiModel]:
        models = []
        for entry in self._preferences.cached_models or []:
            try:
                models.append(GeminiModel.model_validate(entry))
            except ValueError as exc:
                logger.debug("Skipping unreadable cached model entry: %s", exc)
        return models

    def available_models(self) -> list[GeminiModel]:
        """Cached models when present, else the defaults."""
        return self.cached_models() or list(DEFAULT_MODELS)

    def model_choices(self) -> list[tuple[str, str]]:
        """(model id, label) pairs for a model selector."""
        return [
            (model_id(m.name), m.display_name or model_id(m.name))
            for m in self.available_models()
        ]
