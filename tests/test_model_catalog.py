"""Tests for model listing, filtering and caching."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from core.config import Preferences
from core.constants import MODEL_CACHE_TTL_MS
from core.errors import ValidationError
from core.infrastructure.keyring_service import KeyringService
from core.llm.gemini import GeminiClient
from core.llm.model_catalog import DEFAULT_MODELS, ModelCatalog, is_chat_model, sort_models
from core.persistence import Database, SettingsRepository
from core.types import GeminiModel

LISTING = {
    "models": [
        {"name": "models/gemini-1.5-pro", "displayName": "Gemini 1.5 Pro",
         "supportedGenerationMethods": ["generateContent", "countTokens"]},
        {"name": "models/gemini-2.5-flash", "displayName": "Gemini 2.5 Flash",
         "supportedGenerationMethods": ["generateContent"]},
        {"name": "models/gemini-flash-latest", "displayName": "Gemini Flash Latest",
         "supportedGenerationMethods": ["generateContent"]},
        {"name": "models/gemini-2.5-flash-image", "displayName": "Nano Banana",
         "supportedGenerationMethods": ["generateContent"]},
        {"name": "models/text-embedding-004", "displayName": "Text Embedding",
         "supportedGenerationMethods": ["embedContent"]},
        {"name": "models/gemini-embedding-001", "displayName": "Gemini Embedding",
         "supportedGenerationMethods": ["embedContent"]},
    ]
}


def _model(name: str, methods=("generateContent",), display_name=None) -> GeminiModel:
    return GeminiModel(
        name=name, displayName=display_name, supportedGenerationMethods=list(methods)
    )


@pytest.fixture
def keyring_service():
    service = MagicMock(spec=KeyringService)
    service.is_available = False
    service.get_credential.return_value = None
    return service


@pytest.fixture
def preferences(tmp_path: Path, keyring_service) -> Preferences:
    return Preferences(SettingsRepository(Database(tmp_path / "prefs.db")), keyring_service)


@pytest.fixture
def requests():
    return []


@pytest.fixture
def catalog(preferences, requests) -> ModelCatalog:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=LISTING)

    return ModelCatalog(GeminiClient(transport=httpx.MockTransport(handler)), preferences)


class TestFiltering:
    def test_chat_models_only(self) -> None:
        assert is_chat_model(_model("models/gemini-1.5-pro"))
        assert not is_chat_model(_model("models/gemini-embedding-001", ["embedContent"]))
        assert not is_chat_model(_model("models/text-bison-001"))
        assert not is_chat_model(_model("models/gemini-2.5-flash-image", display_name="Nano Banana"))

    def test_sort_order(self) -> None:
        models = [
            _model("models/gemini-1.5-pro"),
            _model("models/gemini-2.5-pro"),
            _model("models/gemini-2.5-flash"),
            _model("models/gemini-flash-latest"),
        ]

        assert [m.name for m in sort_models(models)] == [
            "models/gemini-flash-latest",
            "models/gemini-2.5-flash",
            "models/gemini-2.5-pro",
            "models/gemini-1.5-pro",
        ]


@pytest.mark.asyncio
async def test_fetch_requires_api_key(catalog, requests) -> None:
    with pytest.raises(ValidationError):
        await catalog.fetch_models()
    assert requests == []


@pytest.mark.asyncio
async def test_fetch_filters_sorts_and_caches(catalog, preferences, keyring_service) -> None:
    keyring_service.get_credential.return_value = "k"

    models = await catalog.fetch_models()

    assert [m.name for m in models] == [
        "models/gemini-flash-latest",
        "models/gemini-2.5-flash",
        "models/gemini-1.5-pro",
    ]
    assert catalog.is_cache_fresh()
    assert [m.name for m in catalog.cached_models()] == [m.name for m in models]
    assert preferences.cached_models[1]["displayName"] == "Gemini 2.5 Flash"


def test_cache_expires_after_a_day(catalog, preferences) -> None:
    preferences.cache_models([], 1_000)

    assert catalog.is_cache_fresh(now_ms=1_000 + MODEL_CACHE_TTL_MS - 1)
    assert not catalog.is_cache_fresh(now_ms=1_000 + MODEL_CACHE_TTL_MS)


@pytest.mark.asyncio
async def test_refresh_skipped_without_key(catalog, requests) -> None:
    await catalog.refresh_on_startup()

    assert requests == []


@pytest.mark.asyncio
async def test_refresh_skipped_when_cache_fresh(catalog, preferences, keyring_service, requests) -> None:
    keyring_service.get_credential.return_value = "k"
    await catalog.fetch_models()
    requests.clear()

    await catalog.refresh_on_startup()

    assert requests == []


@pytest.mark.asyncio
async def test_refresh_failure_keeps_defaults(preferences, keyring_service) -> None:
    keyring_service.get_credential.return_value = "k"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    catalog = ModelCatalog(GeminiClient(transport=httpx.MockTransport(handler)), preferences)
    await catalog.refresh_on_startup()

    assert catalog.cached_models() == []
    assert catalog.available_models() == DEFAULT_MODELS


def test_model_choices_use_bare_ids(catalog) -> None:
    choices = catalog.model_choices()

    assert choices[0] == ("gemini-2.5-flash", "Gemini 2.5 Flash")
    assert all(not model_id.startswith("models/") for model_id, _ in choices)
