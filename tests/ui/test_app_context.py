"""Unit tests for AppContext wiring."""

import json
import logging
import sys
from unittest.mock import MagicMock

import httpx
import pytest

from core.infrastructure.keyring_service import KeyringService
from core.llm.gemini import GeminiClient
from core.logging_config import ApiKeyRedactingFilter
from core.models import TurnStatus
from core.store import get_session_store
from ui.app_context import AppContext


class FolderDocument:
    document_id = "folder-doc"

    async def list_attachments(self):
        return []

    async def read_bytes(self, path):
        return b""


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    excepthook = sys.excepthook
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)
    sys.excepthook = excepthook


@pytest.fixture
def keyring_service():
    service = MagicMock(spec=KeyringService)
    service.is_available = False
    service.get_credential.return_value = "test-key"
    return service


@pytest.fixture
def requests():
    return []


@pytest.fixture
def context(tmp_path, keyring_service, requests, restore_logging):
    def handler(request):
        requests.append(request)
        body = [{"candidates": [{"content": {"parts": [{"text": "Hi there"}], "role": "model"}}]}]
        return httpx.Response(200, text=json.dumps(body))

    client = GeminiClient(transport=httpx.MockTransport(handler))
    ctx = AppContext.create(tmp_path, client=client, keyring_service=keyring_service)
    yield ctx
    ctx.close()


class TestCreate:
    """Test startup wiring."""

    def test_logging_is_configured_with_redaction(self, context, tmp_path):
        handlers = logging.getLogger().handlers

        assert (tmp_path / "logs" / "paperchat.log").exists()
        assert handlers
        assert all(
            any(isinstance(f, ApiKeyRedactingFilter) for f in handler.filters)
            for handler in handlers
        )

    def test_preferences_persist_in_data_dir(self, context, tmp_path):
        context.preferences.model = "gemini-2.5-pro"

        assert (tmp_path / "database.db").exists()
        assert context.preferences.model == "gemini-2.5-pro"

    def test_uses_process_session_store(self, context):
        assert context.session_store is get_session_store()

    def test_catalog_offers_default_models(self, context):
        choices = dict(context.catalog.model_choices())

        assert "gemini-2.5-flash" in choices


class TestCreateController:
    """Test controllers handed out by the context."""

    def test_controller_shares_context_collaborators(self, context, qtbot):
        document = FolderDocument()
        controller = context.create_controller(document)

        assert controller.session is context.session_store.get(document)

    @pytest.mark.asyncio
    async def test_controller_turn_goes_through_context_client(self, context, requests, qtbot):
        document = FolderDocument()
        controller = context.create_controller(document)

        result = await controller.submit("Hello")

        assert result.status == TurnStatus.COMPLETED
        assert result.assistant_text == "Hi there"
        assert requests[0].url.params["key"] == "test-key"
        context.session_store.reset(document)
