"""
Application wiring for the chat engine.

Builds the shared collaborators once at startup: logging, the preference
database, the Gemini client, the model catalog and the session store.
Views ask the context for one controller per open document.
"""

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject

from core.config import Preferences
from core.infrastructure.keyring_service import KeyringService
from core.llm.gemini import GeminiClient
from core.llm.model_catalog import ModelCatalog
from core.logging_config import configure_logging
from core.persistence import Database, SettingsRepository
from core.protocols import ChatDocument
from core.store import SessionStore, get_session_store
from ui.viewmodels.chat import ConversationController

logger = logging.getLogger(__name__)


class AppContext:
    """Process-wide collaborators shared by every conversation."""

    def __init__(
        self,
        database: Database,
        preferences: Preferences,
        client: GeminiClient,
        session_store: SessionStore,
    ):
        self.database = database
        self.preferences = preferences
        self.client = client
        self.session_store = session_store
        self.catalog = ModelCatalog(client, preferences)

    @classmethod
    def create(
        cls,
        data_dir: Optional[Path] = None,
        client: Optional[GeminiClient] = None,
        keyring_service: Optional[KeyringService] = None,
    ) -> "AppContext":
        """Configure logging and open the preference database under ``data_dir``."""
        data_dir = data_dir or (Path.home() / ".paperchat")
        log_file = configure_logging(data_dir / "logs")
        logger.info("Starting PaperChat (log file: %s)", log_file)

        database = Database(data_dir / "database.db")
        preferences = Preferences(SettingsRepository(database), keyring_service)
        return cls(
            database=database,
            preferences=preferences,
            client=client or GeminiClient(),
            session_store=get_session_store(),
        )

    def create_controller(
        self,
        document: ChatDocument,
        parent: Optional[QObject] = None,
    ) -> ConversationController:
        """Controller for one open document, sharing this context's store."""
        return ConversationController(
            document,
            self.preferences,
            client=self.client,
            session_store=self.session_store,
            database=self.database,
            parent=parent,
        )

    def close(self) -> None:
        """Close the main thread's database connection."""
        self.database.close()
        logger.info("Exited PaperChat")
