"""TurnWorker QThread for running a conversation turn off the UI thread."""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QThread, Signal

from core.persistence import Database

if TYPE_CHECKING:
    from ui.viewmodels.chat.conversation_controller import ConversationController

logger = logging.getLogger(__name__)


class TurnWorker(QThread):
    """Worker thread for running one turn asynchronously.

    The worker creates its own asyncio event loop and drives the
    controller's ``submit`` coroutine to completion. It is one-shot: a new
    worker is created for every turn.

    The turn outcome is reported by the controller's own signals; the
    worker only reports a crash of the coroutine itself.

    Signals:
        error: Emitted when the turn coroutine itself crashes (error_message, run_token)
    """

    error = Signal(str, str)  # error, run_token

    def __init__(
        self,
        controller: "ConversationController",
        text: str,
        run_token: str,
        database: Optional[Database] = None,
    ):
        super().__init__()
        self.controller = controller
        self.text = text
        self.run_token = run_token
        self.database = database

    def run(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self.controller.submit(self.text))
        except Exception as e:
            logger.exception("Turn execution failed: %s", e)
            self.error.emit(str(e), self.run_token)
        finally:
            loop.close()
            asyncio.set_event_loop(None)
            # Preferences opened a thread-local connection on this thread
            if self.database is not None:
                self.database.close()
