"""Chat subsystem - Per-document conversation turns."""

from .turn_worker import TurnWorker
from .conversation_controller import AttachmentState, ConversationController

__all__ = [
    "AttachmentState",
    "ConversationController",
    "TurnWorker",
]
