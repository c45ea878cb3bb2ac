# PaperChat - Core Package
"""
Core package for the per-document Gemini chat engine.
This package holds session state, attachment handling, request assembly and
stream decoding, and can be used independently of the UI layer.
"""

from core.config import Preferences
from core.errors import (
    AttachmentError,
    ChatError,
    DecodeError,
    ProtocolError,
    TransportError,
    TruncatedStreamError,
    ValidationError,
)
from core.models import ConversationSession, Turn, TurnRole

__all__ = [
    "Preferences",
    "AttachmentError",
    "ChatError",
    "DecodeError",
    "ProtocolError",
    "TransportError",
    "TruncatedStreamError",
    "ValidationError",
    "ConversationSession",
    "Turn",
    "TurnRole",
]
