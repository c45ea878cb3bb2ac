"""Error taxonomy for a conversation turn."""

from __future__ import annotations

from typing import Optional


class ChatError(Exception):
    """Base class for conversation errors."""


class ValidationError(ChatError):
    """Input rejected before any network call (empty message, missing key)."""


class TransportError(ChatError):
    """Dispatching the request or reading the stream failed."""


class ProtocolError(ChatError):
    """The API answered with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class DecodeError(ChatError):
    """A balanced-brace unit could not be parsed into the expected shape."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class TruncatedStreamError(ChatError):
    """The stream ended in the middle of a unit."""

    def __init__(self, pending: str):
        super().__init__(f"Stream ended with {len(pending)} unterminated characters")
        self.pending = pending


class AttachmentError(ChatError):
    """The attachment could not be read or uploaded."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
