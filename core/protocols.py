"""Collaborator protocols consumed by the conversation engine."""

from __future__ import annotations

from typing import Protocol

from core.models import AttachmentInfo


class PreferenceStore(Protocol):
    """Process-wide string key-value preferences."""

    def get(self, key: str, default: str = "") -> str:
        """Get a preference value, or ``default`` when unset."""
        ...

    def set(self, key: str, value: str) -> None:
        """Persist a preference value."""
        ...


class ChatDocument(Protocol):
    """The document a conversation is tied to."""

    @property
    def document_id(self) -> str:
        """Stable identity of the document."""
        ...

    async def list_attachments(self) -> list[AttachmentInfo]:
        """Binary children of the document."""
        ...

    async def read_bytes(self, path: str) -> bytes:
        """Read an attachment's content."""
        ...
