"""
Per-document conversation sessions.
Sessions are held weakly by document, so a session never keeps its document alive.
"""

import logging
import weakref
from typing import Any, Optional

from core.models import ConversationSession

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Maps documents to their conversation session.

    A session is created lazily on first access and dropped when its document
    is garbage collected, explicitly discarded, or reported removed.
    """

    def __init__(self):
        self._sessions: "weakref.WeakKeyDictionary[Any, ConversationSession]" = (
            weakref.WeakKeyDictionary()
        )

    def get(self, document: Any) -> ConversationSession:
        """Get the session for a document, creating it on first access."""
        session = self._sessions.get(document)
        if session is None:
            session = ConversationSession()
            self._sessions[document] = session
            logger.debug("Created session for document %s", _document_id(document))
        return session

    def peek(self, document: Any) -> Optional[ConversationSession]:
        """Get the session for a document without creating one."""
        return self._sessions.get(document)

    def reset(self, document: Any) -> ConversationSession:
        """Clear a document's session back to its initial empty state."""
        session = self.get(document)
        session.reset()
        logger.info("Reset session for document %s", _document_id(document))
        return session

    def discard(self, document: Any) -> bool:
        """Drop a document's session entirely."""
        return self._sessions.pop(document, None) is not None

    def remove_document(self, document_id: str) -> int:
        """Handle a document-removal notification.

        Returns:
            Number of sessions dropped
        """
        doomed = [doc for doc in list(self._sessions.keys()) if _document_id(doc) == document_id]
        for document in doomed:
            del self._sessions[document]
        if doomed:
            logger.info("Dropped session for removed document %s", document_id)
        return len(doomed)

    def __contains__(self, document: Any) -> bool:
        return document in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def _document_id(document: Any) -> Optional[str]:
    return getattr(document, "document_id", None)


# Global singleton instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the process-wide SessionStore."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
