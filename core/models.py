"""Domain models for conversation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class TurnRole(str, Enum):
    """Role of a turn author."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnState(str, Enum):
    """Lifecycle state of the turn currently handled by the controller."""

    IDLE = "idle"
    AWAITING_VALIDATION = "awaiting_validation"
    SENDING = "sending"
    STREAMING = "streaming"
    COMMITTING = "committing"
    FAILED = "failed"


class TurnStatus(str, Enum):
    """How a submitted turn ended."""

    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class Turn:
    """A single user or assistant message. Immutable once created."""

    role: TurnRole
    text: str
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def user(cls, text: str) -> "Turn":
        return cls(role=TurnRole.USER, text=text, created_at=datetime.now())

    @classmethod
    def assistant(cls, text: str) -> "Turn":
        return cls(role=TurnRole.ASSISTANT, text=text, created_at=datetime.now())

    @property
    def is_user(self) -> bool:
        return self.role == TurnRole.USER


@dataclass(frozen=True)
class UploadedResourceRef:
    """Remote file created by an upload, reusable while the source matches."""

    source_identity: str
    remote_name: str
    remote_uri: str
    size_bytes: int


@dataclass(frozen=True)
class AttachmentInfo:
    """A binary child of a document (e.g. a PDF attachment)."""

    identity: str
    path: str
    display_name: str
    size_bytes: int
    content_type: str


@dataclass
class ConversationSession:
    """Conversation state for one document.

    Turns are append-only; the only way to drop them is ``reset``.
    """

    _turns: list[Turn] = field(default_factory=list)
    attached: bool = False
    cached_upload: Optional[UploadedResourceRef] = None

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Ordered, read-only view of the turns."""
        return tuple(self._turns)

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def reset(self) -> None:
        """Return the session to its initial empty state."""
        self._turns = []
        self.attached = False
        self.cached_upload = None

    def __len__(self) -> int:
        return len(self._turns)


@dataclass(frozen=True)
class TurnResult:
    """Outcome of ``ConversationController.submit``."""

    status: TurnStatus
    assistant_text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == TurnStatus.COMPLETED


@dataclass
class Setting:
    """A persisted preference."""

    key: str
    value: str
    category: str
    updated_at: datetime = field(default_factory=datetime.now)
