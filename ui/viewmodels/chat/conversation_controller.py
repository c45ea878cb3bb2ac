"""ConversationController - Runs conversation turns for one document."""

import logging
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError as WireValidationError
from PySide6.QtCore import QObject, Signal, Slot

from core.config import Preferences
from core.errors import ChatError, TruncatedStreamError, ValidationError
from core.llm import GeminiClient, ProtocolUnit, StreamDecoder
from core.models import (
    AttachmentInfo,
    ConversationSession,
    Turn,
    TurnResult,
    TurnState,
    TurnStatus,
)
from core.persistence import Database
from core.protocols import ChatDocument
from core.services import AttachmentResolver, RequestBuilder, select_pdf_attachment
from core.store import SessionStore, get_session_store
from core.types import GenerateContentChunk
from ui.viewmodels.chat.turn_worker import TurnWorker

logger = logging.getLogger(__name__)

TRUNCATED_ADVISORY = "The response ended unexpectedly and may be incomplete."


class AttachmentState:
    """Values carried by ``attachment_state_changed``."""

    UNAVAILABLE = "unavailable"
    PENDING = "pending"
    OFF = "off"
    ATTACHED = "attached"


class _AssistantBuffer:
    """Accumulates streamed assistant text; hands it out for commit once."""

    def __init__(self):
        self._parts: list[str] = []
        self._taken = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def append(self, text: str) -> str:
        self._parts.append(text)
        return self.text

    def take(self) -> str:
        if self._taken:
            return ""
        self._taken = True
        return self.text


class ConversationController(QObject):
    """Drives the turn lifecycle of the conversation tied to one document.

    A turn moves through ``idle -> awaiting_validation -> sending ->
    streaming -> committing -> idle``; any error after validation moves it
    to ``failed`` and then back to ``idle``. At most one turn is in flight.

    Signals:
        state_changed(str): Emitted on every turn state transition
        user_message_rendered(str): Emitted when the user turn is recorded
        assistant_text_updated(str): Emitted with the accumulated assistant text
        turn_committed(object): Emitted with each Turn appended for the assistant
        turn_finished(object): Emitted with the TurnResult when a turn ends
        error_occurred(str): Emitted with a user-visible error message
        advisory(str): Emitted with a non-fatal notice (attachment skipped, truncation)
        controls_enabled_changed(bool): Emitted when input controls toggle
        attachment_state_changed(str): Emitted when the attachment toggle changes
        attachment_control_enabled_changed(bool): Emitted when the toggle locks/unlocks
        messages_loaded(object): Emitted with ``[{"content", "is_user"}]`` to re-render
    """

    state_changed = Signal(str)
    user_message_rendered = Signal(str)
    assistant_text_updated = Signal(str)
    turn_committed = Signal(object)
    turn_finished = Signal(object)
    error_occurred = Signal(str)
    advisory = Signal(str)
    controls_enabled_changed = Signal(bool)
    attachment_state_changed = Signal(str)
    attachment_control_enabled_changed = Signal(bool)
    messages_loaded = Signal(object)

    def __init__(
        self,
        document: ChatDocument,
        preferences: Preferences,
        client: Optional[GeminiClient] = None,
        session_store: Optional[SessionStore] = None,
        resolver: Optional[AttachmentResolver] = None,
        request_builder: Optional[RequestBuilder] = None,
        database: Optional[Database] = None,
        parent: Optional[QObject] = None,
    ):
        """Initialize the controller.

        Args:
            document: The document the conversation belongs to
            preferences: Credential, model and system prompt source
            client: Gemini API client (a default client when omitted)
            session_store: Session store (the process-wide store when omitted)
            resolver: Attachment resolver (built on ``client`` when omitted)
            request_builder: Request builder
            database: Preference database whose thread-local connection the
                worker thread closes when it ends
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._document = document
        self._preferences = preferences
        self._client = client or GeminiClient()
        self._session_store = session_store or get_session_store()
        self._resolver = resolver or AttachmentResolver(self._client)
        self._request_builder = request_builder or RequestBuilder()
        self._database = database

        self._state = TurnState.IDLE
        self._attachment: Optional[AttachmentInfo] = None
        self._attach_requested = False

        self._worker: Optional[TurnWorker] = None
        self._active_run_token: Optional[str] = None

    @property
    def document(self) -> ChatDocument:
        return self._document

    @property
    def session(self) -> ConversationSession:
        return self._session_store.get(self._document)

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_loading(self) -> bool:
        """True while a turn is in flight."""
        return self._state not in (TurnState.IDLE, TurnState.FAILED) or self._worker is not None

    @property
    def attachment(self) -> Optional[AttachmentInfo]:
        return self._attachment

    @property
    def attach_requested(self) -> bool:
        return self._attach_requested

    @property
    def attachment_state(self) -> str:
        if self.session.attached:
            return AttachmentState.ATTACHED
        if self._attachment is None:
            return AttachmentState.UNAVAILABLE
        return AttachmentState.PENDING if self._attach_requested else AttachmentState.OFF

    def _set_state(self, state: TurnState) -> None:
        if state == self._state:
            return
        logger.debug("Turn state %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state.value)

    def _set_controls_enabled(self, enabled: bool) -> None:
        self.controls_enabled_changed.emit(enabled)
        self.attachment_control_enabled_changed.emit(enabled and self._attachment_control_available())

    def _attachment_control_available(self) -> bool:
        return self._attachment is not None and not self.session.attached

    def _emit_attachment_state(self) -> None:
        self.attachment_state_changed.emit(self.attachment_state)
        self.attachment_control_enabled_changed.emit(
            not self.is_loading and self._attachment_control_available()
        )

    # ------------------------------------------------------------------
    # Attachment toggle
    # ------------------------------------------------------------------

    async def refresh_attachment_availability(self) -> bool:
        """Look up the document's PDF and re-arm the attachment toggle.

        Returns:
            True if the document has a PDF attachment
        """
        try:
            attachments = await self._document.list_attachments()
        except OSError as exc:
            logger.warning("Could not list attachments of %r: %s", self._document, exc)
            attachments = []

        self._attachment = select_pdf_attachment(attachments)
        self._attach_requested = self._attachment_control_available()
        self._emit_attachment_state()
        return self._attachment is not None

    @Slot(bool)
    def set_attach_requested(self, requested: bool) -> None:
        """Toggle whether the PDF goes out with the next turn."""
        if not self._attachment_control_available() or self.is_loading:
            return
        self._attach_requested = requested
        self._emit_attachment_state()

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------

    @Slot(str)
    def send_message(self, text: str) -> None:
        """Run a turn for ``text`` in a worker thread."""
        if self.is_loading:
            logger.info("Turn already in progress, ignoring send")
            return

        run_token = str(uuid4())
        self._active_run_token = run_token

        self._worker = TurnWorker(self, text, run_token, self._database)
        self._worker.error.connect(self._on_worker_error)
        self._worker.finished.connect(self._cleanup_worker)
        self._worker.start()

    def _cleanup_worker(self) -> None:
        if self._worker is not None:
            self._worker.deleteLater()
            self._worker = None
        self._active_run_token = None

    def _on_worker_error(self, error: str, run_token: str) -> None:
        if run_token != self._active_run_token:
            return
        self.error_occurred.emit(error)

    async def submit(self, text: str) -> TurnResult:
        """Run one turn to completion.

        Validation failures leave the session untouched. After validation the
        user turn is always recorded, and whatever assistant text arrived is
        committed exactly once, even when the turn fails.
        """
        if self._state not in (TurnState.IDLE, TurnState.FAILED):
            logger.info("Turn already in progress, rejecting submit")
            return self._finish(TurnResult(TurnStatus.REJECTED, error="A turn is already in progress"))

        self._set_state(TurnState.AWAITING_VALIDATION)
        try:
            message, api_key = self._validate(text)
        except ValidationError as exc:
            self._set_state(TurnState.IDLE)
            self.error_occurred.emit(str(exc))
            return self._finish(TurnResult(TurnStatus.REJECTED, error=str(exc)))

        session = self.session
        buffer = _AssistantBuffer()
        self._set_state(TurnState.SENDING)
        self._set_controls_enabled(False)
        try:
            session.append(Turn.user(message))
            self.user_message_rendered.emit(message)

            part = await self._resolve_attachment(session, api_key)
            payload = self._request_builder.build_payload(
                session.turns, part, self._preferences.system_prompt
            )
            await self._stream_response(session, payload, api_key, part is not None, buffer)

            self._set_state(TurnState.COMMITTING)
            result = TurnResult(TurnStatus.COMPLETED, assistant_text=self._commit(session, buffer))
            self._set_state(TurnState.IDLE)
        except ChatError as exc:
            logger.warning("Turn failed: %s", exc)
            result = self._fail(session, buffer, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error during turn")
            result = self._fail(session, buffer, f"Unexpected error: {exc}")
        finally:
            self._recover()
        return self._finish(result)

    def _validate(self, text: str) -> tuple[str, str]:
        message = (text or "").strip()
        if not message:
            raise ValidationError("Message is empty")
        api_key = self._preferences.api_key
        if not api_key:
            raise ValidationError(
                "Gemini API key is not configured. Add it in the settings to start chatting."
            )
        return message, api_key

    async def _resolve_attachment(
        self, session: ConversationSession, api_key: str
    ) -> Optional[dict[str, Any]]:
        if session.attached or not self._attach_requested or self._attachment is None:
            return None

        resolution = await self._resolver.resolve(
            session, self._document, self._attachment, api_key
        )
        if resolution.advisory:
            self.advisory.emit(resolution.advisory)
        return resolution.part

    async def _stream_response(
        self,
        session: ConversationSession,
        payload: dict[str, Any],
        api_key: str,
        carries_attachment: bool,
        buffer: _AssistantBuffer,
    ) -> None:
        decoder = StreamDecoder()
        async with self._client.stream_generate_content(
            self._preferences.model, payload, api_key
        ) as fragments:
            self._set_state(TurnState.STREAMING)
            if carries_attachment:
                session.attached = True
                self._attach_requested = False
                self.attachment_state_changed.emit(self.attachment_state)

            async for fragment in fragments:
                for unit in decoder.feed(fragment):
                    self._consume_unit(unit, buffer)

        try:
            decoder.finish()
        except TruncatedStreamError as exc:
            logger.warning("%s", exc)
            self.advisory.emit(TRUNCATED_ADVISORY)

    def _consume_unit(self, unit: ProtocolUnit, buffer: _AssistantBuffer) -> None:
        if not unit.ok:
            logger.warning("Skipping undecodable response unit: %s (%.200s)", unit.error, unit.raw)
            return
        try:
            chunk = GenerateContentChunk.model_validate(unit.data)
        except WireValidationError as exc:
            logger.warning("Skipping unexpected response unit: %s", exc)
            return

        text = chunk.first_text()
        if text:
            self.assistant_text_updated.emit(buffer.append(text))

    def _commit(self, session: ConversationSession, buffer: _AssistantBuffer) -> str:
        text = buffer.take()
        if text:
            turn = Turn.assistant(text)
            session.append(turn)
            self.turn_committed.emit(turn)
        return text

    def _fail(self, session: ConversationSession, buffer: _AssistantBuffer, error: str) -> TurnResult:
        self._set_state(TurnState.FAILED)
        partial = self._commit(session, buffer)
        self.error_occurred.emit(error)
        return TurnResult(TurnStatus.FAILED, assistant_text=partial, error=error)

    def _recover(self) -> None:
        self._set_state(TurnState.IDLE)
        self._set_controls_enabled(True)
        self.attachment_state_changed.emit(self.attachment_state)

    def _finish(self, result: TurnResult) -> TurnResult:
        self.turn_finished.emit(result)
        return result

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    @Slot()
    def reset_session(self) -> bool:
        """Clear the conversation and re-arm the attachment toggle.

        Returns:
            False if a turn is in flight and nothing was reset
        """
        if self.is_loading:
            logger.info("Turn in progress, not resetting session")
            return False

        self._session_store.reset(self._document)
        self._attach_requested = self._attachment is not None
        self.messages_loaded.emit([])
        self._emit_attachment_state()
        return True

    @Slot()
    def restore_transcript(self) -> None:
        """Re-render the existing turns of the session."""
        messages = [
            {"content": turn.text, "is_user": turn.is_user}
            for turn in self.session.turns
        ]
        self.messages_loaded.emit(messages)
        self._emit_attachment_state()

    @Slot(str)
    def document_removed(self, document_id: str) -> None:
        """Drop the sessions of a deleted document."""
        removed = self._session_store.remove_document(document_id)
        logger.debug("Dropped %s session(s) for removed document %s", removed, document_id)
