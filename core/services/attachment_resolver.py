"""Attachment transport selection: inline for small PDFs, uploaded for large ones."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from core.constants import DEFAULT_ATTACHMENT_NAME, INLINE_MAX_BYTES, PDF_MIME_TYPE
from core.errors import AttachmentError
from core.llm.gemini import GeminiClient
from core.models import AttachmentInfo, ConversationSession, UploadedResourceRef
from core.protocols import ChatDocument

logger = logging.getLogger(__name__)


def select_pdf_attachment(attachments: Iterable[AttachmentInfo]) -> Optional[AttachmentInfo]:
    """First PDF attachment that has a file path, or None."""
    for attachment in attachments:
        if attachment.content_type == PDF_MIME_TYPE and attachment.path:
            return attachment
    return None


def inline_part(data: bytes, mime_type: str = PDF_MIME_TYPE) -> dict[str, Any]:
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": base64.b64encode(data).decode("ascii"),
        }
    }


def file_part(ref: UploadedResourceRef) -> dict[str, Any]:
    return {"fileData": {"fileUri": ref.remote_uri}}


@dataclass(frozen=True)
class AttachmentResolution:
    """Result of resolving an attachment for the current turn.

    ``part`` is None when the turn must continue without the attachment; in
    that case ``advisory`` holds the message to show the user.
    """

    part: Optional[dict[str, Any]] = None
    transport: Optional[str] = None
    advisory: Optional[str] = None

    @property
    def attached(self) -> bool:
        return self.part is not None


class AttachmentResolver:
    """Chooses how a PDF travels with a request.

    Files up to ``inline_max_bytes`` are read and embedded base64-encoded.
    Larger files are uploaded once per source identity; the resulting
    reference is cached in the session and reused on later turns.
    """

    def __init__(self, client: GeminiClient, inline_max_bytes: int = INLINE_MAX_BYTES):
        self._client = client
        self.inline_max_bytes = inline_max_bytes

    async def resolve(
        self,
        session: ConversationSession,
        document: ChatDocument,
        attachment: AttachmentInfo,
        api_key: str,
    ) -> AttachmentResolution:
        """Resolve an attachment into a request part.

        Never raises for attachment problems: failures degrade to a resolution
        without a part and with a user-visible advisory.
        """
        try:
            if attachment.size_bytes <= self.inline_max_bytes:
                data = await self._read(document, attachment)
                logger.info(
                    "Attaching %s inline (%s bytes)", attachment.display_name, len(data)
                )
                return AttachmentResolution(part=inline_part(data), transport="inline")

            ref = self._cached_ref(session, attachment)
            if ref is not None:
                logger.info("Reusing uploaded file %s", ref.remote_name)
                return AttachmentResolution(part=file_part(ref), transport="reused")

            ref = await self._upload(document, attachment, api_key)
            session.cached_upload = ref
            return AttachmentResolution(part=file_part(ref), transport="uploaded")
        except AttachmentError as exc:
            logger.warning("Continuing without attachment: %s", exc)
            return AttachmentResolution(
                advisory=f"Could not attach the PDF, sending without it. {exc}"
            )

    @staticmethod
    def _cached_ref(
        session: ConversationSession, attachment: AttachmentInfo
    ) -> Optional[UploadedResourceRef]:
        cached = session.cached_upload
        if cached is not None and cached.source_identity == attachment.identity:
            return cached
        return None

    async def _read(self, document: ChatDocument, attachment: AttachmentInfo) -> bytes:
        try:
            return await document.read_bytes(attachment.path)
        except OSError as exc:
            raise AttachmentError(f"Could not read {attachment.path}: {exc}", exc) from exc

    async def _upload(
        self,
        document: ChatDocument,
        attachment: AttachmentInfo,
        api_key: str,
    ) -> UploadedResourceRef:
        data = await self._read(document, attachment)
        uploaded = await self._client.upload_file(
            data,
            attachment.display_name or DEFAULT_ATTACHMENT_NAME,
            api_key,
        )
        logger.info("Uploaded %s as %s", attachment.display_name, uploaded.name)
        return UploadedResourceRef(
            source_identity=attachment.identity,
            remote_name=uploaded.name,
            remote_uri=uploaded.uri,
            size_bytes=uploaded.size_bytes if uploaded.size_bytes is not None else len(data),
        )
