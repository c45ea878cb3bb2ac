"""
Gemini API client.
Streams generation output, uploads large files and lists models over httpx.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from core.constants import GEMINI_BASE_URL, PDF_MIME_TYPE, RATE_LIMIT_STATUS, REQUEST_TIMEOUT
from core.errors import AttachmentError, ProtocolError, TransportError
from core.types import ApiErrorBody, GeminiModel, ModelListResponse, UploadedFile, UploadResponse

logger = logging.getLogger(__name__)


RATE_LIMIT_HINT = (
    "Rate limit exceeded. {detail}\n\n"
    "Try:\n"
    "• Using a different model (e.g., gemini-1.5-flash)\n"
    "• Waiting a few minutes\n"
    "• Checking your quota at https://ai.dev/usage"
)


def summarize_error(status: int, reason: str, body: str) -> str:
    """Build a user-facing message for a non-success response.

    Args:
        status: HTTP status code
        reason: HTTP reason phrase
        body: Raw response body

    Returns:
        The server's error message when the body is a structured error,
        an enriched hint for rate limiting, else the status line plus raw body.
    """
    status_line = f"Error {status}: {reason}" if reason else f"Error {status}"
    try:
        parsed = ApiErrorBody.model_validate_json(body)
    except ValueError:
        if body.strip():
            return f"{status_line}\n\n{body}"
        return status_line

    if parsed.error is None or not parsed.error.message:
        return status_line

    if status == RATE_LIMIT_STATUS:
        detail = parsed.error.message.split("\n")[0]
        return RATE_LIMIT_HINT.format(detail=detail)
    return parsed.error.message


def model_id(model: str) -> str:
    """Strip the ``models/`` resource prefix from a model name."""
    return model[len("models/"):] if model.startswith("models/") else model


class GeminiClient:
    """Thin async client for the Gemini REST API.

    A fresh ``httpx.AsyncClient`` is opened per call so the client can be
    used from any event loop (each turn worker runs its own loop).
    """

    def __init__(
        self,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    @asynccontextmanager
    async def stream_generate_content(
        self,
        model: str,
        payload: dict[str, Any],
        api_key: str,
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a streaming generation request.

        Yields:
            An async iterator over decoded text fragments of the response body.

        Raises:
            ProtocolError: on a non-success status
            TransportError: when dispatch or any read fails
        """
        path = f"/v1beta/models/{model_id(model)}:streamGenerateContent"
        logger.info("Calling Gemini API: %s%s?key=***", self.base_url, path)
        logger.debug("Request carries %s content entries", len(payload.get("contents", [])))

        try:
            async with self._http() as client:
                async with client.stream(
                    "POST",
                    path,
                    params={"key": api_key},
                    json=payload,
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.warning("API error %s: %s", response.status_code, body[:500])
                        raise ProtocolError(
                            response.status_code,
                            summarize_error(response.status_code, response.reason_phrase, body),
                        )
                    # Read failures while the caller iterates surface here too.
                    yield response.aiter_text()
        except httpx.RequestError as exc:
            raise TransportError(f"Request failed: {exc}") from exc

    async def upload_file(
        self,
        data: bytes,
        display_name: str,
        api_key: str,
        mime_type: str = PDF_MIME_TYPE,
    ) -> UploadedFile:
        """Upload a file with the raw upload protocol.

        Raises:
            AttachmentError: if the request fails or the response lacks name/uri
        """
        headers = {
            "X-Goog-Upload-Protocol": "raw",
            "X-Goog-Upload-File-Name": display_name.encode("utf-8"),
            "X-Goog-Upload-Content-Type": mime_type,
            "Content-Type": mime_type,
        }
        logger.info("Uploading %s (%s bytes)", display_name, len(data))
        try:
            async with self._http() as client:
                response = await client.post(
                    "/upload/v1beta/files",
                    params={"key": api_key},
                    content=data,
                    headers=headers,
                )
        except httpx.RequestError as exc:
            raise AttachmentError(f"Upload failed: {exc}", exc) from exc

        if response.status_code != 200:
            logger.warning("Upload failed: %s %s", response.status_code, response.text[:500])
            raise AttachmentError(f"Upload failed with status {response.status_code}")

        try:
            uploaded = UploadResponse.model_validate(response.json()).resolved()
        except ValueError as exc:
            raise AttachmentError(f"Unexpected upload response: {exc}", exc) from exc

        if not uploaded.name or not uploaded.uri:
            raise AttachmentError("Upload response is missing the file name or URI")

        if uploaded.size_bytes is None:
            uploaded = uploaded.model_copy(update={"size_bytes": len(data)})
        return uploaded

    async def list_models(self, api_key: str) -> list[GeminiModel]:
        """List the models visible to the credential."""
        try:
            async with self._http() as client:
                response = await client.get("/v1beta/models", params={"key": api_key})
        except httpx.RequestError as exc:
            raise TransportError(f"Request failed: {exc}") from exc

        if not response.is_success:
            raise ProtocolError(
                response.status_code,
                summarize_error(response.status_code, response.reason_phrase, response.text),
            )
        return ModelListResponse.model_validate(response.json()).models
