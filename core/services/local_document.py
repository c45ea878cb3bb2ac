"""Filesystem-backed document: a directory whose files are its attachments."""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path

from core.constants import PDF_MIME_TYPE
from core.models import AttachmentInfo


class DirectoryDocument:
    """A document whose attachments are the files of one directory.

    Attachment identity is the resolved file path. Reads run off the event
    loop thread.
    """

    def __init__(self, root: Path, title: str = ""):
        self.root = Path(root)
        self.title = title or self.root.name

    @property
    def document_id(self) -> str:
        return str(self.root.resolve())

    async def list_attachments(self) -> list[AttachmentInfo]:
        return await asyncio.to_thread(self._scan)

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    def _scan(self) -> list[AttachmentInfo]:
        if not self.root.is_dir():
            return []
        attachments = []
        for path in sorted(self.root.iterdir()):
            if not path.is_file():
                continue
            if path.suffix.lower() == ".pdf":
                content_type = PDF_MIME_TYPE
            else:
                content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            resolved = path.resolve()
            attachments.append(
                AttachmentInfo(
                    identity=str(resolved),
                    path=str(resolved),
                    display_name=path.name,
                    size_bytes=path.stat().st_size,
                    content_type=content_type,
                )
            )
        return attachments

    def __repr__(self) -> str:
        return f"DirectoryDocument({str(self.root)!r})"
