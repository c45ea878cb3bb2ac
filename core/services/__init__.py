"""Services package: attachment handling, request assembly, documents."""

from .attachment_resolver import (
    AttachmentResolution,
    AttachmentResolver,
    select_pdf_attachment,
)
from .local_document import DirectoryDocument
from .request_builder import RequestBuilder

__all__ = [
    "AttachmentResolution",
    "AttachmentResolver",
    "DirectoryDocument",
    "RequestBuilder",
    "select_pdf_attachment",
]
