"""
Wire types for the Gemini API.
All types are Pydantic models; every field of uncertain presence is optional.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for response shapes: tolerate unknown fields, accept aliases."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ----- Generation stream -----

class ResponsePart(WireModel):
    """One part of a candidate's content."""
    text: Optional[str] = None


class CandidateContent(WireModel):
    """Content block of a candidate."""
    parts: list[ResponsePart] = Field(default_factory=list)
    role: Optional[str] = None


class Candidate(WireModel):
    """A single generation candidate."""
    content: Optional[CandidateContent] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class GenerateContentChunk(WireModel):
    """One protocol unit of a streamGenerateContent response."""
    candidates: list[Candidate] = Field(default_factory=list)

    def first_text(self) -> str:
        """Text of the first part of the first candidate, or empty string."""
        if not self.candidates:
            return ""
        content = self.candidates[0].content
        if content is None or not content.parts:
            return ""
        return content.parts[0].text or ""


# ----- Errors -----

class ApiErrorDetail(WireModel):
    """Error detail in a non-success response body."""
    code: Optional[int] = None
    message: Optional[str] = None
    status: Optional[str] = None


class ApiErrorBody(WireModel):
    """Non-success response body."""
    error: Optional[ApiErrorDetail] = None


# ----- Files -----

class UploadedFile(WireModel):
    """File resource returned by the upload endpoint."""
    name: Optional[str] = None
    uri: Optional[str] = None
    size_bytes: Optional[int] = Field(default=None, alias="sizeBytes")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class UploadResponse(UploadedFile):
    """Upload response; fields may be nested under ``file`` or flat."""
    file: Optional[UploadedFile] = None

    def resolved(self) -> UploadedFile:
        nested = self.file or UploadedFile()
        return UploadedFile(
            name=nested.name or self.name,
            uri=nested.uri or self.uri,
            sizeBytes=nested.size_bytes if nested.size_bytes is not None else self.size_bytes,
            mimeType=nested.mime_type or self.mime_type,
        )


# ----- Models -----

class GeminiModel(WireModel):
    """Entry of the models listing."""
    name: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    supported_generation_methods: list[str] = Field(
        default_factory=list, alias="supportedGenerationMethods"
    )


class ModelListResponse(WireModel):
    """Response of the models listing."""
    models: list[GeminiModel] = Field(default_factory=list)
