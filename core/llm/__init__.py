"""Gemini API access and stream decoding."""

from .gemini import GeminiClient, summarize_error
from .model_catalog import ModelCatalog
from .stream_decoder import ProtocolUnit, StreamDecoder

__all__ = [
    "GeminiClient",
    "ModelCatalog",
    "ProtocolUnit",
    "StreamDecoder",
    "summarize_error",
]
