"""
Constants for the Gemini chat engine.
"""


# ----- Attachments -----

# Attachments up to this size are embedded inline; larger ones are uploaded.
INLINE_MAX_BYTES = 8 * 1024 * 1024

PDF_MIME_TYPE = "application/pdf"

DEFAULT_ATTACHMENT_NAME = "attachment.pdf"


# ----- API -----

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"

REQUEST_TIMEOUT = 120.0


# ----- Models -----

DEFAULT_MODEL = "gemini-1.5-flash"

DEFAULT_SYSTEM_PROMPT = "You are a research assistant."

# Model list cache lifetime in milliseconds (24 hours)
MODEL_CACHE_TTL_MS = 24 * 60 * 60 * 1000

RATE_LIMIT_STATUS = 429
