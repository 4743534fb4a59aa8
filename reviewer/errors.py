"""Error taxonomy for the review pipeline.

Every error carries the HTTP status the route layer answers with, so the
API can always return a structured ``{"error": ...}`` envelope.
"""

from __future__ import annotations

from typing import Optional


class ReviewError(Exception):
    """Base class for pipeline errors surfaced to the caller."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ConfigError(ReviewError):
    """A required credential or key is missing. Not retried."""

    status_code = 500


class UpstreamAuthError(ReviewError):
    """Figma or LLM API rejected the credential (401/403). Not retried."""

    status_code = 403


class RateLimitError(ReviewError):
    """Upstream still rate limited (429) after internal retries."""

    status_code = 429


class QuotaExceededError(ReviewError):
    """LLM usage quota exhausted (402)."""

    status_code = 402


class EmptyResponseError(ReviewError):
    """The model returned no content, usually a token-limit truncation."""

    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "AI response was empty. This may indicate the response was cut off "
            "due to token limits. Try using a different model or simplifying your prompt."
        )


class ParseError(ReviewError):
    """Model output could not be recovered as a JSON array."""

    status_code = 500

    def __init__(self, message: str, excerpt: str = ""):
        self.excerpt = excerpt
        if excerpt:
            message = f"{message} (excerpt: {excerpt!r})"
        super().__init__(message)


class NodeNotFoundError(ReviewError):
    """The requested node or document contains no usable nodes."""

    status_code = 404


class PerItemDispatchError(ReviewError):
    """A single comment/edit failed. Collected by the dispatcher, never propagated."""

    def __init__(self, index: int, message: str):
        self.index = index
        super().__init__(f"Comment {index + 1}: {message}")
