"""
Custom exceptions for the embed pipeline.

Error philosophy:
  - TransportError  → FAIL HARD: connection/DNS failures, propagated verbatim.
  - HTTPStatusError → FAIL HARD: non-2xx answer to a HEAD/GET, carries the status code.
  - ContentError    → SOFT MISS in image-size lookup (dimensions stay unknown).
  - StoreError      → FAIL HARD: a cache backend failed, never silently bypassed.

Stages never catch and suppress these; the pipeline runner aborts on the first
one and hands it to the caller unchanged.
"""

from typing import Optional


class EmbedPipelineError(Exception):
    """Base exception for all embed pipeline errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(EmbedPipelineError):
    """Raised when a request could not be delivered (connection, DNS, bad URL)."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url


class HTTPStatusError(EmbedPipelineError):
    """Raised when a remote resource answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.status_code = status_code

    def to_response(self) -> dict:
        """Convert to an error payload for callers."""
        return {
            "error": "HTTPStatusError",
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class ContentError(EmbedPipelineError):
    """Raised when fetched bytes can't be parsed as the expected format."""
    pass


class StoreError(EmbedPipelineError):
    """Raised when the cache backend fails on get or set."""

    def __init__(
        self,
        message: str,
        key: str,
        operation: str,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.key = key
        self.operation = operation  # "get" or "set"
