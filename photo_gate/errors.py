"""Exception types raised by the photo validation pipeline."""

from __future__ import annotations


class PhotoGateError(Exception):
    """Base class for photo_gate errors."""


class DecodeError(PhotoGateError):
    """Raised when image bytes or a URL cannot be turned into pixels."""


class InvalidInput(PhotoGateError, ValueError):
    """Raised for caller mistakes detected before any network activity."""


class RetryableHTTPStatusError(Exception):
    """Raised for HTTP status codes that should trigger a retry."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Server returned status {status_code}")
        self.status_code = status_code
