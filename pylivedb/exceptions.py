"""Exceptions raised by the LiveDB client."""

from __future__ import annotations

from typing import Any


class LiveDBAPIError(Exception):
    """Base exception for all LiveDB errors."""


class LiveDBConfigError(LiveDBAPIError):
    """Raised when the client configuration is invalid."""


class LiveDBTokenError(LiveDBAPIError):
    """Raised when an authenticated call is made before a token is set."""

    def __init__(self, message: str = "Token not set"):
        super().__init__(message)


class LiveDBNetworkError(LiveDBAPIError):
    """Raised when the server cannot be reached."""

    def __init__(
        self, message: str = "Network Error: Please check your internet connection."
    ):
        super().__init__(message)


class LiveDBTimeoutError(LiveDBNetworkError):
    """Raised when connecting to or reading from the server times out."""

    def __init__(
        self,
        message: str = "Connection Timeout: Unable to connect to LiveDB server.",
    ):
        super().__init__(message)


class LiveDBServerError(LiveDBAPIError):
    """Raised when the server answers with a non-success status code.

    Attributes:
        status_code: HTTP status code of the response
        reason: HTTP reason phrase
        body: Decoded JSON body, or None if the body was empty or not JSON
    """

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        body: Any = None,
        message: str | None = None,
    ):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(message or f"Server Error: {status_code} - {reason}")


class LiveDBAuthenticationError(LiveDBServerError):
    """Raised on 401 responses (missing, invalid or expired token)."""


class LiveDBPermissionError(LiveDBServerError):
    """Raised on 403 responses."""


class LiveDBNotFoundError(LiveDBServerError):
    """Raised on 404 responses."""


class LiveDBRateLimitError(LiveDBServerError):
    """Raised on 429 responses."""

    def __init__(
        self,
        status_code: int = 429,
        reason: str = "",
        body: Any = None,
        retry_after: int | None = None,
    ):
        super().__init__(status_code, reason, body)
        self.retry_after = retry_after


class LiveDBInvalidResponseError(LiveDBAPIError):
    """Raised when a successful response does not carry valid JSON."""


class LiveDBUploadError(LiveDBAPIError):
    """Raised when an upload did not succeed."""


_STATUS_ERRORS: dict[int, type[LiveDBServerError]] = {
    401: LiveDBAuthenticationError,
    403: LiveDBPermissionError,
    404: LiveDBNotFoundError,
}


def server_error_for(
    status_code: int, reason: str = "", body: Any = None, retry_after: int | None = None
) -> LiveDBServerError:
    """Build the most specific server error for a status code."""
    if status_code == 429:
        return LiveDBRateLimitError(status_code, reason, body, retry_after=retry_after)
    error_class = _STATUS_ERRORS.get(status_code, LiveDBServerError)
    return error_class(status_code, reason, body)
