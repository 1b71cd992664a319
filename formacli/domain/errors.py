"""Error taxonomy raised by the API client.

Callers distinguish RateLimitError to show a wait-and-retry message and
AuthError to force a logout; everything else is a generic failure.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for every error surfaced by the API client."""


class NetworkError(ApiError):
    """Transport-level failure (DNS, connection refused, timeout). Never retried."""

    def __init__(self, message: str):
        super().__init__(f"Network error: {message}")


class HttpError(ApiError):
    """Non-2xx response from the API.

    Attributes:
        status: HTTP status code.
        body: Decoded JSON body, or None when the response was not JSON.
    """

    def __init__(self, status: int, body: Any = None, message: Optional[str] = None):
        self.status = status
        self.body = body
        if message is None and isinstance(body, dict) and body.get("message"):
            message = str(body["message"])
        self.message = message or f"HTTP {status}"
        super().__init__(self.message)


class RateLimitError(HttpError):
    """Status 429. Carries the server-advertised wait when one was given."""

    def __init__(
        self,
        status: int = 429,
        body: Any = None,
        message: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(status, body, message)
        self.retry_after = retry_after


class AuthError(HttpError):
    """Status 401 that could not be recovered by a token refresh."""


class InvalidResponseError(ApiError):
    """The server declared a JSON body that could not be decoded."""

    def __init__(self, status: int, raw_body: str):
        self.status = status
        self.raw_body = raw_body
        super().__init__(f"Invalid JSON in HTTP {status} response")


class QueueClosedError(ApiError):
    """Raised for requests still pending when the client is closed."""


def error_for_status(status: int, body: Any = None, retry_after: Optional[float] = None) -> HttpError:
    """Builds the most specific HttpError subclass for a status code."""
    if status == 429:
        if retry_after is None and isinstance(body, dict) and body.get("retryAfter") is not None:
            try:
                retry_after = float(body["retryAfter"])
            except (TypeError, ValueError):
                retry_after = None
        return RateLimitError(status, body, retry_after=retry_after)
    if status == 401:
        return AuthError(status, body)
    return HttpError(status, body)
