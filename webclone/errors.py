"""Exception types raised by the ingestion pipeline."""

from __future__ import annotations

from typing import Optional


class WebcloneError(Exception):
    """Base class for failures that map onto an HTTP status."""

    http_status = 500


class InvalidURLError(WebcloneError):
    """The supplied string could not be turned into an absolute URL."""

    http_status = 400

    def __init__(self, message: str = "Invalid URL format") -> None:
        super().__init__(message)


class ForbiddenHostError(WebcloneError):
    """The URL points at a loopback, private or link-local host."""

    http_status = 403

    def __init__(self, hostname: str) -> None:
        super().__init__(f"Access to internal networks is not allowed ({hostname})")
        self.hostname = hostname


class FetchError(WebcloneError):
    """A single HTTP fetch failed."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class FetchTimeoutError(FetchError):
    """No complete response arrived within the configured timeout."""


class TooLargeError(FetchError):
    """The response is larger than the configured maximum size."""

    def __init__(self, size: int, limit: int, url: Optional[str] = None) -> None:
        super().__init__(f"Response too large ({size} > {limit} bytes)", url)
        self.size = size
        self.limit = limit


class HTTPStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", url: Optional[str] = None) -> None:
        message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        super().__init__(message, url)
        self.status_code = status_code


class NetworkFailureError(FetchError):
    """DNS, connection or TLS level failure."""


class MarkupError(WebcloneError):
    """The fetched markup could not be parsed for sanitizing."""


class NonSerializableContentError(WebcloneError):
    """The payload does not survive a JSON encode/decode round trip."""

    def __init__(self, message: str = "Response data contains non-serializable content") -> None:
        super().__init__(message)


# Substring rules for failures that did not arrive as a typed exception.
_MESSAGE_RULES = (
    (("ENOTFOUND", "ECONNREFUSED", "Name or service not known", "nodename nor servname"),
     "Website not found or unreachable"),
    (("timeout", "timed out"), "Request timed out - website took too long to respond"),
    (("too large",), "Website content is too large to process"),
    (("HTTP 404",), "Website not found (404)"),
    (("HTTP 403",), "Access forbidden (403)"),
    (("HTTP 500",), "Website server error (500)"),
)

_STATUS_MESSAGES = {
    404: "Website not found (404)",
    403: "Access forbidden (403)",
    500: "Website server error (500)",
}


def describe_error(exc: BaseException) -> str:
    """Human-readable message for a failed fetch request."""
    if isinstance(exc, ForbiddenHostError):
        return "Access to internal networks is not allowed"
    if isinstance(exc, InvalidURLError):
        return str(exc) or "Invalid URL format"
    if isinstance(exc, FetchTimeoutError):
        return "Request timed out - website took too long to respond"
    if isinstance(exc, TooLargeError):
        return "Website content is too large to process"
    if isinstance(exc, HTTPStatusError):
        return _STATUS_MESSAGES.get(exc.status_code, f"Website returned HTTP {exc.status_code}")
    if isinstance(exc, NetworkFailureError):
        return "Website not found or unreachable"

    message = str(exc) or "Failed to fetch website"
    lowered = message.lower()
    for needles, friendly in _MESSAGE_RULES:
        if any(needle.lower() in lowered for needle in needles):
            return friendly
    return message


def status_for(exc: BaseException) -> int:
    """HTTP status for ``exc``: 400, 403 or 500."""
    if isinstance(exc, (InvalidURLError, ForbiddenHostError)):
        return exc.http_status
    return 500
