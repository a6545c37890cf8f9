"""URL normalization and private-network blocking."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from .errors import ForbiddenHostError, InvalidURLError

logger = logging.getLogger("webclone")

# Pattern check on the hostname only. Nothing is resolved, so a public name
# that later resolves to a private address is not caught.
BLOCKED_HOST_PATTERNS = [
    re.compile(r"^localhost$"),
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[01])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^::1$"),
    re.compile(r"^fc00:"),
    re.compile(r"^fe80:"),
]

_WHITESPACE = re.compile(r"\s")


def normalize_url(raw: str) -> str:
    """Prefix ``https://`` when no scheme is given and check the result parses."""
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURLError("URL is required")
    url = raw.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    try:
        parsed = urlparse(url)
        # Accessing .port validates the port component.
        parsed.port
    except ValueError as exc:
        raise InvalidURLError() from exc
    if not parsed.hostname or _WHITESPACE.search(parsed.netloc):
        raise InvalidURLError()
    return parsed.geturl()


def is_blocked_host(hostname: str) -> bool:
    """Return True for loopback, RFC 1918 and link-local style hostnames."""
    host = hostname.strip().lower().strip("[]")
    return any(pattern.search(host) for pattern in BLOCKED_HOST_PATTERNS)


def validate_url(raw: str) -> str:
    """Normalize ``raw`` and refuse internal hosts before any request is made."""
    url = normalize_url(raw)
    hostname = urlparse(url).hostname or ""
    if is_blocked_host(hostname):
        logger.warning("Refusing to fetch internal host %s", hostname)
        raise ForbiddenHostError(hostname)
    return url
