"""Configuration objects and constants for website ingestion."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger("webclone")

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_SIZE = 50 * 1024 * 1024
HTML_CHAR_LIMIT = 2_000_000
FILE_CHAR_LIMIT = 500_000
ASSET_LIMIT = 100
TRUNCATION_MARKER = "... [TRUNCATED]"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("%s=%r is not a valid number; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive; using %s", name, default)
        return default
    return value


@dataclass
class CrawlConfig:
    """Limits that bound a single ingestion run."""

    timeout: float = DEFAULT_TIMEOUT
    max_size: int = DEFAULT_MAX_SIZE
    html_char_limit: int = HTML_CHAR_LIMIT
    file_char_limit: int = FILE_CHAR_LIMIT
    asset_limit: int = ASSET_LIMIT
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        # Truncated fields must still have room for the marker.
        for name in ("html_char_limit", "file_char_limit"):
            if getattr(self, name) <= len(TRUNCATION_MARKER):
                raise ValueError(
                    f"{name} must exceed {len(TRUNCATION_MARKER)} characters, got {getattr(self, name)}"
                )

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """Build a config, honouring WEBCLONE_TIMEOUT and WEBCLONE_MAX_SIZE."""
        return cls(
            timeout=_env_number("WEBCLONE_TIMEOUT", DEFAULT_TIMEOUT, float),
            max_size=_env_number("WEBCLONE_MAX_SIZE", DEFAULT_MAX_SIZE, int),
        )

    def request_headers(self) -> dict:
        headers = {"User-Agent": self.user_agent}
        headers.update(BROWSER_HEADERS)
        return headers
