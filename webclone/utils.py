"""Utility helpers for archive file naming."""

from __future__ import annotations

import re

UNSAFE_FILENAME_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_filename(name: str, fallback: str) -> str:
    """Make ``name`` usable as a single archive path component."""
    cleaned = UNSAFE_FILENAME_PATTERN.sub("_", name or "").strip(" .")
    return cleaned or fallback
