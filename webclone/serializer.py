"""Truncation and JSON-safety checks applied before content leaves the process."""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Set

from .config import TRUNCATION_MARKER, CrawlConfig
from .errors import NonSerializableContentError
from .models import WebsiteContent

logger = logging.getLogger("webclone")

CIRCULAR_MARKER = "[Circular Reference]"
FAILURE_MESSAGE = "Content contains invalid characters"

# C0/C1 controls except tab, LF and CR; BOM and noncharacters; lone surrogates.
UNSAFE_CHARACTERS = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\ufffe\uffff\ud800-\udfff]"
)


def truncate_content(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, ending in the marker.

    Idempotent: an already truncated value is returned as is. Limits that
    leave no room for the marker raise ValueError.
    """
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_MARKER):
        raise ValueError(f"limit must exceed {len(TRUNCATION_MARKER)} characters, got {limit}")
    return text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def clean_string(text: str) -> str:
    return UNSAFE_CHARACTERS.sub("", text)


def make_json_safe(value: Any, _ancestors: Optional[Set[int]] = None) -> Any:
    """Return a copy of ``value`` built only from JSON types.

    A container that refers back to one of its ancestors is replaced by
    CIRCULAR_MARKER. Datetimes become ISO-8601 strings.
    """
    if _ancestors is None:
        _ancestors = set()

    if value is None or isinstance(value, bool) or isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        return clean_string(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return clean_string(value.decode("utf-8", errors="replace"))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        to_dict = getattr(value, "to_dict", None)
        value = to_dict() if callable(to_dict) else dataclasses.asdict(value)

    if isinstance(value, (dict, list, tuple, set, frozenset)):
        marker = id(value)
        if marker in _ancestors:
            return CIRCULAR_MARKER
        _ancestors.add(marker)
        try:
            if isinstance(value, dict):
                return {
                    clean_string(str(key)): make_json_safe(item, _ancestors)
                    for key, item in value.items()
                }
            return [make_json_safe(item, _ancestors) for item in value]
        finally:
            _ancestors.discard(marker)

    return clean_string(str(value))


def check_round_trip(payload: Any) -> None:
    """Raise NonSerializableContentError unless encode/decode is lossless."""
    try:
        encoded = json.dumps(payload, ensure_ascii=False, allow_nan=False)
        encoded.encode("utf-8")
        decoded = json.loads(encoded)
    except (TypeError, ValueError, RecursionError) as exc:
        raise NonSerializableContentError(f"JSON round trip failed: {exc}") from exc
    if decoded != payload:
        raise NonSerializableContentError("JSON round trip changed the payload")


def serialize_content(content: WebsiteContent, config: Optional[CrawlConfig] = None) -> Dict[str, Any]:
    """Apply size caps to ``content`` and return a JSON-safe dict."""
    config = config or CrawlConfig()
    data = content.to_dict()
    data["html"] = truncate_content(data["html"], config.html_char_limit)
    for entry in data["css"] + data["js"]:
        entry["content"] = truncate_content(entry["content"], config.file_char_limit)
    if len(data["assets"]) > config.asset_limit:
        logger.info(
            "Dropping %d assets beyond the limit of %d",
            len(data["assets"]) - config.asset_limit,
            config.asset_limit,
        )
        data["assets"] = data["assets"][: config.asset_limit]

    try:
        safe = make_json_safe(data)
    except RecursionError as exc:
        raise NonSerializableContentError() from exc
    check_round_trip(safe)
    return safe


def failure_payload(message: str = FAILURE_MESSAGE) -> Dict[str, Any]:
    """Minimal body sent when a payload cannot be made JSON-safe."""
    return {
        "success": False,
        "error": message,
        "timestamp": make_json_safe(datetime.now(timezone.utc)),
    }


def safe_response(payload: Any) -> Any:
    """JSON-safe copy of ``payload``, or the minimal failure payload."""
    try:
        safe = make_json_safe(payload)
        check_round_trip(safe)
    except (NonSerializableContentError, RecursionError) as exc:
        logger.error("Failed to create safe response: %s", exc)
        return failure_payload()
    return safe
