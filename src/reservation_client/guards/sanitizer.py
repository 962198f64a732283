from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Tuple

from reservation_client.core.models import SubmissionRecord


MAX_TEXT_CHARS = 500
MAX_DISPLAY_CHARS = 200

_REMOVALS: Tuple[re.Pattern, ...] = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.I),
    re.compile(r"[<>]"),
    re.compile(r"javascript:", re.I),
    re.compile(r"vbscript:", re.I),
    re.compile(r"on\w+\s*=", re.I),
)


def _clean_once(value: str, max_len: int) -> str:
    value = value.strip()
    for rx in _REMOVALS:
        value = rx.sub("", value)
    return value[:max_len]


def sanitize_text(value: str, max_len: int = MAX_TEXT_CHARS) -> str:
    """
    Description: Strip markup and script vectors from one string.
    Layer: L0
    Input: raw text + length cap
    Output: cleaned text

    Every step only deletes characters, so passes are repeated until nothing
    changes; the result is a fixed point and sanitizing it again is a no-op.
    """
    current = _clean_once(value, max_len)
    while True:
        cleaned = _clean_once(current, max_len)
        if cleaned == current:
            return current
        current = cleaned


def sanitize_display_text(value: Any) -> str:
    """Clean text that will be shown on screen (tighter length cap)."""
    return sanitize_text(str(value), MAX_DISPLAY_CHARS)


def sanitize_fields(data: Mapping[str, Any], max_len: int = MAX_TEXT_CHARS) -> Dict[str, Any]:
    """Return a sanitized shallow copy; non-string values pass through untouched."""
    return {key: sanitize_text(value, max_len) if isinstance(value, str) else value for key, value in data.items()}


def sanitize(record: SubmissionRecord) -> SubmissionRecord:
    """
    Description: Sanitize every string attribute of a submission record.
    Layer: L0
    Input: SubmissionRecord
    Output: new immutable SubmissionRecord
    """
    current = record.model_dump()
    return record.model_copy(update=sanitize_fields(current))
