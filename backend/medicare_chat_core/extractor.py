from __future__ import annotations

import json
import logging
from typing import Any

from .models import Delta, EndOfStream, TextDelta, UnparseableDelta


logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def _delta_content(parsed: Any) -> str | None:
    """Return choices[0].delta.content, "" for a no-op chunk, None for a bad shape."""
    if not isinstance(parsed, dict):
        return None
    choices = parsed.get("choices")
    if not isinstance(choices, list):
        return None
    if not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if delta is None:
        return ""
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        return None
    return content


def extract(payload: str) -> Delta:
    if payload == DONE_SENTINEL:
        return EndOfStream()
    try:
        parsed = json.loads(payload)
    except (ValueError, RecursionError):
        logger.warning("malformed stream frame (invalid JSON): %.200s", payload)
        return UnparseableDelta(raw_payload=payload)
    content = _delta_content(parsed)
    if content is None:
        logger.warning("malformed stream frame (unexpected shape): %.200s", payload)
        return UnparseableDelta(raw_payload=payload)
    return TextDelta(content=content)
