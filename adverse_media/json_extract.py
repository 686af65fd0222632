"""Extract a JSON object from free-form LLM output."""

import json
import re
from typing import Any

from adverse_media.logging import get_logger

log = get_logger("adverse_media.json_extract")

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_BRACED_OBJECT = re.compile(r"(\{[\s\S]*\})")


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def extract_json_from_text(text: str | None) -> dict[str, Any] | None:
    """Return the first JSON object found in ``text``, or None.

    Tries, in order: the whole text, the first fenced ```json block, the
    outermost brace-delimited substring. Never raises.
    """
    if not text:
        return None

    parsed = _loads_object(text.strip())
    if parsed is not None:
        return parsed

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        parsed = _loads_object(fenced.group(1))
        if parsed is not None:
            return parsed

    braced = _BRACED_OBJECT.search(text)
    if braced:
        parsed = _loads_object(braced.group(1))
        if parsed is not None:
            return parsed

    log.debug("json_extract.no_object_found", text_length=len(text))
    return None
