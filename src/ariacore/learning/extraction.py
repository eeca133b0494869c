# src/ariacore/learning/extraction.py
"""
Locate structured output in free-text model responses.

Models are asked to answer with JSON only, but routinely wrap it in
prose or code fences.  :func:`find_json_object` returns the first
balanced ``{...}`` substring; each learning component decodes it into
its own shape and supplies its own fallback when nothing usable is
found.
"""

import json
from typing import Any, Dict, Optional


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored.  Returns None when no
    opening brace exists or the first object is never closed.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def load_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Decode the first JSON object in ``text``; None if absent or malformed."""
    candidate = find_json_object(text)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def clamp_unit(value: Any, default: float) -> float:
    """Clamp a numeric value to [0, 1]; non-numbers yield ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(0.0, min(1.0, float(value)))


def string_list(value: Any) -> list[str]:
    """Coerce a decoded JSON value to a list of strings."""
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]
