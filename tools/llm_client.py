"""LLM response parsing utilities.

Script responses are expected to be a bare JSON array of panels, but models
regularly wrap it in code fences or prose; these helpers dig it out.
"""

import json
import re
from typing import Any

# Precompiled regex for JSON extraction
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

# Allows raw control characters (newlines, tabs) inside JSON strings
_LENIENT_DECODER = json.JSONDecoder(strict=False)


def _try_loads(text: str) -> Any:
    """Try parsing JSON, first strictly then leniently."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return _LENIENT_DECODER.decode(text)
    except json.JSONDecodeError:
        pass
    raise json.JSONDecodeError("", text, 0)


def parse_json_response(text: str) -> Any:
    """Extract and parse JSON (object or array) from LLM response text.

    Handles JSON wrapped in markdown code fences or surrounded by prose,
    and tolerates unescaped newlines inside string values.
    """
    text = text.strip()

    try:
        return _try_loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_FENCE_RE.search(text)
    if match:
        try:
            return _try_loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    # Try finding JSON array or object boundaries
    for start_char, end_char in [("[", "]"), ("{", "}")]:
        start = text.find(start_char)
        end = text.rfind(end_char)
        if start != -1 and end != -1 and end > start:
            try:
                return _try_loads(text[start:end + 1])
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Failed to parse JSON from LLM response: {text[:200]}...")


def parse_json_array(text: str) -> list:
    """Parse a JSON array from LLM text; any other top-level shape is rejected."""
    result = parse_json_response(text)
    if isinstance(result, list):
        return result
    raise ValueError(f"Expected a JSON array, got {type(result).__name__}")
