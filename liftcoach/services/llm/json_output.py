"""Defensive JSON extraction from free-form model output."""

import json
from typing import Any


def find_json_object_span(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals are ignored, so prose before or
    after the object (and code fences) is tolerated.

    Args:
        text: Raw model output

    Returns:
        The span including both braces, or None if no balanced object exists
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the first balanced JSON object embedded in ``text``.

    Args:
        text: Raw model output

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no balanced span exists or the span is not a JSON object
    """
    span = find_json_object_span(text)
    if span is None:
        raise ValueError("No JSON object found in response")
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON object in response: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Response JSON is not an object")
    return parsed
