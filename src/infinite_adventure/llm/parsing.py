"""Recovery of structured JSON from free-form model output.

Models wrap JSON in markdown fences, surround it with prose, and get cut off
mid-object when they hit a token limit. Before decoding, a brace, bracket
and string aware scan checks that the object actually closes, so truncated
output becomes an IncompleteOutputError instead of a half-built object.

Example:
    >>> parse_location_json('Sure!\\n```json\\n{"name": "Cave"}\\n```').name
    'Cave'
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from infinite_adventure.core.exceptions import IncompleteOutputError, MalformedOutputError
from infinite_adventure.core.logging import get_logger
from infinite_adventure.models.world import Location


logger = get_logger(__name__)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\s*(.*?)\s*```", re.DOTALL)
_OPENING_FENCE = re.compile(r"```[a-zA-Z]*\s*")
_CLOSERS = {"{": "}", "[": "]"}


def strip_markdown_fences(text: str) -> str:
    """Return the contents of the first fenced block, or the text unchanged.

    An opening fence with no closing fence (truncated output) is dropped so
    the payload behind it can still be scanned.
    """
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1)
    if "```" in text:
        return _OPENING_FENCE.sub("", text, count=1).replace("```", "")
    return text


def _find_closing_index(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at ``start``; None if it never closes.

    Raises:
        MalformedOutputError: On a closing bracket that does not match.
    """
    stack: list[str] = []
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
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                raise MalformedOutputError(
                    f"Unbalanced {char!r} in structured output",
                    details={"position": index},
                )
            if not stack:
                return index
    return None


def is_complete_json(text: str) -> bool:
    """Check whether ``text`` is a single, fully closed JSON object or array."""
    stripped = text.strip()
    if not stripped or stripped[0] not in _CLOSERS:
        return False
    try:
        end = _find_closing_index(stripped, 0)
    except MalformedOutputError:
        return False
    return end == len(stripped) - 1


def extract_json_object(text: str) -> str:
    """Locate the first JSON object in ``text`` and return it verbatim.

    Raises:
        MalformedOutputError: If there is no object or its brackets do not match.
        IncompleteOutputError: If the object is cut off before it closes.
    """
    start = text.find("{")
    if start == -1:
        raise MalformedOutputError("No JSON object found in model output")

    end = _find_closing_index(text, start)
    if end is None:
        raise IncompleteOutputError(
            "Structured output is incomplete (truncated before the object closed)",
            details={"length": len(text) - start},
        )
    return text[start : end + 1]


def parse_json_object(text: str) -> dict[str, Any]:
    """Strip fences and prose, check completeness, and decode one JSON object.

    Text that is already a single closed object is decoded as is; anything
    else goes through ``extract_json_object``.
    """
    cleaned = strip_markdown_fences(text).strip()
    if cleaned.startswith("{") and is_complete_json(cleaned):
        payload = cleaned
    else:
        payload = extract_json_object(cleaned)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedOutputError(
            f"Structured output is not valid JSON: {exc.msg}",
            details={"position": exc.pos},
        ) from exc
    if not isinstance(data, dict):
        raise MalformedOutputError("Structured output is not a JSON object")
    return data


def parse_location_json(text: str) -> Location:
    """Decode a generated Location.

    Extra fields are ignored, missing fields take Location defaults, and any
    exits the model supplied are discarded.

    Raises:
        IncompleteOutputError: If the output was truncated.
        MalformedOutputError: If the output cannot be decoded into a Location.
    """
    data = parse_json_object(text)
    data.pop("exits", None)
    try:
        location = Location.model_validate(data)
    except PydanticValidationError as exc:
        raise MalformedOutputError(
            f"Structured output does not describe a location: {exc.errors()[0]['msg']}",
            details={"error_count": exc.error_count()},
        ) from exc
    logger.debug("Parsed generated location", name=location.name)
    return location


__all__ = [
    "extract_json_object",
    "is_complete_json",
    "parse_json_object",
    "parse_location_json",
    "strip_markdown_fences",
]
