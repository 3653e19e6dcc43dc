"""Lenient JSON parsing for oracle responses.

Long transcriptions and cluster lists are often cut off mid-document when
the model hits its output limit. The helpers here repair truncated JSON
(close open strings and brackets), and when that still fails, salvage
what can be recovered:

  Phase 1: strip Markdown code fences, repair, ``json.loads``
  Phase 2 (lists): collect every complete top-level ``{...}`` object
  Phase 2 (transcriptions): regex out transcription/translation/score
  Phase 3: raise ``OracleResponseError``
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from archlens.errors import OracleResponseError

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",\s*$")

_TRANSCRIPTION_RE = re.compile(r'"transcription"\s*:\s*"((?:[^"\\]|\\.)*)', re.DOTALL)
_TRANSLATION_RE = re.compile(r'"translation"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_CONFIDENCE_RE = re.compile(r'"confidenceScore"\s*:\s*(\d+)')


def strip_fences(text: str) -> str:
    cleaned = _FENCE_START.sub("", text.strip())
    return _FENCE_END.sub("", cleaned)


def repair_truncated_json(text: str) -> str:
    """Close any string, object or array left open by truncation."""
    cleaned = strip_fences(text)
    in_string = False
    escaped = False
    stack: list[str] = []

    for ch in cleaned:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            stack.append("}")
        elif ch == "[":
            stack.append("]")
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()

    if in_string:
        if escaped:
            cleaned = cleaned[:-1]
        cleaned += '"'
    else:
        cleaned = _TRAILING_COMMA.sub("", cleaned)
    return cleaned + "".join(reversed(stack))


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a (possibly truncated) JSON object.

    Raises:
        OracleResponseError: If no object can be recovered.
    """
    try:
        parsed = json.loads(repair_truncated_json(text or "{}"))
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Unparseable JSON object: {e}") from e

    if isinstance(parsed, list) and len(parsed) == 1 and isinstance(parsed[0], dict):
        logger.info("Extracting single dict from array")
        return parsed[0]
    if not isinstance(parsed, dict):
        raise OracleResponseError(f"Expected JSON object, got {type(parsed).__name__}")
    return parsed


def _scan_objects(text: str) -> list[dict[str, Any]]:
    """Collect every complete top-level JSON object in *text*."""
    objects: list[dict[str, Any]] = []
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
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
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                try:
                    obj = json.loads(text[start:i + 1])
                except json.JSONDecodeError:
                    obj = None
                if isinstance(obj, dict):
                    objects.append(obj)
                start = -1
    return objects


def salvage_json_list(text: str) -> list[Any]:
    """Parse a JSON array, recovering complete objects from a broken one."""
    try:
        parsed = json.loads(repair_truncated_json(text or "[]"))
        return parsed if isinstance(parsed, list) else [parsed]
    except json.JSONDecodeError:
        objects = _scan_objects(strip_fences(text))
        logger.warning("Salvaged %d object(s) from malformed JSON list", len(objects))
        return objects


def _unescape(value: str) -> str:
    return value.replace("\\n", "\n").replace('\\"', '"')


def salvage_transcription(text: str) -> dict[str, Any]:
    """Parse a transcription response, falling back to regex extraction.

    Raises:
        OracleResponseError: If not even the transcription text is recoverable.
    """
    try:
        return parse_json_object(text)
    except OracleResponseError:
        logger.warning("Standard JSON parse failed, attempting regex salvage")

    transcription = _TRANSCRIPTION_RE.search(text)
    if transcription is None:
        raise OracleResponseError("No transcription found in response")
    translation = _TRANSLATION_RE.search(text)
    confidence = _CONFIDENCE_RE.search(text)
    return {
        "transcription": _unescape(transcription.group(1)),
        "translation": _unescape(translation.group(1)) if translation else "",
        "confidenceScore": int(confidence.group(1)) if confidence else 3,
    }
