"""Extraction and validation of classifier replies.

Model output is untrusted free text: it may be wrapped in markdown fences,
surrounded by chatter, or contain labels outside the taxonomy. This module
recovers the JSON payload and filters it down to known values. Unknown
values are dropped or defaulted rather than rejected.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from config.category_taxonomy import AFFILIATION_TAXONOMY, NO_AFFILIATION
from tupconnect.config import OutputShape

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"^```[\w-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_FENCE_MARKER = re.compile(r"```[\w-]*")

_OPENERS = "[{"


class ParseError(Exception):
    """Raised when a classifier reply cannot be turned into a MatchResult."""
    pass


@dataclass(frozen=True)
class MatchResult:
    """Validated classification for one student interest."""
    matched_categories: tuple[str, ...] = ()
    user_affiliation: str = NO_AFFILIATION
    specific_keywords: tuple[str, ...] = ()
    negative_keywords: tuple[str, ...] = ()

    def to_payload(self, shape: OutputShape, include_negative_keywords: bool = True) -> dict[str, Any]:
        """Serialize the fields that belong to the configured output shape."""
        payload: dict[str, Any] = {"matched_categories": list(self.matched_categories)}
        if shape == OutputShape.OBJECT:
            payload["user_affiliation"] = self.user_affiliation
            payload["specific_keywords"] = list(self.specific_keywords)
            if include_negative_keywords:
                payload["negative_keywords"] = list(self.negative_keywords)
        return payload


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` fence (tagged or not) and any stray fence markers."""
    text = text.strip()
    match = _FENCED_BLOCK.match(text)
    if match:
        return match.group(1).strip()
    return _FENCE_MARKER.sub("", text).strip()


def find_json_fragment(text: str) -> str | None:
    """Return the first top-level bracket-balanced array or object.

    The scan starts at whichever of `[` or `{` appears first, so a value nested
    inside another is never returned on its own. Brackets inside JSON strings
    are ignored. Returns None when there is no opener or it is never closed.
    """
    starts = [i for i in (text.find(o) for o in _OPENERS) if i != -1]
    if not starts:
        return None
    start = min(starts)

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
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def filter_categories(values: Iterable[Any], categories: Sequence[str]) -> tuple[str, ...]:
    """Keep only values that are taxonomy labels, preserving order."""
    allowed = set(categories)
    return tuple(v for v in values if isinstance(v, str) and v in allowed)


def normalize_affiliation(value: Any) -> str:
    """Return the affiliation code, or NONE when it is not a known code."""
    if isinstance(value, str):
        code = value.strip().upper()
        if code in AFFILIATION_TAXONOMY:
            return code
    return NO_AFFILIATION


def _keywords(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v.strip() for v in value if isinstance(v, str) and v.strip())


def parse_match_response(
    raw: str,
    *,
    shape: OutputShape,
    categories: Sequence[str],
    include_negative_keywords: bool = True,
) -> MatchResult:
    """Turn raw model text into a MatchResult.

    Args:
        raw: Reply text from generateContent
        shape: Whether a JSON array or object is expected
        categories: Allowed category labels
        include_negative_keywords: Read negative_keywords (object shape only)

    Returns:
        MatchResult with every value filtered against its taxonomy

    Raises:
        ParseError: If no JSON fragment of the expected shape can be parsed
    """
    text = strip_code_fences(raw)
    opener = "[" if shape == OutputShape.ARRAY else "{"
    kind = "array" if shape == OutputShape.ARRAY else "object"

    fragment = find_json_fragment(text)
    if fragment is None:
        raise ParseError(f"AI response does not contain a JSON {kind}")
    if fragment[0] != opener:
        raise ParseError(f"AI response is not a JSON {kind}")

    try:
        parsed = json.loads(fragment)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse AI response as JSON: {e}") from e

    if shape == OutputShape.ARRAY:
        if not isinstance(parsed, list):
            raise ParseError("AI response is not an array")
        result = MatchResult(matched_categories=filter_categories(parsed, categories))
    else:
        if not isinstance(parsed, dict):
            raise ParseError("AI response is not an object")
        raw_categories = parsed.get("matched_categories", [])
        result = MatchResult(
            matched_categories=filter_categories(
                raw_categories if isinstance(raw_categories, list) else [], categories
            ),
            user_affiliation=normalize_affiliation(parsed.get("user_affiliation", NO_AFFILIATION)),
            specific_keywords=_keywords(parsed.get("specific_keywords", [])),
            negative_keywords=(
                _keywords(parsed.get("negative_keywords", [])) if include_negative_keywords else ()
            ),
        )

    logger.debug(f"Parsed classifier reply into {len(result.matched_categories)} categories")
    return result
