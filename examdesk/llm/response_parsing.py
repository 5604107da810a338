"""Defensive parsing of free-text oracle answers.

Nothing here raises on bad input: callers get a tagged result (or None)
and decide what a malformed answer means for them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class SelectionOk:
    indices: List[int]


@dataclass(frozen=True)
class SelectionMalformed:
    raw: str


SelectionResult = Union[SelectionOk, SelectionMalformed]


def strip_code_fences(text: str) -> str:
    s = (text or "").strip()
    if s.startswith("```json"):
        s = s[7:]
    elif s.startswith("```"):
        s = s[3:]
    if s.endswith("```"):
        s = s[:-3]
    return s.strip()


def _balanced_spans(text: str, open_ch: str, close_ch: str) -> List[str]:
    """Top-level balanced [...] or {...} spans, ignoring brackets inside strings."""
    spans: List[str] = []
    depth = 0
    start = -1
    in_str = False
    escape = False
    for i, ch in enumerate(text):
        if in_str:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"' and depth > 0:
            in_str = True
        elif ch == open_ch:
            if depth == 0:
                start = i
            depth += 1
        elif ch == close_ch and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append(text[start : i + 1])
    return spans


def extract_json_array(text: str) -> Optional[List[Any]]:
    """First span of the text that parses as a JSON array."""
    cleaned = strip_code_fences(text)
    for span in _balanced_spans(cleaned, "[", "]"):
        try:
            value = json.loads(span)
        except json.JSONDecodeError:
            continue
        if isinstance(value, list):
            return value
    return None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    cleaned = strip_code_fences(text)
    try:
        value = json.loads(cleaned)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        pass
    for span in _balanced_spans(cleaned, "{", "}"):
        try:
            value = json.loads(span)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


def parse_selection(text: str, *, candidate_count: int, limit: Optional[int] = None) -> SelectionResult:
    """Pull zero-based indices out of an oracle answer.

    Out-of-range, duplicate and non-integer entries are dropped. Returns
    SelectionMalformed when no array can be found at all; an array with no
    usable entries is SelectionOk([]).
    """
    arr = extract_json_array(text)
    if arr is None:
        return SelectionMalformed(raw=text or "")
    seen = set()
    out: List[int] = []
    for v in arr:
        if isinstance(v, bool):
            continue
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        if not isinstance(v, int):
            continue
        if v < 0 or v >= candidate_count or v in seen:
            continue
        seen.add(v)
        out.append(v)
        if limit is not None and len(out) >= limit:
            break
    return SelectionOk(indices=out)
