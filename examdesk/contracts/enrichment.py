"""Enrichment contract.

The oracle is asked for `{summary, exam_points[], mcqs?[]}`. This module
holds the JSON Schema and folds a possibly-broken answer into a usable
payload: any field that fails validation falls back to the article's own
title/snippet instead of failing the item.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from jsonschema import Draft202012Validator


ENRICHMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["summary", "exam_points"],
    "properties": {
        "summary": {"type": "string", "minLength": 1},
        "exam_points": {
            "type": "array",
            "minItems": 1,
            "items": {"type": "string", "minLength": 1},
        },
        "mcqs": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["question", "options"],
                "properties": {
                    "question": {"type": "string", "minLength": 1},
                    "options": {"type": "array", "items": {"type": "string"}},
                    "answer": {"type": ["string", "integer"]},
                },
                "additionalProperties": True,
            },
        },
    },
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(ENRICHMENT_SCHEMA)


def validate_enrichment(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: [str(p) for p in x.path]):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def _invalid_fields(payload: Any) -> Set[str]:
    bad: Set[str] = set()
    for e in _VALIDATOR.iter_errors(payload):
        if e.path:
            bad.add(str(e.path[0]))
        elif e.validator == "required":
            # "'summary' is a required property"
            for name in ("summary", "exam_points"):
                if name not in (payload or {}):
                    bad.add(name)
        else:
            bad.update({"summary", "exam_points", "mcqs"})
    return bad


@dataclass(frozen=True)
class EnrichmentPayload:
    summary: str
    exam_points: List[str]
    mcqs: Optional[List[Dict[str, Any]]] = None
    degraded: bool = False


def fallback_enrichment(title: str, snippet: Optional[str]) -> EnrichmentPayload:
    return EnrichmentPayload(summary=(snippet or title), exam_points=[title], mcqs=None, degraded=True)


def coerce_enrichment(payload: Any, *, title: str, snippet: Optional[str]) -> EnrichmentPayload:
    """Validated fields are kept; broken ones are replaced field-by-field."""
    if not isinstance(payload, dict):
        return fallback_enrichment(title, snippet)
    bad = _invalid_fields(payload)

    if "summary" in bad:
        summary = snippet or title
    else:
        summary = payload["summary"].strip() or (snippet or title)

    if "exam_points" in bad:
        points = [title]
    else:
        points = [p.strip() for p in payload["exam_points"] if p.strip()] or [title]

    mcqs = None
    if "mcqs" in payload and "mcqs" not in bad:
        mcqs = [dict(m) for m in payload["mcqs"]]

    return EnrichmentPayload(
        summary=summary,
        exam_points=points,
        mcqs=mcqs,
        degraded=bool(bad & {"summary", "exam_points"}),
    )
