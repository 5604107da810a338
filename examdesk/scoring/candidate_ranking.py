"""Candidate dedup + ordering.

Deterministic, no I/O:
- source trust weights (government/regulators highest)
- first-occurrence dedup across tiers (feed > archive > search)
- recency -> trust comparator, plus a display variant that also looks at
  keyword matches and snippet length
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from examdesk.ingestion.article_types import Candidate
from examdesk.ingestion.url_utils import extract_domain


# -----------------------------
# Source trust weights (1-10)
# -----------------------------
DEFAULT_SOURCE_WEIGHT = 3

SOURCE_WEIGHTS: Dict[str, int] = {
    "pib.gov.in": 10,
    "rbi.org.in": 10,
    "sebi.gov.in": 10,
    "prsindia.org": 9,
    "thehindu.com": 8,
    "indianexpress.com": 8,
    "livemint.com": 7,
    "business-standard.com": 7,
    "economictimes.com": 7,
    "hindustantimes.com": 6,
    "ndtv.com": 6,
    "news18.com": 5,
}


def source_weight(
    url: Optional[str],
    source: Optional[str] = None,
    *,
    weights: Optional[Mapping[str, int]] = None,
    default: int = DEFAULT_SOURCE_WEIGHT,
) -> int:
    table = SOURCE_WEIGHTS if weights is None else weights
    domain = extract_domain(url) if url else None
    if not domain:
        domain = (source or "").lower().strip()
        if domain.startswith("www."):
            domain = domain[4:]
    if not domain:
        return default
    if domain in table:
        return table[domain]
    # subdomains inherit their parent's weight (m.thehindu.com)
    for known, w in table.items():
        if domain.endswith("." + known):
            return w
    return default


def dedupe_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """First occurrence of each id wins; input order is preserved."""
    seen = set()
    out: List[Candidate] = []
    for c in candidates:
        if c.id in seen:
            continue
        seen.add(c.id)
        out.append(c)
    return out


def _cmp(a: int, b: int) -> int:
    return (a > b) - (a < b)


def _compare_recency_then_trust(a: Candidate, b: Candidate, weights: Optional[Mapping[str, int]]) -> int:
    # Undated candidates skip the recency rule instead of sinking to the bottom
    if a.published_at is not None and b.published_at is not None:
        if a.published_at != b.published_at:
            return -1 if a.published_at > b.published_at else 1
    wa = source_weight(a.url, a.source, weights=weights)
    wb = source_weight(b.url, b.source, weights=weights)
    return _cmp(wb, wa)


def sort_candidates(
    candidates: Sequence[Candidate],
    *,
    weights: Optional[Mapping[str, int]] = None,
) -> List[Candidate]:
    """Stable sort: newer first (when both dated), then higher trust weight."""
    key = cmp_to_key(lambda a, b: _compare_recency_then_trust(a, b, weights))
    return sorted(candidates, key=key)


def merge_candidates(
    *tiers: Sequence[Candidate],
    weights: Optional[Mapping[str, int]] = None,
) -> List[Candidate]:
    """Concatenate tiers in precedence order, dedupe, then sort.

    Nothing is dropped except duplicates.
    """
    combined: List[Candidate] = []
    for tier in tiers:
        combined.extend(tier)
    return sort_candidates(dedupe_candidates(combined), weights=weights)


def keyword_matches(candidate: Candidate, keywords: Sequence[str]) -> int:
    text = f"{candidate.title} {candidate.snippet or ''}".lower()
    return sum(1 for k in keywords if k and k.lower() in text)


def rank_for_display(
    candidates: Sequence[Candidate],
    keywords: Sequence[str] = (),
    *,
    weights: Optional[Mapping[str, int]] = None,
) -> List[Candidate]:
    """Recency, trust, then category-keyword hits and snippet length (both desc)."""

    def compare(a: Candidate, b: Candidate) -> int:
        r = _compare_recency_then_trust(a, b, weights)
        if r:
            return r
        r = _cmp(keyword_matches(b, keywords), keyword_matches(a, keywords))
        if r:
            return r
        return _cmp(len(b.snippet or ""), len(a.snippet or ""))

    return sorted(dedupe_candidates(candidates), key=cmp_to_key(compare))
