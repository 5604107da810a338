"""URL canonicalization and content-addressed ids for ingestion/dedup."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Iterable, Optional, Sequence, Union
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from examdesk.ingestion.dates import iso_z


DEFAULT_STRIP_QUERY_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "source",
}


def canonicalize_url(url: Optional[str], *, strip_params: Optional[Iterable[str]] = None) -> str:
    """Canonicalize a URL for dedup.

    - Lowercase the whole URL
    - Remove fragments
    - Strip tracking query parameters
    - Keep the order of the remaining query params

    Returns "" for empty or malformed input (no scheme or host).
    """
    if not url or not str(url).strip():
        return ""
    strip = set(strip_params) if strip_params is not None else set(DEFAULT_STRIP_QUERY_PARAMS)
    try:
        p = urlparse(str(url).strip())
        # .port raises ValueError on garbage like "http://host:abc/"
        p.port
    except ValueError:
        return ""
    if not p.scheme or not p.netloc:
        return ""
    path = p.path or "/"

    kept = [(k, v) for k, v in parse_qsl(p.query, keep_blank_values=True) if k.lower() not in strip]
    query = urlencode(kept, doseq=True)

    return urlunparse((p.scheme, p.netloc, path, p.params, query, "")).lower()


def url_hash(url: str) -> str:
    """Stable hash for a canonicalized URL."""
    canon = canonicalize_url(url)
    return hashlib.sha256(canon.encode("utf-8")).hexdigest()


def date_key(value: Union[datetime, str, None]) -> str:
    """Render a publication date the way it is fed into candidate ids.

    Datetimes become `YYYY-MM-DDTHH:MM:SS.000Z` (UTC); strings pass through.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return iso_z(value)
    return str(value).strip()


def candidate_id(
    url: Optional[str],
    title: str,
    source: str,
    published: Union[datetime, str, None] = None,
) -> str:
    """Content-addressed candidate id.

    A canonical URL identifies the article on its own; without one the id
    falls back to title + source + date.
    """
    canon = canonicalize_url(url)
    if canon:
        payload = canon
    else:
        payload = f"{title or ''}|{source or ''}|{date_key(published)}"
    return hashlib.sha256(payload.lower().encode("utf-8")).hexdigest()


def candidate_set_hash(candidate_ids: Sequence[str]) -> str:
    """Order-independent hash of a candidate id set (32 hex chars)."""
    joined = "|".join(sorted(candidate_ids))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:32]


def extract_domain(url: Optional[str]) -> Optional[str]:
    try:
        host = (urlparse(url or "").hostname or "").lower().strip()
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None
