"""RSS/Atom fetch + parse (tier 1).

Fetch failures never raise: a dead or slow feed just contributes nothing.
"""

from __future__ import annotations

import html
import io
import logging
import re
import time
from calendar import timegm
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

import feedparser
import requests

from examdesk.ingestion.article_types import PROVIDER_FEED, RawItem
from examdesk.ingestion.feed_sources import FeedSource

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml, application/xml, text/xml, */*",
    "Accept-Language": "en-US,en;q=0.9",
}

SNIPPET_MAX_CHARS = 500

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def clean_text(value: Any) -> str:
    """Strip tags and HTML entities, collapse whitespace."""
    if not value:
        return ""
    s = _TAG_RE.sub(" ", str(value))
    s = html.unescape(s)
    # entity-encoded markup ("&lt;p&gt;") only becomes a tag after unescaping
    s = _TAG_RE.sub(" ", s)
    return _WS_RE.sub(" ", s).strip()


def _entry_date(entry: Any) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        st = entry.get(key)
        if not st:
            continue
        try:
            return datetime.fromtimestamp(timegm(st), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            continue
    return None


def _entry_link(entry: Any) -> Optional[str]:
    link = entry.get("link")
    if not link:
        # Atom feeds sometimes only carry rel="alternate" links
        for l in entry.get("links") or []:
            href = l.get("href") if hasattr(l, "get") else None
            if href and l.get("rel", "alternate") == "alternate":
                link = href
                break
    if not link:
        guid = entry.get("id") or ""
        if str(guid).startswith("http"):
            link = guid
    return str(link).strip() if link else None


def parse_feed(content: bytes, source_name: str) -> List[RawItem]:
    """Parse an RSS 2.0 or Atom document into raw items.

    Entries without a title are dropped; unparseable dates become None.
    """
    parsed = feedparser.parse(io.BytesIO(content))
    if parsed.get("bozo") and not parsed.entries:
        logger.warning(f"Unparseable feed from {source_name}: {parsed.get('bozo_exception')}")
        return []

    out: List[RawItem] = []
    for entry in parsed.entries or []:
        title = clean_text(entry.get("title"))
        if not title:
            continue
        summary = entry.get("summary") or entry.get("description") or ""
        if not summary and entry.get("content"):
            summary = entry["content"][0].get("value", "")
        snippet = clean_text(summary)[:SNIPPET_MAX_CHARS] or None
        out.append(
            RawItem(
                title=title,
                url=_entry_link(entry),
                source=source_name,
                published_at=_entry_date(entry),
                snippet=snippet,
                provider=PROVIDER_FEED,
            )
        )
    return out


def fetch_feed(
    feed: FeedSource,
    *,
    timeout: float = 15,
    session: Optional[requests.Session] = None,
    raise_errors: bool = False,
) -> List[RawItem]:
    """Fetch and parse one feed.

    By default every failure is logged and yields []; raise_errors=True lets
    bulk jobs count failed feeds.
    """
    http = session or requests
    try:
        resp = http.get(feed.url, headers=BROWSER_HEADERS, timeout=timeout)
        if not (200 <= resp.status_code < 300):
            raise requests.HTTPError(f"HTTP {resp.status_code}", response=resp)
    except requests.RequestException as e:
        if raise_errors:
            raise
        logger.warning(f"Feed fetch failed for {feed.name} ({feed.url}): {e}")
        return []
    try:
        return parse_feed(resp.content, feed.name)
    except Exception as e:
        if raise_errors:
            raise
        logger.warning(f"Feed parse failed for {feed.name}: {e}")
        return []


def fetch_feeds(
    feeds: Sequence[FeedSource],
    *,
    concurrency: int = 4,
    batch_delay: float = 0.0,
    timeout: float = 15,
    fetcher: Optional[Callable[[FeedSource], List[RawItem]]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[RawItem]:
    """Fetch feeds in bounded batches; results flattened in registry order."""
    fetch = fetcher or (lambda f: fetch_feed(f, timeout=timeout))
    feeds = list(feeds)
    size = max(1, int(concurrency))
    out: List[RawItem] = []
    with ThreadPoolExecutor(max_workers=size) as pool:
        for start in range(0, len(feeds), size):
            if start and batch_delay > 0:
                sleep(batch_delay)
            batch = feeds[start : start + size]
            for items in pool.map(fetch, batch):
                out.extend(items)
    return out


def filter_by_keywords(items: Sequence[RawItem], keywords: Sequence[str]) -> List[RawItem]:
    """Keep items whose title or snippet mentions any keyword (empty list keeps all)."""
    kws = [k.lower() for k in keywords if k]
    if not kws:
        return list(items)
    out = []
    for it in items:
        text = f"{it.title} {it.snippet or ''}".lower()
        if any(k in text for k in kws):
            out.append(it)
    return out


def filter_by_date_range(items: Sequence[RawItem], year: int, month: int) -> List[RawItem]:
    """Keep items published in (year, month); undated items are kept."""
    out = []
    for it in items:
        if it.published_at is None:
            out.append(it)
            continue
        if it.published_at.year == year and it.published_at.month == month:
            out.append(it)
    return out
