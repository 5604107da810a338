"""Bulk jobs: daily feed sweep and per-month archive backfill.

Both only ever insert-if-absent, so reruns are harmless.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from examdesk.ingestion.archive import ArchiveClient
from examdesk.ingestion.article_types import Candidate, RawItem, ScopeKey
from examdesk.ingestion.feed_sources import DEFAULT_REGISTRY, CategoryFeeds, FeedRegistry, FeedSource
from examdesk.ingestion.feeds import fetch_feed
from examdesk.scoring.candidate_ranking import dedupe_candidates
from examdesk.storage.repo_base import BaseRepo, RepoError

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    feeds_processed: int = 0
    feeds_failed: int = 0
    items_fetched: int = 0
    items_inserted: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "feeds_processed": self.feeds_processed,
            "feeds_failed": self.feeds_failed,
            "items_fetched": self.items_fetched,
            "items_inserted": self.items_inserted,
            "errors": self.errors[:10],
            "duration_seconds": round(self.duration_seconds, 2),
        }


def scope_for_item(item: RawItem, entry: CategoryFeeds, now: datetime) -> ScopeKey:
    """Items land in their own publication month; undated ones in the current month."""
    when = item.published_at or now
    return ScopeKey(when.year, when.month, entry.section, entry.category)


def ingest_all_feeds(
    repo: BaseRepo,
    *,
    registry: FeedRegistry = DEFAULT_REGISTRY,
    concurrency: int = 3,
    batch_delay: float = 1.0,
    max_items_per_feed: int = 50,
    timeout: float = 15,
    fetcher: Optional[Callable[[FeedSource], List[RawItem]]] = None,
    sleep: Callable[[float], None] = time.sleep,
    now: Optional[datetime] = None,
) -> IngestReport:
    """Fetch every unique feed once and file its items under every category using it."""
    started = time.monotonic()
    now = now or datetime.now(timezone.utc)
    fetch = fetcher or (lambda f: fetch_feed(f, timeout=timeout, raise_errors=True))
    feeds = registry.all_unique_feeds()
    logger.info(f"Starting daily ingestion for {len(feeds)} unique feeds")
    report = IngestReport()
    size = max(1, int(concurrency))

    def run(feed: FeedSource):
        try:
            return feed, fetch(feed), None
        except Exception as e:
            return feed, [], e

    with ThreadPoolExecutor(max_workers=size) as pool:
        for start in range(0, len(feeds), size):
            batch = feeds[start : start + size]
            for feed, items, err in pool.map(run, batch):
                report.feeds_processed += 1
                if err is not None:
                    report.feeds_failed += 1
                    report.errors.append(f"{feed.name}: {err}")
                    logger.warning(f"Failed to process {feed.name}: {err}")
                    continue
                items = items[: max(0, max_items_per_feed)]
                report.items_fetched += len(items)
                inserted = 0
                users = registry.categories_using_feed(feed.url)
                for entry in users:
                    rows = dedupe_candidates(Candidate.from_raw(it, scope_for_item(it, entry, now)) for it in items)
                    try:
                        inserted += repo.insert_candidates(rows)
                    except RepoError as e:
                        logger.warning(f"Insert error for {feed.name} -> {entry.section}/{entry.category}: {e}")
                report.items_inserted += inserted
                logger.info(f"{feed.name}: {len(items)} items fetched, {inserted} inserted across {len(users)} categories")
            if start + size < len(feeds) and batch_delay > 0:
                sleep(batch_delay)

    report.duration_seconds = time.monotonic() - started
    logger.info(
        f"Daily ingestion complete: feeds {report.feeds_processed} processed, {report.feeds_failed} failed; "
        f"items {report.items_fetched} fetched, {report.items_inserted} inserted"
    )
    return report


@dataclass
class BackfillReport:
    year: int
    month: int
    categories_processed: int = 0
    items_fetched: int = 0
    items_inserted: int = 0
    per_category: Dict[str, int] = field(default_factory=dict)


def backfill_month(
    repo: BaseRepo,
    year: int,
    month: int,
    *,
    categories: Optional[Sequence[CategoryFeeds]] = None,
    registry: FeedRegistry = DEFAULT_REGISTRY,
    archive: Optional[ArchiveClient] = None,
    max_items_per_category: int = 30,
    max_records: int = 50,
    delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> BackfillReport:
    """Fill a past month from the archive for one or all registry categories."""
    archive = archive or ArchiveClient()
    targets = list(categories) if categories is not None else registry.all_categories()
    report = BackfillReport(year=year, month=month)
    for n, entry in enumerate(targets):
        if n and delay > 0:
            sleep(delay)
        scope = ScopeKey(year, month, entry.section, entry.category)
        items = archive.fetch_archive(year, month, entry.category, max_records=max_records)
        rows = dedupe_candidates(Candidate.from_raw(it, scope) for it in items)[: max(0, max_items_per_category)]
        report.items_fetched += len(items)
        inserted = 0
        if rows:
            try:
                inserted = repo.insert_candidates(rows)
            except RepoError as e:
                logger.error(f"Backfill insert failed for {scope.label()}: {e}")
        report.items_inserted += inserted
        report.per_category[f"{entry.section}/{entry.category}"] = inserted
        report.categories_processed += 1
        logger.info(f"Backfill {scope.label()}: {len(items)} fetched, {inserted} inserted")
    return report
