"""Tiered candidate acquisition for one scope key.

Store lookup first; below the threshold (or on force_refresh) the tiers are
engaged in order, each only while the scope is still underfilled:

1. feeds     - current/future months only (feeds carry recent items)
2. archive   - past months, or when feeds underfilled
3. search    - still underfilled and a search key is configured

Tier failures degrade to zero items; only store reads propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

from examdesk.config import Config
from examdesk.ingestion.archive import ArchiveClient
from examdesk.ingestion.article_types import (
    PROVIDER_ARCHIVE,
    PROVIDER_FEED,
    PROVIDER_SEARCH,
    Candidate,
    RawItem,
    ScopeKey,
)
from examdesk.ingestion.dates import is_current_or_future_month, month_name, parse_month
from examdesk.ingestion.feed_sources import DEFAULT_REGISTRY, FeedRegistry
from examdesk.ingestion.feeds import fetch_feed, fetch_feeds, filter_by_date_range, filter_by_keywords
from examdesk.ingestion.search import SearchClient, search_queries
from examdesk.scoring.candidate_ranking import merge_candidates, rank_for_display
from examdesk.storage.repo_base import BaseRepo, RepoError

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FRESH = "fresh"


@dataclass(frozen=True)
class AcquisitionResult:
    candidates: List[Candidate]
    source: str
    total: int
    fetched: Dict[str, int] = field(default_factory=lambda: {PROVIDER_FEED: 0, PROVIDER_ARCHIVE: 0, PROVIDER_SEARCH: 0})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "source": self.source,
            "total": self.total,
            "fetched": dict(self.fetched),
        }


def _to_candidates(items: Sequence[RawItem], scope: ScopeKey) -> List[Candidate]:
    return [Candidate.from_raw(it, scope) for it in items]


@dataclass
class CandidateAcquirer:
    repo: BaseRepo
    config: Config = field(default_factory=Config)
    registry: FeedRegistry = DEFAULT_REGISTRY
    archive: Optional[ArchiveClient] = None
    search: Optional[SearchClient] = None

    def __post_init__(self):
        if self.archive is None:
            self.archive = ArchiveClient(timeout=self.config.archive_timeout)
        if self.search is None and self.config.serper_api_key:
            self.search = SearchClient(api_key=self.config.serper_api_key)

    def fetch_candidates(
        self,
        year: int,
        month: Union[int, str],
        section: str,
        category: str,
        *,
        force_refresh: bool = False,
        today: Optional[date] = None,
    ) -> AcquisitionResult:
        scope = ScopeKey(int(year), parse_month(month), section, category)
        cfg = self.config
        _, keywords = self.registry.lookup(scope.section, scope.category)

        existing = self.repo.list_candidates(scope, limit=cfg.candidate_lookup_limit)
        existing_count = len(existing)
        logger.info(f"Found {existing_count} existing candidates for {scope.label()}")

        if not force_refresh and existing_count >= cfg.candidate_threshold:
            return AcquisitionResult(
                candidates=rank_for_display(existing, keywords)[: cfg.max_candidates_return],
                source=SOURCE_CACHE,
                total=existing_count,
            )

        stats = {PROVIDER_FEED: 0, PROVIDER_ARCHIVE: 0, PROVIDER_SEARCH: 0}
        tiers: Dict[str, List[Candidate]] = {PROVIDER_FEED: [], PROVIDER_ARCHIVE: [], PROVIDER_SEARCH: []}
        recent = is_current_or_future_month(scope.year, scope.month, today)

        def underfilled() -> bool:
            return existing_count + sum(stats.values()) < cfg.candidate_threshold

        if recent:
            tiers[PROVIDER_FEED] = self._from_feeds(scope)
            stats[PROVIDER_FEED] = len(tiers[PROVIDER_FEED])

        if not recent or underfilled():
            tiers[PROVIDER_ARCHIVE] = self._from_archive(scope)
            stats[PROVIDER_ARCHIVE] = len(tiers[PROVIDER_ARCHIVE])

        if underfilled() and self.search is not None:
            tiers[PROVIDER_SEARCH] = self._from_search(scope)
            stats[PROVIDER_SEARCH] = len(tiers[PROVIDER_SEARCH])

        if any(tiers.values()):
            # Feed copies win over archive/search copies of the same article
            unique = merge_candidates(tiers[PROVIDER_FEED], tiers[PROVIDER_ARCHIVE], tiers[PROVIDER_SEARCH])
            try:
                inserted = self.repo.insert_candidates(unique)
                logger.info(f"Inserted {inserted} of {len(unique)} unique candidates for {scope.label()}")
            except RepoError as e:
                logger.error(f"Error inserting candidates for {scope.label()}: {e}")

        final = rank_for_display(self.repo.list_candidates(scope, limit=cfg.candidate_lookup_limit), keywords)
        return AcquisitionResult(
            candidates=final[: cfg.max_candidates_return],
            source=SOURCE_FRESH,
            total=len(final),
            fetched=stats,
        )

    def _from_feeds(self, scope: ScopeKey) -> List[Candidate]:
        feeds, keywords = self.registry.lookup(scope.section, scope.category)
        if not feeds:
            return []
        logger.info(f"Fetching {len(feeds)} feeds for {scope.label()}")
        timeout = self.config.feed_timeout
        items = fetch_feeds(
            feeds,
            concurrency=self.config.feed_concurrency,
            fetcher=lambda f: fetch_feed(f, timeout=timeout),
        )
        # Shared feeds (PIB) serve many categories; keep what matches this one and this month
        items = filter_by_date_range(filter_by_keywords(items, keywords), scope.year, scope.month)
        found = _to_candidates(items, scope)
        logger.info(f"Got {len(found)} candidates from feeds")
        return found

    def _from_archive(self, scope: ScopeKey) -> List[Candidate]:
        items = self.archive.fetch_archive(
            scope.year, scope.month, scope.category, max_records=self.config.archive_max_records
        )
        found = _to_candidates(items, scope)
        logger.info(f"Got {len(found)} candidates from archive")
        return found

    def _from_search(self, scope: ScopeKey) -> List[Candidate]:
        queries = search_queries(scope.category, month_name(scope.month), scope.year)
        found: List[Candidate] = []
        for q in queries[: max(0, self.config.max_search_queries)]:
            items = self.search.search(
                q, num=self.config.search_results_per_query, country=self.config.search_country
            )
            found.extend(_to_candidates(items, scope))
        logger.info(f"Got {len(found)} candidates from search")
        return found
