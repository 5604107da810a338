import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

import backfill_month_worker
import ingest_feeds_worker
from examdesk.config import Config
from examdesk.ingestion.article_types import ScopeKey
from examdesk.ingestion.feed_sources import CategoryFeeds, FeedRegistry, FeedSource
from examdesk.pipeline.bulk_ingest import IngestReport, backfill_month, ingest_all_feeds

from support import FakeArchive, raw_item, temp_repo


GOV = FeedSource("https://gov.example/rss", "Gov")
PRESS = FeedSource("https://press.example/rss", "Press")
DEAD = FeedSource("https://dead.example/rss", "Dead")

REGISTRY = FeedRegistry([
    CategoryFeeds("national", "government-schemes", "Schemes", (GOV, PRESS)),
    CategoryFeeds("national", "cabinet-approvals", "Cabinet", (GOV,)),
    CategoryFeeds("sports", "cricket", "Cricket", (DEAD,)),
])

NOW = datetime(2025, 3, 20, tzinfo=timezone.utc)


class TestDailyIngest(unittest.TestCase):
    def setUp(self):
        self.repo = temp_repo(self)

    def _fetcher(self, feed):
        if feed is DEAD:
            raise requests.ConnectionError("refused")
        if feed is GOV:
            return [raw_item(1, day=3, provider="feed"), raw_item(2, provider="feed")]
        return [raw_item(3, day=18, provider="feed")]

    def test_items_filed_under_every_category_using_the_feed(self):
        report = ingest_all_feeds(self.repo, registry=REGISTRY, fetcher=self._fetcher, sleep=lambda s: None, now=NOW)
        self.assertEqual(report.feeds_processed, 3)
        self.assertEqual(report.feeds_failed, 1)
        self.assertEqual(report.items_fetched, 3)
        self.assertEqual(report.items_inserted, 5)
        self.assertEqual(self.repo.count_candidates(ScopeKey(2025, 3, "national", "government-schemes")), 3)
        self.assertEqual(self.repo.count_candidates(ScopeKey(2025, 3, "national", "cabinet-approvals")), 2)
        self.assertEqual(self.repo.count_candidates(ScopeKey(2025, 3, "sports", "cricket")), 0)
        self.assertIn("Dead", report.errors[0])

    def test_rerun_inserts_nothing(self):
        kwargs = dict(registry=REGISTRY, fetcher=self._fetcher, sleep=lambda s: None, now=NOW)
        ingest_all_feeds(self.repo, **kwargs)
        self.assertEqual(ingest_all_feeds(self.repo, **kwargs).items_inserted, 0)

    def test_per_feed_cap_and_batch_delay(self):
        sleeps = []
        report = ingest_all_feeds(
            self.repo,
            registry=REGISTRY,
            fetcher=self._fetcher,
            concurrency=2,
            batch_delay=1.0,
            max_items_per_feed=1,
            sleep=sleeps.append,
            now=NOW,
        )
        self.assertEqual(report.items_fetched, 2)
        self.assertEqual(sleeps, [1.0])


class TestBackfill(unittest.TestCase):
    def setUp(self):
        self.repo = temp_repo(self)

    def test_backfill_fills_each_category(self):
        archive = FakeArchive([raw_item(i, day=2) for i in range(4)])
        report = backfill_month(
            self.repo, 2024, 11, registry=REGISTRY, archive=archive, max_items_per_category=3, sleep=lambda s: None
        )
        self.assertEqual(report.categories_processed, 3)
        self.assertEqual(report.items_inserted, 9)
        self.assertEqual(report.per_category["national/cabinet-approvals"], 3)
        self.assertEqual([c[2] for c in archive.calls], ["government-schemes", "cabinet-approvals", "cricket"])
        self.assertEqual(self.repo.count_candidates(ScopeKey(2024, 11, "sports", "cricket")), 3)


class TestWorkers(unittest.TestCase):
    def test_ingest_worker_passes_config_through(self):
        config = Config(ingest_feed_concurrency=2, ingest_batch_delay_seconds=0.0, ingest_max_items_per_feed=7)
        repo = temp_repo(self)
        with mock.patch.object(ingest_feeds_worker.Config, "from_env", return_value=config), \
                mock.patch.object(Config, "build_repo", return_value=repo), \
                mock.patch.object(ingest_feeds_worker, "ingest_all_feeds", return_value=IngestReport()) as ingest:
            ingest_feeds_worker.run_once()
        args, kwargs = ingest.call_args
        self.assertIs(args[0], repo)
        self.assertEqual(kwargs["concurrency"], 2)
        self.assertEqual(kwargs["max_items_per_feed"], 7)

    def test_backfill_worker_bad_arguments(self):
        with mock.patch("sys.stderr"):
            self.assertEqual(backfill_month_worker.main([]), 2)
            self.assertEqual(backfill_month_worker.main(["2025", "smarch"]), 2)
            self.assertEqual(backfill_month_worker.main(["2025", "3", "nowhere", "nothing"]), 2)


if __name__ == "__main__":
    unittest.main()
