#!/usr/bin/env python3
"""Daily feed ingestion worker.

Sweeps every unique registry feed once and files each item under every
(section, category) that uses the feed, scoped by the item's own month.
This builds up the candidate archive ahead of user requests.
"""

from __future__ import annotations

import logging
import os
import time

import schedule

from examdesk.config import Config, setup_logging
from examdesk.pipeline.bulk_ingest import ingest_all_feeds

logger = logging.getLogger(__name__)


def run_once() -> None:
    config = Config.from_env()
    repo = config.build_repo()
    report = ingest_all_feeds(
        repo,
        concurrency=config.ingest_feed_concurrency,
        batch_delay=config.ingest_batch_delay_seconds,
        max_items_per_feed=config.ingest_max_items_per_feed,
        timeout=config.feed_timeout,
    )
    logger.info(f"[ingest] {report.to_dict()}")


def run_scheduled() -> None:
    # Twice a day is enough for government feeds
    schedule.every(12).hours.do(run_once)
    run_once()
    while True:
        schedule.run_pending()
        time.sleep(30)


if __name__ == "__main__":
    setup_logging()
    mode = (os.environ.get("INGEST_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        run_scheduled()
    else:
        run_once()
