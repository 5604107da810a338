#!/usr/bin/env python3
"""Backfill a past month from the news archive.

Usage:
    python backfill_month_worker.py YEAR MONTH [SECTION CATEGORY]
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from examdesk.config import Config, setup_logging
from examdesk.ingestion.archive import ArchiveClient
from examdesk.ingestion.dates import parse_month
from examdesk.ingestion.feed_sources import DEFAULT_REGISTRY
from examdesk.pipeline.bulk_ingest import backfill_month

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) not in (2, 4):
        print(__doc__.strip(), file=sys.stderr)
        return 2
    try:
        year = int(args[0])
        month = parse_month(args[1])
    except ValueError as e:
        print(f"Invalid year/month: {e}", file=sys.stderr)
        return 2

    categories = None
    if len(args) == 4:
        entry = DEFAULT_REGISTRY.get(args[2], args[3])
        if entry is None:
            print(f"Unknown category: {args[2]}/{args[3]}", file=sys.stderr)
            return 2
        categories = [entry]

    config = Config.from_env()
    repo = config.build_repo()
    report = backfill_month(
        repo,
        year,
        month,
        categories=categories,
        archive=ArchiveClient(timeout=config.archive_timeout),
        max_records=config.archive_max_records,
    )
    logger.info(
        f"[backfill] {month:02d}/{year}: {report.categories_processed} categories, "
        f"{report.items_fetched} fetched, {report.items_inserted} inserted"
    )
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
