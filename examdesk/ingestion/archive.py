"""Historical backfill via the GDELT 2.1 doc API (tier 2, free, no key)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from examdesk.ingestion.article_types import PROVIDER_ARCHIVE, RawItem
from examdesk.ingestion.dates import days_in_month
from examdesk.ingestion.url_utils import extract_domain

logger = logging.getLogger(__name__)

GDELT_ENDPOINT = "https://api.gdeltproject.org/api/v2/doc/doc"

DEFAULT_ARCHIVE_KEYWORDS = ["India", "current affairs"]

CATEGORY_ARCHIVE_KEYWORDS: Dict[str, List[str]] = {
    "cabinet-approvals": ["India", "cabinet", "approval", "government"],
    "government-schemes": ["India", "government", "scheme", "yojana", "welfare"],
    "launches-inaugurations": ["India", "inauguration", "launch", "PM Modi"],
    "statewise-news": ["India", "state", "chief minister"],
    "visits-to-india": ["India", "visit", "foreign", "bilateral"],
    "foreign-visits": ["India", "PM Modi", "visit", "abroad"],
    "bilateral-multilateral": ["India", "G20", "BRICS", "summit", "bilateral"],
    "international-news": ["India", "international", "world"],
    "rbi-news": ["India", "RBI", "Reserve Bank", "monetary"],
    "sebi-news": ["India", "SEBI", "securities", "market"],
    "bank-loans": ["India", "bank", "loan", "credit"],
    "finance-news": ["India", "finance", "budget", "tax", "GST"],
    "gdp-growth": ["India", "GDP", "growth", "economy"],
    "economy-news": ["India", "economy", "trade", "inflation"],
    "business-news": ["India", "business", "company", "corporate"],
    "defence-exercises": ["India", "military", "exercise", "drill"],
    "defence-acquisitions": ["India", "defence", "procurement", "contract"],
    "defence-news": ["India", "defence", "armed forces", "military"],
    "space": ["India", "ISRO", "space", "satellite", "rocket"],
    "technology": ["India", "technology", "digital", "AI", "innovation"],
    "science-discoveries": ["India", "science", "research", "discovery"],
    "sports-awards": ["India", "sports", "award", "arjuna"],
    "national-awards": ["India", "padma", "bharat ratna", "award"],
    "international-awards": ["India", "international", "award", "prize"],
    "summits": ["India", "summit", "G20", "BRICS"],
    "conferences": ["India", "conference", "conclave"],
    "rankings": ["India", "ranking", "index", "world"],
    "reports": ["India", "report", "survey", "study"],
    "national-appointments": ["India", "appointment", "named", "chief"],
    "international-appointments": ["India", "UN", "IMF", "appointed"],
    "cricket": ["India", "cricket", "BCCI", "match"],
    "football": ["India", "football", "ISL"],
    "other-sports": ["India", "sports", "Olympics", "athlete"],
    "environment-news": ["India", "environment", "climate", "pollution"],
    "biodiversity": ["India", "wildlife", "tiger", "forest"],
}


def build_query(keywords: Sequence[str]) -> str:
    """OR-combine keywords; GDELT wants phrases quoted and OR groups parenthesized."""
    terms = [f'"{k}"' if " " in k else k for k in keywords if k]
    if len(terms) == 1:
        return terms[0]
    return "(" + " OR ".join(terms) + ")"


def parse_seendate(value: Any) -> Optional[datetime]:
    """Parse GDELT's compact YYYYMMDD[HHMMSS] stamp.

    Out-of-range components make the whole value unparseable (None); nothing
    is clamped.
    """
    if not value:
        return None
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    if len(digits) < 8:
        return None
    year, month, day = int(digits[0:4]), int(digits[4:6]), int(digits[6:8])
    hour = int(digits[8:10] or 0)
    minute = int(digits[10:12] or 0)
    second = int(digits[12:14] or 0)
    if not (2000 <= year <= 2100 and 1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        # Feb 30, hour 25, ...
        return None


@dataclass(frozen=True)
class ArchiveClient:
    endpoint: str = GDELT_ENDPOINT
    timeout: float = 30
    user_agent: str = "ExamDesk/1.0"

    def build_params(self, year: int, month: int, category: str, max_records: int) -> Dict[str, str]:
        keywords = CATEGORY_ARCHIVE_KEYWORDS.get(category) or DEFAULT_ARCHIVE_KEYWORDS
        last_day = days_in_month(year, month)
        return {
            "query": build_query(keywords),
            "mode": "ArtList",
            "maxrecords": str(min(max(int(max_records), 1), 250)),
            "format": "json",
            "startdatetime": f"{year:04d}{month:02d}01000000",
            "enddatetime": f"{year:04d}{month:02d}{last_day:02d}235959",
            "sourcelang": "english",
        }

    def fetch_archive(self, year: int, month: int, category: str, max_records: int = 50) -> List[RawItem]:
        params = self.build_params(year, month, category, max_records)
        try:
            resp = requests.get(
                self.endpoint,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Archive query failed for {category} {month:02d}/{year}: {e}")
            return []
        if not (200 <= resp.status_code < 300):
            logger.warning(f"Archive API returned HTTP {resp.status_code} for {category}")
            return []

        # GDELT reports query problems as plain text with a 200 status
        body = (resp.text or "").lstrip()
        if not body or body.startswith("Queries") or body.startswith("Error"):
            logger.warning(f"Archive API rejected query for {category}: {body[:120]!r}")
            return []
        try:
            data = resp.json() or {}
        except ValueError:
            logger.warning(f"Archive API returned non-JSON for {category}")
            return []
        if not isinstance(data, dict):
            return []
        return parse_articles(data.get("articles") or [])


def parse_articles(articles: Sequence[Any]) -> List[RawItem]:
    out: List[RawItem] = []
    for a in articles:
        if not isinstance(a, dict):
            continue
        title = str(a.get("title") or "").strip()
        url = str(a.get("url") or "").strip()
        if not title:
            continue
        source = a.get("domain") or extract_domain(url) or "unknown"
        out.append(
            RawItem(
                title=title,
                url=url or None,
                source=str(source),
                published_at=parse_seendate(a.get("seendate")),
                snippet=None,
                provider=PROVIDER_ARCHIVE,
            )
        )
    return out
