"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from examdesk.ingestion.dates import iso_z, to_utc
from examdesk.ingestion.url_utils import candidate_id


PROVIDER_FEED = "feed"
PROVIDER_ARCHIVE = "archive"
PROVIDER_SEARCH = "search"

# Tier precedence: earlier tiers win on duplicate ids
PROVIDERS = (PROVIDER_FEED, PROVIDER_ARCHIVE, PROVIDER_SEARCH)


@dataclass(frozen=True)
class ScopeKey:
    """(year, month, section, category) partition for all stored data."""

    year: int
    month: int
    section: str
    category: str

    def label(self) -> str:
        return f"{self.section}/{self.category} {self.month:02d}/{self.year}"


@dataclass(frozen=True)
class RawItem:
    """Normalized item as produced by any acquisition tier (pre-id)."""

    title: str
    url: Optional[str]
    source: str
    published_at: Optional[datetime] = None
    snippet: Optional[str] = None
    provider: str = PROVIDER_FEED
    # Value fed into the id when there is no URL (search APIs hand back raw date strings)
    date_hint: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    """De-duplicated, source-tagged news mention stored per scope key."""

    id: str
    year: int
    month: int
    section: str
    category: str
    title: str
    url: Optional[str]
    source: str
    snippet: Optional[str]
    published_at: Optional[datetime]
    provider: str
    created_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def scope(self) -> ScopeKey:
        return ScopeKey(self.year, self.month, self.section, self.category)

    @classmethod
    def from_raw(cls, item: RawItem, scope: ScopeKey) -> "Candidate":
        published = to_utc(item.published_at) if item.published_at else None
        cid = candidate_id(item.url, item.title, item.source, item.date_hint or published)
        return cls(
            id=cid,
            year=scope.year,
            month=scope.month,
            section=scope.section,
            category=scope.category,
            title=item.title,
            url=item.url or None,
            source=item.source,
            snippet=item.snippet or None,
            published_at=published,
            provider=item.provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "year": self.year,
            "month": self.month,
            "section": self.section,
            "category": self.category,
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "snippet": self.snippet,
            "published_at": iso_z(self.published_at) if self.published_at else None,
            "provider": self.provider,
            "created_at": iso_z(self.created_at) if self.created_at else None,
        }
