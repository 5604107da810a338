"""Paid web search via Serper (tier 3, last resort, metered)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from examdesk.ingestion.article_types import PROVIDER_SEARCH, RawItem
from examdesk.ingestion.dates import parse_loose_date
from examdesk.ingestion.url_utils import extract_domain

logger = logging.getLogger(__name__)

SERPER_ENDPOINT = "https://google.serper.dev/search"

CATEGORY_SEARCH_QUERIES: Dict[str, List[str]] = {
    "cabinet-approvals": [
        "India cabinet approval decision {month} {year} site:pib.gov.in",
        "union cabinet ccea approval India {month} {year}",
    ],
    "government-schemes": [
        "India government scheme yojana launch {month} {year}",
        "welfare scheme India PM {month} {year}",
    ],
    "launches-inaugurations": [
        "India inauguration launch PM {month} {year}",
        "foundation stone dedication India {month} {year}",
    ],
    "visits-to-india": [
        "foreign leader visit India {month} {year}",
        "state visit India bilateral {month} {year}",
    ],
    "foreign-visits": [
        "PM India foreign visit {month} {year}",
        "India minister abroad tour {month} {year}",
    ],
    "bilateral-multilateral": [
        "India bilateral multilateral G20 BRICS {month} {year}",
        "India summit quad ASEAN {month} {year}",
    ],
    "rbi-news": [
        "RBI Reserve Bank India notification circular {month} {year}",
        "RBI monetary policy repo rate {month} {year}",
    ],
    "sebi-news": [
        "SEBI regulation notification India {month} {year}",
        "SEBI market IPO listing {month} {year}",
    ],
    "finance-news": [
        "India finance ministry budget tax GST {month} {year}",
        "India fiscal policy revenue {month} {year}",
    ],
    "gdp-growth": [
        "India GDP growth economic NSO {month} {year}",
        "India economy growth statistics {month} {year}",
    ],
    "economy-news": [
        "India economy trade export import {month} {year}",
        "India inflation economic indicator {month} {year}",
    ],
    "business-news": [
        "India business corporate startup {month} {year}",
        "India industry company investment {month} {year}",
    ],
    "defence-exercises": [
        "India military exercise drill {month} {year}",
        "India joint exercise army navy air force {month} {year}",
    ],
    "defence-acquisitions": [
        "India defence procurement contract {month} {year}",
        "India military acquisition deal {month} {year}",
    ],
    "defence-news": [
        "India defence armed forces {month} {year}",
        "India military security {month} {year}",
    ],
    "space": [
        "ISRO India space satellite rocket {month} {year}",
        "India space mission launch {month} {year}",
    ],
    "technology": [
        "India technology digital AI innovation {month} {year}",
        "India tech 5G semiconductor {month} {year}",
    ],
    "science-discoveries": [
        "India science research discovery {month} {year}",
        "India scientist innovation breakthrough {month} {year}",
    ],
    "sports-awards": [
        "India sports award arjuna khel ratna {month} {year}",
        "India athlete award medal {month} {year}",
    ],
    "national-awards": [
        "India padma bharat ratna national award {month} {year}",
        "India civilian gallantry award {month} {year}",
    ],
    "international-awards": [
        "India international award nobel {month} {year}",
        "Indian wins international prize {month} {year}",
    ],
    "summits": [
        "India summit G20 BRICS SCO {month} {year}",
        "India international summit {month} {year}",
    ],
    "conferences": [
        "India conference conclave seminar {month} {year}",
        "India symposium convention {month} {year}",
    ],
    "rankings": [
        "India ranking index world {month} {year}",
        "India global ranking list {month} {year}",
    ],
    "reports": [
        "India report survey economic {month} {year}",
        "India study findings data {month} {year}",
    ],
    "national-appointments": [
        "India appointment chief secretary {month} {year}",
        "India new appointment named {month} {year}",
    ],
    "international-appointments": [
        "India international appointment UN IMF {month} {year}",
        "Indian appointed global organization {month} {year}",
    ],
    "cricket": [
        "India cricket BCCI IPL {month} {year}",
        "India cricket match series {month} {year}",
    ],
    "football": [
        "India football ISL AIFF {month} {year}",
        "India football match {month} {year}",
    ],
    "other-sports": [
        "India sports Olympics Commonwealth {month} {year}",
        "Indian athlete sports {month} {year}",
    ],
    "environment-news": [
        "India environment climate policy {month} {year}",
        "India pollution conservation {month} {year}",
    ],
    "biodiversity": [
        "India wildlife tiger conservation {month} {year}",
        "India forest sanctuary {month} {year}",
    ],
}


def search_queries(category: str, month_label: str, year: int) -> List[str]:
    templates = CATEGORY_SEARCH_QUERIES.get(category)
    if not templates:
        return [f"India current affairs {category} {month_label} {year}"]
    return [t.replace("{month}", month_label).replace("{year}", str(year)) for t in templates]


@dataclass(frozen=True)
class SearchClient:
    api_key: str
    endpoint: str = SERPER_ENDPOINT
    timeout: float = 20

    def search(self, query: str, *, num: int = 15, country: str = "in") -> List[RawItem]:
        """Run one query; errors are logged and yield []."""
        try:
            resp = requests.post(
                self.endpoint,
                json={"q": query, "gl": country, "num": int(num)},
                headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Search request failed for {query!r}: {e}")
            return []
        if not (200 <= resp.status_code < 300):
            logger.warning(f"Search API returned HTTP {resp.status_code}: {(resp.text or '')[:200]}")
            return []
        try:
            data = resp.json() or {}
        except ValueError:
            logger.warning("Search API returned non-JSON body")
            return []
        if not isinstance(data, dict):
            return []
        return parse_organic(data.get("organic") or [])


def parse_organic(results: Sequence[Any]) -> List[RawItem]:
    out: List[RawItem] = []
    for r in results:
        if not isinstance(r, dict):
            continue
        title = str(r.get("title") or "").strip()
        if not title:
            continue
        link = str(r.get("link") or "").strip() or None
        raw_date: Optional[str] = str(r["date"]).strip() if r.get("date") else None
        out.append(
            RawItem(
                title=title,
                url=link,
                source=str(r.get("source") or extract_domain(link) or "unknown"),
                published_at=parse_loose_date(raw_date),
                snippet=(str(r.get("snippet")).strip() or None) if r.get("snippet") else None,
                provider=PROVIDER_SEARCH,
                date_hint=raw_date,
            )
        )
    return out
