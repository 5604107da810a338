"""Static (section, category) -> feed registry.

Government feeds (PIB, RBI, SEBI, PRS) come first; national press feeds
back them up for the broader categories. Several categories share a feed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class FeedSource:
    url: str
    name: str
    language: str = "en"
    weight: int = 5  # trust weight, 1-10


@dataclass(frozen=True)
class CategoryFeeds:
    section: str
    category: str
    name: str
    feeds: Tuple[FeedSource, ...]
    keywords: Tuple[str, ...] = ()


# PIB: Lang=1 is English, Regid=1 is PIB Delhi (central releases)
PIB_ALL = FeedSource("https://pib.gov.in/RssMain.aspx?ModId=6&Lang=1&Regid=1", "PIB", weight=10)
RBI_PRESS = FeedSource("https://rbi.org.in/Scripts/BS_PressReleasesRssData.aspx", "RBI Press", weight=10)
RBI_NOTIFICATIONS = FeedSource("https://rbi.org.in/Scripts/BS_NotificationsRssData.aspx", "RBI Notifications", weight=10)
RBI_CIRCULARS = FeedSource("https://rbi.org.in/Scripts/BS_CircularRssData.aspx", "RBI Circulars", weight=10)
SEBI_PRESS = FeedSource(
    "https://www.sebi.gov.in/sebiweb/other/OtherAction.do?doGet=yes&method=getRSSFeed", "SEBI Press", weight=10
)
PRS_LEGISLATIVE = FeedSource("https://prsindia.org/rss", "PRS Legislative", weight=9)

HINDU_NATIONAL = FeedSource("https://www.thehindu.com/news/national/feeder/default.rss", "The Hindu", weight=8)
HINDU_INTERNATIONAL = FeedSource(
    "https://www.thehindu.com/news/international/feeder/default.rss", "The Hindu International", weight=8
)
HINDU_BUSINESS = FeedSource("https://www.thehindu.com/business/feeder/default.rss", "The Hindu Business", weight=8)
HINDU_SCITECH = FeedSource("https://www.thehindu.com/sci-tech/feeder/default.rss", "The Hindu Sci-Tech", weight=8)
HINDU_SPORT = FeedSource("https://www.thehindu.com/sport/feeder/default.rss", "The Hindu Sport", weight=8)
EXPRESS_INDIA = FeedSource("https://indianexpress.com/section/india/feed/", "Indian Express", weight=8)
MINT_ECONOMY = FeedSource("https://www.livemint.com/rss/economy", "Mint Economy", weight=7)


SECTION_NAMES: Dict[str, str] = {
    "national": "NATIONAL AFFAIRS",
    "international": "INTERNATIONAL AFFAIRS",
    "banking-finance": "BANKING & FINANCE",
    "economy-business": "ECONOMY & BUSINESS",
    "mous-agreements": "MoUs & AGREEMENTS",
    "appointments": "APPOINTMENTS & RESIGNATIONS",
    "awards": "AWARDS & HONOURS",
    "summits-events": "SUMMITS, EVENTS & CONFERENCES",
    "committees": "COMMITTEES & MEETINGS",
    "rankings-reports": "RANKINGS & REPORTS",
    "acquisitions-mergers": "ACQUISITIONS & MERGERS",
    "defence": "DEFENCE",
    "science-tech": "SCIENCE & TECHNOLOGY",
    "sports": "SPORTS",
    "books-authors": "BOOKS & AUTHORS",
    "obituary": "OBITUARY",
    "important-days": "IMPORTANT DAYS",
    "apps-portals": "APPS & WEB PORTALS",
    "environment": "ENVIRONMENT",
}


def _cat(section: str, category: str, name: str, feeds: Sequence[FeedSource], keywords: Sequence[str]) -> CategoryFeeds:
    return CategoryFeeds(section, category, name, tuple(feeds), tuple(keywords))


CATEGORY_FEEDS: List[CategoryFeeds] = [
    # National
    _cat("national", "cabinet-approvals", "Cabinet Approvals", [PIB_ALL],
         ["cabinet", "approval", "decision", "union cabinet", "ccea"]),
    _cat("national", "government-schemes", "Government Schemes", [PIB_ALL, HINDU_NATIONAL],
         ["scheme", "yojana", "mission", "programme", "initiative", "launch"]),
    _cat("national", "launches-inaugurations", "Launches & Inaugurations", [PIB_ALL],
         ["launch", "inaugurate", "unveil", "dedicate", "foundation stone"]),
    _cat("national", "statewise-news", "Statewise National News", [PIB_ALL, EXPRESS_INDIA],
         ["state", "chief minister", "cm", "assembly"]),
    _cat("national", "festivals", "Festivals", [PIB_ALL],
         ["festival", "celebration", "diwali", "holi", "eid", "christmas", "pongal"]),
    _cat("national", "other-national", "Other National News", [PIB_ALL, HINDU_NATIONAL, EXPRESS_INDIA], []),
    # International
    _cat("international", "visits-to-india", "Visits to India", [PIB_ALL],
         ["visit", "arrival", "state visit", "official visit", "india tour"]),
    _cat("international", "foreign-visits", "Foreign Visits by Indian Leaders", [PIB_ALL],
         ["pm visit", "president visit", "minister visit", "foreign tour"]),
    _cat("international", "bilateral-multilateral", "Bilateral / Multilateral Actions", [PIB_ALL, HINDU_INTERNATIONAL],
         ["bilateral", "multilateral", "g20", "brics", "quad", "asean", "saarc", "un"]),
    _cat("international", "international-news", "Other International News", [PIB_ALL, HINDU_INTERNATIONAL], []),
    # Banking & Finance
    _cat("banking-finance", "rbi-news", "RBI in News", [RBI_PRESS, RBI_NOTIFICATIONS, RBI_CIRCULARS],
         ["rbi", "reserve bank", "monetary policy", "repo rate", "inflation"]),
    _cat("banking-finance", "sebi-news", "SEBI in News", [SEBI_PRESS],
         ["sebi", "securities", "ipo", "listing", "market regulation"]),
    _cat("banking-finance", "bank-loans", "Loans Issued by Banks", [RBI_PRESS, PIB_ALL],
         ["loan", "credit", "lending", "interest rate", "borrowing"]),
    _cat("banking-finance", "bank-agreements", "Agreements & MoUs (Banking)", [PIB_ALL],
         ["agreement", "mou", "partnership", "collaboration", "bank"]),
    _cat("banking-finance", "other-banking", "Other Banking News", [RBI_PRESS, PIB_ALL],
         ["bank", "banking", "financial"]),
    _cat("banking-finance", "finance-news", "Finance News", [PIB_ALL, HINDU_BUSINESS],
         ["finance", "budget", "tax", "revenue", "fiscal"]),
    # Economy & Business
    _cat("economy-business", "gdp-growth", "GDP & Growth", [PIB_ALL, MINT_ECONOMY],
         ["gdp", "growth", "economy", "economic"]),
    _cat("economy-business", "economy-news", "Economy News", [PIB_ALL, MINT_ECONOMY, HINDU_BUSINESS],
         ["economy", "economic", "trade", "export", "import"]),
    _cat("economy-business", "business-news", "Business News", [PIB_ALL, HINDU_BUSINESS],
         ["business", "company", "corporate", "industry"]),
    # MoUs & Agreements
    _cat("mous-agreements", "mou-countries", "With Countries", [PIB_ALL],
         ["mou", "agreement", "bilateral", "country", "nation"]),
    _cat("mous-agreements", "mou-states", "With States", [PIB_ALL],
         ["mou", "agreement", "state", "government"]),
    _cat("mous-agreements", "mou-organizations", "Between Organizations", [PIB_ALL],
         ["mou", "agreement", "organization", "institution", "partnership"]),
    # Appointments
    _cat("appointments", "national-appointments", "National Appointments", [PIB_ALL],
         ["appoint", "appointment", "named", "designate", "assume office"]),
    _cat("appointments", "international-appointments", "International Appointments", [PIB_ALL],
         ["appoint", "un", "who", "imf", "world bank", "international"]),
    _cat("appointments", "brand-ambassadors", "Brand & Campaign Ambassadors", [PIB_ALL],
         ["ambassador", "brand", "spokesperson", "campaign"]),
    _cat("appointments", "resignations", "Resignations", [PIB_ALL],
         ["resign", "retirement", "step down", "quit"]),
    # Awards
    _cat("awards", "sports-awards", "Sports Awards", [PIB_ALL, HINDU_SPORT],
         ["award", "arjuna", "khel ratna", "dronacharya", "sports award"]),
    _cat("awards", "national-awards", "National Awards", [PIB_ALL],
         ["padma", "bharat ratna", "national award", "civilian award"]),
    _cat("awards", "international-awards", "International Awards", [PIB_ALL],
         ["nobel", "booker", "grammy", "oscar", "international award"]),
    _cat("awards", "other-awards", "Other Awards & Honours", [PIB_ALL],
         ["award", "honour", "recognition", "prize"]),
    # Summits & Events
    _cat("summits-events", "summits", "Summits", [PIB_ALL, HINDU_INTERNATIONAL],
         ["summit", "g20", "brics", "sco", "asean", "saarc"]),
    _cat("summits-events", "conferences", "Conferences", [PIB_ALL],
         ["conference", "conclave", "seminar", "symposium"]),
    _cat("summits-events", "events", "Events", [PIB_ALL],
         ["event", "celebration", "ceremony", "function"]),
    # Committees
    _cat("committees", "committees", "Committees", [PIB_ALL, PRS_LEGISLATIVE],
         ["committee", "panel", "commission", "task force"]),
    _cat("committees", "meetings", "Meetings", [PIB_ALL],
         ["meeting", "session", "assembly"]),
    # Rankings & Reports
    _cat("rankings-reports", "rankings", "Rankings", [PIB_ALL],
         ["ranking", "rank", "index", "top", "best", "list"]),
    _cat("rankings-reports", "reports", "Reports", [PIB_ALL, RBI_PRESS],
         ["report", "survey", "study", "analysis", "findings"]),
    # Acquisitions & Mergers
    _cat("acquisitions-mergers", "acquisitions", "Acquisitions", [PIB_ALL, HINDU_BUSINESS],
         ["acquisition", "acquire", "takeover", "buy"]),
    _cat("acquisitions-mergers", "mergers", "Mergers", [PIB_ALL, HINDU_BUSINESS],
         ["merger", "merge", "consolidation", "amalgamation"]),
    # Defence
    _cat("defence", "defence-exercises", "Defence Exercises", [PIB_ALL],
         ["exercise", "drill", "military exercise", "joint exercise"]),
    _cat("defence", "defence-acquisitions", "Defence Acquisitions", [PIB_ALL],
         ["procurement", "acquisition", "purchase", "contract", "deal"]),
    _cat("defence", "defence-news", "Other Defence News", [PIB_ALL, HINDU_NATIONAL],
         ["defence", "defense", "military", "armed forces", "army", "navy", "air force"]),
    # Science & Tech
    _cat("science-tech", "space", "Space", [PIB_ALL, HINDU_SCITECH],
         ["isro", "space", "satellite", "rocket", "launch", "mission", "chandrayaan", "gaganyaan"]),
    _cat("science-tech", "technology", "Technology", [PIB_ALL, HINDU_SCITECH],
         ["technology", "digital", "ai", "artificial intelligence", "innovation"]),
    _cat("science-tech", "science-discoveries", "Scientific Discoveries", [PIB_ALL, HINDU_SCITECH],
         ["discovery", "research", "scientist", "breakthrough", "innovation"]),
    # Sports
    _cat("sports", "cricket", "Cricket", [PIB_ALL, HINDU_SPORT], ["cricket", "bcci", "icc", "test", "odi", "t20"]),
    _cat("sports", "football", "Football", [PIB_ALL, HINDU_SPORT], ["football", "fifa", "aiff", "isl"]),
    _cat("sports", "tennis", "Tennis", [PIB_ALL, HINDU_SPORT], ["tennis", "atp", "wta", "grand slam"]),
    _cat("sports", "badminton", "Badminton", [PIB_ALL, HINDU_SPORT], ["badminton", "bwf", "shuttler"]),
    _cat("sports", "chess", "Chess", [PIB_ALL, HINDU_SPORT], ["chess", "fide", "grandmaster"]),
    _cat("sports", "athletics", "Athletics", [PIB_ALL, HINDU_SPORT],
         ["athletics", "olympic", "asian games", "commonwealth"]),
    _cat("sports", "other-sports", "Other Sports", [PIB_ALL, HINDU_SPORT],
         ["sports", "game", "championship", "tournament"]),
    # Single-category sections
    _cat("books-authors", "books", "Books Released", [PIB_ALL],
         ["book", "author", "release", "launch", "published", "autobiography", "memoir"]),
    _cat("obituary", "obituary", "Obituary", [PIB_ALL],
         ["passed away", "demise", "death", "obituary", "condolence"]),
    _cat("important-days", "important-days", "Important Days", [PIB_ALL],
         ["day", "week", "observance", "celebrate", "commemorate", "anniversary"]),
    _cat("apps-portals", "apps-portals", "Apps & Web Portals", [PIB_ALL],
         ["app", "portal", "website", "platform", "digital", "mobile app", "launch"]),
    # Environment
    _cat("environment", "environment-news", "Environment News", [PIB_ALL],
         ["environment", "pollution", "conservation", "green"]),
    _cat("environment", "climate", "Climate", [PIB_ALL],
         ["climate", "carbon", "emission", "warming", "cop", "unfccc"]),
    _cat("environment", "biodiversity", "Biodiversity", [PIB_ALL],
         ["biodiversity", "species", "wildlife", "forest", "tiger", "sanctuary"]),
]


class FeedRegistry:
    """Read-only lookup over a list of CategoryFeeds."""

    def __init__(self, categories: Optional[Sequence[CategoryFeeds]] = None):
        self._categories = list(categories) if categories is not None else list(CATEGORY_FEEDS)
        self._index = {(c.section, c.category): c for c in self._categories}

    def get(self, section: str, category: str) -> Optional[CategoryFeeds]:
        return self._index.get((section, category))

    def lookup(self, section: str, category: str) -> Tuple[List[FeedSource], List[str]]:
        """Feeds and keywords for a category; unknown categories get ([], [])."""
        entry = self._index.get((section, category))
        if entry is None:
            return [], []
        return list(entry.feeds), list(entry.keywords)

    def all_categories(self) -> List[CategoryFeeds]:
        return list(self._categories)

    def all_unique_feeds(self) -> List[FeedSource]:
        seen = set()
        out: List[FeedSource] = []
        for entry in self._categories:
            for feed in entry.feeds:
                if feed.url in seen:
                    continue
                seen.add(feed.url)
                out.append(feed)
        return out

    def categories_using_feed(self, url: str) -> List[CategoryFeeds]:
        return [c for c in self._categories if any(f.url == url for f in c.feeds)]

    def sections(self) -> List[Dict[str, object]]:
        grouped: Dict[str, List[Dict[str, str]]] = {}
        for c in self._categories:
            grouped.setdefault(c.section, []).append({"id": c.category, "name": c.name})
        return [
            {"id": section, "name": SECTION_NAMES.get(section, section.upper()), "categories": cats}
            for section, cats in grouped.items()
        ]


DEFAULT_REGISTRY = FeedRegistry()
