"""Shared fakes for the unit tests (no network, throwaway SQLite files)."""

import os
import tempfile
from datetime import datetime, timezone

from examdesk.ingestion.article_types import Candidate, RawItem, ScopeKey
from examdesk.ingestion.url_utils import candidate_id
from examdesk.storage.sqlite_repo import SQLiteRepo


SCOPE = ScopeKey(2025, 3, "banking-finance", "rbi-news")


def temp_repo(testcase):
    """SQLiteRepo on a temp file that is removed with the test."""
    tmp = tempfile.TemporaryDirectory()
    testcase.addCleanup(tmp.cleanup)
    return SQLiteRepo(os.path.join(tmp.name, "test.db"))


def make_candidate(n, scope=SCOPE, *, day=None, source="rbi.org.in", snippet=None, provider="feed"):
    url = f"https://rbi.org.in/press/{n}"
    published = datetime(scope.year, scope.month, day, 9, 0, tzinfo=timezone.utc) if day else None
    return Candidate(
        id=candidate_id(url, f"Item {n}", source),
        year=scope.year,
        month=scope.month,
        section=scope.section,
        category=scope.category,
        title=f"Item {n}",
        url=url,
        source=source,
        snippet=snippet,
        published_at=published,
        provider=provider,
    )


def raw_item(n, *, day=None, provider="archive", title=None, host="www.thehindu.com"):
    published = datetime(2025, 3, day, 12, 0, tzinfo=timezone.utc) if day else None
    return RawItem(
        title=title or f"Story {n}",
        url=f"https://{host}/news/{n}",
        source=host,
        published_at=published,
        provider=provider,
    )


class FakeOracle:
    """Returns queued answers in order; an Exception instance in the queue is raised."""

    model = "fake/model"

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def complete(self, system_prompt, user_prompt, *, max_tokens=None):
        self.calls.append((system_prompt, user_prompt))
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeArchive:
    def __init__(self, items=None):
        self.items = list(items or [])
        self.calls = []

    def fetch_archive(self, year, month, category, max_records=50):
        self.calls.append((year, month, category, max_records))
        return list(self.items)


class FakeSearch:
    def __init__(self, items=None):
        self.items = list(items or [])
        self.queries = []

    def search(self, query, *, num=15, country="in"):
        self.queries.append(query)
        return list(self.items)
