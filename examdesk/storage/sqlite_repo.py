"""SQLite repository for local runs and tests (same contract as PostgresRepo)."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from examdesk.ingestion.article_types import Candidate, ScopeKey
from examdesk.ingestion.dates import iso_z
from examdesk.storage.repo_base import BaseRepo, EnrichedItem, RepoError, Selection

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS candidates (
        id TEXT NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
        section TEXT NOT NULL,
        category TEXT NOT NULL,
        title TEXT NOT NULL,
        url TEXT,
        source TEXT NOT NULL,
        snippet TEXT,
        published_at TEXT,
        provider TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (year, month, section, category, id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_candidates_id ON candidates (id)",
    """
    CREATE TABLE IF NOT EXISTS selections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        section TEXT NOT NULL,
        category TEXT NOT NULL,
        candidate_set_hash TEXT NOT NULL,
        prompt_version INTEGER NOT NULL,
        selected_ids TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (year, month, section, category, candidate_set_hash, prompt_version)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS enriched_items (
        candidate_id TEXT PRIMARY KEY,
        summary TEXT NOT NULL,
        exam_points TEXT NOT NULL DEFAULT '[]',
        mcqs TEXT,
        model TEXT,
        prompt_version INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
]


def _now() -> str:
    return iso_z(datetime.now(timezone.utc))


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _row_to_candidate(row: sqlite3.Row) -> Candidate:
    return Candidate(
        id=row["id"],
        year=int(row["year"]),
        month=int(row["month"]),
        section=row["section"],
        category=row["category"],
        title=row["title"],
        url=row["url"],
        source=row["source"],
        snippet=row["snippet"],
        published_at=_parse_ts(row["published_at"]),
        provider=row["provider"],
        created_at=_parse_ts(row["created_at"]),
    )


class SQLiteRepo(BaseRepo):
    def __init__(self, db_path: str = "examdesk.db"):
        self.db_path = db_path
        self.max_retries = 3
        self.retry_delay = 1.0
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.ensure_schema()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Connection with WAL enabled; retries while the file is locked."""
        conn = None
        for attempt in range(self.max_retries):
            try:
                conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
                break
            except sqlite3.OperationalError as e:
                if conn is not None:
                    conn.close()
                    conn = None
                if "database is locked" in str(e) and attempt < self.max_retries - 1:
                    logger.warning(f"Database locked, retrying in {self.retry_delay}s (attempt {attempt + 1})")
                    time.sleep(self.retry_delay)
                    continue
                raise RepoError(f"Database connection failed: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RepoError(f"Database error: {e}") from e
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self.get_connection() as conn:
            for stmt in SCHEMA_STATEMENTS:
                conn.execute(stmt)

    # Candidates
    def count_candidates(self, scope: ScopeKey) -> int:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM candidates WHERE year = ? AND month = ? AND section = ? AND category = ?",
                (scope.year, scope.month, scope.section, scope.category),
            ).fetchone()
        return int(row[0] or 0)

    def list_candidates(self, scope: ScopeKey, *, limit: int) -> List[Candidate]:
        with self.get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM candidates
                WHERE year = ? AND month = ? AND section = ? AND category = ?
                ORDER BY published_at IS NULL, published_at DESC, id ASC
                LIMIT ?
                """,
                (scope.year, scope.month, scope.section, scope.category, max(0, int(limit))),
            ).fetchall()
        return [_row_to_candidate(r) for r in rows]

    def insert_candidates(self, candidates: Sequence[Candidate]) -> int:
        if not candidates:
            return 0
        inserted = 0
        now = _now()
        with self.get_connection() as conn:
            for c in candidates:
                cur = conn.execute(
                    """
                    INSERT OR IGNORE INTO candidates (
                        id, year, month, section, category, title, url, source, snippet,
                        published_at, provider, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        c.id,
                        c.year,
                        c.month,
                        c.section,
                        c.category,
                        c.title,
                        c.url,
                        c.source,
                        c.snippet,
                        iso_z(c.published_at) if c.published_at else None,
                        c.provider,
                        now,
                    ),
                )
                inserted += cur.rowcount or 0
        return inserted

    def get_candidates_by_ids(self, ids: Sequence[str]) -> Dict[str, Candidate]:
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM candidates WHERE id IN ({placeholders}) ORDER BY created_at ASC",
                list(ids),
            ).fetchall()
        out: Dict[str, Candidate] = {}
        for r in rows:
            out.setdefault(r["id"], _row_to_candidate(r))
        return out

    # Selections
    def get_selection(self, scope: ScopeKey, candidate_set_hash: str, prompt_version: int) -> Optional[Selection]:
        with self.get_connection() as conn:
            row = conn.execute(
                """
                SELECT selected_ids, created_at FROM selections
                WHERE year = ? AND month = ? AND section = ? AND category = ?
                  AND candidate_set_hash = ? AND prompt_version = ?
                """,
                (scope.year, scope.month, scope.section, scope.category, candidate_set_hash, int(prompt_version)),
            ).fetchone()
        if not row:
            return None
        try:
            ids = json.loads(row["selected_ids"] or "[]")
        except json.JSONDecodeError as e:
            raise RepoError(f"Corrupt selection row for {scope.label()}: {e}") from e
        return Selection(
            scope=scope,
            candidate_set_hash=candidate_set_hash,
            prompt_version=int(prompt_version),
            selected_ids=[str(x) for x in ids],
            created_at=_parse_ts(row["created_at"]),
        )

    def insert_selection(self, selection: Selection) -> Selection:
        s = selection.scope
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO selections (
                    year, month, section, category, candidate_set_hash, prompt_version, selected_ids, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    s.year,
                    s.month,
                    s.section,
                    s.category,
                    selection.candidate_set_hash,
                    int(selection.prompt_version),
                    json.dumps(list(selection.selected_ids)),
                    _now(),
                ),
            )
        stored = self.get_selection(s, selection.candidate_set_hash, selection.prompt_version)
        return stored or selection

    # Enrichments
    def get_enrichments(self, candidate_ids: Sequence[str]) -> Dict[str, EnrichedItem]:
        if not candidate_ids:
            return {}
        placeholders = ",".join("?" for _ in candidate_ids)
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM enriched_items WHERE candidate_id IN ({placeholders})",
                list(candidate_ids),
            ).fetchall()
        out: Dict[str, EnrichedItem] = {}
        for r in rows:
            mcqs: Any = json.loads(r["mcqs"]) if r["mcqs"] else None
            out[r["candidate_id"]] = EnrichedItem(
                candidate_id=r["candidate_id"],
                summary=r["summary"],
                exam_points=[str(p) for p in json.loads(r["exam_points"] or "[]")],
                mcqs=mcqs if isinstance(mcqs, list) else None,
                model=r["model"],
                prompt_version=int(r["prompt_version"]),
                created_at=_parse_ts(r["created_at"]),
            )
        return out

    def insert_enrichment(self, item: EnrichedItem) -> EnrichedItem:
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO enriched_items (
                    candidate_id, summary, exam_points, mcqs, model, prompt_version, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.candidate_id,
                    item.summary,
                    json.dumps(list(item.exam_points)),
                    json.dumps(item.mcqs) if item.mcqs is not None else None,
                    item.model,
                    int(item.prompt_version),
                    _now(),
                ),
            )
        stored = self.get_enrichments([item.candidate_id]).get(item.candidate_id)
        return stored or item
