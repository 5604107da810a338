"""Postgres repository (psycopg 3 + plain SQL)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.types.json import Jsonb

from examdesk.ingestion.article_types import Candidate, ScopeKey
from examdesk.storage.postgres_schema import ensure_postgres_schema
from examdesk.storage.repo_base import BaseRepo, EnrichedItem, RepoError, Selection

logger = logging.getLogger(__name__)

_CANDIDATE_COLUMNS = "id, year, month, section, category, title, url, source, snippet, published_at, provider, created_at"


def _utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _row_to_candidate(row: Sequence[Any]) -> Candidate:
    (cid, year, month, section, category, title, url, source, snippet, published_at, provider, created_at) = row
    return Candidate(
        id=cid,
        year=int(year),
        month=int(month),
        section=section,
        category=category,
        title=title,
        url=url,
        source=source,
        snippet=snippet,
        published_at=_utc(published_at),
        provider=provider,
        created_at=_utc(created_at),
    )


class PostgresRepo(BaseRepo):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        try:
            return psycopg.connect(self.pg_dsn, autocommit=True)
        except psycopg.Error as e:
            raise RepoError(f"Postgres connection failed: {e}") from e

    def ensure_schema(self) -> None:
        try:
            ensure_postgres_schema(self.pg_dsn)
        except psycopg.Error as e:
            raise RepoError(f"Schema setup failed: {e}") from e

    # -----------------------------
    # Candidates
    # -----------------------------
    def count_candidates(self, scope: ScopeKey) -> int:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT COUNT(*) FROM candidates
                        WHERE year = %s AND month = %s AND section = %s AND category = %s
                        """,
                        (scope.year, scope.month, scope.section, scope.category),
                    )
                    return int(cur.fetchone()[0] or 0)
        except psycopg.Error as e:
            raise RepoError(f"count_candidates failed for {scope.label()}: {e}") from e

    def list_candidates(self, scope: ScopeKey, *, limit: int) -> List[Candidate]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        SELECT {_CANDIDATE_COLUMNS} FROM candidates
                        WHERE year = %s AND month = %s AND section = %s AND category = %s
                        ORDER BY published_at DESC NULLS LAST, id ASC
                        LIMIT %s
                        """,
                        (scope.year, scope.month, scope.section, scope.category, max(0, int(limit))),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise RepoError(f"list_candidates failed for {scope.label()}: {e}") from e
        return [_row_to_candidate(r) for r in rows]

    def insert_candidates(self, candidates: Sequence[Candidate]) -> int:
        if not candidates:
            return 0
        inserted = 0
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    for c in candidates:
                        cur.execute(
                            """
                            INSERT INTO candidates (
                              id, year, month, section, category, title, url, source, snippet, published_at, provider
                            )
                            VALUES (
                              %(id)s, %(year)s, %(month)s, %(section)s, %(category)s, %(title)s, %(url)s,
                              %(source)s, %(snippet)s, %(published_at)s, %(provider)s
                            )
                            ON CONFLICT (year, month, section, category, id) DO NOTHING
                            """,
                            {
                                "id": c.id,
                                "year": c.year,
                                "month": c.month,
                                "section": c.section,
                                "category": c.category,
                                "title": c.title,
                                "url": c.url,
                                "source": c.source,
                                "snippet": c.snippet,
                                "published_at": c.published_at,
                                "provider": c.provider,
                            },
                        )
                        inserted += cur.rowcount or 0
        except psycopg.Error as e:
            raise RepoError(f"insert_candidates failed: {e}") from e
        return inserted

    def get_candidates_by_ids(self, ids: Sequence[str]) -> Dict[str, Candidate]:
        if not ids:
            return {}
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    # Same article may sit under several scopes; any copy will do
                    cur.execute(
                        f"""
                        SELECT DISTINCT ON (id) {_CANDIDATE_COLUMNS} FROM candidates
                        WHERE id = ANY(%s)
                        ORDER BY id, created_at ASC
                        """,
                        (list(ids),),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise RepoError(f"get_candidates_by_ids failed: {e}") from e
        return {r[0]: _row_to_candidate(r) for r in rows}

    # -----------------------------
    # Selections
    # -----------------------------
    def get_selection(self, scope: ScopeKey, candidate_set_hash: str, prompt_version: int) -> Optional[Selection]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT selected_ids, created_at FROM selections
                        WHERE year = %s AND month = %s AND section = %s AND category = %s
                          AND candidate_set_hash = %s AND prompt_version = %s
                        """,
                        (scope.year, scope.month, scope.section, scope.category, candidate_set_hash, int(prompt_version)),
                    )
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise RepoError(f"get_selection failed for {scope.label()}: {e}") from e
        if not row:
            return None
        selected_ids, created_at = row
        return Selection(
            scope=scope,
            candidate_set_hash=candidate_set_hash,
            prompt_version=int(prompt_version),
            selected_ids=[str(x) for x in (selected_ids or [])],
            created_at=_utc(created_at),
        )

    def insert_selection(self, selection: Selection) -> Selection:
        s = selection.scope
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO selections (
                          year, month, section, category, candidate_set_hash, prompt_version, selected_ids
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (year, month, section, category, candidate_set_hash, prompt_version) DO NOTHING
                        """,
                        (
                            s.year,
                            s.month,
                            s.section,
                            s.category,
                            selection.candidate_set_hash,
                            int(selection.prompt_version),
                            Jsonb(list(selection.selected_ids)),
                        ),
                    )
        except psycopg.Error as e:
            raise RepoError(f"insert_selection failed for {s.label()}: {e}") from e
        stored = self.get_selection(s, selection.candidate_set_hash, selection.prompt_version)
        return stored or selection

    # -----------------------------
    # Enrichments
    # -----------------------------
    def get_enrichments(self, candidate_ids: Sequence[str]) -> Dict[str, EnrichedItem]:
        if not candidate_ids:
            return {}
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT candidate_id, summary, exam_points, mcqs, model, prompt_version, created_at
                        FROM enriched_items
                        WHERE candidate_id = ANY(%s)
                        """,
                        (list(candidate_ids),),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise RepoError(f"get_enrichments failed: {e}") from e
        out: Dict[str, EnrichedItem] = {}
        for (cid, summary, exam_points, mcqs, model, prompt_version, created_at) in rows:
            out[cid] = EnrichedItem(
                candidate_id=cid,
                summary=summary,
                exam_points=[str(p) for p in (exam_points or [])],
                mcqs=mcqs if isinstance(mcqs, list) else None,
                model=model,
                prompt_version=int(prompt_version),
                created_at=_utc(created_at),
            )
        return out

    def insert_enrichment(self, item: EnrichedItem) -> EnrichedItem:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO enriched_items (candidate_id, summary, exam_points, mcqs, model, prompt_version)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        ON CONFLICT (candidate_id) DO NOTHING
                        """,
                        (
                            item.candidate_id,
                            item.summary,
                            Jsonb(list(item.exam_points)),
                            Jsonb(item.mcqs) if item.mcqs is not None else None,
                            item.model,
                            int(item.prompt_version),
                        ),
                    )
        except psycopg.Error as e:
            raise RepoError(f"insert_enrichment failed for {item.candidate_id}: {e}") from e
        stored = self.get_enrichments([item.candidate_id]).get(item.candidate_id)
        return stored or item
