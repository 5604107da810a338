"""Postgres schema management for ExamDesk.

Schema creation is idempotent (CREATE IF NOT EXISTS) so workers can call it
on every start.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Candidates: one row per (scope key, content hash); append-only
    """
    CREATE TABLE IF NOT EXISTS candidates (
      id TEXT NOT NULL,
      year INT NOT NULL,
      month INT NOT NULL CHECK (month BETWEEN 1 AND 12),
      section TEXT NOT NULL,
      category TEXT NOT NULL,
      title TEXT NOT NULL,
      url TEXT,
      source TEXT NOT NULL,
      snippet TEXT,
      published_at TIMESTAMPTZ,
      provider TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      PRIMARY KEY (year, month, section, category, id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_candidates_id ON candidates (id);",
    """
    CREATE INDEX IF NOT EXISTS idx_candidates_scope_published
      ON candidates (year, month, section, category, published_at DESC NULLS LAST, id);
    """,
    # Selections: immutable, one per (scope, set hash, prompt version)
    """
    CREATE TABLE IF NOT EXISTS selections (
      id BIGSERIAL PRIMARY KEY,
      year INT NOT NULL,
      month INT NOT NULL,
      section TEXT NOT NULL,
      category TEXT NOT NULL,
      candidate_set_hash TEXT NOT NULL,
      prompt_version INT NOT NULL,
      selected_ids JSONB NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (year, month, section, category, candidate_set_hash, prompt_version)
    );
    """,
    # Enrichments: at most one per candidate id
    """
    CREATE TABLE IF NOT EXISTS enriched_items (
      candidate_id TEXT PRIMARY KEY,
      summary TEXT NOT NULL,
      exam_points JSONB NOT NULL DEFAULT '[]'::jsonb,
      mcqs JSONB,
      model TEXT,
      prompt_version INT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
