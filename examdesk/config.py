"""Environment-driven configuration plus wiring helpers for the entry points."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from examdesk.llm.oracle import DEFAULT_BASE_URL, DEFAULT_MODEL, OracleClient
from examdesk.llm.retry import RetryPolicy
from examdesk.storage.repo_base import BaseRepo

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Config:
    """Tuning constants and credentials (all overridable from the environment)."""

    # Acquisition
    candidate_threshold: int = 30
    max_candidates_return: int = 80
    candidate_lookup_limit: int = 200
    feed_concurrency: int = 4
    feed_timeout: float = 15
    archive_max_records: int = 50
    archive_timeout: float = 30
    max_search_queries: int = 2
    search_results_per_query: int = 15
    search_country: str = "in"

    # Selection / enrichment
    rerank_max_candidates: int = 120
    selection_size: int = 20
    selection_prompt_version: int = 1
    enrich_max_items: int = 5
    enrich_delay_seconds: float = 0.5
    enrich_prompt_version: int = 1
    default_daily_enrich_quota: int = 10

    # Oracle retry
    oracle_max_attempts: int = 3
    oracle_backoff_seconds: float = 2.0

    # Daily bulk ingestion
    ingest_max_items_per_feed: int = 50
    ingest_feed_concurrency: int = 3
    ingest_batch_delay_seconds: float = 1.0

    # Credentials
    serper_api_key: str = ""
    llm_api_key: str = ""
    llm_base_url: str = DEFAULT_BASE_URL
    llm_model: str = DEFAULT_MODEL

    # Storage
    pg_dsn: str = ""
    db_path: str = "examdesk.db"

    @classmethod
    def from_env(cls, *, load_dotenv_file: bool = True) -> "Config":
        if load_dotenv_file:
            load_dotenv()
        config = cls(
            candidate_threshold=_int("CANDIDATE_THRESHOLD", 30),
            max_candidates_return=_int("MAX_CANDIDATES_RETURN", 80),
            candidate_lookup_limit=_int("CANDIDATE_LOOKUP_LIMIT", 200),
            feed_concurrency=_int("FEED_CONCURRENCY", 4),
            feed_timeout=_float("FEED_TIMEOUT", 15),
            archive_max_records=_int("ARCHIVE_MAX_RECORDS", 50),
            archive_timeout=_float("ARCHIVE_TIMEOUT", 30),
            max_search_queries=_int("MAX_SEARCH_QUERIES", 2),
            search_results_per_query=_int("SEARCH_RESULTS_PER_QUERY", 15),
            search_country=os.getenv("SEARCH_COUNTRY", "in"),
            rerank_max_candidates=_int("RERANK_MAX_CANDIDATES", 120),
            selection_size=_int("SELECTION_SIZE", 20),
            selection_prompt_version=_int("SELECTION_PROMPT_VERSION", 1),
            enrich_max_items=_int("ENRICH_MAX_ITEMS", 5),
            enrich_delay_seconds=_float("ENRICH_DELAY_SECONDS", 0.5),
            enrich_prompt_version=_int("ENRICH_PROMPT_VERSION", 1),
            default_daily_enrich_quota=_int("DEFAULT_DAILY_ENRICH_QUOTA", 10),
            oracle_max_attempts=_int("ORACLE_MAX_ATTEMPTS", 3),
            oracle_backoff_seconds=_float("ORACLE_BACKOFF_SECONDS", 2.0),
            ingest_max_items_per_feed=_int("INGEST_MAX_ITEMS_PER_FEED", 50),
            ingest_feed_concurrency=_int("INGEST_FEED_CONCURRENCY", 3),
            ingest_batch_delay_seconds=_float("INGEST_BATCH_DELAY_SECONDS", 1.0),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            llm_api_key=(
                os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY") or ""
            ),
            llm_base_url=os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL),
            llm_model=os.getenv("LLM_MODEL", DEFAULT_MODEL),
            pg_dsn=(os.getenv("PG_DSN") or "").strip(),
            db_path=os.getenv("DB_PATH", "examdesk.db"),
        )
        config._validate()
        return config

    def _validate(self):
        """Validate configuration values"""
        errors = []

        positive = {
            "CANDIDATE_THRESHOLD": self.candidate_threshold,
            "MAX_CANDIDATES_RETURN": self.max_candidates_return,
            "CANDIDATE_LOOKUP_LIMIT": self.candidate_lookup_limit,
            "FEED_CONCURRENCY": self.feed_concurrency,
            "ARCHIVE_MAX_RECORDS": self.archive_max_records,
            "SEARCH_RESULTS_PER_QUERY": self.search_results_per_query,
            "RERANK_MAX_CANDIDATES": self.rerank_max_candidates,
            "SELECTION_SIZE": self.selection_size,
            "ENRICH_MAX_ITEMS": self.enrich_max_items,
            "ORACLE_MAX_ATTEMPTS": self.oracle_max_attempts,
            "INGEST_MAX_ITEMS_PER_FEED": self.ingest_max_items_per_feed,
            "INGEST_FEED_CONCURRENCY": self.ingest_feed_concurrency,
        }
        for name, value in positive.items():
            if value < 1:
                errors.append(f"{name} must be positive")

        if self.max_search_queries < 0:
            errors.append("MAX_SEARCH_QUERIES cannot be negative")
        if self.default_daily_enrich_quota < 0:
            errors.append("DEFAULT_DAILY_ENRICH_QUOTA cannot be negative")

        for name, value in (("FEED_TIMEOUT", self.feed_timeout), ("ARCHIVE_TIMEOUT", self.archive_timeout)):
            if not 1 <= value <= 300:
                errors.append(f"{name} must be between 1 and 300 seconds")

        for name, value in (
            ("ENRICH_DELAY_SECONDS", self.enrich_delay_seconds),
            ("ORACLE_BACKOFF_SECONDS", self.oracle_backoff_seconds),
            ("INGEST_BATCH_DELAY_SECONDS", self.ingest_batch_delay_seconds),
        ):
            if value < 0:
                errors.append(f"{name} cannot be negative")

        if self.rerank_max_candidates < self.selection_size:
            errors.append("RERANK_MAX_CANDIDATES must be at least SELECTION_SIZE")

        if len(self.search_country) != 2:
            errors.append("SEARCH_COUNTRY must be a two-letter country code")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"- {e}" for e in errors))

    def build_repo(self) -> BaseRepo:
        """Postgres when PG_DSN is set, SQLite otherwise."""
        if self.pg_dsn:
            from examdesk.storage.postgres_repo import PostgresRepo

            repo: BaseRepo = PostgresRepo(self.pg_dsn)
            repo.ensure_schema()
            return repo
        from examdesk.storage.sqlite_repo import SQLiteRepo

        return SQLiteRepo(self.db_path)

    def build_oracle(self) -> Optional[OracleClient]:
        if not self.llm_api_key:
            return None
        return OracleClient(
            api_key=self.llm_api_key,
            model=self.llm_model,
            base_url=self.llm_base_url,
            retry_policy=RetryPolicy(
                max_attempts=self.oracle_max_attempts,
                backoff_seconds=self.oracle_backoff_seconds,
            ),
        )


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
