"""Storage records and the repository interface shared by both backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from examdesk.ingestion.article_types import Candidate, ScopeKey
from examdesk.ingestion.dates import iso_z


class RepoError(Exception):
    """Storage driver failure (connection, constraint, bad row)."""

    pass


@dataclass(frozen=True)
class Selection:
    """Oracle-chosen candidate ids for one (scope, set hash, prompt version)."""

    scope: ScopeKey
    candidate_set_hash: str
    prompt_version: int
    selected_ids: List[str]
    created_at: Optional[datetime] = field(default=None, compare=False)


@dataclass(frozen=True)
class EnrichedItem:
    candidate_id: str
    summary: str
    exam_points: List[str]
    model: Optional[str]
    prompt_version: int
    mcqs: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "summary": self.summary,
            "exam_points": list(self.exam_points),
            "mcqs": self.mcqs,
            "model": self.model,
            "prompt_version": self.prompt_version,
            "created_at": iso_z(self.created_at) if self.created_at else None,
        }


class BaseRepo:
    """Candidate / selection / enrichment store.

    Every write is insert-if-absent, so overlapping runs converge on the
    same rows.
    """

    def ensure_schema(self) -> None:
        raise NotImplementedError

    # Candidates
    def count_candidates(self, scope: ScopeKey) -> int:
        raise NotImplementedError

    def list_candidates(self, scope: ScopeKey, *, limit: int) -> List[Candidate]:
        """Newest first (undated last), ties by id."""
        raise NotImplementedError

    def insert_candidates(self, candidates: Sequence[Candidate]) -> int:
        """Insert, ignoring rows already present; returns the number inserted."""
        raise NotImplementedError

    def get_candidates_by_ids(self, ids: Sequence[str]) -> Dict[str, Candidate]:
        raise NotImplementedError

    # Selections
    def get_selection(self, scope: ScopeKey, candidate_set_hash: str, prompt_version: int) -> Optional[Selection]:
        raise NotImplementedError

    def insert_selection(self, selection: Selection) -> Selection:
        """Insert if absent; returns the stored row (the existing one on conflict)."""
        raise NotImplementedError

    # Enrichments
    def get_enrichments(self, candidate_ids: Sequence[str]) -> Dict[str, EnrichedItem]:
        raise NotImplementedError

    def insert_enrichment(self, item: EnrichedItem) -> EnrichedItem:
        """Insert if absent; returns the stored row (the existing one on conflict)."""
        raise NotImplementedError
