"""Selection (rerank) engine.

Loads the capped candidate set for a scope, reuses a stored selection when
the set hash and prompt version match, otherwise asks the oracle for the
most exam-relevant indices and stores the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from examdesk.ingestion.article_types import Candidate, ScopeKey
from examdesk.ingestion.url_utils import candidate_set_hash
from examdesk.llm.oracle import OracleClient, OracleError, OracleUnavailableError
from examdesk.llm.response_parsing import SelectionMalformed, SelectionOk, parse_selection
from examdesk.selection.prompts import selection_prompts
from examdesk.storage.repo_base import BaseRepo, RepoError, Selection

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FRESH = "fresh"
SOURCE_EMPTY = "empty"


class SelectionFailedError(Exception):
    """The oracle produced nothing usable for this candidate set."""

    pass


@dataclass(frozen=True)
class RerankResult:
    items: List[Candidate]
    source: str
    candidate_count: int = 0
    candidate_set_hash: Optional[str] = None
    message: Optional[str] = None

    @property
    def selected_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "items": [c.to_dict() for c in self.items],
            "source": self.source,
            "selectedCount": self.selected_count,
            "candidateCount": self.candidate_count,
        }
        if self.message:
            out["message"] = self.message
        return out


@dataclass
class RerankEngine:
    repo: BaseRepo
    oracle: OracleClient
    max_candidates: int = 120
    selection_size: int = 20
    prompt_version: int = 1
    max_tokens: int = 500
    oracle_calls: int = field(default=0, init=False)

    def rerank(self, scope: ScopeKey) -> RerankResult:
        candidates = self.repo.list_candidates(scope, limit=self.max_candidates)
        if not candidates:
            return RerankResult(
                items=[],
                source=SOURCE_EMPTY,
                message="No candidates found. Run candidate acquisition first.",
            )
        logger.info(f"Loaded {len(candidates)} candidates for reranking {scope.label()}")

        set_hash = candidate_set_hash([c.id for c in candidates])
        by_id = {c.id: c for c in candidates}

        cached = self.repo.get_selection(scope, set_hash, self.prompt_version)
        if cached is not None:
            logger.info(f"Using cached selection for {scope.label()} ({set_hash})")
            items = [by_id[i] for i in cached.selected_ids if i in by_id]
            return RerankResult(items=items, source=SOURCE_CACHE, candidate_count=len(candidates), candidate_set_hash=set_hash)

        selected_ids = self._select(scope, candidates)

        try:
            self.repo.insert_selection(
                Selection(
                    scope=scope,
                    candidate_set_hash=set_hash,
                    prompt_version=self.prompt_version,
                    selected_ids=selected_ids,
                )
            )
        except RepoError as e:
            # The caller still gets this selection; the next identical call recomputes
            logger.error(f"Failed to store selection for {scope.label()}: {e}")

        items = [by_id[i] for i in selected_ids]
        return RerankResult(items=items, source=SOURCE_FRESH, candidate_count=len(candidates), candidate_set_hash=set_hash)

    def _select(self, scope: ScopeKey, candidates: List[Candidate]) -> List[str]:
        system, user = selection_prompts(scope.category, candidates, self.selection_size)
        self.oracle_calls += 1
        try:
            text = self.oracle.complete(system, user, max_tokens=self.max_tokens)
        except OracleUnavailableError as e:
            raise SelectionFailedError(f"Oracle unavailable: {e}") from e
        except OracleError as e:
            raise SelectionFailedError(f"Oracle error: {e}") from e

        result = parse_selection(text, candidate_count=len(candidates), limit=self.selection_size)
        if isinstance(result, SelectionMalformed):
            logger.error(f"No JSON array in oracle response: {result.raw[:300]!r}")
            raise SelectionFailedError("Invalid oracle response format")
        if isinstance(result, SelectionOk) and not result.indices:
            raise SelectionFailedError("No valid selections from oracle")
        logger.info(f"Oracle selected {len(result.indices)} items for {scope.label()}")
        return [candidates[i].id for i in result.indices]
