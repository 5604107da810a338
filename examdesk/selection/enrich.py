"""Enrichment engine: exam summary + key points for user-picked candidates."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence

from examdesk.contracts.enrichment import coerce_enrichment, fallback_enrichment
from examdesk.ingestion.article_types import Candidate
from examdesk.llm.oracle import OracleClient, OracleError
from examdesk.llm.response_parsing import extract_json_object
from examdesk.selection.prompts import enrichment_prompts
from examdesk.selection.quota import BaseQuotaGate
from examdesk.storage.repo_base import BaseRepo, EnrichedItem, RepoError

logger = logging.getLogger(__name__)


class EnrichmentRequestError(ValueError):
    """Empty batch or batch over the per-request cap."""

    pass


class CandidatesNotFoundError(LookupError):
    pass


class QuotaExceededError(Exception):
    def __init__(self, remaining: int, requested: int, plan: str):
        super().__init__(f"Daily enrichment limit reached. Remaining: {remaining}, Requested: {requested}")
        self.remaining = remaining
        self.requested = requested
        self.plan = plan


@dataclass(frozen=True)
class EnrichResult:
    enrichments: List[EnrichedItem]
    source: str  # "cache" | "llm"
    credits_used: int
    remaining_quota: int
    errors: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "enrichments": [e.to_dict() for e in self.enrichments],
            "source": self.source,
            "credits_used": self.credits_used,
            "remaining_quota": self.remaining_quota,
        }
        if self.errors:
            out["errors"] = list(self.errors)
        return out


@dataclass
class EnrichmentEngine:
    repo: BaseRepo
    oracle: OracleClient
    quota: BaseQuotaGate
    max_items: int = 5
    prompt_version: int = 1
    delay_seconds: float = 0.5
    max_tokens: int = 500
    sleep: Callable[[float], None] = time.sleep

    def enrich(self, user_id: str, candidate_ids: Sequence[str]) -> EnrichResult:
        ids = list(dict.fromkeys(str(i) for i in (candidate_ids or []) if i))
        if not ids:
            raise EnrichmentRequestError("Missing required parameter: candidate ids")
        if len(ids) > self.max_items:
            raise EnrichmentRequestError(f"Maximum {self.max_items} items per request")

        # Whole batch is rejected before any oracle spend
        ent = self.quota.entitlement(user_id)
        remaining = self.quota.remaining(user_id)
        if remaining < len(ids):
            raise QuotaExceededError(remaining=remaining, requested=len(ids), plan=ent.plan)

        found = self.repo.get_candidates_by_ids(ids)
        if not found:
            raise CandidatesNotFoundError("Candidates not found")

        errors: List[Dict[str, str]] = [{"candidate_id": i, "error": "not found"} for i in ids if i not in found]
        existing = self.repo.get_enrichments([i for i in ids if i in found])
        to_enrich = [found[i] for i in ids if i in found and i not in existing]

        if not to_enrich:
            return EnrichResult(
                enrichments=[existing[i] for i in ids if i in existing],
                source="cache",
                credits_used=0,
                remaining_quota=remaining,
                errors=errors,
            )

        fresh: Dict[str, EnrichedItem] = {}
        for n, candidate in enumerate(to_enrich):
            if n and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)
            try:
                fresh[candidate.id] = self._enrich_one(candidate)
            except (OracleError, RepoError) as e:
                logger.error(f"Error enriching item {candidate.id}: {e}")
                errors.append({"candidate_id": candidate.id, "error": str(e)})

        used = len(fresh)
        if used:
            self.quota.record_usage(user_id, used)

        ordered = []
        for i in ids:
            if i in fresh:
                ordered.append(fresh[i])
            elif i in existing:
                ordered.append(existing[i])
        return EnrichResult(
            enrichments=ordered,
            source="llm",
            credits_used=used,
            remaining_quota=remaining - used,
            errors=errors,
        )

    def _enrich_one(self, candidate: Candidate) -> EnrichedItem:
        system, user = enrichment_prompts(candidate)
        text = self.oracle.complete(system, user, max_tokens=self.max_tokens)
        parsed = extract_json_object(text)
        if parsed is None:
            logger.warning(f"Unparseable enrichment for {candidate.id}, using fallback")
            payload = fallback_enrichment(candidate.title, candidate.snippet)
        else:
            payload = coerce_enrichment(parsed, title=candidate.title, snippet=candidate.snippet)
        item = EnrichedItem(
            candidate_id=candidate.id,
            summary=payload.summary,
            exam_points=payload.exam_points,
            mcqs=payload.mcqs,
            model=getattr(self.oracle, "model", None),
            prompt_version=self.prompt_version,
        )
        # Insert-if-absent: a concurrent run may have won; keep whatever is stored
        return self.repo.insert_enrichment(item)
