"""Enrichment quota gate.

Billing and entitlement live elsewhere; the pipeline only asks "how many
more enrichments may this user run today?" and reports usage afterwards.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional, Tuple


@dataclass(frozen=True)
class Entitlement:
    plan: str = "free"
    export_enabled: bool = False
    daily_enrich_quota: int = 10


class BaseQuotaGate:
    def entitlement(self, user_id: str) -> Entitlement:
        raise NotImplementedError

    def remaining(self, user_id: str) -> int:
        raise NotImplementedError

    def record_usage(self, user_id: str, amount: int) -> None:
        raise NotImplementedError


class DailyQuotaGate(BaseQuotaGate):
    """In-process per-user counters that reset at UTC midnight."""

    def __init__(
        self,
        *,
        default_quota: int = 10,
        entitlements: Optional[Dict[str, Entitlement]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.default_quota = int(default_quota)
        self._entitlements = dict(entitlements or {})
        self._today = today or (lambda: datetime.now(timezone.utc).date())
        self._usage: Dict[Tuple[str, date], int] = {}
        self._lock = threading.Lock()

    def set_entitlement(self, user_id: str, entitlement: Entitlement) -> None:
        self._entitlements[user_id] = entitlement

    def entitlement(self, user_id: str) -> Entitlement:
        ent = self._entitlements.get(user_id)
        if ent is not None:
            return ent
        return Entitlement(plan="free", daily_enrich_quota=self.default_quota)

    def used_today(self, user_id: str) -> int:
        with self._lock:
            return self._usage.get((user_id, self._today()), 0)

    def remaining(self, user_id: str) -> int:
        return self.entitlement(user_id).daily_enrich_quota - self.used_today(user_id)

    def record_usage(self, user_id: str, amount: int) -> None:
        if amount <= 0:
            return
        today = self._today()
        key = (user_id, today)
        with self._lock:
            # Counters from earlier days are never read again
            for stale in [k for k in self._usage if k[1] < today]:
                del self._usage[stale]
            self._usage[key] = self._usage.get(key, 0) + int(amount)
