# shopreco/domain/repositories/fallback_interaction_repo.py

from __future__ import annotations
from datetime import datetime
from typing import List, Mapping, Optional
import logging
import time

from shopreco.domain.models.interaction import PreferenceRow, TrendingScore, UserInteraction
from shopreco.domain.repositories.interaction_repo import RemoteInteractionStore
from shopreco.domain.repositories.local_interaction_repo import LocalInteractionStore
from shopreco.utils.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class RemoteStoreUnavailable(RuntimeError):
    """Raised for non-degrading calls when the remote tier is missing or its breaker is open."""


class FallbackInteractionStore:
    """
    Two-tier store: remote (authoritative) then local (always available).

    Every call tries the remote tier while the breaker allows it; a remote
    exception is counted by the breaker and the same call is served by the
    local tier. Writes that land locally stay local: the tiers are never merged.

    `degrade=False` re-raises instead of answering from local; catalog-wide
    aggregates use it since the local tier only holds a slice of the events.
    """

    def __init__(
        self,
        remote: Optional[RemoteInteractionStore],
        local: LocalInteractionStore,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.remote = remote
        self.local = local
        self.breaker = breaker or CircuitBreaker("interaction-store")

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    async def _call(self, op: str, *args, degrade: bool = True):
        if self.remote is not None and self.breaker.allow_request():
            t0 = time.perf_counter()
            try:
                result = await getattr(self.remote, op)(*args)
            except Exception as e:
                self.breaker.record_failure()
                if not degrade:
                    raise
                logger.warning("store %s remote failed after %.3fs, using local tier: %s", op, time.perf_counter() - t0, e)
            else:
                self.breaker.record_success()
                logger.debug("store %s remote ok time=%.3fs", op, time.perf_counter() - t0)
                return result
        elif not degrade:
            reason = "not configured" if self.remote is None else "breaker open"
            raise RemoteStoreUnavailable(f"remote store {reason} for {op}")
        else:
            logger.debug("store %s served locally (remote_enabled=%s)", op, self.remote_enabled)

        return await getattr(self.local, op)(*args)

    async def insert_interaction(self, interaction: UserInteraction) -> None:
        await self._call("insert_interaction", interaction)

    async def recent_interactions(self, user_id: str, limit: int) -> List[UserInteraction]:
        return await self._call("recent_interactions", user_id, limit)

    async def trending_scores(self, since: datetime, weights: Mapping[str, float], limit: int) -> List[TrendingScore]:
        """Remote only: raises when the remote tier is missing, open or failing."""
        return await self._call("trending_scores", since, weights, limit, degrade=False)

    async def get_preference(self, user_id: str) -> Optional[PreferenceRow]:
        return await self._call("get_preference", user_id)

    async def upsert_preference(self, row: PreferenceRow) -> None:
        await self._call("upsert_preference", row)
