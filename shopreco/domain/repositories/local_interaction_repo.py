# shopreco/domain/repositories/local_interaction_repo.py

from __future__ import annotations
from collections import deque
from typing import Deque, Dict, List, Optional
import logging

from shopreco.domain.models.interaction import PreferenceRow, UserInteraction

logger = logging.getLogger(__name__)

DEFAULT_MAX_INTERACTIONS = 1000


class LocalInteractionStore:
    """
    In-process tier. Holds each user's most recent `max_interactions` events
    (oldest evicted first, per user) and one preference row per user.
    Never raises on the store operations; it is the degraded path of last resort.
    """

    def __init__(self, max_interactions: int = DEFAULT_MAX_INTERACTIONS):
        self.max_interactions = max_interactions
        self._interactions: Dict[str, Deque[UserInteraction]] = {}
        self._preferences: Dict[str, PreferenceRow] = {}

    def __len__(self) -> int:
        return sum(len(events) for events in self._interactions.values())

    # ----- InteractionStore protocol -----------------------------------------

    async def insert_interaction(self, interaction: UserInteraction) -> None:
        events = self._interactions.get(interaction.user_id)
        if events is None:
            events = self._interactions[interaction.user_id] = deque(maxlen=self.max_interactions)
        events.append(interaction)

    async def recent_interactions(self, user_id: str, limit: int) -> List[UserInteraction]:
        return list(reversed(self._interactions.get(user_id, ())))[:limit]

    async def get_preference(self, user_id: str) -> Optional[PreferenceRow]:
        return self._preferences.get(user_id)

    async def upsert_preference(self, row: PreferenceRow) -> None:
        self._preferences[row.user_id] = row

    # ----- Local-only helpers (privacy + analytics) --------------------------

    def all_interactions(self) -> List[UserInteraction]:
        """Every stored event across users, oldest first."""
        merged = [i for events in self._interactions.values() for i in events]
        merged.sort(key=lambda i: i.timestamp)
        return merged

    def user_interactions(self, user_id: str) -> List[UserInteraction]:
        return list(self._interactions.get(user_id, ()))

    def preference(self, user_id: str) -> Optional[PreferenceRow]:
        return self._preferences.get(user_id)

    def clear_user(self, user_id: str) -> int:
        """Drop the user's preference row and events. Returns the number of events removed."""
        self._preferences.pop(user_id, None)
        removed = len(self._interactions.pop(user_id, ()))
        logger.debug("local store cleared user_id=%s removed=%s", user_id, removed)
        return removed
