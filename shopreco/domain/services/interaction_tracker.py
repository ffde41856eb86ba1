# shopreco/domain/services/interaction_tracker.py
import logging
import random
import string
import time
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from shopreco.domain.models.interaction import (
    InteractionEvent,
    InteractionType,
    PreferenceRow,
    PreferenceUpdate,
    TrendingScore,
    UserAnalytics,
    UserInteraction,
    UserPreference,
    DEFAULT_PRICE_RANGE,
)
from shopreco.domain.repositories.fallback_interaction_repo import FallbackInteractionStore

logger = logging.getLogger(__name__)

# How many recent events are folded into a UserPreference
PREFERENCE_HISTORY_LIMIT = 100

# Trending window and per-event weights (increasing with purchase intent)
TRENDING_WINDOW = timedelta(days=7)
INTERACTION_WEIGHTS: Dict[InteractionType, int] = {
    InteractionType.VIEW: 1,
    InteractionType.WISHLIST_ADD: 2,
    InteractionType.LIKE: 3,
    InteractionType.CART_ADD: 5,
    InteractionType.PURCHASE: 10,
}
# Stored form of the weights: events hold the enum value
TRENDING_WEIGHTS: Dict[str, int] = {kind.value: w for kind, w in INTERACTION_WEIGHTS.items()}

RECENT_ACTIVITY_WINDOW = timedelta(days=7)

_SESSION_ALPHABET = string.digits + string.ascii_lowercase
SESSION_ID_LENGTH = 26

IdentityProvider = Callable[[], Optional[str]]


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Random base-36 token. Scopes events to a browsing session; not a secret."""
    return "".join(random.choices(_SESSION_ALPHABET, k=length))


def _no_identity() -> Optional[str]:
    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_preference(user_id: str, row: Optional[PreferenceRow], history: List[UserInteraction]) -> UserPreference:
    """Reshape a stored preference row plus recent events into a UserPreference."""
    if row is None:
        return UserPreference(user_id=user_id, interaction_history=history)
    return UserPreference(
        user_id=user_id,
        preferred_categories=row.preferred_categories,
        preferred_brands=row.preferred_brands,
        price_range=(row.price_range_min, row.price_range_max),
        preferred_features=row.preferred_features,
        interaction_history=history,
        last_updated=row.updated_at,
    )


class InteractionTracker:
    """
    Records user actions and derives preference and popularity signals.

    Persistence goes through a FallbackInteractionStore (remote, else local).
    Analytics and privacy operations read the local tier only.
    One session id is generated per tracker instance.
    """

    def __init__(
        self,
        store: FallbackInteractionStore,
        identity_provider: IdentityProvider = _no_identity,
        session_id: Optional[str] = None,
    ):
        self.store = store
        self.local = store.local
        self._identity = identity_provider
        self.session_id = session_id or generate_session_id()

    # ------------------------------------------------------------------ write

    async def track_interaction(self, event: InteractionEvent) -> Optional[UserInteraction]:
        """
        Persist one event for the current user. Returns the recorded interaction,
        or None when nobody is signed in (nothing is written in that case).
        """
        user_id = self._identity()
        if not user_id:
            logger.warning("track_interaction skipped: no authenticated user (product_id=%s)", event.product_id)
            return None
        if event.user_id and event.user_id != user_id:
            logger.debug("track_interaction event user_id=%s overridden by session user=%s", event.user_id, user_id)

        interaction = UserInteraction(
            id=uuid.uuid4().hex,
            user_id=user_id,
            product_id=event.product_id,
            interaction_type=event.interaction_type,
            timestamp=_utcnow(),
            session_id=self.session_id,
            metadata=event.metadata,
        )
        await self.store.insert_interaction(interaction)
        logger.info(
            "tracked %s user_id=%s product_id=%s session=%s",
            interaction.interaction_type.value, user_id, interaction.product_id, self.session_id,
        )
        return interaction

    async def update_user_preferences(self, update: PreferenceUpdate) -> Optional[PreferenceRow]:
        """Replace the current user's preference row; fields left out take their defaults."""
        user_id = self._identity()
        if not user_id:
            logger.warning("update_user_preferences skipped: no authenticated user")
            return None

        price_range = update.price_range or DEFAULT_PRICE_RANGE
        row = PreferenceRow(
            user_id=user_id,
            preferred_categories=update.preferred_categories or [],
            preferred_brands=update.preferred_brands or [],
            price_range_min=price_range[0],
            price_range_max=price_range[1],
            preferred_features=update.preferred_features or [],
            updated_at=_utcnow(),
        )
        await self.store.upsert_preference(row)
        logger.info("preferences updated user_id=%s categories=%s brands=%s", user_id, row.preferred_categories, row.preferred_brands)
        return row

    # ------------------------------------------------------------------- read

    async def get_user_preferences(self, user_id: Optional[str] = None) -> UserPreference:
        target = user_id or self._identity()
        if not target:
            return UserPreference.default()

        t0 = time.perf_counter()
        row = await self.store.get_preference(target)
        history = await self.store.recent_interactions(target, PREFERENCE_HISTORY_LIMIT)
        prefs = build_preference(target, row, history)
        logger.info(
            "preferences user_id=%s row=%s history=%s time=%.3fs",
            target, row is not None, len(history), time.perf_counter() - t0,
        )
        return prefs

    async def get_trending_products(self, limit: int = 10) -> List[TrendingScore]:
        """
        Weighted interaction counts over the last 7 days, aggregated by the
        remote tier. Empty on read failure or when there is no activity.
        """
        t0 = time.perf_counter()
        since = _utcnow() - TRENDING_WINDOW
        try:
            ranked = await self.store.trending_scores(since, TRENDING_WEIGHTS, limit)
        except Exception as e:
            logger.error("trending read failed: %s", e)
            return []
        logger.info("trending since=%s returned=%s time=%.3fs", since.isoformat(), len(ranked), time.perf_counter() - t0)
        return ranked

    # ------------------------------------------------------------- local-only

    def get_user_interactions(self, user_id: str) -> List[UserInteraction]:
        return self.local.user_interactions(user_id)

    def _local_preferences(self, user_id: str) -> UserPreference:
        history = list(reversed(self.local.user_interactions(user_id)))
        return build_preference(user_id, self.local.preference(user_id), history)

    def get_user_analytics(self, user_id: str) -> UserAnalytics:
        interactions = self.local.user_interactions(user_id)
        prefs = self._local_preferences(user_id)

        interaction_counts = Counter(i.interaction_type.value for i in interactions)
        category_views = Counter(
            i.metadata.category or "Unknown"
            for i in interactions
            if i.interaction_type == InteractionType.VIEW
        )
        durations = [i.metadata.duration_on_product for i in interactions if i.metadata.duration_on_product is not None]
        avg_duration = sum(durations) / len(durations) if durations else 0.0

        cutoff = _utcnow() - RECENT_ACTIVITY_WINDOW
        recent = sum(1 for i in interactions if i.timestamp > cutoff)

        return UserAnalytics(
            user_id=user_id,
            total_interactions=len(interactions),
            interaction_counts=dict(interaction_counts),
            category_views=dict(category_views),
            avg_session_duration=avg_duration,
            recent_activity=recent,
            preferred_categories=prefs.preferred_categories,
            preferred_brands=prefs.preferred_brands,
            price_range=prefs.price_range,
            account_age=prefs.last_updated,
        )

    def get_popular_categories(self, days: int = 30) -> List[Dict[str, Any]]:
        cutoff = _utcnow() - timedelta(days=days)
        counts = Counter(
            i.metadata.category
            for i in self.local.all_interactions()
            if i.timestamp > cutoff and i.metadata.category
        )
        return [{"category": c, "interactions": n} for c, n in counts.most_common()]

    def clear_user_data(self, user_id: str) -> int:
        # TODO: remote rows in user_interactions/user_preferences are not deleted here;
        # needs a MongoInteractionStore.delete_user once erasure requirements are settled.
        removed = self.local.clear_user(user_id)
        logger.info("user data cleared locally user_id=%s interactions_removed=%s", user_id, removed)
        return removed

    def export_user_data(self, user_id: str) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "interactions": [i.model_dump(mode="json") for i in self.get_user_interactions(user_id)],
            "preferences": self._local_preferences(user_id).model_dump(mode="json"),
            "analytics": self.get_user_analytics(user_id).model_dump(mode="json"),
            "export_date": _utcnow().isoformat(),
        }
