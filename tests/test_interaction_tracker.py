"""
InteractionTracker over the two-tier store: a mocked remote tier and the real local tier.

Run: pytest tests/test_interaction_tracker.py -v
"""
import string
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_interaction
from shopreco.domain.models.interaction import (
    InteractionEvent,
    InteractionType,
    PreferenceRow,
    PreferenceUpdate,
    TrendingScore,
)
from shopreco.domain.repositories.fallback_interaction_repo import FallbackInteractionStore
from shopreco.domain.services.interaction_tracker import InteractionTracker, generate_session_id


def _tracker(store, user_id="u1", **kw):
    return InteractionTracker(store, identity_provider=lambda: user_id, **kw)


def _event(product_id="1", kind=InteractionType.VIEW, **metadata):
    return InteractionEvent(product_id=product_id, interaction_type=kind, metadata=metadata)


class TestSession:

    def test_session_id_shape(self):
        sid = generate_session_id()
        assert len(sid) == 26
        assert set(sid) <= set(string.digits + string.ascii_lowercase)

    def test_one_session_per_tracker(self, store):
        tracker = _tracker(store)
        assert tracker.session_id == tracker.session_id
        assert _tracker(store, session_id="abc").session_id == "abc"


class TestTrackInteraction:

    @pytest.mark.asyncio
    async def test_anonymous_is_not_persisted(self, store, remote_store, local_store):
        result = await _tracker(store, user_id=None).track_interaction(_event())

        assert result is None
        remote_store.insert_interaction.assert_not_called()
        assert len(local_store) == 0

    @pytest.mark.asyncio
    async def test_remote_write(self, store, remote_store, local_store):
        tracker = _tracker(store, session_id="s-1")
        result = await tracker.track_interaction(_event("42", InteractionType.CART_ADD, price=19.99))

        assert result.user_id == "u1"
        assert result.session_id == "s-1"
        assert result.metadata.price == 19.99
        assert result.timestamp.tzinfo is not None
        remote_store.insert_interaction.assert_awaited_once_with(result)
        assert len(local_store) == 0

    @pytest.mark.asyncio
    async def test_identity_overrides_event_user(self, store):
        event = InteractionEvent(product_id="1", interaction_type=InteractionType.LIKE, user_id="someone-else")
        result = await _tracker(store).track_interaction(event)
        assert result.user_id == "u1"

    @pytest.mark.asyncio
    async def test_remote_failure_lands_locally(self, store, remote_store, local_store):
        remote_store.insert_interaction.side_effect = ConnectionError("network down")
        result = await _tracker(store).track_interaction(_event())

        assert result is not None
        assert local_store.all_interactions() == [result]

    @pytest.mark.asyncio
    async def test_no_remote_configured(self, local_store):
        store = FallbackInteractionStore(remote=None, local=local_store)
        await _tracker(store).track_interaction(_event())
        assert len(local_store) == 1


class TestLocalCap:

    @pytest.mark.asyncio
    async def test_oldest_evicted_past_cap(self, local_store):
        for n in range(1001):
            await local_store.insert_interaction(make_interaction("u1", str(n)))

        stored = local_store.all_interactions()
        assert len(stored) == 1000
        assert stored[0].product_id == "1"
        assert stored[-1].product_id == "1000"

    @pytest.mark.asyncio
    async def test_cap_is_per_user(self, local_store):
        await local_store.insert_interaction(make_interaction("quiet", "q1", days_ago=1))
        for n in range(1001):
            await local_store.insert_interaction(make_interaction("busy", str(n)))

        assert [i.product_id for i in local_store.user_interactions("quiet")] == ["q1"]
        assert len(local_store.user_interactions("busy")) == 1000
        assert len(local_store) == 1001


class TestPreferences:

    @pytest.mark.asyncio
    async def test_anonymous_gets_defaults(self, store, remote_store):
        prefs = await _tracker(store, user_id=None).get_user_preferences()

        assert prefs.user_id == "anonymous"
        assert prefs.price_range == (0.0, 3000.0)
        assert prefs.preferred_categories == []
        assert prefs.interaction_history == []
        remote_store.get_preference.assert_not_called()

    @pytest.mark.asyncio
    async def test_row_and_history_from_remote(self, store, remote_store):
        updated = datetime(2024, 5, 1, tzinfo=timezone.utc)
        remote_store.get_preference.return_value = PreferenceRow(
            user_id="u1", preferred_categories=["Electronics"], preferred_brands=["Sony"],
            price_range_min=100, price_range_max=900, updated_at=updated,
        )
        history = [make_interaction("u1", "3"), make_interaction("u1", "1", days_ago=2)]
        remote_store.recent_interactions.return_value = history

        prefs = await _tracker(store).get_user_preferences("u1")

        assert prefs.preferred_brands == ["Sony"]
        assert prefs.price_range == (100, 900)
        assert prefs.last_updated == updated
        assert prefs.interaction_history == history
        remote_store.recent_interactions.assert_awaited_once_with("u1", 100)

    @pytest.mark.asyncio
    async def test_no_row_yields_defaults_with_history(self, store, remote_store):
        remote_store.recent_interactions.return_value = [make_interaction("u9", "5")]
        prefs = await _tracker(store).get_user_preferences("u9")

        assert prefs.user_id == "u9"
        assert prefs.price_range == (0.0, 3000.0)
        assert [i.product_id for i in prefs.interaction_history] == ["5"]

    @pytest.mark.asyncio
    async def test_remote_failure_reads_local(self, store, remote_store, local_store):
        remote_store.get_preference.side_effect = TimeoutError()
        remote_store.recent_interactions.side_effect = TimeoutError()
        await local_store.insert_interaction(make_interaction("u1", "old", days_ago=1))
        await local_store.insert_interaction(make_interaction("u1", "new"))

        prefs = await _tracker(store).get_user_preferences("u1")
        assert [i.product_id for i in prefs.interaction_history] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_update_without_identity(self, store, remote_store):
        assert await _tracker(store, user_id=None).update_user_preferences(PreferenceUpdate()) is None
        remote_store.upsert_preference.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_replaces_with_defaults(self, store, remote_store):
        row = await _tracker(store).update_user_preferences(PreferenceUpdate(preferred_brands=["Apple"]))

        assert row.user_id == "u1"
        assert row.preferred_brands == ["Apple"]
        assert row.preferred_categories == []
        assert (row.price_range_min, row.price_range_max) == (0.0, 3000.0)
        remote_store.upsert_preference.assert_awaited_once_with(row)


class TestTrending:

    @pytest.mark.asyncio
    async def test_aggregated_by_remote(self, store, remote_store):
        remote_store.trending_scores.return_value = [
            TrendingScore(product_id="bought", score=10),
            TrendingScore(product_id="carted", score=8),
        ]
        before = datetime.now(timezone.utc)
        scores = await _tracker(store).get_trending_products(limit=5)

        assert [(s.product_id, s.score) for s in scores] == [("bought", 10), ("carted", 8)]
        since, weights, limit = remote_store.trending_scores.await_args.args
        assert limit == 5
        assert weights == {"view": 1, "wishlist_add": 2, "like": 3, "cart_add": 5, "purchase": 10}
        assert timedelta(days=6, hours=23) < before - since <= timedelta(days=7)

    @pytest.mark.asyncio
    async def test_remote_failure_is_empty_not_local(self, store, remote_store, local_store):
        remote_store.trending_scores.side_effect = ConnectionError()
        await local_store.insert_interaction(make_interaction("u1", "1", InteractionType.PURCHASE))

        assert await _tracker(store).get_trending_products() == []

    @pytest.mark.asyncio
    async def test_without_remote_is_empty(self, local_store):
        await local_store.insert_interaction(make_interaction("u1", "1", InteractionType.PURCHASE))
        store = FallbackInteractionStore(remote=None, local=local_store)
        assert await _tracker(store).get_trending_products() == []


async def _seed(local_store):
    for interaction in (
        make_interaction("u1", "1", InteractionType.VIEW, category="Electronics", duration_on_product=30),
        make_interaction("u1", "2", InteractionType.VIEW, category="Electronics", duration_on_product=10),
        make_interaction("u1", "3", InteractionType.VIEW),
        make_interaction("u1", "1", InteractionType.PURCHASE, days_ago=10, category="Electronics"),
        make_interaction("u2", "4", InteractionType.LIKE, category="Home"),
    ):
        await local_store.insert_interaction(interaction)


class TestLocalAnalytics:

    @pytest.mark.asyncio
    async def test_user_analytics(self, store, local_store):
        await _seed(local_store)
        analytics = _tracker(store).get_user_analytics("u1")

        assert analytics.total_interactions == 4
        assert analytics.interaction_counts == {"view": 3, "purchase": 1}
        assert analytics.category_views == {"Electronics": 2, "Unknown": 1}
        assert analytics.avg_session_duration == pytest.approx(20.0)
        assert analytics.recent_activity == 3
        assert analytics.price_range == (0.0, 3000.0)

    def test_analytics_for_unknown_user(self, store):
        analytics = _tracker(store).get_user_analytics("nobody")
        assert analytics.total_interactions == 0
        assert analytics.avg_session_duration == 0.0

    @pytest.mark.asyncio
    async def test_popular_categories(self, store, local_store):
        await _seed(local_store)
        assert _tracker(store).get_popular_categories(days=30) == [
            {"category": "Electronics", "interactions": 3},
            {"category": "Home", "interactions": 1},
        ]
        assert _tracker(store).get_popular_categories(days=5) == [
            {"category": "Electronics", "interactions": 2},
            {"category": "Home", "interactions": 1},
        ]

    @pytest.mark.asyncio
    async def test_export(self, store, local_store):
        await _seed(local_store)
        data = _tracker(store).export_user_data("u1")

        assert data["user_id"] == "u1"
        assert len(data["interactions"]) == 4
        assert data["interactions"][0]["interaction_type"] == "view"
        assert data["preferences"]["user_id"] == "u1"
        assert data["analytics"]["total_interactions"] == 4
        assert "export_date" in data

    @pytest.mark.asyncio
    async def test_clear_only_touches_that_user(self, store, local_store):
        await _seed(local_store)
        await local_store.upsert_preference(PreferenceRow(user_id="u1", preferred_brands=["Apple"]))
        removed = _tracker(store).clear_user_data("u1")

        assert removed == 4
        assert local_store.user_interactions("u1") == []
        assert local_store.preference("u1") is None
        assert [i.user_id for i in local_store.all_interactions()] == ["u2"]
