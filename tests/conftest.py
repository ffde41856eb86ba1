"""
Shared fixtures: a small catalog, a scripted LLM, and interaction-store tiers.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from shopreco.domain.models.interaction import InteractionType, UserInteraction, UserPreference
from shopreco.domain.models.product import Product
from shopreco.domain.repositories.fallback_interaction_repo import FallbackInteractionStore
from shopreco.domain.repositories.local_interaction_repo import LocalInteractionStore


# Each prompt builder opens with a fixed line; the fake LLM routes on it.
STAGE_MARKERS = {
    "analysis": "Analyze the following user behavior",
    "content_based": "The user has interacted",
    "collaborative": "USER PROFILE:",
    "rerank": "Rank these product recommendations",
    "trending": "Identify the trending products",
    "similar": "TARGET PRODUCT:",
}

PROSE = "Sorry, I am not able to produce a ranking for these products right now."


class ScriptedLLM:
    """Returns a canned answer (or raises) per pipeline stage and records every call."""

    def __init__(self, responses: Optional[Dict[str, Union[str, Exception]]] = None, default: str = PROSE):
        self.responses = dict(responses or {})
        self.default = default
        self.calls: List[tuple] = []

    async def generate(self, prompt: str) -> str:
        stage = next((s for s, marker in STAGE_MARKERS.items() if prompt.startswith(marker)), "unknown")
        self.calls.append((stage, prompt))
        resp = self.responses.get(stage, self.default)
        if isinstance(resp, Exception):
            raise resp
        return resp

    @property
    def stages(self) -> List[str]:
        return [s for s, _ in self.calls]

    def prompt_for(self, stage: str) -> str:
        return next(p for s, p in self.calls if s == stage)


def make_product(pid, category="Electronics", price=100.0, average=4.0, count=10, brand="Acme", **kw) -> Product:
    return Product(
        id=pid,
        name=kw.pop("name", f"Product {pid}"),
        category=category,
        subcategory=kw.pop("subcategory", ""),
        brand=brand,
        price=price,
        ratings={"average": average, "count": count},
        **kw,
    )


def make_interaction(user_id, product_id, kind=InteractionType.VIEW, *, days_ago: float = 0, **metadata) -> UserInteraction:
    return UserInteraction(
        id=f"{user_id}-{product_id}-{kind.value}-{days_ago}",
        user_id=user_id,
        product_id=product_id,
        interaction_type=kind,
        timestamp=datetime.now(timezone.utc) - timedelta(days=days_ago),
        session_id="test-session",
        metadata=metadata,
    )


@pytest.fixture
def products() -> List[Product]:
    return [
        make_product("1", "Electronics", 999.99, 4.8, 1234, brand="Apple", name="iPhone 15 Pro",
                     subcategory="Smartphones", features=["A17 Pro chip", "Titanium design"], tags=["apple", "premium"]),
        make_product("2", "Electronics", 1299.0, 4.5, 300, brand="Dell", name="XPS 15", subcategory="Laptops"),
        make_product("3", "Electronics", 349.0, 4.7, 800, brand="Sony", name="WH-1000XM5", subcategory="Headphones"),
        make_product("4", "Home", 199.0, 4.2, 50, brand="Breville", name="Espresso Machine", subcategory="Kitchen"),
        make_product("5", "Sports", 120.0, 4.4, 2000, brand="Nike", name="Pegasus 40", subcategory="Shoes"),
        make_product("6", "Electronics", 649.0, 4.1, 150, brand="Samsung", name="Galaxy Tab", subcategory="Tablets"),
    ]


@pytest.fixture
def prefs_with_history() -> UserPreference:
    return UserPreference(
        user_id="u1",
        preferred_categories=["Electronics"],
        preferred_brands=["Apple"],
        price_range=(300, 1500),
        preferred_features=["camera", "battery", "premium", "lightweight"],
        interaction_history=[
            make_interaction("u1", "1", InteractionType.LIKE),
            make_interaction("u1", "3", InteractionType.VIEW, days_ago=1),
        ],
    )


@pytest.fixture
def prefs_no_history() -> UserPreference:
    return UserPreference(user_id="u2", preferred_categories=["Electronics"], preferred_features=["camera"])


@pytest.fixture
def local_store() -> LocalInteractionStore:
    return LocalInteractionStore(max_interactions=1000)


@pytest.fixture
def remote_store() -> AsyncMock:
    remote = AsyncMock()
    remote.recent_interactions.return_value = []
    remote.trending_scores.return_value = []
    remote.get_preference.return_value = None
    return remote


@pytest.fixture
def store(remote_store, local_store) -> FallbackInteractionStore:
    return FallbackInteractionStore(remote=remote_store, local=local_store)
