# shopreco/domain/repositories/interaction_repo.py

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol
import logging
import time

from motor.motor_asyncio import AsyncIOMotorDatabase
from shopreco.domain.models.interaction import PreferenceRow, TrendingScore, UserInteraction

logger = logging.getLogger(__name__)

INTERACTIONS_COLLECTION = "user_interactions"
PREFERENCES_COLLECTION = "user_preferences"


class InteractionStore(Protocol):
    """Row store for interaction events and per-user preference rows (both tiers)."""

    async def insert_interaction(self, interaction: UserInteraction) -> None: ...

    async def recent_interactions(self, user_id: str, limit: int) -> List[UserInteraction]: ...

    async def get_preference(self, user_id: str) -> Optional[PreferenceRow]: ...

    async def upsert_preference(self, row: PreferenceRow) -> None: ...


class RemoteInteractionStore(InteractionStore, Protocol):
    """Remote tier: adds the catalog-wide aggregate that only the database answers."""

    async def trending_scores(
        self, since: datetime, weights: Mapping[str, float], limit: int
    ) -> List[TrendingScore]: ...


def interaction_to_doc(interaction: UserInteraction) -> Dict[str, Any]:
    doc = interaction.model_dump()
    doc["interaction_type"] = interaction.interaction_type.value
    doc["metadata"] = interaction.metadata.model_dump(exclude_none=True)
    return doc


def trending_pipeline(since: datetime, weights: Mapping[str, float], limit: int) -> List[Dict[str, Any]]:
    """
    Weighted event count per product since `since`, highest first.
    Interaction types missing from `weights` count 1.
    """
    branches = [{"case": {"$eq": ["$interaction_type", kind]}, "then": w} for kind, w in weights.items()]
    weight_expr: Any = {"$switch": {"branches": branches, "default": 1}} if branches else 1
    return [
        {"$match": {"timestamp": {"$gte": since}}},
        {"$group": {"_id": "$product_id", "score": {"$sum": weight_expr}}},
        {"$sort": {"score": -1, "_id": 1}},
        {"$limit": limit},
        {"$project": {"_id": 0, "product_id": "$_id", "score": 1}},
    ]


class MongoInteractionStore:
    """
    Remote tier backed by two collections:
      user_interactions: append-only events, one document per event
      user_preferences:  one document per user, upserted by user_id
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        interactions_collection: str = INTERACTIONS_COLLECTION,
        preferences_collection: str = PREFERENCES_COLLECTION,
    ):
        self.interactions = db[interactions_collection]
        self.preferences = db[preferences_collection]

    async def insert_interaction(self, interaction: UserInteraction) -> None:
        await self.interactions.insert_one(interaction_to_doc(interaction))

    async def recent_interactions(self, user_id: str, limit: int) -> List[UserInteraction]:
        cursor = (
            self.interactions.find({"user_id": user_id}, {"_id": 0})
            .sort("timestamp", -1)
            .limit(limit)
        )
        return [UserInteraction.model_validate(doc) async for doc in cursor]

    async def trending_scores(self, since: datetime, weights: Mapping[str, float], limit: int) -> List[TrendingScore]:
        pipeline = trending_pipeline(since, weights, limit)
        db_t0 = time.perf_counter()
        docs = await self.interactions.aggregate(pipeline).to_list(length=limit)
        logger.info("trending db_ok items=%s db_time=%.3fs", len(docs), time.perf_counter() - db_t0)
        return [TrendingScore.model_validate(d) for d in docs if d.get("product_id")]

    async def get_preference(self, user_id: str) -> Optional[PreferenceRow]:
        doc = await self.preferences.find_one({"user_id": user_id}, {"_id": 0})
        return PreferenceRow.model_validate(doc) if doc else None

    async def upsert_preference(self, row: PreferenceRow) -> None:
        await self.preferences.update_one(
            {"user_id": row.user_id},
            {"$set": row.model_dump()},
            upsert=True,
        )
