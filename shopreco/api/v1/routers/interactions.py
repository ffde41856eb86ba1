# shopreco/api/v1/routers/interactions.py
from fastapi import APIRouter, Query, status
import logging

from shopreco.api.deps import TrackerDep
from shopreco.api.v1.schemas.reco import TrackResultOut, TrendingScoresOut
from shopreco.domain.models.interaction import InteractionEvent

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interactions"])


@router.post("/interactions", response_model=TrackResultOut, status_code=status.HTTP_202_ACCEPTED)
async def track_interaction(event: InteractionEvent, tracker: TrackerDep):
    """
    Record a view/like/purchase/cart_add/wishlist_add event for the X-User-Id user.
    Without an identity nothing is stored and `tracked` is false.
    """
    interaction = await tracker.track_interaction(event)
    return TrackResultOut(
        tracked=interaction is not None,
        interaction_id=interaction.id if interaction else None,
        session_id=tracker.session_id,
    )


@router.get("/interactions/trending", response_model=TrendingScoresOut)
async def trending_by_interactions(
    tracker: TrackerDep,
    limit: int = Query(10, ge=1, le=100),
):
    """Products with the highest weighted interaction score over the last 7 days."""
    items = await tracker.get_trending_products(limit)
    logger.info("Response: trending_by_interactions limit=%s count=%s", limit, len(items))
    return TrendingScoresOut(items=items, count=len(items))
