# shopreco/api/v1/routers/users.py
from typing import Any, Dict

from fastapi import APIRouter, Query
import logging
import time

from shopreco.api.deps import CatalogDep, OwnerIdDep, RecoServiceDep, TrackerDep
from shopreco.api.v1.schemas.reco import RecoResultOut, build_reco_result
from shopreco.domain.models.interaction import PreferenceRow, PreferenceUpdate, UserAnalytics, UserPreference
from shopreco.domain.services.catalog_svc import resolve_recommendations

logger = logging.getLogger(__name__)

# Every route is scoped to the caller: {user_id} is "me" or the X-User-Id value
router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/preferences", response_model=UserPreference)
async def get_preferences(owner_id: OwnerIdDep, tracker: TrackerDep):
    return await tracker.get_user_preferences(owner_id)


@router.put("/{user_id}/preferences", response_model=PreferenceRow)
async def update_preferences(update: PreferenceUpdate, owner_id: OwnerIdDep, tracker: TrackerDep):
    """Replace the caller's preferences; omitted fields reset to defaults."""
    return await tracker.update_user_preferences(update)


@router.get("/{user_id}/recommendations", response_model=RecoResultOut)
async def personalized_recommendations(
    owner_id: OwnerIdDep,
    catalog: CatalogDep,
    tracker: TrackerDep,
    service: RecoServiceDep,
    limit: int = Query(10, ge=1, le=50),
):
    """
    Personalized list: preferences + history -> recommendation pipeline.
    Recommendations pointing at products missing from the catalog are dropped.
    """
    logger.info("Request: recommendations user_id=%s, limit=%s", owner_id, limit)
    t0 = time.perf_counter()
    prefs = await tracker.get_user_preferences(owner_id)
    recs = await service.generate_recommendations(owner_id, catalog.all(), prefs, limit)
    result = build_reco_result(resolve_recommendations(recs, catalog), user_id=owner_id)
    logger.info("Response: recommendations user_id=%s, count=%s, elapsed_time=%.4fs", owner_id, result.count, time.perf_counter() - t0)
    return result


@router.get("/{user_id}/analytics", response_model=UserAnalytics)
async def user_analytics(owner_id: OwnerIdDep, tracker: TrackerDep):
    return tracker.get_user_analytics(owner_id)


@router.get("/{user_id}/export")
async def export_user_data(owner_id: OwnerIdDep, tracker: TrackerDep) -> Dict[str, Any]:
    return tracker.export_user_data(owner_id)


@router.delete("/{user_id}/data")
async def clear_user_data(owner_id: OwnerIdDep, tracker: TrackerDep) -> Dict[str, Any]:
    """Clears locally held data only; rows already in the remote store are kept."""
    removed = tracker.clear_user_data(owner_id)
    return {"user_id": owner_id, "interactions_removed": removed, "scope": "local"}
