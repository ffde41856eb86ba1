from fastapi import APIRouter, Query

from shopreco.api.deps import TrackerDep
from shopreco.api.v1.schemas.reco import CategoryCountOut, PopularCategoriesOut

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/popular-categories", response_model=PopularCategoriesOut)
def popular_categories(tracker: TrackerDep, days: int = Query(30, ge=1, le=365)):
    """Interaction counts per product category, from locally held events."""
    items = [CategoryCountOut(**row) for row in tracker.get_popular_categories(days)]
    return PopularCategoriesOut(days=days, items=items, count=len(items))
