# api/v1/schemas/reco.py
from pydantic import BaseModel, Field
from typing import List, Optional

from shopreco.domain.models.product import Product
from shopreco.domain.models.interaction import TrendingScore


class RecoItemOut(BaseModel):
    product_id: str
    score: float
    reason: str
    category: str
    product: Product


class RecoResultOut(BaseModel):
    items: List[RecoItemOut]
    count: int
    source_product_id: Optional[str] = None
    user_id: Optional[str] = None


class TrackResultOut(BaseModel):
    tracked: bool
    interaction_id: Optional[str] = None
    session_id: str


class TrendingScoresOut(BaseModel):
    items: List[TrendingScore]
    count: int


class CategoryCountOut(BaseModel):
    category: str
    interactions: int


class PopularCategoriesOut(BaseModel):
    days: int
    items: List[CategoryCountOut] = Field(default_factory=list)
    count: int


def build_reco_result(resolved, **kw) -> RecoResultOut:
    """Shape (Recommendation, Product) pairs as the list response."""
    items = [
        RecoItemOut(product_id=r.product_id, score=r.score, reason=r.reason, category=r.category, product=p)
        for r, p in resolved
    ]
    return RecoResultOut(items=items, count=len(items), **kw)
