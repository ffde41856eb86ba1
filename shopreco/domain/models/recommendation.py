from enum import Enum
from typing import List

from pydantic import AliasChoices, BaseModel, Field


class RecommendationCategory(str, Enum):
    PERSONALIZED = "personalized"
    TRENDING = "trending"
    SIMILAR = "similar"
    CONTENT_BASED = "content_based"
    COLLABORATIVE = "collaborative"
    FALLBACK = "fallback"


class Recommendation(BaseModel):
    """
    One ranked suggestion. `product_id` is not checked against the catalog here;
    callers resolve it and drop ids they cannot find.
    `score` is nominally 0-100 but heuristic fallbacks may leave that range.
    """
    product_id: str = Field(min_length=1, validation_alias=AliasChoices("product_id", "productId"))
    score: float
    reason: str = ""
    category: RecommendationCategory

    model_config = {"frozen": True, "use_enum_values": True}


class UserAnalysis(BaseModel):
    """Per-request behavior summary produced by the model. Never persisted."""
    intent: str = "browsing"
    category_strength: float = Field(default=5, validation_alias=AliasChoices("category_strength", "categoryStrength"))
    brand_loyalty: float = Field(default=5, validation_alias=AliasChoices("brand_loyalty", "brandLoyalty"))
    price_sensitivity: float = Field(default=5, validation_alias=AliasChoices("price_sensitivity", "priceSensitivity"))
    top_features: List[str] = Field(default_factory=list, validation_alias=AliasChoices("top_features", "topFeatures"))
    behavior_patterns: List[str] = Field(default_factory=list, validation_alias=AliasChoices("behavior_patterns", "behaviorPatterns"))

    model_config = {"frozen": True}
