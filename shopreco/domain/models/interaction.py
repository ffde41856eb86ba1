from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field

ANONYMOUS_USER_ID = "anonymous"
DEFAULT_PRICE_RANGE: Tuple[float, float] = (0.0, 3000.0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InteractionType(str, Enum):
    VIEW = "view"
    LIKE = "like"
    PURCHASE = "purchase"
    CART_ADD = "cart_add"
    WISHLIST_ADD = "wishlist_add"


class InteractionMetadata(BaseModel):
    """Free-form context attached to an event; unknown keys are kept."""
    search_query: Optional[str] = Field(default=None, validation_alias=AliasChoices("search_query", "searchQuery"))
    category: Optional[str] = None
    price: Optional[float] = None
    referrer: Optional[str] = None
    duration_on_product: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("duration_on_product", "durationOnProduct")
    )

    model_config = {"frozen": True, "extra": "allow"}


class InteractionEvent(BaseModel):
    """What a caller submits; id, timestamp and session are assigned by the tracker."""
    product_id: str = Field(min_length=1)
    interaction_type: InteractionType
    user_id: Optional[str] = None
    metadata: InteractionMetadata = Field(default_factory=InteractionMetadata)


class UserInteraction(BaseModel):
    id: str
    user_id: str
    product_id: str
    interaction_type: InteractionType
    timestamp: datetime = Field(default_factory=_utcnow)
    session_id: Optional[str] = None
    metadata: InteractionMetadata = Field(default_factory=InteractionMetadata)

    model_config = {"frozen": True}


class UserPreference(BaseModel):
    user_id: str
    preferred_categories: List[str] = []
    preferred_brands: List[str] = []
    price_range: Tuple[float, float] = DEFAULT_PRICE_RANGE
    preferred_features: List[str] = []
    interaction_history: List[UserInteraction] = []   # newest first
    last_updated: datetime = Field(default_factory=_utcnow)

    @classmethod
    def default(cls, user_id: str = ANONYMOUS_USER_ID) -> "UserPreference":
        return cls(user_id=user_id)


class PreferenceUpdate(BaseModel):
    """Partial preference payload; missing fields are stored as their defaults."""
    preferred_categories: Optional[List[str]] = None
    preferred_brands: Optional[List[str]] = None
    price_range: Optional[Tuple[float, float]] = None
    preferred_features: Optional[List[str]] = None


class PreferenceRow(BaseModel):
    """Stored shape of a user's explicit preferences (one row per user)."""
    user_id: str
    preferred_categories: List[str] = []
    preferred_brands: List[str] = []
    price_range_min: float = DEFAULT_PRICE_RANGE[0]
    price_range_max: float = DEFAULT_PRICE_RANGE[1]
    preferred_features: List[str] = []
    updated_at: datetime = Field(default_factory=_utcnow)


class TrendingScore(BaseModel):
    product_id: str
    score: float


class UserAnalytics(BaseModel):
    user_id: str
    total_interactions: int
    interaction_counts: Dict[str, int]
    category_views: Dict[str, int]
    avg_session_duration: float
    recent_activity: int
    preferred_categories: List[str]
    preferred_brands: List[str]
    price_range: Tuple[float, float]
    account_age: datetime
