# shopreco/api/deps.py
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from shopreco.db.mongo import get_db
from shopreco.db.redis import get_redis
from shopreco.domain.repositories.fallback_interaction_repo import FallbackInteractionStore
from shopreco.domain.services.catalog_svc import ProductCatalog
from shopreco.domain.services.interaction_tracker import InteractionTracker
from shopreco.domain.services.recommendation_svc import RecommendationService, get_recommendation_service


# Dependency for injecting the MongoDB database (None when not configured)
def mongo_db():
    return get_db()


# Dependency for injecting the Redis client (None when not configured)
def redis_dep():
    return get_redis()


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Authenticated identity as forwarded by the gateway; blank means anonymous."""
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


# Path alias for the signed-in user in /users/{user_id}/...
ME = "me"


def owner_user_id(user_id: str, identity: Annotated[Optional[str], Depends(current_user_id)]) -> str:
    """
    Resolve the `{user_id}` of a per-user route to the caller.
    `me` means the caller; any other value must equal X-User-Id.
    """
    if not identity:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header required.")
    if user_id not in (ME, identity):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to another user's data is not allowed.")
    return identity


def catalog_dep(request: Request) -> ProductCatalog:
    return request.app.state.catalog


def interaction_store_dep(request: Request) -> FallbackInteractionStore:
    return request.app.state.interaction_store


def tracker_dep(
    store: Annotated[FallbackInteractionStore, Depends(interaction_store_dep)],
    user_id: Annotated[Optional[str], Depends(current_user_id)],
    x_session_id: Optional[str] = Header(default=None),
) -> InteractionTracker:
    """
    One tracker per request over the shared store. The browsing session id
    comes from X-Session-Id when the client has one, else a fresh one is generated.
    """
    return InteractionTracker(store, identity_provider=lambda: user_id, session_id=x_session_id)


def reco_service_dep() -> RecommendationService:
    return get_recommendation_service()


CatalogDep = Annotated[ProductCatalog, Depends(catalog_dep)]
TrackerDep = Annotated[InteractionTracker, Depends(tracker_dep)]
RecoServiceDep = Annotated[RecommendationService, Depends(reco_service_dep)]
OwnerIdDep = Annotated[str, Depends(owner_user_id)]
