# shopreco/api/v1/routers/products.py
from fastapi import APIRouter, Depends, HTTPException, Query
import logging
import time

from shopreco.api.deps import CatalogDep, RecoServiceDep, redis_dep
from shopreco.api.v1.schemas.reco import RecoResultOut, build_reco_result
from shopreco.core.config import get_settings
from shopreco.domain.repositories.reco_cache_repo import RecoCacheRepo
from shopreco.domain.services.catalog_svc import resolve_recommendations

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


@router.get("/products/trending", response_model=RecoResultOut)
async def trending_products(
    catalog: CatalogDep,
    service: RecoServiceDep,
    limit: int = Query(10, ge=1, le=50),
    redis = Depends(redis_dep),
):
    """
    Catalog-wide trending list (model ranking, popularity heuristic fallback).
    Cached in Redis for settings.trending_cache_ttl.
    """
    t0 = time.perf_counter()
    settings = get_settings()
    cache = RecoCacheRepo(redis, key_prefix="trending")
    cache_key = cache.key(limit=limit, catalog=len(catalog), source=catalog.source)

    recs = await cache.get(cache_key)
    if recs is not None:
        logger.info("trending cache_hit key=%s items=%s", cache_key, len(recs))
    else:
        recs = await service.get_trending_products(catalog.all(), limit)
        await cache.set(cache_key, recs, ttl=settings.trending_cache_ttl)

    result = build_reco_result(resolve_recommendations(recs, catalog))
    logger.info("Response: trending_products limit=%s count=%s elapsed_time=%.4fs", limit, result.count, time.perf_counter() - t0)
    return result


@router.get("/products/{product_id}/similar", response_model=RecoResultOut)
async def similar_products(
    product_id: str,
    catalog: CatalogDep,
    service: RecoServiceDep,
    limit: int = Query(5, ge=1, le=50),
    redis = Depends(redis_dep),
):
    """
    Products similar to `product_id` (model ranking, same-category price heuristic fallback).
    Cached in Redis for settings.similar_cache_ttl.
    """
    logger.info("Request: similar_products product_id=%s, limit=%s", product_id, limit)
    t0 = time.perf_counter()

    target = catalog.get(product_id)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found.")

    settings = get_settings()
    cache = RecoCacheRepo(redis, key_prefix="similar")
    cache_key = cache.key(product_id=product_id, limit=limit, catalog=len(catalog), source=catalog.source)

    recs = await cache.get(cache_key)
    if recs is not None:
        logger.info("similar cache_hit key=%s items=%s", cache_key, len(recs))
    else:
        recs = await service.get_similar_products(target, catalog.all(), limit)
        await cache.set(cache_key, recs, ttl=settings.similar_cache_ttl)

    result = build_reco_result(resolve_recommendations(recs, catalog), source_product_id=product_id)
    logger.info("Response: similar_products product_id=%s, count=%s, elapsed_time=%.4fs", product_id, result.count, time.perf_counter() - t0)
    return result
