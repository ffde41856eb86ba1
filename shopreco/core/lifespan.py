# shopreco/core/lifespan.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from shopreco.core.config import get_settings
from shopreco.db import mongo, redis as r
from shopreco.domain.repositories.fallback_interaction_repo import FallbackInteractionStore
from shopreco.domain.repositories.interaction_repo import MongoInteractionStore
from shopreco.domain.repositories.local_interaction_repo import LocalInteractionStore
from shopreco.domain.services.catalog_svc import load_catalog
from shopreco.utils.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


def build_interaction_store(db, settings) -> FallbackInteractionStore:
    remote = MongoInteractionStore(db) if db is not None else None
    return FallbackInteractionStore(
        remote=remote,
        local=LocalInteractionStore(max_interactions=settings.local_history_limit),
        breaker=CircuitBreaker(
            "interaction-store",
            failure_threshold=settings.breaker_failure_threshold,
            reset_timeout=settings.breaker_reset_timeout_s,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Both backends are optional: the service runs degraded without them
    await mongo.connect()
    await r.connect()

    db = mongo.get_db()
    app.state.interaction_store = build_interaction_store(db, settings)
    app.state.catalog = await load_catalog(db, settings.CATALOG_PATH)
    logger.info(
        "startup done remote_store=%s catalog=%s (%s)",
        app.state.interaction_store.remote_enabled, len(app.state.catalog), app.state.catalog.source,
    )

    # Application runs
    yield

    # --- Shutdown ---
    try:
        await r.disconnect()
    except Exception as e:
        logger.warning("Redis disconnect failed: %s", e)

    try:
        await mongo.disconnect()
    except Exception as e:
        logger.warning("Mongo disconnect failed: %s", e)
