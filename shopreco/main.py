from fastapi import FastAPI
from shopreco.core.config import get_settings
from shopreco.core.lifespan import lifespan
from shopreco.api.v1.routers.health import router as health_router
from shopreco.api.v1.routers.interactions import router as interactions_router
from shopreco.api.v1.routers.products import router as products_router
from shopreco.api.v1.routers.users import router as users_router
from shopreco.api.v1.routers.analytics import router as analytics_router
from shopreco.core.logging import configure_logging

from fastapi.middleware.cors import CORSMiddleware
import logging

settings = get_settings()
configure_logging(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    colored=settings.APP_ENV == "development",
)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://www.shop.example.com"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["http://localhost:3000"],
    allow_credentials=False,                        # identity travels in X-User-Id, not cookies
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["content-type", "x-user-id", "x-session-id"],
    max_age=86400,
)

# ------- Routes -------
app.include_router(health_router)
app.include_router(interactions_router)      # event tracking + weighted trending
app.include_router(products_router)          # trending + similar (cached)
app.include_router(users_router)             # preferences, personalized recos, privacy
app.include_router(analytics_router)
