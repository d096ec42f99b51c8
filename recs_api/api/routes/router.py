"""API router combining all route modules."""

from fastapi import APIRouter

from recs_api.api.routes import (
    analytics,
    ecwid,
    health,
    oauth,
    orders,
    products,
    store_stats,
    sync,
)

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Ecwid OAuth (browser redirects, no auth)
api_router.include_router(
    oauth.router,
    prefix="/oauth",
    tags=["oauth"],
)

# Catalog mirror sync
api_router.include_router(
    sync.router,
    prefix="/sync",
    tags=["sync"],
)

# Widget settings, recommendations and store registration
api_router.include_router(
    ecwid.router,
    prefix="/ecwid",
    tags=["ecwid"],
)

# Mirrored products
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["products"],
)

# Mirrored orders
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["orders"],
)

# Widget events and reporting
api_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["analytics"],
)

# Dashboard counts
api_router.include_router(
    store_stats.router,
    prefix="/store-stats",
    tags=["store-stats"],
)
