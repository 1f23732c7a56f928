"""API v1 router configuration."""

from fastapi import APIRouter

from autolend.api.v1.endpoints import alerts, auto_lending, health

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    tags=["health"],
)

api_router.include_router(
    auto_lending.router,
    prefix="/auto-lending",
    tags=["auto-lending"],
)

api_router.include_router(
    alerts.router,
    prefix="/alerts",
    tags=["alerts"],
)
