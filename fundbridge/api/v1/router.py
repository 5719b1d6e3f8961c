from fastapi import APIRouter

from fundbridge.api.v1.health import router as health_router
from fundbridge.api.v1.contributions import router as contributions_router
from fundbridge.api.v1.projects import router as projects_router
from fundbridge.api.v1.bridge import router as bridge_router
from fundbridge.api.v1.distribution import router as distribution_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# LEDGER
# ------------------------------------------------------------------
v1_router.include_router(contributions_router, tags=["contributions"])
v1_router.include_router(projects_router, tags=["projects"])

# ------------------------------------------------------------------
# POST-GOAL
# ------------------------------------------------------------------
v1_router.include_router(bridge_router, tags=["bridge"])
v1_router.include_router(distribution_router, tags=["distribution"])
