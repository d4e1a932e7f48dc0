"""
API v1 router that aggregates all endpoint routers.
All routes require authentication except health.
"""

from fastapi import APIRouter, Depends
from app.api.v1.middleware import require_authentication

from app.api.v1.endpoints import (
    health,
    requests,
    supervisor,
    employees,
)

api_router = APIRouter()

# Public routes (no authentication required)
api_router.include_router(health.router, tags=["health"])

# Protected routes (authentication required for all endpoints)
# Authentication is enforced via dependency injection at the router level
api_router.include_router(
    requests.router,
    prefix="/requests",
    tags=["requests"],
    dependencies=[Depends(require_authentication)],
)
api_router.include_router(
    supervisor.router,
    prefix="/supervisor",
    tags=["supervisor"],
    dependencies=[Depends(require_authentication)],
)
api_router.include_router(
    employees.router,
    prefix="/employees",
    tags=["employees"],
    dependencies=[Depends(require_authentication)],
)
