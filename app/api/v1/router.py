"""
API router configuration.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    health,
    institution_applications,
    institution_auth,
    institution_team,
    institutions,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(
    institution_applications.router,
    prefix="/institution-applications",
    tags=["institution-applications"],
)
api_router.include_router(institution_auth.router, prefix="/institution-auth", tags=["institution-auth"])
api_router.include_router(institutions.router, prefix="/institutions", tags=["institutions"])
api_router.include_router(institution_team.router, prefix="/institution-team", tags=["institution-team"])
