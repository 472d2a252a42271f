"""API v1 router configuration."""

from fastapi import APIRouter

from siren.api.v1.sessions import router as sessions_router

# Create main v1 router
v1_router = APIRouter(prefix="/v1")

# Include sub-routers
v1_router.include_router(sessions_router)
