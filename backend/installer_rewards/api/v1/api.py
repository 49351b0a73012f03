"""
API v1 Router
"""

from fastapi import APIRouter

from installer_rewards.api.v1.endpoints import (
    monitoring,
    promotions,
    installer_promotions
)

api_router = APIRouter()

# Include all endpoint routers with proper prefixes
api_router.include_router(monitoring.router, tags=["monitoring"])
api_router.include_router(promotions.router)
api_router.include_router(installer_promotions.router)
