"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter

from .integrations import integrations_router
from .sync import router as sync_router
from .listings import listings_router
from .profit import profit_router, pricing_router, dashboard_router

api_router = APIRouter()

# Include sub-routers
api_router.include_router(integrations_router)
api_router.include_router(sync_router)
api_router.include_router(listings_router)
api_router.include_router(profit_router)
api_router.include_router(pricing_router)
api_router.include_router(dashboard_router)
