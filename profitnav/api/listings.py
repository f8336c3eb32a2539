"""
Listings API - bulk actions and mirror statistics
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from profitnav.core.database import get_db
from profitnav.integrations import BaseMarketplaceClient
from profitnav.schemas.listing import ListingActionRequest, ActionBatchResult
from profitnav.schemas.sync import ListingSummary
from profitnav.services import dashboard_service
from profitnav.services.listing_action_service import ListingActionService
from .deps import get_current_user_id, get_marketplace_client

listings_router = APIRouter(prefix="/listings", tags=["listings"])


@listings_router.post("/actions", response_model=ActionBatchResult)
async def apply_listing_action(
    payload: ListingActionRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: BaseMarketplaceClient = Depends(get_marketplace_client),
):
    """Partial success is a normal 200 response; inspect results"""
    service = ListingActionService(db, user_id, client)
    return await service.apply_action(payload.action, payload.item_ids, payload.value)


@listings_router.get("/summary", response_model=ListingSummary)
async def listing_summary(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return dashboard_service.listing_summary(db, user_id)
