"""
Sync API - Trigger and monitor marketplace synchronization
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from profitnav.core.database import get_db
from profitnav.core.timeutil import utcnow, ensure_utc
from profitnav.integrations import BaseMarketplaceClient
from profitnav.schemas.sync import SyncRequest, SyncStats, SyncRunResponse
from profitnav.services import credential_service
from profitnav.services.sync_service import MarketplaceSyncService, get_sync_runs
from .deps import get_current_user_id, get_marketplace_client

router = APIRouter(prefix="/sync", tags=["sync"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SyncStats)
async def trigger_sync(
    payload: SyncRequest = SyncRequest(),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: BaseMarketplaceClient = Depends(get_marketplace_client),
):
    """Run a sync and wait for its result"""
    service = MarketplaceSyncService(db, user_id, client)
    return await service.sync(full_sync=payload.full_sync, sync_type=payload.sync_type)


@router.get("/history", response_model=List[SyncRunResponse])
async def sync_history(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return get_sync_runs(db, user_id, limit)


@router.get("/status")
async def sync_status(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Whether a sync is running plus the last run"""
    credential = credential_service.get_credential(db, user_id)
    lease = ensure_utc(credential.sync_lease_until) if credential else None
    runs = get_sync_runs(db, user_id, limit=1)

    return {
        "is_running": bool(lease and lease > utcnow()),
        "last_sync_at": credential.last_sync_at if credential else None,
        "last_run": SyncRunResponse.model_validate(runs[0]) if runs else None,
    }
