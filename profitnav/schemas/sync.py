"""
Sync Schemas
"""
from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID


class SyncRequest(BaseModel):
    full_sync: bool = False
    sync_type: Literal["all", "orders", "listings"] = "all"


class ListingSummary(BaseModel):
    total_listings: int = 0
    active: int = 0
    paused: int = 0
    closed: int = 0
    with_stock: int = 0
    without_stock: int = 0


class SyncStats(BaseModel):
    sync_run_id: Optional[UUID] = None
    status: str = "running"

    orders_fetched: int = 0
    orders_inserted: int = 0
    orders_updated: int = 0
    orders_skipped: int = 0
    items_inserted: int = 0
    items_updated: int = 0

    listings_fetched: int = 0
    listings_inserted: int = 0
    listings_updated: int = 0
    listings_skipped: int = 0
    variations_inserted: int = 0
    products_inserted: int = 0

    records_synced: int = 0
    # One entry per resource whose pagination stopped on a failed request
    partial_failures: List[str] = []
    summary: Optional[ListingSummary] = None

    @property
    def orders_truncated(self) -> bool:
        return any(f.startswith("orders:") for f in self.partial_failures)


class SyncRunResponse(BaseModel):
    id: UUID
    sync_type: str
    full_sync: bool
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    records_synced: int
    error_message: Optional[str] = None
    stats: Optional[dict] = None

    class Config:
        from_attributes = True
