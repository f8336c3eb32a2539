# Services Package
from . import profit_service
from . import pricing_service
from . import credential_service
from . import dashboard_service
from .sync_service import MarketplaceSyncService
from .listing_action_service import ListingActionService

__all__ = [
    "profit_service",
    "pricing_service",
    "credential_service",
    "dashboard_service",
    "MarketplaceSyncService",
    "ListingActionService",
]
