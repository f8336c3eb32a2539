from .base import TimestampMixin, UUIDMixin, OwnedMixin
from .order import Order, OrderItem, OrderStatus, EXCLUDED_STATUSES
from .cost import FixedCost
from .product import Product, Inventory
from .listing import Listing, ListingVariation, ListingStatus
from .integration import MarketplaceCredential, SyncRun, SyncRunStatus, OAuthState

__all__ = [
    # Base
    "TimestampMixin", "UUIDMixin", "OwnedMixin",
    # Order
    "Order", "OrderItem", "OrderStatus", "EXCLUDED_STATUSES",
    # Costs
    "FixedCost",
    # Product
    "Product", "Inventory",
    # Listing
    "Listing", "ListingVariation", "ListingStatus",
    # Integration
    "MarketplaceCredential", "SyncRun", "SyncRunStatus", "OAuthState",
]
