"""
Base Marketplace Client - abstract client plus the normalized records every
marketplace payload is mapped to before it reaches the services
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
import logging

logger = logging.getLogger(__name__)


@dataclass
class TokenGrant:
    """Result of an OAuth code exchange or refresh"""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None  # absent when the marketplace keeps the old one
    external_account_id: Optional[str] = None


@dataclass
class RemotePage:
    """One offset/limit page of a search endpoint"""
    results: List[Any]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


@dataclass
class RemoteOrderItem:
    external_item_id: str
    title: str
    quantity: int
    unit_price: Decimal
    sale_fee: Decimal = Decimal("0")
    sku: Optional[str] = None
    variation_id: Optional[str] = None

    @property
    def line_id(self) -> str:
        """Natural key of the line inside its order"""
        if self.variation_id:
            return f"{self.external_item_id}:{self.variation_id}"
        return self.external_item_id


@dataclass
class RemoteOrder:
    external_order_id: str
    status: str  # normalized: paid, shipped, delivered, returned, cancelled
    status_raw: str = ""
    date_created: Optional[datetime] = None
    total_amount: Decimal = Decimal("0")
    coupon_amount: Decimal = Decimal("0")
    buyer_nickname: Optional[str] = None
    items: List[RemoteOrderItem] = field(default_factory=list)

    @property
    def fees_total(self) -> Decimal:
        return sum((item.sale_fee for item in self.items), Decimal("0"))


@dataclass
class RemoteVariation:
    external_variation_id: str
    price: Decimal
    available_quantity: int = 0
    sold_quantity: int = 0
    sku: Optional[str] = None
    attributes: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RemoteListing:
    external_item_id: str
    title: str
    status: str  # normalized: active, paused, closed
    price: Decimal = Decimal("0")
    available_quantity: int = 0
    sold_quantity: int = 0
    substatus: Optional[str] = None
    original_price: Optional[Decimal] = None
    listing_type: Optional[str] = None
    logistic_type: Optional[str] = None
    condition: Optional[str] = None
    category_id: Optional[str] = None
    site_id: Optional[str] = None
    permalink: Optional[str] = None
    thumbnail: Optional[str] = None
    free_shipping: bool = False
    seller_sku: Optional[str] = None
    remote_created_at: Optional[datetime] = None
    remote_updated_at: Optional[datetime] = None
    variations: List[RemoteVariation] = field(default_factory=list)


class BaseMarketplaceClient(ABC):
    """
    Abstract base class for marketplace integrations.

    Every call takes the access token explicitly; token lifecycle belongs to
    the credential service, not to the client.
    """
    PLATFORM_NAME: str = "base"

    # ========== Authentication ==========

    @abstractmethod
    def get_auth_url(self, state: str, redirect_uri: Optional[str] = None) -> str:
        """Authorization URL the seller is sent to"""

    @abstractmethod
    async def exchange_code_for_token(self, code: str, redirect_uri: Optional[str] = None) -> TokenGrant:
        """Exchange an authorization code for tokens"""

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new access token"""

    @abstractmethod
    async def get_me(self, access_token: str) -> Dict[str, Any]:
        """Profile of the seller that owns the token"""

    # ========== Orders ==========

    @abstractmethod
    async def search_orders(
        self,
        access_token: str,
        seller_id: str,
        date_from: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> RemotePage:
        """One page of seller orders, newest first"""

    @abstractmethod
    def normalize_order(self, raw_order: Dict[str, Any]) -> RemoteOrder:
        """Validate a raw order payload; raises ValueError when unusable"""

    # ========== Listings ==========

    @abstractmethod
    async def search_item_ids(
        self,
        access_token: str,
        seller_id: str,
        offset: int = 0,
        limit: int = 50,
    ) -> RemotePage:
        """One page of the seller's item ids"""

    @abstractmethod
    async def get_items(self, access_token: str, item_ids: List[str]) -> List[Dict[str, Any]]:
        """Details for a batch of items; missing items are dropped"""

    @abstractmethod
    async def get_item(self, access_token: str, item_id: str) -> Dict[str, Any]:
        """Canonical state of one item"""

    @abstractmethod
    async def update_item(self, access_token: str, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update of one item"""

    @abstractmethod
    def normalize_listing(self, raw_item: Dict[str, Any]) -> RemoteListing:
        """Validate a raw item payload; raises ValueError when unusable"""

    # ========== Utilities ==========

    def _build_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        """Build common request headers"""
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _log_api_call(self, method: str, endpoint: str, status_code: int):
        """Log API call for debugging"""
        logger.info(f"[{self.PLATFORM_NAME}] {method} {endpoint} -> {status_code}")
