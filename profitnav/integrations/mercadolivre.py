"""
Mercado Livre API Client
API Documentation: https://developers.mercadolivre.com.br/
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, List
from urllib.parse import urlencode
import logging

import httpx

from profitnav.core.exceptions import MarketplaceAPIError
from profitnav.core.timeutil import parse_iso_datetime
from .base import (
    BaseMarketplaceClient, TokenGrant, RemotePage, RemoteOrder, RemoteOrderItem,
    RemoteListing, RemoteVariation,
)

logger = logging.getLogger(__name__)


def _money(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(default)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class MercadoLivreClient(BaseMarketplaceClient):
    """
    Mercado Livre REST API Client
    """
    PLATFORM_NAME = "mercadolivre"

    # API Endpoints
    BASE_URL = "https://api.mercadolibre.com"
    AUTH_URL = "https://auth.mercadolivre.com.br/authorization"

    # Multi-get accepts at most 20 ids per call
    ITEMS_BATCH_SIZE = 20

    ITEM_ATTRIBUTES = (
        "id,title,status,sub_status,price,original_price,available_quantity,"
        "sold_quantity,listing_type_id,shipping,condition,category_id,site_id,"
        "permalink,thumbnail,variations,date_created,last_updated,seller_custom_field"
    )

    # Status mapping
    ORDER_STATUS_MAP = {
        "paid": "paid",
        "confirmed": "paid",
        "shipped": "shipped",
        "delivered": "delivered",
        "cancelled": "cancelled",
        "invalid": "cancelled",
        "returned": "returned",
    }

    LISTING_STATUS_MAP = {
        "active": "active",
        "paused": "paused",
        "closed": "closed",
        "under_review": "paused",
        "inactive": "paused",
    }

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        base_url: Optional[str] = None,
        auth_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.auth_url = auth_url or self.AUTH_URL
        self.timeout = timeout
        self._transport = transport

    # ========== HTTP ==========

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.
        Non-2xx answers and transport failures raise MarketplaceAPIError.
        """
        headers = self._build_headers(access_token)
        headers.update(kwargs.pop("headers", {}))

        try:
            async with self._http() as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[{self.PLATFORM_NAME}] {method} {path} transport error: {e}")
            raise MarketplaceAPIError(
                f"Request to {path} failed: {e}", endpoint=path,
            ) from e

        self._log_api_call(method, path, response.status_code)

        if response.is_error:
            raise MarketplaceAPIError(
                self._error_message(response),
                status_code=response.status_code,
                body=response.text,
                endpoint=path,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceAPIError(
                f"Invalid JSON from {path}",
                status_code=response.status_code,
                body=response.text,
                endpoint=path,
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        default = f"HTTP {response.status_code}"
        try:
            data = response.json()
        except ValueError:
            return default
        if isinstance(data, dict):
            return data.get("message") or data.get("error") or default
        return default

    # ========== Authentication ==========

    def get_auth_url(self, state: str, redirect_uri: Optional[str] = None) -> str:
        """Generate OAuth authorization URL"""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "state": state,
        }
        return f"{self.auth_url}?{urlencode(params)}"

    def _token_grant(self, data: Dict[str, Any]) -> TokenGrant:
        if not isinstance(data, dict) or not data.get("access_token"):
            raise MarketplaceAPIError("Token response without access_token", endpoint="/oauth/token")
        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            expires_in=_int(data.get("expires_in"), 21600),
            external_account_id=str(data["user_id"]) if data.get("user_id") else None,
        )

    async def exchange_code_for_token(self, code: str, redirect_uri: Optional[str] = None) -> TokenGrant:
        """Exchange authorization code for access token"""
        data = await self._request(
            "POST",
            "/oauth/token",
            data={
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": redirect_uri or self.redirect_uri,
            },
        )
        return self._token_grant(data)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Refresh access token"""
        data = await self._request(
            "POST",
            "/oauth/token",
            data={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
            },
        )
        return self._token_grant(data)

    async def get_me(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/users/me", access_token=access_token)

    # ========== Orders ==========

    async def search_orders(
        self,
        access_token: str,
        seller_id: str,
        date_from: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> RemotePage:
        """
        Get one page of orders
        API: /orders/search
        """
        params = {
            "seller": seller_id,
            "sort": "date_desc",
            "offset": offset,
            "limit": limit,
        }
        if date_from:
            params["order.date_created.from"] = date_from.isoformat()

        data = await self._request("GET", "/orders/search", access_token=access_token, params=params)
        paging = data.get("paging") or {}
        return RemotePage(
            results=data.get("results") or [],
            total=_int(paging.get("total")),
            offset=offset,
            limit=limit,
        )

    def normalize_order_status(self, platform_status: str) -> str:
        """Map marketplace status to normalized status"""
        return self.ORDER_STATUS_MAP.get(platform_status or "", "paid")

    def normalize_order(self, raw_order: Dict[str, Any]) -> RemoteOrder:
        """Convert a Mercado Livre order to a RemoteOrder"""
        if not isinstance(raw_order, dict) or raw_order.get("id") in (None, ""):
            raise ValueError("order payload without id")

        lines = raw_order.get("order_items") or []
        if not isinstance(lines, list):
            raise ValueError(f"order {raw_order['id']} has malformed order_items")

        items = []
        for line in lines:
            if not isinstance(line, dict):
                raise ValueError(f"order {raw_order['id']} has a malformed line")
            item = line.get("item") or {}
            if not isinstance(item, dict) or not item.get("id"):
                raise ValueError(f"order {raw_order['id']} has a line without item id")
            items.append(
                RemoteOrderItem(
                    external_item_id=str(item["id"]),
                    variation_id=str(item["variation_id"]) if item.get("variation_id") else None,
                    title=item.get("title") or "",
                    sku=item.get("seller_sku") or None,
                    quantity=max(_int(line.get("quantity"), 1), 1),
                    unit_price=max(_money(line.get("unit_price")), Decimal("0")),
                    sale_fee=_money(line.get("sale_fee")),
                )
            )

        status_raw = raw_order.get("status") or ""
        return RemoteOrder(
            external_order_id=str(raw_order["id"]),
            status=self.normalize_order_status(status_raw),
            status_raw=status_raw,
            date_created=parse_iso_datetime(raw_order.get("date_created")),
            total_amount=_money(raw_order.get("total_amount")),
            coupon_amount=_money((raw_order.get("coupon") or {}).get("amount")),
            buyer_nickname=(raw_order.get("buyer") or {}).get("nickname"),
            items=items,
        )

    # ========== Listings ==========

    async def search_item_ids(
        self,
        access_token: str,
        seller_id: str,
        offset: int = 0,
        limit: int = 50,
    ) -> RemotePage:
        """
        Get one page of item ids
        API: /users/{seller_id}/items/search
        """
        data = await self._request(
            "GET",
            f"/users/{seller_id}/items/search",
            access_token=access_token,
            params={"offset": offset, "limit": limit},
        )
        paging = data.get("paging") or {}
        return RemotePage(
            results=[str(i) for i in data.get("results") or []],
            total=_int(paging.get("total")),
            offset=offset,
            limit=limit,
        )

    async def get_items(self, access_token: str, item_ids: List[str]) -> List[Dict[str, Any]]:
        """
        Multi-get item details (max 20 ids)
        API: /items?ids=
        """
        if len(item_ids) > self.ITEMS_BATCH_SIZE:
            raise ValueError(f"at most {self.ITEMS_BATCH_SIZE} ids per call")

        data = await self._request(
            "GET",
            "/items",
            access_token=access_token,
            params={"ids": ",".join(item_ids), "attributes": self.ITEM_ATTRIBUTES},
        )
        bodies = []
        for entry in data or []:
            if entry.get("code", 200) != 200:
                logger.warning(f"[{self.PLATFORM_NAME}] item detail unavailable: {entry.get('body')}")
                continue
            bodies.append(entry.get("body") or {})
        return bodies

    async def get_item(self, access_token: str, item_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/items/{item_id}",
            access_token=access_token,
            params={"attributes": self.ITEM_ATTRIBUTES},
        )

    async def update_item(self, access_token: str, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/items/{item_id}",
            access_token=access_token,
            json=payload,
        )

    def normalize_listing(self, raw_item: Dict[str, Any]) -> RemoteListing:
        """Convert a Mercado Livre item to a RemoteListing"""
        if not isinstance(raw_item, dict) or not raw_item.get("id"):
            raise ValueError("item payload without id")

        price = _money(raw_item.get("price"))
        shipping = raw_item.get("shipping") or {}
        variations = [
            RemoteVariation(
                external_variation_id=str(v["id"]),
                price=_money(v.get("price")) if v.get("price") else price,
                available_quantity=_int(v.get("available_quantity")),
                sold_quantity=_int(v.get("sold_quantity")),
                sku=v.get("seller_custom_field") or None,
                attributes=v.get("attribute_combinations") or [],
            )
            for v in raw_item.get("variations") or []
            if v.get("id") is not None
        ]

        status_raw = raw_item.get("status") or ""
        return RemoteListing(
            external_item_id=str(raw_item["id"]),
            title=raw_item.get("title") or "",
            status=self.LISTING_STATUS_MAP.get(status_raw, "paused"),
            substatus=", ".join(raw_item.get("sub_status") or []) or None,
            price=price,
            original_price=_money(raw_item["original_price"]) if raw_item.get("original_price") else None,
            available_quantity=_int(raw_item.get("available_quantity")),
            sold_quantity=_int(raw_item.get("sold_quantity")),
            listing_type=raw_item.get("listing_type_id"),
            logistic_type=shipping.get("logistic_type"),
            condition=raw_item.get("condition"),
            category_id=raw_item.get("category_id"),
            site_id=raw_item.get("site_id"),
            permalink=raw_item.get("permalink"),
            thumbnail=raw_item.get("thumbnail"),
            free_shipping=bool(shipping.get("free_shipping")),
            seller_sku=raw_item.get("seller_custom_field") or None,
            remote_created_at=parse_iso_datetime(raw_item.get("date_created")),
            remote_updated_at=parse_iso_datetime(raw_item.get("last_updated")),
            variations=variations,
        )
