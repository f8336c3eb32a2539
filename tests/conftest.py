import json
import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ML_CLIENT_ID", "test-client")
os.environ.setdefault("ML_CLIENT_SECRET", "test-secret")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from profitnav.core import Base
from profitnav.core.timeutil import utcnow
from profitnav.integrations import MercadoLivreClient
from profitnav.models import MarketplaceCredential

SELLER_ID = "123456"
USER_ID = "user-1"
API_BASE = "https://api.test"


def make_order(order_id, status="paid", items=None, total=None, coupon=None, date="2024-05-10T12:00:00.000-03:00"):
    items = items if items is not None else [make_order_line("MLB1", quantity=1, unit_price=100, sale_fee=16)]
    payload = {
        "id": order_id,
        "status": status,
        "date_created": date,
        "total_amount": total if total is not None else sum(i["quantity"] * i["unit_price"] for i in items),
        "buyer": {"nickname": f"BUYER{order_id}"},
        "order_items": items,
    }
    if coupon is not None:
        payload["coupon"] = {"amount": coupon}
    return payload


def make_order_line(item_id, quantity=1, unit_price=100, sale_fee=0, variation_id=None, title=None):
    return {
        "item": {
            "id": item_id,
            "title": title or f"Item {item_id}",
            "seller_sku": f"SKU-{item_id}",
            "variation_id": variation_id,
        },
        "quantity": quantity,
        "unit_price": unit_price,
        "sale_fee": sale_fee,
    }


def make_item(item_id, status="active", price=99.9, available_quantity=5, variations=None, seller_sku=None):
    return {
        "id": item_id,
        "title": f"Listing {item_id}",
        "status": status,
        "sub_status": [],
        "price": price,
        "available_quantity": available_quantity,
        "sold_quantity": 3,
        "listing_type_id": "gold_special",
        "shipping": {"free_shipping": True, "logistic_type": "fulfillment"},
        "condition": "new",
        "category_id": "MLB1000",
        "site_id": "MLB",
        "permalink": f"https://produto.mercadolivre.com.br/{item_id}",
        "thumbnail": f"https://http2.mlstatic.com/{item_id}.jpg",
        "variations": variations or [],
        "date_created": "2024-01-01T10:00:00.000Z",
        "last_updated": "2024-05-01T10:00:00.000Z",
        "seller_custom_field": seller_sku,
    }


class FakeMercadoLivre:
    """In-memory Mercado Livre API served through httpx.MockTransport"""

    def __init__(self):
        self.orders = []
        self.items = {}
        self.requests = []
        self.fail_order_offsets = set()
        self.fail_item_search_offsets = set()
        self.reject_updates = {}
        self.token_error = None
        self.issue_refresh_token = True
        self.tokens_issued = 0

    def calls(self, method=None, path=None):
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if request.method == "POST" and path == "/oauth/token":
            return self._token(request)
        if request.method == "GET" and path == "/users/me":
            return httpx.Response(200, json={"id": int(SELLER_ID), "nickname": "LOJA_TESTE", "email": "loja@example.com", "site_id": "MLB"})
        if request.method == "GET" and path == "/orders/search":
            offset, limit = int(params["offset"]), int(params["limit"])
            if offset in self.fail_order_offsets:
                return httpx.Response(500, json={"message": "internal error"})
            return httpx.Response(200, json={
                "results": self.orders[offset:offset + limit],
                "paging": {"total": len(self.orders), "offset": offset, "limit": limit},
            })
        if request.method == "GET" and path == f"/users/{SELLER_ID}/items/search":
            offset, limit = int(params["offset"]), int(params["limit"])
            if offset in self.fail_item_search_offsets:
                return httpx.Response(503, json={"message": "unavailable"})
            ids = list(self.items)
            return httpx.Response(200, json={
                "results": ids[offset:offset + limit],
                "paging": {"total": len(ids), "offset": offset, "limit": limit},
            })
        if request.method == "GET" and path == "/items":
            entries = []
            for item_id in params["ids"].split(","):
                if item_id in self.items:
                    entries.append({"code": 200, "body": self.items[item_id]})
                else:
                    entries.append({"code": 404, "body": {"message": f"Item {item_id} not found"}})
            return httpx.Response(200, json=entries)
        if path.startswith("/items/"):
            item_id = path.rsplit("/", 1)[-1]
            if item_id not in self.items:
                return httpx.Response(404, json={"message": f"Item {item_id} not found"})
            if request.method == "PUT":
                if item_id in self.reject_updates:
                    return httpx.Response(400, json={"message": self.reject_updates[item_id]})
                self.items[item_id].update(json.loads(request.content))
            return httpx.Response(200, json=self.items[item_id])

        return httpx.Response(404, json={"error": "not_found"})

    def _token(self, request):
        if self.token_error:
            return httpx.Response(400, json={"error": "invalid_grant", "message": self.token_error})

        self.tokens_issued += 1
        body = {
            "access_token": f"access-{self.tokens_issued}",
            "token_type": "bearer",
            "expires_in": 21600,
            "user_id": int(SELLER_ID),
        }
        if self.issue_refresh_token:
            body["refresh_token"] = f"refresh-{self.tokens_issued}"
        return httpx.Response(200, json=body)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def marketplace():
    return FakeMercadoLivre()


@pytest.fixture
def client(marketplace):
    return MercadoLivreClient(
        client_id="test-client",
        client_secret="test-secret",
        redirect_uri="https://app.test/callback",
        base_url=API_BASE,
        transport=httpx.MockTransport(marketplace.handler),
    )


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def credential(db):
    credential = MarketplaceCredential(
        user_id=USER_ID,
        external_account_id=SELLER_ID,
        nickname="LOJA_TESTE",
        site_id="MLB",
        access_token="stored-access",
        refresh_token="stored-refresh",
        expires_at=utcnow() + timedelta(hours=6),
        is_active=True,
    )
    db.add(credential)
    db.commit()
    db.refresh(credential)
    return credential
