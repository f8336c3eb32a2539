from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import app
from profitnav.api.deps import get_marketplace_client
from profitnav.core.database import get_db
from profitnav.core.timeutil import utcnow
from profitnav.models import Order, OrderItem, FixedCost

from conftest import USER_ID, make_order, make_item

HEADERS = {"X-User-Id": USER_ID}


@pytest.fixture
def api(db, client):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_marketplace_client] = lambda: client
    yield TestClient(app)
    app.dependency_overrides.clear()


def _stored_order(db, external_id, date, unit_price, status="paid"):
    order = Order(user_id=USER_ID, external_order_id=external_id, date=date, status=status)
    order.items.append(OrderItem(
        user_id=USER_ID, external_line_id="MLB1", quantity=1,
        unit_price=Decimal(unit_price), unit_cost=Decimal("10"),
    ))
    db.add(order)
    db.commit()
    return order


def test_health(api):
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_user_header_is_unauthorized(api):
    assert api.get("/api/integrations/mercadolivre/status").status_code == 401


def test_pricing_suggest(api):
    response = api.post("/api/pricing/suggest", json={
        "product_cost": 45, "packaging_cost": 3, "shipping_seller": 5,
        "ml_fee_percent": 16, "ml_fee_discount_percent": 10,
        "ads_percent": 3, "tax_percent": 5, "target_margin_percent": 15,
    })

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["suggested_price"]) == Decimal("84.66")
    assert body["feasible"] is True


def test_pricing_scenarios(api):
    response = api.post("/api/pricing/scenarios", json={"product_cost": 53, "ml_fee_percent": 16, "sale_price": 100})

    assert response.status_code == 200
    assert [s["name"] for s in response.json()] == ["pessimistic", "realistic", "optimistic"]


def test_profit_breakdown(api):
    response = api.post("/api/profit/breakdown", json={
        "order": {"gross_total": 1, "items": [{"quantity": 2, "unit_price": "25.00", "unit_cost": "5"}]},
        "fixed_costs": [{"name": "rent", "amount_monthly": 100}],
        "orders_in_period": 4,
    })

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["gross_revenue"]) == Decimal("50")
    assert Decimal(body["net_profit"]) == Decimal("15")


def test_profit_breakdown_rejects_discount_above_price(api):
    response = api.post("/api/profit/breakdown", json={
        "order": {"items": [{"unit_price": 10, "unit_discount": 11}]},
    })

    assert response.status_code == 422


def test_profit_aggregate(api):
    response = api.post("/api/profit/aggregate", json={
        "orders": [
            {"items": [{"unit_price": 10}]},
            {"status": "cancelled", "items": [{"unit_price": 10}]},
        ],
    })

    body = response.json()
    assert body["orders_count"] == 1
    assert body["cancellations"] == 1


def test_dashboard_summary_and_stored_order_breakdown(api, db):
    may = datetime(2024, 5, 10, tzinfo=timezone.utc)
    first = _stored_order(db, "A", may, "100")
    _stored_order(db, "B", may + timedelta(days=5), "50")
    _stored_order(db, "C", may + timedelta(days=6), "70", status="cancelled")
    _stored_order(db, "D", datetime(2024, 6, 2, tzinfo=timezone.utc), "30")
    db.add(FixedCost(user_id=USER_ID, name="rent", amount_monthly=Decimal("100")))
    db.commit()

    summary = api.get(
        "/api/dashboard/summary",
        params={"start": "2024-05-01T00:00:00+00:00", "end": "2024-06-01T00:00:00+00:00"},
        headers=HEADERS,
    ).json()
    assert summary["orders_count"] == 2
    assert summary["cancellations"] == 1
    assert Decimal(summary["totals"]["gross_revenue"]) == Decimal("150")

    breakdown = api.get(f"/api/profit/orders/{first.id}", headers=HEADERS).json()
    # two counted orders in May share the fixed cost
    assert Decimal(breakdown["fixed_costs_allocation"]) == Decimal("50")
    assert Decimal(breakdown["net_profit"]) == Decimal("40")


def test_stored_order_of_another_user_is_not_found(api, db):
    order = _stored_order(db, "A", utcnow(), "10")

    response = api.get(f"/api/profit/orders/{order.id}", headers={"X-User-Id": "someone-else"})

    assert response.status_code == 404
    assert response.json()["error"] == "ORDER_NOT_FOUND"


def test_integration_status_without_credential(api):
    body = api.get("/api/integrations/mercadolivre/status", headers=HEADERS).json()

    assert body["connected"] is False
    assert body["state"] == "no_credential"


def test_oauth_round_trip(api):
    authorize = api.post("/api/integrations/mercadolivre/authorize", headers=HEADERS).json()
    assert "state=" in authorize["authorization_url"]

    response = api.post(
        "/api/integrations/mercadolivre/callback",
        json={"code": "auth-code", "state": authorize["state"]},
    )

    assert response.status_code == 200
    assert response.json()["state"] == "active"
    assert response.json()["nickname"] == "LOJA_TESTE"

    status = api.get("/api/integrations/mercadolivre/status", headers=HEADERS).json()
    assert status["connected"] is True

    assert api.delete("/api/integrations/mercadolivre", headers=HEADERS).status_code == 204
    assert api.delete("/api/integrations/mercadolivre", headers=HEADERS).status_code == 404


def test_bad_oauth_state(api):
    response = api.post("/api/integrations/mercadolivre/callback", json={"code": "x", "state": "forged"})

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_OAUTH_STATE"


def test_sync_endpoint(api, marketplace, credential):
    marketplace.orders = [make_order(1)]
    marketplace.items = {"MLB1": make_item("MLB1")}

    response = api.post("/api/sync", json={"full_sync": True}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["records_synced"] == 3
    assert body["summary"]["total_listings"] == 1

    history = api.get("/api/sync/history", headers=HEADERS).json()
    assert len(history) == 1
    assert history[0]["status"] == "completed"

    status = api.get("/api/sync/status", headers=HEADERS).json()
    assert status["is_running"] is False
    assert status["last_run"]["records_synced"] == 3


def test_sync_in_progress_is_conflict(api, db, credential):
    credential.sync_lease_until = utcnow() + timedelta(minutes=10)
    db.commit()

    response = api.post("/api/sync", json={}, headers=HEADERS)

    assert response.status_code == 409
    assert response.json()["error"] == "SYNC_IN_PROGRESS"


def test_sync_requires_reconnect(api, db, credential):
    credential.is_active = False
    db.commit()

    response = api.post("/api/sync", json={}, headers=HEADERS)

    assert response.status_code == 401
    assert response.json()["requires_reauth"] is True


def test_listing_actions_endpoint(api, marketplace, credential):
    marketplace.items = {"MLB1": make_item("MLB1"), "MLB2": make_item("MLB2")}

    response = api.post(
        "/api/listings/actions",
        json={"action": "update_price", "item_ids": ["MLB1", "MLB2"], "value": "149.90"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert marketplace.items["MLB1"]["price"] == 149.9

    summary = api.get("/api/listings/summary", headers=HEADERS).json()
    assert summary["total_listings"] == 2


def test_listing_actions_require_item_ids(api, credential):
    response = api.post("/api/listings/actions", json={"action": "pause", "item_ids": []}, headers=HEADERS)

    assert response.status_code == 422
