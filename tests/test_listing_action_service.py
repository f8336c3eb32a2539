import json
from datetime import timedelta
from decimal import Decimal

import pytest

from profitnav.core.exceptions import ListingValidationError, ReconnectRequiredError
from profitnav.core.timeutil import utcnow
from profitnav.models import Listing
from profitnav.schemas.listing import ListingAction
from profitnav.services.listing_action_service import ListingActionService, build_payload

from conftest import USER_ID, make_item


@pytest.fixture
def service(db, client, sleep):
    return ListingActionService(db, USER_ID, client, sleep=sleep)


@pytest.fixture
def items(marketplace):
    marketplace.items = {item_id: make_item(item_id) for item_id in ("MLB1", "MLB2", "MLB3")}
    return marketplace


def _puts(marketplace):
    return [r for r in marketplace.requests if r.method == "PUT"]


@pytest.mark.parametrize("action, value, expected", [
    (ListingAction.PAUSE, None, {"status": "paused"}),
    (ListingAction.ACTIVATE, None, {"status": "active"}),
    (ListingAction.CLOSE, None, {"status": "closed"}),
    (ListingAction.UPDATE_PRICE, Decimal("129.905"), {"price": 129.91}),
    (ListingAction.UPDATE_STOCK, Decimal("0"), {"available_quantity": 0}),
])
def test_build_payload(action, value, expected):
    assert build_payload(action, value) == expected


@pytest.mark.parametrize("action, value", [
    (ListingAction.UPDATE_PRICE, None),
    (ListingAction.UPDATE_PRICE, Decimal("0")),
    (ListingAction.UPDATE_PRICE, Decimal("-5")),
    (ListingAction.UPDATE_STOCK, Decimal("-1")),
    (ListingAction.UPDATE_STOCK, Decimal("2.5")),
])
def test_build_payload_rejects_bad_values(action, value):
    with pytest.raises(ListingValidationError):
        build_payload(action, value)


async def test_pause_updates_remote_and_mirror(db, service, items, credential, sleep):
    result = await service.apply_action(ListingAction.PAUSE, ["MLB1", "MLB2"])

    assert result.success is True
    assert [r.item_id for r in result.results] == ["MLB1", "MLB2"]
    assert [json.loads(r.content) for r in _puts(items)] == [{"status": "paused"}] * 2
    assert sleep.delays == [0.1]

    mirror = {l.external_item_id: l.status for l in db.query(Listing).all()}
    assert mirror == {"MLB1": "paused", "MLB2": "paused"}


async def test_negative_price_fails_locally_and_batch_continues(db, service, items, credential):
    result = await service.apply_action(ListingAction.UPDATE_PRICE, ["MLB1", "MLB2"], Decimal("-5"))

    assert result.success is False
    assert all(not r.success for r in result.results)
    assert result.results[0].error == "Invalid price value"
    assert _puts(items) == []


async def test_remote_rejection_is_reported_per_item(db, service, items, credential):
    items.reject_updates["MLB2"] = "Item is under review"

    result = await service.apply_action(ListingAction.UPDATE_STOCK, ["MLB1", "MLB2", "MLB3"], Decimal("7"))

    assert result.success is False
    assert [r.success for r in result.results] == [True, False, True]
    assert result.results[1].error == "Item is under review"
    assert [f.item_id for f in result.failed] == ["MLB2"]
    assert "2 of 3" in result.message
    assert items.items["MLB3"]["available_quantity"] == 7

    listing = db.query(Listing).filter(Listing.external_item_id == "MLB3").one()
    assert listing.available_quantity == 7


async def test_unknown_item_fails_without_stopping(db, service, items, credential):
    result = await service.apply_action(ListingAction.CLOSE, ["MLB404", "MLB1"])

    assert [r.success for r in result.results] == [False, True]
    assert "not found" in result.results[0].error


async def test_invalid_credential_aborts_the_batch(db, service, items, credential):
    credential.refresh_token = None
    credential.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(ReconnectRequiredError):
        await service.apply_action(ListingAction.PAUSE, ["MLB1"])

    assert _puts(items) == []


async def test_expiring_token_is_refreshed_before_the_call(db, service, items, credential):
    credential.expires_at = utcnow() + timedelta(minutes=1)
    db.commit()

    result = await service.apply_action(ListingAction.ACTIVATE, ["MLB1"])

    assert result.success is True
    assert _puts(items)[0].headers["Authorization"] == "Bearer access-1"
