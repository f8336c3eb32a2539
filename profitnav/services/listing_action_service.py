"""
Listing Action Service - bulk pause/activate/close/price/stock changes
"""
from decimal import Decimal
from typing import Optional, List, Dict, Any, Callable, Awaitable
from sqlalchemy.orm import Session
import logging
import asyncio

from profitnav.core import commit_or_raise
from profitnav.core.exceptions import (
    MarketplaceAPIError, IntegrationNotFoundError, ListingValidationError,
)
from profitnav.integrations.base import BaseMarketplaceClient
from profitnav.models import Listing
from profitnav.schemas.listing import ListingAction, ActionItemResult, ActionBatchResult
from . import credential_service
from .profit_service import round_money
from .sync_service import apply_remote_listing

logger = logging.getLogger(__name__)

STATUS_ACTIONS = {
    ListingAction.PAUSE: "paused",
    ListingAction.ACTIVATE: "active",
    ListingAction.CLOSE: "closed",
}


def build_payload(action: ListingAction, value: Optional[Decimal] = None) -> Dict[str, Any]:
    """
    Remote mutation body for an action.
    Raises ListingValidationError for a missing or out-of-range value.
    """
    action = ListingAction(action)

    if action in STATUS_ACTIONS:
        return {"status": STATUS_ACTIONS[action]}

    if action == ListingAction.UPDATE_PRICE:
        if value is None or Decimal(value) <= 0:
            raise ListingValidationError("Invalid price value")
        return {"price": float(round_money(value))}

    if action == ListingAction.UPDATE_STOCK:
        if value is None:
            raise ListingValidationError("Invalid stock value")
        value = Decimal(value)
        if value < 0 or value != value.to_integral_value():
            raise ListingValidationError("Invalid stock value")
        return {"available_quantity": int(value)}

    raise ListingValidationError(f"Unknown action: {action}")


class ListingActionService:
    """
    Applies one action to a batch of items, one item at a time. A failed item
    is reported and the batch moves on; only credential failures abort it.
    """

    ITEM_DELAY = 0.1  # seconds between items

    def __init__(
        self,
        db: Session,
        user_id: str,
        client: BaseMarketplaceClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.db = db
        self.user_id = user_id
        self.client = client
        self.sleep = sleep

    async def apply_action(
        self,
        action: ListingAction,
        item_ids: List[str],
        value: Optional[Decimal] = None,
    ) -> ActionBatchResult:
        action = ListingAction(action)

        credential = credential_service.get_credential(self.db, self.user_id)
        if not credential:
            raise IntegrationNotFoundError("No marketplace integration for this user")

        logger.info(f"[ML Actions] {action.value} on {len(item_ids)} items for user {self.user_id}")

        results: List[ActionItemResult] = []
        for index, item_id in enumerate(item_ids):
            if index:
                await self.sleep(self.ITEM_DELAY)
            results.append(await self._apply_one(credential, action, item_id, value))

        succeeded = sum(1 for r in results if r.success)
        total = len(results)
        if succeeded == total:
            message = f"{succeeded} item(s) updated"
        else:
            message = f"{succeeded} of {total} item(s) updated, {total - succeeded} failed"

        logger.info(f"[ML Actions] {action.value}: {message}")
        return ActionBatchResult(success=succeeded == total, message=message, results=results)

    async def _apply_one(self, credential, action: ListingAction, item_id: str, value) -> ActionItemResult:
        try:
            payload = build_payload(action, value)
        except ListingValidationError as e:
            logger.warning(f"[ML Actions] Rejected {action.value} for {item_id}: {e.message}")
            return ActionItemResult(item_id=item_id, success=False, error=e.message)

        token = await credential_service.require_valid_token(self.db, credential, self.client)

        logger.info(f"[ML Actions] Updating item {item_id} with {payload}")
        try:
            await self.client.update_item(token, item_id, payload)
        except MarketplaceAPIError as e:
            logger.error(f"[ML Actions] Failed to update {item_id}: {e.message}")
            return ActionItemResult(item_id=item_id, success=False, error=e.message)

        await self._refresh_mirror(token, item_id)
        return ActionItemResult(item_id=item_id, success=True)

    async def _refresh_mirror(self, token: str, item_id: str):
        """Re-read the item and upsert the local listing; the mutation already succeeded"""
        try:
            remote = self.client.normalize_listing(await self.client.get_item(token, item_id))
        except (MarketplaceAPIError, ValueError) as e:
            logger.warning(f"[ML Actions] Could not refresh local copy of {item_id}: {e}")
            return

        listing = self.db.query(Listing).filter(
            Listing.user_id == self.user_id,
            Listing.external_item_id == remote.external_item_id,
        ).first()
        if listing is None:
            listing = Listing(user_id=self.user_id, external_item_id=remote.external_item_id)
            self.db.add(listing)

        apply_remote_listing(listing, remote)
        commit_or_raise(self.db, f"listing {item_id}")
