"""
Sync Service - Mercado Livre order and listing synchronization
"""
from typing import List, Callable, Awaitable
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
import logging
import asyncio

from profitnav.core import commit_or_raise
from profitnav.core.exceptions import (
    MarketplaceAPIError, IntegrationNotFoundError, SyncInProgressError,
)
from profitnav.core.timeutil import utcnow, ensure_utc
from profitnav.integrations.base import BaseMarketplaceClient, RemoteOrder, RemoteListing
from profitnav.models import (
    Order, OrderItem, Listing, ListingVariation, Product, Inventory,
    MarketplaceCredential, SyncRun,
)
from profitnav.schemas.sync import SyncStats
from . import credential_service, dashboard_service

logger = logging.getLogger(__name__)

SYNC_TYPES = ("all", "orders", "listings")


def apply_remote_listing(listing: Listing, remote: RemoteListing) -> None:
    """Copy the marketplace-owned fields of an item onto the local mirror"""
    listing.title = remote.title
    listing.status = remote.status
    listing.substatus = remote.substatus
    listing.price = remote.price
    listing.original_price = remote.original_price
    listing.available_quantity = remote.available_quantity
    listing.sold_quantity = remote.sold_quantity
    listing.listing_type = remote.listing_type
    listing.logistic_type = remote.logistic_type
    listing.condition = remote.condition
    listing.category_id = remote.category_id
    listing.site_id = remote.site_id
    listing.permalink = remote.permalink
    listing.thumbnail = remote.thumbnail
    listing.free_shipping = remote.free_shipping
    listing.has_variations = bool(remote.variations)
    listing.remote_created_at = remote.remote_created_at
    listing.remote_updated_at = remote.remote_updated_at


def get_sync_runs(db: Session, user_id: str, limit: int = 20) -> List[SyncRun]:
    """Most recent sync runs first"""
    return (
        db.query(SyncRun)
        .filter(SyncRun.user_id == user_id)
        .order_by(SyncRun.started_at.desc())
        .limit(limit)
        .all()
    )


class MarketplaceSyncService:
    """
    Pulls orders and listings of one user's seller account into the local
    store. Remote calls are strictly sequential with a flat pause between
    them; every record is upserted by its natural key so a run can be
    repeated safely.
    """

    ORDERS_PAGE_SIZE = 50
    LISTINGS_PAGE_SIZE = 50
    PAGE_DELAY = 0.2  # seconds between search pages
    BATCH_DELAY = 0.1  # seconds between item detail batches
    FULL_SYNC_WINDOW = timedelta(days=90)

    def __init__(
        self,
        db: Session,
        user_id: str,
        client: BaseMarketplaceClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.user_id = user_id
        self.client = client
        self.sleep = sleep
        self.clock = clock
        self._lease_owner = None

    async def sync(self, full_sync: bool = False, sync_type: str = "all") -> SyncStats:
        """
        Run one sync for the user.

        Raises IntegrationNotFoundError without a credential,
        SyncInProgressError while another run holds the lease and
        ReconnectRequiredError when no valid token can be obtained.
        """
        if sync_type not in SYNC_TYPES:
            raise ValueError(f"Unknown sync_type: {sync_type}")

        credential = credential_service.get_credential(self.db, self.user_id)
        if not credential:
            raise IntegrationNotFoundError("No marketplace integration for this user")

        started_at = self.clock()
        lease_owner = credential_service.acquire_sync_lease(self.db, credential, now=started_at)
        if lease_owner is None:
            raise SyncInProgressError("A sync is already running for this account")

        self._lease_owner = lease_owner
        try:
            return await self._run(credential, full_sync, sync_type, started_at)
        finally:
            credential_service.release_sync_lease(self.db, credential, lease_owner)
            self._lease_owner = None

    async def _run(
        self,
        credential: MarketplaceCredential,
        full_sync: bool,
        sync_type: str,
        started_at: datetime,
    ) -> SyncStats:
        run = SyncRun(
            user_id=self.user_id,
            sync_type=sync_type,
            full_sync=full_sync,
            started_at=started_at,
        )
        self.db.add(run)
        commit_or_raise(self.db, "sync run")

        stats = SyncStats(sync_run_id=run.id)
        logger.info(f"[ML Sync] Starting {sync_type} sync for user {self.user_id} (full={full_sync})")

        try:
            if sync_type in ("all", "orders"):
                date_from = self._window_start(credential, full_sync, started_at)
                await self._sync_orders(credential, date_from, stats)

            if sync_type in ("all", "listings"):
                await self._sync_listings(credential, stats)

            stats.records_synced = stats.orders_inserted + stats.items_inserted + stats.products_inserted
            stats.status = "completed"

            # A truncated order pull must be re-covered by the next incremental run
            if sync_type in ("all", "orders") and not stats.orders_truncated:
                credential.last_sync_at = started_at

            run.mark_completed(
                records_synced=stats.records_synced,
                stats=self._stats_payload(stats),
                error_message="; ".join(stats.partial_failures) or None,
            )
            commit_or_raise(self.db, "sync run")

        except Exception as e:
            self.db.rollback()
            logger.error(f"[ML Sync] Sync failed for user {self.user_id}: {e}")
            stats.status = "failed"
            run.mark_failed(str(e), stats=self._stats_payload(stats))
            commit_or_raise(self.db, "sync run")
            raise

        stats.summary = dashboard_service.listing_summary(self.db, self.user_id)

        logger.info(
            f"[ML Sync] Sync completed for user {self.user_id}: "
            f"orders={stats.orders_inserted}/{stats.orders_updated}, items={stats.items_inserted}, "
            f"listings={stats.listings_inserted}/{stats.listings_updated}, "
            f"products={stats.products_inserted}, partial_failures={len(stats.partial_failures)}"
        )
        return stats

    def _window_start(
        self,
        credential: MarketplaceCredential,
        full_sync: bool,
        now: datetime,
    ) -> datetime:
        if not full_sync and credential.last_sync_at:
            return ensure_utc(credential.last_sync_at)
        return now - self.FULL_SYNC_WINDOW

    @staticmethod
    def _stats_payload(stats: SyncStats) -> dict:
        return stats.model_dump(mode="json", exclude={"sync_run_id", "status", "summary"})

    async def _checkpoint(self, credential: MarketplaceCredential) -> str:
        """
        Runs before every remote call: keeps the sync lease alive and returns
        a token that is not about to expire.
        """
        now = self.clock()
        if not credential_service.renew_sync_lease(self.db, credential, self._lease_owner, now=now):
            raise SyncInProgressError("Sync lease was taken over by another run")
        return await credential_service.require_valid_token(self.db, credential, self.client, now=now)

    def _record_partial_failure(self, stats: SyncStats, resource: str, detail: str, error: Exception):
        message = f"{resource}: {detail} failed: {getattr(error, 'message', error)}"
        logger.warning(f"[ML Sync] {message}; stopping {resource} pagination")
        stats.partial_failures.append(message)

    # ========== Orders ==========

    async def _sync_orders(
        self,
        credential: MarketplaceCredential,
        date_from: datetime,
        stats: SyncStats,
    ):
        logger.info(f"[ML Sync] Fetching orders from {date_from.isoformat()}")
        offset = 0
        limit = self.ORDERS_PAGE_SIZE

        while True:
            token = await self._checkpoint(credential)
            try:
                page = await self.client.search_orders(
                    token, credential.external_account_id, date_from=date_from, offset=offset, limit=limit,
                )
            except MarketplaceAPIError as e:
                self._record_partial_failure(stats, "orders", f"page at offset {offset}", e)
                break

            for raw_order in page.results:
                stats.orders_fetched += 1
                try:
                    remote = self.client.normalize_order(raw_order)
                except ValueError as e:
                    logger.warning(f"[ML Sync] Skipping order payload: {e}")
                    stats.orders_skipped += 1
                    continue

                self._upsert_order(remote, stats)

            if not page.has_more:
                break
            offset += limit
            await self.sleep(self.PAGE_DELAY)

        logger.info(f"[ML Sync] Fetched {stats.orders_fetched} orders")

    def _product_cost(self, external_item_id: str):
        cost = (
            self.db.query(Product.cost_unit)
            .filter(Product.user_id == self.user_id, Product.external_item_id == external_item_id)
            .scalar()
        )
        return cost or 0

    def _upsert_order(self, remote: RemoteOrder, stats: SyncStats) -> Order:
        """
        Create or update one order and reconcile its lines.
        Seller-entered cost fields are never touched.
        """
        order = self.db.query(Order).filter(
            Order.user_id == self.user_id,
            Order.external_order_id == remote.external_order_id,
        ).first()

        if order is None:
            order = Order(user_id=self.user_id, external_order_id=remote.external_order_id)
            self.db.add(order)
            stats.orders_inserted += 1
        else:
            stats.orders_updated += 1

        order.status = remote.status
        order.status_raw = remote.status_raw
        order.date = remote.date_created or order.date or self.clock()
        order.gross_total = remote.total_amount
        order.discounts_total = remote.coupon_amount
        order.fees_total = remote.fees_total
        order.buyer_nickname = remote.buyer_nickname

        # Order row first, then its lines
        self.db.flush()

        lines = {item.external_line_id: item for item in order.items}
        for line_no, remote_item in enumerate(remote.items, start=1):
            item = lines.get(remote_item.line_id)
            if item is None:
                item = OrderItem(
                    user_id=self.user_id,
                    order_id=order.id,
                    external_line_id=remote_item.line_id,
                    external_item_id=remote_item.external_item_id,
                    unit_discount=0,
                    unit_cost=self._product_cost(remote_item.external_item_id),
                )
                order.items.append(item)
                lines[remote_item.line_id] = item
                stats.items_inserted += 1
            else:
                stats.items_updated += 1

            item.line_no = line_no
            item.sku = remote_item.sku
            item.product_name = remote_item.title
            item.quantity = remote_item.quantity
            item.unit_price = remote_item.unit_price

        commit_or_raise(self.db, f"order {remote.external_order_id}")
        return order

    # ========== Listings ==========

    async def _sync_listings(self, credential: MarketplaceCredential, stats: SyncStats):
        logger.info("[ML Sync] Fetching listings...")
        offset = 0
        limit = self.LISTINGS_PAGE_SIZE
        batch_size = getattr(self.client, "ITEMS_BATCH_SIZE", 20)

        while True:
            token = await self._checkpoint(credential)
            try:
                page = await self.client.search_item_ids(
                    token, credential.external_account_id, offset=offset, limit=limit,
                )
            except MarketplaceAPIError as e:
                self._record_partial_failure(stats, "listings", f"page at offset {offset}", e)
                return

            item_ids = page.results
            for start in range(0, len(item_ids), batch_size):
                batch = item_ids[start:start + batch_size]
                token = await self._checkpoint(credential)
                try:
                    bodies = await self.client.get_items(token, batch)
                except MarketplaceAPIError as e:
                    self._record_partial_failure(
                        stats, "listings", f"detail batch at offset {offset + start}", e,
                    )
                    return

                for raw_item in bodies:
                    stats.listings_fetched += 1
                    try:
                        remote = self.client.normalize_listing(raw_item)
                    except ValueError as e:
                        logger.warning(f"[ML Sync] Skipping item payload: {e}")
                        stats.listings_skipped += 1
                        continue

                    self._upsert_listing(remote, stats)

                await self.sleep(self.BATCH_DELAY)

            if not page.has_more:
                break
            offset += limit
            await self.sleep(self.PAGE_DELAY)

        logger.info(f"[ML Sync] Processed {stats.listings_fetched} listings")

    def _upsert_listing(self, remote: RemoteListing, stats: SyncStats) -> Listing:
        listing = self.db.query(Listing).filter(
            Listing.user_id == self.user_id,
            Listing.external_item_id == remote.external_item_id,
        ).first()

        if listing is None:
            listing = Listing(user_id=self.user_id, external_item_id=remote.external_item_id)
            self.db.add(listing)
            stats.listings_inserted += 1
        else:
            stats.listings_updated += 1

        apply_remote_listing(listing, remote)
        self.db.flush()

        variations = {v.external_variation_id: v for v in listing.variations}
        for remote_variation in remote.variations:
            variation = variations.get(remote_variation.external_variation_id)
            if variation is None:
                variation = ListingVariation(
                    user_id=self.user_id,
                    listing_id=listing.id,
                    external_variation_id=remote_variation.external_variation_id,
                )
                listing.variations.append(variation)
                variations[remote_variation.external_variation_id] = variation
                stats.variations_inserted += 1

            variation.sku = remote_variation.sku
            variation.attributes = remote_variation.attributes
            variation.price = remote_variation.price
            variation.available_quantity = remote_variation.available_quantity
            variation.sold_quantity = remote_variation.sold_quantity

        self._upsert_product(remote, stats)

        commit_or_raise(self.db, f"listing {remote.external_item_id}")
        return listing

    def _upsert_product(self, remote: RemoteListing, stats: SyncStats):
        """Cost-tracking product for the listing; only the stock level is refreshed"""
        product = self.db.query(Product).filter(
            Product.user_id == self.user_id,
            Product.external_item_id == remote.external_item_id,
        ).first()

        if product is None:
            product = Product(
                user_id=self.user_id,
                external_item_id=remote.external_item_id,
                sku=remote.seller_sku or f"ML-{remote.external_item_id}",
                name=remote.title or remote.external_item_id,
                category="Mercado Livre",
                cost_unit=0,
            )
            product.inventory = Inventory(
                user_id=self.user_id,
                available=remote.available_quantity,
                reserved=0,
                min_stock=10,
            )
            self.db.add(product)
            stats.products_inserted += 1
        elif product.inventory is not None:
            product.inventory.available = remote.available_quantity
