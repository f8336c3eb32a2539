"""
Dashboard Service - profit engine over stored orders
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from profitnav.core.exceptions import OrderNotFoundError
from profitnav.core.timeutil import utcnow, ensure_utc
from profitnav.models import Order, FixedCost, Listing, ListingStatus, EXCLUDED_STATUSES
from profitnav.schemas.profit import ProfitBreakdown, AggregateResult
from profitnav.schemas.sync import ListingSummary
from . import profit_service

logger = logging.getLogger(__name__)


def get_orders(
    db: Session,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Order]:
    """Orders of a user with their items, optionally limited to [start, end)"""
    query = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id)
    )
    if start:
        query = query.filter(Order.date >= start)
    if end:
        query = query.filter(Order.date < end)

    return query.order_by(Order.date.desc()).all()


def get_fixed_costs(db: Session, user_id: str) -> List[FixedCost]:
    return db.query(FixedCost).filter(FixedCost.user_id == user_id).all()


def period_summary(
    db: Session,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> AggregateResult:
    """Aggregate profit for the stored orders in a period"""
    orders = get_orders(db, user_id, start, end)
    result = profit_service.aggregate(orders, get_fixed_costs(db, user_id))

    logger.info(
        f"Dashboard summary for {user_id}: {result.orders_count} orders, "
        f"net_profit={result.totals.net_profit}"
    )
    return result


def _month_bounds(moment: datetime):
    moment = ensure_utc(moment)
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def order_breakdown(db: Session, user_id: str, order_id: UUID) -> ProfitBreakdown:
    """
    Breakdown of one stored order. Fixed costs are spread over the counted
    orders of the same calendar month.
    """
    order = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id, Order.id == order_id)
        .first()
    )
    if not order:
        raise OrderNotFoundError(f"Order not found: {order_id}")

    month_start, month_end = _month_bounds(order.date or utcnow())
    orders_in_period = (
        db.query(func.count(Order.id))
        .filter(
            Order.user_id == user_id,
            Order.date >= month_start,
            Order.date < month_end,
            Order.status.notin_(EXCLUDED_STATUSES),
        )
        .scalar()
    ) or 0

    return profit_service.compute_breakdown(order, get_fixed_costs(db, user_id), orders_in_period)


def listing_summary(db: Session, user_id: str) -> ListingSummary:
    """Counts by status and stock presence over the local listing mirror"""
    rows = (
        db.query(Listing.status, Listing.available_quantity)
        .filter(Listing.user_id == user_id)
        .all()
    )

    return ListingSummary(
        total_listings=len(rows),
        active=sum(1 for status, _ in rows if status == ListingStatus.ACTIVE.value),
        paused=sum(1 for status, _ in rows if status == ListingStatus.PAUSED.value),
        closed=sum(1 for status, _ in rows if status == ListingStatus.CLOSED.value),
        with_stock=sum(1 for _, qty in rows if (qty or 0) > 0),
        without_stock=sum(1 for _, qty in rows if not qty),
    )
