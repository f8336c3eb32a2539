"""
Profit Service - per-order profit breakdown and period aggregation

Pure functions, no I/O. Accepts ORM rows (Order/OrderItem/FixedCost) or the
equivalent input schemas; anything exposing the same attribute names works.
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_HALF_DOWN
from typing import Iterable, List, Sequence, Any

from profitnav.models.order import EXCLUDED_STATUSES, OrderStatus
from profitnav.schemas.profit import ProfitBreakdown, AggregateResult

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

BREAKDOWN_FIELDS = tuple(ProfitBreakdown.model_fields)


def to_decimal(value: Any) -> Decimal:
    """Coerce ORM Numeric / float / int / None into an exact Decimal"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    value = to_decimal(value)
    # Half-cents go toward +infinity on both signs: -0.005 -> 0.00
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return value.quantize(CENT, rounding=rounding) + ZERO  # no "-0.00"


def _field(obj: Any, name: str) -> Decimal:
    return to_decimal(getattr(obj, name, None))


def total_fixed_costs(fixed_costs: Iterable[Any]) -> Decimal:
    """Sum of amount_monthly over active costs only"""
    return sum(
        (to_decimal(c.amount_monthly) for c in fixed_costs if getattr(c, "is_active", True)),
        ZERO,
    )


def compute_breakdown(order: Any, fixed_costs: Iterable[Any], orders_in_period: int) -> ProfitBreakdown:
    """
    Itemized net profit for one order.

    Revenue is derived from the items, never from order.gross_total. Fixed
    costs are spread evenly over orders_in_period. Intermediate values keep
    full precision; every field is rounded to cents once, on emission.
    """
    items = list(getattr(order, "items", None) or [])

    gross_revenue = sum((_field(i, "unit_price") * int(i.quantity or 0) for i in items), ZERO)
    item_discounts = sum((_field(i, "unit_discount") * int(i.quantity or 0) for i in items), ZERO)
    discounts = _field(order, "discounts_total") + item_discounts
    net_revenue = gross_revenue - discounts

    cogs = sum((_field(i, "unit_cost") * int(i.quantity or 0) for i in items), ZERO)

    ml_fees_gross = _field(order, "fees_total")
    ml_fee_discount = _field(order, "fee_discount_total")
    ml_fees_net = ml_fees_gross - ml_fee_discount

    # Buyer-paid shipping never enters the calculation
    shipping_seller = _field(order, "shipping_seller")

    packaging_cost = _field(order, "packaging_cost")
    processing_cost = _field(order, "processing_cost")
    ads_cost = _field(order, "ads_total")
    taxes = _field(order, "taxes_total")
    variable_costs = packaging_cost + processing_cost + ads_cost + taxes

    fixed_total = total_fixed_costs(fixed_costs)
    fixed_costs_allocation = fixed_total / Decimal(orders_in_period) if orders_in_period > 0 else ZERO

    net_profit = (
        net_revenue
        - cogs
        - ml_fees_net
        - shipping_seller
        - variable_costs
        - fixed_costs_allocation
    )
    net_margin_percent = net_profit / net_revenue * HUNDRED if net_revenue > 0 else ZERO

    return ProfitBreakdown(
        gross_revenue=round_money(gross_revenue),
        discounts=round_money(discounts),
        net_revenue=round_money(net_revenue),
        cogs=round_money(cogs),
        ml_fees_gross=round_money(ml_fees_gross),
        ml_fee_discount=round_money(ml_fee_discount),
        ml_fees_net=round_money(ml_fees_net),
        shipping_seller=round_money(shipping_seller),
        packaging_cost=round_money(packaging_cost),
        processing_cost=round_money(processing_cost),
        ads_cost=round_money(ads_cost),
        taxes=round_money(taxes),
        variable_costs=round_money(variable_costs),
        fixed_costs_allocation=round_money(fixed_costs_allocation),
        net_profit=round_money(net_profit),
        net_margin_percent=round_money(net_margin_percent),
    )


def is_counted(order: Any) -> bool:
    return getattr(order, "status", None) not in EXCLUDED_STATUSES


def sum_breakdowns(breakdowns: Sequence[ProfitBreakdown]) -> ProfitBreakdown:
    """Field-wise sum; net_margin_percent recomputed from the summed totals"""
    totals = {name: ZERO for name in BREAKDOWN_FIELDS}
    for breakdown in breakdowns:
        for name in BREAKDOWN_FIELDS:
            totals[name] += getattr(breakdown, name)

    net_revenue = totals["net_revenue"]
    totals["net_margin_percent"] = (
        totals["net_profit"] / net_revenue * HUNDRED if net_revenue > 0 else ZERO
    )
    return ProfitBreakdown(**{name: round_money(value) for name, value in totals.items()})


def aggregate(orders: Iterable[Any], fixed_costs: Iterable[Any]) -> AggregateResult:
    """
    Fold per-order breakdowns into period totals.

    Cancelled and returned orders are left out of every financial total and
    of the allocation denominator, but are still counted in
    returns/cancellations. Every counted order shares one denominator.
    """
    orders = list(orders)
    fixed_costs = list(fixed_costs)

    valid_orders: List[Any] = [o for o in orders if is_counted(o)]
    orders_in_period = len(valid_orders)

    breakdowns = [compute_breakdown(o, fixed_costs, orders_in_period) for o in valid_orders]
    totals = sum_breakdowns(breakdowns)

    items_sold = sum(
        int(item.quantity or 0)
        for order in valid_orders
        for item in (getattr(order, "items", None) or [])
    )
    avg_ticket = (
        round_money(totals.gross_revenue / Decimal(orders_in_period))
        if orders_in_period > 0 else round_money(ZERO)
    )

    return AggregateResult(
        totals=totals,
        orders_count=orders_in_period,
        items_sold=items_sold,
        avg_ticket=avg_ticket,
        returns=sum(1 for o in orders if getattr(o, "status", None) == OrderStatus.RETURNED.value),
        cancellations=sum(1 for o in orders if getattr(o, "status", None) == OrderStatus.CANCELLED.value),
    )
