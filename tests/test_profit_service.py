from decimal import Decimal

from profitnav.schemas.profit import OrderInput, OrderItemInput, FixedCostInput
from profitnav.services import profit_service


def _order(status="paid", items=None, **amounts):
    return OrderInput(status=status, items=items or [], **amounts)


def _item(quantity=1, unit_price="100", unit_cost="0", unit_discount="0"):
    return OrderItemInput(
        quantity=quantity,
        unit_price=Decimal(unit_price),
        unit_cost=Decimal(unit_cost),
        unit_discount=Decimal(unit_discount),
    )


def test_empty_order_yields_zeros():
    breakdown = profit_service.compute_breakdown(_order(), [], 0)

    for name in profit_service.BREAKDOWN_FIELDS:
        assert getattr(breakdown, name) == Decimal("0.00"), name


def test_gross_revenue_comes_from_items_not_gross_total():
    order = _order(
        gross_total=Decimal("999.99"),
        items=[_item(quantity=2, unit_price="50.25"), _item(quantity=1, unit_price="10")],
    )

    breakdown = profit_service.compute_breakdown(order, [], 1)

    assert breakdown.gross_revenue == Decimal("110.50")
    assert breakdown.net_revenue == Decimal("110.50")


def test_full_breakdown():
    order = _order(
        discounts_total=Decimal("5"),
        fees_total=Decimal("16"),
        fee_discount_total=Decimal("1.60"),
        shipping_total=Decimal("20"),  # paid by the buyer, ignored
        shipping_seller=Decimal("12"),
        packaging_cost=Decimal("2"),
        processing_cost=Decimal("1"),
        ads_total=Decimal("3"),
        taxes_total=Decimal("6"),
        items=[_item(quantity=2, unit_price="60", unit_cost="20", unit_discount="2.50")],
    )
    costs = [FixedCostInput(name="rent", amount_monthly=Decimal("1000"))]

    b = profit_service.compute_breakdown(order, costs, 100)

    assert b.gross_revenue == Decimal("120.00")
    assert b.discounts == Decimal("10.00")
    assert b.net_revenue == Decimal("110.00")
    assert b.cogs == Decimal("40.00")
    assert b.ml_fees_net == Decimal("14.40")
    assert b.variable_costs == Decimal("12.00")
    assert b.fixed_costs_allocation == Decimal("10.00")
    # 110 - 40 - 14.4 - 12 - 12 - 10
    assert b.net_profit == Decimal("21.60")
    assert b.net_margin_percent == Decimal("19.64")


def test_rounding_happens_once_on_emission():
    costs = [FixedCostInput(name="software", amount_monthly=Decimal("100"))]
    order = _order(items=[_item(unit_price="10")])

    b = profit_service.compute_breakdown(order, costs, 3)

    assert b.fixed_costs_allocation == Decimal("33.33")
    # 10 - 33.333... rounds from full precision
    assert b.net_profit == Decimal("-23.33")


def test_negative_half_cent_rounds_toward_positive_infinity():
    costs = [FixedCostInput(name="software", amount_monthly=Decimal("100.01"))]

    b = profit_service.compute_breakdown(_order(), costs, 2)

    assert b.fixed_costs_allocation == Decimal("50.01")
    # -50.005
    assert b.net_profit == Decimal("-50.00")


def test_round_money_half_cents():
    assert profit_service.round_money(Decimal("2.005")) == Decimal("2.01")
    assert profit_service.round_money(Decimal("-2.005")) == Decimal("-2.00")
    assert profit_service.round_money(Decimal("-2.0051")) == Decimal("-2.01")
    assert str(profit_service.round_money(Decimal("-0.004"))) == "0.00"


def test_inactive_fixed_costs_are_ignored():
    costs = [
        FixedCostInput(name="rent", amount_monthly=Decimal("300")),
        FixedCostInput(name="old tool", amount_monthly=Decimal("700"), is_active=False),
    ]

    b = profit_service.compute_breakdown(_order(items=[_item()]), costs, 3)

    assert b.fixed_costs_allocation == Decimal("100.00")


def test_aggregate_excludes_cancelled_and_returned_from_totals():
    orders = [_order(items=[_item(unit_price="10")]) for _ in range(7)]
    orders += [_order(status="cancelled", items=[_item(unit_price="1000")]) for _ in range(2)]
    orders.append(_order(status="returned", items=[_item(unit_price="1000")]))

    result = profit_service.aggregate(orders, [])

    assert result.orders_count == 7
    assert result.cancellations == 2
    assert result.returns == 1
    assert result.totals.gross_revenue == Decimal("70.00")
    assert result.items_sold == 7
    assert result.avg_ticket == Decimal("10.00")


def test_aggregate_shares_fixed_cost_denominator():
    costs = [
        FixedCostInput(name="rent", amount_monthly=Decimal("800")),
        FixedCostInput(name="salary", amount_monthly=Decimal("500")),
        FixedCostInput(name="software", amount_monthly=Decimal("200")),
    ]
    orders = [_order(items=[_item(unit_price=str(10 * (i + 1)))]) for i in range(5)]

    allocations = {
        profit_service.compute_breakdown(o, costs, 5).fixed_costs_allocation for o in orders
    }
    result = profit_service.aggregate(orders, costs)

    assert allocations == {Decimal("300.00")}
    assert result.totals.fixed_costs_allocation == Decimal("1500.00")


def test_aggregate_margin_is_recomputed_from_totals():
    orders = [
        _order(items=[_item(unit_price="100", unit_cost="50")]),
        _order(items=[_item(unit_price="300", unit_cost="30")]),
    ]

    result = profit_service.aggregate(orders, [])

    # (50 + 270) / 400
    assert result.totals.net_margin_percent == Decimal("80.00")


def test_aggregate_of_nothing():
    result = profit_service.aggregate([], [FixedCostInput(name="rent", amount_monthly=Decimal("100"))])

    assert result.orders_count == 0
    assert result.avg_ticket == Decimal("0.00")
    assert result.totals.fixed_costs_allocation == Decimal("0.00")
