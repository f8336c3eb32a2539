"""
Pricing Service - sale price solver and sensitivity scenarios

Inverse of the profit formula for the calculator screen. Works on percentage
inputs only and has no dependency on stored data.
"""
from decimal import Decimal
from typing import List
import logging

from profitnav.schemas.pricing import (
    PricingParams, PricingSuggestion, PriceEvaluation, ScenarioParams, Scenario,
)
from .profit_service import round_money, ZERO, HUNDRED

logger = logging.getLogger(__name__)

ONE = Decimal("1")

# (name, ads %, tax %, fee multiplier); fixed policy, not user-configurable
SCENARIOS = (
    ("pessimistic", Decimal("5"), Decimal("6"), Decimal("1.1")),
    ("realistic", Decimal("3"), Decimal("5"), Decimal("1.0")),
    ("optimistic", Decimal("2"), Decimal("4"), Decimal("0.9")),
)


def effective_fee_rate(params) -> Decimal:
    return params.ml_fee_percent * (ONE - params.ml_fee_discount_percent / HUNDRED) / HUNDRED


def fixed_cost_sum(params) -> Decimal:
    return params.product_cost + params.packaging_cost + params.shipping_seller


def evaluate_price(params: PricingParams, sale_price: Decimal) -> PriceEvaluation:
    """Net profit and margin of selling at sale_price with the given cost structure"""
    sale_price = Decimal(sale_price)
    fee_amount = sale_price * effective_fee_rate(params)
    ads_cost = sale_price * params.ads_percent / HUNDRED
    taxes = sale_price * params.tax_percent / HUNDRED
    total_costs = fixed_cost_sum(params) + fee_amount + ads_cost + taxes
    net_profit = sale_price - total_costs
    margin = net_profit / sale_price * HUNDRED if sale_price > 0 else ZERO

    return PriceEvaluation(
        sale_price=round_money(sale_price),
        fee_amount=round_money(fee_amount),
        ads_cost=round_money(ads_cost),
        taxes=round_money(taxes),
        total_costs=round_money(total_costs),
        net_profit=round_money(net_profit),
        margin=round_money(margin),
    )


def solve_sale_price(params: PricingParams) -> PricingSuggestion:
    """
    Price needed to reach params.target_margin_percent.

    price = fixed costs / (1 - target - effective fee rate - variable rate)

    A non-positive denominator means the margin is unreachable: the result is
    zeroed with feasible=False instead of a negative or infinite price.
    """
    variable_rate = (params.ads_percent + params.tax_percent) / HUNDRED
    denominator = ONE - params.target_margin_percent / HUNDRED - effective_fee_rate(params) - variable_rate

    if denominator <= 0:
        logger.info(
            f"Target margin {params.target_margin_percent}% unreachable "
            f"(denominator={denominator})"
        )
        return PricingSuggestion(
            suggested_price=round_money(ZERO),
            net_profit=round_money(ZERO),
            actual_margin=round_money(ZERO),
            feasible=False,
        )

    suggested_price = fixed_cost_sum(params) / denominator
    net_profit = suggested_price * params.target_margin_percent / HUNDRED
    rounded_price = round_money(suggested_price)

    return PricingSuggestion(
        suggested_price=rounded_price,
        net_profit=round_money(net_profit),
        actual_margin=evaluate_price(params, rounded_price).margin,
        feasible=True,
    )


def scenario_sensitivity(params: ScenarioParams) -> List[Scenario]:
    """Net profit and margin at params.sale_price under the three fixed scenarios"""
    price = params.sale_price
    scenarios = []

    for name, ads_percent, tax_percent, fee_multiplier in SCENARIOS:
        effective_fee = params.ml_fee_percent * fee_multiplier
        fee_amount = price * (effective_fee / HUNDRED) * (ONE - params.ml_fee_discount_percent / HUNDRED)
        ads_cost = price * ads_percent / HUNDRED
        taxes = price * tax_percent / HUNDRED

        total_costs = fixed_cost_sum(params) + fee_amount + ads_cost + taxes
        net_profit = price - total_costs
        margin = net_profit / price * HUNDRED if price > 0 else ZERO

        scenarios.append(
            Scenario(
                name=name,
                ads_percent=ads_percent,
                tax_percent=tax_percent,
                fee_multiplier=fee_multiplier,
                net_profit=round_money(net_profit),
                margin=round_money(margin),
            )
        )

    return scenarios
