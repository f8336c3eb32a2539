"""
Profit Schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class OrderItemInput(BaseModel):
    sku: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = Field(1, gt=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    unit_discount: Decimal = Field(Decimal("0"), ge=0)
    unit_cost: Decimal = Field(Decimal("0"), ge=0)

    @model_validator(mode="after")
    def discount_not_above_price(self):
        if self.unit_discount > self.unit_price:
            raise ValueError("unit_discount cannot exceed unit_price")
        return self


class OrderInput(BaseModel):
    external_order_id: Optional[str] = None
    date: Optional[datetime] = None
    status: str = Field("paid", pattern="^(paid|shipped|delivered|returned|cancelled)$")

    gross_total: Decimal = Decimal("0")
    discounts_total: Decimal = Decimal("0")
    shipping_total: Decimal = Decimal("0")
    shipping_seller: Decimal = Decimal("0")
    fees_total: Decimal = Decimal("0")
    fee_discount_total: Decimal = Decimal("0")
    taxes_total: Decimal = Decimal("0")
    ads_total: Decimal = Decimal("0")
    packaging_cost: Decimal = Decimal("0")
    processing_cost: Decimal = Decimal("0")

    items: List[OrderItemInput] = []


class FixedCostInput(BaseModel):
    name: str
    category: Optional[str] = None
    amount_monthly: Decimal = Field(Decimal("0"), ge=0)
    is_active: bool = True


class ProfitBreakdown(BaseModel):
    """Itemized result of the profit formula for one order or one period"""
    gross_revenue: Decimal = Decimal("0.00")
    discounts: Decimal = Decimal("0.00")
    net_revenue: Decimal = Decimal("0.00")
    cogs: Decimal = Decimal("0.00")
    ml_fees_gross: Decimal = Decimal("0.00")
    ml_fee_discount: Decimal = Decimal("0.00")
    ml_fees_net: Decimal = Decimal("0.00")
    shipping_seller: Decimal = Decimal("0.00")
    packaging_cost: Decimal = Decimal("0.00")
    processing_cost: Decimal = Decimal("0.00")
    ads_cost: Decimal = Decimal("0.00")
    taxes: Decimal = Decimal("0.00")
    variable_costs: Decimal = Decimal("0.00")
    fixed_costs_allocation: Decimal = Decimal("0.00")
    net_profit: Decimal = Decimal("0.00")
    net_margin_percent: Decimal = Decimal("0.00")

    class Config:
        frozen = True


class AggregateResult(BaseModel):
    totals: ProfitBreakdown
    orders_count: int
    items_sold: int
    avg_ticket: Decimal
    returns: int
    cancellations: int

    class Config:
        frozen = True


class BreakdownRequest(BaseModel):
    order: OrderInput
    fixed_costs: List[FixedCostInput] = []
    orders_in_period: int = Field(1, ge=0)


class AggregateRequest(BaseModel):
    orders: List[OrderInput]
    fixed_costs: List[FixedCostInput] = []
