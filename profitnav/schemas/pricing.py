"""
Pricing calculator schemas
"""
from pydantic import BaseModel, Field
from decimal import Decimal


class PricingParams(BaseModel):
    product_cost: Decimal = Field(Decimal("0"), ge=0)
    packaging_cost: Decimal = Field(Decimal("0"), ge=0)
    shipping_seller: Decimal = Field(Decimal("0"), ge=0)
    ml_fee_percent: Decimal = Field(Decimal("0"), ge=0)
    ml_fee_discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    ads_percent: Decimal = Field(Decimal("0"), ge=0)
    tax_percent: Decimal = Field(Decimal("0"), ge=0)
    target_margin_percent: Decimal = Decimal("0")


class PricingSuggestion(BaseModel):
    suggested_price: Decimal
    net_profit: Decimal
    actual_margin: Decimal
    # False when the target margin cannot be reached with these fees
    feasible: bool = True


class PriceEvaluation(BaseModel):
    sale_price: Decimal
    fee_amount: Decimal
    ads_cost: Decimal
    taxes: Decimal
    total_costs: Decimal
    net_profit: Decimal
    margin: Decimal


class ScenarioParams(BaseModel):
    product_cost: Decimal = Field(Decimal("0"), ge=0)
    packaging_cost: Decimal = Field(Decimal("0"), ge=0)
    shipping_seller: Decimal = Field(Decimal("0"), ge=0)
    ml_fee_percent: Decimal = Field(Decimal("0"), ge=0)
    ml_fee_discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    sale_price: Decimal = Field(Decimal("0"), ge=0)


class Scenario(BaseModel):
    name: str
    ads_percent: Decimal
    tax_percent: Decimal
    fee_multiplier: Decimal
    net_profit: Decimal
    margin: Decimal
