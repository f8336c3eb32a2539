"""
Profit, pricing and dashboard endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from profitnav.core.database import get_db
from profitnav.schemas.profit import (
    ProfitBreakdown, AggregateResult, BreakdownRequest, AggregateRequest,
)
from profitnav.schemas.pricing import (
    PricingParams, PricingSuggestion, ScenarioParams, Scenario,
)
from profitnav.services import profit_service, pricing_service, dashboard_service
from .deps import get_current_user_id

profit_router = APIRouter(prefix="/profit", tags=["profit"])
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# ===================== PROFIT =====================

@profit_router.post("/breakdown", response_model=ProfitBreakdown)
async def breakdown(payload: BreakdownRequest):
    return profit_service.compute_breakdown(payload.order, payload.fixed_costs, payload.orders_in_period)


@profit_router.post("/aggregate", response_model=AggregateResult)
async def aggregate(payload: AggregateRequest):
    return profit_service.aggregate(payload.orders, payload.fixed_costs)


@profit_router.get("/orders/{order_id}", response_model=ProfitBreakdown)
async def stored_order_breakdown(
    order_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return dashboard_service.order_breakdown(db, user_id, order_id)


# ===================== PRICING =====================

@pricing_router.post("/suggest", response_model=PricingSuggestion)
async def suggest_price(params: PricingParams):
    return pricing_service.solve_sale_price(params)


@pricing_router.post("/scenarios", response_model=List[Scenario])
async def scenarios(params: ScenarioParams):
    return pricing_service.scenario_sensitivity(params)


# ===================== DASHBOARD =====================

@dashboard_router.get("/summary", response_model=AggregateResult)
async def dashboard_summary(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return dashboard_service.period_summary(db, user_id, start, end)
