from .profit import (
    OrderItemInput, OrderInput, FixedCostInput, ProfitBreakdown, AggregateResult,
    BreakdownRequest, AggregateRequest,
)
from .pricing import PricingParams, PricingSuggestion, PriceEvaluation, ScenarioParams, Scenario
from .sync import SyncRequest, SyncStats, SyncRunResponse, ListingSummary
from .listing import ListingAction, ListingActionRequest, ActionItemResult, ActionBatchResult
from .integration import CredentialStatusResponse, AuthorizeResponse, OAuthCallbackRequest

__all__ = [
    "OrderItemInput", "OrderInput", "FixedCostInput", "ProfitBreakdown", "AggregateResult",
    "BreakdownRequest", "AggregateRequest",
    "PricingParams", "PricingSuggestion", "PriceEvaluation", "ScenarioParams", "Scenario",
    "SyncRequest", "SyncStats", "SyncRunResponse", "ListingSummary",
    "ListingAction", "ListingActionRequest", "ActionItemResult", "ActionBatchResult",
    "CredentialStatusResponse", "AuthorizeResponse", "OAuthCallbackRequest",
]
