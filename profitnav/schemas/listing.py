"""
Listing action schemas
"""
import enum
from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal


class ListingAction(str, enum.Enum):
    PAUSE = "pause"
    ACTIVATE = "activate"
    CLOSE = "close"
    UPDATE_PRICE = "update_price"
    UPDATE_STOCK = "update_stock"


class ListingActionRequest(BaseModel):
    action: ListingAction
    item_ids: List[str] = Field(..., min_length=1)
    value: Optional[Decimal] = None


class ActionItemResult(BaseModel):
    item_id: str
    success: bool
    error: Optional[str] = None


class ActionBatchResult(BaseModel):
    # True only when every item succeeded
    success: bool
    message: str
    results: List[ActionItemResult]

    @property
    def failed(self) -> List[ActionItemResult]:
        return [r for r in self.results if not r.success]
