import math
from typing import List, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
# Import Enums from common_schemas
from .common_schemas import TradeSide

class Trade(BaseModel):
    """
    Canonical, broker-agnostic trade.

    quantity/price may be NaN and timestamp may be None when the broker sent
    values that could not be coerced; those are data-quality signals, not errors.
    """
    symbol: str
    quantity: float
    price: float
    timestamp: Optional[str] = None
    side: TradeSide

    @field_serializer("quantity", "price", when_used="json")
    def nan_to_null(self, v: float) -> Optional[float]:
        # JSON has no NaN literal
        return None if math.isnan(v) else v

class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    broker: Optional[str] = None

    @field_validator("user_id", "broker", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Optional[str]:
        # Non-string values are treated as missing rather than rejected with a 422
        if not isinstance(v, str):
            return None
        return v.strip() or None

class SyncResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    broker: str
    count: int
    trades: List[Trade]

class BrokerInfo(BaseModel):
    name: str
    base_url: str

class BrokerListResponse(BaseModel):
    brokers: List[BrokerInfo]
