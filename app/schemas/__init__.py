# Re-export from common
from .common_schemas import TradeSide

# Re-export from trade_schemas
from .trade_schemas import (
    Trade,
    SyncRequest,
    SyncResponse,
    BrokerInfo,
    BrokerListResponse
)

# Re-export from token_schemas
from .token_schemas import Token
