from enum import Enum

class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
