# backend/app/lib/normalizer.py
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional
import dateutil.parser

from app.lib.brokers.registry import FieldMapping
from app.lib.path_resolver import resolve_path
from app.schemas.common_schemas import TradeSide
from app.schemas.trade_schemas import Trade

logger = logging.getLogger(__name__)


def to_number(value: Any) -> float:
    """Coerces to float; anything non-numeric (or out of float range) becomes NaN instead of raising."""
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def to_iso_timestamp(value: Any) -> Optional[str]:
    """
    Coerces a broker timestamp into an ISO-8601 UTC instant ("2025-09-03T10:00:00.000Z").
    Numbers are epoch milliseconds, naive datetimes are UTC.
    Returns None (invalid-date sentinel) when the value cannot be parsed or
    falls outside the representable UTC range.
    """
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str) and value.strip():
            dt = dateutil.parser.parse(value)
        else:
            return None

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.debug("Unparsable trade timestamp: %r", value)
        return None

    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def infer_side(side_value: str, quantity: float) -> TradeSide:
    """
    Explicit SELL wins. Without any side value, a negative quantity means SELL
    (brokers that encode direction in the sign). Everything else is BUY.
    """
    if side_value == TradeSide.SELL.value:
        return TradeSide.SELL
    if not side_value and quantity < 0:
        return TradeSide.SELL
    return TradeSide.BUY


def _mapped(raw: Any, path: str) -> Any:
    # A blank path means the broker does not provide the field; never the whole record
    if not path or not path.strip():
        return None
    return resolve_path(raw, path.strip())


def normalize_with_mapping(raw: Any, mapping: FieldMapping, now: Optional[datetime] = None) -> Trade:
    symbol = _mapped(raw, mapping.symbol)
    quantity = to_number(_mapped(raw, mapping.quantity))
    price = to_number(_mapped(raw, mapping.price))

    if mapping.timestamp and mapping.timestamp.strip():
        timestamp = to_iso_timestamp(_mapped(raw, mapping.timestamp))
    else:
        timestamp = to_iso_timestamp(now or datetime.now(timezone.utc))

    side_raw = _mapped(raw, mapping.side)
    side_value = "" if side_raw is None else str(side_raw).upper()

    return Trade(
        symbol="" if symbol is None else str(symbol),
        quantity=quantity,
        price=price,
        timestamp=timestamp,
        side=infer_side(side_value, quantity),
    )
