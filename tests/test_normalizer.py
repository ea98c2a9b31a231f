"""Tests for mapping-driven trade normalization."""

import math
from datetime import datetime, timezone

import pytest

from app.lib.brokers.registry import FieldMapping
from app.lib.normalizer import infer_side, normalize_with_mapping, to_iso_timestamp, to_number
from app.schemas.common_schemas import TradeSide
from tests.conftest import NOW


SIDE_BY_TYPE = FieldMapping(symbol="symbol", quantity="volume", price="price", timestamp="time", side="type")
SIGNED_QTY = FieldMapping(symbol="tradingsymbol", quantity="quantity", price="average_price")


class TestSide:
    def test_type_sell(self):
        trade = normalize_with_mapping({"type": "sell", "volume": 1}, SIDE_BY_TYPE, now=NOW)
        assert trade.side == TradeSide.SELL

    def test_type_buy(self):
        trade = normalize_with_mapping({"type": "buy", "volume": 1}, SIDE_BY_TYPE, now=NOW)
        assert trade.side == TradeSide.BUY

    @pytest.mark.parametrize("side", ["SELL", "Sell", "sElL"])
    @pytest.mark.parametrize("qty", [5, -5, 0])
    def test_explicit_sell_ignores_quantity_sign(self, side, qty):
        trade = normalize_with_mapping({"type": side, "volume": qty}, SIDE_BY_TYPE, now=NOW)
        assert trade.side == TradeSide.SELL

    def test_negative_quantity_without_side_is_sell(self):
        trade = normalize_with_mapping({"tradingsymbol": "INFY", "quantity": -10}, SIGNED_QTY, now=NOW)
        assert trade.side == TradeSide.SELL
        assert trade.quantity == -10

    def test_positive_quantity_without_side_is_buy(self):
        trade = normalize_with_mapping({"tradingsymbol": "INFY", "quantity": 10}, SIGNED_QTY, now=NOW)
        assert trade.side == TradeSide.BUY

    def test_explicit_buy_with_negative_quantity_stays_buy(self):
        trade = normalize_with_mapping({"type": "buy", "volume": -3}, SIDE_BY_TYPE, now=NOW)
        assert trade.side == TradeSide.BUY

    def test_empty_side_string_uses_sign(self):
        trade = normalize_with_mapping({"type": "", "volume": "-2"}, SIDE_BY_TYPE, now=NOW)
        assert trade.side == TradeSide.SELL

    def test_infer_side_rule(self):
        assert infer_side("SELL", 1.0) == TradeSide.SELL
        assert infer_side("", -1.0) == TradeSide.SELL
        assert infer_side("", 1.0) == TradeSide.BUY
        assert infer_side("", math.nan) == TradeSide.BUY
        assert infer_side("SHORT", -1.0) == TradeSide.BUY


class TestCoercion:
    def test_numbers_from_strings(self):
        trade = normalize_with_mapping({"volume": "1.5", "price": "1.0845"}, SIDE_BY_TYPE, now=NOW)
        assert trade.quantity == 1.5
        assert trade.price == 1.0845

    def test_non_numeric_becomes_nan(self):
        trade = normalize_with_mapping({"volume": "lots", "price": None}, SIDE_BY_TYPE, now=NOW)
        assert math.isnan(trade.quantity)
        assert math.isnan(trade.price)
        assert trade.side == TradeSide.BUY

    def test_to_number(self):
        assert to_number(3) == 3.0
        assert to_number(" 7 ") == 7.0
        assert math.isnan(to_number({"nested": 1}))

    def test_out_of_range_integer_is_nan(self):
        assert math.isnan(to_number(10**400))

    def test_blank_mapping_paths_are_absent(self):
        mapping = FieldMapping(symbol="  ", quantity=" ", price="price", side=" ")
        trade = normalize_with_mapping({"price": 2, "type": "sell"}, mapping, now=NOW)
        assert trade.symbol == ""
        assert math.isnan(trade.quantity)
        assert trade.price == 2.0
        assert trade.side == TradeSide.BUY

    def test_symbol_is_stringified(self):
        trade = normalize_with_mapping({"symbol": 1234}, SIDE_BY_TYPE, now=NOW)
        assert trade.symbol == "1234"

    def test_missing_symbol_is_empty(self):
        trade = normalize_with_mapping({}, SIDE_BY_TYPE, now=NOW)
        assert trade.symbol == ""

    def test_nan_serializes_as_null(self):
        trade = normalize_with_mapping({"volume": "x", "price": 2}, SIDE_BY_TYPE, now=NOW)
        dumped = trade.model_dump(mode="json")
        assert dumped["quantity"] is None
        assert dumped["price"] == 2.0


class TestTimestamp:
    def test_unmapped_timestamp_defaults_to_now(self):
        trade = normalize_with_mapping({"tradingsymbol": "TCS", "quantity": 5}, SIGNED_QTY, now=NOW)
        assert trade.timestamp == "2025-09-03T12:00:00.000Z"

    def test_unmapped_timestamp_without_now_uses_current_time(self):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        trade = normalize_with_mapping({"tradingsymbol": "TCS"}, SIGNED_QTY)
        parsed = datetime.fromisoformat(trade.timestamp.replace("Z", "+00:00"))
        assert parsed >= before

    def test_iso_string(self):
        trade = normalize_with_mapping({"time": "2025-09-03T09:30:00Z"}, SIDE_BY_TYPE, now=NOW)
        assert trade.timestamp == "2025-09-03T09:30:00.000Z"

    def test_offset_is_converted_to_utc(self):
        assert to_iso_timestamp("2025-09-03T15:30:00+05:30") == "2025-09-03T10:00:00.000Z"

    def test_epoch_millis(self):
        ms = int(datetime(2025, 9, 3, 10, 0, tzinfo=timezone.utc).timestamp() * 1000)
        assert to_iso_timestamp(ms) == "2025-09-03T10:00:00.000Z"

    def test_naive_datetime_is_utc(self):
        assert to_iso_timestamp(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05.000Z"

    def test_unparsable_is_invalid_sentinel(self):
        trade = normalize_with_mapping({"time": "not a date"}, SIDE_BY_TYPE, now=NOW)
        assert trade.timestamp is None

    def test_out_of_range_instant_is_invalid_sentinel(self):
        assert to_iso_timestamp("0001-01-01T00:00:00+05:00") is None

    def test_blank_timestamp_path_uses_now(self):
        mapping = FieldMapping(symbol="symbol", timestamp="   ")
        trade = normalize_with_mapping({"symbol": "X"}, mapping, now=NOW)
        assert trade.timestamp == "2025-09-03T12:00:00.000Z"

    def test_missing_mapped_timestamp_is_invalid_sentinel(self):
        trade = normalize_with_mapping({"symbol": "EURUSD"}, SIDE_BY_TYPE, now=NOW)
        assert trade.timestamp is None


class TestRoundTrip:
    def test_inverted_mapping_reproduces_fields(self):
        mapping = FieldMapping(
            symbol="instrument.code",
            quantity="fill.qty",
            price="fill.px",
            timestamp="fill.at",
            side="fill.direction",
        )
        original = {
            "symbol": "GBPUSD",
            "quantity": 0.5,
            "price": 1.2752,
            "timestamp": "2025-09-03T10:10:00.000Z",
            "side": "SELL",
        }

        raw = {}
        for field, path in mapping.model_dump().items():
            node = raw
            keys = path.split(".")
            for key in keys[:-1]:
                node = node.setdefault(key, {})
            node[keys[-1]] = original[field]

        trade = normalize_with_mapping(raw, mapping, now=NOW)
        assert trade.model_dump(mode="json") == original
