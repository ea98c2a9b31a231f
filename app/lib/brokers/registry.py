# backend/app/lib/brokers/registry.py
import os
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import Settings, settings


class FieldMapping(BaseModel):
    """Dotted paths into a raw trade record. An empty path means 'not provided by this broker'."""
    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    quantity: str = ""
    price: str = ""
    timestamp: str = ""
    side: str = ""


class BrokerEndpoints(BaseModel):
    model_config = ConfigDict(frozen=True)

    trades: str
    refresh: str


class BrokerConfig(BaseModel):
    """
    Declarative description of a broker. Everything broker-specific lives here,
    so a single GenericBrokerAdapter can talk to any of them.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    endpoints: BrokerEndpoints
    response_path: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    mapping: FieldMapping
    refresh_payload_template: Dict[str, Any] = Field(default_factory=dict)


def build_broker_configs(cfg: Settings) -> Dict[str, BrokerConfig]:
    """Builds the static broker table from process settings."""
    return {
        "metatrader": BrokerConfig(
            name="metatrader",
            base_url=cfg.METATRADER_BASE_URL,
            endpoints=BrokerEndpoints(trades="/v1/trades", refresh="/v1/auth/refresh"),
            headers={
                "X-API-Version": "1.0",
                "X-Client-ID": cfg.METATRADER_CLIENT_ID or "",
            },
            # Response body is the trades array itself
            response_path="",
            mapping=FieldMapping(
                symbol="symbol",
                quantity="volume",
                price="price",
                timestamp="time",
                side="type",
            ),
            refresh_payload_template={
                "refresh_token": "${TOKEN:refresh}",
                "grant_type": "refresh_token",
                "client_id": "${ENV:METATRADER_CLIENT_ID}",
                "client_secret": "${ENV:METATRADER_CLIENT_SECRET}",
            },
        ),
        "zerodha": BrokerConfig(
            name="zerodha",
            base_url=cfg.ZERODHA_BASE_URL,
            endpoints=BrokerEndpoints(trades="/portfolio/positions", refresh="/session/refresh_token"),
            headers={"X-Kite-Version": "3"},
            response_path="data.positions.NRML",
            # Kite positions carry no side or timestamp; direction comes from signed quantity.
            mapping=FieldMapping(
                symbol="tradingsymbol",
                quantity="quantity",
                price="average_price",
                timestamp="",
                side="",
            ),
            refresh_payload_template={
                "refresh_token": "${TOKEN:refresh}",
                "client_id": "${ENV:ZERODHA_API_KEY}",
                "client_secret": "${ENV:ZERODHA_API_SECRET}",
            },
        ),
    }


BROKER_CONFIGS: Dict[str, BrokerConfig] = build_broker_configs(settings)


def get_broker_config(name: str, configs: Optional[Dict[str, BrokerConfig]] = None) -> Optional[BrokerConfig]:
    table = BROKER_CONFIGS if configs is None else configs
    return table.get(str(name or "").lower().strip())


def resolve_env(name: str) -> Optional[str]:
    """Looks up a named configuration value: settings first, then the raw process environment."""
    value = getattr(settings, name, None)
    if value is None:
        value = os.getenv(name)
    return None if value is None else str(value)
