# backend/app/lib/brokers/factory.py
from typing import Any, Dict, List, Optional
from app.lib.brokers.base import BrokerAdapter
from app.lib.brokers.errors import UnknownBrokerError
from app.lib.brokers.generic import GenericBrokerAdapter
from app.lib.brokers.registry import BROKER_CONFIGS, BrokerConfig

def build_broker_adapters(
    configs: Optional[Dict[str, BrokerConfig]] = None, **adapter_kwargs: Any
) -> Dict[str, BrokerAdapter]:
    """
    Instantiates one GenericBrokerAdapter per registered config.
    Extra kwargs (timeout, transport, ...) are passed to every adapter.
    """
    table = BROKER_CONFIGS if configs is None else configs
    return {key: GenericBrokerAdapter(cfg, **adapter_kwargs) for key, cfg in table.items()}

def get_broker_adapter(broker_name: str, adapters: Dict[str, BrokerAdapter]) -> BrokerAdapter:
    name = str(broker_name or "").lower().strip()
    adapter = adapters.get(name)
    if adapter is None:
        raise UnknownBrokerError(f"Unknown broker adapter: {broker_name}", broker=broker_name, code="UNKNOWN_BROKER")
    return adapter

def list_brokers(adapters: Dict[str, BrokerAdapter]) -> List[str]:
    return sorted(adapters)
