# backend/app/services/sync_service.py
import logging
from typing import Dict, List, Optional

from app.lib.brokers.base import BrokerAdapter
from app.lib.brokers.errors import BrokerConfigError
from app.lib.brokers.factory import build_broker_adapters, get_broker_adapter, list_brokers
from app.lib.brokers.registry import BROKER_CONFIGS, BrokerConfig, get_broker_config
from app.lib.normalizer import normalize_with_mapping
from app.schemas.trade_schemas import Trade
from app.services.token_service import TokenCache

logger = logging.getLogger(__name__)


class SyncService:
    """
    Pulls a user's trades from one broker and returns them in canonical form.

    resolve adapter -> valid token -> raw trades -> normalize with the broker's mapping.
    A sync either returns every trade or raises; there are no partial results.
    """

    def __init__(
        self,
        adapters: Dict[str, BrokerAdapter],
        configs: Dict[str, BrokerConfig],
        token_cache: TokenCache,
    ):
        self.adapters = adapters
        self.configs = configs
        self.token_cache = token_cache

    def list_brokers(self) -> List[BrokerConfig]:
        return [self.configs[name] for name in list_brokers(self.adapters) if name in self.configs]

    async def sync_trades(self, user_id: str, broker_name: str) -> List[Trade]:
        adapter = get_broker_adapter(broker_name, self.adapters)
        token = await self.token_cache.get_valid_token(user_id, adapter.name, adapter)
        raw_trades = await adapter.fetch_trades(token)

        cfg = get_broker_config(adapter.name, self.configs)
        if cfg is None:
            raise BrokerConfigError(
                f"No dynamic config found for broker {adapter.name}", broker=adapter.name, code="MISSING_CONFIG"
            )

        trades = [normalize_with_mapping(raw, cfg.mapping) for raw in raw_trades]
        logger.info("Synced %d trades for user %s from %s", len(trades), user_id, adapter.name)
        return trades

    async def close(self) -> None:
        for adapter in self.adapters.values():
            await adapter.close()


_sync_service: Optional[SyncService] = None


def get_sync_service() -> SyncService:
    """Process-wide instance, built on first use. Used as a FastAPI dependency."""
    global _sync_service
    if _sync_service is None:
        _sync_service = SyncService(
            adapters=build_broker_adapters(BROKER_CONFIGS),
            configs=BROKER_CONFIGS,
            token_cache=TokenCache(),
        )
    return _sync_service


async def shutdown_sync_service() -> None:
    global _sync_service
    if _sync_service is not None:
        await _sync_service.close()
        _sync_service = None
