# backend/app/services/token_service.py
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from app.core.config import settings
from app.lib.brokers.base import BrokerAdapter
from app.schemas.token_schemas import Token

logger = logging.getLogger(__name__)


class TokenCache:
    """
    In-memory, process-lifetime store of broker tokens: user_id -> broker -> Token.

    Tokens are refreshed `skew_ms` before their real expiry so a request never
    leaves with a token that dies mid-flight. Refreshes are single-flight per
    (user_id, broker): concurrent callers wait on one lock and reuse its result.
    No eviction, no persistence.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        skew_ms: Optional[int] = None,
    ):
        self._store: Dict[str, Dict[str, Token]] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.skew_ms = settings.TOKEN_EXPIRY_SKEW_MS if skew_ms is None else skew_ms

    def get(self, user_id: str, broker: str) -> Optional[Token]:
        return self._store.get(user_id, {}).get(broker)

    def set(self, user_id: str, broker: str, token: Token) -> Token:
        self._store.setdefault(user_id, {})[broker] = token
        return token

    def clear(self) -> None:
        self._store.clear()
        self._locks.clear()

    def is_expired(self, token: Optional[Token], skew_ms: Optional[int] = None) -> bool:
        if token is None or token.expires_at is None:
            return True
        skew = self.skew_ms if skew_ms is None else skew_ms
        return token.expires_at - timedelta(milliseconds=skew) <= self.clock()

    async def get_valid_token(self, user_id: str, broker: str, adapter: BrokerAdapter) -> Token:
        token = self.get(user_id, broker)
        if not self.is_expired(token):
            return token

        lock = self._locks.setdefault((user_id, broker), asyncio.Lock())
        async with lock:
            # Another task may have refreshed while we waited
            token = self.get(user_id, broker)
            if not self.is_expired(token):
                return token

            logger.info(
                "Refreshing %s token for user %s (%s)",
                broker, user_id, "expired" if token else "first use",
            )
            refreshed = await adapter.refresh_token(token)
            return self.set(user_id, broker, refreshed)
