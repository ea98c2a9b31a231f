# backend/app/lib/brokers/base.py
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

from app.schemas.token_schemas import Token

class BrokerAdapter(ABC):
    """
    Base contract for all broker integrations.

    Every broker adapter MUST:
    - Report the broker name it serves
    - Fetch trades (raw, broker-native format) with a valid token
    - Exchange a prior token (or None on first use) for a fresh one

    Normalization is NOT an adapter concern: it is driven by the broker's
    FieldMapping in app.lib.normalizer.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Lowercase registry key of the broker."""
        pass

    @abstractmethod
    async def fetch_trades(self, token: Token) -> List[Dict[str, Any]]:
        """Fetch broker-specific raw trade records."""
        pass

    @abstractmethod
    async def refresh_token(self, old_token: Optional[Token]) -> Token:
        """Obtain a new token, chaining from old_token's refresh credential when present."""
        pass

    async def close(self) -> None:
        """Release pooled connections. No-op by default."""
        pass
