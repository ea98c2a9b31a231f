# backend/app/lib/brokers/generic.py
from __future__ import annotations

import re
import httpx
import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timedelta, timezone
import dateutil.parser

from app.core.config import settings
from app.lib.brokers.errors import BrokerApiError, BrokerError, DataShapeError
from app.lib.brokers.http_adapter import HttpBrokerAdapter
from app.lib.brokers.registry import BrokerConfig, resolve_env
from app.lib.path_resolver import resolve_path
from app.schemas.token_schemas import Token

logger = logging.getLogger(__name__)

# Only these placeholder kinds are recognised; anything else in ${...} stays literal.
PLACEHOLDER_RE = re.compile(r"\$\{(?:TOKEN:(refresh|access)|ENV:([A-Za-z_][A-Za-z0-9_]*))\}")


class GenericBrokerAdapter(HttpBrokerAdapter):
    """
    Config-driven adapter: one implementation for every broker in the registry.

    - GET {base_url}{endpoints.trades} with a bearer token, trades array found at response_path.
    - POST {base_url}{endpoints.refresh} with refresh_payload_template rendered.
    """

    def __init__(
        self,
        config: BrokerConfig,
        *,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        env_lookup: Callable[[str], Optional[str]] = resolve_env,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(
            config.name,
            base_url=config.base_url,
            timeout=timeout,
            retry_attempts=retry_attempts,
            retry_delay=retry_delay,
            headers=config.headers,
            transport=transport,
        )
        self.config = config
        self.env_lookup = env_lookup
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return self.config.name

    # -------------------------
    # Fetch trades
    # -------------------------
    async def fetch_trades(self, token: Token) -> List[Dict[str, Any]]:
        if token is None or not token.access_token:
            raise BrokerError(f"{self.name}: Missing access token", broker=self.name, code="MISSING_TOKEN")

        try:
            response = await self.retry_request(
                lambda: self.make_request(
                    "GET",
                    self.config.endpoints.trades,
                    token=token,
                    headers=self.config.headers,
                )
            )
        except BrokerApiError as e:
            raise BrokerError(f"{self.name} API Error: {e.message} ({e.code})", broker=self.name, code=e.code) from e

        trades = resolve_path(response, self.config.response_path)
        if not isinstance(trades, list):
            raise DataShapeError(
                f"{self.name}: Trades response is not an array at configured path "
                f"'{self.config.response_path}'",
                broker=self.name,
                code="INVALID_SHAPE",
            )
        logger.info("[%s] Fetched %d raw trades", self.name, len(trades))
        return trades

    # -------------------------
    # Token refresh
    # -------------------------
    def _render(self, value: str, old_token: Optional[Token]) -> str:
        def substitute(match: re.Match) -> str:
            token_field, env_name = match.groups()
            if token_field == "refresh":
                return (old_token.refresh_token if old_token else None) or ""
            if token_field == "access":
                return (old_token.access_token if old_token else None) or ""
            return self.env_lookup(env_name) or ""

        return PLACEHOLDER_RE.sub(substitute, value)

    def build_refresh_payload(self, old_token: Optional[Token]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for key, value in self.config.refresh_payload_template.items():
            payload[key] = self._render(value, old_token) if isinstance(value, str) else value
        return payload

    def _parse_expires_at(self, value: Any) -> Optional[datetime]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            # Epoch milliseconds
            try:
                return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.warning("[%s] Out-of-range expires_at in token response: %r", self.name, value)
                return None
        if isinstance(value, str) and value.strip():
            try:
                dt = dateutil.parser.parse(value)
            except (ValueError, OverflowError):
                logger.warning("[%s] Unparsable expires_at in token response: %r", self.name, value)
                return None
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        return None

    def transform_token_response(self, response: Any) -> Token:
        if not isinstance(response, dict):
            raise DataShapeError(
                f"{self.name}: Token refresh response is not an object", broker=self.name, code="INVALID_SHAPE"
            )

        now = self.clock()
        expires_at: Optional[datetime] = None
        expires_in = response.get("expires_in")
        if expires_in:
            try:
                expires_at = now + timedelta(seconds=float(expires_in))
            except (TypeError, ValueError, OverflowError):
                logger.warning("[%s] Ignoring unusable expires_in: %r", self.name, expires_in)
        if expires_at is None:
            expires_at = self._parse_expires_at(response.get("expires_at"))
        if expires_at is None:
            expires_at = now + timedelta(minutes=settings.DEFAULT_TOKEN_TTL_MINUTES)

        return Token(
            access_token=response.get("access_token") or response.get("accessToken"),
            refresh_token=response.get("refresh_token") or response.get("refreshToken"),
            expires_at=expires_at,
        )

    async def refresh_token(self, old_token: Optional[Token]) -> Token:
        payload = self.build_refresh_payload(old_token)
        try:
            response = await self.retry_request(
                lambda: self.make_request("POST", self.config.endpoints.refresh, data=payload)
            )
        except BrokerApiError as e:
            raise BrokerError(
                f"{self.name} Token Refresh Error: {e.message} ({e.code})", broker=self.name, code=e.code
            ) from e

        token = self.transform_token_response(response)
        logger.info("[%s] Token refreshed, expires at %s", self.name, token.expires_at.isoformat())
        return token
