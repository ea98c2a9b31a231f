# backend/app/lib/brokers/http_adapter.py
import httpx
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_incrementing

from app.core.config import settings
from app.lib.brokers.base import BrokerAdapter
from app.lib.brokers.errors import BrokerApiError
from app.schemas.token_schemas import Token

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _should_retry(exc: BaseException) -> bool:
    return isinstance(exc, BrokerApiError) and exc.retryable


class HttpBrokerAdapter(BrokerAdapter):
    """
    Shared HTTP plumbing for REST brokers.

    - One pooled httpx.AsyncClient per broker (base_url + default headers).
    - Every failure is translated into a BrokerApiError with a stable code.
    - retry_request() retries network errors and 5xx with linear backoff
      (retry_delay * attempt_number); everything else propagates at once.
    """

    DEFAULT_HEADERS: Dict[str, str] = {
        "Content-Type": "application/json",
        "User-Agent": "TradeSync-Broker-Integration/1.0",
    }

    def __init__(
        self,
        broker_name: str,
        *,
        base_url: str = "",
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.broker_name = broker_name
        self.timeout = settings.BROKER_HTTP_TIMEOUT if timeout is None else timeout
        self.retry_attempts = settings.BROKER_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts
        self.retry_delay = settings.BROKER_RETRY_DELAY if retry_delay is None else retry_delay

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=self.timeout,
            headers={**self.DEFAULT_HEADERS, **(headers or {})},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    # -------------------------
    # Error translation
    # -------------------------
    def _error_from_response(self, response: httpx.Response) -> BrokerApiError:
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        message = code = None
        if isinstance(data, dict):
            message = data.get("message") or data.get("error")
            code = data.get("code")

        return BrokerApiError(
            message=str(message) if message else f"HTTP {status} Error",
            code=str(code) if code else f"HTTP_{status}",
            status_code=status,
            details=data if data is not None else response.text,
        )

    # -------------------------
    # Single request
    # -------------------------
    async def make_request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        token: Optional[Token] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issues one request and returns the decoded JSON body.
        Attaches `Authorization: Bearer <access_token>` when a token is given.
        """
        request_headers = dict(headers or {})
        if token is not None:
            request_headers["Authorization"] = f"Bearer {token.access_token}"

        logger.info("[%s] API Request: %s %s", self.broker_name, method, endpoint)
        try:
            resp = await self.client.request(method, endpoint, json=data, headers=request_headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            api_error = self._error_from_response(e.response)
            logger.error("[%s] API Error: %s (%s)", self.broker_name, api_error.message, api_error.code)
            raise api_error from e
        except httpx.RequestError as e:
            logger.error("[%s] Request Error: %s", self.broker_name, e)
            raise BrokerApiError(
                "No response received from broker API",
                "NETWORK_ERROR",
                details={"timeout": self.timeout, "reason": str(e)},
            ) from e

        logger.info("[%s] API Response: %s %s", self.broker_name, resp.status_code, endpoint)
        try:
            return resp.json()
        except ValueError as e:
            raise BrokerApiError(
                "Broker returned a non-JSON response",
                "INVALID_RESPONSE",
                status_code=resp.status_code,
                details=resp.text[:500],
            ) from e

    # -------------------------
    # Retry wrapper
    # -------------------------
    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "[%s] Retrying request (attempt %d/%d) after: %s",
            self.broker_name,
            retry_state.attempt_number + 1,
            self.retry_attempts,
            exc,
        )

    async def retry_request(self, request_fn: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception(_should_retry),
            before_sleep=self._log_retry,
            reraise=True,
        )
        # request_fn is usually a lambda returning a coroutine, so await it inside the attempt
        async for attempt in retrying:
            with attempt:
                return await request_fn()
