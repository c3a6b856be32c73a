"""
HTTP request dispatcher.

Executes one prepared GET request and folds every way it can end into a
DispatchResult:
- Transport failure, non-200 status or empty body -> TRANSPORT_ERROR
- Exchange reports ``success: false``              -> API_ERROR
- Exchange reports success                          -> SUCCESS
- Body is not valid JSON                            -> DROPPED (logged)

Calls are fire-once: no retries, no backoff. When a callback is passed it is
invoked once with the two-argument convention, except for DROPPED results.
"""
import time
import uuid
from typing import Any, Callable, Optional

import httpx
import structlog

from bittrex_api.auth.signer import SignedRequest
from bittrex_api.callbacks import invoke_callback
from bittrex_api.config.settings import Settings
from bittrex_api.errors import DispatchResult

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/4.0 (compatible; Node Bittrex API)",
    "Content-type": "application/x-www-form-urlencoded",
}

ResultCallback = Callable[[Any, Any], Any]


class RequestDispatcher:
    """Sends prepared requests over a shared async HTTP client."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            settings: Client settings (timeout, cleartext, callback order)
            client: Optional pre-built httpx client (tests pass a mock transport)
        """
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            timeout=httpx.Timeout(settings.request_timeout_seconds),
        )
        self._closed = False

    async def execute(
        self,
        request: SignedRequest,
        callback: Optional[ResultCallback] = None,
    ) -> DispatchResult:
        """
        Send ``request`` once and classify the outcome.

        Args:
            request: Prepared request (URI already carries its parameters)
            callback: Optional two-argument callback

        Returns:
            DispatchResult describing the outcome
        """
        result = await self._send(request)
        if not result.dropped:
            await invoke_callback(
                callback,
                *result.as_callback_args(self.settings.inverse_callback_arguments),
            )
        return result

    async def _send(self, request: SignedRequest) -> DispatchResult:
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()

        try:
            response = await self.client.get(
                request.uri,
                headers={**DEFAULT_HEADERS, **request.headers},
                timeout=request.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                "Request failed",
                uri=request.uri,
                error=str(e),
                error_type=type(e).__name__,
                request_id=request_id,
            )
            return DispatchResult.transport_error(e, None)

        if self.settings.verbose:
            logger.info(
                "Request completed",
                uri=request.uri,
                status=response.status_code,
                elapsed_seconds=round(time.monotonic() - start, 3),
                request_id=request_id,
            )

        if response.status_code != 200 or not response.text:
            logger.warning(
                "Request returned no usable body",
                uri=request.uri,
                status=response.status_code,
                request_id=request_id,
            )
            return DispatchResult.transport_error(None, response)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(
                "Invalid JSON response",
                uri=request.uri,
                error=str(e),
                request_id=request_id,
            )
            return DispatchResult.drop(e)

        if not isinstance(payload, dict) or not payload.get("success"):
            logger.debug("Exchange reported failure", uri=request.uri, request_id=request_id)
            return DispatchResult.api_error(payload)

        return DispatchResult.success(response.text if self.settings.cleartext else payload)

    async def close(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if not self._closed:
            if self._owns_client:
                await self.client.aclose()
            self._closed = True

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
