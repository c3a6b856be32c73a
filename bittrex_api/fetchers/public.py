"""
Public (unauthenticated) market data endpoints.

v1.1 endpoints live under ``/public``; the v2.0 candle and tick endpoints
under ``/pub``. Parameters are folded into the query string; nothing is
signed.
"""
from typing import Any, Mapping, Optional

from bittrex_api.auth.signer import unsigned_request
from bittrex_api.errors import DispatchResult
from bittrex_api.fetchers.base import RequestDispatcher, ResultCallback

Params = Optional[Mapping[str, Any]]


class PublicClient:
    """Client for the exchange's public endpoints."""

    def __init__(self, dispatcher: RequestDispatcher):
        self.dispatcher = dispatcher

    @property
    def settings(self):
        return self.dispatcher.settings

    async def _call(
        self,
        url: str,
        params: Params = None,
        callback: Optional[ResultCallback] = None,
    ) -> DispatchResult:
        request = unsigned_request(url, params, timeout=self.settings.request_timeout_seconds)
        return await self.dispatcher.execute(request, callback)

    def _v1(self, path: str) -> str:
        return f"{self.settings.base_url}{path}"

    def _v2(self, path: str) -> str:
        return f"{self.settings.base_url_v2}{path}"

    async def get_markets(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """List all markets."""
        return await self._call(self._v1("/public/getmarkets"), callback=callback)

    async def get_currencies(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """List all currencies."""
        return await self._call(self._v1("/public/getcurrencies"), callback=callback)

    async def get_ticker(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Current bid/ask/last for one market (``market``)."""
        return await self._call(self._v1("/public/getticker"), params, callback)

    async def get_market_summaries(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/public/getmarketsummaries"), callback=callback)

    async def get_market_summary(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/public/getmarketsummary"), params, callback)

    async def get_order_book(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Order book for ``market``; ``type`` is buy, sell or both."""
        return await self._call(self._v1("/public/getorderbook"), params, callback)

    async def get_market_history(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/public/getmarkethistory"), params, callback)

    async def get_candles(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Candles for ``marketName`` at ``tickInterval``."""
        return await self._call(self._v2("/pub/market/GetTicks"), params, callback)

    async def get_ticks(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v2("/pub/market/GetTicks"), params, callback)

    async def get_latest_tick(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v2("/pub/market/GetLatestTick"), params, callback)

    async def get_btc_price(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Reference BTC price lookup."""
        return await self._call(self._v2("/pub/currencies/GetBTCPrice"), params, callback)
