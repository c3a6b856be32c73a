"""
Authenticated trading and account endpoints.

Every call gets ``apikey`` and a fresh ``nonce`` upserted into its query
string ahead of the caller's parameters, and the final URI is signed with
HMAC-SHA512.
"""
from typing import Any, Mapping, Optional

import structlog

from bittrex_api.auth.nonce import NonceGenerator
from bittrex_api.auth.signer import RequestSigner, SignedRequest
from bittrex_api.errors import DispatchResult
from bittrex_api.fetchers.base import RequestDispatcher, ResultCallback

logger = structlog.get_logger()

Params = Optional[Mapping[str, Any]]


class TradingClient:
    """Client for endpoints that require API credentials."""

    def __init__(self, dispatcher: RequestDispatcher, nonces: NonceGenerator):
        self.dispatcher = dispatcher
        self.nonces = nonces

    @property
    def settings(self):
        return self.dispatcher.settings

    def sign(self, url: str, params: Params = None) -> SignedRequest:
        """Prepare an authenticated request for ``url``."""
        signer = RequestSigner(
            self.settings.api_secret,
            timeout=self.settings.request_timeout_seconds,
        )
        merged: dict[str, Any] = {
            "apikey": self.settings.api_key,
            "nonce": self.nonces.next(),
        }
        merged.update(params or {})
        return signer.build(url, merged)

    async def _call(
        self,
        url: str,
        params: Params = None,
        callback: Optional[ResultCallback] = None,
    ) -> DispatchResult:
        request = self.sign(url, params)
        logger.debug("Signed request", uri=request.uri)
        return await self.dispatcher.execute(request, callback)

    def _v1(self, path: str) -> str:
        return f"{self.settings.base_url}{path}"

    def _v2(self, path: str) -> str:
        return f"{self.settings.base_url_v2}{path}"

    # ===========================================
    # Orders (v1.1)
    # ===========================================

    async def buy_limit(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Place a limit buy (``market``, ``quantity``, ``rate``)."""
        return await self._call(self._v1("/market/buylimit"), params, callback)

    async def buy_market(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/market/buymarket"), params, callback)

    async def sell_limit(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Place a limit sell (``market``, ``quantity``, ``rate``)."""
        return await self._call(self._v1("/market/selllimit"), params, callback)

    async def sell_market(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/market/sellmarket"), params, callback)

    async def cancel(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Cancel an order by ``uuid``."""
        return await self._call(self._v1("/market/cancel"), params, callback)

    async def get_open_orders(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/market/getopenorders"), params, callback)

    # ===========================================
    # Orders (v2.0)
    # ===========================================

    async def trade_buy(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v2("/key/market/TradeBuy"), params, callback)

    async def trade_sell(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v2("/key/market/TradeSell"), params, callback)

    # ===========================================
    # Account
    # ===========================================

    async def get_balances(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/account/getbalances"), {}, callback)

    async def get_balance(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Balance for one ``currency``."""
        return await self._call(self._v1("/account/getbalance"), params, callback)

    async def get_withdrawal_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/account/getwithdrawalhistory"), params, callback)

    async def get_deposit_address(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/account/getdepositaddress"), params, callback)

    async def get_deposit_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/account/getdeposithistory"), params, callback)

    async def get_order_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self._call(self._v1("/account/getorderhistory"), params or {}, callback)

    async def get_order(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Order detail by ``uuid``."""
        return await self._call(self._v1("/account/getorder"), params, callback)

    async def withdraw(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        """Withdraw ``quantity`` of ``currency`` to ``address``."""
        return await self._call(self._v1("/account/withdraw"), params, callback)
