"""
Exchange client facade.

One BittrexClient owns its own nonce window, subscription registry, HTTP
dispatcher and stream session, so several clients can live side by side
without sharing state.

Every REST method is a coroutine returning a DispatchResult and accepts an
optional two-argument callback. Stream callbacks receive
``(message, session)``.
"""
from typing import Any, Iterable, Mapping, Optional, Union

import httpx
import structlog

from bittrex_api.auth.nonce import NonceGenerator
from bittrex_api.auth.signer import SignedRequest
from bittrex_api.callbacks import invoke_callback
from bittrex_api.config.settings import Settings, get_settings
from bittrex_api.errors import DispatchResult
from bittrex_api.fetchers.base import RequestDispatcher, ResultCallback
from bittrex_api.fetchers.public import PublicClient
from bittrex_api.fetchers.trading import TradingClient
from bittrex_api.streaming.session import StreamSession, TransportFactory
from bittrex_api.streaming.subscriptions import FeedCallback, SubscriptionRegistry

logger = structlog.get_logger()

Params = Optional[Mapping[str, Any]]


class BittrexClient:
    """REST and streaming access to the exchange."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport_factory: Optional[TransportFactory] = None,
        **overrides: Any,
    ):
        """
        Initialize the client.

        Args:
            settings: Base settings (defaults to environment-derived settings)
            http_client: Optional httpx client for REST calls
            transport_factory: Optional stream transport factory
            **overrides: Individual settings applied on top of ``settings``
        """
        settings = settings or get_settings()
        if overrides:
            settings = settings.merged(**overrides)
        self.settings = settings

        self.nonces = NonceGenerator()
        self.registry = SubscriptionRegistry()
        self.dispatcher = RequestDispatcher(settings, client=http_client)
        self.public = PublicClient(self.dispatcher)
        self.trading = TradingClient(self.dispatcher, self.nonces)
        self.session = StreamSession(settings, self.registry, transport_factory=transport_factory)

    def options(self, **overrides: Any) -> Settings:
        """Apply setting overrides; validated before anything is swapped."""
        settings = self.settings.merged(**overrides)
        self.settings = settings
        self.dispatcher.settings = settings
        self.session.update_settings(settings)
        return settings

    # ===========================================
    # Public endpoints
    # ===========================================

    async def get_markets(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_markets(callback)

    async def get_currencies(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_currencies(callback)

    async def get_ticker(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_ticker(params, callback)

    async def get_market_summaries(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_market_summaries(callback)

    async def get_market_summary(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_market_summary(params, callback)

    async def get_order_book(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_order_book(params, callback)

    async def get_market_history(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_market_history(params, callback)

    async def get_candles(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_candles(params, callback)

    async def get_ticks(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_ticks(params, callback)

    async def get_latest_tick(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_latest_tick(params, callback)

    async def get_btc_price(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.public.get_btc_price(params, callback)

    # ===========================================
    # Trading and account endpoints
    # ===========================================

    async def buy_limit(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.buy_limit(params, callback)

    async def buy_market(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.buy_market(params, callback)

    async def sell_limit(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.sell_limit(params, callback)

    async def sell_market(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.sell_market(params, callback)

    async def cancel(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.cancel(params, callback)

    async def get_open_orders(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_open_orders(params, callback)

    async def trade_buy(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.trade_buy(params, callback)

    async def trade_sell(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.trade_sell(params, callback)

    async def get_balances(self, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_balances(callback)

    async def get_balance(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_balance(params, callback)

    async def get_withdrawal_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_withdrawal_history(params, callback)

    async def get_deposit_address(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_deposit_address(params, callback)

    async def get_deposit_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_deposit_history(params, callback)

    async def get_order_history(self, params: Params = None, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_order_history(params, callback)

    async def get_order(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.get_order(params, callback)

    async def withdraw(self, params: Params, callback: Optional[ResultCallback] = None) -> DispatchResult:
        return await self.trading.withdraw(params, callback)

    # ===========================================
    # Escape hatch
    # ===========================================

    async def send_custom_request(
        self,
        uri: str,
        callback: Optional[ResultCallback] = None,
        credentials: bool = False,
    ) -> DispatchResult:
        """
        Call an arbitrary URI.

        Args:
            uri: Full request URI
            callback: Optional two-argument callback
            credentials: Sign the call with the API key and a fresh nonce
        """
        if credentials:
            request = self.trading.sign(uri)
        else:
            request = SignedRequest(uri=uri, timeout=self.settings.request_timeout_seconds)
        return await self.dispatcher.execute(request, callback)

    # ===========================================
    # Streaming
    # ===========================================

    async def websocket_client(
        self,
        callback: Optional[Any] = None,
        force: bool = False,
    ) -> StreamSession:
        """Connect (or reuse) the stream session and hand it to ``callback``."""
        await self.session.connect(force)
        await invoke_callback(callback, self.session)
        return self.session

    async def listen(self, callback: FeedCallback, force: bool = False) -> StreamSession:
        """Receive the global ticker feed."""
        await self.session.listen(callback, force)
        return self.session

    async def subscribe(
        self,
        markets: Union[str, Iterable[str]],
        callback: FeedCallback,
        force: bool = False,
    ) -> StreamSession:
        """Receive exchange deltas for ``markets``."""
        await self.session.subscribe(markets, callback, force)
        return self.session

    def reset_subscriptions(self) -> None:
        """Forget all desired feeds; takes effect from the next connect."""
        self.registry.reset()

    # ===========================================
    # Lifecycle
    # ===========================================

    async def aclose(self) -> None:
        await self.session.close()
        await self.dispatcher.close()

    async def __aenter__(self) -> "BittrexClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
