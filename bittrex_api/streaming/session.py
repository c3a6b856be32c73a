"""
Streaming session manager.

Owns the single live transport for a client and walks it through

    DISCONNECTED -> HANDSHAKING -> BOUND -> CONNECTED -> (DISCONNECTED | RECONNECTING)

Subscriptions are read from the registry on every ``connected`` event and
reissued, so they survive any number of reconnects. Failures on this side
are logged, never raised; the watchdog is what brings a dead session back.
"""
import asyncio
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

import httpx
import structlog
from websockets.exceptions import WebSocketException

from bittrex_api.callbacks import invoke_callback
from bittrex_api.config.settings import Settings
from bittrex_api.errors import StreamError
from bittrex_api.fetchers.base import DEFAULT_HEADERS
from bittrex_api.streaming.router import LivenessState, MessageRouter
from bittrex_api.streaming.subscriptions import FeedCallback, SubscriptionRegistry
from bittrex_api.streaming.transport import SignalRTransport, TransportHandlers
from bittrex_api.streaming.watchdog import ConnectionWatchdog

logger = structlog.get_logger()

# Hub methods
SUBSCRIBE_GLOBAL = "SubscribeToSummaryDeltas"
SUBSCRIBE_MARKET = "SubscribeToExchangeDeltas"

TransportFactory = Callable[[Settings, dict[str, str], TransportHandlers], Any]


class SessionState(Enum):
    """Lifecycle of the stream session."""
    DISCONNECTED = "disconnected"
    HANDSHAKING = "handshaking"
    BOUND = "bound"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class StreamSession:
    """Manages one persistent, self-healing stream connection."""

    def __init__(
        self,
        settings: Settings,
        registry: SubscriptionRegistry,
        transport_factory: Optional[TransportFactory] = None,
    ):
        """
        Args:
            settings: Client settings
            registry: Desired subscriptions, replayed on every connect
            transport_factory: Builds a transport from (settings, headers, handlers)
        """
        self.settings = settings
        self.registry = registry
        self.liveness = LivenessState()
        self.router = MessageRouter(registry, self.liveness, verbose=settings.verbose)
        self.watchdog = ConnectionWatchdog(
            self,
            interval=settings.websockets.watchdog_interval_seconds,
            stale_after=settings.websockets.stale_after_seconds,
        )

        self.transport: Optional[Any] = None
        self.state = SessionState.DISCONNECTED
        self._transport_factory = transport_factory or SignalRTransport.from_settings
        self._lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()

        self.stats = {
            "handshakes": 0,
            "connects": 0,
            "reconnects": 0,
            "subscribe_calls": 0,
            "subscribe_failures": 0,
        }

    @property
    def has_handle(self) -> bool:
        return self.transport is not None

    @property
    def connecting(self) -> bool:
        """True while a connect or forced reconnect holds the session lock."""
        return self._lock.locked()

    @property
    def hub(self) -> str:
        return self.settings.websockets_hubs[0]

    def update_settings(self, settings: Settings) -> None:
        self.settings = settings
        self.router.verbose = settings.verbose
        self.watchdog.interval = settings.websockets.watchdog_interval_seconds
        self.watchdog.stale_after = settings.websockets.stale_after_seconds

    # ===========================================
    # Connect / reconnect
    # ===========================================

    async def connect(self, force: bool = False) -> Optional[Any]:
        """
        Ensure a session exists.

        Args:
            force: Tear down the current session and handshake again

        Returns:
            The live transport, or None if the bootstrap failed
        """
        async with self._lock:
            if self.transport is not None and not force:
                return self.transport

            if force and self.transport is not None:
                try:
                    await self.transport.stop()
                except Exception as e:
                    logger.error("Failed to stop stream transport", error=str(e))

            self.watchdog.start()
            self.state = SessionState.HANDSHAKING
            self.stats["handshakes"] += 1

            try:
                headers = await self.bootstrap()
            except httpx.HTTPError as e:
                logger.error(
                    "Stream bootstrap failed",
                    url=self.settings.bootstrap_url,
                    error=str(e),
                )
                self.state = SessionState.DISCONNECTED
                return None

            transport = self._transport_factory(self.settings, headers, self)
            self.transport = transport
            await transport.start()
            return transport

    async def bootstrap(self) -> dict[str, str]:
        """
        Fetch the exchange front page to collect cookies and the user agent
        the stream endpoint expects.
        """
        headers = {"User-Agent": DEFAULT_HEADERS["User-Agent"], **self.settings.bootstrap_headers}
        async with httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            timeout=self.settings.request_timeout_seconds,
        ) as client:
            response = await client.get(self.settings.bootstrap_url)
            cookie = "; ".join(f"{name}={value}" for name, value in client.cookies.items())
            user_agent = response.request.headers.get("User-Agent", "")

        if self.settings.verbose:
            logger.info("Stream bootstrap complete", status=response.status_code, cookies=bool(cookie))
        return {"cookie": cookie, "User-Agent": user_agent}

    async def close(self) -> None:
        """Tear the session down for good."""
        async with self._lock:
            self.watchdog.cancel()
            transport, self.transport = self.transport, None
            if transport is not None:
                try:
                    await transport.stop()
                except Exception as e:
                    logger.error("Failed to stop stream transport", error=str(e))
            for task in list(self._background):
                task.cancel()
            self.state = SessionState.DISCONNECTED

    # ===========================================
    # Subscriptions
    # ===========================================

    async def listen(self, callback: FeedCallback, force: bool = False) -> Optional[Any]:
        """Subscribe to the global ticker feed."""
        self.registry.enable_global_feed(callback)
        issue_now = self.state is SessionState.CONNECTED and not force
        transport = await self.connect(force)
        if issue_now:
            self._spawn(self._subscribe(SUBSCRIBE_GLOBAL))
        return transport

    async def subscribe(
        self,
        markets: Union[str, Iterable[str]],
        callback: FeedCallback,
        force: bool = False,
    ) -> Optional[Any]:
        """Subscribe to one or more markets."""
        markets = [markets] if isinstance(markets, str) else list(markets)
        self.registry.add_market_feed(markets, callback)
        issue_now = self.state is SessionState.CONNECTED and not force
        transport = await self.connect(force)
        if issue_now:
            for market in dict.fromkeys(markets):
                self._spawn(self._subscribe(SUBSCRIBE_MARKET, market))
        return transport

    def _replay_subscriptions(self) -> None:
        state = self.registry.snapshot()
        if state.global_feed:
            self._spawn(self._subscribe(SUBSCRIBE_GLOBAL))
        for market in state.unique_markets:
            self._spawn(self._subscribe(SUBSCRIBE_MARKET, market))

    async def _subscribe(self, method: str, *args: Any) -> None:
        self.stats["subscribe_calls"] += 1
        try:
            result = await self.call(method, *args)
        except (StreamError, WebSocketException, asyncio.TimeoutError, OSError) as e:
            self.stats["subscribe_failures"] += 1
            logger.error("Subscribe call failed", method=method, args=list(args), error=str(e))
            return

        if result is True and self.settings.verbose:
            logger.info("Subscribed", method=method, args=list(args))

    async def call(self, method: str, *args: Any) -> Any:
        """Invoke a hub method on the live transport."""
        if self.transport is None:
            raise StreamError("no stream session")
        return await self.transport.call(self.hub, method, *args)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ===========================================
    # Transport events
    # ===========================================

    async def on_bound(self) -> None:
        self.state = SessionState.BOUND
        if self.settings.verbose:
            logger.info("Websocket bound")

    async def on_connected(self) -> None:
        self.state = SessionState.CONNECTED
        self.stats["connects"] += 1
        self._replay_subscriptions()
        if self.settings.verbose:
            logger.info("Websocket connected")
        await invoke_callback(self.settings.websockets.on_connect)

    async def on_disconnected(self) -> None:
        self.state = SessionState.DISCONNECTED
        if self.settings.verbose:
            logger.info("Websocket disconnected")
        await invoke_callback(self.settings.websockets.on_disconnect)

        if self.settings.websockets.auto_reconnect:
            if self.settings.verbose:
                logger.info("Websocket auto reconnecting")
            self.state = SessionState.RECONNECTING
            self.stats["reconnects"] += 1
            if self.transport is not None:
                await self.transport.restart()
        else:
            self.watchdog.cancel()

    async def on_connect_failed(self, error: BaseException) -> None:
        self.state = SessionState.DISCONNECTED
        if self.settings.verbose:
            logger.warning("Websocket connect failed", error=str(error))

    async def on_error(self, error: BaseException) -> None:
        if self.settings.verbose:
            logger.warning("Websocket error", error=str(error))

    async def on_binding_error(self, error: BaseException) -> None:
        if self.settings.verbose:
            logger.warning("Websocket binding error", error=str(error))

    async def on_connection_lost(self, error: BaseException) -> None:
        if self.settings.verbose:
            logger.warning("Websocket connection lost", error=str(error))

    async def on_frame(self, raw: Union[str, bytes]) -> None:
        await self.router.on_frame(raw, self)

    def get_stats(self) -> dict:
        return {
            "state": self.state.value,
            "has_handle": self.has_handle,
            "watchdog_running": self.watchdog.running,
            "seconds_since_last_message": round(self.liveness.seconds_since_last_message(), 1),
            **self.stats,
            **self.router.stats,
        }
