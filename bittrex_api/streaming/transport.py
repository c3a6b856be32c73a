"""
Minimal SignalR (protocol 1.5) client over websockets.

Connection sequence:
1. GET ``<base>/negotiate`` for a connection token
2. Open ``<base>/connect`` as a websocket          -> ``bound``
3. Wait for the ``{"S": 1}`` init frame, GET ``<base>/start`` -> ``connected``
4. Socket closes                                     -> ``disconnected``

Hub methods are invoked with ``{"H", "M", "A", "I"}`` frames and resolved
by the matching ``{"I": ..., "R"/"E"}`` response. Every inbound frame,
responses included, is also passed to the frame handler so liveness keeps
ticking.
"""
import asyncio
import itertools
import json
from typing import Any, Optional, Protocol, Union
from urllib.parse import urlencode

import httpx
import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from bittrex_api.config.settings import Settings
from bittrex_api.errors import StreamError

logger = structlog.get_logger()

CLIENT_PROTOCOL = "1.5"


class TransportHandlers(Protocol):
    """Lifecycle hooks a transport reports into."""

    async def on_bound(self) -> None: ...
    async def on_connected(self) -> None: ...
    async def on_disconnected(self) -> None: ...
    async def on_connect_failed(self, error: BaseException) -> None: ...
    async def on_error(self, error: BaseException) -> None: ...
    async def on_binding_error(self, error: BaseException) -> None: ...
    async def on_connection_lost(self, error: BaseException) -> None: ...
    async def on_frame(self, raw: Union[str, bytes]) -> None: ...


def http_base_url(ws_url: str) -> str:
    """wss://host/signalr -> https://host/signalr"""
    if ws_url.startswith("wss://"):
        return "https://" + ws_url[len("wss://"):]
    if ws_url.startswith("ws://"):
        return "http://" + ws_url[len("ws://"):]
    return ws_url


class SignalRTransport:
    """One SignalR connection; restartable, stoppable."""

    def __init__(
        self,
        url: str,
        hubs: list[str],
        handlers: TransportHandlers,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 15.0,
    ):
        """
        Args:
            url: SignalR endpoint (ws:// or wss://)
            hubs: Hub names to bind
            handlers: Receiver of lifecycle events and frames
            headers: Cookie / User-Agent captured during bootstrap
            timeout: HTTP and hub call timeout in seconds
        """
        self.url = url
        self.hubs = hubs
        self.handlers = handlers
        self.headers = dict(headers or {})
        self.timeout = timeout

        self.ws: Optional[Any] = None
        self.connection_token: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        self._bound = False
        self._started = False
        self._ids = itertools.count()
        self._pending: dict[str, asyncio.Future] = {}
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        headers: dict[str, str],
        handlers: TransportHandlers,
    ) -> "SignalRTransport":
        return cls(
            url=settings.websockets_base_url,
            hubs=settings.websockets_hubs,
            handlers=handlers,
            headers=headers,
            timeout=settings.request_timeout_seconds,
        )

    @property
    def connected(self) -> bool:
        return self.ws is not None and self._started

    @property
    def connection_data(self) -> str:
        return json.dumps([{"name": hub.lower()} for hub in self.hubs])

    # ===========================================
    # Lifecycle
    # ===========================================

    async def start(self) -> None:
        """Begin connecting in the background."""
        self._closing = False
        self._task = asyncio.create_task(self._run())

    async def restart(self) -> None:
        """Reconnect with a fresh negotiate, reusing bootstrap headers."""
        current = self._task
        if current is not None and current is not asyncio.current_task() and not current.done():
            self._closing = True
            current.cancel()
            try:
                await current
            except (asyncio.CancelledError, Exception):
                pass
        await self.start()

    async def stop(self) -> None:
        """Close for good. No ``disconnected`` event is emitted."""
        self._closing = True
        if self.ws is not None:
            await self.ws.close()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, Exception):
                pass
        for background in list(self._background):
            background.cancel()

    async def _run(self) -> None:
        self._bound = False
        self._started = False
        lost: Optional[BaseException] = None
        try:
            self.connection_token = await self._negotiate()
            extra: dict[str, Any] = {}
            user_agent = self.headers.get("User-Agent")
            if user_agent:
                extra["user_agent_header"] = user_agent
            async with websockets.connect(
                self._url("connect", scheme="ws"),
                additional_headers={k: v for k, v in self.headers.items() if k.lower() != "user-agent"},
                ping_interval=30,
                ping_timeout=10,
                close_timeout=5,
                **extra,
            ) as ws:
                self.ws = ws
                self._bound = True
                await self.handlers.on_bound()
                async for message in ws:
                    await self._handle(message)
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            lost = e
            await self.handlers.on_connection_lost(e)
        except (httpx.HTTPError, OSError, asyncio.TimeoutError, WebSocketException, StreamError, ValueError) as e:
            lost = e
            if self._bound:
                await self.handlers.on_error(e)
            else:
                await self.handlers.on_connect_failed(e)
        finally:
            self.ws = None
            self._started = False
            self._fail_pending(lost or StreamError("connection closed"))

        if self._bound and not self._closing:
            await self.handlers.on_disconnected()

    # ===========================================
    # HTTP legs
    # ===========================================

    def _url(self, endpoint: str, scheme: str = "http", **extra: str) -> str:
        base = self.url if scheme == "ws" else http_base_url(self.url)
        params = {
            "clientProtocol": CLIENT_PROTOCOL,
            "connectionData": self.connection_data,
        }
        if endpoint in ("connect", "start"):
            params["transport"] = "webSockets"
            params["connectionToken"] = self.connection_token or ""
        params.update(extra)
        return f"{base}/{endpoint}?{urlencode(params)}"

    async def _negotiate(self) -> str:
        async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
            response = await client.get(self._url("negotiate"))
            response.raise_for_status()
            payload = response.json()
        token = payload.get("ConnectionToken")
        if not token:
            raise StreamError("negotiate response carried no ConnectionToken")
        return token

    async def _confirm_start(self) -> None:
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.get(self._url("start"))
                response.raise_for_status()
        except httpx.HTTPError as e:
            await self.handlers.on_binding_error(e)
            return
        self._started = True
        await self.handlers.on_connected()

    # ===========================================
    # Frames and hub calls
    # ===========================================

    async def _handle(self, message: Union[str, bytes]) -> None:
        try:
            data = json.loads(message, strict=False)
        except ValueError:
            data = None

        if isinstance(data, dict):
            if "I" in data and "M" not in data:
                self._resolve(data)
            if data.get("S") == 1 and not self._started:
                self._spawn(self._confirm_start())

        await self.handlers.on_frame(message)

    def _resolve(self, data: dict) -> None:
        future = self._pending.pop(str(data["I"]), None)
        if future is None or future.done():
            return
        if data.get("E"):
            future.set_exception(StreamError(str(data["E"])))
        else:
            future.set_result(data.get("R"))

    def _fail_pending(self, error: BaseException) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(StreamError(str(error)))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def call(self, hub: str, method: str, *args: Any) -> Any:
        """Invoke a hub method and wait for its result."""
        if self.ws is None:
            raise StreamError("transport is not connected")

        invocation_id = str(next(self._ids))
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[invocation_id] = future
        message = {"H": hub, "M": method, "A": list(args), "I": invocation_id}
        try:
            await self.ws.send(json.dumps(message))
            return await asyncio.wait_for(future, timeout=self.timeout)
        finally:
            self._pending.pop(invocation_id, None)
