"""
Desired subscription state.

Kept apart from any live connection so it survives reconnects: the session
reads a snapshot on every ``connected`` event and reissues everything in it.
"""
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

FeedCallback = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class SubscriptionState:
    """Point-in-time copy of the registry."""

    global_feed: bool = False
    global_callback: Optional[FeedCallback] = None
    markets: tuple[str, ...] = ()
    market_callbacks: tuple[FeedCallback, ...] = ()

    @property
    def callbacks(self) -> list[FeedCallback]:
        """Every callback a frame should reach, global first."""
        targets: list[FeedCallback] = []
        if self.global_callback is not None:
            targets.append(self.global_callback)
        targets.extend(self.market_callbacks)
        return targets

    @property
    def unique_markets(self) -> list[str]:
        """Markets in registration order without repeats."""
        return list(dict.fromkeys(self.markets))


class SubscriptionRegistry:
    """Tracks the global ticker feed and per-market feeds with their callbacks."""

    def __init__(self):
        self._global_feed = False
        self._global_callback: Optional[FeedCallback] = None
        self._markets: list[str] = []
        self._market_callbacks: list[FeedCallback] = []
        self._lock = threading.Lock()

    def enable_global_feed(self, callback: FeedCallback) -> None:
        """Turn on the global ticker feed; the latest callback wins."""
        with self._lock:
            self._global_feed = True
            self._global_callback = callback

    def add_market_feed(self, market_ids: Union[str, Iterable[str]], callback: FeedCallback) -> None:
        """Append markets and a callback. Nothing is de-duplicated."""
        if isinstance(market_ids, str):
            market_ids = [market_ids]
        with self._lock:
            self._markets.extend(market_ids)
            self._market_callbacks.append(callback)

    def reset(self) -> None:
        """Forget every feed and callback."""
        with self._lock:
            self._global_feed = False
            self._global_callback = None
            self._markets = []
            self._market_callbacks = []

    def snapshot(self) -> SubscriptionState:
        with self._lock:
            return SubscriptionState(
                global_feed=self._global_feed,
                global_callback=self._global_callback,
                markets=tuple(self._markets),
                market_callbacks=tuple(self._market_callbacks),
            )
