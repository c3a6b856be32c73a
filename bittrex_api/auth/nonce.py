"""
Nonce generation for authenticated requests.

The exchange rejects a signed call whose nonce it has recently seen, so
every nonce handed out by one generator must differ from the last
``window`` values it issued. Nonces are millisecond timestamps; when the
clock has not moved since the previous call, or has been stepped back, the
candidate is lifted to one past the last issued value. Issued nonces are
therefore strictly increasing and the loop always terminates.
"""
import threading
import time
from collections import deque
from typing import Callable, Optional

# Number of recently issued nonces kept for collision checks
NONCE_WINDOW = 50


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class NonceGenerator:
    """Issues time-derived nonces that never repeat within the retained window."""

    def __init__(
        self,
        window: int = NONCE_WINDOW,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            window: How many recent nonces to remember
            clock: Millisecond time source (defaults to wall clock)
        """
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._clock = clock or _now_ms
        self._recent: deque[int] = deque(maxlen=window)
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return a nonce greater than every recently issued one."""
        with self._lock:
            nonce = self._clock()
            if self._recent and nonce <= self._recent[-1]:
                nonce = self._recent[-1] + 1
            self._recent.append(nonce)
            return nonce

    @property
    def recent(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._recent)
