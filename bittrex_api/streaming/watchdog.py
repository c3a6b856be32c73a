"""
Connection watchdog.

A single recurring task per client: every ``interval`` seconds it checks how
long the live session has been silent and forces a full reconnect once the
silence exceeds ``stale_after`` seconds. Started on the first connect
request and never duplicated.
"""
import asyncio
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from bittrex_api.streaming.session import StreamSession

logger = structlog.get_logger()

# Defaults, overridable through WebsocketOptions
WATCHDOG_INTERVAL_SECONDS = 5.0
STALE_THRESHOLD_SECONDS = 60.0


class ConnectionWatchdog:
    """Forces a reconnect when the stream goes quiet."""

    def __init__(
        self,
        session: "StreamSession",
        interval: float = WATCHDOG_INTERVAL_SECONDS,
        stale_after: float = STALE_THRESHOLD_SECONDS,
    ):
        self.session = session
        self.interval = interval
        self.stale_after = stale_after
        self._task: Optional[asyncio.Task] = None
        self.forced_reconnects = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer unless it is already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.debug("Watchdog started", interval=self.interval, stale_after=self.stale_after)

    def cancel(self) -> None:
        """Stop the timer. Safe to call from inside a tick."""
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        logger.debug("Watchdog cancelled")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Watchdog check failed", error=str(e))
            if self._task is not asyncio.current_task():
                # Cancelled from within the tick
                return

    async def tick(self) -> bool:
        """
        Run one liveness check.

        Returns:
            True if a forced reconnect was triggered
        """
        if not self.session.has_handle:
            return False

        if not self.session.settings.websockets.auto_reconnect:
            return False

        if self.session.connecting:
            return False

        silence = self.session.liveness.seconds_since_last_message()
        if silence > self.stale_after:
            logger.warning(
                "Stream silent, forcing reconnect",
                seconds_since_last_message=int(silence),
                threshold=self.stale_after,
            )
            self.forced_reconnects += 1
            await self.session.connect(force=True)
            return True

        if self.session.settings.verbose:
            logger.info("Watchdog check", last_message_ms_ago=int(silence * 1000))
        return False
