"""
Inbound frame decoding and fan-out.

SignalR pushes hub invocations as ``{"C": ..., "M": [...]}``; each entry of
``M`` is delivered on its own to every registered callback. Anything else
(keep-alives, call responses, undecodable text) is wrapped as
``{"unhandled_data": ...}`` and delivered the same way.

Market callbacks are not filtered by market: every one of them sees every
message.
"""
import json
import time
from typing import Any, Optional, Union

import structlog

from bittrex_api.callbacks import invoke_callback
from bittrex_api.streaming.subscriptions import SubscriptionRegistry

logger = structlog.get_logger()


class LivenessState:
    """Time of the last inbound frame, on the monotonic clock."""

    def __init__(self):
        self.last_message_at: float = time.monotonic()

    def touch(self) -> None:
        self.last_message_at = max(self.last_message_at, time.monotonic())

    def seconds_since_last_message(self) -> float:
        return time.monotonic() - self.last_message_at


def decode_frame(raw: Union[str, bytes]) -> Any:
    """Lenient JSON decode (control characters allowed inside strings)."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return json.loads(raw, strict=False)


class MessageRouter:
    """Decodes frames and hands sub-messages to the registry's callbacks."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        liveness: Optional[LivenessState] = None,
        verbose: bool = False,
    ):
        self.registry = registry
        self.liveness = liveness or LivenessState()
        self.verbose = verbose
        self.stats = {
            "frames_received": 0,
            "messages_delivered": 0,
            "unhandled": 0,
            "decode_errors": 0,
        }

    async def on_frame(self, raw: Union[str, bytes], session: Any = None) -> None:
        """Process one inbound frame. Never raises."""
        self.liveness.touch()
        self.stats["frames_received"] += 1

        try:
            data = decode_frame(raw)
        except ValueError as e:
            self.stats["decode_errors"] += 1
            if self.verbose:
                logger.warning("Failed to decode frame", error=str(e), preview=str(raw)[:100])
            data = raw

        state = self.registry.snapshot()
        targets = state.callbacks
        if not targets:
            return

        if isinstance(data, dict) and isinstance(data.get("M"), list):
            for message in data["M"]:
                for callback in targets:
                    await invoke_callback(callback, message, session)
                self.stats["messages_delivered"] += 1
        else:
            self.stats["unhandled"] += 1
            wrapped = {"unhandled_data": data}
            for callback in targets:
                await invoke_callback(callback, wrapped, session)
