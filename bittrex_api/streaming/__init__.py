"""
Live market data over a self-healing SignalR session.
"""

from .subscriptions import FeedCallback, SubscriptionRegistry, SubscriptionState
from .router import LivenessState, MessageRouter, decode_frame
from .watchdog import ConnectionWatchdog
from .transport import SignalRTransport, TransportHandlers
from .session import SessionState, StreamSession

__all__ = [
    # Subscriptions
    "FeedCallback",
    "SubscriptionRegistry",
    "SubscriptionState",
    # Routing
    "LivenessState",
    "MessageRouter",
    "decode_frame",
    # Watchdog
    "ConnectionWatchdog",
    # Transport
    "SignalRTransport",
    "TransportHandlers",
    # Session
    "SessionState",
    "StreamSession",
]
