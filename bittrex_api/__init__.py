"""
Async client for the Bittrex REST API and its SignalR market data stream.
"""

from bittrex_api.client import BittrexClient
from bittrex_api.config import Settings, WebsocketOptions, get_settings
from bittrex_api.errors import DispatchOutcome, DispatchResult, StreamError
from bittrex_api.log import setup_logging

__all__ = [
    "BittrexClient",
    "Settings",
    "WebsocketOptions",
    "get_settings",
    "DispatchOutcome",
    "DispatchResult",
    "StreamError",
    "setup_logging",
]
