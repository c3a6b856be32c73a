"""
REST clients for the exchange.

- RequestDispatcher: Fire-once HTTP dispatch with outcome classification
- PublicClient: Unauthenticated market data
- TradingClient: Signed order and account calls
"""

from bittrex_api.fetchers.base import DEFAULT_HEADERS, RequestDispatcher
from bittrex_api.fetchers.public import PublicClient
from bittrex_api.fetchers.trading import TradingClient

__all__ = [
    "DEFAULT_HEADERS",
    "RequestDispatcher",
    "PublicClient",
    "TradingClient",
]
