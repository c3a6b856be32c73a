"""
Callback invocation helper.

User callbacks may be plain functions or coroutine functions. A failing
callback is logged and never takes down the caller.
"""
import inspect
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger()


async def invoke_callback(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Call ``callback(*args)`` and await the result if it is awaitable."""
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.exception(
            "Callback failed",
            callback=getattr(callback, "__qualname__", repr(callback)),
            error=str(e),
        )
