"""
Outcome types shared by the REST and streaming layers.

Nothing raises across the public call surface: every REST call resolves to a
DispatchResult, and stream-side failures are logged and left to the
watchdog.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

TRANSPORT_ERROR_MESSAGE = "URL request error"


class DispatchOutcome(Enum):
    """How a single REST call ended."""
    SUCCESS = "success"
    TRANSPORT_ERROR = "transport_error"  # Connection, timeout, non-200, empty body
    API_ERROR = "api_error"              # Exchange answered with success=false
    DROPPED = "dropped"                  # Body was not valid JSON; no callback


@dataclass
class DispatchResult:
    """Result of one REST call."""

    outcome: DispatchOutcome
    data: Any = None
    error: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is DispatchOutcome.SUCCESS

    @property
    def dropped(self) -> bool:
        return self.outcome is DispatchOutcome.DROPPED

    def as_callback_args(self, inverse: bool = False) -> tuple[Any, Any]:
        """
        Two-argument callback convention.

        Default order is ``(result, error)``; ``inverse`` gives
        ``(error, result)``.
        """
        if inverse:
            return self.error, self.data
        return self.data, self.error

    @classmethod
    def success(cls, data: Any) -> "DispatchResult":
        return cls(DispatchOutcome.SUCCESS, data=data)

    @classmethod
    def transport_error(
        cls,
        error: Optional[BaseException] = None,
        response: Any = None,
    ) -> "DispatchResult":
        return cls(
            DispatchOutcome.TRANSPORT_ERROR,
            error={
                "success": False,
                "message": TRANSPORT_ERROR_MESSAGE,
                "error": error,
                "result": response,
            },
        )

    @classmethod
    def api_error(cls, payload: Any) -> "DispatchResult":
        return cls(DispatchOutcome.API_ERROR, error=payload)

    @classmethod
    def drop(cls, error: BaseException) -> "DispatchResult":
        return cls(DispatchOutcome.DROPPED, error=error)


class StreamError(Exception):
    """Raised inside the streaming transport; never escapes the session."""
    pass
