"""Throttled request error hierarchy.

Structured exception types for the dispatcher.
"""

from __future__ import annotations


class ThrottleError(Exception):
    """Base error for all dispatcher exceptions."""

    code = "THROTTLE_ERROR"

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidRequestError(ThrottleError):
    """Submitted request cannot be dispatched (unsupported kind or no target)."""

    code = "INVALID_REQUEST"

    def __init__(self, message: str, kind: str = None):
        super().__init__(message, {"kind": kind})
        self.kind = kind


class OperationTimeoutError(ThrottleError):
    """An admitted operation exceeded the per-operation timeout.

    Recoverable: the dispatcher aborts the operation and re-queues the
    request. Callers never receive this error.
    """

    code = "TIMEOUT"

    def __init__(
        self,
        message: str,
        timeout: float = 0.0,
        attempt: int = 0,
        request_id: str = None,
    ):
        super().__init__(
            message,
            {"timeout": timeout, "attempt": attempt, "request_id": request_id},
        )
        self.timeout = timeout
        self.attempt = attempt
        self.request_id = request_id
