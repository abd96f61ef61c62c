"""Throttled request dispatcher.

Queues asynchronous network calls and admits them under a sliding-window
cap measured from completion times, re-queueing calls that exceed the
per-operation timeout.
"""

from throttled_request.dispatch import (
    CoroutineCall,
    DispatcherStats,
    HandleCall,
    PendingRequest,
    RateLimitedDispatcher,
    RequestKind,
    throttled,
)
from throttled_request.errors import (
    InvalidRequestError,
    OperationTimeoutError,
    ThrottleError,
)
from throttled_request.ratelimit import CompletionLedger

__version__ = "0.1.0"

__all__ = [
    "RateLimitedDispatcher",
    "DispatcherStats",
    "CoroutineCall",
    "HandleCall",
    "PendingRequest",
    "RequestKind",
    "CompletionLedger",
    "throttled",
    "ThrottleError",
    "InvalidRequestError",
    "OperationTimeoutError",
]
