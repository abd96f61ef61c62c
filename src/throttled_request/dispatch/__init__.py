"""Sliding-window request dispatch.

Provides the rate-limited dispatcher with:
- FIFO admission under a completion-time window
- Per-operation timeout with automatic re-queue
- Awaitable calls and pre-created handle sends
"""

from throttled_request.dispatch.decorators import throttled
from throttled_request.dispatch.dispatcher import (
    DispatcherStats,
    RateLimitedDispatcher,
)
from throttled_request.dispatch.request import (
    CoroutineCall,
    HandleCall,
    PendingRequest,
    RequestKind,
)

__all__ = [
    "RateLimitedDispatcher",
    "DispatcherStats",
    "CoroutineCall",
    "HandleCall",
    "PendingRequest",
    "RequestKind",
    "throttled",
]
