"""Request descriptors queued by the dispatcher.

A queued request carries one of two call variants:

- ``CoroutineCall``: a callable whose result is awaited (``fetch()`` style)
- ``HandleCall``: a "send now" method invoked on a pre-created handle
  with stored arguments (``XMLHttpRequest.send()`` style)
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_request_ids = itertools.count(1)


class RequestKind(str, Enum):
    """How the underlying operation is invoked."""

    COROUTINE = "coroutine"
    HANDLE = "handle"


@dataclass(frozen=True)
class CoroutineCall:
    """Call ``func(*args, **kwargs)`` and await whatever it returns."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    kind = RequestKind.COROUTINE

    def describe(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True)
class HandleCall:
    """Call ``getattr(target, method)(*args, **kwargs)`` on a pre-created handle."""

    target: Any
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    method: str = "send"

    kind = RequestKind.HANDLE

    def bound(self) -> Callable[..., Any] | None:
        """Resolve the send method on the target, or None if missing."""
        if self.target is None:
            return None
        fn = getattr(self.target, self.method, None)
        return fn if callable(fn) else None

    def describe(self) -> str:
        return f"{type(self.target).__name__}.{self.method}"


Call = CoroutineCall | HandleCall


@dataclass
class PendingRequest:
    """One caller's request, queued or in flight.

    The caller holds ``future``; it is resolved on success, failed on a
    terminal error, and left pending across timeout re-queues.
    """

    call: Call
    future: asyncio.Future
    on_admit: Callable[[], None] | None = None
    request_id: str = field(default_factory=lambda: f"req-{next(_request_ids)}")
    attempts: int = 0
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def kind(self) -> RequestKind:
        return self.call.kind
