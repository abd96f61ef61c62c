"""Rate-limited request dispatcher.

Queues asynchronous operations and admits them under a sliding-window
cap: at most ``max_in_window`` operations may be in flight or have
completed within the last ``window_seconds`` at any instant.

Example:
    dispatcher = RateLimitedDispatcher("api", max_in_window=5, window_seconds=1.0)

    # Awaitable-returning call
    response = await dispatcher.call(client.get, "https://api.example.com/items")

    # Pre-created handle with a blocking send()
    response = await dispatcher.send(session, prepared_request)

    # Raw submission, returns a future immediately
    future = dispatcher.submit(CoroutineCall(fetch_page, (3,)), on_admit=log_sent)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from throttled_request.config.logging import DISPATCH_LOG_FIELDS
from throttled_request.dispatch.request import (
    Call,
    CoroutineCall,
    HandleCall,
    PendingRequest,
)
from throttled_request.errors import InvalidRequestError, OperationTimeoutError
from throttled_request.ratelimit.ledger import CompletionLedger

if TYPE_CHECKING:
    from throttled_request.config.settings import ThrottleSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_WINDOW = 5
DEFAULT_WINDOW_SECONDS = 1.0
DEFAULT_OPERATION_TIMEOUT = 3600.0


@dataclass
class DispatcherStats:
    """Statistics for a dispatcher."""

    name: str
    max_in_window: int
    window_seconds: float
    in_flight: int
    queued: int
    completed_in_window: int
    peak_in_flight: int
    total_submitted: int
    total_admitted: int
    total_succeeded: int
    total_failed: int
    total_timeouts: int
    total_rejected: int


class RateLimitedDispatcher:
    """Sliding-window admission queue for asynchronous operations.

    Requests are admitted strictly in submission order. A request whose
    operation exceeds ``operation_timeout`` is aborted and appended to the
    back of the queue; its caller keeps waiting on the same future. There
    is no retry limit: a request keeps being retried until it settles
    within the timeout. Any other failure is delivered to the caller
    unchanged and is never retried.

    All state is owned by the event loop thread, so no locks are taken.
    Build one dispatcher per rate-limited endpoint.
    """

    def __init__(
        self,
        name: str = "",
        max_in_window: int = DEFAULT_MAX_IN_WINDOW,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ):
        """Initialize dispatcher.

        Args:
            name: Identifier used in logs and stats
            max_in_window: Max operations in flight or completed within the window
            window_seconds: Length of the trailing completion window
            operation_timeout: Seconds before an awaitable operation is aborted
                and re-queued
        """
        if max_in_window < 1:
            raise ValueError("max_in_window must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if operation_timeout <= 0:
            raise ValueError("operation_timeout must be positive")

        self.name = name
        self.max_in_window = max_in_window
        self.window_seconds = window_seconds
        self.operation_timeout = operation_timeout

        self._queue: deque[PendingRequest] = deque()
        self._ledger = CompletionLedger(window_seconds)
        self._in_flight = 0
        self._tasks: set[asyncio.Task] = set()
        self._recheck: asyncio.TimerHandle | None = None
        self._recheck_due = 0.0

        # Stats
        self._peak_in_flight = 0
        self._total_submitted = 0
        self._total_admitted = 0
        self._total_succeeded = 0
        self._total_failed = 0
        self._total_timeouts = 0
        self._total_rejected = 0

        logger.info(
            f"Created dispatcher '{name}' "
            f"(max_in_window={max_in_window}, window_seconds={window_seconds})"
        )

    @classmethod
    def from_settings(cls, settings: ThrottleSettings, name: str = "") -> RateLimitedDispatcher:
        """Build a dispatcher from loaded settings."""
        return cls(
            name=name,
            max_in_window=settings.max_in_window,
            window_seconds=settings.window_seconds,
            operation_timeout=settings.operation_timeout,
        )

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def completed_in_window(self) -> int:
        return self._ledger.count_within(time.monotonic())

    def submit(self, call: Call, on_admit: Callable[[], None] | None = None) -> asyncio.Future:
        """Queue a call and return a future for its result.

        Must be called from a running event loop. The future settles when
        the operation itself settles; it does not wait for admission.

        Args:
            call: CoroutineCall or HandleCall to run once admitted
            on_admit: Optional callback invoked at the moment of dispatch

        Returns:
            Future resolved with the operation's result, or failed with its
            terminal error. Invalid calls fail immediately with
            InvalidRequestError.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._total_submitted += 1

        problem = self._validate(call)
        if problem is not None:
            self._total_rejected += 1
            future.set_exception(problem)
            return future

        request = PendingRequest(call=call, future=future, on_admit=on_admit)
        self._queue.append(request)
        logger.debug(
            f"Queued {request.request_id} ({call.describe()}) on '{self.name}'",
            extra=self._log_extra(request),
        )

        self._process_queue()
        return future

    async def call(
        self,
        func: Callable[..., Any],
        *args: Any,
        on_admit: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Submit ``func(*args, **kwargs)`` and await its result."""
        return await self.submit(CoroutineCall(func, args, kwargs), on_admit=on_admit)

    async def send(
        self,
        target: Any,
        *args: Any,
        method: str = "send",
        on_admit: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Submit ``target.<method>(*args, **kwargs)`` and await its result."""
        return await self.submit(
            HandleCall(target, args, kwargs, method=method), on_admit=on_admit
        )

    def _validate(self, call: Any) -> InvalidRequestError | None:
        """Return an error for calls the dispatcher cannot run."""
        if isinstance(call, CoroutineCall):
            if not callable(call.func):
                return InvalidRequestError(
                    "CoroutineCall.func is not callable", kind=call.kind.value
                )
            return None
        if isinstance(call, HandleCall):
            if call.bound() is None:
                return InvalidRequestError(
                    f"Handle has no callable '{call.method}' method", kind=call.kind.value
                )
            return None
        return InvalidRequestError(f"Unsupported request type: {type(call).__name__}")

    def _process_queue(self) -> None:
        """Admit as many queued requests as the window allows.

        Safe to call at any time; with an empty queue or no free capacity
        it changes nothing.
        """
        now = time.monotonic()
        self._ledger.prune(now)

        while self._queue and len(self._ledger) + self._in_flight < self.max_in_window:
            request = self._queue.popleft()
            if request.future.done():
                # Cancelled by the caller while queued
                continue
            self._admit(request)

        if self._queue and self._ledger:
            self._schedule_recheck(now)

    def _admit(self, request: PendingRequest) -> None:
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        self._total_admitted += 1
        request.attempts += 1

        waited = time.monotonic() - request.submitted_at
        logger.debug(
            f"Admitted {request.request_id} on '{self.name}' "
            f"(attempt {request.attempts}, waited {waited:.3f}s)",
            extra=self._log_extra(request, waited_seconds=round(waited, 3)),
        )

        if request.on_admit is not None:
            try:
                request.on_admit()
            except Exception:
                logger.exception(f"on_admit callback failed for {request.request_id}")

        task = asyncio.get_running_loop().create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _schedule_recheck(self, now: float) -> None:
        """Arm the re-check timer for when the oldest completion expires.

        A timer already due at or before that moment is kept as is.
        """
        due = self._ledger.oldest + self.window_seconds
        if self._recheck is not None:
            if self._recheck_due <= due:
                return
            self._recheck.cancel()
        self._recheck_due = due
        self._recheck = asyncio.get_running_loop().call_later(
            self._ledger.next_expiry(now), self._on_recheck
        )

    def _on_recheck(self) -> None:
        self._recheck = None
        self._process_queue()

    async def _run(self, request: PendingRequest) -> None:
        """Run one admitted request and settle its future."""
        try:
            result = await self._invoke(request)
        except OperationTimeoutError as exc:
            self._complete()
            self._total_timeouts += 1
            logger.warning(
                f"{exc.message}; re-queueing {request.request_id}",
                extra=self._log_extra(request),
            )
            self._queue.append(request)
            asyncio.get_running_loop().call_later(self.window_seconds, self._process_queue)
        except asyncio.CancelledError:
            self._complete()
            if not request.future.done():
                request.future.cancel()
            # Capacity changed; queued requests must not wait for a new submit
            asyncio.get_running_loop().call_soon(self._process_queue)
            raise
        except Exception as exc:
            self._complete()
            self._total_failed += 1
            logger.debug(f"{request.request_id} failed on '{self.name}': {exc!r}")
            if not request.future.done():
                request.future.set_exception(exc)
        else:
            self._complete()
            self._total_succeeded += 1
            if not request.future.done():
                request.future.set_result(result)

        self._process_queue()

    def _log_extra(self, request: PendingRequest, **fields: Any) -> dict[str, Any]:
        """Structured fields for a request's log records."""
        values = {
            "dispatcher": self.name,
            "request_id": request.request_id,
            "kind": request.kind.value,
            "attempt": request.attempts,
            "in_flight": self._in_flight,
            "queued": len(self._queue),
            **fields,
        }
        return {key: values[key] for key in DISPATCH_LOG_FIELDS if key in values}

    def _complete(self) -> None:
        self._in_flight -= 1
        self._ledger.record(time.monotonic())

    async def _invoke(self, request: PendingRequest) -> Any:
        """Start the underlying operation for either call kind."""
        call = request.call
        if isinstance(call, CoroutineCall):
            result = call.func(*call.args, **call.kwargs)
            if not inspect.isawaitable(result):
                return result
            return await self._with_timeout(result, request)

        send = call.bound()
        if inspect.iscoroutinefunction(send):
            return await send(*call.args, **call.kwargs)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: send(*call.args, **call.kwargs))

    async def _with_timeout(self, awaitable: Any, request: PendingRequest) -> Any:
        """Await an operation, aborting it after ``operation_timeout``.

        Raises:
            OperationTimeoutError: If the operation did not settle in time
        """
        task = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.operation_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass  # Expected: operation aborted on timeout
            except Exception as exc:
                logger.debug(f"Aborted operation raised while cancelling: {exc!r}")
            raise OperationTimeoutError(
                f"Operation exceeded {self.operation_timeout}s on '{self.name}'",
                timeout=self.operation_timeout,
                attempt=request.attempts,
                request_id=request.request_id,
            )

        return task.result()

    def get_stats(self) -> DispatcherStats:
        """Get dispatcher statistics."""
        return DispatcherStats(
            name=self.name,
            max_in_window=self.max_in_window,
            window_seconds=self.window_seconds,
            in_flight=self._in_flight,
            queued=len(self._queue),
            completed_in_window=self.completed_in_window,
            peak_in_flight=self._peak_in_flight,
            total_submitted=self._total_submitted,
            total_admitted=self._total_admitted,
            total_succeeded=self._total_succeeded,
            total_failed=self._total_failed,
            total_timeouts=self._total_timeouts,
            total_rejected=self._total_rejected,
        )
