"""Tests for the error hierarchy and request descriptors."""

import asyncio

import pytest

from throttled_request.dispatch.request import (
    CoroutineCall,
    HandleCall,
    PendingRequest,
    RequestKind,
)
from throttled_request.errors import (
    InvalidRequestError,
    OperationTimeoutError,
    ThrottleError,
)


class TestErrors:
    """Tests for error types."""

    def test_hierarchy(self):
        """All errors derive from ThrottleError."""
        assert issubclass(InvalidRequestError, ThrottleError)
        assert issubclass(OperationTimeoutError, ThrottleError)

    def test_to_dict(self):
        """Errors serialize code, message and details."""
        err = OperationTimeoutError("too slow", timeout=1.5, attempt=2, request_id="req-9")

        assert err.to_dict() == {
            "error": "TIMEOUT",
            "message": "too slow",
            "details": {"timeout": 1.5, "attempt": 2, "request_id": "req-9"},
        }

    def test_invalid_request_kind(self):
        """InvalidRequestError records the offending kind."""
        err = InvalidRequestError("bad", kind="handle")

        assert err.code == "INVALID_REQUEST"
        assert err.details == {"kind": "handle"}
        assert str(err) == "bad"


class TestRequestDescriptors:
    """Tests for call variants and PendingRequest."""

    def test_kinds(self):
        """Each variant carries its kind."""
        assert CoroutineCall(print).kind is RequestKind.COROUTINE
        assert HandleCall(object()).kind is RequestKind.HANDLE

    def test_handle_bound(self):
        """bound() resolves the send method or returns None."""

        class Handle:
            def send(self):
                return "sent"

            flush = "not callable"

        assert HandleCall(Handle()).bound()() == "sent"
        assert HandleCall(Handle(), method="flush").bound() is None
        assert HandleCall(None).bound() is None

    @pytest.mark.asyncio
    async def test_pending_request_ids_are_unique(self):
        """Every pending request gets its own id."""
        loop = asyncio.get_running_loop()
        first = PendingRequest(CoroutineCall(print), loop.create_future())
        second = PendingRequest(CoroutineCall(print), loop.create_future())

        assert first.request_id != second.request_id
        assert first.attempts == 0
        assert first.kind is RequestKind.COROUTINE
