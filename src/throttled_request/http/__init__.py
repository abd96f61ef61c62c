"""Throttled HTTP client module.

Usage:
    from throttled_request.http import ThrottledAsyncClient
    async with ThrottledAsyncClient(dispatcher) as client:
        response = await client.get("https://api.example.com/data")
"""

from throttled_request.http.client import (
    HTTPClientConfig,
    ThrottledAsyncClient,
    ThrottledSession,
)

__all__ = [
    "HTTPClientConfig",
    "ThrottledAsyncClient",
    "ThrottledSession",
]
