"""Throttled HTTP clients.

Both clients route every request through a RateLimitedDispatcher:

- ThrottledAsyncClient: httpx.AsyncClient requests, awaited under the
  dispatcher's per-operation timeout
- ThrottledSession: requests.Session sends of a prepared request,
  run in the default executor once admitted
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import requests
from requests.adapters import HTTPAdapter

from throttled_request.dispatch.dispatcher import RateLimitedDispatcher
from throttled_request.dispatch.request import CoroutineCall, HandleCall

logger = logging.getLogger(__name__)


@dataclass
class HTTPClientConfig:
    """Configuration for HTTP clients created by this module.

    Attributes:
        timeout: Transport timeout in seconds
        max_connections: Maximum open connections
        max_keepalive_connections: Maximum idle connections kept alive
        headers: Default headers sent with every request
    """

    timeout: float = 30.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    headers: dict[str, str] = field(default_factory=dict)


def _create_async_client(config: HTTPClientConfig) -> httpx.AsyncClient:
    """Create a new httpx AsyncClient with connection pooling."""
    limits = httpx.Limits(
        max_keepalive_connections=config.max_keepalive_connections,
        max_connections=config.max_connections,
        keepalive_expiry=30.0,
    )
    timeout = httpx.Timeout(config.timeout, connect=10.0)
    return httpx.AsyncClient(limits=limits, timeout=timeout, headers=config.headers)


def _create_sync_session(config: HTTPClientConfig) -> requests.Session:
    """Create a new requests Session with connection pooling.

    No transport-level retries are mounted: failures must reach the
    dispatcher unchanged.
    """
    session = requests.Session()

    adapter = HTTPAdapter(
        pool_connections=config.max_keepalive_connections,
        pool_maxsize=config.max_connections,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    if config.headers:
        session.headers.update(config.headers)

    return session


class ThrottledAsyncClient:
    """httpx client whose requests are admitted by a dispatcher.

    Usage:
        dispatcher = RateLimitedDispatcher("api", max_in_window=5)
        async with ThrottledAsyncClient(dispatcher) as client:
            response = await client.get("https://api.example.com/items")
    """

    def __init__(
        self,
        dispatcher: RateLimitedDispatcher,
        client: httpx.AsyncClient | None = None,
        config: HTTPClientConfig | None = None,
    ):
        self.dispatcher = dispatcher
        self._owns_client = client is None
        self._client = client or _create_async_client(config or HTTPClientConfig())

    async def request(
        self,
        method: str,
        url: str,
        *,
        on_admit: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Queue an HTTP request and await its response."""
        return await self.dispatcher.submit(
            CoroutineCall(self._client.request, (method, url), kwargs),
            on_admit=on_admit,
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
            logger.info("Closed throttled async HTTP client")

    async def __aenter__(self) -> ThrottledAsyncClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class ThrottledSession:
    """requests.Session whose sends are admitted by a dispatcher.

    Requests are prepared up front and sent once the dispatcher admits
    them, so the blocking send runs off the event loop. The dispatcher
    cannot abort a send already running in a thread; ``config.timeout``
    is passed to every send as the transport timeout instead.

    Usage:
        session = ThrottledSession(dispatcher)
        prepared = session.prepare("GET", "https://api.example.com/items")
        response = await session.send(prepared, on_admit=lambda: print("sent"))
    """

    def __init__(
        self,
        dispatcher: RateLimitedDispatcher,
        session: requests.Session | None = None,
        config: HTTPClientConfig | None = None,
    ):
        cfg = config or HTTPClientConfig()
        self.dispatcher = dispatcher
        self.timeout = cfg.timeout
        self._owns_session = session is None
        self._session = session or _create_sync_session(cfg)

    def prepare(self, method: str, url: str, **kwargs: Any) -> requests.PreparedRequest:
        """Build a prepared request with the session's defaults merged in."""
        return self._session.prepare_request(requests.Request(method, url, **kwargs))

    async def send(
        self,
        prepared: requests.PreparedRequest,
        *,
        on_admit: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Queue a prepared request and await its response."""
        kwargs.setdefault("timeout", self.timeout)
        return await self.dispatcher.submit(
            HandleCall(self._session, (prepared,), kwargs, method="send"),
            on_admit=on_admit,
        )

    def close(self) -> None:
        """Close the underlying session if this instance created it."""
        if self._owns_session:
            self._session.close()
            logger.info("Closed throttled HTTP session")
