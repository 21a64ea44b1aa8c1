"""RPC client: namespace-scoped method calls over any client transport.

Usage:
    async with create_http_client("http://localhost:8080/rpc") as client:
        api = client.api("test")
        total = await api.Sum(1, 4, 5)

Every call returns an asyncio.Future immediately; the request is already on
its way (or queued in the current batch window) when the future is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..protocol.envelope import PROTOCOL_VERSION, make_request
from ..protocol.errors import TransportError
from .config import ClientConfig
from .scheduler import BatchScheduler
from .transport import (
    ClientTransport,
    Connector,
    HTTPClientTransport,
    WebSocketClientTransport,
)

logger = logging.getLogger(__name__)


class Namespace:
    """Call surface for one namespace.

    Any attribute resolves to a call builder for `<namespace>.<attribute>`.
    Nested namespaces chain: `client.api("test").unit.add(1, 2)` calls
    `test.unit.add`.
    """

    __slots__ = ("_client", "_prefix")

    def __init__(self, client: RPCClient, prefix: str = "") -> None:
        self._client = client
        self._prefix = prefix

    def _qualify(self, name: str) -> str:
        return f"{self._prefix}.{name}" if self._prefix else name

    def __getattr__(self, name: str) -> MethodCall:
        if name.startswith("__"):
            raise AttributeError(name)
        return MethodCall(self._client, self._qualify(name))

    def __getitem__(self, name: str) -> MethodCall:
        return MethodCall(self._client, self._qualify(name))

    def __repr__(self) -> str:
        return f"Namespace({self._prefix!r})"


class MethodCall(Namespace):
    """A fully qualified method name; calling it sends the request."""

    __slots__ = ()

    @property
    def method(self) -> str:
        """The dotted method name this call targets."""
        return self._prefix

    def __call__(self, *params: Any) -> asyncio.Future[Any]:
        return self._client.call(self._prefix, *params)

    def __repr__(self) -> str:
        return f"MethodCall({self._prefix!r})"


class RPCClient:
    """Correlates method calls with responses over a client transport.

    Request ids start at 0 and increase by one per call; an id is never
    reused while its call is pending.

    Args:
        transport: Any ClientTransport (HTTP, WebSocket, mock)
        batch_window: Seconds to collect calls into one batch. 0 sends every
            call on its own. Ignored when the transport cannot batch.
    """

    def __init__(self, transport: ClientTransport, *, batch_window: float = 0.0) -> None:
        self.transport = transport
        self.correlator = transport.correlator
        self.version = self.correlator.version
        self._next_id = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._scheduler = BatchScheduler(batch_window, transport.send, self.correlator.abort)

    @property
    def batching(self) -> bool:
        """Check if calls are being collected into batches."""
        return self._scheduler.enabled and self.transport.supports_batching

    def _allocate_id(self) -> int:
        request_id = self._next_id
        self._next_id += 1
        return request_id

    def call(self, method: str, *params: Any) -> asyncio.Future[Any]:
        """Send a request and return the future for its outcome.

        Must be called with a running event loop.

        Returns:
            Future resolving to the result, or failing with RPCError for
            protocol errors and TransportError for failed exchanges.
        """
        request_id = self._allocate_id()
        envelope = make_request(method, list(params), request_id, self.version)
        future = self.correlator.register(request_id)

        if self.batching:
            self._scheduler.enqueue(envelope)
        else:
            task = asyncio.get_running_loop().create_task(
                self.transport.send(envelope, [request_id])
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.debug(f"Issued {method} (id={request_id})")
        return future

    def api(self, namespace: str = "") -> Namespace:
        """Return the call surface for a namespace."""
        return Namespace(self, namespace)

    async def close(self) -> None:
        """Send the open batch window, wait for in-flight sends, close the transport.

        Calls still unanswered after that are rejected with TransportError.
        """
        if self._scheduler.queued:
            self._scheduler.flush()
        await self._scheduler.drain()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.transport.close()

        if self.correlator.pending_ids:
            logger.debug(f"Rejecting {len(self.correlator)} call(s) left pending at close")
            self.correlator.abort(self.correlator.pending_ids, TransportError("Client closed"))

    async def __aenter__(self) -> RPCClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# Factory functions


def create_http_client(
    endpoint: str,
    *,
    headers: dict[str, str] | None = None,
    batch_window: float = 0.0,
    timeout: float = 30.0,
    version: str = PROTOCOL_VERSION,
    http_client: httpx.AsyncClient | None = None,
) -> RPCClient:
    """Create a client sending one HTTP exchange per call or batch.

    Args:
        endpoint: Server URL
        headers: Extra headers, merged on top of the defaults
        batch_window: Seconds to collect calls into one batch (0 disables)
        timeout: Request timeout for the owned httpx client
        version: Protocol version tag
        http_client: Optional preconfigured httpx.AsyncClient

    Returns:
        RPCClient over an HTTPClientTransport
    """
    config = ClientConfig(
        endpoint=endpoint,
        mode="http",
        headers=dict(headers or {}),
        batch_window=batch_window,
        timeout=timeout,
        version=version,
    )
    return create_client(config, http_client=http_client)


def create_websocket_client(
    endpoint: str,
    *,
    version: str = PROTOCOL_VERSION,
    connect: Connector | None = None,
) -> RPCClient:
    """Create a client sharing one persistent WebSocket across all calls.

    Args:
        endpoint: WebSocket URL (ws:// or wss://)
        version: Protocol version tag
        connect: Optional connect factory (defaults to websockets)

    Returns:
        RPCClient over a WebSocketClientTransport
    """
    config = ClientConfig(endpoint=endpoint, mode="websocket", version=version)
    return create_client(config, connect=connect)


def create_client(
    config: ClientConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
    connect: Connector | None = None,
) -> RPCClient:
    """Create a client for a validated configuration.

    Raises:
        ValueError: If the configuration is incomplete or invalid.
    """
    config.validate()
    transport: ClientTransport
    if config.mode == "websocket":
        transport = WebSocketClientTransport(config, connect=connect)
    else:
        transport = HTTPClientTransport(config, http_client=http_client)
    return RPCClient(transport, batch_window=config.batch_window)
