"""Client-side transports.

Architecture:
- ClientTransport is the PROTOCOL (interface) every transport satisfies
- BaseClientTransport owns the request correlator and the failure policy:
  an exchange that fails aborts exactly the ids it carried
- HTTPClientTransport: one HTTP POST per call or batch (httpx)
- WebSocketClientTransport: one lazily opened, shared connection (websockets)
- MockClientTransport: in-memory, for tests

Transports never raise out of send(); every outcome is delivered to the
futures registered with the correlator.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import httpx
from websockets.asyncio.client import connect as websockets_connect

from ..protocol.envelope import success_response
from ..protocol.errors import TransportError
from .config import ClientConfig
from .correlator import RequestCorrelator

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_METHOD = "POST"

# connect(url) -> socket with send(text), close() and async iteration over frames
Connector = Callable[[str], Awaitable[Any]]
# responder(payload) -> response payload (or awaitable of one); None sends no answer
Responder = Callable[[Any], Any]


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"


@runtime_checkable
class ClientTransport(Protocol):
    """Protocol for client transports.

    The transport handles:
    - Wire format (HTTP bodies, WebSocket frames)
    - Connection management
    - Feeding every inbound payload to its correlator
    """

    correlator: RequestCorrelator
    supports_batching: bool

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        ...

    async def send(self, payload: Any, ids: list[int | str]) -> None:
        """Transmit one envelope or a batch and route the answers.

        Args:
            payload: A request envelope or a list of them
            ids: The request ids carried by payload
        """
        ...

    async def close(self) -> None:
        """Release the connection."""
        ...


def _as_transport_error(error: Exception) -> TransportError:
    if isinstance(error, TransportError):
        return error
    wrapped = TransportError(str(error) or error.__class__.__name__)
    wrapped.__cause__ = error
    return wrapped


class BaseClientTransport(ABC):
    """Base class for client transports with common functionality.

    Provides:
    - The request correlator shared with the client
    - State tracking
    - Abort-on-failure for every exchange
    """

    supports_batching: bool = True

    def __init__(self, config: ClientConfig):
        self.config = config
        self.correlator = RequestCorrelator(config.version)
        self._state = TransportState.DISCONNECTED

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    async def send(self, payload: Any, ids: list[int | str]) -> None:
        """Perform one exchange; on failure reject exactly `ids`."""
        try:
            await self._do_send(payload, ids)
        except Exception as e:
            logger.warning(f"{self.__class__.__name__} exchange failed for ids={ids}: {e}")
            self.correlator.abort(ids, _as_transport_error(e))

    @abstractmethod
    async def _do_send(self, payload: Any, ids: list[int | str]) -> None:
        """Implementation-specific exchange."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Implementation-specific shutdown."""
        ...

    async def __aenter__(self) -> BaseClientTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class HTTPClientTransport(BaseClientTransport):
    """Transport over HTTP: one POST per call or batch.

    Wire format:
    - Request body: one envelope, or an array of envelopes for a batch
    - Response body: one envelope or an array, in any order

    An injected httpx.AsyncClient stays owned by the caller; one created
    here is closed by close().
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config or ClientConfig(mode="http"))
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def headers(self) -> httpx.Headers:
        """Default headers with the configured headers merged on top."""
        headers = httpx.Headers({"Content-Type": DEFAULT_CONTENT_TYPE})
        headers.update(self.config.headers)
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_client = True
        self._state = TransportState.OPEN
        return self._http_client

    async def _do_send(self, payload: Any, ids: list[int | str]) -> None:
        """POST the payload and feed the response body to the correlator."""
        response = await self._client().request(
            DEFAULT_METHOD,
            self.config.endpoint,
            content=json.dumps(payload),
            headers=self.headers,
        )

        try:
            body = response.json()
        except ValueError as e:
            if response.is_error:
                raise TransportError(
                    f"HTTP {response.status_code} from {self.config.endpoint}"
                ) from e
            raise TransportError(f"Invalid JSON in response body: {e}") from e

        self.correlator.handle(body)

        if response.is_error:
            self.correlator.abort(
                ids,
                TransportError(f"HTTP {response.status_code} from {self.config.endpoint}"),
            )
        else:
            self.correlator.settle(ids)

    async def close(self) -> None:
        """Close the owned HTTP client."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
        self._state = TransportState.DISCONNECTED


class WebSocketClientTransport(BaseClientTransport):
    """Transport over one persistent WebSocket shared by every call.

    The connection opens lazily on the first send. Callers arriving while it
    is opening await the same attempt. Each payload goes out as its own frame;
    there is no batching on this transport.

    A malformed inbound frame, a connection error or a peer close drops the
    connection; the next send opens a new one. Calls still pending at that
    point are left pending, so callers needing a bound should wrap them in
    asyncio.wait_for().
    """

    supports_batching = False

    def __init__(
        self,
        config: ClientConfig | None = None,
        connect: Connector | None = None,
    ):
        super().__init__(config or ClientConfig(mode="websocket"))
        self._connect = connect or websockets_connect
        self._connection: Any = None
        self._connecting: asyncio.Task[Any] | None = None
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def is_connected(self) -> bool:
        """Check if the connection is open."""
        return self._state == TransportState.OPEN

    async def _do_send(self, payload: Any, ids: list[int | str]) -> None:
        """Send payload as one text frame once the connection is open."""
        connection = await self._ensure_connection()
        await connection.send(json.dumps(payload))

    async def _ensure_connection(self) -> Any:
        # Check and creation of the connecting task must not be split by an await.
        if self._connection is not None:
            return self._connection
        if self._connecting is None:
            self._state = TransportState.CONNECTING
            self._connecting = asyncio.get_running_loop().create_task(self._open())
        return await asyncio.shield(self._connecting)

    async def _open(self) -> Any:
        url = self.config.endpoint
        logger.debug(f"Opening WebSocket connection to {url}")
        try:
            connection = await self._connect(url)
        except Exception as e:
            if self._connecting is asyncio.current_task():
                self._connecting = None
                self._state = TransportState.DISCONNECTED
            raise TransportError(f"Failed to connect to {url}: {e}") from e

        if self._connecting is not asyncio.current_task():
            # close() ran while this attempt was in flight
            await self._close_connection(connection)
            raise TransportError(f"Connection to {url} closed while opening")

        self._connection = connection
        self._state = TransportState.OPEN
        self._reader_task = asyncio.get_running_loop().create_task(self._read_loop(connection))
        logger.info(f"WebSocket connected to {url}")
        return connection

    async def _read_loop(self, connection: Any) -> None:
        """Feed inbound frames to the correlator, one at a time."""
        try:
            async for frame in connection:
                try:
                    self.correlator.handle(json.loads(frame))
                except (ValueError, TransportError) as e:
                    logger.warning(f"Closing WebSocket after malformed frame: {e}")
                    await self._close_connection(connection)
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"WebSocket connection error: {e}")
        finally:
            self._discard(connection)

    def _discard(self, connection: Any) -> None:
        if self._connection is not connection:
            return
        self._connection = None
        self._connecting = None
        self._reader_task = None
        self._state = TransportState.DISCONNECTED
        if self.correlator.pending_ids:
            logger.info(
                f"WebSocket disconnected with {len(self.correlator)} call(s) still pending"
            )
        else:
            logger.info("WebSocket disconnected")

    async def _close_connection(self, connection: Any) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")

    async def close(self) -> None:
        """Close the connection if one is open and reset connection state."""
        connection, self._connection = self._connection, None
        reader, self._reader_task = self._reader_task, None
        self._connecting = None
        self._state = TransportState.DISCONNECTED

        if connection is not None:
            await self._close_connection(connection)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader


class MockClientTransport(BaseClientTransport):
    """Mock transport for testing.

    Records every payload and answers through a responder callable.
    No actual I/O - everything is in-memory.

    Usage:
        transport = MockClientTransport(lambda payload: {
            "jsonrpc": "2.0-x", "id": payload["id"], "result": 10,
        })
        client = RPCClient(transport)
        assert await client.api("test").Sum(1, 4, 5) == 10
        assert transport.recorded_payloads[0]["method"] == "test.Sum"
    """

    def __init__(
        self,
        responder: Responder | None = None,
        *,
        supports_batching: bool = True,
        config: ClientConfig | None = None,
    ) -> None:
        super().__init__(config or ClientConfig(endpoint="mock://", mode="http"))
        self.supports_batching = supports_batching
        self._responder = responder or self._echo
        self._recorded_payloads: list[Any] = []

    @property
    def recorded_payloads(self) -> list[Any]:
        """Get all payloads sent through this transport."""
        return self._recorded_payloads.copy()

    def _echo(self, payload: Any) -> Any:
        """Answer every request with its own method and params."""

        def answer(request: dict[str, Any]) -> dict[str, Any]:
            return success_response(
                request["id"],
                {"method": request["method"], "params": request["params"]},
                self.config.version,
            )

        if isinstance(payload, list):
            return [answer(request) for request in payload]
        return answer(payload)

    async def _do_send(self, payload: Any, ids: list[int | str]) -> None:
        """Record payload and deliver the responder's answer."""
        self._state = TransportState.OPEN
        self._recorded_payloads.append(payload)

        response = self._responder(payload)
        if inspect.isawaitable(response):
            response = await response
        if response is not None:
            self.correlator.handle(response)
        self.correlator.settle(ids)

    async def close(self) -> None:
        """No-op for mock."""
        self._state = TransportState.DISCONNECTED
