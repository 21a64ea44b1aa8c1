"""jsonrpcx - batched JSON-RPC client and server.

Client:
    async with create_http_client("http://localhost:8080/rpc", batch_window=0.01) as client:
        api = client.api("test")
        a, b = await asyncio.gather(api.Sum(1, 2), api.Sum(3, 4))  # one HTTP exchange

Server:
    app = create_app({"test": TestMethods()}, authenticate)
"""

from .client import (
    ClientConfig,
    HTTPClientTransport,
    MockClientTransport,
    RPCClient,
    WebSocketClientTransport,
    create_client,
    create_http_client,
    create_websocket_client,
)
from .protocol import (
    PROTOCOL_VERSION,
    ErrorCode,
    JSONRPCError,
    MalformedResponseError,
    MethodNotFoundError,
    RPCError,
    TransportError,
)
from .server import RPCEndpoint, ServerConfig, create_app

__version__ = "0.1.0"

__all__ = [
    "PROTOCOL_VERSION",
    "ErrorCode",
    "JSONRPCError",
    "RPCError",
    "MethodNotFoundError",
    "TransportError",
    "MalformedResponseError",
    "ClientConfig",
    "RPCClient",
    "HTTPClientTransport",
    "WebSocketClientTransport",
    "MockClientTransport",
    "create_client",
    "create_http_client",
    "create_websocket_client",
    "ServerConfig",
    "RPCEndpoint",
    "create_app",
]
