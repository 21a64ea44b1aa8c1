"""jsonrpcx client.

Provides two transport modes:
- http: one HTTP exchange per call, or per batch when a batch window is set
- websocket: one persistent connection shared by every call

Plus a mock transport for testing without real I/O.
"""

from .client import (
    MethodCall,
    Namespace,
    RPCClient,
    create_client,
    create_http_client,
    create_websocket_client,
)
from .config import ClientConfig
from .correlator import RequestCorrelator
from .scheduler import BatchScheduler
from .transport import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_METHOD,
    BaseClientTransport,
    ClientTransport,
    HTTPClientTransport,
    MockClientTransport,
    TransportState,
    WebSocketClientTransport,
)

__all__ = [
    # Client
    "RPCClient",
    "Namespace",
    "MethodCall",
    "create_client",
    "create_http_client",
    "create_websocket_client",
    "ClientConfig",
    # Core
    "RequestCorrelator",
    "BatchScheduler",
    # Transport Protocol & Base
    "ClientTransport",
    "BaseClientTransport",
    "TransportState",
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_METHOD",
    # Transport Implementations
    "HTTPClientTransport",
    "WebSocketClientTransport",
    "MockClientTransport",
]
