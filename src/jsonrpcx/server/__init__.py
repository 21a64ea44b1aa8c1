"""jsonrpcx server: namespaced dispatch behind a middleware pipeline.

Key concepts:
- Registry: nested mapping of namespace -> (mapping | object | handler)
- Middleware: ordered steps filling one context per exchange
- Dispatcher: dotted-name lookup plus error-code mapping
"""

from .app import create_app
from .config import ServerConfig
from .dispatcher import Dispatcher, to_error_object
from .middleware import Middleware, MiddlewarePipeline
from .routes import RPCEndpoint, health_routes, rpc_routes

__all__ = [
    "create_app",
    "ServerConfig",
    "Dispatcher",
    "to_error_object",
    "Middleware",
    "MiddlewarePipeline",
    "RPCEndpoint",
    "health_routes",
    "rpc_routes",
]
