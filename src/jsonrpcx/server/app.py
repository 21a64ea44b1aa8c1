"""RPC Server Application.

Creates the Starlette ASGI application with all routes:
- /health - Health check endpoint
- /rpc - JSON-RPC over HTTP POST (path configurable)
- /ws - JSON-RPC over a persistent WebSocket (path configurable)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from starlette.applications import Starlette
from starlette.routing import BaseRoute

from .config import ServerConfig
from .middleware import Middleware
from .routes import RPCEndpoint, health_routes, rpc_routes


def create_app(
    methods: Mapping[str, Any],
    *middleware: Middleware,
    config: ServerConfig | None = None,
) -> Starlette:
    """Create the RPC server application.

    Args:
        methods: Nested namespace registry (mappings, objects, handlers)
        *middleware: Context builders run for every exchange, in order
        config: Routes and protocol version (defaults to ServerConfig())

    Returns:
        Configured Starlette application
    """
    config = config or ServerConfig()
    endpoint = RPCEndpoint(methods, *middleware, version=config.version)

    routes: list[BaseRoute] = []
    routes.extend(health_routes)
    routes.extend(rpc_routes(endpoint, config.rpc_path, config.ws_path))

    app = Starlette(routes=routes)
    app.state.endpoint = endpoint
    app.state.config = config
    return app
