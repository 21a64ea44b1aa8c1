"""Server configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from ..protocol.envelope import PROTOCOL_VERSION

ENV_PREFIX = "JSONRPCX_"


@dataclass
class ServerConfig:
    """Configuration for the RPC server application.

    Attributes:
        host: Interface to bind to.
        port: Port to bind to.
        rpc_path: Route for HTTP POST exchanges.
        ws_path: Route for persistent WebSocket connections.
        version: Protocol version tag written on every response.
    """

    host: str = "127.0.0.1"
    port: int = 8080
    rpc_path: str = "/rpc"
    ws_path: str = "/ws"
    version: str = PROTOCOL_VERSION

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ServerConfig:
        """Read overrides from JSONRPCX_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get(f"{ENV_PREFIX}HOST", defaults.host),
            port=int(env.get(f"{ENV_PREFIX}PORT", defaults.port)),
            rpc_path=env.get(f"{ENV_PREFIX}RPC_PATH", defaults.rpc_path),
            ws_path=env.get(f"{ENV_PREFIX}WS_PATH", defaults.ws_path),
            version=env.get(f"{ENV_PREFIX}VERSION", defaults.version),
        )
