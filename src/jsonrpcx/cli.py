"""jsonrpcx CLI.

Usage:
    jsonrpcx serve                                  # Demo server on 127.0.0.1:8080
    jsonrpcx serve --port 9000 --rpc-path /api      # Custom port and route
    jsonrpcx call http://localhost:8080/rpc test.Sum 1 2 3
    jsonrpcx call ws://localhost:8080/ws test.Sum 1 2 --ws
    jsonrpcx call URL test.SecureSum 1 2 --header "Authorization:Bearer x"
    jsonrpcx health http://localhost:8080
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click
import httpx

from .client import create_http_client, create_websocket_client
from .protocol.errors import JSONRPCError
from .server.config import ServerConfig

LOG_LEVELS = ["debug", "info", "warning", "error"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_param(raw: str) -> Any:
    """Read a command line parameter as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    """Turn repeated `Name:Value` options into a header mapping."""
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got {value!r}", param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


@click.group()
def main() -> None:
    """jsonrpcx - batched JSON-RPC over HTTP and WebSocket."""


@main.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--rpc-path", default=None, help="Route for HTTP POST requests")
@click.option("--ws-path", default=None, help="Route for WebSocket connections")
@click.option("--demo/--no-demo", default=True, help="Serve the demo `test` namespace")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="info", help="Logging level")
def serve(
    host: str | None,
    port: int | None,
    rpc_path: str | None,
    ws_path: str | None,
    demo: bool,
    log_level: str,
) -> None:
    """Run the RPC server."""
    import uvicorn

    from .server.app import create_app

    _configure_logging(log_level)

    config = ServerConfig.from_env()
    config.host = host or config.host
    config.port = port or config.port
    config.rpc_path = rpc_path or config.rpc_path
    config.ws_path = ws_path or config.ws_path

    if demo:
        from .demo import demo_methods, test_auth

        app = create_app(demo_methods(), test_auth, config=config)
    else:
        app = create_app({}, config=config)

    click.echo(f"Starting jsonrpcx server on http://{config.host}:{config.port}", err=True)
    click.echo(f"  RPC endpoints: {config.rpc_path}, {config.ws_path}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(app, host=config.host, port=config.port, log_level=log_level)


@main.command()
@click.argument("endpoint")
@click.argument("method")
@click.argument("params", nargs=-1)
@click.option("--header", "header_values", multiple=True, help="Extra header as NAME:VALUE")
@click.option("--ws", "use_websocket", is_flag=True, help="Call over a WebSocket connection")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="warning", help="Logging level")
def call(
    endpoint: str,
    method: str,
    params: tuple[str, ...],
    header_values: tuple[str, ...],
    use_websocket: bool,
    log_level: str,
) -> None:
    """Call METHOD on ENDPOINT and print the result as JSON."""
    _configure_logging(log_level)
    headers = parse_headers(header_values)
    args = [parse_param(p) for p in params]

    if use_websocket and headers:
        raise click.UsageError("--header is only supported for HTTP calls")

    async def run() -> Any:
        client = (
            create_websocket_client(endpoint)
            if use_websocket
            else create_http_client(endpoint, headers=headers)
        )
        async with client:
            return await client.call(method, *args)

    try:
        result = asyncio.run(run())
    except JSONRPCError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@main.command()
@click.argument("url", default="http://localhost:8080")
def health(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url.rstrip('/')}/health")
                if response.status_code == 200:
                    click.echo(f"Server is healthy: {response.json()}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
