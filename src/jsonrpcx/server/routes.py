"""HTTP and WebSocket endpoints for the RPC server.

Provides:
- POST <rpc_path> - one request or a batch per HTTP exchange
- WebSocket <ws_path> - persistent connection, one context per handshake
- GET /health - health check
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import BaseRoute, Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..protocol.envelope import PROTOCOL_VERSION, as_batch, error_response
from ..protocol.errors import ErrorCode
from .dispatcher import Dispatcher, to_error_object
from .middleware import Middleware, MiddlewarePipeline

logger = logging.getLogger(__name__)


class RPCEndpoint:
    """Serves registered methods behind a middleware pipeline.

    Every element of one inbound payload shares one context. Elements are
    dispatched concurrently and answered in the order they complete; a single
    answer is sent as an object, several as an array.

    Usage:
        endpoint = RPCEndpoint({"test": TestMethods()}, authenticate)
        routes = [Route("/rpc", endpoint.http_endpoint, methods=["POST"])]
    """

    def __init__(
        self,
        methods: Mapping[str, Any],
        *middleware: Middleware,
        version: str = PROTOCOL_VERSION,
    ) -> None:
        self.version = version
        self.dispatcher = Dispatcher(methods, version)
        self.pipeline = MiddlewarePipeline(*middleware)

    async def respond(self, context: dict[str, Any], body: Any) -> dict[str, Any] | list[Any]:
        """Dispatch every element of a parsed payload against one context."""
        messages, _ = as_batch(body)
        results: list[dict[str, Any]] = []

        async def run(message: Any) -> None:
            results.append(await self.dispatcher.dispatch(context, message))

        await asyncio.gather(*(run(message) for message in messages))

        if len(results) == 1:
            return results[0]
        return results

    def _parse_error(self, error: Exception) -> dict[str, Any]:
        return error_response(
            None,
            {"code": ErrorCode.PARSE_ERROR, "message": f"Parse error: {error}"},
            self.version,
        )

    def _fail_all(self, body: Any, error: Exception) -> dict[str, Any] | list[Any]:
        """Answer every element of `body` with the same error."""
        messages, _ = as_batch(body)
        error_object = to_error_object(error)
        replies = [
            error_response(message.get("id") if isinstance(message, dict) else None, error_object, self.version)
            for message in messages
        ]
        if len(replies) == 1:
            return replies[0]
        return replies

    # =========================================================================
    # HTTP
    # =========================================================================

    async def http_endpoint(self, request: Request) -> JSONResponse:
        """Handle POST requests to the RPC endpoint."""
        try:
            body = json.loads(await request.body())
        except ValueError as e:
            logger.warning(f"Unparseable RPC body from {request.client}: {e}")
            return JSONResponse(self._parse_error(e), status_code=400)

        try:
            context = await self.pipeline.build(request)
        except Exception as e:
            logger.exception(f"Middleware failed: {e}")
            return JSONResponse(self._fail_all(body, e), status_code=500)

        return JSONResponse(await self.respond(context, body))

    # =========================================================================
    # WebSocket
    # =========================================================================

    async def websocket_endpoint(self, websocket: WebSocket) -> None:
        """Accept a persistent connection and answer each frame independently.

        The middleware pipeline runs once, against the handshake; its context
        is shared by every frame received on this connection.
        """
        await websocket.accept()

        try:
            context = await self.pipeline.build(websocket)
        except Exception as e:
            logger.exception(f"Middleware failed during WebSocket handshake: {e}")
            await websocket.close(code=1011, reason="Request context could not be built")
            return

        pending_tasks: set[asyncio.Task[None]] = set()
        try:
            while True:
                data = await websocket.receive_text()
                task = asyncio.create_task(self._handle_frame(websocket, context, data))
                pending_tasks.add(task)
                task.add_done_callback(pending_tasks.discard)
        except WebSocketDisconnect:
            logger.info("RPC WebSocket client disconnected")
        finally:
            for task in pending_tasks:
                task.cancel()

    async def _handle_frame(self, websocket: WebSocket, context: dict[str, Any], data: str) -> None:
        try:
            body = json.loads(data)
        except ValueError as e:
            logger.warning(f"Invalid JSON frame: {e}")
            reply: Any = self._parse_error(e)
        else:
            reply = await self.respond(context, body)

        message = json.dumps(reply)
        try:
            await websocket.send_text(message)
        except Exception as e:
            logger.debug(f"Could not deliver reply, client gone: {e}")


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "ok"})


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]


def rpc_routes(endpoint: RPCEndpoint, rpc_path: str = "/rpc", ws_path: str = "/ws") -> list[BaseRoute]:
    """Route definitions for an endpoint."""
    return [
        Route(rpc_path, endpoint.http_endpoint, methods=["POST"]),
        WebSocketRoute(ws_path, endpoint.websocket_endpoint),
    ]
