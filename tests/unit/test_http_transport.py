"""Unit tests for the HTTP client transport.

Uses httpx.MockTransport so no network is involved.
"""

from __future__ import annotations

import json

import httpx
import pytest

from jsonrpcx.client.config import ClientConfig
from jsonrpcx.client.transport import (
    DEFAULT_CONTENT_TYPE,
    ClientTransport,
    HTTPClientTransport,
    TransportState,
)
from jsonrpcx.protocol.envelope import PROTOCOL_VERSION, make_request
from jsonrpcx.protocol.errors import MalformedResponseError, RPCError, TransportError

ENDPOINT = "http://rpc.test/rpc"


def make_transport(handler, **config) -> tuple[HTTPClientTransport, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HTTPClientTransport(
        ClientConfig(endpoint=ENDPOINT, **config),
        http_client=http_client,
    )
    return transport, http_client


def echo_sum(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    requests = body if isinstance(body, list) else [body]
    answers = [
        {"jsonrpc": PROTOCOL_VERSION, "id": r["id"], "result": sum(r["params"])} for r in requests
    ]
    return httpx.Response(200, json=answers if isinstance(body, list) else answers[0])


class TestHTTPClientTransport:
    def test_satisfies_protocol(self) -> None:
        transport = HTTPClientTransport(ClientConfig(endpoint=ENDPOINT))

        assert isinstance(transport, ClientTransport)
        assert transport.supports_batching
        assert transport.state == TransportState.DISCONNECTED

    def test_headers_merge(self) -> None:
        """Caller headers are layered over the Content-Type default."""
        transport = HTTPClientTransport(
            ClientConfig(endpoint=ENDPOINT, headers={"Authorization": "Bearer t"})
        )

        assert transport.headers["content-type"] == DEFAULT_CONTENT_TYPE
        assert transport.headers["authorization"] == "Bearer t"

    def test_headers_override_content_type(self) -> None:
        transport = HTTPClientTransport(
            ClientConfig(endpoint=ENDPOINT, headers={"Content-Type": "application/x-rpc"})
        )

        assert transport.headers["content-type"] == "application/x-rpc"

    @pytest.mark.asyncio
    async def test_single_call(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return echo_sum(request)

        transport, http_client = make_transport(handler, headers={"Authorization": "x"})
        future = transport.correlator.register(0)

        await transport.send(make_request("test.Sum", [1, 2], 0), [0])

        assert await future == 3
        assert seen[0].method == "POST"
        assert str(seen[0].url) == ENDPOINT
        assert seen[0].headers["authorization"] == "x"
        assert json.loads(seen[0].content)["method"] == "test.Sum"
        assert transport.state == TransportState.OPEN
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_batch_call(self) -> None:
        transport, http_client = make_transport(echo_sum)
        first = transport.correlator.register(0)
        second = transport.correlator.register(1)

        await transport.send(
            [make_request("test.Sum", [1, 2], 0), make_request("test.Sum", [3, 4], 1)],
            [0, 1],
        )

        assert await first == 3
        assert await second == 7
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_rpc_error_in_success_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": PROTOCOL_VERSION,
                    "id": 0,
                    "error": {"code": 1003, "message": "current user is not authorized"},
                },
            )

        transport, http_client = make_transport(handler)
        future = transport.correlator.register(0)

        await transport.send(make_request("test.SecureSum", [1, 2], 0), [0])

        with pytest.raises(RPCError, match=r"\[1003\] current user is not authorized"):
            await future
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_unanswered_id_resolves_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": PROTOCOL_VERSION, "id": 0, "result": 1})

        transport, http_client = make_transport(handler)
        answered = transport.correlator.register(0)
        unanswered = transport.correlator.register(1)

        await transport.send([make_request("a", [], 0), make_request("b", [], 1)], [0, 1])

        assert await answered == 1
        assert await unanswered is None
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_with_rpc_body(self) -> None:
        """Answered ids get their error; the rest are aborted."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500,
                json={
                    "jsonrpc": PROTOCOL_VERSION,
                    "id": 0,
                    "error": {"code": -32000, "message": "boom"},
                },
            )

        transport, http_client = make_transport(handler)
        answered = transport.correlator.register(0)
        unanswered = transport.correlator.register(1)

        await transport.send([make_request("a", [], 0), make_request("b", [], 1)], [0, 1])

        with pytest.raises(RPCError):
            await answered
        with pytest.raises(TransportError, match="HTTP 500"):
            await unanswered
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_without_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        transport, http_client = make_transport(handler)
        future = transport.correlator.register(0)

        await transport.send(make_request("a", [], 0), [0])

        with pytest.raises(TransportError, match="HTTP 502"):
            await future
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_invalid_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        transport, http_client = make_transport(handler)
        future = transport.correlator.register(0)

        await transport.send(make_request("a", [], 0), [0])

        with pytest.raises(TransportError, match="Invalid JSON"):
            await future
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_missing_version_rejects_every_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": 0, "result": 1}, {"id": 1, "result": 2}])

        transport, http_client = make_transport(handler)
        first = transport.correlator.register(0)
        second = transport.correlator.register(1)

        await transport.send([make_request("a", [], 0), make_request("b", [], 1)], [0, 1])

        for future in (first, second):
            with pytest.raises(MalformedResponseError, match="missing jsonrpc value"):
                await future
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_network_failure_aborts_ids(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport, http_client = make_transport(handler)
        future = transport.correlator.register(0)

        await transport.send(make_request("a", [], 0), [0])

        with pytest.raises(TransportError, match="connection refused"):
            await future
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self) -> None:
        transport, http_client = make_transport(echo_sum)

        await transport.close()

        assert not http_client.is_closed
        assert transport.state == TransportState.DISCONNECTED
        await http_client.aclose()
