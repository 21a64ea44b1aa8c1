"""Integration tests: real client against the real server over HTTP.

The client's httpx.AsyncClient talks to the Starlette app in-process through
httpx.ASGITransport, so both ends run their full code paths.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from jsonrpcx.client import create_http_client
from jsonrpcx.protocol.envelope import PROTOCOL_VERSION
from jsonrpcx.protocol.errors import RPCError
from jsonrpcx.server.app import create_app

BASE_URL = "http://testserver"
ENDPOINT = f"{BASE_URL}/rpc"


class CountingTransport(httpx.ASGITransport):
    """ASGITransport that records every request body it forwards."""

    def __init__(self, app) -> None:
        super().__init__(app=app)
        self.bodies: list = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        try:
            body = json.loads(request.content) if request.content else None
        except json.JSONDecodeError:
            body = request.content
        self.bodies.append(body)
        return await super().handle_async_request(request)


@pytest.fixture
def asgi(demo_app):
    return CountingTransport(demo_app)


@pytest_asyncio.fixture
async def http_client(asgi):
    async with httpx.AsyncClient(transport=asgi, base_url=BASE_URL) as client:
        yield client


class TestDemoScenarios:
    """Demo method set over HTTP, one exchange per call."""

    @pytest.mark.asyncio
    async def test_sum(self, http_client) -> None:
        async with create_http_client(ENDPOINT, http_client=http_client) as client:
            assert await client.api("test").Sum(1, 2, 3, 4) == 10

    @pytest.mark.asyncio
    async def test_sum_rejects_strings(self, http_client) -> None:
        async with create_http_client(ENDPOINT, http_client=http_client) as client:
            with pytest.raises(RPCError) as exc_info:
                await client.api("test").Sum("5")

        assert str(exc_info.value) == (
            "[-32602] parameters should be (number (int), number (int), ...number (int))"
        )

    @pytest.mark.asyncio
    async def test_missing_method(self, http_client) -> None:
        async with create_http_client(ENDPOINT, http_client=http_client) as client:
            with pytest.raises(RPCError) as exc_info:
                await client.api("test").Missing()

        assert str(exc_info.value) == "[-32601] method not found on server"

    @pytest.mark.asyncio
    async def test_secure_sum_without_credentials(self, http_client) -> None:
        async with create_http_client(ENDPOINT, http_client=http_client) as client:
            with pytest.raises(RPCError) as exc_info:
                await client.api("test").SecureSum(1, 2)

        assert str(exc_info.value) == "[1003] current user is not authorized"

    @pytest.mark.asyncio
    async def test_secure_sum_with_credentials(self, http_client) -> None:
        async with create_http_client(
            ENDPOINT, headers={"Authorization": "Bearer token"}, http_client=http_client
        ) as client:
            assert await client.api("test").SecureSum(1, 2, 3) == 6


class TestBatching:
    @pytest.mark.asyncio
    async def test_calls_in_window_share_one_exchange(self, asgi, http_client) -> None:
        async with create_http_client(
            ENDPOINT, batch_window=0.02, http_client=http_client
        ) as client:
            api = client.api("test")
            results = await asyncio.gather(
                api.Sum(1, 2),
                api.Sum("x"),
                api.Missing(),
                return_exceptions=True,
            )

        assert results[0] == 3
        assert isinstance(results[1], RPCError) and results[1].code == -32602
        assert isinstance(results[2], RPCError) and results[2].code == -32601
        assert len(asgi.bodies) == 1
        assert [r["id"] for r in asgi.bodies[0]] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_batch_shares_one_context(self, http_client) -> None:
        async with create_http_client(
            ENDPOINT,
            headers={"Authorization": "yes"},
            batch_window=0.02,
            http_client=http_client,
        ) as client:
            api = client.api("test")
            totals = await asyncio.gather(api.SecureSum(1, 1), api.SecureSum(2, 2))

        assert totals == [2, 4]


class TestServerEdges:
    """Raw HTTP exchanges against the server."""

    @pytest.mark.asyncio
    async def test_single_request_answered_as_object(self, http_client) -> None:
        response = await http_client.post(
            "/rpc",
            json={"jsonrpc": PROTOCOL_VERSION, "method": "test.Sum", "params": [1, 1], "id": 5},
        )

        assert response.status_code == 200
        assert response.json() == {"jsonrpc": PROTOCOL_VERSION, "result": 2, "id": 5}

    @pytest.mark.asyncio
    async def test_batch_of_one_answered_as_object(self, http_client) -> None:
        response = await http_client.post(
            "/rpc",
            json=[{"jsonrpc": PROTOCOL_VERSION, "method": "test.Sum", "params": [1, 1], "id": 5}],
        )

        assert isinstance(response.json(), dict)

    @pytest.mark.asyncio
    async def test_invalid_json_is_parse_error(self, http_client) -> None:
        response = await http_client.post(
            "/rpc", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == -32700
        assert body["id"] is None

    @pytest.mark.asyncio
    async def test_invalid_request_element(self, http_client) -> None:
        response = await http_client.post(
            "/rpc",
            json=[
                {"jsonrpc": PROTOCOL_VERSION, "method": "test.Sum", "params": [2, 2], "id": 0},
                {"jsonrpc": PROTOCOL_VERSION, "id": 1},
            ],
        )

        by_id = {r["id"]: r for r in response.json()}
        assert by_id[0]["result"] == 4
        assert by_id[1]["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_middleware_failure(self) -> None:
        def broken(context, request):
            raise RuntimeError("session store down")

        app = create_app({}, broken)
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url=BASE_URL
        ) as client:
            response = await client.post(
                "/rpc",
                json=[
                    {"jsonrpc": PROTOCOL_VERSION, "method": "a", "params": [], "id": 0},
                    {"jsonrpc": PROTOCOL_VERSION, "method": "b", "params": [], "id": 1},
                ],
            )

        assert response.status_code == 500
        body = response.json()
        assert [r["id"] for r in body] == [0, 1]
        assert all(r["error"]["code"] == -32000 for r in body)
        assert "session store down" in body[0]["error"]["message"]

    @pytest.mark.asyncio
    async def test_health(self, http_client) -> None:
        response = await http_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_get_not_allowed_on_rpc(self, http_client) -> None:
        response = await http_client.get("/rpc")

        assert response.status_code == 405

    @pytest.mark.asyncio
    async def test_unencodable_result_in_batch(self) -> None:
        """Only the element whose result cannot be encoded gets an error."""
        app = create_app({"t": {"bad": lambda context: {1, 2}, "ok": lambda context: 1}})
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url=BASE_URL
        ) as client:
            response = await client.post(
                "/rpc",
                json=[
                    {"jsonrpc": PROTOCOL_VERSION, "method": "t.bad", "params": [], "id": 7},
                    {"jsonrpc": PROTOCOL_VERSION, "method": "t.ok", "params": [], "id": 8},
                ],
            )

        assert response.status_code == 200
        by_id = {r["id"]: r for r in response.json()}
        assert by_id[7]["error"]["code"] == -32000
        assert by_id[8]["result"] == 1
