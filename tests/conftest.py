"""Shared fixtures.

The Graphiti backend is replaced by in-process fakes mounted on
httpx.MockTransport, so no test needs a running server. Every fake records
the requests it received for assertions.
"""

import asyncio
import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest

from graphiti_memory.config import MemoryConfig
from graphiti_memory.core.transport import GraphitiMCPClient, GraphitiRestClient

MCP_URL = "http://graphiti.test/mcp/"
REST_URL = "http://graphiti.test"

SESSION_REJECTED = "Bad Request: No valid session ID provided"


class FakeMCPServer:
    """
    Minimal streamable-HTTP JSON-RPC server.

    Args:
        tools: Tool name -> result, or callable(arguments) -> result
        sse: Answer tools/call as an event stream instead of JSON
        wrap: Wrap tool results in a text content block
        reject_sessions: Number of tools/call requests to reject as session errors
        delay: Seconds to wait before answering any request
    """

    def __init__(
        self,
        tools: dict[str, Any] | None = None,
        sse: bool = False,
        wrap: bool = True,
        reject_sessions: int = 0,
        delay: float = 0.0,
    ):
        self.tools = tools or {}
        self.errors: dict[str, str] = {}
        self.fail_status: int | None = None
        self.sse = sse
        self.wrap = wrap
        self.reject_sessions = reject_sessions
        self.delay = delay

        self.handshakes = 0
        self.payloads: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def tool_requests(self) -> list[dict[str, Any]]:
        return [p for p in self.payloads if p.get("method") == "tools/call"]

    def tool_headers(self) -> list[httpx.Headers]:
        return [
            h
            for p, h in zip(self.payloads, self.headers, strict=True)
            if p.get("method") == "tools/call"
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.payloads.append(payload)
        self.headers.append(request.headers)

        if self.delay:
            await asyncio.sleep(self.delay)

        method = payload.get("method")
        if method == "initialize":
            self.handshakes += 1
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "result": {
                        "protocolVersion": payload["params"]["protocolVersion"],
                        "capabilities": {"tools": {}},
                        "serverInfo": {"name": "fake-graphiti", "version": "0"},
                    },
                },
                headers={"mcp-session-id": f"session-{self.handshakes}"},
            )

        if method == "notifications/initialized":
            return httpx.Response(202)

        if self.reject_sessions > 0:
            self.reject_sessions -= 1
            return httpx.Response(400, text=SESSION_REJECTED)

        if self.fail_status:
            return httpx.Response(self.fail_status, text="Internal Server Error")

        name = payload["params"]["name"]
        arguments = payload["params"]["arguments"]
        self.calls.append((name, arguments))

        if name in self.errors:
            body = {
                "jsonrpc": "2.0",
                "id": payload["id"],
                "error": {"code": -32603, "message": self.errors[name]},
            }
        else:
            result = self.tools.get(name, {"message": f"{name} done"})
            if callable(result):
                result = result(arguments)
            if self.wrap:
                result = {"content": [{"type": "text", "text": json.dumps(result)}]}
            body = {"jsonrpc": "2.0", "id": payload["id"], "result": result}

        if self.sse:
            stream = f"event: message\ndata: {json.dumps(body)}\n\n"
            return httpx.Response(
                200, text=stream, headers={"content-type": "text/event-stream"}
            )
        return httpx.Response(200, json=body)


class FakeRestServer:
    """
    Route table keyed by (method, path).

    A route value is a JSON body, an httpx.Response, or a callable taking
    the request and returning either. Unknown routes answer 404.
    """

    def __init__(self, routes: dict[tuple[str, str], Any] | None = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if callable(response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)


def mock_http_client(handler: Callable) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def fact_payload(
    uuid: str,
    fact: str,
    invalid_at: str | None = None,
    valid_at: str | None = None,
) -> dict[str, Any]:
    """Fact payload as the backend serializes it."""
    return {
        "uuid": uuid,
        "name": "RELATES_TO",
        "fact": fact,
        "source_node_uuid": "node-a",
        "target_node_uuid": "node-b",
        "created_at": "2024-05-01T10:00:00.123456789Z",
        "valid_at": valid_at,
        "invalid_at": invalid_at,
        "expired_at": None,
        "group_id": "opencode-project-abc",
        "episodes": [],
    }


def node_payload(uuid: str, name: str, labels: list[str], summary: str | None = None):
    """Node payload as the backend serializes it."""
    return {
        "uuid": uuid,
        "name": name,
        "summary": summary,
        "labels": labels,
        "group_id": "opencode-user-abc",
        "created_at": "2024-05-01T10:00:00Z",
        "attributes": {},
    }


@pytest.fixture
def make_fact():
    return fact_payload


@pytest.fixture
def make_node():
    return node_payload


@pytest.fixture
def memory_config() -> MemoryConfig:
    return MemoryConfig()


@pytest.fixture
def mcp_server() -> FakeMCPServer:
    return FakeMCPServer()


@pytest.fixture
async def mcp_client(mcp_server, memory_config) -> AsyncGenerator[GraphitiMCPClient, None]:
    """MCP client wired to the fake server; the server fixture can be tweaked before use."""
    http_client = mock_http_client(mcp_server.handler)
    client = GraphitiMCPClient(
        MCP_URL, memory_config=memory_config, timeout=2.0, http_client=http_client
    )
    yield client
    await http_client.aclose()


@pytest.fixture
def rest_server() -> FakeRestServer:
    return FakeRestServer()


@pytest.fixture
async def rest_client(rest_server, memory_config) -> AsyncGenerator[GraphitiRestClient, None]:
    """REST client wired to the fake server."""
    http_client = mock_http_client(rest_server.handler)
    client = GraphitiRestClient(
        REST_URL + "/", memory_config=memory_config, timeout=2.0, http_client=http_client
    )
    yield client
    await http_client.aclose()
