"""
Stateful Graphiti transport over JSON-RPC (MCP streamable HTTP).

Calls are tools/call requests posted to a single endpoint. A session is
negotiated lazily with an initialize handshake; its token travels in the
Mcp-Session-Id header. Responses may be plain JSON or an event stream.
"""

import asyncio
import itertools
import time
from typing import Any

import httpx

from graphiti_memory.config import MemoryConfig
from graphiti_memory.core.profile import NodeLabelProfileStrategy
from graphiti_memory.core.transport.base import DEFAULT_TIMEOUT, GraphitiClient
from graphiti_memory.core.transport.envelope import decode_response, extract_result
from graphiti_memory.models.graph import Episode, EpisodeSource, GraphFact, GraphNode
from graphiti_memory.models.results import (
    AddMemoryResult,
    EdgeResult,
    EpisodesResult,
    FactSearchResult,
    NodeSearchResult,
    OperationResult,
    StatusResult,
)
from graphiti_memory.utils.exceptions import ProtocolError, SessionExpiredError, TransportError
from graphiti_memory.utils.logger import get_logger
from graphiti_memory.utils.source import infer_source

logger = get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "graphiti-memory", "version": "0.1.0"}
SESSION_HEADER = "Mcp-Session-Id"
MAX_SESSION_RETRIES = 1


def is_session_error(status_code: int, body: str) -> bool:
    """A 4xx response whose body mentions the session."""
    return 400 <= status_code < 500 and "session" in body.lower()


def _expect_mapping(result: Any, tool: str) -> dict[str, Any]:
    """
    Check a tool result is an object.

    The server reports tool-level failures as {"error": "..."} inside a
    successful JSON-RPC result.
    """
    if not isinstance(result, dict):
        raise ProtocolError(f"Unexpected {tool} result: {str(result)[:200]}")
    if isinstance(result.get("error"), str):
        raise ProtocolError(result["error"], context={"tool": tool})
    return result


def _message_of(result: Any, tool: str) -> str:
    if isinstance(result, str):
        return result
    return str(_expect_mapping(result, tool).get("message", ""))


class GraphitiMCPClient(GraphitiClient):
    """
    JSON-RPC transport with a process-lifetime session.

    Features:
    - Lazy, de-duplicated session handshake
    - Monotonic request ids per client instance
    - JSON and event-stream response framing
    - One transparent re-handshake when the server rejects the session
    """

    transport_name = "mcp"

    def __init__(
        self,
        base_url: str,
        memory_config: MemoryConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url, memory_config, timeout, http_client)
        self.profile_strategy = NodeLabelProfileStrategy()

        self._session_id: str | None = None
        self._initialized = False
        self._init_task: asyncio.Future | None = None
        self._request_ids = itertools.count(1)

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def _next_request_id(self) -> int:
        return next(self._request_ids)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id
        return headers

    def _reset_session(self) -> None:
        self._session_id = None
        self._initialized = False
        self._init_task = None

    # ═══════════════════════════════════════════════════════════
    # SESSION
    # ═══════════════════════════════════════════════════════════

    async def _ensure_session(self) -> None:
        """
        Make sure a session exists, joining any handshake already in flight.

        A failed handshake is cleared so the next call starts a fresh one.
        """
        if self._initialized:
            return

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize_session())
        task = self._init_task

        try:
            # shield: a caller timing out must not cancel the shared handshake
            await asyncio.shield(task)
        except Exception:
            if self._init_task is task:
                self._init_task = None
            raise

    async def _initialize_session(self) -> None:
        self._ensure_configured()

        request = {
            "jsonrpc": "2.0",
            "id": self._next_request_id(),
            "method": "initialize",
            "params": {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            },
        }
        response = await self._send("POST", self.base_url, json=request, headers=self._headers())
        if response.is_error:
            raise TransportError(
                f"MCP init failed: HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        self._session_id = response.headers.get("mcp-session-id")

        await self._send(
            "POST",
            self.base_url,
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers=self._headers(),
        )
        self._initialized = True

        logger.info(f"graphiti.session: initialized session={(self._session_id or '')[:8]}")

    async def _call_tool(self, tool: str, arguments: dict[str, Any]) -> Any:
        """
        Invoke one tool and return its unwrapped result.

        Retries exactly once after re-handshaking if the server rejects the
        session.

        Raises:
            SessionExpiredError: If the session is rejected again after the retry
            TransportError: On other non-2xx responses
            ProtocolError: On JSON-RPC errors or unparseable responses
            RequestTimeoutError: If a call exceeds the timeout ceiling
        """
        self._ensure_configured()
        arguments = {k: v for k, v in arguments.items() if v is not None}

        attempt = 0
        while True:
            await self._ensure_session()

            request = {
                "jsonrpc": "2.0",
                "id": self._next_request_id(),
                "method": "tools/call",
                "params": {"name": tool, "arguments": arguments},
            }
            response = await self._send(
                "POST", self.base_url, json=request, headers=self._headers()
            )

            if response.is_error:
                body = response.text
                if is_session_error(response.status_code, body):
                    if attempt < MAX_SESSION_RETRIES:
                        attempt += 1
                        logger.warning(f"graphiti.session: rejected, re-initializing for {tool}")
                        self._reset_session()
                        continue
                    raise SessionExpiredError(
                        f"HTTP {response.status_code}: {body}",
                        status_code=response.status_code,
                        body=body,
                    )
                raise TransportError(
                    f"HTTP {response.status_code}: {body}",
                    status_code=response.status_code,
                    body=body,
                )

            frame = decode_response(response.headers.get("content-type"), response.text)
            return extract_result(frame)

    # ═══════════════════════════════════════════════════════════
    # TOOLS
    # ═══════════════════════════════════════════════════════════

    async def add_memory(
        self,
        content: str,
        group_id: str,
        memory_type: str | None = None,
        name: str | None = None,
        uuid: str | None = None,
        source: EpisodeSource | None = None,
    ) -> AddMemoryResult:
        logger.debug(f"graphiti.add_memory: start group={group_id} length={len(content)}")
        try:
            source = source or infer_source(content)
            result = await self._call_tool(
                "add_memory",
                {
                    "name": name or f"Memory {int(time.time() * 1000)}",
                    "episode_body": content,
                    "group_id": group_id,
                    "source": source.value,
                    "source_description": memory_type or "opencode-memory",
                    "uuid": uuid,
                },
            )
            message = _message_of(result, "add_memory")
            logger.info(f"graphiti.add_memory: success source={source.value}")
            return AddMemoryResult.ok(message=message, source=source)
        except Exception as e:
            return AddMemoryResult.fail(self._failure("add_memory", e, group_id=group_id))

    async def search_nodes(
        self,
        query: str,
        group_ids: list[str],
        max_nodes: int | None = None,
        entity_types: list[str] | None = None,
    ) -> NodeSearchResult:
        logger.debug(f"graphiti.search_nodes: start groups={group_ids} query={query[:50]!r}")
        try:
            result = _expect_mapping(
                await self._call_tool(
                    "search_nodes",
                    {
                        "query": query,
                        "group_ids": group_ids,
                        "max_nodes": max_nodes or self.memory_config.max_memories,
                        "entity_types": entity_types,
                    },
                ),
                "search_nodes",
            )
            nodes = [GraphNode.model_validate(n) for n in result.get("nodes") or []]
            logger.info(f"graphiti.search_nodes: success count={len(nodes)}")
            return NodeSearchResult.ok(nodes=nodes, total=len(nodes))
        except Exception as e:
            return NodeSearchResult.fail(self._failure("search_nodes", e, group_ids=group_ids))

    async def search_facts(
        self,
        query: str,
        group_ids: list[str],
        max_facts: int | None = None,
        center_node_uuid: str | None = None,
    ) -> FactSearchResult:
        logger.debug(f"graphiti.search_facts: start groups={group_ids} query={query[:50]!r}")
        try:
            result = _expect_mapping(
                await self._call_tool(
                    "search_memory_facts",
                    {
                        "query": query,
                        "group_ids": group_ids,
                        "max_facts": max_facts or self.memory_config.max_memories,
                        "center_node_uuid": center_node_uuid,
                    },
                ),
                "search_memory_facts",
            )
            facts = [GraphFact.model_validate(f) for f in result.get("facts") or []]
            logger.info(f"graphiti.search_facts: success count={len(facts)}")
            return FactSearchResult.ok(facts=facts, total=len(facts))
        except Exception as e:
            return FactSearchResult.fail(self._failure("search_facts", e, group_ids=group_ids))

    async def get_episodes(
        self, group_ids: list[str], max_episodes: int | None = None
    ) -> EpisodesResult:
        logger.debug(f"graphiti.get_episodes: start groups={group_ids}")
        try:
            result = _expect_mapping(
                await self._call_tool(
                    "get_episodes",
                    {
                        "group_ids": group_ids,
                        "max_episodes": max_episodes or self.memory_config.max_project_memories,
                    },
                ),
                "get_episodes",
            )
            episodes = [Episode.model_validate(ep) for ep in result.get("episodes") or []]
            logger.info(f"graphiti.get_episodes: success count={len(episodes)}")
            return EpisodesResult.ok(episodes=episodes, total=len(episodes))
        except Exception as e:
            return EpisodesResult.fail(self._failure("get_episodes", e, group_ids=group_ids))

    async def delete_episode(self, uuid: str) -> OperationResult:
        logger.debug(f"graphiti.delete_episode: start uuid={uuid}")
        try:
            message = _message_of(
                await self._call_tool("delete_episode", {"uuid": uuid}), "delete_episode"
            )
            logger.info(f"graphiti.delete_episode: success uuid={uuid}")
            return OperationResult.ok(message=message)
        except Exception as e:
            return OperationResult.fail(self._failure("delete_episode", e, uuid=uuid))

    async def get_entity_edge(self, uuid: str) -> EdgeResult:
        logger.debug(f"graphiti.get_entity_edge: start uuid={uuid}")
        try:
            result = _expect_mapping(
                await self._call_tool("get_entity_edge", {"uuid": uuid}), "get_entity_edge"
            )
            edge = GraphFact.model_validate(result)
            logger.info(f"graphiti.get_entity_edge: success uuid={uuid}")
            return EdgeResult.ok(edge=edge)
        except Exception as e:
            return EdgeResult.fail(self._failure("get_entity_edge", e, uuid=uuid))

    async def delete_entity_edge(self, uuid: str) -> OperationResult:
        logger.debug(f"graphiti.delete_entity_edge: start uuid={uuid}")
        try:
            message = _message_of(
                await self._call_tool("delete_entity_edge", {"uuid": uuid}), "delete_entity_edge"
            )
            logger.info(f"graphiti.delete_entity_edge: success uuid={uuid}")
            return OperationResult.ok(message=message)
        except Exception as e:
            return OperationResult.fail(self._failure("delete_entity_edge", e, uuid=uuid))

    async def clear_graph(self, group_ids: list[str] | None = None) -> OperationResult:
        logger.debug(f"graphiti.clear_graph: start groups={group_ids}")
        try:
            message = _message_of(
                await self._call_tool("clear_graph", {"group_ids": group_ids}), "clear_graph"
            )
            logger.info(f"graphiti.clear_graph: success groups={group_ids}")
            return OperationResult.ok(message=message)
        except Exception as e:
            return OperationResult.fail(self._failure("clear_graph", e, group_ids=group_ids))

    async def delete_group(self, group_id: str) -> OperationResult:
        return await self.clear_graph([group_id])

    async def get_status(self) -> StatusResult:
        logger.debug("graphiti.get_status: start")
        try:
            result = _expect_mapping(await self._call_tool("get_status", {}), "get_status")
            status = str(result.get("status", "ok"))
            logger.info(f"graphiti.get_status: success status={status}")
            return StatusResult.ok(status=status, message=str(result.get("message", "")))
        except Exception as e:
            message = self._failure("get_status", e)
            return StatusResult.fail(message, status="error", message=message)
