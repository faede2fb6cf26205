"""
Stateless Graphiti transport over the REST API.

Plain request/response per operation, no session. The REST API has no
node search, no group filter on /clear, and episodes are fetched one group
at a time; those gaps are handled here so callers see the same contract as
the stateful transport.
"""

from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from graphiti_memory.config import MemoryConfig
from graphiti_memory.core.profile import FactValidityProfileStrategy
from graphiti_memory.core.transport.base import DEFAULT_TIMEOUT, GraphitiClient
from graphiti_memory.models.graph import Episode, EpisodeSource, GraphFact
from graphiti_memory.models.memory import ConversationMessage
from graphiti_memory.models.results import (
    AddMemoryResult,
    EdgeResult,
    EpisodesResult,
    FactSearchResult,
    NodeSearchResult,
    OperationResult,
    StatusResult,
)
from graphiti_memory.utils.exceptions import GraphitiMemoryError, ProtocolError, TransportError
from graphiti_memory.utils.logger import get_logger
from graphiti_memory.utils.source import infer_source

logger = get_logger(__name__)


def _segment(value: str) -> str:
    """Encode one URL path segment."""
    return quote(value, safe="")


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _message_from(result: Any) -> str:
    """The 'message' field of a JSON body; other bodies carry none."""
    return str(result.get("message", "")) if isinstance(result, dict) else ""


class GraphitiRestClient(GraphitiClient):
    """
    REST transport.

    Endpoints: /messages, /search, /get-memory, /episodes/{group},
    /episode/{uuid}, /entity-edge/{uuid}, /entity-node, /group/{id},
    /clear, /healthcheck.
    """

    transport_name = "rest"

    def __init__(
        self,
        base_url: str,
        memory_config: MemoryConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__((base_url or "").rstrip("/"), memory_config, timeout, http_client)
        self.profile_strategy = FactValidityProfileStrategy()

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform one REST call and decode its JSON body.

        Raises:
            ConfigurationError: If no base URL is configured
            TransportError: On non-2xx responses
            ProtocolError: If the body is not JSON
            RequestTimeoutError: If the call exceeds the timeout ceiling
        """
        self._ensure_configured()

        kwargs: dict[str, Any] = {
            "headers": {"Content-Type": "application/json", "Accept": "application/json"}
        }
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params

        response = await self._send(method, f"{self.base_url}{endpoint}", **kwargs)

        if response.is_error:
            raise TransportError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON from {endpoint}: {e}") from e

    @staticmethod
    def _facts_from(payload: Any) -> list[GraphFact]:
        facts = payload.get("facts") if isinstance(payload, dict) else None
        return [GraphFact.model_validate(f) for f in facts or []]

    # ═══════════════════════════════════════════════════════════
    # OPERATIONS
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
        """Store content as a single user message on /messages."""
        logger.debug(f"graphiti.add_memory: start group={group_id} length={len(content)}")
        try:
            # /messages ingests everything as message episodes; the inferred
            # source is reported back to the caller only
            source = source or infer_source(content)
            message: dict[str, Any] = {
                "content": content,
                "role_type": "user",
                "role": memory_type or "memory",
                "timestamp": _timestamp(),
                "name": name,
                "source_description": memory_type or "opencode-memory",
            }
            if uuid:
                message["uuid"] = uuid

            result = await self._request(
                "POST", "/messages", {"group_id": group_id, "messages": [message]}
            )
            text = result.get("message", "") if isinstance(result, dict) else str(result)
            logger.info(f"graphiti.add_memory: success source={source.value}")
            return AddMemoryResult.ok(message=text, source=source)
        except Exception as e:
            return AddMemoryResult.fail(self._failure("add_memory", e, group_id=group_id))

    async def search_nodes(
        self,
        query: str,
        group_ids: list[str],
        max_nodes: int | None = None,
        entity_types: list[str] | None = None,
    ) -> NodeSearchResult:
        """Node search is not offered by the REST API; always an empty success."""
        logger.debug(f"graphiti.search_nodes: not supported by REST API groups={group_ids}")
        return NodeSearchResult.ok(nodes=[], total=0)

    async def search_facts(
        self,
        query: str,
        group_ids: list[str],
        max_facts: int | None = None,
        center_node_uuid: str | None = None,
    ) -> FactSearchResult:
        """
        Search facts on /search.

        /search has no center-node parameter; center_node_uuid is ignored here
        and honoured by get_memory.
        """
        logger.debug(f"graphiti.search_facts: start groups={group_ids} query={query[:50]!r}")
        try:
            result = await self._request(
                "POST",
                "/search",
                {
                    "query": query,
                    "group_ids": group_ids or None,
                    "max_facts": max_facts or self.memory_config.max_memories,
                },
            )
            facts = self._facts_from(result)
            logger.info(f"graphiti.search_facts: success count={len(facts)}")
            return FactSearchResult.ok(facts=facts, total=len(facts))
        except Exception as e:
            return FactSearchResult.fail(self._failure("search_facts", e, group_ids=group_ids))

    async def get_memory(
        self,
        group_id: str,
        messages: list[ConversationMessage],
        max_facts: int | None = None,
        center_node_uuid: str | None = None,
    ) -> FactSearchResult:
        """
        Conversation-aware fact retrieval on /get-memory.

        Args:
            group_id: Group to search
            messages: Recent conversation turns used as the query
            max_facts: Result cap
            center_node_uuid: Optional node to rank facts around
        """
        logger.debug(f"graphiti.get_memory: start group={group_id} messages={len(messages)}")
        try:
            result = await self._request(
                "POST",
                "/get-memory",
                {
                    "group_id": group_id,
                    "max_facts": max_facts or self.memory_config.max_memories,
                    "center_node_uuid": center_node_uuid,
                    "messages": [
                        {
                            "content": m.content,
                            "role_type": m.role,
                            "role": None,
                            "timestamp": _timestamp(),
                        }
                        for m in messages
                    ],
                },
            )
            facts = self._facts_from(result)
            logger.info(f"graphiti.get_memory: success count={len(facts)}")
            return FactSearchResult.ok(facts=facts, total=len(facts))
        except Exception as e:
            return FactSearchResult.fail(self._failure("get_memory", e, group_id=group_id))

    async def _search_facts_for_memories(
        self,
        query: str,
        group_id: str,
        center_node_uuid: str | None,
        messages: list[ConversationMessage] | None,
    ) -> FactSearchResult:
        if messages:
            return await self.get_memory(
                group_id,
                messages,
                max_facts=self.memory_config.max_memories,
                center_node_uuid=center_node_uuid,
            )
        return await super()._search_facts_for_memories(query, group_id, center_node_uuid, messages)

    async def get_episodes(
        self, group_ids: list[str], max_episodes: int | None = None
    ) -> EpisodesResult:
        """Fetch the most recent episodes of the first group id only."""
        logger.debug(f"graphiti.get_episodes: start groups={group_ids}")
        try:
            if not group_ids:
                return EpisodesResult.ok(episodes=[], total=0)

            limit = max_episodes or self.memory_config.max_project_memories
            result = await self._request(
                "GET", f"/episodes/{_segment(group_ids[0])}", params={"last_n": limit}
            )
            if isinstance(result, dict):
                result = result.get("episodes") or []
            episodes = [Episode.model_validate(ep) for ep in result or []]
            logger.info(f"graphiti.get_episodes: success count={len(episodes)}")
            return EpisodesResult.ok(episodes=episodes, total=len(episodes))
        except Exception as e:
            return EpisodesResult.fail(self._failure("get_episodes", e, group_ids=group_ids))

    async def delete_episode(self, uuid: str) -> OperationResult:
        logger.debug(f"graphiti.delete_episode: start uuid={uuid}")
        try:
            result = await self._request("DELETE", f"/episode/{_segment(uuid)}")
            logger.info(f"graphiti.delete_episode: success uuid={uuid}")
            return OperationResult.ok(message=_message_from(result))
        except Exception as e:
            return OperationResult.fail(self._failure("delete_episode", e, uuid=uuid))

    async def get_entity_edge(self, uuid: str) -> EdgeResult:
        logger.debug(f"graphiti.get_entity_edge: start uuid={uuid}")
        try:
            result = await self._request("GET", f"/entity-edge/{_segment(uuid)}")
            edge = GraphFact.model_validate(result)
            logger.info(f"graphiti.get_entity_edge: success uuid={uuid}")
            return EdgeResult.ok(edge=edge)
        except Exception as e:
            return EdgeResult.fail(self._failure("get_entity_edge", e, uuid=uuid))

    async def delete_entity_edge(self, uuid: str) -> OperationResult:
        logger.debug(f"graphiti.delete_entity_edge: start uuid={uuid}")
        try:
            result = await self._request("DELETE", f"/entity-edge/{_segment(uuid)}")
            logger.info(f"graphiti.delete_entity_edge: success uuid={uuid}")
            return OperationResult.ok(message=_message_from(result))
        except Exception as e:
            return OperationResult.fail(self._failure("delete_entity_edge", e, uuid=uuid))

    async def add_entity_node(
        self, uuid: str, group_id: str, name: str, summary: str | None = None
    ) -> OperationResult:
        """Create an entity node directly on /entity-node."""
        logger.debug(f"graphiti.add_entity_node: start uuid={uuid} group={group_id}")
        try:
            body = {"uuid": uuid, "group_id": group_id, "name": name}
            if summary is not None:
                body["summary"] = summary
            result = await self._request("POST", "/entity-node", body)
            logger.info(f"graphiti.add_entity_node: success uuid={uuid}")
            message = _message_from(result)
            return OperationResult.ok(message=message)
        except Exception as e:
            return OperationResult.fail(self._failure("add_entity_node", e, uuid=uuid))

    async def delete_group(self, group_id: str) -> OperationResult:
        logger.debug(f"graphiti.delete_group: start group={group_id}")
        try:
            result = await self._request("DELETE", f"/group/{_segment(group_id)}")
            logger.info(f"graphiti.delete_group: success group={group_id}")
            return OperationResult.ok(message=_message_from(result))
        except Exception as e:
            return OperationResult.fail(self._failure("delete_group", e, group_id=group_id))

    async def clear_graph(self, group_ids: list[str] | None = None) -> OperationResult:
        """
        Clear graph data.

        /clear wipes everything; with group ids each group is deleted on its
        own and any failed group fails the whole operation.
        """
        logger.debug(f"graphiti.clear_graph: start groups={group_ids}")
        try:
            if group_ids:
                failed = []
                for group_id in group_ids:
                    result = await self.delete_group(group_id)
                    if not result.success:
                        failed.append(f"{group_id}: {result.error}")
                if failed:
                    raise GraphitiMemoryError(f"Failed to clear groups: {'; '.join(failed)}")
                logger.info(f"graphiti.clear_graph: success groups={group_ids}")
                return OperationResult.ok(message=f"Cleared {len(group_ids)} groups")

            result = await self._request("POST", "/clear")
            logger.info("graphiti.clear_graph: success")
            return OperationResult.ok(message=_message_from(result))
        except Exception as e:
            return OperationResult.fail(self._failure("clear_graph", e, group_ids=group_ids))

    async def get_status(self) -> StatusResult:
        logger.debug("graphiti.get_status: start")
        try:
            result = await self._request("GET", "/healthcheck")
            raw = str(result.get("status", "unknown")) if isinstance(result, dict) else "unknown"
            status = "ok" if raw == "healthy" else raw
            logger.info(f"graphiti.get_status: success status={raw}")
            return StatusResult.ok(status=status, message=f"Graphiti REST API is {raw}")
        except Exception as e:
            message = self._failure("get_status", e)
            return StatusResult.fail(message, status="error", message=message)
