"""
Abstract base class for Graphiti transport clients.

Both transports expose the same capability surface. Primitive operations
(add, search, episodes, edges, status) are implemented per transport; the
derived operations (search_memories, get_profile, list_memories,
delete_memory) are built once here on top of them.

Every public method returns a tagged result and never raises.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from graphiti_memory.config import MemoryConfig
from graphiti_memory.core.normalizer import episode_to_list_item, normalize_search_results
from graphiti_memory.core.profile import ProfileStrategy
from graphiti_memory.models.graph import EpisodeSource
from graphiti_memory.models.memory import ConversationMessage, Pagination
from graphiti_memory.models.results import (
    AddMemoryResult,
    EdgeResult,
    EpisodesResult,
    FactSearchResult,
    ListMemoriesResult,
    MemorySearchResult,
    NodeSearchResult,
    OperationResult,
    ProfileResult,
    StatusResult,
)
from graphiti_memory.utils.exceptions import (
    ConfigurationError,
    GraphitiMemoryError,
    RequestTimeoutError,
    TransportError,
)
from graphiti_memory.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_PROFILE_QUERY = "user preferences settings configuration"


def describe_error(error: Exception) -> str:
    """Message text for a failure result."""
    if isinstance(error, GraphitiMemoryError):
        return error.message
    return str(error) or error.__class__.__name__


class GraphitiClient(ABC):
    """
    Base for transport clients talking to the Graphiti service.

    Subclasses set transport_name and profile_strategy.
    """

    transport_name: str = ""
    profile_strategy: ProfileStrategy

    def __init__(
        self,
        base_url: str,
        memory_config: MemoryConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize transport client.

        Args:
            base_url: Service endpoint; empty means not configured
            memory_config: Result caps and entity types
            timeout: Per-call ceiling in seconds
            http_client: Optional shared httpx client (tests inject a mock transport)
        """
        self.base_url = base_url or ""
        self.memory_config = memory_config or MemoryConfig()
        self.timeout = timeout

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(
                f"Graphiti {self.transport_name} URL not set",
                context={"transport": self.transport_name},
            )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Issue one HTTP request bounded by the timeout ceiling.

        Raises:
            RequestTimeoutError: If the call exceeds the ceiling
            TransportError: On connection-level failures
        """
        try:
            return await asyncio.wait_for(
                self.client.request(method, url, **kwargs), timeout=self.timeout
            )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(
                f"Timeout after {int(self.timeout * 1000)}ms", context={"url": url}
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}", context={"url": url}) from e

    def _failure(self, operation: str, error: Exception, **context: Any) -> str:
        message = describe_error(error)
        # bind() instead of keyword args: error bodies may contain braces
        bound = logger.bind(operation=operation, **context)
        if isinstance(error, GraphitiMemoryError):
            bound.warning(f"graphiti.{operation}: error: {message}")
        else:
            bound.error(f"graphiti.{operation}: unexpected error: {message}")
        return message

    # ═══════════════════════════════════════════════════════════
    # PRIMITIVE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def add_memory(
        self,
        content: str,
        group_id: str,
        memory_type: str | None = None,
        name: str | None = None,
        uuid: str | None = None,
        source: EpisodeSource | None = None,
    ) -> AddMemoryResult:
        """
        Store one episode.

        Args:
            content: Episode body
            group_id: Target group
            memory_type: Caller category, recorded as the source description
            name: Episode name (generated when omitted)
            uuid: Optional explicit episode uuid
            source: Episode source; inferred from content when omitted
        """
        pass

    @abstractmethod
    async def search_nodes(
        self,
        query: str,
        group_ids: list[str],
        max_nodes: int | None = None,
        entity_types: list[str] | None = None,
    ) -> NodeSearchResult:
        pass

    @abstractmethod
    async def search_facts(
        self,
        query: str,
        group_ids: list[str],
        max_facts: int | None = None,
        center_node_uuid: str | None = None,
    ) -> FactSearchResult:
        pass

    @abstractmethod
    async def get_episodes(
        self, group_ids: list[str], max_episodes: int | None = None
    ) -> EpisodesResult:
        pass

    @abstractmethod
    async def delete_episode(self, uuid: str) -> OperationResult:
        pass

    @abstractmethod
    async def get_entity_edge(self, uuid: str) -> EdgeResult:
        pass

    @abstractmethod
    async def delete_entity_edge(self, uuid: str) -> OperationResult:
        pass

    @abstractmethod
    async def clear_graph(self, group_ids: list[str] | None = None) -> OperationResult:
        pass

    @abstractmethod
    async def delete_group(self, group_id: str) -> OperationResult:
        pass

    @abstractmethod
    async def get_status(self) -> StatusResult:
        pass

    # ═══════════════════════════════════════════════════════════
    # DERIVED OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def _search_facts_for_memories(
        self,
        query: str,
        group_id: str,
        center_node_uuid: str | None,
        messages: list[ConversationMessage] | None,
    ) -> FactSearchResult:
        """Fact retrieval step of search_memories. Transports may refine it."""
        return await self.search_facts(
            query,
            [group_id],
            max_facts=self.memory_config.max_memories,
            center_node_uuid=center_node_uuid,
        )

    async def search_memories(
        self,
        query: str,
        group_id: str,
        center_node_uuid: str | None = None,
        entity_types: list[str] | None = None,
        messages: list[ConversationMessage] | None = None,
    ) -> MemorySearchResult:
        """
        Search nodes and facts of one group and normalize them.

        Node and fact searches run concurrently. Superseded facts are
        dropped. If either search fails the whole search fails.

        Args:
            query: Search text
            group_id: Group to search
            center_node_uuid: Optional node to rank facts around
            entity_types: Node types to include (defaults to configured types)
            messages: Recent conversation for context-aware retrieval

        Returns:
            MemorySearchResult with nodes first, then valid facts
        """
        logger.debug(f"graphiti.search_memories: start group={group_id}")
        start = time.perf_counter()
        try:
            nodes_result, facts_result = await asyncio.gather(
                self.search_nodes(
                    query,
                    [group_id],
                    max_nodes=self.memory_config.max_memories,
                    entity_types=entity_types or self.memory_config.entity_types,
                ),
                self._search_facts_for_memories(query, group_id, center_node_uuid, messages),
            )

            errors = [
                r.error or "search failed" for r in (nodes_result, facts_result) if not r.success
            ]
            if errors:
                raise GraphitiMemoryError("; ".join(errors))

            results = normalize_search_results(nodes_result.nodes, facts_result.facts)
            timing_ms = (time.perf_counter() - start) * 1000

            fact_count = len(results) - len(nodes_result.nodes)
            logger.info(
                f"graphiti.search_memories: success nodes={len(nodes_result.nodes)} "
                f"facts={fact_count} filtered_invalid={len(facts_result.facts) - fact_count}"
            )
            return MemorySearchResult.ok(results=results, total=len(results), timing_ms=timing_ms)
        except Exception as e:
            return MemorySearchResult.fail(self._failure("search_memories", e, group_id=group_id))

    async def get_profile(self, user_group_id: str, query: str | None = None) -> ProfileResult:
        """Derive a profile using this transport's profile strategy."""
        logger.debug(f"graphiti.get_profile: start strategy={self.profile_strategy.name}")
        try:
            profile = await self.profile_strategy.build(
                self,
                user_group_id,
                query or DEFAULT_PROFILE_QUERY,
                self.memory_config.max_profile_items,
            )
            logger.info(
                f"graphiti.get_profile: success static={len(profile.static)} "
                f"dynamic={len(profile.dynamic)}"
            )
            return ProfileResult.ok(profile=profile)
        except Exception as e:
            return ProfileResult.fail(self._failure("get_profile", e, group_id=user_group_id))

    async def list_memories(self, group_id: str, limit: int = 20) -> ListMemoriesResult:
        """List recent episodes of one group as a single page."""
        logger.debug(f"graphiti.list_memories: start group={group_id} limit={limit}")
        try:
            result = await self.get_episodes([group_id], limit)
            if not result.success:
                raise GraphitiMemoryError(result.error or "Failed to fetch episodes")

            memories = [episode_to_list_item(ep) for ep in result.episodes]
            logger.info(f"graphiti.list_memories: success count={len(memories)}")
            return ListMemoriesResult.ok(
                memories=memories,
                pagination=Pagination(current_page=1, total_items=len(memories), total_pages=1),
            )
        except Exception as e:
            return ListMemoriesResult.fail(self._failure("list_memories", e, group_id=group_id))

    async def delete_memory(self, memory_id: str) -> OperationResult:
        """Delete a memory (episode) by id."""
        return await self.delete_episode(memory_id)

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
