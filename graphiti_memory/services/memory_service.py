"""
Graphiti memory facade.

The single entry point used by the agent integration. Resolves scopes to
group ids, talks to the one transport client selected for the process,
and returns JSON-serializable envelopes {"success": bool, ...}. Nothing in
here raises to the caller.
"""

import asyncio
import time
from pathlib import Path
from typing import Any

import httpx

from graphiti_memory.config import Config
from graphiti_memory.core.normalizer import partition_facts
from graphiti_memory.core.transport import GraphitiClient, TransportFactory
from graphiti_memory.models.graph import EpisodeSource
from graphiti_memory.models.memory import (
    ConversationMessage,
    MemoryResult,
    MemoryScope,
    MemoryType,
)
from graphiti_memory.models.results import MemorySearchResult
from graphiti_memory.services.context import format_context_for_prompt
from graphiti_memory.services.scopes import ScopeResolver
from graphiti_memory.utils.exceptions import ValidationError
from graphiti_memory.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_LIST_LIMIT = 20
DEFAULT_GRAPH_LIMIT = 20


def _error(message: str) -> dict[str, Any]:
    return {"success": False, "error": message}


def _present(memory: MemoryResult) -> dict[str, Any]:
    """Caller-facing projection of one search result."""
    return {
        "id": memory.id,
        "content": memory.memory,
        "similarity": round(memory.similarity * 100) if memory.similarity is not None else None,
        "scope": memory.scope.value if memory.scope else None,
        "type": memory.type.value if memory.type else None,
        "labels": memory.labels or None,
        "created_at": memory.created_at.isoformat() if memory.created_at else None,
        "valid_at": memory.valid_at.isoformat() if memory.valid_at else None,
    }


class GraphitiMemory:
    """
    Transport-agnostic memory operations for one project and user.

    Features:
    - add / search / graph / profile / list / forget / status / help
    - Dual-scope search with similarity-ordered merge
    - Prompt context building for the first message of a session
    """

    def __init__(self, client: GraphitiClient, scopes: ScopeResolver, config: Config):
        """
        Initialize the facade.

        Args:
            client: The active transport client
            scopes: Scope to group id resolver
            config: Configuration object
        """
        self.client = client
        self.scopes = scopes
        self.config = config

    @classmethod
    def from_config(
        cls,
        config: Config,
        project_directory: str | Path,
        user_identity: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "GraphitiMemory":
        """Build the facade with the transport selected by configuration."""
        client = TransportFactory.create(config, http_client=http_client)
        scopes = ScopeResolver(
            prefix=config.graphiti.group_id_prefix,
            project_directory=project_directory,
            user_identity=user_identity,
            user_group_id=config.graphiti.user_group_id,
        )
        logger.info(
            f"Graphiti memory ready: transport={client.transport_name} "
            f"user={scopes.user} project={scopes.project}"
        )
        return cls(client=client, scopes=scopes, config=config)

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured() and self.client.is_configured

    def _not_configured(self) -> dict[str, Any]:
        env = "GRAPHITI_REST_URL" if self.config.graphiti.use_rest_api else "GRAPHITI_MCP_URL"
        return _error(
            f"{env} not set. Set it in your environment or start the Graphiti server."
        )

    def _group_for(self, scope: str | None, default: MemoryScope) -> tuple[MemoryScope, str]:
        try:
            resolved = MemoryScope(scope) if scope else default
        except ValueError as e:
            raise ValidationError(f"Unknown scope: {scope}") from e
        return resolved, self.scopes.group_id(resolved)

    # ═══════════════════════════════════════════════════════════
    # DISPATCH
    # ═══════════════════════════════════════════════════════════

    async def execute(self, mode: str | None = None, **args: Any) -> dict[str, Any]:
        """
        Run one tool mode.

        Args:
            mode: One of add, search, graph, profile, list, forget, status, help
                (defaults to help)
            **args: content, query, type, scope, memory_id, limit, source,
                entity_types, center_node_id

        Returns:
            JSON-serializable envelope
        """
        mode = mode or "help"

        if not self.is_configured:
            return self._not_configured()

        try:
            if mode == "help":
                return self.help()
            if mode == "status":
                return await self.status()
            if mode == "add":
                return await self.add(
                    args.get("content"),
                    memory_type=args.get("type"),
                    scope=args.get("scope"),
                    source=args.get("source"),
                )
            if mode == "search":
                return await self.search(
                    args.get("query"),
                    scope=args.get("scope"),
                    center_node_id=args.get("center_node_id"),
                    limit=args.get("limit"),
                    entity_types=args.get("entity_types"),
                )
            if mode == "graph":
                return await self.graph(
                    args.get("center_node_id"),
                    query=args.get("query"),
                    scope=args.get("scope"),
                    limit=args.get("limit"),
                )
            if mode == "profile":
                return await self.profile(query=args.get("query"))
            if mode == "list":
                return await self.list_memories(scope=args.get("scope"), limit=args.get("limit"))
            if mode == "forget":
                return await self.forget(args.get("memory_id"), scope=args.get("scope"))
            return _error(f"Unknown mode: {mode}")
        except ValidationError as e:
            return _error(e.message)
        except Exception as e:
            logger.error(f"Tool mode {mode} failed: {e}")
            return _error(str(e))

    # ═══════════════════════════════════════════════════════════
    # MODES
    # ═══════════════════════════════════════════════════════════

    def help(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": "Graphiti Temporal Knowledge Graph - Usage Guide",
            "features": [
                "Temporal validity tracking (facts can be superseded)",
                "Entity extraction (Preference, Requirement, Procedure, etc.)",
                "Graph relationships between entities",
                "Multiple data formats (text, json, message)",
            ],
            "commands": [
                {
                    "command": "add",
                    "description": "Store memory (auto-detects JSON)",
                    "args": ["content", "type?", "scope?", "source?"],
                },
                {
                    "command": "search",
                    "description": "Semantic + graph search",
                    "args": ["query", "scope?", "center_node_id?", "limit?"],
                },
                {
                    "command": "graph",
                    "description": "Explore entity relationships",
                    "args": ["center_node_id", "query?", "scope?", "limit?"],
                },
                {"command": "profile", "description": "View user preferences", "args": ["query?"]},
                {
                    "command": "list",
                    "description": "List recent episodes",
                    "args": ["scope?", "limit?"],
                },
                {"command": "forget", "description": "Remove a memory", "args": ["memory_id"]},
                {"command": "status", "description": "Check Graphiti server status", "args": []},
            ],
            "sources": {
                "text": "Plain text (default)",
                "json": "Structured data - entities auto-extracted",
                "message": "Conversation format",
            },
            "memory_types": [t.value for t in MemoryType],
            "entity_types": list(self.config.memory.entity_types),
            "transport": self.client.transport_name,
        }

    async def status(self) -> dict[str, Any]:
        result = await self.client.get_status()
        return {
            **result.model_dump(mode="json", exclude_none=True),
            "transport": self.client.transport_name,
        }

    async def add(
        self,
        content: str | None,
        memory_type: str | None = None,
        scope: str | None = None,
        source: str | None = None,
    ) -> dict[str, Any]:
        """Store one memory; project scope by default."""
        if not content or not content.strip():
            return _error("content parameter is required for add mode")

        try:
            episode_source = EpisodeSource(source) if source else None
        except ValueError:
            return _error(f"Unknown source: {source}")

        resolved, group_id = self._group_for(scope, MemoryScope.PROJECT)
        result = await self.client.add_memory(
            content,
            group_id,
            memory_type=memory_type,
            name=f"{memory_type or 'memory'}-{int(time.time() * 1000)}",
            source=episode_source,
        )
        if not result.success:
            return _error(result.error or "Failed to add memory")

        detected = result.source.value if result.source else "unknown"
        return {
            "success": True,
            "message": (
                f"Memory added to {resolved.value} scope "
                f"(source: {source or f'auto-detected {detected}'})"
            ),
            "scope": resolved.value,
            "type": memory_type,
            "source": detected,
        }

    async def search_all_scopes(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        center_node_uuid: str | None = None,
        entity_types: list[str] | None = None,
    ) -> MemorySearchResult:
        """
        Search user and project scopes concurrently and merge by similarity.

        Fails if either scope fails; both reasons are reported when both do.
        """
        user_result, project_result = await asyncio.gather(
            self.client.search_memories(
                query,
                self.scopes.user,
                center_node_uuid=center_node_uuid,
                entity_types=entity_types,
            ),
            self.client.search_memories(
                query,
                self.scopes.project,
                center_node_uuid=center_node_uuid,
                entity_types=entity_types,
            ),
        )

        branches = ((MemoryScope.USER, user_result), (MemoryScope.PROJECT, project_result))
        failures = [
            f"{scope.value}: {result.error}" for scope, result in branches if not result.success
        ]
        if failures:
            return MemorySearchResult.fail("; ".join(failures))

        combined = [
            memory.model_copy(update={"scope": scope})
            for scope, result in branches
            for memory in result.results
        ]
        combined.sort(key=lambda m: m.similarity or 0.0, reverse=True)

        return MemorySearchResult.ok(
            results=combined[:limit],
            total=len(combined),
            timing_ms=max(user_result.timing_ms, project_result.timing_ms),
        )

    async def search(
        self,
        query: str | None,
        scope: str | None = None,
        center_node_id: str | None = None,
        limit: int | None = None,
        entity_types: list[str] | None = None,
    ) -> dict[str, Any]:
        """Search one scope, or both when no scope is given."""
        if not query:
            return _error("query parameter is required for search mode")
        limit = limit or DEFAULT_SEARCH_LIMIT

        if scope:
            resolved, group_id = self._group_for(scope, MemoryScope.PROJECT)
            result = await self.client.search_memories(
                query, group_id, center_node_uuid=center_node_id, entity_types=entity_types
            )
            if not result.success:
                return _error(result.error or "Failed to search memories")
            results = [m.model_copy(update={"scope": resolved}) for m in result.results]
            return {
                "success": True,
                "query": query,
                "scope": resolved.value,
                "count": len(results),
                "results": [_present(m) for m in results[:limit]],
            }

        result = await self.search_all_scopes(
            query, limit=limit, center_node_uuid=center_node_id, entity_types=entity_types
        )
        if not result.success:
            return _error(result.error or "Failed to search memories")
        return {
            "success": True,
            "query": query,
            "count": result.total,
            "results": [_present(m) for m in result.results],
        }

    async def graph(
        self,
        center_node_id: str | None,
        query: str | None = None,
        scope: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Explore facts around a node, split into valid and superseded."""
        if not center_node_id:
            return _error(
                "center_node_id is required for graph mode. First use 'search' to find a node ID."
            )

        _, group_id = self._group_for(scope, MemoryScope.PROJECT)
        result = await self.client.search_facts(
            query or "",
            [group_id],
            max_facts=limit or DEFAULT_GRAPH_LIMIT,
            center_node_uuid=center_node_id,
        )
        if not result.success:
            return _error(result.error or "Failed to explore graph")

        valid, superseded = partition_facts(result.facts)
        return {
            "success": True,
            "center_node_id": center_node_id,
            "relationships": {
                "valid": [
                    {
                        "id": f.uuid,
                        "fact": f.text,
                        "source_node": f.source_node_uuid,
                        "target_node": f.target_node_uuid,
                        "valid_at": f.valid_at,
                    }
                    for f in valid
                ],
                "superseded": [
                    {"id": f.uuid, "fact": f.text, "invalid_at": f.invalid_at} for f in superseded
                ],
            },
            "summary": f"Found {len(valid)} valid and {len(superseded)} superseded facts",
        }

    async def profile(self, query: str | None = None) -> dict[str, Any]:
        result = await self.client.get_profile(self.scopes.user, query)
        if not result.success or result.profile is None:
            return _error(result.error or "Failed to fetch profile")
        return {"success": True, "profile": result.profile.model_dump()}

    async def list_memories(
        self, scope: str | None = None, limit: int | None = None
    ) -> dict[str, Any]:
        resolved, group_id = self._group_for(scope, MemoryScope.PROJECT)
        result = await self.client.list_memories(group_id, limit or DEFAULT_LIST_LIMIT)
        if not result.success:
            return _error(result.error or "Failed to list memories")
        return {
            "success": True,
            "scope": resolved.value,
            "count": len(result.memories),
            "memories": [
                {
                    "id": m.id,
                    "content": m.summary,
                    "created_at": m.created_at,
                    "metadata": m.metadata,
                }
                for m in result.memories
            ],
        }

    async def forget(self, memory_id: str | None, scope: str | None = None) -> dict[str, Any]:
        if not memory_id:
            return _error("memory_id parameter is required for forget mode")
        resolved, _ = self._group_for(scope, MemoryScope.PROJECT)

        result = await self.client.delete_memory(memory_id)
        if not result.success:
            return _error(result.error or "Failed to delete memory")
        return {
            "success": True,
            "message": f"Memory {memory_id} removed from {resolved.value} scope",
        }

    # ═══════════════════════════════════════════════════════════
    # CONTEXT
    # ═══════════════════════════════════════════════════════════

    async def build_context(
        self,
        message: str,
        messages: list[ConversationMessage] | None = None,
    ) -> str:
        """
        Fetch profile and both scopes concurrently and compose prompt context.

        Failed lookups degrade to empty inputs and memories scoring below
        the similarity threshold are left out. Returns "" when there is
        nothing to inject.

        When history is given, the current message is appended as the last
        user turn so conversation-aware retrieval sees it.
        """
        if not self.is_configured:
            return ""

        if messages:
            messages = [*messages, ConversationMessage(content=message, role="user")]

        profile_result, user_result, project_result = await asyncio.gather(
            self.client.get_profile(self.scopes.user, message),
            self.client.search_memories(message, self.scopes.user, messages=messages),
            self.client.search_memories(message, self.scopes.project, messages=messages),
        )
        for name, result in (
            ("profile", profile_result),
            ("user", user_result),
            ("project", project_result),
        ):
            if not result.success:
                logger.warning(f"Context lookup {name} failed: {result.error}")

        threshold = self.config.memory.similarity_threshold

        def relevant(result: MemorySearchResult) -> list[MemoryResult]:
            if not result.success:
                return []
            return [
                m for m in result.results if m.similarity is None or m.similarity >= threshold
            ]

        return format_context_for_prompt(
            profile_result.profile if profile_result.success else None,
            relevant(user_result),
            relevant(project_result),
            config=self.config.memory,
        )

    async def close(self) -> None:
        await self.client.close()
