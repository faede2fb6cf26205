"""
Tagged result models returned by every transport operation.

Transport methods never raise: a backend that is down, misconfigured or
misbehaving shows up as success=False with an error message, so callers
can treat unavailability as ordinary data.
"""

from typing import Any

from pydantic import BaseModel, Field

from graphiti_memory.models.graph import Episode, EpisodeSource, GraphFact, GraphNode
from graphiti_memory.models.memory import MemoryListItem, MemoryResult, Pagination, UserProfile


class OperationResult(BaseModel):
    """Base success/failure envelope."""

    success: bool
    error: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, **fields: Any):
        return cls(success=True, **fields)

    @classmethod
    def fail(cls, error: str, **fields: Any):
        return cls(success=False, error=error, **fields)


class AddMemoryResult(OperationResult):
    source: EpisodeSource | None = None


class NodeSearchResult(OperationResult):
    nodes: list[GraphNode] = Field(default_factory=list)
    total: int = 0


class FactSearchResult(OperationResult):
    facts: list[GraphFact] = Field(default_factory=list)
    total: int = 0


class EpisodesResult(OperationResult):
    episodes: list[Episode] = Field(default_factory=list)
    total: int = 0


class EdgeResult(OperationResult):
    edge: GraphFact | None = None


class StatusResult(OperationResult):
    status: str = "error"


class MemorySearchResult(OperationResult):
    results: list[MemoryResult] = Field(default_factory=list)
    total: int = 0
    timing_ms: float = 0.0


class ProfileResult(OperationResult):
    profile: UserProfile | None = None


class ListMemoriesResult(OperationResult):
    memories: list[MemoryListItem] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
