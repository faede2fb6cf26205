"""
Data models for graphiti-memory.

Three groups:
1. Graph entities decoded from the service (GraphNode, GraphFact, Episode)
2. The unified memory view (MemoryResult, UserProfile, MemoryListItem)
3. Tagged operation results (OperationResult and subclasses)
"""

from graphiti_memory.models.graph import Episode, EpisodeSource, GraphFact, GraphNode
from graphiti_memory.models.memory import (
    ConversationMessage,
    MemoryKind,
    MemoryListItem,
    MemoryResult,
    MemoryScope,
    MemoryType,
    Pagination,
    UserProfile,
)
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

__all__ = [
    # Graph entities
    "GraphNode",
    "GraphFact",
    "Episode",
    "EpisodeSource",
    # Memory view
    "MemoryResult",
    "MemoryKind",
    "MemoryScope",
    "MemoryType",
    "ConversationMessage",
    "UserProfile",
    "MemoryListItem",
    "Pagination",
    # Results
    "OperationResult",
    "AddMemoryResult",
    "NodeSearchResult",
    "FactSearchResult",
    "EpisodesResult",
    "EdgeResult",
    "StatusResult",
    "MemorySearchResult",
    "ProfileResult",
    "ListMemoriesResult",
]
