"""
Normalization of graph results into MemoryResult, and the temporal gate.

Node search and fact search return different shapes; both are folded into
MemoryResult here so the rest of the system never sees a transport- or
primitive-specific payload. filter_valid_facts is the single place where
superseded facts are dropped from "current" views.
"""

from uuid import uuid4

from graphiti_memory.models.graph import Episode, GraphFact, GraphNode
from graphiti_memory.models.memory import MemoryKind, MemoryListItem, MemoryResult, UserProfile
from graphiti_memory.utils.timestamps import parse_timestamp

# Synthetic display scores; the service reports no similarity on these paths
NODE_SIMILARITY = 0.9
FACT_SIMILARITY = 0.85

PROFILE_STATIC_LABEL = "Preference"
PROFILE_ENTITY_TYPES = ["Preference", "Requirement"]


def filter_valid_facts(facts: list[GraphFact]) -> list[GraphFact]:
    """Drop facts that carry an invalidation timestamp."""
    return [fact for fact in facts if not fact.is_superseded]


def partition_facts(facts: list[GraphFact]) -> tuple[list[GraphFact], list[GraphFact]]:
    """Split facts into (valid, superseded), preserving order."""
    valid: list[GraphFact] = []
    superseded: list[GraphFact] = []
    for fact in facts:
        (superseded if fact.is_superseded else valid).append(fact)
    return valid, superseded


def node_to_memory(node: GraphNode) -> MemoryResult:
    return MemoryResult(
        id=node.uuid,
        memory=node.text,
        similarity=NODE_SIMILARITY,
        type=MemoryKind.NODE,
        labels=list(node.labels),
        created_at=parse_timestamp(node.created_at),
    )


def fact_to_memory(fact: GraphFact) -> MemoryResult:
    return MemoryResult(
        id=fact.uuid or f"fact-{uuid4().hex[:12]}",
        memory=fact.text,
        similarity=FACT_SIMILARITY,
        type=MemoryKind.FACT,
        created_at=parse_timestamp(fact.created_at),
        valid_at=parse_timestamp(fact.valid_at),
        source_node=fact.source_node_uuid,
        target_node=fact.target_node_uuid,
    )


def normalize_search_results(nodes: list[GraphNode], facts: list[GraphFact]) -> list[MemoryResult]:
    """
    Fold node and fact search results into one list.

    Nodes come first, then facts that are still valid.
    """
    results = [node_to_memory(node) for node in nodes]
    results.extend(fact_to_memory(fact) for fact in filter_valid_facts(facts))
    return results


def episode_to_list_item(episode: Episode) -> MemoryListItem:
    return MemoryListItem(
        id=episode.uuid,
        summary=episode.content or episode.name,
        title=episode.name,
        created_at=episode.created_at,
        metadata={
            "source": episode.source,
            "source_description": episode.source_description,
        },
    )


def profile_from_nodes(nodes: list[GraphNode], max_items: int) -> UserProfile:
    """Preference-labelled nodes are static; everything else is dynamic."""
    static: list[str] = []
    dynamic: list[str] = []
    for node in nodes:
        if PROFILE_STATIC_LABEL in node.labels:
            static.append(node.text)
        else:
            dynamic.append(node.text)
    return UserProfile(static=static[:max_items], dynamic=dynamic[:max_items])


def profile_from_facts(facts: list[GraphFact], max_items: int) -> UserProfile:
    """
    Still-valid facts are static; superseded facts are dynamic.

    This conflates recency with durability and is weaker than the node
    label split. It exists because the REST API has no node search.
    """
    valid, superseded = partition_facts(facts)
    return UserProfile(
        static=[fact.text for fact in valid][:max_items],
        dynamic=[fact.text for fact in superseded][:max_items],
    )
