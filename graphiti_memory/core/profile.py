"""
Profile derivation strategies.

The two transports cannot build a profile the same way: only the stateful
transport can search typed entity nodes. Each strategy is explicit about
its heuristic and the two are not semantically equivalent.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from graphiti_memory.core.normalizer import (
    PROFILE_ENTITY_TYPES,
    profile_from_facts,
    profile_from_nodes,
)
from graphiti_memory.models.memory import UserProfile
from graphiti_memory.utils.exceptions import GraphitiMemoryError

if TYPE_CHECKING:
    from graphiti_memory.core.transport.base import GraphitiClient


class ProfileStrategy(ABC):
    """Builds a UserProfile for one user group."""

    name: str = ""

    @abstractmethod
    async def build(
        self,
        client: "GraphitiClient",
        group_id: str,
        query: str,
        max_items: int,
    ) -> UserProfile:
        """
        Build a profile.

        Args:
            client: Transport client to query
            group_id: User group id
            query: Search query steering which preferences are retrieved
            max_items: Cap per bucket (static, dynamic)

        Raises:
            GraphitiMemoryError: If the underlying search fails
        """
        pass


class NodeLabelProfileStrategy(ProfileStrategy):
    """Search Preference/Requirement nodes; Preference label means static."""

    name = "node-labels"

    async def build(
        self,
        client: "GraphitiClient",
        group_id: str,
        query: str,
        max_items: int,
    ) -> UserProfile:
        result = await client.search_nodes(
            query,
            [group_id],
            max_nodes=max_items * 2,
            entity_types=PROFILE_ENTITY_TYPES,
        )
        if not result.success:
            raise GraphitiMemoryError(result.error or "Node search failed")
        return profile_from_nodes(result.nodes, max_items)


class FactValidityProfileStrategy(ProfileStrategy):
    """Search facts; not invalidated means static."""

    name = "fact-validity"

    async def build(
        self,
        client: "GraphitiClient",
        group_id: str,
        query: str,
        max_items: int,
    ) -> UserProfile:
        result = await client.search_facts(query, [group_id], max_facts=max_items * 2)
        if not result.success:
            raise GraphitiMemoryError(result.error or "Fact search failed")
        return profile_from_facts(result.facts, max_items)
