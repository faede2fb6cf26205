"""
Knowledge-graph entities as returned by the Graphiti service.

These are transient views of remote state. Both transports decode their
payloads into the same models so everything downstream is transport-agnostic.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EpisodeSource(str, Enum):
    """Format of an ingested episode body."""

    TEXT = "text"
    JSON = "json"
    MESSAGE = "message"


class GraphNode(BaseModel):
    """An extracted entity (search_nodes)."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    name: str = ""
    summary: str | None = None
    labels: list[str] = Field(default_factory=list)
    group_id: str = ""
    created_at: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        """Display text: summary when present, else the entity name."""
        return self.summary or self.name


class GraphFact(BaseModel):
    """
    A relationship between two entities, or a freestanding assertion.

    A fact whose invalid_at is set has been superseded by newer information
    and must never be presented as currently true.
    """

    model_config = ConfigDict(extra="ignore")

    uuid: str | None = None
    name: str | None = None
    fact: str | None = None
    source_node_uuid: str | None = None
    target_node_uuid: str | None = None
    created_at: str | None = None
    valid_at: str | None = None
    invalid_at: str | None = None
    expired_at: str | None = None
    group_id: str | None = None
    episodes: list[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return self.fact or self.name or ""

    @property
    def is_superseded(self) -> bool:
        """True once the service has recorded an invalidation time."""
        return bool(self.invalid_at)


class Episode(BaseModel):
    """A raw ingested memory event (one unit of add)."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    name: str = ""
    content: str | None = None
    created_at: str | None = None
    source: str | None = None
    source_description: str | None = None
    group_id: str = ""
    valid_at: str | None = None
    entity_edges: list[str] = Field(default_factory=list)
