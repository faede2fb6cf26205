"""
Unified memory model used for display and prompt injection.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryKind(str, Enum):
    """Which graph primitive a MemoryResult was derived from."""

    NODE = "node"
    FACT = "fact"
    EPISODE = "episode"


class MemoryScope(str, Enum):
    """Logical memory partition."""

    USER = "user"
    PROJECT = "project"


class MemoryType(str, Enum):
    """Caller-facing category of a stored memory."""

    PROJECT_CONFIG = "project-config"
    ARCHITECTURE = "architecture"
    ERROR_SOLUTION = "error-solution"
    PREFERENCE = "preference"
    LEARNED_PATTERN = "learned-pattern"
    CONVERSATION = "conversation"


class ConversationMessage(BaseModel):
    """One turn of conversation, used for context-aware retrieval."""

    content: str
    role: str = "user"  # user, assistant, system


class MemoryResult(BaseModel):
    """
    Display-ready memory item.

    Similarity is synthetic for node and fact results (the service does not
    report real scores on those paths) and absent when unknown.
    """

    model_config = ConfigDict(json_encoders={datetime: lambda v: v.isoformat()})

    id: str = Field(..., min_length=1)
    memory: str = ""
    similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    type: MemoryKind | None = None
    labels: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    valid_at: datetime | None = None
    source_node: str | None = None
    target_node: str | None = None
    scope: MemoryScope | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UserProfile(BaseModel):
    """Aggregated view of a user's preferences. Derived, never persisted."""

    static: list[str] = Field(default_factory=list)
    dynamic: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.static and not self.dynamic


class MemoryListItem(BaseModel):
    """Projection of an episode for listing."""

    id: str
    summary: str
    title: str = ""
    created_at: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Pagination(BaseModel):
    """Single-page pagination; the episodes API has no paging support."""

    current_page: int = 1
    total_items: int = 0
    total_pages: int = 0
