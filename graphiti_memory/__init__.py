"""
graphiti-memory: cross-session memory for coding agents, backed by a
Graphiti temporal knowledge graph.
"""

from graphiti_memory.config import Config
from graphiti_memory.core.transport import (
    GraphitiClient,
    GraphitiMCPClient,
    GraphitiRestClient,
    TransportFactory,
)
from graphiti_memory.services import GraphitiMemory, MessageHook, format_context_for_prompt

__version__ = "0.1.0"

__all__ = [
    "Config",
    "GraphitiClient",
    "GraphitiMCPClient",
    "GraphitiRestClient",
    "TransportFactory",
    "GraphitiMemory",
    "MessageHook",
    "format_context_for_prompt",
]
