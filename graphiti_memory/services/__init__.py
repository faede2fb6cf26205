"""
Services for graphiti-memory.

High-level services:
- GraphitiMemory: facade used by the agent integration
- ScopeResolver: scope to group id mapping
- format_context_for_prompt: prompt context composition
- MessageHook: per-message context injection and memory nudges
"""

from graphiti_memory.services.context import format_context_for_prompt
from graphiti_memory.services.hooks import MessageHook, MessageInjection
from graphiti_memory.services.memory_service import GraphitiMemory
from graphiti_memory.services.scopes import ScopeResolver, resolve_group_id

__all__ = [
    "GraphitiMemory",
    "ScopeResolver",
    "resolve_group_id",
    "format_context_for_prompt",
    "MessageHook",
    "MessageInjection",
]
