"""
Prompt context composition.

Turns a profile plus project and user memories into one text block that is
prepended to a conversation. Pure: no I/O, and deterministic for a given
`now`.
"""

from datetime import datetime

from graphiti_memory.config import MemoryConfig
from graphiti_memory.models.memory import MemoryResult, UserProfile
from graphiti_memory.utils.timestamps import parse_timestamp, utc_now

CONTEXT_HEADER = "[GRAPHITI MEMORY]"


def temporal_tag(valid_at: datetime | None, now: datetime) -> str | None:
    """
    Bucket the age of a fact.

    <=1 day "recent", <=7 days "this week", <=30 days "this month",
    otherwise "{days}d ago". No timestamp, no tag.
    """
    valid_at = parse_timestamp(valid_at)
    if valid_at is None:
        return None

    age_days = (parse_timestamp(now) - valid_at).total_seconds() / 86400
    if age_days <= 1:
        return "recent"
    if age_days <= 7:
        return "this week"
    if age_days <= 30:
        return "this month"
    return f"{int(age_days)}d ago"


def format_memory_line(memory: MemoryResult, now: datetime) -> str:
    """Render one memory as `- [type][labels][age][NN%] text`."""
    tags = ""
    if memory.type:
        tags += f"[{memory.type.value}]"
    if memory.labels:
        tags += f"[{','.join(memory.labels)}]"
    age = temporal_tag(memory.valid_at, now)
    if age:
        tags += f"[{age}]"
    if memory.similarity is not None:
        tags += f"[{round(memory.similarity * 100)}%]"

    return f"- {tags} {memory.memory}" if tags else f"- {memory.memory}"


def format_context_for_prompt(
    profile: UserProfile | None,
    user_memories: list[MemoryResult],
    project_memories: list[MemoryResult],
    config: MemoryConfig | None = None,
    now: datetime | None = None,
) -> str:
    """
    Compose the memory context block.

    Args:
        profile: User profile, or None when unavailable
        user_memories: Results of the user-scope search
        project_memories: Results of the project-scope search
        config: Injection toggles and profile cap
        now: Reference time for age tags (defaults to current UTC time)

    Returns:
        The context text, or "" when there is nothing beyond the header
    """
    config = config or MemoryConfig()
    now = parse_timestamp(now) if now is not None else utc_now()
    parts = [CONTEXT_HEADER]

    if config.inject_profile and profile is not None:
        if profile.static:
            parts.append("\nStable Preferences:")
            parts.extend(f"- {fact}" for fact in profile.static[: config.max_profile_items])
        if profile.dynamic:
            parts.append("\nRecent Context:")
            parts.extend(f"- {fact}" for fact in profile.dynamic[: config.max_profile_items])

    if config.inject_project_memories and project_memories:
        parts.append("\nProject Knowledge:")
        parts.extend(format_memory_line(memory, now) for memory in project_memories)

    if config.inject_relevant_memories and user_memories:
        parts.append("\nRelevant Memories:")
        parts.extend(format_memory_line(memory, now) for memory in user_memories)

    if len(parts) == 1:
        return ""

    return "\n".join(parts)
