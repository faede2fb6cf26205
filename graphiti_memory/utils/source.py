"""
Episode source classification.

The knowledge-graph service extracts entities differently depending on
whether an episode is plain text, a JSON document, or a conversation
transcript. When the caller does not say which, it is inferred from the
content shape.
"""

import json
import re

from graphiti_memory.models.graph import EpisodeSource

# "role": "user" / "role": "assistant" anywhere in the text
_ROLE_PATTERN = re.compile(r'"role"\s*:\s*"(user|assistant|system)"')


def infer_source(content: str) -> EpisodeSource:
    """
    Classify episode content as json, message, or text.

    Args:
        content: Raw episode body

    Returns:
        EpisodeSource.JSON if the trimmed content parses as a JSON object or
        array, EpisodeSource.MESSAGE if it carries conversational role
        markers, else EpisodeSource.TEXT
    """
    trimmed = content.strip()

    if trimmed.startswith(("{", "[")):
        try:
            json.loads(trimmed)
            return EpisodeSource.JSON
        except json.JSONDecodeError:
            pass

    if _ROLE_PATTERN.search(trimmed):
        return EpisodeSource.MESSAGE

    return EpisodeSource.TEXT
