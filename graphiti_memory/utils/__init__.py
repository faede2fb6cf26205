"""Utility modules for graphiti-memory."""

from graphiti_memory.utils.exceptions import (
    ConfigurationError,
    GraphitiMemoryError,
    ProtocolError,
    RequestTimeoutError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)
from graphiti_memory.utils.logger import get_logger, setup_logging
from graphiti_memory.utils.source import infer_source
from graphiti_memory.utils.timestamps import parse_timestamp, utc_now

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Classification
    "infer_source",
    # Timestamps
    "parse_timestamp",
    "utc_now",
    # Exceptions
    "GraphitiMemoryError",
    "ConfigurationError",
    "TransportError",
    "SessionExpiredError",
    "ProtocolError",
    "RequestTimeoutError",
    "ValidationError",
]
