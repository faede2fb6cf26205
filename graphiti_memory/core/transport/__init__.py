"""
Transport clients for the Graphiti knowledge-graph service.

Available transports:
- GraphitiMCPClient: stateful JSON-RPC with a negotiated session
- GraphitiRestClient: stateless REST API
"""

from graphiti_memory.core.transport.base import GraphitiClient
from graphiti_memory.core.transport.factory import TransportFactory
from graphiti_memory.core.transport.mcp_client import GraphitiMCPClient
from graphiti_memory.core.transport.rest_client import GraphitiRestClient

__all__ = [
    "GraphitiClient",
    "GraphitiMCPClient",
    "GraphitiRestClient",
    "TransportFactory",
]
