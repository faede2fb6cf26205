"""
Factory for selecting the active transport client.
"""

import httpx

from graphiti_memory.config import Config
from graphiti_memory.core.transport.base import GraphitiClient
from graphiti_memory.core.transport.mcp_client import GraphitiMCPClient
from graphiti_memory.core.transport.rest_client import GraphitiRestClient


class TransportFactory:
    """Factory for creating the transport client from configuration."""

    @staticmethod
    def create(config: Config, http_client: httpx.AsyncClient | None = None) -> GraphitiClient:
        """
        Create the transport client selected by config.graphiti.use_rest_api.

        Args:
            config: Main configuration object
            http_client: Optional shared httpx client

        Returns:
            GraphitiRestClient or GraphitiMCPClient
        """
        graphiti = config.graphiti
        if graphiti.use_rest_api:
            return GraphitiRestClient(
                base_url=graphiti.rest_url,
                memory_config=config.memory,
                timeout=graphiti.timeout,
                http_client=http_client,
            )
        return GraphitiMCPClient(
            base_url=graphiti.mcp_url,
            memory_config=config.memory,
            timeout=graphiti.timeout,
            http_client=http_client,
        )
