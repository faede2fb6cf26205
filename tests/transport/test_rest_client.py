"""
Tests for the stateless REST transport.

Test Organization:
1. Request mapping per endpoint
2. REST API gaps (node search, per-group clear, first-group episodes)
3. Failure reporting
4. Derived operations
"""

import httpx
import pytest

from graphiti_memory.core.transport import GraphitiRestClient
from graphiti_memory.models import ConversationMessage, EpisodeSource, MemoryKind

GROUP = "opencode-project-abc"
QUEUED = {"message": "Messages added to processing queue", "success": True}


@pytest.mark.unit
@pytest.mark.asyncio
class TestOperations:
    """Test endpoint mapping."""

    async def test_add_memory_posts_single_message(self, rest_client, rest_server):
        rest_server.route("POST", "/messages", httpx.Response(202, json=QUEUED))

        result = await rest_client.add_memory(
            '[{"step": 1}]', GROUP, memory_type="architecture", name="arch-1", uuid="u-1"
        )

        assert result.success is True
        assert result.source == EpisodeSource.JSON
        assert result.message == QUEUED["message"]

        body = rest_server.body()
        assert body["group_id"] == GROUP
        assert len(body["messages"]) == 1
        message = body["messages"][0]
        assert message["content"] == '[{"step": 1}]'
        assert message["role_type"] == "user"
        assert message["role"] == "architecture"
        assert message["name"] == "arch-1"
        assert message["source_description"] == "architecture"
        assert message["uuid"] == "u-1"
        assert message["timestamp"]

    async def test_add_memory_defaults(self, rest_client, rest_server):
        rest_server.route("POST", "/messages", QUEUED)

        result = await rest_client.add_memory("likes tea", GROUP)

        message = rest_server.body()["messages"][0]
        assert result.source == EpisodeSource.TEXT
        assert message["role"] == "memory"
        assert message["source_description"] == "opencode-memory"
        assert "uuid" not in message

    async def test_search_nodes_unsupported(self, rest_client, rest_server):
        """Test node search is an empty success with no request."""
        result = await rest_client.search_nodes("anything", [GROUP])

        assert result.success is True
        assert result.nodes == []
        assert result.total == 0
        assert rest_server.requests == []

    async def test_search_facts(self, rest_client, rest_server, make_fact):
        rest_server.route("POST", "/search", {"facts": [make_fact("f-1", "uses pnpm")]})

        result = await rest_client.search_facts("pkg", [GROUP], max_facts=3)

        assert result.success is True
        assert result.facts[0].uuid == "f-1"
        assert rest_server.body() == {"query": "pkg", "group_ids": [GROUP], "max_facts": 3}

    async def test_search_facts_ignores_center_node(self, rest_client, rest_server):
        rest_server.route("POST", "/search", {"facts": []})

        await rest_client.search_facts("pkg", [GROUP], center_node_uuid="node-a")

        assert "center_node_uuid" not in rest_server.body()

    async def test_get_memory(self, rest_client, rest_server, make_fact):
        rest_server.route("POST", "/get-memory", {"facts": [make_fact("f-1", "uses uv")]})

        result = await rest_client.get_memory(
            GROUP,
            [ConversationMessage(content="which installer?", role="user")],
            center_node_uuid="node-a",
        )

        assert result.success is True
        body = rest_server.body()
        assert body["group_id"] == GROUP
        assert body["center_node_uuid"] == "node-a"
        assert body["max_facts"] == 5
        assert body["messages"][0]["content"] == "which installer?"
        assert body["messages"][0]["role_type"] == "user"

    async def test_get_episodes_first_group_only(self, rest_client, rest_server):
        rest_server.route(
            "GET",
            f"/episodes/{GROUP}",
            [{"uuid": "ep-1", "name": "a", "content": "Uses pnpm", "group_id": GROUP}],
        )

        result = await rest_client.get_episodes([GROUP, "opencode-user-xyz"], max_episodes=4)

        assert result.success is True
        assert result.episodes[0].uuid == "ep-1"
        assert len(rest_server.requests) == 1
        assert rest_server.requests[0].url.params["last_n"] == "4"

    async def test_get_episodes_wrapped_payload(self, rest_client, rest_server):
        rest_server.route("GET", f"/episodes/{GROUP}", {"episodes": [{"uuid": "ep-2"}]})

        result = await rest_client.get_episodes([GROUP])

        assert [ep.uuid for ep in result.episodes] == ["ep-2"]
        assert rest_server.requests[0].url.params["last_n"] == "10"

    async def test_get_episodes_no_groups(self, rest_client, rest_server):
        result = await rest_client.get_episodes([])

        assert result.success is True
        assert result.episodes == []
        assert rest_server.requests == []

    async def test_episode_and_edge_endpoints(self, rest_client, rest_server, make_fact):
        rest_server.route("DELETE", "/episode/ep-1", {"message": "Episode deleted"})
        rest_server.route("GET", "/entity-edge/e-1", make_fact("e-1", "likes tea"))
        rest_server.route("DELETE", "/entity-edge/e-1", {"message": "Entity edge deleted"})

        deleted = await rest_client.delete_episode("ep-1")
        edge = await rest_client.get_entity_edge("e-1")
        edge_deleted = await rest_client.delete_entity_edge("e-1")

        assert deleted.message == "Episode deleted"
        assert edge.edge.fact == "likes tea"
        assert edge_deleted.message == "Entity edge deleted"

    async def test_add_entity_node(self, rest_client, rest_server):
        rest_server.route("POST", "/entity-node", {"message": "created"})

        result = await rest_client.add_entity_node("n-1", GROUP, "FastAPI", summary="Web framework")

        assert result.success is True
        assert rest_server.body() == {
            "uuid": "n-1",
            "group_id": GROUP,
            "name": "FastAPI",
            "summary": "Web framework",
        }

    async def test_path_segments_are_encoded(self, rest_client, rest_server):
        rest_server.route("DELETE", "/group/team a/b", {"message": "Group deleted"})

        result = await rest_client.delete_group("team a/b")

        assert result.success is True
        assert rest_server.requests[0].url.raw_path == b"/group/team%20a%2Fb"

    async def test_get_status_maps_healthy(self, rest_client, rest_server):
        rest_server.route("GET", "/healthcheck", {"status": "healthy"})

        result = await rest_client.get_status()

        assert result.success is True
        assert result.status == "ok"
        assert result.message == "Graphiti REST API is healthy"


@pytest.mark.unit
@pytest.mark.asyncio
class TestClearGraph:
    """Test clearing by group and globally."""

    async def test_clear_all(self, rest_client, rest_server):
        rest_server.route("POST", "/clear", {"message": "Graph cleared"})

        result = await rest_client.clear_graph()

        assert result.success is True
        assert result.message == "Graph cleared"

    async def test_clear_groups_one_by_one(self, rest_client, rest_server):
        rest_server.route("DELETE", "/group/g1", {"message": "ok"})
        rest_server.route("DELETE", "/group/g2", {"message": "ok"})

        result = await rest_client.clear_graph(["g1", "g2"])

        assert result.success is True
        assert result.message == "Cleared 2 groups"
        assert [r.url.path for r in rest_server.requests] == ["/group/g1", "/group/g2"]

    async def test_clear_groups_partial_failure(self, rest_client, rest_server):
        rest_server.route("DELETE", "/group/g1", {"message": "ok"})
        rest_server.route("DELETE", "/group/g2", httpx.Response(500, text="boom"))

        result = await rest_client.clear_graph(["g1", "g2"])

        assert result.success is False
        assert result.error == "Failed to clear groups: g2: HTTP 500: boom"


@pytest.mark.unit
@pytest.mark.asyncio
class TestFailures:
    """Test failure results."""

    async def test_http_error(self, rest_client, rest_server):
        rest_server.route("POST", "/search", httpx.Response(503, text="unavailable"))

        result = await rest_client.search_facts("q", [GROUP])

        assert result.success is False
        assert result.error == "HTTP 503: unavailable"

    async def test_invalid_json(self, rest_client, rest_server):
        rest_server.route("POST", "/search", httpx.Response(200, text="<html>"))

        result = await rest_client.search_facts("q", [GROUP])

        assert result.success is False
        assert result.error.startswith("Invalid JSON from /search")

    async def test_non_object_bodies_still_succeed(self, rest_client, rest_server):
        rest_server.route("DELETE", "/episode/ep-1", ["ep-1"])
        rest_server.route("DELETE", "/entity-edge/e-1", "deleted")
        rest_server.route("DELETE", "/group/g1", ["g1"])
        rest_server.route("POST", "/clear", "cleared")
        rest_server.route("GET", "/healthcheck", ["ok"])

        results = [
            await rest_client.delete_episode("ep-1"),
            await rest_client.delete_entity_edge("e-1"),
            await rest_client.delete_group("g1"),
            await rest_client.clear_graph(),
        ]
        status = await rest_client.get_status()

        assert all(r.success for r in results)
        assert all(r.message == "" for r in results)
        assert status.success is True
        assert status.status == "unknown"

    async def test_status_when_down(self, rest_client, rest_server):
        result = await rest_client.get_status()

        assert result.success is False
        assert result.status == "error"
        assert result.error.startswith("HTTP 404")

    async def test_not_configured(self, rest_server):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(rest_server.handler))
        client = GraphitiRestClient("", http_client=http_client)

        try:
            result = await client.search_facts("q", [GROUP])
        finally:
            await http_client.aclose()

        assert result.success is False
        assert result.error == "Graphiti rest URL not set"
        assert rest_server.requests == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestDerivedOperations:
    """Test derived operations on the REST transport."""

    async def test_search_memories_facts_only(self, rest_client, rest_server, make_fact):
        rest_server.route(
            "POST",
            "/search",
            {
                "facts": [
                    make_fact("f-1", "deploys to fly.io", invalid_at="2024-03-01T00:00:00Z"),
                    make_fact("f-2", "deploys to k8s"),
                ]
            },
        )

        result = await rest_client.search_memories("deploy", GROUP)

        assert result.success is True
        assert [m.id for m in result.results] == ["f-2"]
        assert result.results[0].type == MemoryKind.FACT
        assert result.results[0].similarity == 0.85
        assert [r.url.path for r in rest_server.requests] == ["/search"]

    async def test_search_memories_with_conversation(self, rest_client, rest_server):
        rest_server.route("POST", "/get-memory", {"facts": []})

        result = await rest_client.search_memories(
            "deploy",
            GROUP,
            messages=[ConversationMessage(content="how do we deploy?")],
        )

        assert result.success is True
        assert [r.url.path for r in rest_server.requests] == ["/get-memory"]

    async def test_get_profile_splits_on_validity(self, rest_client, rest_server, make_fact):
        rest_server.route(
            "POST",
            "/search",
            {
                "facts": [
                    make_fact("f-1", "prefers vim"),
                    make_fact("f-2", "used emacs", invalid_at="2024-01-01T00:00:00Z"),
                ]
            },
        )

        result = await rest_client.get_profile("opencode-user-abc", "editor")

        assert result.profile.static == ["prefers vim"]
        assert result.profile.dynamic == ["used emacs"]
        assert rest_server.body()["max_facts"] == 10
        assert rest_server.body()["query"] == "editor"

    async def test_list_memories(self, rest_client, rest_server):
        rest_server.route(
            "GET",
            f"/episodes/{GROUP}",
            [{"uuid": "ep-1", "name": "n", "content": "c", "source_description": "preference"}],
        )

        result = await rest_client.list_memories(GROUP)

        assert result.memories[0].metadata["source_description"] == "preference"
        assert rest_server.requests[0].url.params["last_n"] == "20"
