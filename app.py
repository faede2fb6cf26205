"""
graphiti-memory FastAPI Application

HTTP surface for agent integrations that cannot embed the Python package.
Exposes the memory tool modes and first-message context injection.
"""

import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from graphiti_memory.config import Config
from graphiti_memory.models.memory import ConversationMessage
from graphiti_memory.services.hooks import MessageHook
from graphiti_memory.services.memory_service import GraphitiMemory
from graphiti_memory.utils.logger import get_logger, setup_logging

# Global facade instances
memory: GraphitiMemory | None = None
hook: MessageHook | None = None
logger = get_logger(__name__)


# Pydantic models for API
class ToolRequest(BaseModel):
    """Arguments of the graphiti tool."""

    mode: str | None = Field(
        default=None, description="add, search, graph, profile, list, forget, status, help"
    )
    content: str | None = None
    query: str | None = None
    type: str | None = None
    scope: str | None = None
    memory_id: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    source: str | None = None
    entity_types: list[str] | None = None
    center_node_id: str | None = None


class ContextRequest(BaseModel):
    """A user message seen by the agent integration."""

    session_id: str
    message: str
    history: list[ConversationMessage] | None = None


class ContextResponse(BaseModel):
    """Synthetic parts to add around the user message."""

    context: str
    nudge: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    configured: bool
    transport: str
    backend: dict[str, Any]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global memory, hook

    config = Config.from_env()

    setup_logging(config.logging)

    project_directory = os.getenv("GRAPHITI_PROJECT_DIR", os.getcwd())
    logger.info(
        f"Starting graphiti-memory server: transport="
        f"{'rest' if config.graphiti.use_rest_api else 'mcp'}, project={project_directory}"
    )

    memory = GraphitiMemory.from_config(config, project_directory)
    hook = MessageHook(memory)

    if not memory.is_configured:
        logger.warning("Graphiti backend URL not set; all operations will fail")

    yield

    logger.info("Shutting down graphiti-memory server")
    await memory.close()
    memory = None
    hook = None


# Create FastAPI app
app = FastAPI(
    title="graphiti-memory API",
    description="Cross-session agent memory backed by a Graphiti temporal knowledge graph",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness of this server plus a status probe of the Graphiti backend."""
    if not memory:
        raise HTTPException(status_code=503, detail="Memory service not initialized")

    backend = await memory.status()
    return HealthResponse(
        status="healthy" if backend.get("success") else "degraded",
        configured=memory.is_configured,
        transport=memory.client.transport_name,
        backend=backend,
    )


@app.post("/tool")
async def run_tool(request: ToolRequest) -> dict[str, Any]:
    """
    Run one mode of the graphiti memory tool.

    Always answers 200 with a {"success": bool, ...} envelope; backend
    failures are reported in the envelope, not as HTTP errors.
    """
    if not memory:
        raise HTTPException(status_code=503, detail="Memory service not initialized")

    args = request.model_dump(exclude={"mode"}, exclude_none=True)
    return await memory.execute(request.mode, **args)


@app.post("/context", response_model=ContextResponse)
async def inject_context(request: ContextRequest):
    """
    Context for a user message.

    The first message of a session gets the composed memory context; every
    message is checked for "remember this" style requests.
    """
    if not hook:
        raise HTTPException(status_code=503, detail="Memory service not initialized")

    injection = await hook.on_message(request.session_id, request.message, request.history)
    return ContextResponse(context=injection.context, nudge=injection.nudge)


@app.delete("/context/{session_id}")
async def end_session(session_id: str) -> dict[str, Any]:
    """Release a closed session so the hook stops tracking it."""
    if not hook:
        raise HTTPException(status_code=503, detail="Memory service not initialized")

    return {"success": True, "released": hook.end_session(session_id)}
