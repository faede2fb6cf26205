"""
graphiti-memory server entry point.

Run with: python main.py (or the `graphiti-memory` console script)
Or with uvicorn: uvicorn app:app --port 8765

Environment:
    GRAPHITI_MEMORY_HOST: Bind address (default 127.0.0.1)
    GRAPHITI_MEMORY_PORT: Port (default 8765)
    GRAPHITI_MEMORY_RELOAD: Auto-reload on code changes (default false)
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "app:app",
        host=os.getenv("GRAPHITI_MEMORY_HOST", "127.0.0.1"),
        port=int(os.getenv("GRAPHITI_MEMORY_PORT", "8765")),
        reload=os.getenv("GRAPHITI_MEMORY_RELOAD", "false").lower() in ("true", "1", "yes"),
        # Application logs go through loguru; keep uvicorn's own output terse
        log_level="warning",
    )


if __name__ == "__main__":
    main()
