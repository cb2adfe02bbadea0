"""
FastAPI + Socket.IO server for the graph editor shell.

Start with:
    python -m interactivity.server.main

Or via uvicorn directly:
    uvicorn interactivity.server.main:socket_app --port 3001 --reload
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import ServerConfig
from .routes.graph_routes import router
from .state import graph_state
from .trace.socket_server import create_socket_app


logger = logging.getLogger(__name__)

# Loads .env before reading INTERACTIVITY_* settings
config = ServerConfig.from_env()

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title="Interactivity Graph API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "nodes": len(graph_state.graph)}


if config.graph_file:
    graph_state.load(config.graph_file)

# ---------------------------------------------------------------------------
# Wrap with Socket.IO ASGI layer
# ---------------------------------------------------------------------------

# socket_app is the top-level ASGI app passed to uvicorn.
# Socket.IO connections are handled at the root; all other requests are
# forwarded to the inner FastAPI app.
socket_app = create_socket_app(app, config.cors_origins)

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    # Configure Logging ONCE at the entry point of your application
    logging.basicConfig(
        level=config.log_level,
        format='[%(asctime)s]:%(name)s:(%(levelname)s) - %(message)s',
        datefmt='%H:%M:%S'
    )
    logger.info("Starting with %r", config)

    uvicorn.run(
        "interactivity.server.main:socket_app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level.lower(),
    )
