"""
Socket.IO server for the trace channel.

Uses python-socketio in ASGI mode so it can wrap FastAPI.
`create_socket_app(fastapi_app)` returns the composite ASGI application to
pass to uvicorn.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

import socketio

from .trace_emitter import global_tracer


logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Socket.IO instance (async, ASGI mode)
# ---------------------------------------------------------------------------

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    logger=False,
    engineio_logger=False,
)


# ---------------------------------------------------------------------------
# Trace fan-out: wire global_tracer → Socket.IO emit
# ---------------------------------------------------------------------------

# the loop only keeps weak references to tasks
_pending_emits: Set["asyncio.Task"] = set()


def _on_trace(event: Dict[str, Any]) -> None:
    """
    Called synchronously by TraceEmitter.fire().
    We schedule an async emit on the running event loop.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # run triggered outside the server (tests, scripts): nobody to broadcast to
        logger.debug("No running event loop, trace event %s not broadcast", event.get("type"))
        return
    task = loop.create_task(sio.emit("trace", event))
    _pending_emits.add(task)
    task.add_done_callback(_emit_done)


def _emit_done(task: "asyncio.Task") -> None:
    _pending_emits.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Trace broadcast failed: %s", exc)


global_tracer.on_trace(_on_trace)


# ---------------------------------------------------------------------------
# Socket.IO lifecycle events
# ---------------------------------------------------------------------------

@sio.event
async def connect(sid: str, environ: dict) -> None:
    logger.info("Trace client connected: %s", sid)


@sio.event
async def disconnect(sid: str) -> None:
    logger.info("Trace client disconnected: %s", sid)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_socket_app(fastapi_app: Any, cors_origins: Optional[List[str]] = None) -> socketio.ASGIApp:
    """Wrap *fastapi_app* inside a Socket.IO ASGI application."""
    if cors_origins is not None:
        sio.eio.cors_allowed_origins = "*" if cors_origins == ["*"] else list(cors_origins)
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
