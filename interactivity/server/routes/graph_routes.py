"""
Graph REST routes.

All routes are mounted under /api by main.py. Graph-authoring mistakes come
back as 400 (404 when the node id does not exist); a failing run is not an
HTTP error, its report carries ok=False.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Response
from pydantic import BaseModel

from ...core.Errors import GraphError, UnknownNodeError
from ..serializers.graph_serializer import serialize_edge
from ..state import graph_state


logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UnknownNodeError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ── GET /graph ────────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph() -> Dict[str, Any]:
    return graph_state.to_dict()


# ── PUT /graph ────────────────────────────────────────────────────────────────

@router.put("/graph")
async def put_graph(document: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    try:
        graph_state.load_dict(document)
    except (GraphError, ValueError) as exc:
        raise _http_error(exc)
    return graph_state.to_dict()


# ── GET /node-types ───────────────────────────────────────────────────────────

@router.get("/node-types")
async def get_node_types() -> List[str]:
    return graph_state.registry.names()


# ── POST /nodes ───────────────────────────────────────────────────────────────

class CreateNodeBody(BaseModel):
    type: str
    position: Optional[Dict[str, float]] = None


@router.post("/nodes", status_code=201)
async def create_node(body: CreateNodeBody) -> Dict[str, Any]:
    try:
        node_id = graph_state.insert_node(body.type, body.position)
    except GraphError as exc:
        raise _http_error(exc)
    return {"id": node_id, "type": body.type}


# ── DELETE /nodes/:nodeId ─────────────────────────────────────────────────────

@router.delete("/nodes/{node_id}", status_code=204)
async def delete_node(node_id: int) -> Response:
    try:
        graph_state.delete_node(node_id)
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── PUT /nodes/:nodeId/position ───────────────────────────────────────────────

class PositionBody(BaseModel):
    x: float
    y: float


@router.put("/nodes/{node_id}/position", status_code=204)
async def set_node_position(node_id: int, body: PositionBody) -> Response:
    try:
        graph_state.set_position(node_id, body.x, body.y)
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── POST /edges ───────────────────────────────────────────────────────────────

class EdgeBody(BaseModel):
    sourceNodeId: int
    sourceSocket: str
    targetNodeId: int
    targetSocket: str


@router.post("/edges", status_code=201)
async def add_edge(body: EdgeBody) -> Dict[str, Any]:
    try:
        edge = graph_state.connect_edge((body.sourceNodeId, body.sourceSocket),
                                        (body.targetNodeId, body.targetSocket))
    except GraphError as exc:
        raise _http_error(exc)
    return serialize_edge(edge).model_dump()


# ── POST /edges/pins ──────────────────────────────────────────────────────────

class PinEdgeBody(BaseModel):
    sourceNodeId: int
    sourcePin: int
    targetNodeId: int
    targetPin: int


@router.post("/edges/pins", status_code=201)
async def add_edge_by_pins(body: PinEdgeBody) -> Dict[str, Any]:
    try:
        edge = graph_state.connect_pins(body.sourceNodeId, body.sourcePin,
                                        body.targetNodeId, body.targetPin)
    except GraphError as exc:
        raise _http_error(exc)
    return serialize_edge(edge).model_dump()


# ── DELETE /edges ─────────────────────────────────────────────────────────────
# An input holds at most one binding, so the target end names the edge.

class DisconnectBody(BaseModel):
    targetNodeId: int
    targetSocket: str


@router.delete("/edges", status_code=204)
async def delete_edge(body: DisconnectBody) -> Response:
    try:
        graph_state.disconnect((body.targetNodeId, body.targetSocket))
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── POST /clear ───────────────────────────────────────────────────────────────

@router.post("/clear", status_code=204)
async def clear_graph() -> Response:
    graph_state.clear()
    return Response(status_code=204)


# ── POST /run ─────────────────────────────────────────────────────────────────

class RunBody(BaseModel):
    entryNodeId: Optional[int] = None
    memoize: bool = False


@router.post("/run")
async def run_graph(body: Optional[RunBody] = None) -> Dict[str, Any]:
    body = body or RunBody()
    report = graph_state.trigger_run(body.entryNodeId, memoize=body.memoize)
    if not report.ok:
        logger.info("Run reported failure: %s", report.error)
    return report.model_dump()
