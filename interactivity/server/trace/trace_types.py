"""
TraceEvent type definitions.
All events are plain dicts so they can be emitted over Socket.IO without Pydantic overhead.
"""
from typing import Literal, TypedDict, Union


class RunStartEvent(TypedDict):
    type: Literal["RUN_START"]
    entryNodeId: int
    ts: int


class NodeResolvedEvent(TypedDict):
    type: Literal["NODE_RESOLVED"]
    nodeId: int
    ts: int


class NodeActivatedEvent(TypedDict):
    type: Literal["NODE_ACTIVATED"]
    nodeId: int
    ts: int


class NodeErrorEvent(TypedDict):
    type: Literal["NODE_ERROR"]
    nodeId: int
    error: str
    ts: int


class EdgeActiveEvent(TypedDict):
    type: Literal["EDGE_ACTIVE"]
    fromNodeId: int
    fromSocket: str
    toNodeId: int
    toSocket: str
    ts: int


class RunDoneEvent(TypedDict):
    type: Literal["RUN_DONE"]
    entryNodeId: int
    durationMs: float
    ts: int


class RunErrorEvent(TypedDict):
    type: Literal["RUN_ERROR"]
    entryNodeId: int
    error: str
    ts: int


TraceEvent = Union[
    RunStartEvent,
    NodeResolvedEvent,
    NodeActivatedEvent,
    NodeErrorEvent,
    EdgeActiveEvent,
    RunDoneEvent,
    RunErrorEvent,
]

TRACE_EVENT_TYPES = (
    "RUN_START",
    "NODE_RESOLVED",
    "NODE_ACTIVATED",
    "NODE_ERROR",
    "EDGE_ACTIVE",
    "RUN_DONE",
    "RUN_ERROR",
)
