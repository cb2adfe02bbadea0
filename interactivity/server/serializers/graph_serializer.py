"""
Graph serializer.

Converts the archetype graph (plus UI positions) into JSON-safe dicts and
back. The document is a direct structural dump: every node with its type name
and socket layout, every edge, and the id counter. Behaviors are never
written; loading rebuilds each node from its type name through the registry,
adds back any sockets the document lists beyond the type's default layout
(a sequence with extra outputs), and then replays the edges through `connect`,
so a document that does not fit the registered node types is rejected instead
of half-loaded.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from ...core.GraphPrimitives import Edge, NodeId
from ...core.NodeArchetype import NodeArchetype, NodeArchetypes
from ...core.NodeSocket import NodeSocket
from ...core.TypeRegistry import NodeTypeRegistry
from ...core.Types import SocketFunction, Value
from ...core.ValueCache import ValueCache


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


# ── Wire shapes ───────────────────────────────────────────────────────────────

class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class SerializedSocket(BaseModel):
    name: str
    function: Literal["VALUE", "FLOW"]
    direction: Literal["INPUT", "OUTPUT"]
    pin: int                        # editor pin index on its side
    connected: bool = False


class SerializedNode(BaseModel):
    id: int
    type: str
    position: Position = Field(default_factory=Position)
    inputs: List[SerializedSocket] = Field(default_factory=list)
    outputs: List[SerializedSocket] = Field(default_factory=list)


class SerializedEdge(BaseModel):
    id: str
    sourceNodeId: int
    sourceSocket: str
    targetNodeId: int
    targetSocket: str
    type: str = "value"             # "value" | "flow"


class SerializedGraph(BaseModel):
    version: int = FORMAT_VERSION
    nextNodeId: int = 0
    nodes: List[SerializedNode] = Field(default_factory=list)
    edges: List[SerializedEdge] = Field(default_factory=list)


class SerializedValue(BaseModel):
    type: str                       # "float" | "bool" | "int"
    value: Any


class RunReport(BaseModel):
    """Outcome of one run. Failures are carried in `error`, never raised."""
    ok: bool
    entry_node_id: Optional[int] = None
    error: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)
    values: Dict[int, Dict[str, SerializedValue]] = Field(default_factory=dict)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _serialize_socket(socket: NodeSocket, pin: int) -> SerializedSocket:
    return SerializedSocket(
        name=socket.name,
        function="FLOW" if socket.function == SocketFunction.FLOW else "VALUE",
        direction="OUTPUT" if socket.isOutputSocket() else "INPUT",
        pin=pin,
        connected=socket.isBound(),
    )


def _serialize_node(archetype: NodeArchetype, position: Optional[Dict[str, float]]) -> SerializedNode:
    return SerializedNode(
        id=archetype.node_id,
        type=archetype.name,
        position=Position(**position) if position else Position(),
        inputs=[_serialize_socket(s, pin) for pin, s in enumerate(archetype.get_inputs())],
        outputs=[_serialize_socket(s, pin) for pin, s in enumerate(archetype.get_outputs())],
    )


def _restore_sockets(archetype: NodeArchetype, node: SerializedNode) -> None:
    """Add the sockets a document lists that the freshly built archetype lacks."""
    for is_output, sockets in ((False, node.inputs), (True, node.outputs)):
        for socket in sockets:
            existing = archetype.find_output(socket.name) if is_output else archetype.find_input(socket.name)
            if existing is not None:
                wanted = SocketFunction.FLOW if socket.function == "FLOW" else SocketFunction.VALUE
                if existing.function != wanted:
                    raise ValueError(f"Socket '{socket.name}' of node {node.id} is not a {socket.function.lower()} socket")
                continue

            if is_output:
                add = archetype.add_flow_output if socket.function == "FLOW" else archetype.add_value_output
            else:
                add = archetype.add_flow_input if socket.function == "FLOW" else archetype.add_value_input
            logger.debug("Restoring socket %s on node %s", socket.name, node.id)
            add(socket.name)


def edge_id(from_node_id: NodeId, from_socket: str, to_node_id: NodeId, to_socket: str) -> str:
    return f"{from_node_id}:{from_socket}->{to_node_id}:{to_socket}"


def serialize_edge(edge: Edge) -> SerializedEdge:
    return SerializedEdge(
        id=edge_id(edge.from_node_id, edge.from_socket, edge.to_node_id, edge.to_socket),
        sourceNodeId=edge.from_node_id,
        sourceSocket=edge.from_socket,
        targetNodeId=edge.to_node_id,
        targetSocket=edge.to_socket,
        type=edge.edge_type,
    )


def serialize_value(value: Value) -> SerializedValue:
    return SerializedValue(type=value.type.value, value=value.payload)


def serialize_values(cache: ValueCache) -> Dict[int, Dict[str, SerializedValue]]:
    return {
        node_id: {name: serialize_value(v) for name, v in values.items()}
        for node_id, values in cache.to_dict().items()
    }


# ── Public API ────────────────────────────────────────────────────────────────

def serialize_graph(graph: NodeArchetypes,
                    positions: Dict[NodeId, Dict[str, float]],
                    next_node_id: int) -> Dict[str, Any]:
    document = SerializedGraph(
        nextNodeId=next_node_id,
        nodes=[_serialize_node(a, positions.get(a.node_id))
               for a in sorted(graph, key=lambda a: a.node_id)],
        edges=[serialize_edge(e) for e in graph.edges()],
    )
    return document.model_dump()


def deserialize_graph(data: Dict[str, Any],
                      registry: NodeTypeRegistry) -> Tuple[NodeArchetypes, Dict[NodeId, Dict[str, float]], int]:
    """
    Rebuild an archetype graph from a serialized document.

    Raises pydantic's ValidationError for a malformed document, and the usual
    GraphError subclasses for unknown node types or edges that do not fit.
    """
    document = SerializedGraph.model_validate(data)
    if document.version != FORMAT_VERSION:
        raise ValueError(f"Unsupported graph document version {document.version}")

    graph = NodeArchetypes()
    positions: Dict[NodeId, Dict[str, float]] = {}

    for node in document.nodes:
        if node.id in graph:
            raise ValueError(f"Duplicate node id {node.id} in graph document")
        archetype = registry.build_archetype(node.type, node.id)
        _restore_sockets(archetype, node)
        graph.insert(archetype)
        positions[node.id] = node.position.model_dump()

    for edge in document.edges:
        graph.connect((edge.sourceNodeId, edge.sourceSocket), (edge.targetNodeId, edge.targetSocket))

    # never hand out an id that is already taken
    next_node_id = max([document.nextNodeId] + [n.id + 1 for n in document.nodes])

    logger.debug("Deserialized %d nodes, %d edges", len(graph), len(document.edges))
    return graph, positions, next_node_id
