"""
GraphState: the editable graph behind the HTTP API.

Owns the archetype graph, the UI layout positions and the NodeId counter.
Behaviors are not kept here: every run builds a fresh set from the registry
for a snapshot of the graph, so edits made while a run is being reported
never reach the engine mid-walk.

Builds the demo graph on startup so the UI has something to display on
first load.
"""
from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.Errors import GraphError, InvalidConnectionError
from ..core.Executor import NodeBehaviors, activate_flow
from ..core.GraphPrimitives import Edge, NodeId, as_ref
from ..core.NodeArchetype import NodeArchetypes
from ..core.TypeRegistry import NodeTypeRegistry, get_default_registry
from ..core.ValueCache import ValueCache
from ..examples.GraphExamples import build_sequence_graph
from .serializers.graph_serializer import RunReport, deserialize_graph, serialize_graph, serialize_values
from .trace.trace_emitter import TraceEmitter, global_tracer


logger = logging.getLogger(__name__)

ENTRY_NODE_TYPE = "flow/sequence"


class GraphState:
    """Holds the archetype graph, UI layout positions and the id counter."""

    def __init__(self,
                 registry: Optional[NodeTypeRegistry] = None,
                 tracer: Optional[TraceEmitter] = None,
                 seed: bool = True) -> None:
        self.registry = registry if registry is not None else get_default_registry()
        self.tracer = tracer if tracer is not None else global_tracer
        self.graph = NodeArchetypes()
        # UI layout positions: node_id → {x, y}
        self.positions: Dict[NodeId, Dict[str, float]] = {}
        self.next_node_id: NodeId = 0

        if seed:
            self.seed_demo()

    # ── Demo graph ──────────────────────────────────────────────────────────

    def seed_demo(self) -> None:
        """Replace the graph with the pi → add → print pair driven by a sequencer."""
        example = build_sequence_graph(self.registry)

        self.graph = example.graph
        self.positions = {
            example.pi: {"x": 80, "y": 180},
            example.add: {"x": 340, "y": 100},
            example.sink: {"x": 600, "y": 100},
            example.sink2: {"x": 600, "y": 300},
            example.sequence: {"x": 340, "y": 420},
        }
        self.next_node_id = max(self.graph.node_ids()) + 1
        logger.info("Seeded demo graph with %d nodes", len(self.graph))

    # ── Nodes ───────────────────────────────────────────────────────────────

    def insert_node(self, type_name: str, position: Optional[Dict[str, float]] = None) -> NodeId:
        archetype = self.registry.build_archetype(type_name, self.next_node_id)
        self.graph.insert(archetype)
        self.next_node_id += 1

        self.positions[archetype.node_id] = dict(position) if position else {"x": 0.0, "y": 0.0}
        logger.info("Inserted %s node %s", type_name, archetype.node_id)
        return archetype.node_id

    def delete_node(self, node_id: NodeId) -> None:
        self.graph.remove(node_id)
        self.positions.pop(node_id, None)
        logger.info("Deleted node %s", node_id)

    def set_position(self, node_id: NodeId, x: float, y: float) -> None:
        self.graph.get(node_id)
        self.positions[node_id] = {"x": x, "y": y}

    def clear(self) -> None:
        # the counter keeps counting so ids are never reused within a session
        self.graph.clear()
        self.positions.clear()
        logger.info("Cleared graph")

    # ── Edges ───────────────────────────────────────────────────────────────

    def connect_edge(self, from_ref, to_ref) -> Edge:
        edge = self.graph.connect(from_ref, to_ref)
        logger.info("Connected %r", edge)
        return edge

    def connect_pins(self, from_node: NodeId, from_pin: int, to_node: NodeId, to_pin: int) -> Edge:
        """Connect by editor pin index (value sockets first, then flow sockets)."""
        try:
            from_socket = self.graph.output_pin(from_node, from_pin)
        except IndexError as exc:
            raise InvalidConnectionError(str(exc), node_id=from_node) from exc
        try:
            to_socket = self.graph.input_pin(to_node, to_pin)
        except IndexError as exc:
            raise InvalidConnectionError(str(exc), node_id=to_node) from exc
        return self.connect_edge(from_socket.ref, to_socket.ref)

    def disconnect(self, to_ref) -> Optional[Edge]:
        edge = self.graph.disconnect(as_ref(to_ref))
        if edge is not None:
            logger.info("Disconnected %r", edge)
        return edge

    # ── Execution ───────────────────────────────────────────────────────────

    def find_entry(self) -> Optional[NodeId]:
        """The lowest-id sequencer is where a run starts when none is named."""
        entries = [a.node_id for a in self.graph if a.name == ENTRY_NODE_TYPE]
        return min(entries) if entries else None

    def make_behaviors(self, graph: NodeArchetypes) -> NodeBehaviors:
        return NodeBehaviors(self.registry.make_behavior(a.name, a.node_id) for a in graph)

    def trigger_run(self, entry_node_id: Optional[NodeId] = None, memoize: bool = False) -> RunReport:
        """
        Run the graph from `entry_node_id` (or the default entry) on a snapshot.

        Authoring mistakes (unbound inputs, type mismatches, cycles...) come
        back as a report with ok=False, they are never raised.
        """
        events = []

        def record(event: Dict[str, Any]) -> None:
            events.append(event)
            self.tracer.fire(event)

        cache = ValueCache(memoize=memoize, tracer=record)

        entry = entry_node_id if entry_node_id is not None else self.find_entry()
        if entry is None:
            error = f"No '{ENTRY_NODE_TYPE}' node to start the run from"
            logger.warning(error)
            return RunReport(ok=False, error=error)

        cache.trace("RUN_START", entryNodeId=entry)
        started = time.perf_counter()
        try:
            snapshot = self.graph.copy()
            behaviors = self.make_behaviors(snapshot)
            activate_flow(entry, snapshot, behaviors, cache)
        except GraphError as exc:
            logger.warning("Run from node %s failed: %s", entry, exc)
            cache.trace("RUN_ERROR", entryNodeId=entry, error=str(exc))
            return RunReport(ok=False, entry_node_id=entry, error=str(exc),
                             events=events, values=serialize_values(cache))

        duration_ms = (time.perf_counter() - started) * 1000
        cache.trace("RUN_DONE", entryNodeId=entry, durationMs=duration_ms)
        logger.info("Run from node %s finished in %.2f ms", entry, duration_ms)
        return RunReport(ok=True, entry_node_id=entry, events=events, values=serialize_values(cache))

    # ── Persistence ─────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return serialize_graph(self.graph, self.positions, self.next_node_id)

    def load_dict(self, data: Dict[str, Any]) -> None:
        # build everything first so a bad document leaves the current graph alone
        graph, positions, next_node_id = deserialize_graph(data, self.registry)
        self.graph = graph
        self.positions = positions
        self.next_node_id = next_node_id
        logger.info("Loaded graph with %d nodes", len(graph))

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info("Saved graph to %s", path)

    def load(self, path: Union[str, Path]) -> None:
        path = Path(path)
        self.load_dict(json.loads(path.read_text(encoding="utf-8")))
        logger.info("Loaded graph from %s", path)


# Module-level singleton, imported by routes
graph_state = GraphState()
