"""
interactivity
=============
Evaluation engine for node-based visual-scripting graphs.

Nodes are wired by value sockets (data, pulled on demand) and flow sockets
(control, pushed in order). A registry maps node type names to factories so
new node kinds plug in without touching the engine.

Public API
----------
    from interactivity import (
        NodeArchetypes, NodeBehaviors, ValueCache,
        resolve_values, activate_flow, get_default_registry,
    )

    registry = get_default_registry()
    graph = NodeArchetypes()
    graph.insert(registry.build_archetype("math/pi", 0))
    ...
    cache = ValueCache()
    activate_flow(entry_id, graph, behaviors, cache)
"""
from .core.Errors import (
    GraphError,
    UnboundSocketError,
    UnresolvedDependencyError,
    TypeMismatchError,
    UnknownNodeError,
    UnsupportedOperationError,
    CyclicDependencyError,
    NodeBusyError,
    InvalidConnectionError,
    UnknownNodeTypeError,
)
from .core.Executor import Executor, NodeBehaviors, activate_flow, resolve_values
from .core.GraphPrimitives import Edge, NodeId, SocketRef
from .core.Node import NodeBehavior
from .core.NodeArchetype import NodeArchetype, NodeArchetypes
from .core.TypeRegistry import NodeTypeRegistry, get_default_registry
from .core.Types import Value, ValueType, Bool, Float, Int
from .core.ValueCache import ValueCache

__all__ = [
    "GraphError",
    "UnboundSocketError",
    "UnresolvedDependencyError",
    "TypeMismatchError",
    "UnknownNodeError",
    "UnsupportedOperationError",
    "CyclicDependencyError",
    "NodeBusyError",
    "InvalidConnectionError",
    "UnknownNodeTypeError",
    "Executor",
    "NodeBehaviors",
    "activate_flow",
    "resolve_values",
    "Edge",
    "NodeId",
    "SocketRef",
    "NodeBehavior",
    "NodeArchetype",
    "NodeArchetypes",
    "NodeTypeRegistry",
    "get_default_registry",
    "Value",
    "ValueType",
    "Bool",
    "Float",
    "Int",
    "ValueCache",
]
