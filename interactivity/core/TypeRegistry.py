"""
Name-keyed factory table for node types.

A node type is added by registering a (name, archetype builder, behavior
factory) triple; the engine itself knows nothing about concrete node kinds.
Registries are plain objects handed to whoever needs them. Registration is
guarded by a lock so several initialization paths may register concurrently.
"""
from typing import Callable, Dict, List, Optional, Tuple, Type, TYPE_CHECKING
import logging
import threading

from .Errors import UnknownNodeTypeError
from .GraphPrimitives import NodeId
from .NodeArchetype import NodeArchetype

if TYPE_CHECKING:
    from .Interface import INodeBehavior
    from .Node import NodeBehavior


logger = logging.getLogger(__name__)

ArchetypeBuilder = Callable[[NodeId], NodeArchetype]
BehaviorFactory = Callable[[NodeId], 'INodeBehavior']


class NodeTypeRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._node_types: Dict[str, Tuple[ArchetypeBuilder, BehaviorFactory]] = {}

    def register(self, type_name: str, build_archetype: ArchetypeBuilder, make_behavior: BehaviorFactory):
        if not type_name:
            raise ValueError("Node type name must not be empty")
        with self._lock:
            if type_name in self._node_types:
                logger.debug("Re-registering node type '%s'", type_name)
            self._node_types[type_name] = (build_archetype, make_behavior)

    def register_node(self, node_class: Type['NodeBehavior']) -> Type['NodeBehavior']:
        """Register a NodeBehavior subclass under its `type_name`. Usable as a decorator."""
        self.register(node_class.type_name, node_class.build_archetype, node_class.new_node)
        return node_class

    def _lookup(self, type_name: str) -> Tuple[ArchetypeBuilder, BehaviorFactory]:
        with self._lock:
            entry = self._node_types.get(type_name)
        if entry is None:
            raise UnknownNodeTypeError(type_name)
        return entry

    def build_archetype(self, type_name: str, node_id: NodeId) -> NodeArchetype:
        build_archetype, _ = self._lookup(type_name)
        return build_archetype(node_id)

    def make_behavior(self, type_name: str, node_id: NodeId) -> 'INodeBehavior':
        _, make_behavior = self._lookup(type_name)
        return make_behavior(node_id)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._node_types.keys())

    def __contains__(self, type_name: str) -> bool:
        with self._lock:
            return type_name in self._node_types

    def __len__(self) -> int:
        with self._lock:
            return len(self._node_types)


_default_registry: Optional[NodeTypeRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> NodeTypeRegistry:
    """
    Process-wide registry preloaded with the built-in node types, created on
    first use. Convenience for the shell; the engine never calls this.
    """
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                from ..noderegistry.NodeRegistry import register_builtin_nodes

                registry = NodeTypeRegistry()
                register_builtin_nodes(registry)
                _default_registry = registry
    return _default_registry
