from __future__ import annotations
from typing import List, Sequence, TYPE_CHECKING

from abc import ABC, abstractmethod

from .GraphPrimitives import NodeId, SocketRef

if TYPE_CHECKING:
    from .NodeArchetype import NodeArchetype, NodeArchetypes
    from .ValueCache import ValueCache
    from .Executor import NodeBehaviors


# The capability set every node type implements. The engine only ever talks
# to nodes through these methods, it has no knowledge of concrete node kinds.
class INodeBehavior(ABC):

    @abstractmethod
    def node_id(self) -> NodeId:
        pass

    @abstractmethod
    def create_archetype(self,
                         input_value_sources: Sequence[SocketRef],
                         input_flow_sources: Sequence[SocketRef]) -> NodeArchetype:
        pass

    @abstractmethod
    def list_dependencies(self, graph: NodeArchetypes) -> List[NodeId]:
        pass

    @abstractmethod
    def compute_value(self, graph: NodeArchetypes, cache: ValueCache):
        pass

    @abstractmethod
    def on_activate(self, graph: NodeArchetypes, cache: ValueCache, behaviors: NodeBehaviors):
        pass
