from typing import Optional, List, Sequence, TYPE_CHECKING
import logging

from .Errors import UnboundSocketError, UnsupportedOperationError
from .Executor import activate_flow
from .GraphPrimitives import NodeId, SocketRef
from .Interface import INodeBehavior
from .NodeArchetype import NodeArchetype
from .Types import Value, ValueType

if TYPE_CHECKING:
    from .NodeArchetype import NodeArchetypes
    from .ValueCache import ValueCache
    from .Executor import NodeBehaviors


# Get a logger for this module
logger = logging.getLogger(__name__)


class NodeBehavior(INodeBehavior):
    """
    Base class for node types.

    A subclass declares its socket shape in `template()` and overrides
    `compute_value` (value producers) and/or `on_activate` (flow nodes).
    Whatever a node type does not override is reported as unsupported.
    """
    type_name: str = ""

    def __init__(self, node_id: NodeId):
        self._node_id = node_id

    @classmethod
    def build_archetype(cls, node_id: NodeId) -> NodeArchetype:
        """Unbound archetype template for a new instance, used by the registry."""
        return cls(node_id).template()

    @classmethod
    def new_node(cls, node_id: NodeId) -> 'NodeBehavior':
        return cls(node_id)

    def node_id(self) -> NodeId:
        return self._node_id

    def template(self) -> NodeArchetype:
        return NodeArchetype(self._node_id, self.type_name)

    def create_archetype(self,
                         input_value_sources: Sequence[SocketRef] = (),
                         input_flow_sources: Sequence[SocketRef] = ()) -> NodeArchetype:
        archetype = self.template()

        if len(input_value_sources) > len(archetype.input_value_sockets):
            raise ValueError(f"'{self.type_name}' node {self._node_id} takes {len(archetype.input_value_sockets)} "
                             f"value inputs, got {len(input_value_sources)} sources")
        if len(input_flow_sources) > len(archetype.input_flow_sockets):
            raise ValueError(f"'{self.type_name}' node {self._node_id} takes {len(archetype.input_flow_sockets)} "
                             f"flow inputs, got {len(input_flow_sources)} sources")

        for socket, source in zip(archetype.input_value_sockets, input_value_sources):
            socket.source = source
        for socket, source in zip(archetype.input_flow_sockets, input_flow_sources):
            socket.source = source
        return archetype

    def list_dependencies(self, graph: 'NodeArchetypes') -> List[NodeId]:
        dependencies = []
        for socket in graph.get(self._node_id).input_value_sockets:
            if socket.source is None:
                raise UnboundSocketError("input value socket is not connected", node_id=self._node_id, socket=socket.name)
            dependencies.append(socket.source.node_id)
        return dependencies

    def compute_value(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        raise UnsupportedOperationError(f"cannot request a value from a '{self.type_name}' node", node_id=self._node_id)

    def on_activate(self, graph: 'NodeArchetypes', cache: 'ValueCache', behaviors: 'NodeBehaviors'):
        raise UnsupportedOperationError(f"'{self.type_name}' node has no flow input to activate", node_id=self._node_id)

    # --- helpers for node implementations ---

    def read_input(self,
                   graph: 'NodeArchetypes',
                   cache: 'ValueCache',
                   socket_name: str,
                   expected: Optional[ValueType] = None) -> Value:
        """Fetch the already resolved value feeding one of this node's input value sockets."""
        socket = graph.get(self._node_id).get_input_value_socket(socket_name)
        if socket.source is None:
            raise UnboundSocketError("input value socket is not connected", node_id=self._node_id, socket=socket_name)
        value = cache.get_value(socket.source.node_id, socket.source.name)
        if expected is not None:
            value.expect(expected, node_id=self._node_id, socket=socket_name)
        return value

    def write_output(self, cache: 'ValueCache', socket_name: str, value: Value):
        cache.set_value(self._node_id, socket_name, value)

    def fire_output(self,
                    socket_name: str,
                    graph: 'NodeArchetypes',
                    cache: 'ValueCache',
                    behaviors: 'NodeBehaviors') -> bool:
        """
        Push activation through one output flow socket. Returns False when the
        socket has no target, which is a normal state for an output.
        """
        socket = graph.get(self._node_id).get_output_flow_socket(socket_name)
        if socket.target is None:
            logger.debug("Node %s output '%s' is not connected", self._node_id, socket_name)
            return False
        cache.trace("EDGE_ACTIVE",
                    fromNodeId=self._node_id, fromSocket=socket_name,
                    toNodeId=socket.target.node_id, toSocket=socket.target.name)
        activate_flow(socket.target.node_id, graph, behaviors, cache)
        return True

    def __repr__(self):
        return f"{self.__class__.__name__}({self._node_id})"
