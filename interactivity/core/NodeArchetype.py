from typing import Dict, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING
import logging

from .Errors import InvalidConnectionError, UnknownNodeError, UnknownSocketError
from .GraphPrimitives import Edge, NodeId, SocketRef, as_ref
from .NodeSocket import (
    NodeSocket,
    InputValueSocket,
    OutputValueSocket,
    InputFlowSocket,
    OutputFlowSocket,
)

if TYPE_CHECKING:
    from .Interface import INodeBehavior


logger = logging.getLogger(__name__)


class NodeArchetype:
    """
    The structural description of one node instance: its sockets and what
    they are bound to. Pure data, no behavior.

    Socket order is significant. Editor pin indices count the value sockets
    first, then the flow sockets, on each side.
    """
    def __init__(self,
                 node_id: NodeId,
                 name: str,
                 input_value_sockets: Optional[List[InputValueSocket]] = None,
                 input_flow_sockets: Optional[List[InputFlowSocket]] = None,
                 output_value_sockets: Optional[List[OutputValueSocket]] = None,
                 output_flow_sockets: Optional[List[OutputFlowSocket]] = None):
        self.node_id = node_id
        self.name = name
        self.input_value_sockets: List[InputValueSocket] = input_value_sockets if input_value_sockets is not None else []
        self.input_flow_sockets: List[InputFlowSocket] = input_flow_sockets if input_flow_sockets is not None else []
        self.output_value_sockets: List[OutputValueSocket] = output_value_sockets if output_value_sockets is not None else []
        self.output_flow_sockets: List[OutputFlowSocket] = output_flow_sockets if output_flow_sockets is not None else []

        for socket in self.output_value_sockets + self.output_flow_sockets:
            if socket.node_id != node_id:
                raise ValueError(f"Output socket '{socket.name}' is declared on node {node_id} but owned by node {socket.node_id}")

    # --- Socket builders, used by node templates ---

    def add_value_input(self, name: str) -> InputValueSocket:
        if self.find_input(name) is not None:
            raise ValueError(f"Input socket '{name}' already exists in node {self.node_id}")
        socket = InputValueSocket(self.node_id, name)
        self.input_value_sockets.append(socket)
        return socket

    def add_flow_input(self, name: str) -> InputFlowSocket:
        if self.find_input(name) is not None:
            raise ValueError(f"Input socket '{name}' already exists in node {self.node_id}")
        socket = InputFlowSocket(self.node_id, name)
        self.input_flow_sockets.append(socket)
        return socket

    def add_value_output(self, name: str) -> OutputValueSocket:
        if self.find_output(name) is not None:
            raise ValueError(f"Output socket '{name}' already exists in node {self.node_id}")
        socket = OutputValueSocket(self.node_id, name)
        self.output_value_sockets.append(socket)
        return socket

    def add_flow_output(self, name: str) -> OutputFlowSocket:
        if self.find_output(name) is not None:
            raise ValueError(f"Output socket '{name}' already exists in node {self.node_id}")
        socket = OutputFlowSocket(self.node_id, name)
        self.output_flow_sockets.append(socket)
        return socket

    # --- Lookups ---

    def get_inputs(self) -> List[NodeSocket]:
        return list(self.input_value_sockets) + list(self.input_flow_sockets)

    def get_outputs(self) -> List[NodeSocket]:
        return list(self.output_value_sockets) + list(self.output_flow_sockets)

    def find_input(self, name: str) -> Optional[NodeSocket]:
        for socket in self.get_inputs():
            if socket.name == name:
                return socket
        return None

    def find_output(self, name: str) -> Optional[NodeSocket]:
        for socket in self.get_outputs():
            if socket.name == name:
                return socket
        return None

    def get_input_value_socket(self, name: str) -> InputValueSocket:
        for socket in self.input_value_sockets:
            if socket.name == name:
                return socket
        raise UnknownSocketError("no input value socket with this name", node_id=self.node_id, socket=name)

    def get_output_flow_socket(self, name: str) -> OutputFlowSocket:
        for socket in self.output_flow_sockets:
            if socket.name == name:
                return socket
        raise UnknownSocketError("no output flow socket with this name", node_id=self.node_id, socket=name)

    def input_pin(self, index: int) -> NodeSocket:
        inputs = self.get_inputs()
        if not 0 <= index < len(inputs):
            raise IndexError(f"Node {self.node_id} has no input pin {index}")
        return inputs[index]

    def output_pin(self, index: int) -> NodeSocket:
        outputs = self.get_outputs()
        if not 0 <= index < len(outputs):
            raise IndexError(f"Node {self.node_id} has no output pin {index}")
        return outputs[index]

    def copy(self) -> 'NodeArchetype':
        return NodeArchetype(
            self.node_id,
            self.name,
            [s.copy() for s in self.input_value_sockets],
            [s.copy() for s in self.input_flow_sockets],
            [s.copy() for s in self.output_value_sockets],
            [s.copy() for s in self.output_flow_sockets],
        )

    def __eq__(self, other):
        if not isinstance(other, NodeArchetype):
            return NotImplemented
        return (self.node_id == other.node_id
                and self.name == other.name
                and self.input_value_sockets == other.input_value_sockets
                and self.input_flow_sockets == other.input_flow_sockets
                and self.output_value_sockets == other.output_value_sockets
                and self.output_flow_sockets == other.output_flow_sockets)

    def __repr__(self):
        return f"NodeArchetype({self.node_id}, '{self.name}')"


class NodeArchetypes:
    """
    The archetype graph: every node's archetype keyed by NodeId.

    Edges are not stored separately. A value edge is the `source` of an input
    value socket; a flow edge is the `source` of an input flow socket together
    with the `target` of the output flow socket that feeds it. `connect` keeps
    both ends of a flow edge in agreement.
    """
    def __init__(self, archetypes: Optional[Dict[NodeId, NodeArchetype]] = None):
        self._archetypes: Dict[NodeId, NodeArchetype] = dict(archetypes) if archetypes else {}

    def __contains__(self, node_id: NodeId) -> bool:
        return node_id in self._archetypes

    def __iter__(self) -> Iterator[NodeArchetype]:
        return iter(list(self._archetypes.values()))

    def __len__(self) -> int:
        return len(self._archetypes)

    def node_ids(self) -> List[NodeId]:
        return list(self._archetypes.keys())

    def find(self, node_id: NodeId) -> Optional[NodeArchetype]:
        return self._archetypes.get(node_id)

    def get(self, node_id: NodeId) -> NodeArchetype:
        archetype = self._archetypes.get(node_id)
        if archetype is None:
            raise UnknownNodeError("no archetype with this id in the graph", node_id=node_id)
        return archetype

    # --- Node management ---

    def add_archetype(self,
                      node: 'INodeBehavior',
                      input_value_sources: Sequence = (),
                      input_flow_sources: Sequence = ()) -> NodeArchetype:
        """
        Ask `node` to materialize its archetype bound to the given producers and
        store it. Overwrites any archetype already stored under the same id.
        """
        archetype = node.create_archetype(
            [as_ref(s) for s in input_value_sources],
            [as_ref(s) for s in input_flow_sources],
        )
        self.insert(archetype)
        return archetype

    def insert(self, archetype: NodeArchetype):
        """
        Store `archetype` and link its flow edges to the nodes already stored,
        whichever side of the edge was added first.
        """
        node_id = archetype.node_id
        if node_id in self._archetypes:
            logger.debug("Replacing archetype for node %s", node_id)
            for other in self._archetypes.values():
                for output in other.output_flow_sockets:
                    if output.target is not None and output.target.node_id == node_id:
                        output.target = None
        self._archetypes[node_id] = archetype

        # consumers stored before this producer
        for other in list(self._archetypes.values()):
            if other is archetype:
                continue
            for socket in other.input_flow_sockets:
                if socket.source is None or socket.source.node_id != node_id:
                    continue
                output = archetype.find_output(socket.source.name)
                if isinstance(output, OutputFlowSocket):
                    self._link_flow(output, socket)
                else:
                    socket.source = None

        # producers stored before this consumer
        for socket in archetype.input_flow_sockets:
            if socket.source is None:
                continue
            producer = self.find(socket.source.node_id)
            if producer is None:
                continue
            output = producer.find_output(socket.source.name)
            if isinstance(output, OutputFlowSocket):
                self._link_flow(output, socket)

    def remove(self, node_id: NodeId) -> NodeArchetype:
        archetype = self.get(node_id)
        del self._archetypes[node_id]

        # Cleanup every binding that pointed at the removed node
        for other in self._archetypes.values():
            for socket in other.input_value_sockets + other.input_flow_sockets:
                if socket.source is not None and socket.source.node_id == node_id:
                    socket.source = None
            for socket in other.output_flow_sockets:
                if socket.target is not None and socket.target.node_id == node_id:
                    socket.target = None
        return archetype

    def clear(self):
        self._archetypes.clear()

    def copy(self) -> 'NodeArchetypes':
        return NodeArchetypes({node_id: a.copy() for node_id, a in self._archetypes.items()})

    # --- Edge management ---

    def _resolve_endpoints(self, from_output, to_input) -> Tuple[NodeSocket, NodeSocket]:
        from_ref = as_ref(from_output)
        to_ref = as_ref(to_input)

        from_node = self.get(from_ref.node_id)
        to_node = self.get(to_ref.node_id)

        from_socket = from_node.find_output(from_ref.name)
        to_socket = to_node.find_input(to_ref.name)

        if from_socket is None:
            raise InvalidConnectionError("output socket not found", node_id=from_ref.node_id, socket=from_ref.name)
        if to_socket is None:
            raise InvalidConnectionError("input socket not found", node_id=to_ref.node_id, socket=to_ref.name)
        if from_ref.node_id == to_ref.node_id:
            raise InvalidConnectionError("cannot connect a node's output to its own input",
                                         node_id=to_ref.node_id, socket=to_ref.name)
        if from_socket.function != to_socket.function:
            raise InvalidConnectionError(
                f"cannot connect {from_socket.function.name.lower()} output "
                f"'{from_ref.node_id}.{from_ref.name}' to {to_socket.function.name.lower()} input",
                node_id=to_ref.node_id, socket=to_ref.name)
        return from_socket, to_socket

    def can_connect(self, from_output, to_input) -> bool:
        try:
            self._resolve_endpoints(from_output, to_input)
        except (InvalidConnectionError, UnknownNodeError):
            return False
        return True

    def connect(self, from_output, to_input) -> Edge:
        """
        Bind `to_input` to `from_output`, replacing any previous binding.

        Both endpoints are validated before anything is mutated, so a rejected
        connection leaves the graph untouched.
        """
        from_socket, to_socket = self._resolve_endpoints(from_output, to_input)

        if isinstance(to_socket, InputValueSocket):
            to_socket.source = from_socket.ref
            edge = Edge(from_socket.node_id, from_socket.name, to_socket.node_id, to_socket.name, "value")
        else:
            self._link_flow(from_socket, to_socket)
            edge = Edge(from_socket.node_id, from_socket.name, to_socket.node_id, to_socket.name, "flow")

        logger.debug("Connected %r", edge)
        return edge

    def disconnect(self, to_input) -> Optional[Edge]:
        to_ref = as_ref(to_input)
        to_socket = self.get(to_ref.node_id).find_input(to_ref.name)
        if to_socket is None:
            raise InvalidConnectionError("input socket not found", node_id=to_ref.node_id, socket=to_ref.name)
        if to_socket.source is None:
            return None

        source = to_socket.source
        to_socket.source = None
        if isinstance(to_socket, InputFlowSocket):
            self._clear_flow_target(source, to_socket.ref)
            return Edge(source.node_id, source.name, to_ref.node_id, to_ref.name, "flow")
        return Edge(source.node_id, source.name, to_ref.node_id, to_ref.name, "value")

    def _link_flow(self, output: OutputFlowSocket, input_socket: InputFlowSocket):
        # a flow input takes one edge and a flow output pushes to one input:
        # drop the stale far end of whatever this edge displaces
        if input_socket.source is not None and input_socket.source != output.ref:
            self._clear_flow_target(input_socket.source, input_socket.ref)
        if output.target is not None and output.target != input_socket.ref:
            self._clear_flow_source(output.target, output.ref)
        input_socket.source = output.ref
        output.target = input_socket.ref

    def _clear_flow_target(self, output_ref: SocketRef, expected: SocketRef):
        producer = self.find(output_ref.node_id)
        if producer is None:
            return
        output = producer.find_output(output_ref.name)
        if isinstance(output, OutputFlowSocket) and output.target == expected:
            output.target = None

    def _clear_flow_source(self, input_ref: SocketRef, expected: SocketRef):
        consumer = self.find(input_ref.node_id)
        if consumer is None:
            return
        socket = consumer.find_input(input_ref.name)
        if isinstance(socket, InputFlowSocket) and socket.source == expected:
            socket.source = None

    def edges(self) -> List[Edge]:
        edges = []
        for archetype in self._archetypes.values():
            for socket in archetype.input_value_sockets:
                if socket.source is not None:
                    edges.append(Edge(socket.source.node_id, socket.source.name, archetype.node_id, socket.name, "value"))
            for socket in archetype.output_flow_sockets:
                if socket.target is not None:
                    edges.append(Edge(archetype.node_id, socket.name, socket.target.node_id, socket.target.name, "flow"))
        return edges

    def input_pin(self, node_id: NodeId, index: int) -> NodeSocket:
        return self.get(node_id).input_pin(index)

    def output_pin(self, node_id: NodeId, index: int) -> NodeSocket:
        return self.get(node_id).output_pin(index)
