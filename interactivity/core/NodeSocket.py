from typing import Optional

from .GraphPrimitives import NodeId, SocketRef
from .Types import SocketDirection, SocketFunction


class NodeSocket:
    """
    Structural description of one socket on a node archetype.

    Sockets never hold values. Payloads for value sockets live in the per-run
    ValueCache, keyed by (node_id, socket name).
    """
    direction: SocketDirection = SocketDirection.INPUT
    function: SocketFunction = SocketFunction.VALUE

    def __init__(self, node_id: NodeId, name: str):
        self.node_id = node_id
        self.name = name

    @property
    def ref(self) -> SocketRef:
        return SocketRef(self.node_id, self.name)

    def isValueSocket(self) -> bool:
        return self.function == SocketFunction.VALUE

    def isFlowSocket(self) -> bool:
        return self.function == SocketFunction.FLOW

    def isInputSocket(self) -> bool:
        return self.direction == SocketDirection.INPUT

    def isOutputSocket(self) -> bool:
        return self.direction == SocketDirection.OUTPUT

    def isBound(self) -> bool:
        return False

    def copy(self) -> 'NodeSocket':
        return self.__class__(self.node_id, self.name)

    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __repr__(self):
        return f"{self.__class__.__name__}({self.node_id}.{self.name})"


class InputValueSocket(NodeSocket):
    direction = SocketDirection.INPUT
    function = SocketFunction.VALUE

    def __init__(self, node_id: NodeId, name: str, source: Optional[SocketRef] = None):
        super().__init__(node_id, name)
        # producing output value socket
        self.source = source

    def isBound(self) -> bool:
        return self.source is not None

    def copy(self) -> 'InputValueSocket':
        return InputValueSocket(self.node_id, self.name, self.source)

    def __repr__(self):
        return f"InputValueSocket({self.node_id}.{self.name} <- {self.source!r})"


class OutputValueSocket(NodeSocket):
    direction = SocketDirection.OUTPUT
    function = SocketFunction.VALUE


class InputFlowSocket(NodeSocket):
    direction = SocketDirection.INPUT
    function = SocketFunction.FLOW

    def __init__(self, node_id: NodeId, name: str, source: Optional[SocketRef] = None):
        super().__init__(node_id, name)
        # the single output flow socket that pushes into this one
        self.source = source

    def isBound(self) -> bool:
        return self.source is not None

    def copy(self) -> 'InputFlowSocket':
        return InputFlowSocket(self.node_id, self.name, self.source)

    def __repr__(self):
        return f"InputFlowSocket({self.node_id}.{self.name} <- {self.source!r})"


class OutputFlowSocket(NodeSocket):
    direction = SocketDirection.OUTPUT
    function = SocketFunction.FLOW

    def __init__(self, node_id: NodeId, name: str, target: Optional[SocketRef] = None):
        super().__init__(node_id, name)
        # Edge to the destination input flow socket, resolved through the
        # archetype graph at traversal time.
        self.target = target

    def isBound(self) -> bool:
        return self.target is not None

    def copy(self) -> 'OutputFlowSocket':
        return OutputFlowSocket(self.node_id, self.name, self.target)

    def __repr__(self):
        return f"OutputFlowSocket({self.node_id}.{self.name} -> {self.target!r})"
