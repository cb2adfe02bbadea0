"""
Failures raised while building or evaluating a graph.

Every error carries the NodeId (and socket name, where one is involved) that
identifies the fault so the shell can point at it. Graph-authoring mistakes
such as unbound or dangling sockets are ordinary, recoverable states: they are
raised as `GraphError` and never terminate the process.
"""
from typing import Optional


class GraphError(Exception):
    def __init__(self, message: str, node_id: Optional[int] = None, socket: Optional[str] = None):
        self.node_id = node_id
        self.socket = socket
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        if self.node_id is None:
            return self.message
        if self.socket is None:
            return f"node {self.node_id}: {self.message}"
        return f"node {self.node_id} socket '{self.socket}': {self.message}"

    def __reduce__(self):
        return (self.__class__, (self.message, self.node_id, self.socket))


class UnboundSocketError(GraphError):
    pass


class UnresolvedDependencyError(GraphError):
    pass


class TypeMismatchError(GraphError, TypeError):
    pass


class UnknownNodeError(GraphError, LookupError):
    pass


class UnknownSocketError(GraphError, LookupError):
    """A node has no socket of the requested kind under that name."""
    pass


class UnsupportedOperationError(GraphError):
    pass


class CyclicDependencyError(GraphError):
    pass


class NodeBusyError(GraphError):
    """Flow reached a node whose own activation has not returned yet."""
    pass


class InvalidConnectionError(GraphError, ValueError):
    pass


class UnknownNodeTypeError(GraphError, LookupError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Unknown node type '{type_name}'")

    def __reduce__(self):
        return (self.__class__, (self.type_name,))
