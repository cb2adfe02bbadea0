from typing import NamedTuple


NodeId = int


class SocketRef(NamedTuple):
    """Identifies one socket on one node. Sockets are unique by name per direction and kind."""
    node_id: NodeId
    name: str

    def __repr__(self):
        return f"{self.node_id}.{self.name}"


# Defining Edge as a simple data structure
# Using NamedTuple for immutability and simple hashability
class Edge(NamedTuple):
    from_node_id: NodeId
    from_socket: str
    to_node_id: NodeId
    to_socket: str

    edge_type: str = "value" # "value", "flow"

    @property
    def source(self) -> SocketRef:
        return SocketRef(self.from_node_id, self.from_socket)

    @property
    def target(self) -> SocketRef:
        return SocketRef(self.to_node_id, self.to_socket)

    def __repr__(self):
        return f"Edge({self.from_node_id}.{self.from_socket} -> {self.to_node_id}.{self.to_socket}, {self.edge_type})"


def as_ref(socket) -> SocketRef:
    """Accept a SocketRef, an output socket, or a (node_id, name) pair."""
    if isinstance(socket, SocketRef):
        return socket
    if hasattr(socket, "node_id") and hasattr(socket, "name"):
        return SocketRef(socket.node_id, socket.name)
    node_id, name = socket
    return SocketRef(node_id, name)
