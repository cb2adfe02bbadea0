import math

import pytest

from interactivity.core.Errors import InvalidConnectionError, UnknownNodeError, UnknownSocketError
from interactivity.core.Executor import NodeBehaviors, activate_flow
from interactivity.core.GraphPrimitives import Edge, SocketRef
from interactivity.core.NodeArchetype import NodeArchetype, NodeArchetypes
from interactivity.core.NodeSocket import InputFlowSocket, InputValueSocket, OutputFlowSocket, OutputValueSocket
from interactivity.core.TypeRegistry import get_default_registry
from interactivity.core.Types import Float
from interactivity.core.ValueCache import ValueCache
from interactivity.noderegistry.NodeRegistry import MathPiNode, PrintNode, SequenceNode


class TestNodeArchetype:

    def setup_method(self):
        self.registry = get_default_registry()

    def test_pin_indices_count_value_sockets_first(self):
        sink = self.registry.build_archetype("custom/print", 0)
        assert sink.input_pin(0).name == "print_value"
        assert sink.input_pin(1).name == "print_input"
        assert sink.input_pin(0).isValueSocket()
        assert sink.input_pin(1).isFlowSocket()

        branch = self.registry.build_archetype("flow/branch", 1)
        assert [branch.input_pin(i).name for i in range(2)] == ["condition", "in"]
        assert [branch.output_pin(i).name for i in range(2)] == ["true", "false"]

    def test_pin_out_of_range(self):
        pi = self.registry.build_archetype("math/pi", 0)
        with pytest.raises(IndexError):
            pi.output_pin(1)
        with pytest.raises(IndexError):
            pi.input_pin(0)

    def test_duplicate_socket_names_rejected(self):
        archetype = NodeArchetype(0, "test")
        archetype.add_value_input("a")
        with pytest.raises(ValueError):
            archetype.add_flow_input("a")

    def test_output_owner_must_match(self):
        with pytest.raises(ValueError):
            NodeArchetype(0, "test", output_value_sockets=[OutputValueSocket(1, "value")])

    def test_lookups(self):
        add = self.registry.build_archetype("math/add", 3)
        assert isinstance(add.get_input_value_socket("a"), InputValueSocket)
        assert add.find_output("value").ref == SocketRef(3, "value")
        assert add.find_input("missing") is None
        with pytest.raises(UnknownSocketError) as excinfo:
            add.get_input_value_socket("value")
        assert excinfo.value.node_id == 3
        assert excinfo.value.socket == "value"
        with pytest.raises(UnknownSocketError):
            add.get_output_flow_socket("value")

    def test_create_archetype_binds_sources_in_order(self):
        sink = PrintNode(2).create_archetype([SocketRef(0, "value")], [SocketRef(1, "first")])
        assert sink.get_input_value_socket("print_value").source == SocketRef(0, "value")
        assert sink.input_flow_sockets[0].source == SocketRef(1, "first")

    def test_create_archetype_rejects_extra_sources(self):
        with pytest.raises(ValueError):
            MathPiNode(0).create_archetype([SocketRef(1, "value")], [])


class TestNodeArchetypes:

    def setup_method(self):
        self.registry = get_default_registry()
        self.graph = NodeArchetypes()
        for node_id, type_name in enumerate(["math/pi", "math/add", "custom/print", "custom/print", "flow/sequence"]):
            self.graph.insert(self.registry.build_archetype(type_name, node_id))

    def test_get_and_find(self):
        assert self.graph.get(1).name == "math/add"
        assert self.graph.find(42) is None
        with pytest.raises(UnknownNodeError):
            self.graph.get(42)
        assert len(self.graph) == 5
        assert 4 in self.graph

    def test_connect_value_edge(self):
        edge = self.graph.connect((0, "value"), (1, "a"))
        assert edge == Edge(0, "value", 1, "a", "value")
        assert self.graph.get(1).get_input_value_socket("a").source == SocketRef(0, "value")

    def test_connect_replaces_value_binding(self):
        self.graph.connect((0, "value"), (2, "print_value"))
        self.graph.connect((1, "value"), (2, "print_value"))
        assert self.graph.get(2).get_input_value_socket("print_value").source == SocketRef(1, "value")
        assert self.graph.edges() == [Edge(1, "value", 2, "print_value", "value")]

    def test_one_output_feeds_many_value_inputs(self):
        self.graph.connect((0, "value"), (1, "a"))
        self.graph.connect((0, "value"), (1, "b"))
        assert len(self.graph.edges()) == 2

    def test_connect_flow_edge_binds_both_ends(self):
        edge = self.graph.connect((4, "first"), (2, "print_input"))
        assert edge.edge_type == "flow"
        assert self.graph.get(4).get_output_flow_socket("first").target == SocketRef(2, "print_input")
        assert self.graph.get(2).find_input("print_input").source == SocketRef(4, "first")

    def test_reconnecting_flow_output_clears_old_input(self):
        self.graph.connect((4, "first"), (2, "print_input"))
        self.graph.connect((4, "first"), (3, "print_input"))
        assert self.graph.get(2).find_input("print_input").source is None
        assert self.graph.get(3).find_input("print_input").source == SocketRef(4, "first")
        assert self.graph.edges() == [Edge(4, "first", 3, "print_input", "flow")]

    def test_reconnecting_flow_input_clears_old_output(self):
        self.graph.connect((4, "first"), (2, "print_input"))
        self.graph.connect((4, "second"), (2, "print_input"))
        assert self.graph.get(4).get_output_flow_socket("first").target is None
        assert self.graph.get(4).get_output_flow_socket("second").target == SocketRef(2, "print_input")

    def test_rejected_connections_leave_graph_unchanged(self):
        self.graph.connect((0, "value"), (1, "a"))
        before = self.graph.edges()

        with pytest.raises(InvalidConnectionError):
            self.graph.connect((4, "first"), (1, "b"))          # flow into value
        with pytest.raises(InvalidConnectionError):
            self.graph.connect((0, "value"), (2, "print_input"))  # value into flow
        with pytest.raises(InvalidConnectionError):
            self.graph.connect((0, "missing"), (1, "b"))
        with pytest.raises(InvalidConnectionError):
            self.graph.connect((0, "value"), (1, "missing"))
        with pytest.raises(InvalidConnectionError):
            self.graph.connect((1, "value"), (1, "b"))           # self loop
        with pytest.raises(UnknownNodeError):
            self.graph.connect((9, "value"), (1, "b"))

        assert self.graph.edges() == before
        assert self.graph.get(1).get_input_value_socket("b").source is None

    def test_can_connect(self):
        assert self.graph.can_connect((0, "value"), (1, "a"))
        assert not self.graph.can_connect((4, "first"), (1, "a"))
        assert not self.graph.can_connect((9, "value"), (1, "a"))

    def test_disconnect(self):
        self.graph.connect((0, "value"), (1, "a"))
        self.graph.connect((4, "first"), (2, "print_input"))

        assert self.graph.disconnect((1, "a")) == Edge(0, "value", 1, "a", "value")
        assert self.graph.disconnect((2, "print_input")) == Edge(4, "first", 2, "print_input", "flow")
        assert self.graph.get(4).get_output_flow_socket("first").target is None
        assert self.graph.disconnect((1, "a")) is None
        assert self.graph.edges() == []

    def test_remove_unbinds_references(self):
        self.graph.connect((0, "value"), (1, "a"))
        self.graph.connect((4, "first"), (2, "print_input"))

        self.graph.remove(0)
        self.graph.remove(2)

        assert self.graph.get(1).get_input_value_socket("a").source is None
        assert self.graph.get(4).get_output_flow_socket("first").target is None
        with pytest.raises(UnknownNodeError):
            self.graph.remove(0)

    def test_copy_is_independent(self):
        self.graph.connect((0, "value"), (1, "a"))
        snapshot = self.graph.copy()

        self.graph.connect((1, "value"), (2, "print_value"))
        self.graph.disconnect((1, "a"))

        assert snapshot.edges() == [Edge(0, "value", 1, "a", "value")]
        assert snapshot.get(0) == self.graph.get(0)
        assert snapshot.get(0) is not self.graph.get(0)

    def test_graph_level_pins(self):
        assert isinstance(self.graph.input_pin(2, 1), InputFlowSocket)
        assert isinstance(self.graph.output_pin(4, 1), OutputFlowSocket)
        assert self.graph.output_pin(4, 1).name == "second"


class TestAddArchetype:

    def test_flow_sources_update_producer(self):
        graph = NodeArchetypes()
        graph.add_archetype(SequenceNode(0))
        graph.add_archetype(MathPiNode(1))
        sink = graph.add_archetype(PrintNode(2), [SocketRef(1, "value")], [SocketRef(0, "first")])

        assert sink.get_input_value_socket("print_value").source == SocketRef(1, "value")
        assert graph.get(0).get_output_flow_socket("first").target == SocketRef(2, "print_input")
        assert Edge(0, "first", 2, "print_input", "flow") in graph.edges()

    def test_flow_source_displaces_previous_consumer(self):
        graph = NodeArchetypes()
        graph.add_archetype(SequenceNode(0))
        graph.add_archetype(PrintNode(1), [], [SocketRef(0, "first")])
        graph.add_archetype(PrintNode(2), [], [SocketRef(0, "first")])

        assert graph.get(1).find_input("print_input").source is None
        assert graph.get(2).find_input("print_input").source == SocketRef(0, "first")
        assert graph.get(0).get_output_flow_socket("first").target == SocketRef(2, "print_input")
        assert [e for e in graph.edges() if e.edge_type == "flow"] == [Edge(0, "first", 2, "print_input", "flow")]

    def test_consumer_added_before_producer(self):
        graph = NodeArchetypes()
        graph.add_archetype(MathPiNode(2))
        graph.add_archetype(PrintNode(1), [SocketRef(2, "value")], [SocketRef(0, "first")])
        graph.add_archetype(SequenceNode(0))

        assert graph.get(0).get_output_flow_socket("first").target == SocketRef(1, "print_input")
        assert graph.get(1).find_input("print_input").source == SocketRef(0, "first")
        assert Edge(0, "first", 1, "print_input", "flow") in graph.edges()

    def test_consumer_added_before_producer_runs(self, capsys):
        graph = NodeArchetypes()
        graph.add_archetype(MathPiNode(2))
        graph.add_archetype(PrintNode(1), [SocketRef(2, "value")], [SocketRef(0, "first")])
        graph.add_archetype(SequenceNode(0))
        behaviors = NodeBehaviors([SequenceNode(0), PrintNode(1), MathPiNode(2)])

        activate_flow(0, graph, behaviors, ValueCache())

        assert behaviors.get(1).printed == [Float(math.pi)]
        assert capsys.readouterr().out.startswith("[PrintNode 1] value = ")

    def test_replacing_producer_drops_missing_outputs(self):
        graph = NodeArchetypes()
        graph.add_archetype(SequenceNode(0, outputs=3))
        graph.add_archetype(PrintNode(1), [], [SocketRef(0, "then_2")])
        graph.add_archetype(SequenceNode(0))

        assert graph.get(1).find_input("print_input").source is None
        assert [e for e in graph.edges() if e.edge_type == "flow"] == []

    def test_overwrites_existing_id(self):
        graph = NodeArchetypes()
        graph.add_archetype(MathPiNode(0))
        graph.add_archetype(SequenceNode(0))
        assert len(graph) == 1
        assert graph.get(0).name == "flow/sequence"

    def test_accepts_plain_tuples(self):
        graph = NodeArchetypes()
        graph.add_archetype(MathPiNode(0))
        sink = graph.add_archetype(PrintNode(1), [(0, "value")])
        assert sink.get_input_value_socket("print_value").source == SocketRef(0, "value")
