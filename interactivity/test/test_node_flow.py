import logging
import math

import pytest

from interactivity.core.Errors import NodeBusyError, TypeMismatchError, UnboundSocketError, UnknownSocketError
from interactivity.core.Executor import NodeBehaviors, activate_flow
from interactivity.core.Node import NodeBehavior
from interactivity.core.NodeArchetype import NodeArchetype, NodeArchetypes
from interactivity.core.TypeRegistry import NodeTypeRegistry
from interactivity.core.ValueCache import ValueCache
from interactivity.examples.GraphExamples import build_sequence_graph
from interactivity.noderegistry.NodeRegistry import SequenceNode, register_builtin_nodes


# Global log to track execution order
EXECUTION_LOG = []


class RecordingNode(NodeBehavior):
    """
    Flow sink that logs (node id, input payload, ids checked out at that moment).
    """
    type_name = "test/record"

    def template(self):
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_value_input("value")
        archetype.add_flow_input("in")
        return archetype

    def on_activate(self, graph, cache, behaviors):
        global EXECUTION_LOG
        value = self.read_input(graph, cache, "value")
        busy = [node_id for node_id in range(10) if behaviors.is_checked_out(node_id)]
        EXECUTION_LOG.append((self._node_id, value.payload, busy))


class MisnamedFireNode(NodeBehavior):
    """Flow node that fires an output it never declared."""
    type_name = "test/misnamed_fire"

    def template(self):
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_flow_input("in")
        archetype.add_flow_output("out")
        return archetype

    def on_activate(self, graph, cache, behaviors):
        self.fire_output("ouT", graph, cache, behaviors)


class TestNodeFlow:

    def setup_method(self):
        global EXECUTION_LOG
        EXECUTION_LOG.clear()
        self.registry = register_builtin_nodes(NodeTypeRegistry())
        self.registry.register_node(RecordingNode)
        self.registry.register_node(MisnamedFireNode)
        self.graph = NodeArchetypes()
        self.behaviors = NodeBehaviors()
        self.events = []

    def add(self, type_name, node_id):
        self.graph.insert(self.registry.build_archetype(type_name, node_id))
        self.behaviors.add(self.registry.make_behavior(type_name, node_id))
        return node_id

    def cache(self):
        return ValueCache(tracer=self.events.append)

    def build_sequenced_recorders(self):
        # pi(0) -> add(1); sequence(4) fires record(2) <- add, then record(3) <- pi
        pi = self.add("math/pi", 0)
        add = self.add("math/add", 1)
        first = self.add("test/record", 2)
        second = self.add("test/record", 3)
        sequence = self.add("flow/sequence", 4)
        self.graph.connect((pi, "value"), (add, "a"))
        self.graph.connect((pi, "value"), (add, "b"))
        self.graph.connect((add, "value"), (first, "value"))
        self.graph.connect((pi, "value"), (second, "value"))
        self.graph.connect((sequence, "first"), (first, "in"))
        self.graph.connect((sequence, "second"), (second, "in"))
        return sequence

    def test_sequence_runs_outputs_in_order(self):
        sequence = self.build_sequenced_recorders()
        activate_flow(sequence, self.graph, self.behaviors, self.cache())

        assert [entry[0] for entry in EXECUTION_LOG] == [2, 3]
        assert EXECUTION_LOG[0][1] == pytest.approx(2 * math.pi, abs=1e-5)
        assert EXECUTION_LOG[1][1] == pytest.approx(math.pi, abs=1e-6)

    def test_dependencies_resolve_before_activation(self):
        sequence = self.build_sequenced_recorders()
        activate_flow(sequence, self.graph, self.behaviors, self.cache())

        kinds = [(e["type"], e.get("nodeId")) for e in self.events]
        assert kinds.index(("NODE_RESOLVED", 1)) < kinds.index(("NODE_ACTIVATED", 2))
        assert kinds.index(("NODE_ACTIVATED", 2)) < kinds.index(("NODE_ACTIVATED", 3))
        assert kinds[0] == ("NODE_ACTIVATED", sequence)

    def test_edge_events(self):
        sequence = self.build_sequenced_recorders()
        activate_flow(sequence, self.graph, self.behaviors, self.cache())

        edges = [(e["fromNodeId"], e["fromSocket"], e["toNodeId"], e["toSocket"])
                 for e in self.events if e["type"] == "EDGE_ACTIVE"]
        assert edges == [(4, "first", 2, "in"), (4, "second", 3, "in")]

    def test_active_behavior_is_checked_out_and_restored(self):
        sequence = self.build_sequenced_recorders()
        sequence_behavior = self.behaviors.get(sequence)

        activate_flow(sequence, self.graph, self.behaviors, self.cache())

        # each recorder saw itself and the sequencer checked out, nothing else
        assert EXECUTION_LOG[0][2] == [2, 4]
        assert EXECUTION_LOG[1][2] == [3, 4]
        assert self.behaviors.get(sequence) is sequence_behavior
        assert not self.behaviors.is_checked_out(sequence)
        assert len(self.behaviors) == 5

    def test_second_run_matches_first(self):
        sequence = self.build_sequenced_recorders()
        activate_flow(sequence, self.graph, self.behaviors, self.cache())
        first_run = list(EXECUTION_LOG)

        EXECUTION_LOG.clear()
        activate_flow(sequence, self.graph, self.behaviors, self.cache())
        assert EXECUTION_LOG == first_run

    def test_failure_restores_checked_out_behaviors(self):
        sequence = self.build_sequenced_recorders()
        self.graph.disconnect((3, "value"))

        with pytest.raises(UnboundSocketError) as excinfo:
            activate_flow(sequence, self.graph, self.behaviors, self.cache())

        assert excinfo.value.node_id == 3
        # the first branch still ran before the failure
        assert [entry[0] for entry in EXECUTION_LOG] == [2]
        assert sequence in self.behaviors
        assert not self.behaviors.is_checked_out(sequence)

    def test_unbound_outputs_are_skipped(self):
        sequence = self.add("flow/sequence", 0)
        activate_flow(sequence, self.graph, self.behaviors, self.cache())
        assert [e["type"] for e in self.events] == ["NODE_ACTIVATED"]

    def test_flow_reentry_is_busy(self):
        first = self.add("flow/sequence", 0)
        second = self.add("flow/sequence", 1)
        self.graph.connect((first, "first"), (second, "in"))
        self.graph.connect((second, "first"), (first, "in"))

        with pytest.raises(NodeBusyError) as excinfo:
            activate_flow(first, self.graph, self.behaviors, self.cache())

        assert excinfo.value.node_id == first
        assert not self.behaviors.is_checked_out(first)
        assert not self.behaviors.is_checked_out(second)

    def test_firing_an_undeclared_output(self):
        node = self.add("test/misnamed_fire", 0)

        with pytest.raises(UnknownSocketError) as excinfo:
            activate_flow(node, self.graph, self.behaviors, self.cache())

        assert excinfo.value.node_id == node
        assert excinfo.value.socket == "ouT"
        assert not self.behaviors.is_checked_out(node)
        assert [e["type"] for e in self.events] == ["NODE_ACTIVATED", "NODE_ERROR"]

    def build_branch(self, condition_a, condition_b):
        # pi(0), add(1) = 2 pi, less_than(2), branch(3): true -> record(4), false -> record(5)
        pi = self.add("math/pi", 0)
        add = self.add("math/add", 1)
        less = self.add("math/less_than", 2)
        branch = self.add("flow/branch", 3)
        on_true = self.add("test/record", 4)
        on_false = self.add("test/record", 5)
        self.graph.connect((pi, "value"), (add, "a"))
        self.graph.connect((pi, "value"), (add, "b"))
        self.graph.connect((condition_a, "value"), (less, "a"))
        self.graph.connect((condition_b, "value"), (less, "b"))
        self.graph.connect((less, "value"), (branch, "condition"))
        self.graph.connect((pi, "value"), (on_true, "value"))
        self.graph.connect((add, "value"), (on_false, "value"))
        self.graph.connect((branch, "true"), (on_true, "in"))
        self.graph.connect((branch, "false"), (on_false, "in"))
        return branch

    def test_branch_true(self):
        branch = self.build_branch(0, 1)      # pi < 2 pi
        activate_flow(branch, self.graph, self.behaviors, self.cache())
        assert [entry[0] for entry in EXECUTION_LOG] == [4]

    def test_branch_false(self):
        branch = self.build_branch(1, 0)      # 2 pi < pi
        activate_flow(branch, self.graph, self.behaviors, self.cache())
        assert [entry[0] for entry in EXECUTION_LOG] == [5]

    def test_branch_needs_bool(self):
        branch = self.build_branch(0, 1)
        self.graph.connect((0, "value"), (branch, "condition"))
        with pytest.raises(TypeMismatchError) as excinfo:
            activate_flow(branch, self.graph, self.behaviors, self.cache())
        assert excinfo.value.socket == "condition"
        assert EXECUTION_LOG == []

    def test_longer_sequence(self):
        pi = self.add("math/pi", 0)
        sequence = SequenceNode(1, outputs=3)
        self.graph.add_archetype(sequence)
        self.behaviors.add(sequence)

        names = [s.name for s in self.graph.get(1).output_flow_sockets]
        assert names == ["first", "second", "then_2"]

        for node_id, output in zip((2, 3, 4), reversed(names)):
            self.add("test/record", node_id)
            self.graph.connect((pi, "value"), (node_id, "value"))
            self.graph.connect((1, output), (node_id, "in"))

        activate_flow(1, self.graph, self.behaviors, self.cache())
        assert [entry[0] for entry in EXECUTION_LOG] == [4, 3, 2]

    def test_sequence_needs_an_output(self):
        with pytest.raises(ValueError):
            SequenceNode(0, outputs=0)


class TestPrintNode:

    def test_sequence_graph_prints_both_values(self, capsys):
        example = build_sequence_graph()
        activate_flow(example.sequence, example.graph, example.behaviors, ValueCache())

        first = example.behaviors.get(example.sink).printed
        second = example.behaviors.get(example.sink2).printed
        assert first[0].payload == pytest.approx(2 * math.pi, abs=1e-5)
        assert second[0].payload == pytest.approx(math.pi, abs=1e-6)

        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("[PrintNode 2] value = Float(6.28")
        assert out[1].startswith("[PrintNode 3] value = Float(3.14")

    def test_unbound_print_value(self):
        example = build_sequence_graph()
        example.graph.disconnect((example.sink, "print_value"))
        with pytest.raises(UnboundSocketError) as excinfo:
            activate_flow(example.sequence, example.graph, example.behaviors, ValueCache())
        assert excinfo.value.socket == "print_value"

    def test_each_value_is_reported_once(self, capsys, caplog):
        caplog.set_level(logging.INFO, logger="interactivity.noderegistry.NodeRegistry")
        example = build_sequence_graph()
        activate_flow(example.sequence, example.graph, example.behaviors, ValueCache())

        assert len(capsys.readouterr().out.splitlines()) == 2
        assert caplog.records == []
