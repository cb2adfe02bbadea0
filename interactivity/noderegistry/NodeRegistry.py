from abc import abstractmethod
from typing import List, Optional, TYPE_CHECKING
import logging
import math

from ..core.Errors import TypeMismatchError
from ..core.Node import NodeBehavior
from ..core.NodeArchetype import NodeArchetype
from ..core.Types import Value, ValueType, Bool, Float, Int, wrap_int32

if TYPE_CHECKING:
    from ..core.NodeArchetype import NodeArchetypes
    from ..core.ValueCache import ValueCache
    from ..core.Executor import NodeBehaviors
    from ..core.TypeRegistry import NodeTypeRegistry


logger = logging.getLogger(__name__)

# =========================================================================================
# BUILT-IN NODE TYPES
#
# 1. Value nodes (compute_value):
#    - Pulled lazily by the engine when something downstream needs their output.
#    - Read their inputs from the ValueCache and write their outputs back to it.
#
# 2. Flow nodes (on_activate):
#    - Pushed by an incoming flow edge.
#    - Side-effecting sinks read their (already resolved) inputs here.
#    - Routing nodes forward activation through their output flow sockets.
# =========================================================================================


class MathPiNode(NodeBehavior):
    type_name = "math/pi"

    def template(self) -> NodeArchetype:
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_value_output("value")
        return archetype

    def compute_value(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        self.write_output(cache, "value", Float(math.pi))


class BinaryMathNode(NodeBehavior):
    """
    Two numeric inputs, one output. Both inputs must carry the same tag:
    Float with Float gives Float, Int with Int gives an Int wrapped to 32 bits.
    """
    def template(self) -> NodeArchetype:
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_value_input("a")
        archetype.add_value_input("b")
        archetype.add_value_output("value")
        return archetype

    @abstractmethod
    def operate(self, a, b):
        raise NotImplementedError

    def read_operands(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        a = self.read_input(graph, cache, "a")
        b = self.read_input(graph, cache, "b")

        for name, operand in (("a", a), ("b", b)):
            if not operand.is_numeric():
                raise TypeMismatchError(f"'{self.type_name}' needs a number, found {operand.type.value}",
                                        node_id=self._node_id, socket=name)
        # no implicit Int -> Float promotion
        b.expect(a.type, node_id=self._node_id, socket="b")
        return a, b

    def compute_value(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        a, b = self.read_operands(graph, cache)
        result = self.operate(a.payload, b.payload)
        if a.type == ValueType.INT:
            self.write_output(cache, "value", Int(wrap_int32(result)))
        else:
            self.write_output(cache, "value", Float(result))


class MathAddNode(BinaryMathNode):
    type_name = "math/add"

    def operate(self, a, b):
        return a + b


class MathSubtractNode(BinaryMathNode):
    type_name = "math/subtract"

    def operate(self, a, b):
        return a - b


class MathMultiplyNode(BinaryMathNode):
    type_name = "math/multiply"

    def operate(self, a, b):
        return a * b


class MathLessThanNode(BinaryMathNode):
    type_name = "math/less_than"

    def operate(self, a, b):
        return a < b

    def compute_value(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        a, b = self.read_operands(graph, cache)
        self.write_output(cache, "value", Bool(self.operate(a.payload, b.payload)))


class PrintNode(NodeBehavior):
    """
    Sink: on activation, reports the value feeding `print_value`.

    Every printed value is also kept in `printed`, in activation order.
    """
    type_name = "custom/print"

    def __init__(self, node_id):
        super().__init__(node_id)
        self.printed: List[Value] = []

    def template(self) -> NodeArchetype:
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_value_input("print_value")
        archetype.add_flow_input("print_input")
        return archetype

    def compute_value(self, graph: 'NodeArchetypes', cache: 'ValueCache'):
        # nothing to produce, pulling a sink is a no-op
        pass

    def on_activate(self, graph: 'NodeArchetypes', cache: 'ValueCache', behaviors: 'NodeBehaviors'):
        value = self.read_input(graph, cache, "print_value")
        self.printed.append(value)
        logger.debug("[%s %s] %r", self.type_name, self._node_id, value)
        print(f"[PrintNode {self._node_id}] value = {value!r}")


class SequenceNode(NodeBehavior):
    """
    Activates each bound output flow socket in declaration order, every branch
    running to completion before the next one starts.
    """
    type_name = "flow/sequence"
    default_outputs = 2

    def __init__(self, node_id, outputs: Optional[int] = None):
        super().__init__(node_id)
        self.outputs = outputs if outputs is not None else self.default_outputs
        if self.outputs < 1:
            raise ValueError("A sequence node needs at least one output")

    @staticmethod
    def output_name(index: int) -> str:
        if index == 0:
            return "first"
        if index == 1:
            return "second"
        return f"then_{index}"

    def template(self) -> NodeArchetype:
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_flow_input("in")
        for index in range(self.outputs):
            archetype.add_flow_output(self.output_name(index))
        return archetype

    def on_activate(self, graph: 'NodeArchetypes', cache: 'ValueCache', behaviors: 'NodeBehaviors'):
        for socket in graph.get(self._node_id).output_flow_sockets:
            self.fire_output(socket.name, graph, cache, behaviors)


class BranchNode(NodeBehavior):
    type_name = "flow/branch"

    def template(self) -> NodeArchetype:
        archetype = NodeArchetype(self._node_id, self.type_name)
        archetype.add_value_input("condition")
        archetype.add_flow_input("in")
        archetype.add_flow_output("true")
        archetype.add_flow_output("false")
        return archetype

    def on_activate(self, graph: 'NodeArchetypes', cache: 'ValueCache', behaviors: 'NodeBehaviors'):
        condition = self.read_input(graph, cache, "condition", expected=ValueType.BOOL)
        self.fire_output("true" if condition.payload else "false", graph, cache, behaviors)


BUILTIN_NODES = (
    MathPiNode,
    MathAddNode,
    MathSubtractNode,
    MathMultiplyNode,
    MathLessThanNode,
    PrintNode,
    SequenceNode,
    BranchNode,
)


def register_builtin_nodes(registry: 'NodeTypeRegistry') -> 'NodeTypeRegistry':
    for node_class in BUILTIN_NODES:
        registry.register_node(node_class)
    return registry
