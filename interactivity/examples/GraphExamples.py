import logging
from typing import NamedTuple, Optional

from ..core.Executor import NodeBehaviors, activate_flow, resolve_values
from ..core.NodeArchetype import NodeArchetypes
from ..core.TypeRegistry import NodeTypeRegistry, get_default_registry
from ..core.ValueCache import ValueCache


logger = logging.getLogger(__name__)


class ExampleGraph(NamedTuple):
    graph: NodeArchetypes
    behaviors: NodeBehaviors
    pi: int
    add: int
    sink: int
    sink2: Optional[int] = None
    sequence: Optional[int] = None


def _instantiate(graph: NodeArchetypes, behaviors: NodeBehaviors, registry: NodeTypeRegistry, type_name: str, node_id: int) -> int:
    graph.insert(registry.build_archetype(type_name, node_id))
    behaviors.add(registry.make_behavior(type_name, node_id))
    return node_id


# Pi Sum
#
#   [math/pi] --value--> (a) [math/add] --value--> (print_value) [custom/print]
#             \--value--> (b)
#
# Resolving `add` yields 2 * pi. Activating `print` first pulls `add` (and
# through it `pi`), then prints.
def build_pi_sum_graph(registry: Optional[NodeTypeRegistry] = None) -> ExampleGraph:
    if registry is None:
        registry = get_default_registry()
    graph = NodeArchetypes()
    behaviors = NodeBehaviors()

    pi = _instantiate(graph, behaviors, registry, "math/pi", 0)
    add = _instantiate(graph, behaviors, registry, "math/add", 1)
    sink = _instantiate(graph, behaviors, registry, "custom/print", 2)

    graph.connect((pi, "value"), (add, "a"))
    graph.connect((pi, "value"), (add, "b"))
    graph.connect((add, "value"), (sink, "print_value"))

    return ExampleGraph(graph, behaviors, pi, add, sink)


# Sequenced Prints
#
#                      (first) --> [custom/print 2]  prints add = 2 * pi
#   [flow/sequence 4] -|
#                      (second) -> [custom/print 3]  prints pi
#
# Both prints run, in socket order, each after its own inputs are pulled.
def build_sequence_graph(registry: Optional[NodeTypeRegistry] = None) -> ExampleGraph:
    if registry is None:
        registry = get_default_registry()
    example = build_pi_sum_graph(registry)
    graph, behaviors = example.graph, example.behaviors

    sink2 = _instantiate(graph, behaviors, registry, "custom/print", 3)
    sequence = _instantiate(graph, behaviors, registry, "flow/sequence", 4)

    graph.connect((example.pi, "value"), (sink2, "print_value"))
    graph.connect((sequence, "first"), (example.sink, "print_input"))
    graph.connect((sequence, "second"), (sink2, "print_input"))

    return example._replace(sink2=sink2, sequence=sequence)


if __name__ == "__main__":
    # Configure Logging ONCE at the entry point of your application
    logging.basicConfig(
        level=logging.INFO,
        format='[%(asctime)s]:%(name)s:(%(levelname)s) - %(message)s',
        datefmt='%H:%M:%S'
    )

    example = build_pi_sum_graph()
    cache = ValueCache()
    resolve_values([example.add], example.graph, example.behaviors, cache)
    logger.info("add(pi, pi) = %r", cache.get_value(example.add, "value"))

    example = build_sequence_graph()
    activate_flow(example.sequence, example.graph, example.behaviors, ValueCache())
