from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, TYPE_CHECKING
from logging import getLogger

from .Errors import CyclicDependencyError, GraphError, NodeBusyError, UnknownNodeError
from .GraphPrimitives import NodeId
from .Types import Value
from .ValueCache import ValueCache

if TYPE_CHECKING:
    from .Interface import INodeBehavior
    from .NodeArchetype import NodeArchetypes

logger = getLogger(__name__)


# --- RUNTIME BEHAVIOR STORE (Arena Pattern) ---
# Behaviors are held apart from the archetype graph, keyed by NodeId. While a
# node is being activated its behavior is checked out of the store, so the
# node has sole ownership of itself while the rest of the store stays usable
# for the children it activates.
class NodeBehaviors:
    def __init__(self, behaviors: Optional[Iterable['INodeBehavior']] = None):
        self._behaviors: Dict[NodeId, 'INodeBehavior'] = {}
        self._checked_out: Dict[NodeId, 'INodeBehavior'] = {}
        for behavior in behaviors or ():
            self.add(behavior)

    def add(self, behavior: 'INodeBehavior'):
        self._behaviors[behavior.node_id()] = behavior

    def get(self, node_id: NodeId) -> 'INodeBehavior':
        behavior = self._behaviors.get(node_id)
        if behavior is not None:
            return behavior
        if node_id in self._checked_out:
            raise NodeBusyError("behavior is checked out by a running activation", node_id=node_id)
        raise UnknownNodeError("no behavior registered for this node", node_id=node_id)

    def remove(self, node_id: NodeId) -> 'INodeBehavior':
        self.get(node_id)
        return self._behaviors.pop(node_id)

    def is_checked_out(self, node_id: NodeId) -> bool:
        return node_id in self._checked_out

    @contextmanager
    def checkout(self, node_id: NodeId) -> Iterator['INodeBehavior']:
        """
        Detach the behavior for `node_id` for the duration of the block and put
        it back afterwards, even if the block raises.
        """
        behavior = self.remove(node_id)
        self._checked_out[node_id] = behavior
        try:
            yield behavior
        finally:
            del self._checked_out[node_id]
            self._behaviors[node_id] = behavior

    def __contains__(self, node_id: NodeId) -> bool:
        return node_id in self._behaviors

    def __iter__(self):
        return iter(list(self._behaviors.values()))

    def __len__(self) -> int:
        return len(self._behaviors)


def resolve_values(requests: Iterable[NodeId], graph: 'NodeArchetypes', behaviors: NodeBehaviors, cache: ValueCache):
    """
    Pull the values of every requested node into `cache`.

    Each node's own dependencies are resolved first (depth first), then its
    `compute_value` runs. Unless the cache memoizes, a node reachable along
    several paths is computed once per path.
    """
    for node_id in requests:
        if cache.memoize and cache.is_resolved(node_id):
            continue

        behavior = behaviors.get(node_id)

        if not cache.begin_resolving(node_id):
            raise CyclicDependencyError("value dependency cycle", node_id=node_id)
        try:
            dependencies = behavior.list_dependencies(graph)
            resolve_values(dependencies, graph, behaviors, cache)

            logger.debug("Computing value for node %s", node_id)
            behavior.compute_value(graph, cache)
            cache.trace("NODE_RESOLVED", nodeId=node_id)
        except GraphError as exc:
            _trace_failure(cache, node_id, exc)
            raise
        finally:
            cache.end_resolving(node_id)


def activate_flow(entry: NodeId, graph: 'NodeArchetypes', behaviors: NodeBehaviors, cache: ValueCache):
    """
    Activate `entry`: resolve its value dependencies, then run its
    `on_activate` with the behavior checked out of `behaviors`.

    The node receives the live behavior store so it can activate its own flow
    successors; each of those runs to completion before control returns here.
    """
    behavior = behaviors.get(entry)
    try:
        dependencies = behavior.list_dependencies(graph)
    except GraphError as exc:
        _trace_failure(cache, entry, exc)
        raise
    resolve_values(dependencies, graph, behaviors, cache)

    with behaviors.checkout(entry) as active:
        logger.debug("Activating node %s", entry)
        cache.trace("NODE_ACTIVATED", nodeId=entry)
        try:
            active.on_activate(graph, cache, behaviors)
        except GraphError as exc:
            _trace_failure(cache, entry, exc)
            raise


def _trace_failure(cache: ValueCache, node_id: NodeId, exc: GraphError):
    # only the node that raised reports it, callers further up see the same exception object
    if getattr(exc, "_traced", False):
        return
    exc._traced = True
    logger.debug("Node %s failed: %s", node_id, exc)
    cache.trace("NODE_ERROR", nodeId=node_id, error=str(exc))


class Executor:
    """
    One evaluation run: a graph, its behaviors, and the cache they fill.
    """
    def __init__(self, graph: 'NodeArchetypes', behaviors: NodeBehaviors, cache: Optional[ValueCache] = None):
        self.graph = graph
        self.behaviors = behaviors
        self.cache = cache if cache is not None else ValueCache()

    def resolve_values(self, requests: Iterable[NodeId]) -> ValueCache:
        resolve_values(list(requests), self.graph, self.behaviors, self.cache)
        return self.cache

    def activate_flow(self, entry: NodeId) -> ValueCache:
        activate_flow(entry, self.graph, self.behaviors, self.cache)
        return self.cache

    def value(self, node_id: NodeId, name: str = "value") -> Value:
        return self.cache.get_value(node_id, name)

    def dependencies(self, node_id: NodeId) -> List[NodeId]:
        return self.behaviors.get(node_id).list_dependencies(self.graph)
