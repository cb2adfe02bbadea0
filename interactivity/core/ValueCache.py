from typing import Any, Callable, Dict, Optional, Set
import logging
import time

from .Errors import UnresolvedDependencyError
from .GraphPrimitives import NodeId
from .Types import Value, ValueType


logger = logging.getLogger(__name__)

TraceListener = Callable[[Dict[str, Any]], None]


class ValueCache:
    """
    Per-run store of computed values, keyed by (node_id, socket name).

    Entries are written by `compute_value` and never invalidated during the
    run. By default a node is recomputed every time it is requested; pass
    `memoize=True` to skip nodes that already have values in this run.

    The cache also carries the run's bookkeeping: the set of nodes whose
    resolution is in progress (for cycle detection) and an optional trace
    listener that receives one dict per engine event.
    """
    def __init__(self, memoize: bool = False, tracer: Optional[TraceListener] = None):
        self.memoize = memoize
        self.tracer = tracer
        self._values: Dict[NodeId, Dict[str, Value]] = {}
        self._resolving: Set[NodeId] = set()

    def set_value(self, node_id: NodeId, name: str, value: Value):
        if not isinstance(value, Value):
            raise TypeError(f"Cache entries must be Value instances, got {value!r}")
        if not ValueType.validate(value.payload, value.type):
            raise TypeError(f"Payload {value.payload!r} does not match its {value.type.value} tag")
        self._values.setdefault(node_id, {})[name] = value

    def get_value(self, node_id: NodeId, name: str) -> Value:
        values = self._values.get(node_id)
        if values is None or name not in values:
            raise UnresolvedDependencyError("value requested before it was computed", node_id=node_id, socket=name)
        return values[name]

    def find_value(self, node_id: NodeId, name: str) -> Optional[Value]:
        return self._values.get(node_id, {}).get(name)

    def values_for(self, node_id: NodeId) -> Dict[str, Value]:
        return dict(self._values.get(node_id, {}))

    def is_resolved(self, node_id: NodeId) -> bool:
        return bool(self._values.get(node_id))

    def __contains__(self, key) -> bool:
        node_id, name = key
        return name in self._values.get(node_id, {})

    def __len__(self) -> int:
        return sum(len(v) for v in self._values.values())

    def to_dict(self) -> Dict[NodeId, Dict[str, Value]]:
        return {node_id: dict(values) for node_id, values in self._values.items()}

    # --- run bookkeeping ---

    def begin_resolving(self, node_id: NodeId) -> bool:
        """Mark `node_id` as in progress. Returns False if it already was."""
        if node_id in self._resolving:
            return False
        self._resolving.add(node_id)
        return True

    def end_resolving(self, node_id: NodeId):
        self._resolving.discard(node_id)

    def trace(self, event_type: str, **fields):
        if self.tracer is None:
            return
        payload = {"type": event_type, **fields}
        payload.setdefault("ts", int(time.time() * 1000))
        self.tracer(payload)
