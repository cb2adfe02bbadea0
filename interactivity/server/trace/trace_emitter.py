"""
TraceEmitter: fan-out of engine trace events to registered listeners
(the Socket.IO broadcaster, loggers, tests).

Listeners are called synchronously, in registration order, on the thread
that runs the graph. A failing listener is logged and skipped so it can
never abort a run.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)

TraceListener = Callable[[Dict[str, Any]], None]


class TraceEmitter:
    def __init__(self) -> None:
        self._listeners: List[TraceListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_trace(self, callback: TraceListener) -> None:
        """Register a callback that receives every emitted trace event."""
        self._listeners.append(callback)

    def off_trace(self, callback: TraceListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: Dict[str, Any]) -> None:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if "ts" not in payload:
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                logger.exception("Trace listener %r failed on %s", cb, payload.get("type"))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

global_tracer = TraceEmitter()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)
