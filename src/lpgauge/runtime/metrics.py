"""
In-process gauge metrics with a Prometheus text exposition.

Counters track operations and their outcomes. Gauges mirror the ledger totals of
the last committed state (observe_state), so a scrape never sees a rolled-back
operation.
"""

from __future__ import annotations

import os
import threading
from typing import Any, Dict, Mapping

_HELP: Dict[str, str] = {
    "ops_total": "Committed gauge operations.",
    "ops_failed_total": "Gauge operations rolled back.",
    "claims_total": "Committed claims.",
    "checkpoint_partial_total": "Emission checkpoints stopped by the iteration budget.",
    "working_supply": "Sum of boosted stake.",
    "total_supply": "Sum of raw stake.",
    "current_epoch": "Epoch currently collecting a distribution.",
    "accounts": "Accounts with a ledger entry.",
}

_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}


def metrics_enabled() -> bool:
    raw = (os.environ.get("LPGAUGE_METRICS_ENABLED") or "").strip().lower()
    return raw in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    with _lock:
        _counters[name] = _counters.get(name, 0) + int(value)


def observe_state(state: Mapping[str, Any]) -> None:
    """Refresh the ledger gauges from a committed gauge state."""
    supply = state.get("supply") or {}
    epochs = state.get("epochs") or {}
    with _lock:
        _gauges["working_supply"] = int(state.get("working_supply") or 0)
        _gauges["total_supply"] = int(supply.get("total") or 0)
        _gauges["current_epoch"] = int(epochs.get("current") or 0)
        _gauges["accounts"] = len(state.get("accounts") or {})


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> Dict[str, Dict[str, int]]:
    with _lock:
        return {"counters": dict(_counters), "gauges": dict(_gauges)}


def format_prometheus(prefix: str = "lpgauge_") -> str:
    snap = snapshot()
    lines = []
    for kind, values in (("counter", snap["counters"]), ("gauge", snap["gauges"])):
        for name in sorted(values):
            metric = f"{prefix}{name}"
            if name in _HELP:
                lines.append(f"# HELP {metric} {_HELP[name]}")
            lines.append(f"# TYPE {metric} {kind}")
            lines.append(f"{metric} {values[name]}")
    return "\n".join(lines) + "\n"
