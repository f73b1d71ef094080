from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass, field
from typing import Dict

# Counters bumped by the ledger client, in one place so the exposition lists
# them even before their first increment.
KNOWN_COUNTERS = (
    "records_created",
    "records_transitioned",
    "records_skipped",
    "loads",
    "reveals",
    "reveals_denied",
    "directory_appends",
    "directory_cas_conflicts",
    "directory_parse_failures",
)


def metrics_enabled() -> bool:
    return (os.environ.get("SPELLVAULT_METRICS_ENABLED") or "").strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class _Registry:
    started_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    counters: Dict[str, int] = field(default_factory=dict)
    gauges: Dict[str, int] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


_reg = _Registry()


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _reg.lock:
        _reg.counters[n] = _reg.counters.get(n, 0) + int(value)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _reg.lock:
        _reg.gauges[n] = int(value)


def snapshot() -> dict:
    now = int(time.time() * 1000)
    with _reg.lock:
        counters = {k: 0 for k in KNOWN_COUNTERS}
        counters.update(_reg.counters)
        return {
            "ts_ms": now,
            "uptime_ms": now - _reg.started_ms,
            "counters": counters,
            "gauges": dict(_reg.gauges),
        }


def reset() -> None:
    """Clear counters and gauges (tests)."""
    with _reg.lock:
        _reg.counters.clear()
        _reg.gauges.clear()


def format_prometheus(prefix: str = "spellvault_") -> str:
    """Prometheus text exposition of snapshot()."""
    snap = snapshot()
    lines = [f"# TYPE {prefix}uptime_ms gauge", f"{prefix}uptime_ms {snap['uptime_ms']}"]
    for kind, values in (("counter", snap["counters"]), ("gauge", snap["gauges"])):
        for name in sorted(values):
            lines.append(f"# TYPE {prefix}{name} {kind}")
            lines.append(f"{prefix}{name} {values[name]}")
    return "\n".join(lines) + "\n"
