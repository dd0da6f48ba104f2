from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Optional

from prometheus_client import Counter as PromCounter
from prometheus_client import Histogram

# Requests counters (HTTP-level)
_REQUESTS = Counter()

# Object factory outcomes
_OBJECTS = Counter()

# Named counters (custom)
_NAMED = Counter()

_PROM_REQUESTS = PromCounter(
    "metaforge_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

_PROM_DURATION = Histogram(
    "metaforge_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

_PROM_OBJECTS = PromCounter(
    "metaforge_objects_created_total",
    "Object creation attempts by record type and outcome",
    ["type", "outcome"],
)


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"
    p = re.sub(r"^(/api/v1/types)/[^/]+", r"\1/:type", p)
    p = re.sub(r"^(/api/v1/objects)/[^/]+/[^/]+/[^/]+$", r"\1/:type/:name/:method", p)
    p = re.sub(r"^(/api/v1/objects)/[^/]+/[^/]+$", r"\1/:type/:name", p)
    p = re.sub(r"^(/api/v1/objects)/[^/]+$", r"\1/:type", p)
    p = re.sub(r"^(/api/v1/models)/[^/]+", r"\1/:model", p)
    return p


def reset_metrics() -> None:
    """
    Test helper: clears in-process counters to avoid cross-test leakage.
    Prometheus counters are process-global and only ever grow.
    """
    _REQUESTS.clear()
    _OBJECTS.clear()
    _NAMED.clear()


def inc_http(method: str, path: str, status: Optional[int] = None, duration_s: Optional[float] = None) -> None:
    m = (method or "UNKNOWN").upper()
    p = normalize_path(path)
    s = status if status is not None else "unknown"

    _REQUESTS["requests_total"] += 1
    _REQUESTS[f"requests_{m}"] += 1
    _REQUESTS[f"path_{p}|{s}"] += 1
    _PROM_REQUESTS.labels(method=m, path=p, status=str(s)).inc()
    if duration_s is not None:
        _PROM_DURATION.labels(method=m, path=p).observe(duration_s)


def inc_creation(type_name: str, success: bool) -> None:
    outcome = "success" if success else "failure"
    _OBJECTS[f"create_{outcome}"] += 1
    _OBJECTS[f"create_{type_name or 'unknown'}|{outcome}"] += 1
    _PROM_OBJECTS.labels(type=type_name or "unknown", outcome=outcome).inc()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def snapshot_requests() -> Dict[str, int]:
    return dict(_REQUESTS)


def snapshot_objects() -> Dict[str, int]:
    return dict(_OBJECTS)


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)
