"""
In-process counters exported in Prometheus text format.

Counters only go up; reset() exists for tests. Label values are kept as
strings so enum members and plain strings land on the same series.
"""

from __future__ import annotations

import re
import threading
from typing import Dict, Iterable, List, Optional, Tuple

LabelKey = Tuple[str, ...]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace("\"", "\\\"")


class Counter:
    def __init__(self, name: str, help_text: str = "", label_names: Optional[Iterable[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = tuple(label_names or ())
        self._series: Dict[LabelKey, float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Dict[str, object]]) -> LabelKey:
        labels = labels or {}
        unknown = set(labels) - set(self.label_names)
        if unknown:
            raise ValueError(f"{self.name}: unknown labels {sorted(unknown)}")
        return tuple(str(getattr(labels.get(name), "value", labels.get(name, ""))) for name in self.label_names)

    def inc(self, labels: Optional[Dict[str, object]] = None, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counters can only increase")
        key = self._key(labels)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + float(amount)

    def value(self, labels: Optional[Dict[str, object]] = None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._series.get(key, 0.0)

    def render(self) -> List[str]:
        lines = []
        if self.help_text:
            lines.append(f"# HELP {self.name} {self.help_text}")
        lines.append(f"# TYPE {self.name} counter")
        with self._lock:
            series = sorted(self._series.items())
        for key, amount in series:
            if self.label_names:
                pairs = ",".join(f'{name}="{_escape(val)}"' for name, val in zip(self.label_names, key))
                lines.append(f"{self.name}{{{pairs}}} {amount}")
            else:
                lines.append(f"{self.name} {amount}")
        return lines

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class MetricsRegistry:
    def __init__(self):
        self.counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str = "", label_names: Optional[Iterable[str]] = None) -> Counter:
        with self._lock:
            if name not in self.counters:
                self.counters[name] = Counter(name, help_text, label_names)
            return self.counters[name]

    def export_prometheus(self) -> str:
        lines: List[str] = []
        for counter in self.counters.values():
            lines.extend(counter.render())
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        for counter in self.counters.values():
            counter.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter(
    "http_requests_total", "HTTP requests by method, route and status", ["method", "path", "status"]
)
access_decisions_total = METRICS.counter(
    "access_decisions_total", "Startup detail reads by access mode", ["mode"]
)
subscription_mutations_total = METRICS.counter(
    "subscription_mutations_total", "Subscription changes: created, reactivated, deactivated, conflict", ["type"]
)
view_events_failed_total = METRICS.counter(
    "view_events_failed_total", "View events that could not be recorded"
)


_NUMERIC_SEGMENT = re.compile(r"^\d+$")
_UUID_SEGMENT = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


def normalize_path(path: str) -> str:
    """Collapse id-like segments to :id so each route is one series."""
    segments = [
        ":id" if _NUMERIC_SEGMENT.match(segment) or _UUID_SEGMENT.match(segment) else segment
        for segment in path.split("/")
        if segment
    ]
    return "/" + "/".join(segments)
