"""
Server-Timing Header for ServerTiming.

Ordered, thread-safe collection of metrics plus the header codec.
"""

import math
import re
import threading
from collections.abc import Iterator

from ServerTiming.metric import PARAM_DESC, PARAM_DUR, Metric
from ServerTiming.syntax import parse_value_and_params, split_list


HEADER_KEY = "Server-Timing"

_DURATION_RE = re.compile(r"\d+(?:\.\d+)?")


class Header:
    """
    A Server-Timing header value.

    Metrics may be added from any number of threads or tasks; each
    addition is serialized by a lock, and encoding works on a consistent
    snapshot of the list. Use str() to get the value to send.

    Example:
        ```python
        header = Header()
        header.new_metric("cache").with_desc("Cache read").start()
        ...
        response.headers[HEADER_KEY] = str(header)
        ```
    """

    def __init__(self, metrics: list[Metric] | None = None) -> None:
        self.metrics: list[Metric] = list(metrics) if metrics else []
        self._lock = threading.Lock()

    def new_metric(self, name: str) -> Metric:
        """Create a metric, append it to the header and return it."""
        return self.add(Metric(name=name))

    def add(self, metric: Metric) -> Metric:
        """Append an existing metric."""
        with self._lock:
            self.metrics.append(metric)
        return metric

    def snapshot(self) -> list[Metric]:
        """Return a copy of the current metric list."""
        with self._lock:
            return list(self.metrics)

    def encode(self) -> str:
        """Encode as a Server-Timing header value."""
        return ",".join(metric.encode() for metric in self.snapshot())

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"Header(metrics={self.snapshot()!r})"

    def __iter__(self) -> Iterator[Metric]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self.metrics)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Header):
            return NotImplemented
        return self.snapshot() == other.snapshot()


def parse_header(value: str) -> Header:
    """
    Parse a Server-Timing header value.

    The "desc" parameter becomes Metric.desc and a numeric "dur" becomes
    Metric.duration in milliseconds. A "dur" that is not a number stays in
    Metric.extra as it was.

    Raises:
        HeaderFormatError: If the value is structurally malformed.
    """
    metrics = []

    for element in split_list(value):
        name, extra = parse_value_and_params(element)
        metric = Metric(name=name, extra=extra)

        if PARAM_DESC in extra:
            metric.desc = extra.pop(PARAM_DESC)

        if PARAM_DUR in extra and _DURATION_RE.fullmatch(extra[PARAM_DUR]):
            duration = float(extra[PARAM_DUR])
            # Digit runs too long for a float overflow to inf; keep them as text.
            if math.isfinite(duration):
                metric.duration = duration
                del extra[PARAM_DUR]

        metrics.append(metric)

    return Header(metrics)
