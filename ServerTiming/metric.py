"""
Server-Timing Metric for ServerTiming.

A single named timing measurement with start/stop semantics.
"""

import math
import time
from dataclasses import dataclass, field

from ServerTiming.syntax import encode_param, header_safe


# Reserved server-timing-param-name values.
PARAM_DESC = "desc"
PARAM_DUR = "dur"


def format_duration(duration: float) -> str:
    """Format milliseconds as an integer when whole, else a minimal decimal."""
    if duration == int(duration):
        return str(int(duration))

    return f"{duration:.6f}".rstrip("0").rstrip(".")


@dataclass
class Metric:
    """
    A single metric of the Server-Timing header.

    Attributes:
        name: Metric name, an RFC7230 token such as "sql-1".
        duration: Duration in milliseconds. Zero means not reported.
        desc: Human-readable description such as "SQL Primary".
        extra: Extension parameters. A "desc" or "dur" key here takes
            priority over the dedicated field when encoding.

    Example:
        ```python
        with header.new_metric("db").with_desc("Database query"):
            rows = await db.fetch(...)

        m = header.new_metric("render").start()
        output = render(rows)
        m.stop()
        ```
    """

    name: str = ""
    duration: float = 0.0
    desc: str = ""
    extra: dict[str, str] = field(default_factory=dict)
    _started_at: float | None = field(default=None, init=False, compare=False, repr=False)

    def with_desc(self, desc: str) -> "Metric":
        """Set the description."""
        self.desc = desc
        return self

    def start(self) -> "Metric":
        """Start the timer, replacing any earlier start."""
        self._started_at = time.perf_counter()
        return self

    def stop(self) -> "Metric":
        """
        Stop the timer and record the duration.

        Does nothing unless start() was called since the last stop, so the
        first stop after a start is the one that counts.
        """
        if self._started_at is not None:
            self.duration = (time.perf_counter() - self._started_at) * 1000  # ms
            self._started_at = None
        return self

    def stop_unless_stopped(self) -> "Metric":
        """Stop the timer if it is running; never recompute a recorded duration."""
        if self._started_at is None:
            return self
        return self.stop()

    @property
    def running(self) -> bool:
        """Check if the timer has been started and not yet stopped."""
        return self._started_at is not None

    def __enter__(self) -> "Metric":
        return self.start()

    def __exit__(self, *args) -> None:
        self.stop_unless_stopped()

    def _encoded_duration(self) -> str | None:
        """Return the dur value to send, or None if there is nothing to report."""
        if not math.isfinite(self.duration) or self.duration <= 0:
            return None

        formatted = format_duration(self.duration)
        # Below nanosecond resolution, indistinguishable from "not reported".
        if formatted == "0":
            return None
        return formatted

    def encode(self) -> str:
        """Encode as a single Server-Timing list element."""
        parts = [header_safe(self.name)]

        if self.desc and PARAM_DESC not in self.extra:
            parts.append(encode_param(PARAM_DESC, self.desc))

        duration = self._encoded_duration()
        if duration is not None and PARAM_DUR not in self.extra:
            parts.append(f"{PARAM_DUR}={duration}")

        for key, value in self.extra.items():
            parts.append(encode_param(header_safe(key), value))

        return ";".join(parts)

    def __str__(self) -> str:
        return self.encode()
