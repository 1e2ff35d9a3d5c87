"""
ServerTiming - Server-Timing headers for Starlette and FastAPI.

Record per-request performance metrics and send them to the client in
the Server-Timing response header.
"""

from ServerTiming.base import ServerTimingBaseMiddleware
from ServerTiming.context import (
    from_request,
    get_server_timing,
    use_server_timing,
)
from ServerTiming.header import HEADER_KEY, Header, parse_header
from ServerTiming.metric import Metric
from ServerTiming.server_timing import ServerTimingConfig, ServerTimingMiddleware, timing
from ServerTiming.syntax import HeaderFormatError


__version__ = "0.1.0"

__all__ = [
    "HEADER_KEY",
    "Header",
    "HeaderFormatError",
    "Metric",
    "ServerTimingBaseMiddleware",
    "ServerTimingConfig",
    "ServerTimingMiddleware",
    "from_request",
    "get_server_timing",
    "parse_header",
    "timing",
    "use_server_timing",
]
