"""
Server-Timing Middleware for ServerTiming.

Adds Server-Timing headers for performance metrics.
"""

import logging
import time
from dataclasses import dataclass

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ServerTiming.base import ServerTimingBaseMiddleware
from ServerTiming.context import bind_server_timing, get_server_timing, unbind_server_timing
from ServerTiming.header import HEADER_KEY, Header
from ServerTiming.metric import Metric


logger = logging.getLogger("server_timing")


def timing(name: str, desc: str = "") -> Metric:
    """
    Create a metric on the current request for timing a code block.

    The metric starts when the block is entered and stops when it exits,
    whether normally or by an exception. Outside a request the metric is
    detached and not recorded anywhere.
    """
    header = get_server_timing()
    if header is None:
        logger.debug(f"No active Server-Timing header, metric {name!r} will not be recorded")
        return Metric(name=name, desc=desc)

    return header.new_metric(name).with_desc(desc)


@dataclass
class ServerTimingConfig:
    """
    Configuration for server timing middleware.

    Attributes:
        disable_headers: Never send the header; metrics are still recorded.
        include_total: Add a "total" metric covering request start to commit.
        log_metrics: Log the header value when the response is committed.
        logger_name: Name of the logger to use.
    """

    disable_headers: bool = False
    include_total: bool = False
    log_metrics: bool = False
    logger_name: str = "server_timing"


class ServerTimingMiddleware(ServerTimingBaseMiddleware):
    """
    Middleware that adds Server-Timing headers.

    Creates a Header for every request and makes it available through
    get_server_timing() and request.state.server_timing. The header is
    serialized once, when the response status is committed, and whatever
    has been recorded by then is what gets sent. Metrics recorded after
    that point are kept on the Header but never reach the client.

    Example:
        ```python
        from ServerTiming import ServerTimingMiddleware, get_server_timing, timing

        app.add_middleware(ServerTimingMiddleware)

        @app.get("/")
        async def handler():
            with timing("db", "Database query"):
                result = await db.query(...)

            header = get_server_timing()
            m = header.new_metric("render").start()
            output = render(result)
            m.stop()

            return output
        ```
    """

    def __init__(
        self,
        app: ASGIApp,
        config: ServerTimingConfig | None = None,
        disable_headers: bool | None = None,
        include_total: bool | None = None,
        exclude_paths: set[str] | None = None,
    ) -> None:
        super().__init__(app, exclude_paths=exclude_paths)
        self.config = config or ServerTimingConfig()

        if disable_headers is not None:
            self.config.disable_headers = disable_headers
        if include_total is not None:
            self.config.include_total = include_total

        self._logger = logging.getLogger(self.config.logger_name)

    def _commit(self, message: Message, header: Header, started_at: float, path: str) -> None:
        """Write the Server-Timing value into a response start message."""
        if self.config.include_total:
            header.add(Metric(name="total", duration=(time.perf_counter() - started_at) * 1000))

        value = header.encode()

        if self.config.log_metrics and value:
            self._logger.info(f"{path} {HEADER_KEY}: {value}")

        if not value or self.config.disable_headers:
            self._logger.debug(f"Not sending {HEADER_KEY} for {path} ({len(header)} metrics)")
            return

        message.setdefault("headers", [])
        headers = MutableHeaders(scope=message)
        try:
            headers[HEADER_KEY] = value
        except UnicodeEncodeError:
            self._logger.warning(
                f"Dropping {HEADER_KEY} for {path}, value is not latin-1: {value!r}"
            )

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        header = Header()
        token = bind_server_timing(scope, header)
        started_at = time.perf_counter()
        path = scope.get("path", "")
        committed = False

        async def send_wrapper(message: Message) -> None:
            nonlocal committed

            if not committed:
                if message["type"] == "http.response.start":
                    committed = True
                    self._commit(message, header, started_at, path)
                elif message["type"] == "http.response.body":
                    # Body without a start message: commit the default status first.
                    committed = True
                    start_message: Message = {
                        "type": "http.response.start",
                        "status": 200,
                        "headers": [],
                    }
                    self._commit(start_message, header, started_at, path)
                    await send(start_message)

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            self._logger.debug(
                f"{type(exc).__name__} raised for {path}, committed={committed}, "
                f"{len(header)} metrics recorded"
            )
            raise
        finally:
            unbind_server_timing(token)
