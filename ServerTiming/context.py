"""
Request Context for ServerTiming.

Binds the per-request Header to the request's context.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any

from starlette.requests import HTTPConnection

from ServerTiming.header import Header


STATE_KEY = "server_timing"

_header_ctx: ContextVar[Header | None] = ContextVar("server_timing", default=None)


def get_server_timing() -> Header | None:
    """Get the Server-Timing header of the current request, if any."""
    return _header_ctx.get()


def from_request(request: HTTPConnection) -> Header | None:
    """Get the Server-Timing header bound to a request, if any."""
    return getattr(request.state, STATE_KEY, None)


def bind_server_timing(scope: dict[str, Any], header: Header) -> Token:
    """
    Bind a header to the current context and to the request scope.

    Returns the context token to pass to unbind_server_timing().
    """
    scope.setdefault("state", {})[STATE_KEY] = header
    return _header_ctx.set(header)


def unbind_server_timing(token: Token) -> None:
    """Restore the context as it was before bind_server_timing()."""
    _header_ctx.reset(token)


@contextmanager
def use_server_timing(header: Header | None = None) -> Iterator[Header]:
    """
    Make a header current for code running outside the middleware.

    Example:
        ```python
        with use_server_timing() as header:
            with timing("job"):
                run_job()

        print(header)
        ```
    """
    header = header if header is not None else Header()
    token = _header_ctx.set(header)

    try:
        yield header
    finally:
        _header_ctx.reset(token)
