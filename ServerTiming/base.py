"""
Base ASGI Middleware for ServerTiming.

Shared plumbing for middlewares that need to see the raw send channel.
"""

from abc import ABC, abstractmethod

from starlette.types import ASGIApp, Receive, Scope, Send


class ServerTimingBaseMiddleware(ABC):
    """
    Base class for pure ASGI middlewares.

    Subclasses implement handle(), which is only called for HTTP requests
    whose path is not excluded. Everything else goes straight to the app.
    """

    def __init__(self, app: ASGIApp, exclude_paths: set[str] | None = None) -> None:
        self.app = app
        self.exclude_paths = exclude_paths or set()

    def should_skip(self, scope: Scope) -> bool:
        """Check if the request should bypass this middleware."""
        if scope["type"] != "http":
            return True

        return scope.get("path", "") in self.exclude_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self.should_skip(scope):
            await self.app(scope, receive, send)
            return

        await self.handle(scope, receive, send)

    @abstractmethod
    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Process an instrumented HTTP request."""
