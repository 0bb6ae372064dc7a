"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(context: RouteContext, next: Next) -> Any

Router-wide middleware (``Router.use``) runs before route middleware.
Routes opt out of specific middleware with ``exclude_middleware``.
"""

from waypoint.middleware.protocol import Middleware, Next, RouteContext

__all__ = [
    "Middleware",
    "Next",
    "RouteContext",
]
