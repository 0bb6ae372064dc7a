"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(context: RouteContext, next: Next) -> Any: ...

No base class required. The router checks the shape, not the lineage.

``context.route`` is the matched route. Parameters are not bound yet
when middleware runs; binding happens at the end of the chain, right
before the route action.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from waypoint.routing.route import Route


@dataclass(frozen=True, slots=True)
class RouteContext:
    """What flows through the middleware chain for one request."""

    event: Any
    route: Route


# The next step in the middleware chain
type Next = Callable[[RouteContext], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for route middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(context: RouteContext, next: Next) -> Any:
            start = time.monotonic()
            response = await next(context)
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RequireHttps:
            async def __call__(self, context: RouteContext, next: Next) -> Any:
                ...
    """

    async def __call__(self, context: RouteContext, next: Next) -> Any: ...
