"""Waypoint exception hierarchy.

Shared across the pattern compiler, Route, RouteMapper, RouteCollection
and Router so every module raises and catches the same types. Hosts map
errors to responses by type, never by message.
"""

from collections.abc import Iterable
from dataclasses import dataclass


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class RouterError(WaypointError):
    """Raised when the router is misused or misconfigured.

    Covers programming errors surfaced at dispatch time (an event
    without ``get_uri``, a missing response resolver) as well as the
    more specific subclasses below.
    """


class ConfigurationError(RouterError):
    """Raised when route definitions or router options are invalid.

    Typically raised while definitions are mapped at startup: missing
    path or action, unknown HTTP method, nesting deeper than ``max_depth``,
    unknown dispatcher type.
    """


class InvalidActionError(RouterError):
    """The route action is not a callable, a controller pair, or a component."""


class MissingDispatcherError(RouterError):
    """No dispatcher is registered for the resolved action type."""

    def __init__(self, action_type: str) -> None:
        self.action_type = action_type
        super().__init__(f"Dispatcher for {action_type!r} actions not found.")


class MissingParameterError(RouterError):
    """URL generation needs a parameter that was not supplied and has no default."""

    def __init__(self, param: str) -> None:
        self.param = param
        super().__init__(f'Missing required parameter "{param}".')


class UnboundEventError(RouterError):
    """Route parameters were read before any event was bound."""

    def __init__(self, detail: str = "Event is not bound.") -> None:
        super().__init__(detail)


@dataclass(frozen=True, slots=True)
class HTTPError(WaypointError):
    """An error that maps directly to an HTTP status code.

    Raised by the route collection and during parameter binding. The
    error handler catches these and turns them into responses.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class RouteNotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request under any method."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class ResourceNotFound(RouteNotFound):
    """404 — a binding resolver found nothing for a required path parameter.

    The resolver's own exception, if any, is chained as ``__cause__``.
    """

    def __init__(self, param: str, detail: str = "") -> None:
        super().__init__(detail or f'No value found for this key "{param}".')
        object.__setattr__(self, "param", param)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the path matched, but only under other methods.

    Carries the allowed methods (in discovery order) and an ``Allow``
    header, and embeds them in the detail string.
    """

    def __init__(self, allowed: Iterable[str], detail: str = "") -> None:
        methods = tuple(dict.fromkeys(allowed))
        allow_value = ", ".join(methods)
        default_detail = f"Method not allowed. Supported methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
        object.__setattr__(self, "allowed", methods)
