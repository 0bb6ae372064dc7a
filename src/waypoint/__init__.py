"""Waypoint — a declarative request router.

Nested route definitions, placeholder patterns compiled to anchored
regular expressions, model binding, URL generation and middleware.

Basic usage::

    from waypoint import IncomingEvent, Router

    router = Router()
    router.get("/users/:id(\\d+)", show_user, name="users.show")

    response = await router.dispatch(IncomingEvent.create("GET", "/users/42"))
    router.generate("users.show", {"id": 42})   # "/users/42"
"""

__version__ = "0.1.0.dev0"
__all__ = [
    "ConfigurationError",
    "HTTPError",
    "IncomingEvent",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "OutgoingResponse",
    "ResourceNotFound",
    "Route",
    "RouteBinding",
    "RouteCollection",
    "RouteContext",
    "RouteDefinition",
    "RouteEvent",
    "RouteEventBus",
    "RouteMapper",
    "RouteNotFound",
    "Router",
    "RouterConfig",
    "RouterError",
    "RouterErrorHandler",
    "WaypointError",
]

# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "ConfigurationError": "waypoint.errors",
    "HTTPError": "waypoint.errors",
    "IncomingEvent": "waypoint.http.event",
    "MethodNotAllowed": "waypoint.errors",
    "Middleware": "waypoint.middleware.protocol",
    "Next": "waypoint.middleware.protocol",
    "OutgoingResponse": "waypoint.http.response",
    "ResourceNotFound": "waypoint.errors",
    "Route": "waypoint.routing.route",
    "RouteBinding": "waypoint.routing.route",
    "RouteCollection": "waypoint.routing.collection",
    "RouteContext": "waypoint.middleware.protocol",
    "RouteDefinition": "waypoint.routing.definition",
    "RouteEvent": "waypoint.events",
    "RouteEventBus": "waypoint.events",
    "RouteMapper": "waypoint.routing.mapper",
    "RouteNotFound": "waypoint.errors",
    "Router": "waypoint.routing.router",
    "RouterConfig": "waypoint.config",
    "RouterError": "waypoint.errors",
    "RouterErrorHandler": "waypoint.error_handler",
    "WaypointError": "waypoint.errors",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    module_path = _LAZY_IMPORTS.get(name)
    if module_path is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_path), name)
