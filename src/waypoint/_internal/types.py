"""Shared type aliases and capability protocols used across waypoint modules."""

from collections.abc import Callable
from typing import Any, Protocol, TypeAlias, runtime_checkable

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Builds an outgoing response from keyword options (status_code, headers, content)
ResponseResolver: TypeAlias = Callable[..., Any]

# Resolves a bound path value to a model: (key, value, resolver) -> model | None
BindingResolver: TypeAlias = Callable[..., Any]

# Route parameters after binding
RouteParams: TypeAlias = dict[str, Any]


@runtime_checkable
class DependencyResolver(Protocol):
    """Anything that can build instances of a class.

    The router never depends on a specific container. Hosts pass an object
    with a ``resolve`` method; returning ``None`` means "not registered",
    and the router falls back to calling the class with no arguments.
    """

    def resolve(self, key: Any) -> Any: ...


@runtime_checkable
class BoundModel(Protocol):
    """A model class that knows how to load itself from a route value."""

    @classmethod
    def resolve_route_binding(cls, key: str, value: Any, resolver: Any) -> Any: ...
