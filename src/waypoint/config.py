"""Router configuration.

One frozen ``RouterConfig`` carries every router-wide setting: prefix and
strictness, global rules, defaults and bindings, matchers, dispatchers,
middleware and the response resolver.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from waypoint._internal.types import BindingResolver, ResponseResolver
from waypoint.errors import ConfigurationError
from waypoint.http.response import make_response
from waypoint.routing.constants import CALLABLE, CONTROLLER, DISPATCHER_TYPES
from waypoint.routing.definition import RouteDefinition
from waypoint.routing.dispatchers import Dispatcher, callable_dispatcher, controller_dispatcher
from waypoint.routing.matchers import DEFAULT_MATCHERS, Matcher


def _default_dispatchers() -> dict[str, Dispatcher]:
    return {CALLABLE: callable_dispatcher, CONTROLLER: controller_dispatcher}


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(prefix="/api", strict=True, rules={"id": r"\\d+"})
    """

    # Paths
    prefix: str = ""
    strict: bool = False
    max_depth: int = 5  # Definition nesting bound

    # Global fallbacks, merged under per-route values
    rules: Mapping[str, str | re.Pattern[str]] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)
    bindings: Mapping[str, BindingResolver] = field(default_factory=dict)

    # Matching and dispatch
    matchers: tuple[Matcher, ...] = DEFAULT_MATCHERS
    dispatchers: Mapping[str, Dispatcher] = field(default_factory=_default_dispatchers)

    # Middleware
    middleware: tuple[Any, ...] = ()
    skip_middleware: bool = False

    # Responses for redirects and synthetic OPTIONS answers
    response_resolver: ResponseResolver | None = make_response

    # Run synchronous binding resolvers in a worker thread (anyio)
    offload_sync_bindings: bool = False

    # Definitions registered when the router is created
    definitions: tuple[RouteDefinition | Mapping[str, Any], ...] = ()

    def __post_init__(self) -> None:
        if self.max_depth <= 0:
            msg = f"max_depth must be a positive integer, got {self.max_depth}."
            raise ConfigurationError(msg)
        unknown = sorted(set(self.dispatchers) - DISPATCHER_TYPES)
        if unknown:
            msg = (
                f"Unknown dispatcher type(s): {', '.join(unknown)}. "
                f"Expected one of: {', '.join(sorted(DISPATCHER_TYPES))}."
            )
            raise ConfigurationError(msg)
        object.__setattr__(self, "matchers", tuple(self.matchers))
        object.__setattr__(self, "middleware", tuple(self.middleware))
        object.__setattr__(self, "definitions", tuple(self.definitions))

    def with_options(self, **changes: Any) -> RouterConfig:
        """Return a copy with *changes* applied."""
        return replace(self, **changes)
