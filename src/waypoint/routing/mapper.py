"""Route mapper — flattens nested definitions into compiled routes.

Expansion runs depth first. Each definition is expanded across its
path, method, protocol and domain values (in that nesting order), merged
with its parent's scope, and either descended into (groups) or
validated into ``RouteOptions`` (leaves).
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from waypoint._internal.types import DependencyResolver
from waypoint.errors import ConfigurationError
from waypoint.routing.constants import GET, HTTP_METHODS
from waypoint.routing.definition import (
    RouteDefinition,
    as_list,
    join_paths,
    merge_definitions,
    merge_maps,
    normalize_name,
)
from waypoint.routing.route import Route, RouteOptions

if TYPE_CHECKING:
    from waypoint.config import RouterConfig

logger = logging.getLogger("waypoint.routing")

type DefinitionLike = RouteDefinition | Mapping[str, Any]


class RouteMapper:
    """Turns ``RouteDefinition`` trees into configured ``Route`` objects.

    Router-wide settings (prefix, strict, rules, defaults, bindings,
    matchers, dispatchers, response resolver) come from ``config``.
    """

    def __init__(
        self,
        config: RouterConfig,
        resolver: DependencyResolver | None = None,
    ) -> None:
        if config.max_depth <= 0:
            msg = "Maximum depth must be a positive integer."
            raise ConfigurationError(msg)
        self.config = config
        self.resolver = resolver

    def to_routes(self, definitions: Iterable[DefinitionLike]) -> list[Route]:
        routes = [
            self.make_route(self.to_route_options(definition))
            for definition in self.flatten(definitions)
        ]
        logger.debug("Mapped %d route(s)", len(routes))
        return routes

    def make_route(self, options: RouteOptions) -> Route:
        config = self.config
        return (
            Route.create(options)
            .set_matchers(config.matchers)
            .set_dispatchers(config.dispatchers)
            .set_resolver(self.resolver)
            .set_response_resolver(config.response_resolver)
            .set_offload_bindings(config.offload_sync_bindings)
        )

    # -- Flattening --

    def flatten(
        self,
        definitions: Iterable[DefinitionLike],
        parent: RouteDefinition | None = None,
        depth: int = 0,
    ) -> list[RouteDefinition]:
        """Expand and merge *definitions* into leaf definitions.

        Raises:
            ConfigurationError: Nesting exceeds ``config.max_depth``.
        """
        if depth >= self.config.max_depth:
            msg = f"Maximum route definition depth of {self.config.max_depth} exceeded."
            raise ConfigurationError(msg)

        leaves: list[RouteDefinition] = []
        for item in definitions:
            definition = RouteDefinition.coerce(item)
            for expanded in self.expand(definition, parent):
                merged = merge_definitions(parent, expanded) if parent is not None else expanded
                if merged.children is None:
                    leaves.append(merged)
                    continue
                scope = replace(merged, children=None)
                leaves.extend(self.flatten(merged.children, scope, depth + 1))
        return leaves

    def expand(
        self,
        definition: RouteDefinition,
        parent: RouteDefinition | None = None,
    ) -> list[RouteDefinition]:
        """One definition per (path, method, protocol, domain) combination."""
        paths = as_list(definition.path) or [None]
        methods = self.gather_methods(definition, parent)
        protocols = as_list(definition.protocol) or [None]
        domains = as_list(definition.domain) or [None]
        return [
            replace(
                definition,
                path=path,
                method=method,
                methods=(),
                protocol=protocol,
                domain=domain,
            )
            for path, method, protocol, domain in itertools.product(
                paths, methods, protocols, domains
            )
        ]

    @staticmethod
    def gather_methods(
        definition: RouteDefinition,
        parent: RouteDefinition | None = None,
    ) -> list[str]:
        """``method`` and ``methods`` combined, deduplicated in first-seen order.

        Falls back to the parent's method, then ``GET``.
        """
        declared = (*as_list(definition.method), *definition.methods)
        values = [m.upper() for m in declared if m]
        if not values:
            values = [parent.method.upper() if parent and parent.method else GET]
        return list(dict.fromkeys(values))

    # -- Validation --

    def to_route_options(self, definition: RouteDefinition) -> RouteOptions:
        """Validate a leaf definition and apply router-wide fallbacks.

        Raises:
            ConfigurationError: Missing path, unknown method, or neither
                a handler nor a redirect.
        """
        config = self.config
        if definition.path is None:
            msg = f"Route definition must have a path: {definition!r}"
            raise ConfigurationError(msg)
        if definition.method not in HTTP_METHODS:
            msg = (
                f"Invalid method({definition.method}), "
                f"valid methods are({','.join(HTTP_METHODS)})"
            )
            raise ConfigurationError(msg)
        if definition.handler is None and definition.redirect is None:
            msg = (
                "Route definition must have one of the following: action, or redirect "
                f"({definition.method} {definition.path})"
            )
            raise ConfigurationError(msg)

        return RouteOptions(
            path=join_paths(config.prefix, definition.path),
            method=definition.method,
            handler=definition.handler,
            name=normalize_name(definition.name),
            domain=definition.domain,
            protocol=definition.protocol,
            alias=tuple(join_paths(config.prefix, alias) for alias in definition.alias),
            rules=merge_maps(config.rules, definition.rules),
            defaults=merge_maps(config.defaults, definition.defaults),
            bindings=merge_maps(config.bindings, definition.bindings),
            middleware=definition.middleware,
            exclude_middleware=definition.exclude_middleware,
            redirect=definition.redirect,
            fallback=bool(definition.fallback),
            strict=config.strict if definition.strict is None else definition.strict,
            is_internal_header=definition.is_internal_header,
        )
