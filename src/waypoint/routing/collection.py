"""Route collection — indexed routes and request matching.

Routes are indexed three ways: by ``method + path`` (all routes), by
method then path, and by name. Later additions overwrite earlier ones
under the same key. Routes are never removed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from waypoint._internal.types import ResponseResolver
from waypoint.errors import MethodNotAllowed, RouteNotFound
from waypoint.routing.constants import CALLABLE, HTTP_METHODS, OPTIONS
from waypoint.routing.dispatchers import callable_dispatcher
from waypoint.routing.route import Route, RouteBinding, RouteOptions

logger = logging.getLogger("waypoint.routing")


class RouteCollection:
    """All compiled routes of one router.

    ``match`` resolves an event to a route, answers ``OPTIONS`` for paths
    served under other methods, and raises ``MethodNotAllowed`` or
    ``RouteNotFound`` otherwise.
    """

    def __init__(
        self,
        routes: Iterable[Route] = (),
        *,
        response_resolver: ResponseResolver | None = None,
    ) -> None:
        self._routes: dict[str, Route] = {}
        self._by_method: dict[str, dict[str, Route]] = {}
        self._by_name: dict[str, Route] = {}
        self.response_resolver = response_resolver
        for route in routes:
            self.add(route)

    @classmethod
    def create(
        cls,
        routes: Iterable[Route] = (),
        *,
        response_resolver: ResponseResolver | None = None,
    ) -> RouteCollection:
        return cls(routes, response_resolver=response_resolver)

    # -- Indexing --

    def add(self, route: Route) -> RouteCollection:
        self._routes[f"{route.method}{route.path}"] = route
        self._by_method.setdefault(route.method, {})[route.path] = route
        # Implicit HEAD twins share their GET route's name but never own it
        if route.name and not route.options.is_internal_header:
            self._by_name[route.name] = route
        return self

    def get_routes(self) -> list[Route]:
        return list(self._routes.values())

    def get_routes_by_method(self, method: str | None) -> list[Route]:
        if not method:
            return []
        return list(self._by_method.get(method.upper(), {}).values())

    def get_by_name(self, name: str) -> Route | None:
        return self._by_name.get(name)

    def has_named_route(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    # -- Matching --

    def match(self, event: Any, including_method: bool = True) -> Route:
        """Find the route serving *event*.

        Raises:
            MethodNotAllowed: The path is served, but not under this method.
            RouteNotFound: Nothing serves the path under any method.
        """
        route = self._match_against(self.get_routes_by_method(event.method), event, including_method)
        if route is not None:
            return route

        candidates = self._alternate_routes(event)
        if not candidates:
            logger.debug("No route for %s %s", event.method, event.decoded_pathname)
            msg = f"Route {event.decoded_pathname} could not be found."
            raise RouteNotFound(msg)

        methods = list(candidates)
        if event.is_method(OPTIONS):
            return self._options_route(methods, next(iter(candidates.values())))

        logger.debug(
            "Method %s not allowed for %s (allowed: %s)",
            event.method,
            event.decoded_pathname,
            ", ".join(methods),
        )
        msg = (
            f"Method {event.method} is not supported for {event.decoded_pathname}. "
            f"Supported methods: {', '.join(methods)}."
        )
        raise MethodNotAllowed(methods, detail=msg)

    @staticmethod
    def _match_against(routes: list[Route], event: Any, including_method: bool) -> Route | None:
        # Stable: fallbacks sink to the end, everything else keeps insertion order
        for route in sorted(routes, key=lambda r: r.is_fallback()):
            if route.matches(event, including_method):
                return route
        return None

    def _alternate_routes(self, event: Any) -> dict[str, Route]:
        """Routes under other methods that would match, keyed by method."""
        found: dict[str, Route] = {}
        for method in HTTP_METHODS:
            if event.is_method(method):
                continue
            routes = [
                route
                for route in self.get_routes_by_method(method)
                if not route.options.is_internal_header
            ]
            route = self._match_against(routes, event, False)
            if route is not None:
                found[method] = route
        return found

    def _options_route(self, methods: list[str], template: Route) -> Route:
        """Synthetic ``OPTIONS`` route answering ``{"Allow": "GET,PUT"}``.

        The same value is sent as the ``Allow`` header.

        It reuses the path pattern of a route that matched, so binding
        works, but none of that route's model bindings.
        """
        allow = ",".join(methods)

        async def allow_methods(binding: RouteBinding) -> Any:
            return await binding.route.make_response(
                status_code=200,
                content={"Allow": allow},
                headers={"Allow": allow},
            )

        options = RouteOptions(
            path=template.path,
            method=OPTIONS,
            handler=allow_methods,
            domain=template.domain,
            protocol=template.protocol,
            alias=template.options.alias,
            rules=template.options.rules,
            defaults=template.options.defaults,
            strict=template.is_strict(),
        )
        return (
            Route.create(options)
            .set_matchers(template.matchers)
            .set_dispatchers({CALLABLE: callable_dispatcher})
            .set_response_resolver(self.response_resolver)
        )

    # -- Introspection --

    def dump(self) -> list[dict[str, Any]]:
        """Path-sorted snapshot of every public route."""
        rows = [route.to_dict() for route in self if not route.options.is_internal_header]
        return sorted(rows, key=lambda row: row["path"])

    def to_json(self) -> list[dict[str, Any]]:
        return [route.to_dict() for route in self]
