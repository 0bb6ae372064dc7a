"""Router — registration, dispatch and introspection in one facade.

Routes are registered fluently or by decorator::

    router = Router()
    router.get("/users/:id", show_user, name="users.show")

    @router.route("/users", methods=["POST"], name="users.create")
    async def create_user(event): ...

and dispatched end to end::

    response = await router.dispatch(event)

Dispatch runs match, then middleware, then bind, then the route action.
The binding of the request being dispatched lives in a ``ContextVar``,
so ``get_parameters()`` and ``get_current_route()`` are task-local.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from contextvars import ContextVar
from typing import Any

from waypoint._internal.invoke import invoke
from waypoint._internal.types import DependencyResolver, Handler, RouteParams
from waypoint.config import RouterConfig
from waypoint.errors import RouteNotFound, RouterError, UnboundEventError
from waypoint.events import ROUTE_MATCHED, ROUTING, EventEmitter, RouteEvent
from waypoint.middleware.protocol import RouteContext
from waypoint.routing.collection import RouteCollection
from waypoint.routing.constants import (
    ANY_METHODS,
    DELETE,
    FALLBACK_PATH,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
)
from waypoint.routing.definition import RouteDefinition, as_list
from waypoint.routing.mapper import DefinitionLike, RouteMapper
from waypoint.routing.route import Route, RouteBinding

logger = logging.getLogger("waypoint.routing")


class Router:
    """The routing facade.

    Args:
        config: Router-wide settings. Definitions in ``config.definitions``
            are registered immediately.
        resolver: Builds controller instances and is handed to binding
            resolvers. Optional.
        emitter: Receives ``ROUTING`` and ``ROUTE_MATCHED`` events. Optional.
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        resolver: DependencyResolver | None = None,
        emitter: EventEmitter | None = None,
    ) -> None:
        self.config = config or RouterConfig()
        self.resolver = resolver
        self.emitter = emitter
        self._mapper = RouteMapper(self.config, resolver)
        self._routes = RouteCollection(response_resolver=self.config.response_resolver)
        self._definitions: list[DefinitionLike] = []
        self._group: RouteDefinition | None = None
        self._middleware: list[Any] = list(self.config.middleware)
        self._named_middleware: dict[str, list[Any]] = {}
        self._current_route: ContextVar[Route | None] = ContextVar(
            f"waypoint_route_{id(self)}", default=None
        )
        self._current_binding: ContextVar[RouteBinding | None] = ContextVar(
            f"waypoint_binding_{id(self)}", default=None
        )
        if self.config.definitions:
            self.define(self.config.definitions)

    # -- Configuration --

    def configure(self, **changes: Any) -> Router:
        """Update the config used for routes registered from now on."""
        self.config = self.config.with_options(**changes)
        self._mapper = RouteMapper(self.config, self.resolver)
        self._routes.response_resolver = self.config.response_resolver
        if "middleware" in changes:
            self._middleware = list(self.config.middleware)
        return self

    def use(self, middleware: Any | Sequence[Any]) -> Router:
        """Add router-wide middleware, run before any route middleware."""
        self._middleware.extend(_as_middleware_list(middleware))
        return self

    def use_on(self, name: str | Iterable[str], middleware: Any | Sequence[Any]) -> Router:
        """Attach middleware to the routes with the given name(s)."""
        for route_name in as_list(name):
            self._named_middleware.setdefault(route_name, []).extend(
                _as_middleware_list(middleware)
            )
        return self

    def on(self, event_name: str, listener: Callable[[RouteEvent], Any]) -> Router:
        """Subscribe *listener* through the emitter, when it supports ``on``."""
        subscribe = getattr(self.emitter, "on", None)
        if subscribe is not None:
            subscribe(event_name, listener)
        return self

    # -- Groups --

    def group(self, path: str, **options: Any) -> Router:
        """Register following routes under *path* with shared *options*."""
        self._group = RouteDefinition.from_mapping({**options, "path": path})
        return self

    def no_group(self) -> Router:
        self._group = None
        return self

    # -- Registration --

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        **options: Any,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        ``GET`` routes also answer ``HEAD``, as with ``get()``.
        """

        def decorator(func: Handler) -> Handler:
            verbs = [m.upper() for m in methods or [GET]]
            if GET in verbs:
                self.get(path, func, **options)
                verbs.remove(GET)
            if verbs:
                self.match(path, func, verbs, **options)
            return func

        return decorator

    def match(
        self,
        path: str,
        handler: Any,
        methods: Sequence[str],
        **options: Any,
    ) -> Router:
        """Register *handler* for *path* under each of *methods*."""
        child = RouteDefinition.from_mapping(
            {**options, "path": path, "handler": handler, "methods": tuple(methods)}
        )
        definition = child if self._group is None else self._group.with_options(children=(child,))
        return self.define([definition])

    def get(self, path: str, handler: Any = None, **options: Any) -> Router:
        """Register a ``GET`` route plus its internal ``HEAD`` twin."""
        self.match(path, handler, [GET], **options)
        return self.match(path, handler, [HEAD], **{**options, "is_internal_header": True})

    def add(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.get(path, handler, **options)

    def page(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.get(path, handler, **options)

    def post(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, [POST], **options)

    def put(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, [PUT], **options)

    def patch(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, [PATCH], **options)

    def delete(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, [DELETE], **options)

    def options(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, [OPTIONS], **options)

    def any(self, path: str, handler: Any = None, **options: Any) -> Router:
        return self.match(path, handler, ANY_METHODS, **options)

    def fallback(self, handler: Any) -> Router:
        """Register a catch-all ``GET`` route, tried after every other route."""
        return self.get(FALLBACK_PATH, handler, fallback=True)

    def define(self, definitions: Iterable[DefinitionLike]) -> Router:
        """Map raw definitions (possibly nested) and add the resulting routes."""
        definitions = list(definitions)
        for route in self._mapper.to_routes(definitions):
            self._routes.add(route)
        self._definitions.extend(definitions)
        return self

    def set_routes(self, routes: RouteCollection) -> Router:
        if not isinstance(routes, RouteCollection):
            msg = "Parameter must be an instance of RouteCollection."
            raise RouterError(msg)
        routes.response_resolver = self.config.response_resolver
        self._routes = routes
        return self

    # -- Dispatch --

    async def dispatch(self, event: Any) -> Any:
        """Match *event*, run middleware, bind and run the route.

        Raises:
            RouteNotFound: No route serves the path.
            MethodNotAllowed: The path is served under other methods only.
            ResourceNotFound: A required binding found nothing.
        """
        route = await self.find_route(event)
        return await self._run_route(event, route)

    async def respond_with_route_name(self, event: Any, name: str) -> Any:
        """Run the route named *name* for *event*, skipping matching."""
        route = self._routes.get_by_name(name)
        if route is None:
            msg = f"No routes found with this name {name}."
            raise RouteNotFound(msg)
        self._current_route.set(route)
        return await self._run_route(event, route)

    async def find_route(self, event: Any) -> Route:
        """Emit ``ROUTING``, match *event* and remember the route for this task."""
        await self._emit(RouteEvent(type=ROUTING, event=event, router=self))
        route = self._routes.match(event)
        self._current_route.set(route)
        self._current_binding.set(None)
        logger.debug(
            "%s %s -> %s", event.method, event.decoded_pathname, route.name or route.path
        )
        return route

    def generate(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> str:
        """Build the URL of the route named *name*.

        Keyword options are passed to ``Route.generate`` (``query``,
        ``hash``, ``with_domain``, ``protocol``).
        """
        route = self._routes.get_by_name(name)
        if route is None:
            msg = f"No routes found with this name {name}."
            raise RouteNotFound(msg)
        return route.generate(params, **options)

    def gather_route_middleware(self, route: Route) -> list[Any]:
        """Router-wide, then named, then route middleware.

        Excluded middleware is dropped; duplicates keep their first position.
        """
        if self.config.skip_middleware:
            return []
        chain = [
            *self._middleware,
            *self._named_middleware.get(route.name or "", ()),
            *route.options.middleware,
        ]
        gathered: list[Any] = []
        for middleware in chain:
            if middleware is None or route.is_middleware_excluded(middleware):
                continue
            if middleware not in gathered:
                gathered.append(middleware)
        return gathered

    async def _run_route(self, event: Any, route: Route) -> Any:
        set_route_resolver = getattr(event, "set_route_resolver", None)
        if callable(set_route_resolver):
            set_route_resolver(lambda: route)
        await self._emit(RouteEvent(type=ROUTE_MATCHED, event=event, router=self, route=route))

        handler = self._bind_and_run
        for mw in reversed(self.gather_route_middleware(route)):
            outer = handler

            async def make_next(
                context: RouteContext, _mw: Any = mw, _next: Any = outer
            ) -> Any:
                return await invoke(_mw, context, _next)

            handler = make_next

        return await handler(RouteContext(event=event, route=route))

    async def _bind_and_run(self, context: RouteContext) -> Any:
        binding = await context.route.bind(context.event)
        self._current_binding.set(binding)
        return await context.route.run(binding)

    async def _emit(self, event: RouteEvent) -> None:
        if self.emitter is not None:
            await invoke(self.emitter.emit, event)

    # -- Introspection --

    def has_route(self, name: str | Iterable[str]) -> bool:
        """True when at least one of the given names is registered."""
        return any(self._routes.has_named_route(n) for n in as_list(name))

    def get_current_binding(self) -> RouteBinding:
        binding = self._current_binding.get()
        if binding is None:
            raise UnboundEventError
        return binding

    def get_parameters(self) -> RouteParams:
        """Bound parameters of the route being dispatched in this task.

        Raises:
            UnboundEventError: No event has been bound yet.
        """
        return dict(self.get_current_binding().params)

    def get_parameter(self, name: str, default: Any = None) -> Any:
        return self.get_current_binding().get_param(name, default)

    def get_current_route(self) -> Route | None:
        return self._current_route.get()

    def get_current_route_name(self) -> str | None:
        route = self.get_current_route()
        return route.name if route is not None else None

    def is_current_route_named(self, name: str) -> bool:
        return self.get_current_route_name() == name

    def get_routes(self) -> RouteCollection:
        return self._routes

    def get_definitions(self) -> list[DefinitionLike]:
        return list(self._definitions)

    def dump_routes(self) -> list[dict[str, Any]]:
        return self._routes.dump()


def _as_middleware_list(middleware: Any) -> list[Any]:
    if isinstance(middleware, list | tuple):
        return list(middleware)
    return [middleware]
