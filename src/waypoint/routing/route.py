"""Route — a compiled, immutable route definition.

A ``Route`` owns its ``RouteOptions`` and caches the constraints and
regexes derived from them. It never stores per-request state: ``bind``
returns a ``RouteBinding`` for one event and ``run`` consumes it, so a
single route serves concurrent requests safely.

Lifecycle per request::

    route.matches(event)            # pure, synchronous
    binding = await route.bind(event)
    response = await route.run(binding)
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from functools import cached_property
from typing import Any
from urllib.parse import quote

import httpx

from waypoint._internal.invoke import invoke, invoke_offloaded
from waypoint._internal.types import DependencyResolver, ResponseResolver
from waypoint.errors import (
    ConfigurationError,
    HTTPError,
    InvalidActionError,
    MissingDispatcherError,
    MissingParameterError,
    ResourceNotFound,
    RouterError,
)
from waypoint.routing.actions import (
    CallableAction,
    ComponentAction,
    ControllerAction,
    RedirectAction,
    RouteAction,
    action_label,
    resolve_action,
)
from waypoint.routing.constants import (
    CALLABLE,
    COMPONENT,
    CONTROLLER,
    DISPATCHER_TYPES,
    NOT_SET,
)
from waypoint.routing.dispatchers import DispatchContext, Dispatcher
from waypoint.routing.matchers import Matcher, method_matcher
from waypoint.routing.params import coerce_optional
from waypoint.routing.patterns import (
    PatternOptions,
    SegmentConstraint,
    domain_regex,
    get_domain_constraints,
    get_segments_constraints,
    group_name,
    path_regex,
    uri_constraints,
    uri_regex,
)

logger = logging.getLogger("waypoint.routing")

# Collapses "//" left by concatenation, leaving "scheme://" alone
_DOUBLE_SLASH = re.compile(r"(?<!:)/{2,}")

# Characters left unescaped when a value is substituted into a path
_PATH_SAFE = "/:@!$&'()*+,;=-._~"

_DEFAULT_URL = httpx.URL("http://localhost/")


@dataclass(frozen=True, slots=True)
class RouteOptions:
    """The validated, merged definition of one route.

    Built by the mapper (one per path/method/protocol/domain combination)
    or directly in tests. ``action`` is derived from ``handler`` and
    ``redirect`` once, at construction.
    """

    path: str
    method: str
    handler: Any = None
    name: str | None = None
    domain: str | None = None
    protocol: str | None = None
    alias: tuple[str, ...] = ()
    rules: Mapping[str, Any] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)
    bindings: Mapping[str, Any] = field(default_factory=dict)
    middleware: tuple[Any, ...] = ()
    exclude_middleware: tuple[Any, ...] = ()
    redirect: Any = None
    fallback: bool = False
    strict: bool = False
    is_internal_header: bool = False
    action: RouteAction | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "alias", tuple(self.alias))
        object.__setattr__(self, "middleware", tuple(self.middleware))
        object.__setattr__(self, "exclude_middleware", tuple(self.exclude_middleware))
        object.__setattr__(self, "action", resolve_action(self.handler, self.redirect))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RouteOptions:
        """Build options from a plain mapping; ``action`` is accepted for ``handler``."""
        values = dict(data)
        if "action" in values:
            values.setdefault("handler", values.pop("action"))
        known = {f.name for f in fields(cls) if f.init}
        unknown = sorted(set(values) - known)
        if unknown:
            msg = f"Unknown route option(s): {', '.join(unknown)}."
            raise ConfigurationError(msg)
        if "path" not in values or "method" not in values:
            msg = "Route options require both a path and a method."
            raise ConfigurationError(msg)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class RouteBinding:
    """The result of binding one event to a route.

    Holds everything ``Route.run`` and the dispatchers need for a single
    request: the matched route, the event, resolved path parameters,
    the query mapping and the request URL.
    """

    route: Route
    event: Any
    params: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    url: httpx.URL = field(default_factory=lambda: _DEFAULT_URL)

    # -- Parameters --

    def get_param(self, name: str, default: Any = None) -> Any:
        value = self.params.get(name)
        return default if value is None else value

    def has_param(self, name: str) -> bool:
        return self.params.get(name) is not None

    def has_params(self) -> bool:
        return any(value is not None for value in self.params.values())

    def defined_params(self) -> dict[str, Any]:
        """Parameters with a value; optional params that resolved to nothing are left out."""
        return {key: value for key, value in self.params.items() if value is not None}

    @property
    def param_names(self) -> list[str]:
        return list(self.params)

    # -- URL --

    @property
    def uri(self) -> str:
        return str(self.url)

    @property
    def path(self) -> str:
        return self.url.path

    @property
    def hash(self) -> str:
        return self.url.fragment

    @property
    def protocol(self) -> str:
        return self.route.protocol or self.url.scheme

    @property
    def domain(self) -> str:
        return self.url.host


class Route:
    """A compiled route.

    Created through ``Route.create(options)`` and configured with
    matchers, dispatchers and resolvers by the mapper before use.
    """

    def __init__(self, options: RouteOptions) -> None:
        if not isinstance(options, RouteOptions):
            msg = "Route options are required to create a Route instance."
            raise RouterError(msg)
        self.options = options
        self.matchers: tuple[Matcher, ...] = ()
        self.dispatchers: dict[str, Dispatcher] = {}
        self.resolver: DependencyResolver | None = None
        self.response_resolver: ResponseResolver | None = None
        self.offload_bindings = False

    @classmethod
    def create(cls, options: RouteOptions | Mapping[str, Any]) -> Route:
        if isinstance(options, Mapping):
            options = RouteOptions.from_mapping(options)
        return cls(options)

    # -- Options --

    @property
    def path(self) -> str:
        return self.options.path

    @property
    def method(self) -> str:
        return self.options.method

    @property
    def name(self) -> str | None:
        return self.options.name

    @property
    def domain(self) -> str | None:
        return self.options.domain

    @property
    def protocol(self) -> str | None:
        return self.options.protocol

    @property
    def action(self) -> RouteAction | None:
        return self.options.action

    def get_option(self, key: str, default: Any = None) -> Any:
        value = getattr(self.options, key, None)
        return default if value is None else value

    def has_domain(self) -> bool:
        return bool(self.options.domain)

    def is_fallback(self) -> bool:
        return self.options.fallback

    def is_strict(self) -> bool:
        return self.options.strict

    def is_http_only(self) -> bool:
        return (self.options.protocol or "").lower() == "http"

    def is_https_only(self) -> bool:
        return (self.options.protocol or "").lower() == "https"

    def is_secure(self) -> bool:
        return self.is_https_only()

    def is_middleware_excluded(self, middleware: Any) -> bool:
        return middleware in self.options.exclude_middleware

    # -- Configuration --

    def set_matchers(self, matchers: Iterable[Matcher]) -> Route:
        self.matchers = tuple(matchers)
        return self

    def set_dispatchers(self, dispatchers: Mapping[str, Dispatcher]) -> Route:
        unknown = sorted(set(dispatchers) - DISPATCHER_TYPES)
        if unknown:
            msg = f"Unknown dispatcher type(s): {', '.join(unknown)}."
            raise ConfigurationError(msg)
        self.dispatchers = dict(dispatchers)
        return self

    def set_resolver(self, resolver: DependencyResolver | None) -> Route:
        self.resolver = resolver
        return self

    def set_response_resolver(self, resolver: ResponseResolver | None) -> Route:
        self.response_resolver = resolver
        return self

    def set_offload_bindings(self, offload: bool) -> Route:
        self.offload_bindings = offload
        return self

    # -- Compiled patterns (cached) --

    @cached_property
    def segment_constraints(self) -> list[SegmentConstraint]:
        return get_segments_constraints(self.options)

    @cached_property
    def domain_constraint(self) -> SegmentConstraint | None:
        return get_domain_constraints(self.options)

    @cached_property
    def constraints(self) -> list[SegmentConstraint]:
        """Domain constraint (if any) followed by the path constraints."""
        return uri_constraints(self.options)

    @cached_property
    def _variants(self) -> tuple[PatternOptions, ...]:
        """Pattern sources for the primary path and each alias."""
        options = self.options
        return tuple(
            PatternOptions(
                path=path,
                domain=options.domain,
                strict=options.strict,
                rules=options.rules,
                defaults=options.defaults,
            )
            for path in (options.path, *options.alias)
        )

    @cached_property
    def path_regexes(self) -> tuple[re.Pattern[str], ...]:
        return tuple(path_regex(variant) for variant in self._variants)

    @cached_property
    def domain_regex(self) -> re.Pattern[str] | None:
        return domain_regex(self.options)

    @cached_property
    def uri_patterns(self) -> tuple[tuple[re.Pattern[str], list[SegmentConstraint]], ...]:
        """``(uri_regex, constraints)`` for the primary path and each alias."""
        return tuple((uri_regex(variant), uri_constraints(variant)) for variant in self._variants)

    @property
    def param_names(self) -> list[str]:
        return [c.param for c in self.constraints if c.param is not None]

    @property
    def optional_param_names(self) -> list[str]:
        return [c.param for c in self.constraints if c.param is not None and c.optional]

    def is_param_name_optional(self, name: str) -> bool:
        return name in self.optional_param_names

    # -- Matching --

    def matches(self, event: Any, including_method: bool = True) -> bool:
        """True when every matcher accepts *event*.

        A route without matchers never matches. ``including_method=False``
        skips the method matcher while probing alternate verbs.
        """
        if not self.matchers:
            return False
        return all(
            matcher(self, event)
            for matcher in self.matchers
            if including_method or matcher is not method_matcher
        )

    # -- Binding --

    async def bind(self, event: Any) -> RouteBinding:
        """Resolve path and domain parameters for *event*.

        Raises:
            RouterError: The event has no ``get_uri`` accessor.
            ResourceNotFound: A required parameter has no value, or its
                binding resolver found nothing.
        """
        get_uri = getattr(event, "get_uri", None)
        if not callable(get_uri):
            msg = "Event must have a `get_uri` method."
            raise RouterError(msg)

        params = await self._bind_parameters(get_uri(self.has_domain()))
        return RouteBinding(
            route=self,
            event=event,
            params=params,
            query=_query_mapping(getattr(event, "query", None)),
            url=getattr(event, "url", None) or _DEFAULT_URL,
        )

    async def _bind_parameters(self, uri: str) -> dict[str, Any]:
        found: re.Match[str] | None = None
        constraints = self.constraints
        for regex, variant_constraints in self.uri_patterns:
            found = regex.match(uri)
            if found is not None:
                constraints = variant_constraints
                break

        params: dict[str, Any] = {}
        index = 0
        for constraint in constraints:
            if constraint.param is None:
                continue
            raw = found.group(group_name(index)) if found is not None else None
            index += 1
            value = coerce_optional(raw)
            if constraint.param in self.options.bindings:
                value = await self._resolve_binding(constraint, value)
            if value is None:
                value = constraint.default
            if value is None and not constraint.optional:
                raise ResourceNotFound(constraint.param)
            params[constraint.param] = value

        for name, default in self.options.defaults.items():
            if name not in params:
                params[name] = default
        return params

    async def _resolve_binding(self, constraint: SegmentConstraint, value: Any) -> Any:
        """Run the binding resolver for one parameter.

        An absent optional value skips the resolver. A resolver that
        raises is reported as ``ResourceNotFound`` with the original
        error chained.
        """
        if value is None and constraint.optional:
            return None

        binding = self.options.bindings[constraint.param]
        resolve = getattr(binding, "resolve_route_binding", binding)
        if not callable(resolve):
            msg = (
                "Binding must be either a class with a `resolve_route_binding` "
                "method or a callable."
            )
            raise RouterError(msg)

        key = constraint.binding_key
        call = invoke_offloaded if self.offload_bindings else invoke
        try:
            model = await call(resolve, key, value, self.resolver)
        except HTTPError:
            raise
        except Exception as exc:
            logger.debug("Binding resolver for %r raised %s", constraint.param, exc)
            raise ResourceNotFound(constraint.param) from exc

        if model is None and not constraint.optional:
            raise ResourceNotFound(constraint.param)
        return model

    # -- Running --

    async def run(self, binding: RouteBinding) -> Any:
        """Execute the route action for a bound request.

        Redirects resolve first, then components, controllers and plain
        callables, each through the dispatcher registered for its type.
        """
        match self.action:
            case RedirectAction(target=target):
                return await self._redirect(binding, target)
            case ComponentAction() as action:
                return await self._dispatch(COMPONENT, DispatchContext(binding, action))
            case ControllerAction(controller=controller) as action:
                instance = self._resolve_controller(controller)
                return await self._dispatch(
                    CONTROLLER, DispatchContext(binding, action, controller=instance)
                )
            case CallableAction() as action:
                return await self._dispatch(CALLABLE, DispatchContext(binding, action))
            case _:
                msg = f"Invalid action provided for route {self.method} {self.path}."
                raise InvalidActionError(msg)

    async def _dispatch(self, action_type: str, context: DispatchContext) -> Any:
        dispatcher = self.dispatchers.get(action_type)
        if dispatcher is None:
            raise MissingDispatcherError(action_type)
        return await invoke(dispatcher, context)

    def _resolve_controller(self, controller: type) -> Any:
        if self.resolver is not None:
            instance = self.resolver.resolve(controller)
            if instance is not None:
                return instance
        return controller()

    async def _redirect(self, binding: RouteBinding, target: Any, status: int = 302) -> Any:
        if isinstance(target, Mapping):
            if "location" in target:
                return await self._redirect(
                    binding, target["location"], int(target.get("status", status))
                )
            if len(target) != 1:
                msg = "Redirect mapping must hold a single {status: location} entry."
                raise RouterError(msg)
            ((code, location),) = target.items()
            return await self._redirect(binding, location, int(code))
        if callable(target):
            resolved = await invoke(target, self, binding.event)
            return await self._redirect(binding, resolved, status)
        if not target:
            msg = f"Redirect target for route {self.method} {self.path} is empty."
            raise RouterError(msg)
        return await self.make_response(status_code=status, headers={"Location": str(target)})

    async def make_response(self, **options: Any) -> Any:
        """Build a response through the configured response resolver."""
        if self.response_resolver is None:
            msg = "Outgoing response resolver is not set."
            raise RouterError(msg)
        return await invoke(self.response_resolver, **options)

    # -- URL generation --

    def generate(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        hash: str | None = None,
        with_domain: bool = False,
        protocol: str | None = None,
    ) -> str:
        """Build a URL for this route.

        Placeholders take ``params[name]``, then their default. Params
        that fill no placeholder join *query* in the query string.

        Raises:
            MissingParameterError: A required placeholder has no value.
        """
        params = dict(params or {})

        parts: list[str] = []
        for constraint in self.segment_constraints:
            if constraint.param is None:
                parts.append(constraint.match or "")
                continue
            value = _value_for(constraint, params)
            if value is not None:
                parts.append(f"{constraint.prefix or ''}{quote(str(value), safe=_PATH_SAFE)}")

        path = "/" + "/".join(parts)
        if parts and self.options.path.endswith("/"):
            path += "/"

        url = path
        if with_domain and self.domain_constraint is not None:
            url = f"{self._generate_host(self.domain_constraint, params, protocol)}{path}"

        url = _DOUBLE_SLASH.sub("/", url)

        consumed = {c.param for c in self.constraints if c.param is not None}
        leftovers = [(k, v) for k, v in params.items() if k not in consumed]
        query_string = _encode_query([*leftovers, *(query or {}).items()])
        if query_string:
            url = f"{url}?{query_string}"
        if hash:
            url = f"{url}#{hash.removeprefix('#')}"
        return url

    def _generate_host(
        self,
        domain: SegmentConstraint,
        params: Mapping[str, Any],
        protocol: str | None,
    ) -> str:
        if domain.param is None:
            host = domain.match or ""
        else:
            value = _value_for(domain, params)
            host = f"{domain.prefix or ''}{'' if value is None else value}{domain.suffix or ''}"
        scheme = protocol or self.options.protocol or "http"
        return f"{scheme}://{host}"

    # -- Introspection --

    def to_dict(self) -> dict[str, Any]:
        """Stable snapshot used by route dumps and ``str(route)``."""
        return {
            "path": self.path,
            "method": self.method,
            "action": action_label(self.action),
            "name": self.name or NOT_SET,
            "domain": self.domain or NOT_SET,
            "fallback": self.is_fallback(),
        }

    def __str__(self) -> str:
        return json.dumps(self.to_dict())

    def __repr__(self) -> str:
        return f"Route({self.method} {self.path})"


def _value_for(constraint: SegmentConstraint, params: Mapping[str, Any]) -> Any:
    value = params.get(constraint.param) if constraint.param else None
    if value is None:
        value = constraint.default
    if value is None and not constraint.optional:
        raise MissingParameterError(constraint.param or "")
    return value


def _encode_query(items: Iterable[tuple[str, Any]]) -> str:
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, list | tuple):
            pairs.extend((key, _query_value(item)) for item in value)
        else:
            pairs.append((key, _query_value(value)))
    return str(httpx.QueryParams(pairs))


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _query_mapping(query: Any) -> dict[str, Any]:
    if query is None:
        return {}
    if isinstance(query, httpx.QueryParams):
        return dict(query.items())
    if isinstance(query, Mapping):
        return dict(query)
    return dict(httpx.QueryParams(query).items())
