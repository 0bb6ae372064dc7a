"""Route definitions — the authored, possibly nested input to the mapper.

Definitions come from ``Router.get()``-style registration, from
``Router.define()``, or from static configuration as plain mappings::

    {
        "path": "/users",
        "name": "users",
        "handler": UserController,
        "children": [
            {"path": "/", "handler": "index", "name": "index"},
            {"path": "/:id", "handler": "show", "name": "show"},
        ],
    }

The mapper consumes a definition once and discards it; routes keep only
the ``RouteOptions`` built from it.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from typing import Any

from waypoint.errors import ConfigurationError
from waypoint.routing.actions import ControllerAction

_MULTI_SLASH = re.compile(r"/{2,}")
_MULTI_DOT = re.compile(r"\.{2,}")


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """One authored route or route group.

    ``path``, ``method``/``methods``, ``protocol`` and ``domain`` may hold
    several values; the mapper expands them into one route per
    combination. A definition with ``children`` is a group: its fields
    are inherited by every child and it produces no route itself.
    """

    path: str | Sequence[str] | None = None
    method: str | Sequence[str] | None = None
    methods: tuple[str, ...] = ()
    domain: str | Sequence[str] | None = None
    protocol: str | Sequence[str] | None = None
    name: str | None = None
    alias: tuple[str, ...] = ()
    rules: Mapping[str, Any] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)
    bindings: Mapping[str, Any] = field(default_factory=dict)
    middleware: tuple[Any, ...] = ()
    exclude_middleware: tuple[Any, ...] = ()
    redirect: Any = None
    fallback: bool | None = None
    strict: bool | None = None
    handler: Any = None
    children: tuple[RouteDefinition | Mapping[str, Any], ...] | None = None
    is_internal_header: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "methods", _as_tuple(self.methods))
        object.__setattr__(self, "alias", _as_tuple(self.alias))
        object.__setattr__(self, "middleware", _as_tuple(self.middleware))
        object.__setattr__(self, "exclude_middleware", _as_tuple(self.exclude_middleware))
        if self.children is not None:
            object.__setattr__(self, "children", tuple(self.children))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RouteDefinition:
        """Build a definition from a mapping; ``action`` is accepted for ``handler``."""
        values = dict(data)
        if "action" in values:
            values.setdefault("handler", values.pop("action"))
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            msg = f"Unknown route definition key(s): {', '.join(unknown)}."
            raise ConfigurationError(msg)
        return cls(**values)

    @classmethod
    def coerce(cls, value: RouteDefinition | Mapping[str, Any]) -> RouteDefinition:
        if isinstance(value, RouteDefinition):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        msg = f"Route definitions must be mappings or RouteDefinition, got {type(value).__name__}."
        raise ConfigurationError(msg)

    @property
    def is_group(self) -> bool:
        return self.children is not None

    def with_options(self, **changes: Any) -> RouteDefinition:
        return replace(self, **changes)


def _as_tuple(value: Any) -> tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Sequence):
        return (value,)
    return tuple(value)


def as_list(value: Any) -> list[Any]:
    """A scalar-or-sequence field as a list; ``None`` becomes ``[]``."""
    return list(_as_tuple(value))


# -- Per-field merge rules --


def join_paths(*paths: str | None) -> str:
    """``/``-join non-empty paths and collapse repeated slashes."""
    joined = "/".join(["/", *(p for p in paths if p)])
    return _MULTI_SLASH.sub("/", joined)


def join_names(*names: str | None) -> str | None:
    """``.``-join non-empty names; ``None`` when nothing is left."""
    return normalize_name(".".join(n for n in names if n))


def normalize_name(name: str | None) -> str | None:
    if not name:
        return None
    return _MULTI_DOT.sub(".", name).strip(".") or None


def merge_maps(parent: Mapping[str, Any], child: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow merge; child keys win."""
    return {**parent, **child}


def merge_middleware(parent: Sequence[Any], child: Sequence[Any]) -> tuple[Any, ...]:
    """Parent middleware first, then the child's. Duplicates are kept."""
    return (*parent, *child)


def controller_of(handler: Any) -> type | None:
    """The controller class an authored handler refers to, if any."""
    if inspect.isclass(handler):
        return handler
    if isinstance(handler, ControllerAction):
        return handler.controller
    if isinstance(handler, tuple) and len(handler) == 2 and inspect.isclass(handler[0]):
        return handler[0]
    if isinstance(handler, Mapping) and len(handler) == 1:
        (value,) = handler.values()
        if inspect.isclass(value):
            return value
    return None


def merge_handlers(parent: Any, child: Any) -> Any:
    """Combine a group handler with a child handler.

    A child without a handler inherits the parent's. A child naming a
    method (``"show"``) under a controller group becomes
    ``ControllerAction(Controller, "show")``. Otherwise the child wins.
    """
    if child is None:
        return parent
    if isinstance(child, str):
        controller = controller_of(parent)
        if controller is not None:
            return ControllerAction(controller, child)
    return child


def merge_definitions(parent: RouteDefinition, child: RouteDefinition) -> RouteDefinition:
    """Apply *parent*'s scope to an expanded *child*.

    Scalars (domain, method, protocol, strict, fallback, redirect) come
    from the child when set and from the parent otherwise.
    """
    return replace(
        child,
        path=join_paths(_scalar(parent.path), _scalar(child.path)),
        alias=tuple(join_paths(_scalar(parent.path), alias) for alias in child.alias),
        name=join_names(parent.name, child.name),
        method=child.method or parent.method,
        domain=child.domain if child.domain is not None else parent.domain,
        protocol=child.protocol if child.protocol is not None else parent.protocol,
        strict=child.strict if child.strict is not None else parent.strict,
        fallback=child.fallback if child.fallback is not None else parent.fallback,
        redirect=child.redirect if child.redirect is not None else parent.redirect,
        rules=merge_maps(parent.rules, child.rules),
        defaults=merge_maps(parent.defaults, child.defaults),
        bindings=merge_maps(parent.bindings, child.bindings),
        middleware=merge_middleware(parent.middleware, child.middleware),
        exclude_middleware=merge_middleware(parent.exclude_middleware, child.exclude_middleware),
        handler=merge_handlers(parent.handler, child.handler),
    )


def _scalar(value: Any) -> Any:
    # Expanded definitions hold a single value; sequences only appear before expansion
    if value is None or isinstance(value, str):
        return value
    msg = f"Expected a single value after expansion, got {value!r}."
    raise ConfigurationError(msg)
