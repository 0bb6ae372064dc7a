"""Dispatchers — invoke a route's action with the bound request.

A dispatcher is any ``async def dispatcher(context: DispatchContext)``.
Routes look dispatchers up by action type (``callable``, ``controller``,
``component``); the router installs the first two by default. Component
libraries manage their own instantiation, so no component dispatcher is
shipped.

Handlers declare what they need by parameter name::

    async def show(id, query):       # path param + query dict
        ...

    def show(binding):               # the whole RouteBinding
        ...

Resolution order for each handler parameter:

1. ``event``, ``binding``, ``route``, ``params``, ``query``, ``body``
2. Bound path parameters (by name)
3. A single remaining required parameter receives the ``RouteBinding``
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from waypoint._internal.invoke import invoke
from waypoint.errors import InvalidActionError
from waypoint.routing.actions import RouteAction

if TYPE_CHECKING:
    from waypoint.routing.route import RouteBinding

type Dispatcher = Callable[[DispatchContext], Any]


@dataclass(frozen=True, slots=True)
class DispatchContext:
    """Everything a dispatcher needs for one run of a route.

    ``controller`` holds the resolved controller instance for
    controller actions and is ``None`` otherwise.
    """

    binding: RouteBinding
    action: RouteAction
    controller: Any = None


def _reserved_values(binding: RouteBinding) -> dict[str, Any]:
    return {
        "event": binding.event,
        "binding": binding,
        "route": binding.route,
        "params": binding.defined_params(),
        "query": binding.query,
        "body": getattr(binding.event, "body", None),
    }


def build_handler_arguments(
    handler: Callable[..., Any],
    binding: RouteBinding,
) -> tuple[list[Any], dict[str, Any]]:
    """Inspect *handler*'s signature and build ``(args, kwargs)`` from the binding."""
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        # Builtins and some C callables carry no signature; hand them the binding
        return [binding], {}

    reserved = _reserved_values(binding)
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    unmatched: list[inspect.Parameter] = []

    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            if param.default is inspect.Parameter.empty:
                unmatched.append(param)
        elif name in reserved:
            kwargs[name] = reserved[name]
        elif name in binding.params:
            kwargs[name] = binding.params[name]
        elif param.default is inspect.Parameter.empty:
            unmatched.append(param)

    if len(unmatched) > 1:
        names = ", ".join(param.name for param in unmatched)
        msg = f"Cannot supply parameters ({names}) of handler {_describe(handler)}."
        raise InvalidActionError(msg)
    if unmatched:
        param = unmatched[0]
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            args.append(binding)
        else:
            kwargs[param.name] = binding
    return args, kwargs


async def call_handler(handler: Callable[..., Any], binding: RouteBinding) -> Any:
    """Call a sync or async handler with signature-driven arguments."""
    args, kwargs = build_handler_arguments(handler, binding)
    return await invoke(handler, *args, **kwargs)


def _describe(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


async def callable_dispatcher(context: DispatchContext) -> Any:
    """Run a ``CallableAction``."""
    func = getattr(context.action, "func", None)
    if not callable(func):
        msg = "No callable function found."
        raise InvalidActionError(msg)
    return await call_handler(func, context.binding)


async def controller_dispatcher(context: DispatchContext) -> Any:
    """Run a ``ControllerAction`` on the already-resolved controller instance."""
    name = getattr(context.action, "method", None)
    method = getattr(context.controller, name, None) if name else None
    if not callable(method):
        msg = f"Handler {name!r} not found in controller {type(context.controller).__name__}."
        raise InvalidActionError(msg)
    return await call_handler(method, context.binding)
