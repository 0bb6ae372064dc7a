"""Route actions — what a matched route does.

Authoring shapes are resolved once, when route options are built, into
one of four explicit variants. ``Route.run`` dispatches on the variant
type and never inspects the raw handler again.

Accepted shapes::

    def show(id): ...                 -> CallableAction(show)
    {"show": UserController}          -> ControllerAction(UserController, "show")
    (UserController, "show")          -> ControllerAction(UserController, "show")
    InvokableController               -> ControllerAction(InvokableController, "__call__")
    ComponentAction(UserCard)         -> ComponentAction(UserCard)
    {"component": UserCard}           -> ComponentAction(UserCard)
    redirect="/login"                 -> RedirectAction("/login")
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class CallableAction:
    """A plain function (or callable object) handling the route."""

    func: Callable[..., Any]

    @property
    def label(self) -> str:
        return "callable"


@dataclass(frozen=True, slots=True)
class ControllerAction:
    """A controller class plus the name of the method to call on it."""

    controller: type
    method: str

    @property
    def label(self) -> str:
        return "controller"

    @property
    def fullname(self) -> str:
        return f"{self.controller.__name__}@{self.method}"


@dataclass(frozen=True, slots=True)
class ComponentAction:
    """A UI component reference, handed unresolved to the component dispatcher."""

    component: Any

    @property
    def label(self) -> str:
        return "component"


@dataclass(frozen=True, slots=True)
class RedirectAction:
    """A redirect target: a URL, a ``{status: location}`` map, or a callable."""

    target: Any

    @property
    def label(self) -> str:
        return "redirect"


type RouteAction = CallableAction | ControllerAction | ComponentAction | RedirectAction


def resolve_action(handler: Any, redirect: Any = None) -> RouteAction | None:
    """Turn an authored handler (or redirect) into a ``RouteAction``.

    A redirect wins over any handler. Returns ``None`` for shapes that
    are not actions; the route raises ``InvalidActionError`` when such a
    route is run.
    """
    if redirect is not None:
        return RedirectAction(redirect)
    if handler is None:
        return None
    if isinstance(handler, CallableAction | ControllerAction | ComponentAction | RedirectAction):
        return handler
    if inspect.isclass(handler):
        return ControllerAction(handler, "__call__")
    if isinstance(handler, tuple) and len(handler) == 2:
        controller, method = handler
        if inspect.isclass(controller) and isinstance(method, str):
            return ControllerAction(controller, method)
        return None
    if isinstance(handler, Mapping):
        return _resolve_mapping(handler)
    if callable(handler):
        return CallableAction(handler)
    return None


def _resolve_mapping(handler: Mapping[str, Any]) -> RouteAction | None:
    if len(handler) != 1:
        return None
    ((method, controller),) = handler.items()
    if method == "component":
        return ComponentAction(controller)
    if isinstance(method, str) and inspect.isclass(controller):
        return ControllerAction(controller, method)
    return None


def action_label(action: RouteAction | None) -> str:
    """Label shown in route dumps: ``Class@method`` for controllers."""
    if isinstance(action, ControllerAction):
        return action.fullname
    if action is None:
        return "invalid"
    return action.label
