"""Locate the Router a CLI command should inspect.

Targets are written ``package.module:name``. ``name`` may be dotted
(``myapp.web:site.router``) and defaults to ``router``. A zero-argument
callable found there is treated as a router factory.
"""

import importlib
from functools import reduce

from waypoint.routing.router import Router

DEFAULT_ATTRIBUTE = "router"


def resolve_router(target: str) -> Router:
    """Import *target* and return the Router it names.

    Raises:
        ModuleNotFoundError: The module part does not import.
        AttributeError: The module has no such attribute.
        TypeError: The target is neither a Router nor a factory returning one.
    """
    module_name, _, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    found = reduce(getattr, (attribute or DEFAULT_ATTRIBUTE).split("."), module)

    if isinstance(found, Router):
        return found
    if not callable(found):
        msg = f"{target!r} is a {type(found).__name__}; expected a Router or a router factory"
        raise TypeError(msg)

    try:
        built = found()
    except Exception as exc:
        msg = f"Router factory {target!r} failed: {exc}"
        raise TypeError(msg) from exc
    if not isinstance(built, Router):
        msg = f"Router factory {target!r} returned {type(built).__name__}, not a Router"
        raise TypeError(msg)
    return built
