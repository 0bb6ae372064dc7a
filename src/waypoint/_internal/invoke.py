"""Invoke helpers — call sync or async callables uniformly.

Route handlers, controller methods, binding resolvers, redirect
callables and response resolvers can all be ``def`` or ``async def``.
This module keeps the sync/async check in exactly one place.

Usage::

    from waypoint._internal.invoke import invoke

    result = await invoke(handler, *args, **kwargs)
"""

import inspect
from typing import Any

import anyio.to_thread


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def show(id):
            return {"id": id}

        async def show(id):
            return await repo.find(id)
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_offloaded(handler: Any, *args: Any) -> Any:
    """Like ``invoke``, but run a synchronous callable in a worker thread.

    Coroutine functions are awaited on the event loop as usual. Anything
    else runs through ``anyio.to_thread.run_sync`` so blocking lookups
    (database drivers without async support) don't stall the loop.
    """
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)
    result = await anyio.to_thread.run_sync(handler, *args)
    if inspect.isawaitable(result):
        result = await result
    return result
