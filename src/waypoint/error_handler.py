"""Error handling for router failures.

Maps routing errors to responses through the configured response
resolver: ``RouteNotFound`` (and ``ResourceNotFound``) become 404,
``MethodNotAllowed`` becomes 405 with an ``Allow`` header, anything else
becomes 500. The body is ``{"error": message}`` when the event prefers
JSON and plain text otherwise.
"""

import logging
from typing import Any

from waypoint._internal.invoke import invoke
from waypoint._internal.types import ResponseResolver
from waypoint.errors import HTTPError, MethodNotAllowed, RouteNotFound
from waypoint.http.response import make_response

logger = logging.getLogger("waypoint.server")

INTERNAL_ERROR = "Internal Server Error"


class RouterErrorHandler:
    """Turns exceptions raised during dispatch into responses.

    Usage::

        handler = RouterErrorHandler()
        try:
            response = await router.dispatch(event)
        except Exception as exc:
            response = await handler.handle(exc, event)
    """

    __slots__ = ("debug", "response_resolver")

    def __init__(
        self,
        response_resolver: ResponseResolver = make_response,
        *,
        debug: bool = False,
    ) -> None:
        self.response_resolver = response_resolver
        self.debug = debug

    async def handle(self, error: Exception, event: Any) -> Any:
        status = self.status_for(error)
        method = getattr(event, "method", "?")
        path = getattr(event, "decoded_pathname", "?")

        if status >= 500:
            logger.error("500 %s %s", method, path, exc_info=error)
            message = str(error) if self.debug else INTERNAL_ERROR
        else:
            detail = error.detail if isinstance(error, HTTPError) else str(error)
            logger.debug("%d %s %s: %s", status, method, path, detail)
            message = detail

        headers = dict(error.headers) if isinstance(error, HTTPError) else {}
        if self._prefers_json(event):
            headers["Content-Type"] = "application/json"
            content: Any = {"error": message}
        else:
            headers["Content-Type"] = "text/plain; charset=utf-8"
            content = message

        return await invoke(
            self.response_resolver,
            status_code=status,
            content=content,
            headers=headers,
        )

    @staticmethod
    def status_for(error: Exception) -> int:
        if isinstance(error, RouteNotFound):
            return 404
        if isinstance(error, MethodNotAllowed):
            return 405
        return 500

    @staticmethod
    def _prefers_json(event: Any) -> bool:
        preferred_type = getattr(event, "preferred_type", None)
        if preferred_type is None:
            return False
        return preferred_type(["json", "html", "text"], "html") == "json"
