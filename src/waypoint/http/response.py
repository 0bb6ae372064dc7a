"""Outgoing response descriptors with a chainable .with_*() API.

The router never writes to a transport. Redirects and synthetic
``OPTIONS`` answers are built through a response resolver; the default
one, ``make_response``, produces ``OutgoingResponse`` values. Hosts swap
in their own resolver to produce native response objects instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class OutgoingResponse:
    """A plain response descriptor built through immutable transformations."""

    status_code: int = 200
    content: Any = None
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status_code: int) -> OutgoingResponse:
        """Return a new response with a different status code."""
        return replace(self, status_code=status_code)

    def with_header(self, name: str, value: str) -> OutgoingResponse:
        """Return a new response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> OutgoingResponse:
        """Return a new response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content(self, content: Any) -> OutgoingResponse:
        return replace(self, content=content)

    # -- Accessors --

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Return the first header named *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400 and self.get_header("Location") is not None

    @property
    def location(self) -> str | None:
        return self.get_header("Location")


def make_response(
    *,
    status_code: int = 200,
    content: Any = None,
    headers: Mapping[str, str] | None = None,
) -> OutgoingResponse:
    """Default response resolver.

    Called by routes and the route collection with keyword options::

        make_response(status_code=302, headers={"Location": "/login"})
    """
    return OutgoingResponse(
        status_code=status_code,
        content=content,
        headers=tuple((headers or {}).items()),
    )
