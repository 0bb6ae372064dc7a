"""Incoming events — the request side of the router.

The router only needs a handful of attributes from the host's request
object (``IncomingEventLike``). ``IncomingEvent`` is a ready-made
implementation backed by ``httpx.URL`` so hosts without their own
request type, tests, and the CLI can build events directly.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

_DEFAULT_BASE_URL = "http://localhost"

# Short names accepted by ``preferred_type``
_MEDIA_TYPES: dict[str, str] = {
    "json": "application/json",
    "html": "text/html",
    "xml": "application/xml",
    "text": "text/plain",
}


@runtime_checkable
class IncomingEventLike(Protocol):
    """What the router reads from an incoming event."""

    method: str

    @property
    def host(self) -> str: ...

    @property
    def pathname(self) -> str: ...

    @property
    def decoded_pathname(self) -> str: ...

    @property
    def url(self) -> httpx.URL: ...

    @property
    def query(self) -> httpx.QueryParams: ...

    @property
    def is_secure(self) -> bool: ...

    def is_method(self, method: str) -> bool: ...

    def get_uri(self, with_domain: bool = False) -> str: ...


@dataclass(frozen=True, slots=True)
class IncomingEvent:
    """An immutable incoming request.

    Metadata is frozen at creation. The only mutable part is the private
    cache dict, which holds the route resolver installed by the router
    (the field reference stays frozen, its contents don't).
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = None

    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def host(self) -> str:
        """Hostname without port."""
        return self.url.host

    @property
    def pathname(self) -> str:
        """Path as sent on the wire (still percent-encoded)."""
        raw = self.url.raw_path.split(b"?", 1)[0]
        return raw.decode("ascii") or "/"

    @property
    def decoded_pathname(self) -> str:
        """Percent-decoded path."""
        return self.url.path or "/"

    @property
    def query(self) -> httpx.QueryParams:
        return self.url.params

    @property
    def protocol(self) -> str:
        return self.url.scheme

    @property
    def is_secure(self) -> bool:
        return self.url.scheme == "https"

    @property
    def route(self) -> Any:
        """The route resolved for this event, if the router installed one."""
        resolver = self._cache.get("route_resolver")
        return resolver() if resolver is not None else None

    # -- Accessors --

    def is_method(self, method: str) -> bool:
        return self.method == method.upper()

    def get_uri(self, with_domain: bool = False) -> str:
        """Return the path, prefixed with the host when *with_domain* is set.

        This is the string route URI patterns are matched against, so
        domain routes see ``api.example.com/users/1``.
        """
        if with_domain:
            return f"{self.host}{self.decoded_pathname}"
        return self.decoded_pathname

    def set_route_resolver(self, resolver: Callable[[], Any]) -> None:
        self._cache["route_resolver"] = resolver

    def preferred_type(self, types: Sequence[str], default: str) -> str:
        """Pick the first of *types* the ``Accept`` header prefers.

        *types* are short names (``json``, ``html``, ``xml``, ``text``).
        Quality values are honoured; ties keep header order.
        """
        accept = self.headers.get("accept")
        if not accept:
            return default

        ranked: list[tuple[float, int, str]] = []
        for index, part in enumerate(accept.split(",")):
            media, _, params = part.strip().partition(";")
            quality = 1.0
            for param in params.split(";"):
                name, _, value = param.strip().partition("=")
                if name == "q":
                    try:
                        quality = float(value)
                    except ValueError:
                        quality = 0.0
            ranked.append((-quality, index, media.strip().lower()))

        for neg_quality, _, media in sorted(ranked):
            if neg_quality == 0:
                break
            for short in types:
                full = _MEDIA_TYPES.get(short, short)
                if media in (full, "*/*") or (
                    media.endswith("/*") and full.startswith(media[:-1])
                ):
                    return default if media == "*/*" else short
        return default

    # -- Factory --

    @classmethod
    def create(
        cls,
        method: str,
        url: str | httpx.URL,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> IncomingEvent:
        """Build an event from a method and URL.

        Relative URLs (``"/users/1?page=2"``) are resolved against
        ``http://localhost``.
        """
        parsed = httpx.URL(url)
        if not parsed.host:
            parsed = httpx.URL(_DEFAULT_BASE_URL).join(parsed)
        return cls(
            method=method.upper(),
            url=parsed,
            headers=httpx.Headers(headers or {}),
            body=body,
        )
