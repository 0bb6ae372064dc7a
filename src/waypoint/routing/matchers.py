"""Route matchers — pure predicates over ``(route, event)``.

A route matches an event only when every configured matcher accepts it.
``method_matcher`` is the one matcher the collection skips while probing
alternate verbs, so it is compared by identity.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from waypoint.routing.route import Route

type Matcher = Callable[[Route, Any], bool]


def uri_matcher(route: Route, event: Any) -> bool:
    """The decoded request path matches the route path (or any alias)."""
    pathname = event.decoded_pathname
    return any(regex.match(pathname) for regex in route.path_regexes)


def host_matcher(route: Route, event: Any) -> bool:
    """Routes without a domain accept any host."""
    regex = route.domain_regex
    if regex is None:
        return True
    return regex.match(event.host or "") is not None


def method_matcher(route: Route, event: Any) -> bool:
    return event.is_method(route.method)


def protocol_matcher(route: Route, event: Any) -> bool:
    """``http`` routes need a plain event, ``https`` routes a secure one."""
    protocol = (route.protocol or "").lower()
    if protocol == "http":
        return not event.is_secure
    if protocol == "https":
        return bool(event.is_secure)
    return True


DEFAULT_MATCHERS: tuple[Matcher, ...] = (
    uri_matcher,
    host_matcher,
    method_matcher,
    protocol_matcher,
)
