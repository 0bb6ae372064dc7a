"""Tests for waypoint.routing.collection — indexing, matching, 405 and OPTIONS."""

from typing import Any

import pytest

from waypoint.config import RouterConfig
from waypoint.errors import MethodNotAllowed, RouteNotFound
from waypoint.http.event import IncomingEvent
from waypoint.http.response import OutgoingResponse
from waypoint.routing.collection import RouteCollection
from waypoint.routing.constants import FALLBACK_PATH
from waypoint.routing.mapper import RouteMapper
from waypoint.routing.route import Route


def handler() -> str:
    return "ok"


def fallback() -> str:
    return "fallback"


def _routes(*definitions: dict[str, Any]) -> list[Route]:
    return RouteMapper(RouterConfig()).to_routes(list(definitions))


def _collection(*definitions: dict[str, Any]) -> RouteCollection:
    return RouteCollection.create(
        _routes(*definitions), response_resolver=RouterConfig().response_resolver
    )


def _event(method: str, url: str) -> IncomingEvent:
    return IncomingEvent.create(method, url)


class TestIndexing:
    def test_lookup_by_name(self) -> None:
        routes = _collection({"path": "/users", "handler": handler, "name": "users.index"})
        assert routes.get_by_name("users.index") is not None
        assert routes.has_named_route("users.index")
        assert "users.index" in routes
        assert routes.get_by_name("missing") is None

    def test_lookup_by_method(self) -> None:
        routes = _collection(
            {"path": "/a", "handler": handler},
            {"path": "/b", "method": "POST", "handler": handler},
        )
        assert [r.path for r in routes.get_routes_by_method("get")] == ["/a"]
        assert [r.path for r in routes.get_routes_by_method("POST")] == ["/b"]
        assert routes.get_routes_by_method(None) == []
        assert len(routes) == 2

    def test_same_method_and_path_overwrites(self) -> None:
        first, second = _routes(
            {"path": "/a", "handler": handler, "name": "first"},
            {"path": "/a", "handler": fallback, "name": "second"},
        )
        routes = RouteCollection([first, second])
        assert routes.get_routes() == [second]

    def test_internal_head_route_does_not_own_the_name(self) -> None:
        routes = _collection(
            {"path": "/a", "handler": handler, "name": "a"},
            {"path": "/a", "method": "HEAD", "handler": handler, "name": "a", "is_internal_header": True},
        )
        route = routes.get_by_name("a")
        assert route is not None
        assert route.method == "GET"

    def test_iteration(self) -> None:
        routes = _collection({"path": "/a", "handler": handler}, {"path": "/b", "handler": handler})
        assert [r.path for r in routes] == ["/a", "/b"]


class TestMatch:
    def test_match(self) -> None:
        routes = _collection({"path": "/users/:id", "handler": handler})
        assert routes.match(_event("GET", "/users/1")).path == "/users/:id"

    def test_not_found(self) -> None:
        routes = _collection({"path": "/users", "handler": handler})
        with pytest.raises(RouteNotFound, match="Route /nope could not be found."):
            routes.match(_event("GET", "/nope"))

    def test_method_not_allowed(self) -> None:
        routes = _collection({"path": "/users", "method": "POST", "handler": handler})
        with pytest.raises(MethodNotAllowed) as exc_info:
            routes.match(_event("GET", "/users"))
        error = exc_info.value
        assert error.status == 405
        assert error.allowed == ("POST",)
        assert dict(error.headers) == {"Allow": "POST"}
        assert error.detail == (
            "Method GET is not supported for /users. Supported methods: POST."
        )

    def test_allowed_methods_follow_verb_order(self) -> None:
        routes = _collection(
            {"path": "/users/:id", "methods": ["DELETE", "PUT"], "handler": handler},
        )
        with pytest.raises(MethodNotAllowed) as exc_info:
            routes.match(_event("GET", "/users/1"))
        assert exc_info.value.allowed == ("PUT", "DELETE")

    def test_internal_head_is_not_an_alternate(self) -> None:
        routes = _collection(
            {"path": "/a", "handler": handler},
            {"path": "/a", "method": "HEAD", "handler": handler, "is_internal_header": True},
        )
        with pytest.raises(MethodNotAllowed) as exc_info:
            routes.match(_event("POST", "/a"))
        assert exc_info.value.allowed == ("GET",)

    def test_without_method(self) -> None:
        routes = _collection({"path": "/users", "method": "POST", "handler": handler})
        route = routes.match(_event("GET", "/users"), including_method=False)
        assert route.method == "POST"

    def test_fallback_is_tried_last(self) -> None:
        routes = _collection(
            {"path": FALLBACK_PATH, "handler": fallback, "fallback": True},
            {"path": "/users", "handler": handler},
        )
        assert routes.match(_event("GET", "/users")).path == "/users"
        assert routes.match(_event("GET", "/anything/else")).is_fallback()


class TestOptions:
    async def test_options_answers_with_allow(self) -> None:
        routes = _collection({"path": "/users", "method": "POST", "handler": handler})
        event = _event("OPTIONS", "/users")
        route = routes.match(event)
        assert route.method == "OPTIONS"

        response = await route.run(await route.bind(event))
        assert isinstance(response, OutgoingResponse)
        assert response.status_code == 200
        assert response.get_header("Allow") == "POST"
        assert response.content == {"Allow": "POST"}

    async def test_options_lists_every_method(self) -> None:
        routes = _collection(
            {"path": "/users/:id", "methods": ["PUT", "DELETE"], "handler": handler},
            {"path": "/users/:id", "handler": handler},
        )
        event = _event("OPTIONS", "/users/5")
        route = routes.match(event)
        binding = await route.bind(event)
        assert binding.params == {"id": 5}
        response = await route.run(binding)
        assert response.get_header("Allow") == "GET,PUT,DELETE"
        assert response.content == {"Allow": "GET,PUT,DELETE"}

    async def test_options_route_skips_model_bindings(self) -> None:
        def explode(key: str, value: Any, resolver: Any) -> Any:
            raise AssertionError("binding resolver must not run")

        routes = _collection(
            {"path": "/users/:id", "method": "PUT", "handler": handler, "bindings": {"id": explode}},
        )
        event = _event("OPTIONS", "/users/5")
        route = routes.match(event)
        response = await route.run(await route.bind(event))
        assert response.status_code == 200

    def test_registered_options_route_wins(self) -> None:
        routes = _collection(
            {"path": "/users", "method": "POST", "handler": handler},
            {"path": "/users", "method": "OPTIONS", "handler": handler, "name": "preflight"},
        )
        assert routes.match(_event("OPTIONS", "/users")).name == "preflight"


class TestDump:
    def test_dump_is_sorted_and_public(self) -> None:
        routes = _collection(
            {"path": "/b", "handler": handler, "name": "b"},
            {"path": "/a", "handler": handler},
            {"path": "/b", "method": "HEAD", "handler": handler, "is_internal_header": True},
        )
        dump = routes.dump()
        assert [row["path"] for row in dump] == ["/a", "/b"]
        assert dump[0] == {
            "path": "/a",
            "method": "GET",
            "action": "callable",
            "name": "N/A",
            "domain": "N/A",
            "fallback": False,
        }

    def test_to_json_includes_everything(self) -> None:
        routes = _collection(
            {"path": "/b", "handler": handler},
            {"path": "/b", "method": "HEAD", "handler": handler, "is_internal_header": True},
        )
        assert [row["method"] for row in routes.to_json()] == ["GET", "HEAD"]
