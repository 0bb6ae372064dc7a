"""Tests for waypoint.routing.mapper — flattening nested definitions into routes."""

from typing import Any

import pytest

from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError
from waypoint.http.event import IncomingEvent
from waypoint.routing.actions import CallableAction, ControllerAction
from waypoint.routing.definition import RouteDefinition
from waypoint.routing.mapper import RouteMapper


def handler() -> None: ...


class UserController:
    def index(self) -> None: ...

    def show(self) -> None: ...

    def profile(self) -> None: ...


USER_ROUTES: list[dict[str, Any]] = [
    {
        "path": "/users",
        "name": "users",
        "handler": UserController,
        "children": [
            {
                "path": "/:id",
                "name": "show",
                "handler": "show",
                "children": [
                    {
                        "path": "/profile",
                        "name": "profile",
                        "children": [
                            {"path": "/:profileId", "methods": ["GET", "POST"], "handler": "profile"},
                        ],
                    },
                ],
            },
            {"path": "/:id", "method": "PUT", "name": "update", "handler": "show"},
            {"path": "/", "name": "index", "handler": "index"},
        ],
    },
]


def _mapper(**config: Any) -> RouteMapper:
    return RouteMapper(RouterConfig(**config))


def _signature(mapper: RouteMapper, definitions: list[Any]) -> list[tuple[str | None, str | None]]:
    return [(d.method, d.path) for d in mapper.flatten(definitions)]


class TestExpand:
    def test_cartesian_order(self) -> None:
        definition = RouteDefinition(
            path=["/a", "/b"], methods=("GET", "POST"), protocol=["http", "https"]
        )
        expanded = _mapper().expand(definition)
        assert [(d.path, d.method, d.protocol) for d in expanded] == [
            ("/a", "GET", "http"),
            ("/a", "GET", "https"),
            ("/a", "POST", "http"),
            ("/a", "POST", "https"),
            ("/b", "GET", "http"),
            ("/b", "GET", "https"),
            ("/b", "POST", "http"),
            ("/b", "POST", "https"),
        ]

    def test_domains(self) -> None:
        definition = RouteDefinition(path="/", domain=["a.com", "b.com"])
        assert [d.domain for d in _mapper().expand(definition)] == ["a.com", "b.com"]

    def test_method_list(self) -> None:
        definition = RouteDefinition.from_mapping({"path": "/x", "method": ["get", "POST"]})
        assert [d.method for d in _mapper().expand(definition)] == ["GET", "POST"]

    def test_gather_methods(self) -> None:
        definition = RouteDefinition(method="get", methods=("POST", "GET"))
        assert RouteMapper.gather_methods(definition) == ["GET", "POST"]

    def test_methods_default_to_get(self) -> None:
        assert RouteMapper.gather_methods(RouteDefinition()) == ["GET"]

    def test_methods_default_to_parent(self) -> None:
        parent = RouteDefinition(method="DELETE")
        assert RouteMapper.gather_methods(RouteDefinition(), parent) == ["DELETE"]


class TestFlatten:
    def test_nested_paths(self) -> None:
        assert _signature(_mapper(), USER_ROUTES) == [
            ("GET", "/users/:id/profile/:profileId"),
            ("POST", "/users/:id/profile/:profileId"),
            ("PUT", "/users/:id"),
            ("GET", "/users/"),
        ]

    def test_nested_names_and_controllers(self) -> None:
        leaves = _mapper().flatten(USER_ROUTES)
        assert [d.name for d in leaves] == [
            "users.show.profile",
            "users.show.profile",
            "users.update",
            "users.index",
        ]
        assert leaves[0].handler == ControllerAction(UserController, "profile")
        assert leaves[3].handler == ControllerAction(UserController, "index")

    def test_child_inherits_parent_handler(self) -> None:
        definitions = [{"path": "/users", "handler": handler, "children": [{"path": "/:id"}]}]
        (leaf,) = _mapper().flatten(definitions)
        assert leaf.handler is handler

    def test_child_inherits_parent_method(self) -> None:
        definitions = [{"path": "/api", "method": "POST", "children": [{"path": "/a", "handler": handler}]}]
        assert _signature(_mapper(), definitions) == [("POST", "/api/a")]

    def test_group_method_list_applies_to_children(self) -> None:
        definitions = [
            {"path": "/api", "method": ["GET", "POST"], "children": [{"path": "/a", "handler": handler}]}
        ]
        assert _signature(_mapper(), definitions) == [("GET", "/api/a"), ("POST", "/api/a")]

    def test_fallback_group_marks_children(self) -> None:
        definitions = [
            {"path": "/", "fallback": True, "children": [{"path": "/:any(.*)*", "handler": handler}]},
            {"path": "/home", "handler": handler},
        ]
        routes = _mapper().to_routes(definitions)
        assert [r.is_fallback() for r in routes] == [True, False]

    def test_depth_limit(self) -> None:
        definitions = [
            {"path": "/a", "children": [{"path": "/b", "children": [{"path": "/c", "handler": handler}]}]}
        ]
        with pytest.raises(ConfigurationError, match="depth"):
            _mapper(max_depth=2).flatten(definitions)
        assert _signature(_mapper(max_depth=3), definitions) == [("GET", "/a/b/c")]

    def test_accepts_definition_objects(self) -> None:
        definitions = [RouteDefinition(path="/x", handler=handler)]
        assert _signature(_mapper(), definitions) == [("GET", "/x")]


class TestToRouteOptions:
    def test_missing_path(self) -> None:
        with pytest.raises(ConfigurationError, match="path"):
            _mapper().to_route_options(RouteDefinition(method="GET", handler=handler))

    def test_invalid_method(self) -> None:
        definition = RouteDefinition(path="/", method="FETCH", handler=handler)
        with pytest.raises(ConfigurationError, match=r"Invalid method\(FETCH\)"):
            _mapper().to_route_options(definition)

    def test_missing_action(self) -> None:
        with pytest.raises(ConfigurationError, match="action, or redirect"):
            _mapper().to_routes([{"path": "/", "method": "GET"}])

    def test_redirect_without_handler(self) -> None:
        (route,) = _mapper().to_routes([{"path": "/old", "redirect": "/new"}])
        assert route.action is not None
        assert route.action.label == "redirect"

    def test_prefix(self) -> None:
        options = _mapper(prefix="/api").to_route_options(
            RouteDefinition(path="/users", method="GET", handler=handler, alias=("/people",))
        )
        assert options.path == "/api/users"
        assert options.alias == ("/api/people",)

    def test_global_strict_is_a_fallback(self) -> None:
        mapper = _mapper(strict=True)
        inherited = mapper.to_route_options(RouteDefinition(path="/", method="GET", handler=handler))
        explicit = mapper.to_route_options(
            RouteDefinition(path="/", method="GET", handler=handler, strict=False)
        )
        assert inherited.strict is True
        assert explicit.strict is False

    def test_global_maps_merge_under_route_maps(self) -> None:
        mapper = _mapper(rules={"id": r"\d+"}, defaults={"page": 1, "lang": "en"})
        options = mapper.to_route_options(
            RouteDefinition(path="/", method="GET", handler=handler, defaults={"lang": "fr"})
        )
        assert options.rules == {"id": r"\d+"}
        assert options.defaults == {"page": 1, "lang": "fr"}

    def test_name_is_normalized(self) -> None:
        options = _mapper().to_route_options(
            RouteDefinition(path="/", method="GET", handler=handler, name=".users..index.")
        )
        assert options.name == "users.index"

    def test_action_is_resolved(self) -> None:
        options = _mapper().to_route_options(RouteDefinition(path="/", method="GET", handler=handler))
        assert options.action == CallableAction(handler)


class TestToRoutes:
    def test_routes_are_configured(self) -> None:
        class Container:
            def resolve(self, key: Any) -> Any:
                return None

        container = Container()
        config = RouterConfig(offload_sync_bindings=True)
        (route,) = RouteMapper(config, container).to_routes([{"path": "/", "handler": handler}])
        assert route.matchers == config.matchers
        assert route.dispatchers == dict(config.dispatchers)
        assert route.resolver is container
        assert route.response_resolver is config.response_resolver
        assert route.offload_bindings is True

    def test_mapped_routes_match(self) -> None:
        routes = _mapper().to_routes(USER_ROUTES)
        event = IncomingEvent.create("PUT", "/users/7")
        assert [r for r in routes if r.matches(event)] == [routes[2]]
