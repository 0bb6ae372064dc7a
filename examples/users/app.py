"""Users — controller groups, model binding and middleware.

Demonstrates:
- A controller group whose children name controller methods
- Model binding through ``resolve_route_binding``
- Router-wide function middleware (timing) and group middleware (auth)
- Turning dispatch errors into responses with ``RouterErrorHandler``

Run:
    cd examples/users && python app.py
"""

import asyncio
import threading
import time
from typing import Any

from waypoint import IncomingEvent, OutgoingResponse, Router, RouterErrorHandler
from waypoint.middleware.protocol import Next, RouteContext

# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_users: dict[int, str] = {1: "Ada", 2: "Linus"}


class User:
    def __init__(self, id: int, name: str) -> None:
        self.id = id
        self.name = name

    @classmethod
    def resolve_route_binding(cls, key: str, value: Any, resolver: Any) -> "User | None":
        with _lock:
            name = _users.get(value)
        return cls(value, name) if name is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


class UserController:
    def index(self) -> list[dict[str, Any]]:
        with _lock:
            return [{"id": id, "name": name} for id, name in sorted(_users.items())]

    def show(self, id: User) -> dict[str, Any]:
        return id.to_dict()

    def create(self, body: Any) -> OutgoingResponse:
        with _lock:
            user_id = max(_users, default=0) + 1
            _users[user_id] = str(body)
        location = router.generate("user.show", {"id": user_id})
        return OutgoingResponse(status_code=201, content={"id": user_id}).with_header(
            "Location", location
        )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


async def timing(context: RouteContext, next: Next) -> Any:
    """Add X-Response-Time to every response."""
    start = time.monotonic()
    result = await next(context)
    elapsed = time.monotonic() - start
    if isinstance(result, OutgoingResponse):
        return result.with_header("X-Response-Time", f"{elapsed:.3f}s")
    return result


async def require_token(context: RouteContext, next: Next) -> Any:
    if context.event.headers.get("authorization") != "Bearer secret":
        return OutgoingResponse(status_code=401, content="Unauthorized")
    return await next(context)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

router = Router()
router.use(timing)
router.define(
    [
        {
            "path": "/users",
            "name": "user",
            "handler": UserController,
            "middleware": [require_token],
            "rules": {"id": r"\d+"},
            "bindings": {"id": User},
            "children": [
                {"path": "/", "name": "list", "handler": "index"},
                {"path": "/:id", "name": "show", "handler": "show"},
                {"path": "/", "method": "POST", "name": "create", "handler": "create"},
            ],
        },
    ]
)
router.get("/", lambda: OutgoingResponse(content="OK"), name="home")

errors = RouterErrorHandler()


async def handle(method: str, url: str, **kwargs: Any) -> OutgoingResponse:
    """Dispatch one request and always answer with an ``OutgoingResponse``."""
    event = IncomingEvent.create(method, url, **kwargs)
    try:
        result = await router.dispatch(event)
    except Exception as exc:
        return await errors.handle(exc, event)
    if isinstance(result, OutgoingResponse):
        return result
    return OutgoingResponse(content=result)


if __name__ == "__main__":
    auth = {"Authorization": "Bearer secret"}

    async def main() -> None:
        for method, url in [("GET", "/users"), ("GET", "/users/1"), ("GET", "/users/9")]:
            response = await handle(method, url, headers=auth)
            print(method, url, response.status_code, response.content)

    asyncio.run(main())
