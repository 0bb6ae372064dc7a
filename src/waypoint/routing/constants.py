"""HTTP verbs, dispatcher keys and route event names."""

GET = "GET"
PUT = "PUT"
HEAD = "HEAD"
POST = "POST"
PATCH = "PATCH"
DELETE = "DELETE"
OPTIONS = "OPTIONS"

# Order matters: alternate-verb probing walks this tuple
HTTP_METHODS: tuple[str, ...] = (GET, PUT, HEAD, POST, PATCH, DELETE, OPTIONS)

# Methods registered by Router.any()
ANY_METHODS: tuple[str, ...] = (GET, POST, PUT, PATCH, DELETE, OPTIONS)

CALLABLE = "callable"
CONTROLLER = "controller"
COMPONENT = "component"
DISPATCHER_TYPES: frozenset[str] = frozenset({CALLABLE, CONTROLLER, COMPONENT})

FALLBACK_PATH = "/:__fallback__(.*)*"

# Sentinel shown in route dumps for unset names and domains
NOT_SET = "N/A"
