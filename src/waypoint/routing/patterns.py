"""Pattern compiler — placeholder syntax to anchored regular expressions.

Route paths and domains may contain placeholders::

    [prefix](:name | {name})[@alias][(regex)][? | + | *][=default]

Examples::

    /users/:id                 required, permissive rule
    /users/:id(\\d+)           custom rule
    /users/{id?}               optional (brace shorthand)
    /users/user-:id            literal prefix inside the segment
    /files/:path+              one or more ``/``-separated repeats
    /posts/:slug@post          binding lookups use ``post`` instead of ``slug``
    /page/:num=1               default used when absent or when generating
    {tenant}.example.com       domain placeholder, ``.example.com`` suffix

Every function here is pure. Routes call them once and cache the result.

A path is split on ``/`` before lexing, so custom rules cannot contain a
slash. Unbraced defaults run to the end of the segment; use the brace
form for defaults inside domains.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from waypoint.errors import ConfigurationError

# Permissive rules used when neither the placeholder nor ``rules`` give one
PATH_RULE = r"[^/]+?"
DOMAIN_RULE = r".+"

QUANTIFIERS = "?+*"


class PatternSource(Protocol):
    """The fields the compiler reads from route options."""

    path: str
    domain: str | None
    strict: bool
    rules: Mapping[str, Any]
    defaults: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class PatternOptions:
    """Standalone ``PatternSource`` for compiling patterns outside a route."""

    path: str = "/"
    domain: str | None = None
    strict: bool = False
    rules: Mapping[str, Any] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SegmentConstraint:
    """A parsed path segment, or the parsed domain.

    Literal:      ``users``           (match="users")
    Placeholder:  ``user-:id(\\d+)?``  (prefix="user-", param="id", rule="\\d+", quantifier="?")
    Domain:       ``{tenant}.x.com``  (param="tenant", suffix=".x.com")
    """

    match: str | None = None
    prefix: str | None = None
    param: str | None = None
    alias: str | None = None
    rule: str | None = None
    quantifier: str = ""
    default: Any = None
    suffix: str | None = None

    @property
    def optional(self) -> bool:
        return self.quantifier in ("?", "*")

    @property
    def is_param(self) -> bool:
        return self.param is not None

    @property
    def binding_key(self) -> str | None:
        """Key handed to binding resolvers: the alias, else the param name."""
        return self.alias or self.param


@dataclass(frozen=True, slots=True)
class _Placeholder:
    name: str
    alias: str | None
    rule: str | None
    quantifier: str
    default: str | None
    end: int


# -- Lexer --


def _find_marker(text: str) -> int:
    """Index of the first placeholder marker (``:`` or ``{``), or -1."""
    for index, char in enumerate(text):
        if char in ":{":
            return index
    return -1


def _read_name(text: str, pos: int) -> tuple[str, int]:
    start = pos
    while pos < len(text) and (text[pos].isalnum() or text[pos] == "_"):
        pos += 1
    return text[start:pos], pos


def _read_group(text: str, pos: int, source: str) -> tuple[str, int]:
    """Read a balanced ``(...)`` group starting at *pos*.

    Backslash escapes and character classes are skipped, so ``(\\))``
    and ``([()])`` close where a reader expects.
    """
    start = pos
    depth = 0
    in_class = False
    while pos < len(text):
        char = text[pos]
        if char == "\\":
            pos += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[start + 1 : pos], pos + 1
        pos += 1
    msg = f"Unbalanced parenthesis in route pattern {source!r}."
    raise ConfigurationError(msg)


def _lex_placeholder(text: str, start: int, source: str) -> _Placeholder:
    """Lex one placeholder whose marker sits at ``text[start]``."""
    braced = text[start] == "{"
    name, pos = _read_name(text, start + 1)
    if not name:
        msg = f"Missing placeholder name in route pattern {source!r}."
        raise ConfigurationError(msg)

    alias = None
    if pos < len(text) and text[pos] == "@":
        alias, pos = _read_name(text, pos + 1)
        if not alias:
            msg = f"Missing alias after '@' in route pattern {source!r}."
            raise ConfigurationError(msg)

    rule = None
    if pos < len(text) and text[pos] == "(":
        rule, pos = _read_group(text, pos, source)

    quantifier = ""
    if pos < len(text) and text[pos] in QUANTIFIERS:
        quantifier = text[pos]
        pos += 1

    default = None
    if pos < len(text) and text[pos] == "=":
        end = text.find("}", pos) if braced else len(text)
        if end < 0:
            end = len(text)
        default = text[pos + 1 : end]
        pos = end

    if braced:
        if pos >= len(text) or text[pos] != "}":
            msg = f"Unclosed '{{' in route pattern {source!r}."
            raise ConfigurationError(msg)
        pos += 1

    return _Placeholder(
        name=name,
        alias=alias,
        rule=rule or None,
        quantifier=quantifier,
        default=default,
        end=pos,
    )


def _rule_source(rule: Any) -> str | None:
    if rule is None:
        return None
    if isinstance(rule, re.Pattern):
        return rule.pattern
    return str(rule)


def _to_constraint(
    token: _Placeholder,
    options: PatternSource,
    *,
    fallback_rule: str,
    prefix: str | None = None,
    suffix: str | None = None,
) -> SegmentConstraint:
    rules = options.rules or {}
    defaults = options.defaults or {}
    rule = token.rule or _rule_source(rules.get(token.name)) or fallback_rule
    default = token.default if token.default is not None else defaults.get(token.name)
    return SegmentConstraint(
        prefix=prefix or None,
        param=token.name,
        alias=token.alias or token.name,
        rule=rule,
        quantifier=token.quantifier,
        default=default,
        suffix=suffix,
    )


# -- Parsing --


def get_segments_constraints(options: PatternSource) -> list[SegmentConstraint]:
    """Parse ``options.path`` into one constraint per non-empty segment.

    Order follows the path left to right. Placeholder rules and defaults
    not given inline come from ``options.rules`` / ``options.defaults``.
    """
    constraints: list[SegmentConstraint] = []
    for segment in options.path.split("/"):
        if not segment.strip():
            continue
        marker = _find_marker(segment)
        if marker < 0:
            constraints.append(SegmentConstraint(match=segment))
            continue
        token = _lex_placeholder(segment, marker, options.path)
        if token.end != len(segment):
            msg = (
                f"Unexpected text {segment[token.end :]!r} after placeholder "
                f"in route path {options.path!r}."
            )
            raise ConfigurationError(msg)
        constraints.append(
            _to_constraint(token, options, fallback_rule=PATH_RULE, prefix=segment[:marker])
        )
    return constraints


def get_domain_constraints(options: PatternSource) -> SegmentConstraint | None:
    """Parse ``options.domain`` into a single constraint, or ``None``.

    Literal text before the placeholder becomes ``prefix``, text after
    it becomes ``suffix``. A domain without a placeholder is a literal.
    """
    domain = options.domain
    if not domain:
        return None
    marker = _find_marker(domain)
    if marker < 0:
        return SegmentConstraint(match=domain)
    token = _lex_placeholder(domain, marker, domain)
    return _to_constraint(
        token,
        options,
        fallback_rule=DOMAIN_RULE,
        prefix=domain[:marker],
        suffix=domain[token.end :],
    )


def uri_constraints(options: PatternSource) -> list[SegmentConstraint]:
    """Domain constraint (if any) followed by the path constraints."""
    domain = get_domain_constraints(options)
    segments = get_segments_constraints(options)
    return [domain, *segments] if domain is not None else segments


# -- Regex generation --


def _open_group(group: str | None) -> str:
    return f"(?P<{group}>" if group else "("


def build_segment_pattern(
    constraint: SegmentConstraint | None = None,
    *,
    group: str | None = None,
) -> str:
    """Render one path constraint as a regex fragment.

    ``group`` names the capture; without it the capture is positional.
    """
    if constraint is None:
        return "/"
    if constraint.param is None:
        return f"/{re.escape(constraint.match or '')}"

    rule = constraint.rule or PATH_RULE
    opened = _open_group(group)
    repeated = f"(?:{rule})(?:/(?:{rule}))*"

    if constraint.prefix:
        prefix = re.escape(constraint.prefix)
        match constraint.quantifier:
            case "?":
                return f"/{prefix}{opened}{rule})?"
            case "+":
                return f"/{prefix}{opened}{repeated})"
            case "*":
                return f"/{prefix}{opened}{repeated})?"
            case _:
                return f"/{prefix}{opened}{rule})"

    match constraint.quantifier:
        case "?":
            return f"(?:/{opened}{rule}))?"
        case "+":
            return f"/{opened}{repeated})"
        case "*":
            return f"(?:/{opened}{repeated}))?"
        case _:
            return f"/{opened}{rule})"


def build_domain_pattern(
    constraint: SegmentConstraint | None = None,
    *,
    group: str | None = None,
) -> str | None:
    """Render the domain constraint, or ``None`` when there is no domain."""
    if constraint is None:
        return None
    if constraint.param is None:
        return re.escape(constraint.match or "")

    rule = constraint.rule or DOMAIN_RULE
    prefix = re.escape(constraint.prefix or "")
    suffix = re.escape(constraint.suffix or "")
    optional = "?" if constraint.optional else ""
    return f"{prefix}{_open_group(group)}{rule}){optional}{suffix}"


def group_name(index: int) -> str:
    """Capture group name for the *index*-th placeholder of a URI regex."""
    return f"p{index}"


def _flags(options: PatternSource) -> int:
    return 0 if options.strict else re.IGNORECASE


def _path_pattern(options: PatternSource, first_group: int) -> str:
    segments = get_segments_constraints(options)
    if not segments:
        return "/"

    parts: list[str] = []
    index = first_group
    for constraint in segments:
        if constraint.param is None:
            parts.append(build_segment_pattern(constraint))
        else:
            parts.append(build_segment_pattern(constraint, group=group_name(index)))
            index += 1

    if options.strict:
        trailing = "/" if options.path.endswith("/") else ""
    else:
        trailing = "/?"
    return "".join(parts) + trailing


def uri_regex(options: PatternSource) -> re.Pattern[str]:
    """Full-URI regex: optional domain pattern followed by the path.

    Placeholders capture into named groups ``p0``, ``p1``, ... in
    ``uri_constraints`` order. Non-strict routes ignore case and accept
    an optional trailing slash; strict routes require the exact form.
    """
    domain = get_domain_constraints(options)
    domain_group = group_name(0) if domain is not None and domain.param else None
    domain_pattern = build_domain_pattern(domain, group=domain_group) or ""
    path = _path_pattern(options, 1 if domain_group else 0)
    return re.compile(f"^{domain_pattern}{path}$", _flags(options))


def path_regex(options: PatternSource) -> re.Pattern[str]:
    """Path-only regex, used to test a request path without its host."""
    return re.compile(f"^{_path_pattern(options, 0)}$", _flags(options))


def domain_regex(options: PatternSource) -> re.Pattern[str] | None:
    """Host regex, or ``None`` when the route has no domain constraint."""
    pattern = build_domain_pattern(get_domain_constraints(options))
    if pattern is None:
        return None
    return re.compile(f"^{pattern}$", _flags(options))
