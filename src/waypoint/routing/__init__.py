"""Routing — nested definitions compiled into regex-backed routes.

Definitions are flattened by the mapper, indexed by the collection and
matched per request. Routes carry no per-request state; binding a
request produces a ``RouteBinding``.
"""
