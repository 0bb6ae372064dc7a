"""``waypoint routes`` — list registered routes.

Prints METHOD, PATH, NAME, ACTION and DOMAIN for every public route,
sorted by path. Internal ``HEAD`` twins of ``GET`` routes are hidden.
"""

import argparse
import json
import sys

from waypoint.cli._resolve import resolve_router

COLUMNS = ("method", "path", "name", "action", "domain")


def format_table(rows: list[dict[str, object]]) -> list[str]:
    """Render route dump rows as aligned text lines, header first."""
    cells = [[str(row.get(column, "")) for column in COLUMNS] for row in rows]
    headers = [column.upper() for column in COLUMNS]
    widths = [
        max([len(header), *(len(line[i]) for line in cells)])
        for i, header in enumerate(headers)
    ]

    def render(values: list[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths, strict=True)).rstrip()

    lines = [render(headers), "-" * min(sum(widths) + 2 * (len(widths) - 1), 100)]
    lines.extend(render(line) for line in cells)
    return lines


def run_routes(args: argparse.Namespace) -> None:
    """List registered routes for a waypoint router."""
    try:
        router = resolve_router(args.router)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    rows = router.dump_routes()
    if getattr(args, "json", False):
        print(json.dumps(rows, indent=2))
        return

    if not rows:
        print("No routes registered.")
        return

    for line in format_table(rows):
        print(line)
