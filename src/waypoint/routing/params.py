"""Path parameter coercion.

Captured path values arrive as strings. A value that round-trips
losslessly through ``int`` or ``float`` becomes a number; everything
else (``"007"``, ``"1e3"``, ``"3.50"``, ``"nan"``) stays a string.
"""

import math
from typing import Any


def coerce_param(value: str) -> str | int | float:
    """Convert a captured path value to a number when nothing is lost.

    >>> coerce_param("42"), coerce_param("-3.5"), coerce_param("007")
    (42, -3.5, '007')
    """
    try:
        number = int(value)
    except ValueError:
        pass
    else:
        return number if str(number) == value else value

    try:
        real = float(value)
    except ValueError:
        return value
    if not math.isfinite(real) or repr(real) != value:
        return value
    return real


def coerce_optional(value: Any) -> Any:
    """``coerce_param`` for regex captures that may be ``None``."""
    if isinstance(value, str):
        return coerce_param(value)
    return value
