"""
Lenient field access for the loosely-shaped records handed to the analyzers.

Upstream collectors emit camelCase keys (``totalMarketSize``) while Python
callers tend to pass snake_case (``total_market_size``); both are accepted.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Mapping, Optional

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def pick(data: Any, *keys: str, default: Any = None) -> Any:
    """
    Return the first non-None value found under any of ``keys``.
    Each key is tried verbatim and in its snake_case spelling.
    """
    if not is_mapping(data):
        return default
    for key in keys:
        for candidate in (key, snake_case(key)):
            value = data.get(candidate)
            if value is not None:
                return value
    return default


def to_float(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings; anything else (bool, NaN, junk) → None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def pick_float(data: Any, *keys: str) -> Optional[float]:
    return to_float(pick(data, *keys))


def numbers(values: Iterable[Any]) -> List[float]:
    """Keep only the entries that coerce to a finite float."""
    out = []
    for v in values:
        f = to_float(v)
        if f is not None:
            out.append(f)
    return out


def is_number_list(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) > 0
        and all(to_float(v) is not None for v in value)
    )


def is_record_list(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) > 0
        and all(is_mapping(v) for v in value)
    )


def as_share(value: Any) -> Optional[float]:
    """A share given either as a fraction (0.25) or a percentage (25)."""
    f = to_float(value)
    if f is None or f < 0:
        return None
    return f / 100.0 if f > 1 else f
