from __future__ import annotations

from typing import Any

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def coerce_scalar(raw: str, kind: str) -> Any:
    """Convert a configuration string to *kind*. Raises ``ValueError`` when it does not parse."""
    if kind == "str":
        return raw
    text = raw.strip()
    if kind == "int":
        return int(text)
    if kind == "float":
        return float(text)
    if kind == "bool":
        lowered = text.casefold()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    raise ValueError(f"unknown scalar kind: {kind}")
