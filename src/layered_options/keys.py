"""Helpers for hierarchical configuration keys (``Section:SubSection:Name``)."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence

KEY_DELIMITER = ":"


def normalize_key(key: str) -> str:
    return key.casefold()


def join_key(*segments: str) -> str:
    return KEY_DELIMITER.join(s for s in segments if s)


def split_key(key: str) -> list[str]:
    return key.split(KEY_DELIMITER) if key else []


def parent_key(key: str) -> str:
    idx = key.rfind(KEY_DELIMITER)
    return key[:idx] if idx >= 0 else ""


def is_under(key: str, prefix: str) -> bool:
    """Case-insensitive check that *key* is strictly below *prefix*."""
    if not prefix:
        return bool(key)
    norm_key = normalize_key(key)
    norm_prefix = normalize_key(prefix) + KEY_DELIMITER
    return norm_key.startswith(norm_prefix) and len(norm_key) > len(norm_prefix)


def stringify_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested mappings and sequences into delimited keys.

    Sequence items use their index as the key segment. Empty containers produce
    no keys.
    """
    out: Dict[str, str] = {}
    _flatten_into(out, data, prefix)
    return out


def _flatten_into(out: Dict[str, str], value: Any, path: str) -> None:
    if isinstance(value, Mapping):
        for k, v in value.items():
            _flatten_into(out, v, join_key(path, str(k)))
        return
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        for i, v in enumerate(value):
            _flatten_into(out, v, join_key(path, str(i)))
        return
    if path:
        out[path] = stringify_scalar(value)
