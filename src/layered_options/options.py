from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence, Tuple

from layered_options.errors import BindWarning
from layered_options.keys import normalize_key


class BoundOptions(Mapping[str, Any]):
    """
    Immutable result of a bind.

    Fields are reachable by item access (``opts["Option1"]``, case-insensitive) and by
    attribute access (``opts.Option1``, exact name). Nested sections are
    ``BoundOptions``; lists are tuples and maps are read-only mappings.
    """

    __slots__ = ("_schema_name", "_values", "_index", "_warnings")

    def __init__(
        self,
        schema_name: str,
        values: Mapping[str, Any],
        warnings: Sequence[BindWarning] = (),
    ) -> None:
        object.__setattr__(self, "_schema_name", schema_name)
        object.__setattr__(self, "_values", MappingProxyType(dict(values)))
        object.__setattr__(self, "_index", {normalize_key(k): k for k in values})
        object.__setattr__(self, "_warnings", tuple(warnings))

    @property
    def schema_name(self) -> str:
        return self._schema_name

    @property
    def warnings(self) -> Tuple[BindWarning, ...]:
        return self._warnings

    def __getitem__(self, name: str) -> Any:
        if name in self._values:
            return self._values[name]
        actual = self._index.get(normalize_key(name))
        if actual is None:
            raise KeyError(name)
        return self._values[actual]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"'{self._schema_name}' options have no field '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("BoundOptions is immutable.")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("BoundOptions is immutable.")

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``dict``/``list`` copy, suitable for JSON or model validation."""
        return {k: _to_plain(v) for k, v in self._values.items()}

    def __repr__(self) -> str:
        return f"BoundOptions({self._schema_name}, {dict(self._values)!r})"


def _to_plain(value: Any) -> Any:
    if isinstance(value, BoundOptions):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (tuple, list)):
        return [_to_plain(v) for v in value]
    return value
