from __future__ import annotations

from typing import Callable, Mapping, Protocol


class ConfigSource(Protocol):
    """
    A named provider of flat configuration entries.

    ``load`` replaces the snapshot returned by ``data``. Keys in the snapshot are
    already flattened into ``Section:Name`` paths.
    """

    @property
    def name(self) -> str: ...

    @property
    def optional(self) -> bool: ...

    @property
    def data(self) -> Mapping[str, str]: ...

    @property
    def loaded(self) -> bool: ...

    def load(self) -> None:
        """Read the underlying input and replace the current snapshot."""

    def clear(self) -> None:
        """Replace the snapshot with an empty one."""

    def poll_changes(self) -> bool:
        """Return True (and notify listeners) if the underlying input changed since the last load."""

    def add_change_listener(self, listener: "ChangeListener") -> None: ...

    def remove_change_listener(self, listener: "ChangeListener") -> None: ...


ChangeListener = Callable[[ConfigSource], None]
