from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from layered_options.keys import KEY_DELIMITER, is_under, normalize_key


@dataclass(frozen=True, slots=True)
class ConfigEntry:
    key: str
    value: str
    origin: str


class MergedView:
    """
    Read-only merged key space.

    Lookups are case-insensitive. Each entry keeps the casing of the key as the
    winning source spelled it, plus the name of that source.
    """

    def __init__(self, entries: Mapping[str, ConfigEntry]) -> None:
        self._entries: Mapping[str, ConfigEntry] = MappingProxyType(
            {normalize_key(entry.key): entry for entry in entries.values()}
        )

    @classmethod
    def empty(cls) -> "MergedView":
        return cls({})

    def get_value(self, key: str) -> Tuple[Optional[str], bool]:
        entry = self._entries.get(normalize_key(key))
        if entry is None:
            return None, False
        return entry.value, True

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value, found = self.get_value(key)
        return value if found else default

    def entry(self, key: str) -> Optional[ConfigEntry]:
        return self._entries.get(normalize_key(key))

    def has_section(self, prefix: str) -> bool:
        return any(is_under(entry.key, prefix) for entry in self._entries.values())

    def children(self, prefix: str = "") -> list[str]:
        """Immediate child segments below *prefix*, in first-seen order."""
        depth = len(prefix.split(KEY_DELIMITER)) if prefix else 0
        seen: Dict[str, str] = {}
        for entry in self._entries.values():
            if not is_under(entry.key, prefix):
                continue
            segment = entry.key.split(KEY_DELIMITER)[depth]
            seen.setdefault(normalize_key(segment), segment)
        return list(seen.values())

    def section(self, prefix: str) -> "MergedView":
        """Return a view re-rooted at *prefix*; keys lose the prefix."""
        strip = len(prefix) + len(KEY_DELIMITER)
        rooted: Dict[str, ConfigEntry] = {}
        for norm, entry in self._entries.items():
            if is_under(entry.key, prefix):
                relative = entry.key[strip:]
                rooted[norm] = ConfigEntry(key=relative, value=entry.value, origin=entry.origin)
        return MergedView(rooted)

    def entries(self) -> list[ConfigEntry]:
        return sorted(self._entries.values(), key=lambda e: normalize_key(e.key))

    def as_dict(self) -> Dict[str, str]:
        return {entry.key: entry.value for entry in self.entries()}

    def dump_view(self) -> str:
        """Human-readable listing of every key, its value and its origin."""
        entries = self.entries()
        if not entries:
            return "(empty configuration)"
        width = max(len(e.key) for e in entries)
        lines = [f"{e.key.ljust(width)} = {e.value!r}  [{e.origin}]" for e in entries]
        return "\n".join(lines)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(entry.key for entry in self.entries())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MergedView(keys={len(self._entries)})"
