from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import yaml
from dotenv import dotenv_values

from layered_options.errors import ParseError, SourceLoadError
from layered_options.interfaces import ChangeListener
from layered_options.keys import KEY_DELIMITER, flatten, normalize_key, stringify_scalar

logger = logging.getLogger(__name__)

ENV_NESTING_DELIMITER = "__"

FileStamp = Optional[Tuple[int, int]]


class BaseSource:
    """Common snapshot and change-listener handling for configuration sources."""

    def __init__(self, *, name: str, optional: bool = False) -> None:
        self._name = name
        self._optional = optional
        self._data: Mapping[str, str] = MappingProxyType({})
        self._loaded = False
        self._listeners: list[ChangeListener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def optional(self) -> bool:
        return self._optional

    @property
    def data(self) -> Mapping[str, str]:
        return self._data

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        self._data = MappingProxyType(dict(self._read()))
        self._loaded = True
        logger.debug("source.loaded name=%s entries=%s", self._name, len(self._data))

    def clear(self) -> None:
        """Mark the source as loaded with no entries."""
        self._data = MappingProxyType({})
        self._loaded = True

    def poll_changes(self) -> bool:
        return False

    def add_change_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify_changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _read(self) -> Mapping[str, str]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, optional={self._optional})"


class MemorySource(BaseSource):
    """Programmatically supplied entries. Nested mappings are flattened on input."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None, *, name: str = "memory") -> None:
        super().__init__(name=name, optional=True)
        # normalized key -> (key as written, value)
        self._values: Dict[str, Tuple[str, str]] = {}
        for key, value in flatten(initial or {}).items():
            self._values[normalize_key(key)] = (key, value)

    def set(self, key: str, value: Any) -> None:
        if not key:
            raise ValueError("Configuration key must not be empty.")
        self._values[normalize_key(key)] = (key, stringify_scalar(value))
        self._refresh()

    def remove(self, key: str) -> bool:
        removed = self._values.pop(normalize_key(key), None) is not None
        if removed:
            self._refresh()
        return removed

    def _refresh(self) -> None:
        if self._loaded:
            self.load()
        self._notify_changed()

    def _read(self) -> Mapping[str, str]:
        return {key: value for key, value in self._values.values()}


class _FileBackedSource(BaseSource):
    """A source read from one file; changes are detected by size and mtime."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        optional: bool,
        base_dir: str | os.PathLike[str] | None,
        name: Optional[str],
    ) -> None:
        raw_path = Path(path)
        super().__init__(name=name or str(raw_path), optional=optional)
        self._path = raw_path if raw_path.is_absolute() or base_dir is None else Path(base_dir) / raw_path
        self._stamp: FileStamp = None

    @property
    def path(self) -> Path:
        return self._path

    def poll_changes(self) -> bool:
        current = _file_stamp(self._path)
        if current == self._stamp:
            return False
        logger.info("source.change_detected name=%s path=%s", self.name, self._path)
        self._stamp = current
        self._notify_changed()
        return True

    def _read(self) -> Mapping[str, str]:
        self._stamp = _file_stamp(self._path)
        if not self._path.exists():
            if self.optional:
                logger.debug("source.file_missing name=%s path=%s", self.name, self._path)
                return {}
            raise SourceLoadError(self.name, f"file not found: {self._path}")
        return self._read_file()

    def _read_file(self) -> Mapping[str, str]:
        raise NotImplementedError


class FileSource(_FileBackedSource):
    """A JSON or YAML document whose top level is a mapping."""

    _FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        optional: bool = False,
        base_dir: str | os.PathLike[str] | None = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(path, optional=optional, base_dir=base_dir, name=name)
        suffix = self._path.suffix.lower()
        if suffix not in self._FORMATS:
            raise ValueError(f"Unsupported configuration file format: {suffix or '(none)'} path={self._path}")
        self._format = self._FORMATS[suffix]

    def _read_file(self) -> Mapping[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceLoadError(self.name, f"cannot read {self._path}: {exc}") from exc

        document = self._parse(raw)
        return flatten(document)

    def _parse(self, raw: str) -> Mapping[str, Any]:
        try:
            if self._format == "json":
                data = json.loads(raw) if raw.strip() else None
            else:
                data = yaml.safe_load(raw)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ParseError(self.name, str(exc), path=str(self._path)) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ParseError(
                self.name,
                f"top-level document must be a mapping, got: {type(data).__name__}",
                path=str(self._path),
            )
        return data


class EnvironmentSource(BaseSource):
    """Process environment variables, ``__`` standing in for the key delimiter."""

    def __init__(
        self,
        prefix: str = "",
        *,
        nesting_delimiter: str = ENV_NESTING_DELIMITER,
        environ: Optional[Mapping[str, str]] = None,
        name: str = "environment",
    ) -> None:
        super().__init__(name=name, optional=True)
        self._prefix = prefix
        self._nesting_delimiter = nesting_delimiter
        self._environ = environ

    def _read(self) -> Mapping[str, str]:
        environ = os.environ if self._environ is None else self._environ
        return env_entries(environ.items(), prefix=self._prefix, nesting_delimiter=self._nesting_delimiter)


class DotEnvSource(_FileBackedSource):
    """Variables from a ``.env`` file, read without touching ``os.environ``."""

    def __init__(
        self,
        path: str | os.PathLike[str] = ".env",
        *,
        prefix: str = "",
        optional: bool = True,
        base_dir: str | os.PathLike[str] | None = None,
        nesting_delimiter: str = ENV_NESTING_DELIMITER,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(path, optional=optional, base_dir=base_dir, name=name)
        self._prefix = prefix
        self._nesting_delimiter = nesting_delimiter

    def _read_file(self) -> Mapping[str, str]:
        try:
            values = dotenv_values(dotenv_path=self._path, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceLoadError(self.name, f"cannot read {self._path}: {exc}") from exc

        items = ((k, v if v is not None else "") for k, v in values.items())
        return env_entries(items, prefix=self._prefix, nesting_delimiter=self._nesting_delimiter)


class CommandLineSource(BaseSource):
    """
    ``--key=value``, ``--key value``, ``/key=value`` and ``/key value`` arguments.

    Single-dash switches are only recognized through ``switch_mappings``, which map
    a switch (``-v`` or ``--verbose``) to a configuration key.
    """

    def __init__(
        self,
        args: Sequence[str],
        *,
        switch_mappings: Optional[Mapping[str, str]] = None,
        name: str = "command-line",
    ) -> None:
        super().__init__(name=name, optional=True)
        self._args = list(args)
        self._switch_mappings: Dict[str, str] = {}
        for switch, key in (switch_mappings or {}).items():
            if not switch.startswith("-"):
                raise ValueError(f"Switch mapping must start with '-' or '--': {switch}")
            norm = normalize_key(switch)
            if norm in self._switch_mappings:
                raise ValueError(f"Duplicate switch mapping: {switch}")
            self._switch_mappings[norm] = key

    def _read(self) -> Mapping[str, str]:
        out: Dict[str, str] = {}
        args = self._args
        i = 0
        while i < len(args):
            token = args[i]
            i += 1

            if token.startswith("--"):
                key_start = 2
            elif token.startswith("-"):
                key_start = 1
            elif token.startswith("/"):
                # "/key" behaves like "--key"
                token = "--" + token[1:]
                key_start = 2
            else:
                logger.debug("source.argument_skipped name=%s token=%s", self.name, token)
                continue

            sep = token.find("=")
            switch = token if sep < 0 else token[:sep]
            mapped = self._switch_mappings.get(normalize_key(switch))
            if mapped is not None:
                key = mapped
            elif key_start == 1:
                logger.debug("source.argument_skipped name=%s token=%s reason=unmapped_short_switch", self.name, token)
                continue
            else:
                key = switch[key_start:]

            if sep >= 0:
                value = token[sep + 1 :]
            elif i < len(args):
                value = args[i]
                i += 1
            else:
                logger.debug("source.argument_skipped name=%s token=%s reason=missing_value", self.name, token)
                continue

            if not key:
                logger.debug("source.argument_skipped name=%s token=%s reason=empty_key", self.name, token)
                continue
            out[key] = value
        return out


def env_entries(
    items: Iterable[Tuple[str, str]],
    *,
    prefix: str,
    nesting_delimiter: str = ENV_NESTING_DELIMITER,
) -> Dict[str, str]:
    """Filter environment-style names by *prefix* and map the nesting delimiter to ``:``."""
    norm_prefix = normalize_key(prefix)
    out: Dict[str, str] = {}
    for name, value in items:
        if norm_prefix and not normalize_key(name).startswith(norm_prefix):
            continue
        remainder = name[len(prefix) :]
        parts = [p for p in remainder.split(nesting_delimiter) if p]
        if not parts:
            continue
        out[KEY_DELIMITER.join(parts)] = value
    return out


def _file_stamp(path: Path) -> FileStamp:
    try:
        stat = path.stat()
    except OSError:
        return None
    return stat.st_size, stat.st_mtime_ns
