from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ConfigError(Exception):
    """Base class for every error raised by layered_options."""


class SourceLoadError(ConfigError):
    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(f"Failed to load configuration source '{source_name}': {message}")
        self.source_name = source_name


class ParseError(ConfigError):
    def __init__(self, source_name: str, message: str, *, path: Optional[str] = None) -> None:
        location = f" ({path})" if path else ""
        super().__init__(f"Malformed content in configuration source '{source_name}'{location}: {message}")
        self.source_name = source_name
        self.path = path


class TypeMismatchError(ConfigError):
    def __init__(self, key: str, raw_value: str, kind: str) -> None:
        super().__init__(f"Cannot convert value {raw_value!r} at '{key}' to {kind}.")
        self.key = key
        self.raw_value = raw_value
        self.kind = kind


class SchemaError(ConfigError, ValueError):
    """Raised for an invalid options schema declaration."""


@dataclass(frozen=True, slots=True)
class BindWarning:
    """A value that could not be coerced; the field kept its default."""

    key: str
    raw_value: str
    kind: str

    def __str__(self) -> str:
        return f"Cannot convert value {self.raw_value!r} at '{self.key}' to {self.kind}; default kept."


class OptionsValidationError(ConfigError):
    """Bound values were rejected by the target pydantic model."""

    def __init__(self, model_name: str, prefix: str, cause: Exception) -> None:
        super().__init__(f"Options '{model_name}' bound from '{prefix or '(root)'}' failed validation: {cause}")
        self.model_name = model_name
        self.prefix = prefix
