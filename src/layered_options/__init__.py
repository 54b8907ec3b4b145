"""Layered configuration sources merged into one key space, bound onto explicit option schemas."""

from layered_options.binder import OptionsBinder, bind, bind_model
from layered_options.errors import (
    BindWarning,
    ConfigError,
    OptionsValidationError,
    ParseError,
    SchemaError,
    SourceLoadError,
    TypeMismatchError,
)
from layered_options.loader import LayeredConfigLoader, LoadedConfig
from layered_options.merger import merge
from layered_options.models import ConfigLoadRequest, LoggingSettings
from layered_options.options import BoundOptions
from layered_options.registry import SourceRegistry
from layered_options.schema import FieldSpec, OptionsSchema, list_of, map_of, option, section
from layered_options.sources import (
    BaseSource,
    CommandLineSource,
    DotEnvSource,
    EnvironmentSource,
    FileSource,
    MemorySource,
)
from layered_options.view import ConfigEntry, MergedView

__all__ = [
    "BaseSource",
    "BindWarning",
    "BoundOptions",
    "CommandLineSource",
    "ConfigEntry",
    "ConfigError",
    "ConfigLoadRequest",
    "DotEnvSource",
    "EnvironmentSource",
    "FieldSpec",
    "FileSource",
    "LayeredConfigLoader",
    "LoadedConfig",
    "LoggingSettings",
    "MemorySource",
    "MergedView",
    "OptionsBinder",
    "OptionsSchema",
    "OptionsValidationError",
    "ParseError",
    "SchemaError",
    "SourceLoadError",
    "SourceRegistry",
    "TypeMismatchError",
    "bind",
    "bind_model",
    "list_of",
    "map_of",
    "merge",
    "option",
    "section",
]
