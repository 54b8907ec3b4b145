from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from layered_options.models import ConfigLoadRequest
from layered_options.registry import SourceRegistry
from layered_options.sources import CommandLineSource, DotEnvSource, EnvironmentSource, FileSource, MemorySource
from layered_options.view import MergedView

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "Production"


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    registry: SourceRegistry
    environment: str

    @property
    def view(self) -> MergedView:
        return self.registry.view


def resolve_environment(request: ConfigLoadRequest) -> str:
    """Explicit request value, then ``<env_prefix>ENVIRONMENT``, then ``Production``."""
    if request.environment:
        return request.environment
    environ: Mapping[str, str] = os.environ if request.environ is None else request.environ
    variable = f"{request.env_prefix}ENVIRONMENT"
    for name, value in environ.items():
        if name.upper() == variable.upper() and value:
            return value
    return DEFAULT_ENVIRONMENT


class LayeredConfigLoader:
    """Builds the conventional source stack: files, .env, environment, arguments, overrides."""

    def build_registry(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> SourceRegistry:
        environment = resolve_environment(request)
        registry = SourceRegistry()

        base_file = f"{request.file_name}{request.file_extension}"
        env_file = f"{request.file_name}.{environment}{request.file_extension}"
        registry.register(FileSource(base_file, optional=not request.require_file, base_dir=request.base_dir))
        registry.register(FileSource(env_file, optional=True, base_dir=request.base_dir))

        if request.dotenv_path is not None:
            registry.register(
                DotEnvSource(request.dotenv_path, prefix=request.env_prefix, base_dir=request.base_dir)
            )

        registry.register(EnvironmentSource(request.env_prefix, environ=request.environ))

        if request.args:
            registry.register(CommandLineSource(request.args, switch_mappings=request.switch_mappings))

        if request.overrides:
            registry.register(MemorySource(request.overrides, name="overrides"))

        logger.debug(
            "loader.registry_built environment=%s sources=%s",
            environment,
            [source.name for source in registry.sources],
        )
        return registry

    def load(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> LoadedConfig:
        registry = self.build_registry(request)
        registry.load_all()
        registry.build()
        return LoadedConfig(registry=registry, environment=resolve_environment(request))
