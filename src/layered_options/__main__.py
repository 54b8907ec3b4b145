from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from layered_options.binder import OptionsBinder
from layered_options.errors import ConfigError, SchemaError
from layered_options.loader import LayeredConfigLoader, LoadedConfig
from layered_options.logging import init_logging
from layered_options.models import ConfigLoadRequest, LoggingSettings
from layered_options.schema import OptionsSchema

logger = logging.getLogger(__name__)

EXIT_MISSING = 1
EXIT_CONFIG_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layered-options",
        description="Inspect layered configuration. Unrecognized --Key=Value arguments become configuration.",
        allow_abbrev=False,
    )
    parser.add_argument("--base-dir", default=".", help="Directory holding appsettings files and .env (default: .)")
    parser.add_argument("--file-name", default="appsettings", help="Settings file base name (default: appsettings)")
    parser.add_argument(
        "--environment",
        default=None,
        help="Environment name for the <file-name>.<environment>.json layer (default: $<prefix>ENVIRONMENT or Production)",
    )
    parser.add_argument("--env-prefix", default="", help="Only environment variables with this prefix are read")
    parser.add_argument(
        "--no-dotenv",
        action="store_true",
        help="Disable loading .env (env overrides still apply)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when a value cannot be converted instead of keeping the default",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: dump
    subparsers.add_parser("dump", help="List every key, its value and the source that provided it", allow_abbrev=False)

    # Command: get
    get_parser = subparsers.add_parser("get", help="Print a single value", allow_abbrev=False)
    get_parser.add_argument("key", help="Hierarchical key, e.g. Logging:Level")

    # Command: bind
    bind_parser = subparsers.add_parser(
        "bind", help="Bind a section onto a schema file and print JSON", allow_abbrev=False
    )
    bind_parser.add_argument("schema", help="YAML or JSON schema file ({field: {type, default}})")
    bind_parser.add_argument("--section", default="", help="Key prefix to bind from (default: root)")

    return parser


def _load_config(args: argparse.Namespace, extra: Sequence[str]) -> LoadedConfig:
    request = ConfigLoadRequest(
        base_dir=args.base_dir,
        file_name=args.file_name,
        environment=args.environment,
        env_prefix=args.env_prefix,
        dotenv_path=None if args.no_dotenv else ".env",
        args=tuple(extra),
    )
    return LayeredConfigLoader().load(request)


def _load_schema(path: str) -> OptionsSchema:
    schema_path = Path(path)
    try:
        data = yaml.safe_load(schema_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SchemaError(f"Cannot read schema file {schema_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SchemaError(f"Malformed schema file {schema_path}: {exc}") from exc
    return OptionsSchema.from_mapping(data or {}, name=schema_path.stem)


def _cmd_dump(loaded: LoadedConfig) -> int:
    print(f"# environment: {loaded.environment}")
    print(f"# sources: {', '.join(source.name for source in loaded.registry.sources)}")
    print(loaded.view.dump_view())
    return 0


def _cmd_get(loaded: LoadedConfig, key: str) -> int:
    value, found = loaded.view.get_value(key)
    if not found:
        logger.info("app.key_missing key=%s", key)
        return EXIT_MISSING
    print(value)
    return 0


def _cmd_bind(loaded: LoadedConfig, binder: OptionsBinder, schema_path: str, prefix: str) -> int:
    schema = _load_schema(schema_path)
    bound = binder.bind(loaded.view, prefix, schema)
    print(json.dumps(bound.to_dict(), indent=2))
    for warning in bound.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args, extra = parser.parse_known_args(argv)
    binder = OptionsBinder(strict=args.strict)

    try:
        loaded = _load_config(args, extra)
        init_logging(binder.bind_model(loaded.view, "Logging", LoggingSettings))
        logger.info("app.config_loaded environment=%s keys=%s", loaded.environment, len(loaded.view))

        if args.command == "dump":
            return _cmd_dump(loaded)
        if args.command == "get":
            return _cmd_get(loaded, args.key)
        if args.command == "bind":
            return _cmd_bind(loaded, binder, args.schema, args.section)
    except ConfigError as exc:
        logger.error("app.config_error error=%s", exc)
        return EXIT_CONFIG_ERROR
    parser.error(f"unknown command: {args.command}")
    return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
