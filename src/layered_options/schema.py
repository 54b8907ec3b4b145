"""
Explicit field schemas for the options binder.

A schema lists every field the binder may populate: its name, kind and default.
Schemas can be declared directly, derived from a frozen pydantic model, or read
from a plain mapping (for example a YAML document).
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import (
    AbstractSet,
    Any,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
    get_args,
    get_origin,
)

from pydantic import BaseModel

from layered_options.errors import SchemaError
from layered_options.keys import KEY_DELIMITER, normalize_key

ScalarKind = Literal["str", "int", "float", "bool"]
FieldKind = Literal["str", "int", "float", "bool", "section", "list", "map"]

SCALAR_KINDS: Tuple[str, ...] = ("str", "int", "float", "bool")
CONTAINER_KINDS: Tuple[str, ...] = ("list", "map")

_PY_TYPES = {str: "str", int: "int", float: "float", bool: "bool"}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """
    One bindable field.

    ``of`` is the nested schema for a ``section``, and the element kind (a scalar
    kind or a schema) for a ``list`` or ``map``. Scalars leave it unset.

    A section default is a mapping laid over the nested schema's own defaults.
    With ``nullable`` set and no default, a section with no keys binds to ``None``.
    """

    name: str
    kind: FieldKind
    default: Any = None
    of: Union[str, "OptionsSchema", None] = None
    nullable: bool = False

    def __post_init__(self) -> None:
        if not self.name or KEY_DELIMITER in self.name:
            raise SchemaError(f"Invalid field name: {self.name!r}")
        if self.kind in SCALAR_KINDS:
            if self.of is not None:
                raise SchemaError(f"Scalar field '{self.name}' cannot declare an element type.")
            return
        if self.kind == "section":
            if not isinstance(self.of, OptionsSchema):
                raise SchemaError(f"Section field '{self.name}' requires a nested schema.")
            if self.default is not None:
                if not isinstance(self.default, Mapping):
                    raise SchemaError(f"Section field '{self.name}' needs a mapping default, got: {self.default!r}")
                object.__setattr__(self, "default", dict(self.default))
            return
        if self.kind in CONTAINER_KINDS:
            if not (isinstance(self.of, OptionsSchema) or self.of in SCALAR_KINDS):
                raise SchemaError(f"Field '{self.name}' has an unsupported element type: {self.of!r}")
            if self.kind == "list":
                if self.default is not None and not _is_sequence(self.default):
                    raise SchemaError(f"List field '{self.name}' needs a sequence default, got: {self.default!r}")
                object.__setattr__(self, "default", tuple(self.default or ()))
            else:
                if self.default is not None and not isinstance(self.default, Mapping):
                    raise SchemaError(f"Map field '{self.name}' needs a mapping default, got: {self.default!r}")
                object.__setattr__(self, "default", dict(self.default or {}))
            return
        raise SchemaError(f"Field '{self.name}' has an unknown kind: {self.kind!r}")


@dataclass(frozen=True, slots=True)
class OptionsSchema:
    name: str
    fields: Tuple[FieldSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: set[str] = set()
        for spec in self.fields:
            norm = normalize_key(spec.name)
            if norm in seen:
                raise SchemaError(f"Duplicate field '{spec.name}' in schema '{self.name}'.")
            seen.add(norm)

    def field(self, name: str) -> FieldSpec:
        norm = normalize_key(name)
        for spec in self.fields:
            if normalize_key(spec.name) == norm:
                return spec
        raise KeyError(f"Schema '{self.name}' has no field named '{name}'.")

    def defaults(self, base: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """The values a bind against an empty view produces, as plain containers.

        *base* overrides field defaults by name, the way a section default does.
        """
        out: dict[str, Any] = {}
        for spec in self.fields:
            default = effective_default(spec, base)
            if spec.kind == "section":
                if default is None and spec.nullable:
                    out[spec.name] = None
                else:
                    out[spec.name] = _element_defaults(spec.of, default)
            elif spec.kind == "list":
                out[spec.name] = [_element_defaults(spec.of, item) for item in default or ()]
            elif spec.kind == "map":
                out[spec.name] = {k: _element_defaults(spec.of, v) for k, v in (default or {}).items()}
            else:
                out[spec.name] = default
        return out

    @classmethod
    def from_model(cls, model_cls: type[BaseModel]) -> "OptionsSchema":
        """
        Derive a schema from a pydantic model.

        Every field must have a default. Supported annotations are ``str``, ``int``,
        ``float``, ``bool``, ``Literal[...]``, nested models, ``list``/``tuple``/
        ``Sequence`` of those, and ``dict``/``Mapping`` with string keys. ``Optional[X]``
        is treated as ``X``, except that an optional nested model defaulting to ``None``
        stays ``None`` until a key exists under it.
        """
        specs: list[FieldSpec] = []
        for attr, info in model_cls.model_fields.items():
            name = info.alias or attr
            if info.is_required():
                raise SchemaError(f"Field '{model_cls.__name__}.{attr}' must declare a default to be bound.")
            default = info.get_default(call_default_factory=True)
            specs.append(_spec_from_annotation(name, info.annotation, default, owner=model_cls.__name__))
        return cls(name=model_cls.__name__, fields=tuple(specs))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, name: str = "options") -> "OptionsSchema":
        """
        Build a schema from ``{field: spec}``.

        ``spec`` is a kind name (``"int"``) or a mapping with ``type``, and optionally
        ``default``, ``of`` (element kind for lists and maps), ``fields`` (nested
        field mapping for sections, or for lists and maps of sections) and
        ``nullable`` (sections only).
        """
        if not isinstance(data, Mapping):
            raise SchemaError(f"Schema '{name}' must be a mapping, got: {type(data).__name__}")
        specs = [_spec_from_mapping(field_name, raw, owner=name) for field_name, raw in data.items()]
        return cls(name=name, fields=tuple(specs))


def option(name: str, kind: ScalarKind, default: Any = None) -> FieldSpec:
    return FieldSpec(name=name, kind=kind, default=default)


def section(
    name: str,
    schema: OptionsSchema,
    default: Optional[Mapping[str, Any]] = None,
    *,
    nullable: bool = False,
) -> FieldSpec:
    return FieldSpec(name=name, kind="section", default=default, of=schema, nullable=nullable)


def list_of(name: str, of: Union[ScalarKind, OptionsSchema], default: Optional[Sequence[Any]] = None) -> FieldSpec:
    return FieldSpec(name=name, kind="list", default=default, of=of)


def map_of(name: str, of: Union[ScalarKind, OptionsSchema], default: Optional[Mapping[str, Any]] = None) -> FieldSpec:
    return FieldSpec(name=name, kind="map", default=default, of=of)


def effective_default(spec: FieldSpec, base: Optional[Mapping[str, Any]]) -> Any:
    """The default for *spec*, taken from *base* when it names the field (any case)."""
    if base:
        norm = normalize_key(spec.name)
        for key, value in base.items():
            if normalize_key(str(key)) == norm:
                return value
    return spec.default


def _element_defaults(of: Any, value: Any) -> Any:
    if isinstance(of, OptionsSchema):
        return of.defaults(value if isinstance(value, Mapping) else None)
    return value


def _is_sequence(value: Any) -> bool:
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (Sequence, AbstractSet))


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _element_of(annotation: Any, *, owner: str, field_name: str) -> Union[str, OptionsSchema]:
    annotation = _unwrap_optional(annotation)
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return OptionsSchema.from_model(annotation)
    kind = _scalar_kind(annotation)
    if kind is None:
        raise SchemaError(f"Unsupported element type for '{owner}.{field_name}': {annotation!r}")
    return kind


def _scalar_kind(annotation: Any) -> Optional[str]:
    if isinstance(annotation, type) and annotation in _PY_TYPES:
        return _PY_TYPES[annotation]
    if get_origin(annotation) is Literal:
        arg_types = {type(a) for a in get_args(annotation)}
        if len(arg_types) == 1:
            return _PY_TYPES.get(arg_types.pop())
    return None


def _spec_from_annotation(name: str, annotation: Any, default: Any, *, owner: str) -> FieldSpec:
    unwrapped = _unwrap_optional(annotation)
    nullable = unwrapped is not annotation
    annotation = unwrapped

    kind = _scalar_kind(annotation)
    if kind is not None:
        return FieldSpec(name=name, kind=kind, default=default)  # type: ignore[arg-type]

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return FieldSpec(
            name=name,
            kind="section",
            default=_plain(default),
            of=OptionsSchema.from_model(annotation),
            nullable=nullable,
        )

    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin in (list, tuple, set, frozenset) or _is_abc(origin, "Sequence"):
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            raise SchemaError(f"Only variadic tuples (tuple[X, ...]) can be bound: '{owner}.{name}'")
        element = _element_of(args[0] if args else str, owner=owner, field_name=name)
        return FieldSpec(name=name, kind="list", default=_plain_items(default), of=element)

    if origin is dict or _is_abc(origin, "Mapping"):
        if args and args[0] is not str:
            raise SchemaError(f"Only string-keyed mappings can be bound: '{owner}.{name}'")
        element = _element_of(args[1] if len(args) == 2 else str, owner=owner, field_name=name)
        plain = {k: _plain(v) for k, v in (default or {}).items()}
        return FieldSpec(name=name, kind="map", default=plain, of=element)

    raise SchemaError(f"Unsupported annotation for '{owner}.{name}': {annotation!r}")


def _is_abc(origin: Any, abc_name: str) -> bool:
    return origin is not None and getattr(origin, "__module__", "") == "collections.abc" and origin.__name__ == abc_name


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    return value


def _plain_items(values: Any) -> tuple:
    return tuple(_plain(v) for v in (values or ()))


def _spec_from_mapping(field_name: str, raw: Any, *, owner: str) -> FieldSpec:
    if isinstance(raw, str):
        raw = {"type": raw}
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Field '{owner}.{field_name}' must be a kind name or a mapping.")

    kind = raw.get("type")
    nested = raw.get("fields")
    nested_schema = (
        OptionsSchema.from_mapping(nested, name=f"{owner}.{field_name}") if nested is not None else None
    )

    if kind == "section":
        if nested_schema is None:
            raise SchemaError(f"Section field '{owner}.{field_name}' requires 'fields'.")
        return FieldSpec(
            name=field_name,
            kind="section",
            default=raw.get("default"),
            of=nested_schema,
            nullable=bool(raw.get("nullable", False)),
        )
    if kind in CONTAINER_KINDS:
        element = nested_schema if nested_schema is not None else raw.get("of", "str")
        return FieldSpec(name=field_name, kind=kind, default=raw.get("default"), of=element)
    if kind in SCALAR_KINDS:
        return FieldSpec(name=field_name, kind=kind, default=raw.get("default"))
    raise SchemaError(f"Field '{owner}.{field_name}' has an unknown type: {kind!r}")
