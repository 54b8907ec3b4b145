from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, TypeVar, cast

from pydantic import BaseModel, ValidationError

from layered_options.coercion import coerce_scalar
from layered_options.errors import BindWarning, OptionsValidationError, TypeMismatchError
from layered_options.keys import join_key, normalize_key
from layered_options.options import BoundOptions
from layered_options.schema import FieldSpec, OptionsSchema, effective_default
from layered_options.view import MergedView

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_MISSING = object()


class OptionsBinder:
    """
    Projects a subtree of a :class:`MergedView` onto an explicit schema.

    In lenient mode (the default) a value that does not coerce leaves the field at
    its default and is recorded as a :class:`BindWarning`. In strict mode the bind
    fails with :class:`TypeMismatchError`.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def bind(self, view: MergedView, prefix: str, schema: OptionsSchema) -> BoundOptions:
        warnings: List[BindWarning] = []
        values = self._bind_fields(view, prefix, schema, warnings)
        logger.debug(
            "binder.bound schema=%s prefix=%s fields=%s warnings=%s",
            schema.name,
            prefix or "(root)",
            len(schema.fields),
            len(warnings),
        )
        return BoundOptions(schema.name, values, warnings)

    def bind_model(self, view: MergedView, prefix: str, model_cls: type[M]) -> M:
        """Bind using the schema derived from *model_cls*, then validate into the model."""
        bound = self.bind(view, prefix, OptionsSchema.from_model(model_cls))
        try:
            return model_cls.model_validate(bound.to_dict())
        except ValidationError as exc:
            raise OptionsValidationError(model_cls.__name__, prefix, exc) from exc

    def _bind_fields(
        self,
        view: MergedView,
        prefix: str,
        schema: OptionsSchema,
        warnings: List[BindWarning],
        base: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for spec in schema.fields:
            key = join_key(prefix, spec.name)
            default = effective_default(spec, base)
            if spec.kind == "section":
                values[spec.name] = self._bind_section(view, key, spec, default, warnings)
            elif spec.kind == "list":
                values[spec.name] = self._bind_list(view, key, spec, default, warnings)
            elif spec.kind == "map":
                values[spec.name] = self._bind_map(view, key, spec, default, warnings)
            else:
                values[spec.name] = self._bind_scalar(view, key, spec.kind, default, warnings)
        return values

    def _bind_section(
        self,
        view: MergedView,
        key: str,
        spec: FieldSpec,
        default: Any,
        warnings: List[BindWarning],
    ) -> Optional[BoundOptions]:
        if default is None and spec.nullable and not view.has_section(key):
            return None
        return self._bind_schema(view, key, cast(OptionsSchema, spec.of), default, warnings)

    def _bind_schema(
        self,
        view: MergedView,
        key: str,
        schema: OptionsSchema,
        base: Any,
        warnings: List[BindWarning],
    ) -> BoundOptions:
        if not isinstance(base, Mapping):
            base = None
        return BoundOptions(schema.name, self._bind_fields(view, key, schema, warnings, base))

    def _bind_scalar(
        self,
        view: MergedView,
        key: str,
        kind: str,
        default: Any,
        warnings: List[BindWarning],
    ) -> Any:
        value = self._convert(view, key, kind, warnings)
        return default if value is _MISSING else value

    def _convert(self, view: MergedView, key: str, kind: str, warnings: List[BindWarning]) -> Any:
        raw, found = view.get_value(key)
        if not found or raw is None:
            return _MISSING
        # an empty string only counts as a value for string fields
        if raw == "" and kind != "str":
            return _MISSING
        try:
            return coerce_scalar(raw, kind)
        except ValueError:
            self._record_mismatch(key, raw, kind, warnings)
            return _MISSING

    def _bind_element(
        self,
        view: MergedView,
        key: str,
        of: Any,
        warnings: List[BindWarning],
        base: Any = None,
    ) -> Any:
        if isinstance(of, OptionsSchema):
            return self._bind_schema(view, key, of, base, warnings)
        return self._convert(view, key, of, warnings)

    def _freeze_default(self, of: Any, value: Any, warnings: List[BindWarning]) -> Any:
        # section elements are rebuilt as BoundOptions
        if isinstance(of, OptionsSchema):
            return self._bind_schema(MergedView.empty(), "", of, value, warnings)
        return value

    def _bind_list(
        self,
        view: MergedView,
        key: str,
        spec: FieldSpec,
        default: Any,
        warnings: List[BindWarning],
    ) -> tuple:
        children = view.children(key)
        if not children:
            return tuple(self._freeze_default(spec.of, item, warnings) for item in default or ())
        items = []
        for child in _ordered_children(children):
            item = self._bind_element(view, join_key(key, child), spec.of, warnings)
            if item is not _MISSING:
                items.append(item)
        return tuple(items)

    def _bind_map(
        self,
        view: MergedView,
        key: str,
        spec: FieldSpec,
        default: Any,
        warnings: List[BindWarning],
    ) -> MappingProxyType:
        defaults: Mapping[str, Any] = default or {}
        result: Dict[str, Any] = {}
        # normalized key -> key as currently stored in result
        index: Dict[str, str] = {}
        for name, value in defaults.items():
            result[name] = self._freeze_default(spec.of, value, warnings)
            index[normalize_key(str(name))] = name
        for child in view.children(key):
            norm = normalize_key(child)
            previous = index.get(norm)
            base = defaults.get(previous) if previous is not None else None
            item = self._bind_element(view, join_key(key, child), spec.of, warnings, base)
            if item is _MISSING:
                continue
            if previous is not None:
                del result[previous]
            result[child] = item
            index[norm] = child
        return MappingProxyType(result)

    def _record_mismatch(self, key: str, raw: str, kind: str, warnings: List[BindWarning]) -> None:
        if self._strict:
            raise TypeMismatchError(key, raw, kind)
        warning = BindWarning(key=key, raw_value=raw, kind=kind)
        warnings.append(warning)
        logger.warning("binder.coercion_failed key=%s kind=%s value=%r default_kept=True", key, kind, raw)


def bind(view: MergedView, prefix: str, schema: OptionsSchema, *, strict: bool = False) -> BoundOptions:
    return OptionsBinder(strict=strict).bind(view, prefix, schema)


def bind_model(view: MergedView, prefix: str, model_cls: type[M], *, strict: bool = False) -> M:
    return OptionsBinder(strict=strict).bind_model(view, prefix, model_cls)


def _ordered_children(children: List[str]) -> List[str]:
    """Numeric segments first in numeric order, then named segments as seen."""
    numeric = sorted((c for c in children if c.isdigit()), key=int)
    named = [c for c in children if not c.isdigit()]
    return numeric + named
