from __future__ import annotations

import dataclasses
import inspect
import logging
from types import MappingProxyType
from typing import Any, Callable, Optional, get_type_hints

from pydantic import BaseModel

from reqbind.binding.typeinfo import scalar_of, zero_value
from reqbind.domain.errors import HandlerSpecError
from reqbind.domain.specs import FieldSpec, StructureSpec

logger = logging.getLogger(__name__)


def is_structure_type(tp: Any) -> bool:
    return inspect.isclass(tp) and (issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp))


def _frozen_setter(name: str) -> Callable[[Any, Any], None]:
    def set_field(obj: Any, value: Any) -> None:
        object.__setattr__(obj, name, value)

    return set_field


def _frozen_model_setter(name: str) -> Callable[[Any, Any], None]:
    def set_field(obj: BaseModel, value: Any) -> None:
        object.__setattr__(obj, name, value)
        obj.__pydantic_fields_set__.add(name)

    return set_field


def _attr_setter(name: str) -> Callable[[Any, Any], None]:
    def set_field(obj: Any, value: Any) -> None:
        setattr(obj, name, value)

    return set_field


def structure_from_model(cls: type[BaseModel]) -> StructureSpec:
    model_frozen = bool(cls.model_config.get("frozen"))
    fields: dict[str, FieldSpec] = {}
    zeros: dict[str, Any] = {}

    for name, info in cls.model_fields.items():
        sc = scalar_of(info.annotation)
        if sc is None:
            # nested / collection fields are not bound from flat parameters
            continue
        scalar_type, nullable = sc
        has_default = not info.is_required()
        if not has_default:
            zeros[name] = zero_value(scalar_type, nullable)
        key = info.alias or name
        fields[key] = FieldSpec(
            name=name,
            scalar_type=scalar_type,
            nullable=nullable,
            has_default=has_default,
            setter=_frozen_model_setter(name) if model_frozen or info.frozen else _attr_setter(name),
        )

    def factory() -> BaseModel:
        return cls.model_construct(**zeros)

    return StructureSpec(name=cls.__name__, shape=cls, factory=factory, fields=MappingProxyType(fields))


def structure_from_dataclass(cls: type) -> StructureSpec:
    hints = get_type_hints(cls)
    frozen = cls.__dataclass_params__.frozen
    fields: dict[str, FieldSpec] = {}
    zeros: dict[str, Any] = {}

    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        sc = scalar_of(hints.get(f.name))
        has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
        if sc is None:
            if not has_default:
                raise HandlerSpecError(f"{cls.__name__}.{f.name}: non-scalar field needs a default")
            continue
        scalar_type, nullable = sc
        if not has_default:
            zeros[f.name] = zero_value(scalar_type, nullable)
        fields[f.name] = FieldSpec(
            name=f.name,
            scalar_type=scalar_type,
            nullable=nullable,
            has_default=has_default,
            setter=_frozen_setter(f.name) if frozen else _attr_setter(f.name),
        )

    def factory() -> Any:
        return cls(**zeros)

    return StructureSpec(name=cls.__name__, shape=cls, factory=factory, fields=MappingProxyType(fields))


class StructureRegistry:
    """Field tables per structured type. Filled during registration, read-only afterwards."""

    def __init__(self) -> None:
        self._specs: dict[type, StructureSpec] = {}

    def register(self, cls: type) -> StructureSpec:
        existing = self._specs.get(cls)
        if existing is not None:
            return existing

        if inspect.isclass(cls) and issubclass(cls, BaseModel):
            spec = structure_from_model(cls)
        elif dataclasses.is_dataclass(cls):
            spec = structure_from_dataclass(cls)
        else:
            raise HandlerSpecError(f"{cls!r} is not a pydantic model or dataclass")

        logger.debug("registered structure %s fields=%s", spec.name, list(spec.fields))
        self._specs[cls] = spec
        return spec

    def get(self, cls: type) -> Optional[StructureSpec]:
        return self._specs.get(cls)

    def __contains__(self, cls: object) -> bool:
        return cls in self._specs

    def __len__(self) -> int:
        return len(self._specs)
