from __future__ import annotations

import types
from collections.abc import Mapping
from typing import Any, Optional, Union, get_args, get_origin

from reqbind.domain.specs import ParamKind, ScalarType

_SCALARS: dict[Any, ScalarType] = {
    str: ScalarType.STR,
    int: ScalarType.INT,
    float: ScalarType.FLOAT,
    bool: ScalarType.BOOL,
}

_ZERO: dict[ScalarType, Any] = {
    ScalarType.STR: "",
    ScalarType.INT: 0,
    ScalarType.FLOAT: 0.0,
    ScalarType.BOOL: False,
}


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """``Optional[X]`` / ``X | None`` -> (X, True); anything else -> (tp, False)."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1 and len(get_args(tp)) == 2:
            return args[0], True
    return tp, False


def scalar_of(tp: Any) -> Optional[tuple[ScalarType, bool]]:
    inner, nullable = unwrap_optional(tp)
    st = _SCALARS.get(inner)
    if st is None:
        return None
    return st, nullable


def zero_value(scalar_type: ScalarType, nullable: bool) -> Any:
    return None if nullable else _ZERO[scalar_type]


def mapping_kind(tp: Any) -> Optional[ParamKind]:
    """dict[str, str] -> MAPPING, dict[str, list[str]] -> MULTI_MAPPING."""
    if tp is dict:
        return ParamKind.MAPPING
    origin = get_origin(tp)
    if origin is None or not isinstance(origin, type) or not issubclass(origin, Mapping):
        return None
    args = get_args(tp)
    if len(args) == 2 and get_origin(args[1]) in (list, tuple):
        return ParamKind.MULTI_MAPPING
    return ParamKind.MAPPING
