from __future__ import annotations

import re
from typing import Any, Callable

from reqbind.domain.errors import TypeConversionError
from reqbind.domain.specs import ScalarType

_TRUE = {"true", "on", "yes", "1"}
_FALSE = {"false", "off", "no", "0"}

# stricter than int()/float(): plain ASCII digits only
_INT = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _to_bool(raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(raw)


def _to_int(raw: str) -> int:
    if not _INT.fullmatch(raw):
        raise ValueError(raw)
    return int(raw)


def _to_float(raw: str) -> float:
    if not _FLOAT.fullmatch(raw):
        raise ValueError(raw)
    return float(raw)


_CONVERTERS: dict[ScalarType, Callable[[str], Any]] = {
    ScalarType.STR: str,
    ScalarType.INT: _to_int,
    ScalarType.FLOAT: _to_float,
    ScalarType.BOOL: _to_bool,
}


def convert_scalar(raw: str, scalar_type: ScalarType, name: str) -> Any:
    """Convert one request string to ``scalar_type``, naming ``name`` on failure."""
    try:
        return _CONVERTERS[scalar_type](raw)
    except (TypeError, ValueError) as e:
        raise TypeConversionError(
            f"Failed to convert value {raw!r} to {scalar_type.value} for {name!r}",
            parameter=name,
        ) from e


def is_blank(raw: str | None) -> bool:
    return raw is None or raw.strip() == ""
