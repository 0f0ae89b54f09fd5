"""
Binding markers for handler signatures, used with ``typing.Annotated``::

    def mapping_path(data: Annotated[str, PathVariable("userId")]) -> str: ...
    def default(age: Annotated[int, RequestParam(default="-1")]) -> str: ...
    def create(data: Annotated[HelloData, RequestBody()]) -> HelloData: ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PathVariable:
    name: Optional[str] = None


@dataclass(frozen=True)
class RequestParam:
    name: Optional[str] = None
    required: bool = True
    default: Optional[str] = None


@dataclass(frozen=True)
class RequestBody:
    required: bool = True


@dataclass(frozen=True)
class ModelAttribute:
    name: Optional[str] = None


MARKER_TYPES = (PathVariable, RequestParam, RequestBody, ModelAttribute)
