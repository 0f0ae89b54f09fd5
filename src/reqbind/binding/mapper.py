from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError

from reqbind.domain.errors import BodyDeserializationError


class ObjectMapper(Protocol):
    def serialize(self, obj: Any) -> bytes: ...

    def deserialize(self, data: bytes, shape: Any) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class PydanticObjectMapper:
    """JSON object mapper backed by pydantic validation and serialization."""

    def serialize(self, obj: Any) -> bytes:
        if isinstance(obj, BaseModel):
            return obj.model_dump_json().encode("utf-8")
        return _adapter(type(obj)).dump_json(obj)

    def deserialize(self, data: bytes, shape: Any) -> Any:
        if not data or not data.strip():
            raise BodyDeserializationError("Required request body is missing")
        try:
            if isinstance(shape, type) and issubclass(shape, BaseModel):
                return shape.model_validate_json(data)
            return _adapter(shape).validate_json(data)
        except ValidationError as e:
            raise BodyDeserializationError(
                f"Could not read {getattr(shape, '__name__', shape)!s}: {e.error_count()} error(s)"
            ) from e
