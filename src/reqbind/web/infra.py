"""Objects a handler can declare to receive or produce whole-request/response data."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from reqbind.domain.models import Response

T = TypeVar("T")


class Model(dict):
    """Attributes handed to the view renderer."""

    def add_attribute(self, name: str, value: Any) -> "Model":
        self[name] = value
        return self


@dataclass
class ModelAndView:
    view_name: str
    model: dict[str, Any] = field(default_factory=dict)

    def add_object(self, name: str, value: Any) -> "ModelAndView":
        self.model[name] = value
        return self


@dataclass(frozen=True)
class RequestEntity(Generic[T]):
    """Request body plus the request line and headers."""

    body: Optional[T]
    headers: dict[str, str]
    method: str
    path: str


@dataclass(frozen=True)
class ResponseEntity(Generic[T]):
    body: Optional[T] = None
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)


class ResponseWriter:
    """Direct access to the outgoing response. Once written to, it is the response."""

    def __init__(self, charset: str = "utf-8") -> None:
        self._buf = io.StringIO()
        self._charset = charset
        self._committed = False
        self.status = 200
        self.headers: dict[str, str] = {}

    @property
    def committed(self) -> bool:
        return self._committed

    def write(self, text: str) -> None:
        self._committed = True
        self._buf.write(text)

    def set_status(self, status: int) -> None:
        self._committed = True
        self.status = status

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def to_response(self) -> Response:
        headers = dict(self.headers)
        headers.setdefault("Content-Type", f"text/plain;charset={self._charset}")
        return Response(
            status=self.status,
            headers=headers,
            body=self._buf.getvalue().encode(self._charset),
        )
