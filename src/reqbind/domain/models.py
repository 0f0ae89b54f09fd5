from __future__ import annotations

from typing import Any, Literal, Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from reqbind.domain.paths import normalize_path

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class RequestDescriptor(BaseModel):
    """One inbound call. Built per request and discarded after the handler returns."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: HttpMethod
    path: str
    query: dict[str, list[str]] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)  # keys lower-cased
    body: Optional[bytes] = None
    stream: Optional[Any] = Field(default=None, exclude=True)  # single-consumer binary stream
    content_type: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper().strip() if isinstance(v, str) else v

    @field_validator("path")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_path(v)

    @field_validator("query", mode="before")
    @classmethod
    def _listify_query(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {
            str(k): list(val) if isinstance(val, (list, tuple)) else [val]
            for k, val in v.items()
        }

    @field_validator("headers", mode="before")
    @classmethod
    def _lower_headers(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {str(k).lower(): val for k, val in v.items()}

    @model_validator(mode="after")
    def _content_type_from_header(self) -> "RequestDescriptor":
        if self.content_type is None and "content-type" in self.headers:
            self.content_type = self.headers["content-type"]
        return self

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes | str] = None,
    ) -> "RequestDescriptor":
        parts = urlsplit(url)
        query = parse_qs(parts.query, keep_blank_values=True)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method,
            path=parts.path or "/",
            query=query,
            headers=headers or {},
            body=body,
        )

    def parameter(self, name: str) -> Optional[str]:
        """First query value for ``name``, or None."""
        values = self.query.get(name)
        return values[0] if values else None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)


class Response(BaseModel):
    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    # set when a view renderer produced the body
    view_name: Optional[str] = None
    model: dict[str, Any] = Field(default_factory=dict)

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def text(self, charset: str = "utf-8") -> str:
        return self.body.decode(charset, errors="replace")
