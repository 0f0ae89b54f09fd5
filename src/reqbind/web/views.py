from __future__ import annotations

from typing import Any, Mapping, Protocol

from reqbind.domain.errors import ViewNotFound


class ViewRenderer(Protocol):
    def render(self, view_name: str, model: Mapping[str, Any]) -> bytes: ...


class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return ""


class TemplateViewRenderer:
    """
    Renders views from a name -> format string table, e.g.
    ``{"response/hello": "<p>{data}</p>"}``. Unknown model keys render empty.
    """

    def __init__(self, templates: Mapping[str, str], charset: str = "utf-8") -> None:
        self._templates = dict(templates)
        self._charset = charset

    def render(self, view_name: str, model: Mapping[str, Any]) -> bytes:
        try:
            template = self._templates[view_name]
        except KeyError:
            raise ViewNotFound(f"No view named {view_name!r}") from None
        return template.format_map(_Blank(model)).encode(self._charset)

    def __contains__(self, view_name: object) -> bool:
        return view_name in self._templates
