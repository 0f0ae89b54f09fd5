"""
Route mapping decorators for handler functions and controller classes.

    @rest_controller
    class MappingController:
        @get_mapping("/mapping/{userId}")
        def mapping_path(self, data: Annotated[str, PathVariable("userId")]) -> str: ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

F = TypeVar("F", bound=Callable[..., Any])

MAPPING_ATTR = "__reqbind_mapping__"
RESPONSE_BODY_ATTR = "__reqbind_response_body__"
PREFIX_ATTR = "__reqbind_prefix__"

Conditions = Union[str, Iterable[str], None]


def _as_tuple(value: Conditions) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class RouteMapping:
    path: str
    methods: tuple[str, ...] = ()
    params: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()
    status_code: int = 200


def request_mapping(
    path: str = "",
    *,
    method: Conditions = None,
    params: Conditions = None,
    headers: Conditions = None,
    consumes: Conditions = None,
    produces: Conditions = None,
    status_code: int = 200,
) -> Callable[[F], F]:
    """
    On a function: declare a route. On a class: set the path prefix
    for every mapped method of the controller.
    """

    def decorator(target: F) -> F:
        if isinstance(target, type):
            setattr(target, PREFIX_ATTR, path.rstrip("/"))
            return target
        setattr(
            target,
            MAPPING_ATTR,
            RouteMapping(
                path=path,
                methods=tuple(m.upper() for m in _as_tuple(method)),
                params=_as_tuple(params),
                headers=_as_tuple(headers),
                consumes=_as_tuple(consumes),
                produces=_as_tuple(produces),
                status_code=status_code,
            ),
        )
        return target

    return decorator


def _make_method_mapping(method: str) -> Callable[..., Callable[[F], F]]:
    def mapping(path: str = "", **kwargs: Any) -> Callable[[F], F]:
        return request_mapping(path, method=method, **kwargs)

    mapping.__name__ = f"{method.lower()}_mapping"
    mapping.__qualname__ = f"{method.lower()}_mapping"
    return mapping


get_mapping = _make_method_mapping("GET")
post_mapping = _make_method_mapping("POST")
put_mapping = _make_method_mapping("PUT")
patch_mapping = _make_method_mapping("PATCH")
delete_mapping = _make_method_mapping("DELETE")


def response_body(func: F) -> F:
    """A ``str`` return is the response body, not a view name."""
    setattr(func, RESPONSE_BODY_ATTR, True)
    return func


def controller(cls: type) -> type:
    """Controller whose ``str`` returns are view names unless marked ``@response_body``."""
    setattr(cls, RESPONSE_BODY_ATTR, False)
    return cls


def rest_controller(cls: type) -> type:
    """Controller whose every return value is the response body."""
    setattr(cls, RESPONSE_BODY_ATTR, True)
    return cls


def mapping_of(func: Callable[..., Any]) -> Optional[RouteMapping]:
    return getattr(func, MAPPING_ATTR, None)


def with_prefix(mapping: RouteMapping, prefix: str) -> RouteMapping:
    if not prefix:
        return mapping
    return replace(mapping, path=f"{prefix.rstrip('/')}/{mapping.path.lstrip('/')}")
