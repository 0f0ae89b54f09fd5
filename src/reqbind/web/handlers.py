from __future__ import annotations

import inspect
import io
import typing
from typing import IO, Annotated, Any, BinaryIO, Callable, Optional, get_args, get_origin

from reqbind.binding.structures import StructureRegistry, is_structure_type
from reqbind.binding.typeinfo import mapping_kind, scalar_of
from reqbind.domain.errors import HandlerSpecError
from reqbind.domain.models import RequestDescriptor
from reqbind.domain.specs import (
    BindingSource,
    HandlerSpec,
    ParameterSpec,
    ParamKind,
    ReturnKind,
    ReturnSpec,
    ScalarType,
)
from reqbind.web.infra import Model, ModelAndView, RequestEntity, ResponseEntity, ResponseWriter
from reqbind.web.mappings import RouteMapping
from reqbind.web.markers import MARKER_TYPES, ModelAttribute, PathVariable, RequestBody, RequestParam

_EMPTY = inspect.Parameter.empty

# Reserved types: never bound from request parameters.
_INFRASTRUCTURE: dict[Any, ParamKind] = {
    RequestDescriptor: ParamKind.REQUEST,
    ResponseWriter: ParamKind.RESPONSE,
    Model: ParamKind.MODEL,
    BinaryIO: ParamKind.RAW_STREAM,
    IO: ParamKind.RAW_STREAM,
    io.BytesIO: ParamKind.RAW_STREAM,
    io.BufferedIOBase: ParamKind.RAW_STREAM,
}


def _decapitalize(name: str) -> str:
    return name[:1].lower() + name[1:]


def _split_annotated(hint: Any) -> tuple[Any, Optional[object]]:
    if get_origin(hint) is Annotated:
        base, *meta = get_args(hint)
        markers = [m for m in meta if isinstance(m, MARKER_TYPES)]
        if len(markers) > 1:
            raise HandlerSpecError(f"More than one binding marker on {hint!r}")
        return base, (markers[0] if markers else None)
    return hint, None


def _infrastructure_kind(tp: Any) -> Optional[ParamKind]:
    if tp in _INFRASTRUCTURE:
        return _INFRASTRUCTURE[tp]
    origin = get_origin(tp)
    if origin is RequestEntity or tp is RequestEntity:
        return ParamKind.REQUEST_ENTITY
    if origin is not None and origin in _INFRASTRUCTURE:
        return _INFRASTRUCTURE[origin]
    return None


def _python_default(param: inspect.Parameter) -> tuple[bool, Optional[str]]:
    """(has_default, default-as-request-string). A None default means "not required"."""
    if param.default is _EMPTY:
        return False, None
    if param.default is None:
        return True, None
    return True, str(param.default)


def _scalar_param(
    name: str,
    tp: Any,
    source: BindingSource,
    *,
    lookup: Optional[str],
    required: bool,
    default: Optional[str],
) -> ParameterSpec:
    sc = scalar_of(tp)
    if sc is None:
        raise HandlerSpecError(f"{name}: {tp!r} is not a scalar type")
    scalar_type, nullable = sc
    return ParameterSpec(
        name=name,
        kind=ParamKind.SCALAR,
        source=source,
        scalar_type=scalar_type,
        nullable=nullable,
        lookup=lookup or name,
        explicit_lookup=lookup is not None,
        required=required and default is None,
        default=default,
    )


def build_parameter_spec(
    param: inspect.Parameter,
    hint: Any,
    structures: StructureRegistry,
) -> ParameterSpec:
    name = param.name
    tp, marker = _split_annotated(hint)
    has_default, py_default = _python_default(param)

    infra = _infrastructure_kind(tp)
    if infra is not None:
        if marker is not None:
            raise HandlerSpecError(f"{name}: {infra.value} parameters take no binding marker")
        body_shape = None
        if infra is ParamKind.REQUEST_ENTITY:
            args = get_args(tp)
            body_shape = args[0] if args else str
            if is_structure_type(body_shape):
                structures.register(body_shape)
        return ParameterSpec(name=name, kind=infra, source=BindingSource.INFRASTRUCTURE, body_shape=body_shape)

    if isinstance(marker, PathVariable):
        return _scalar_param(name, tp, BindingSource.PATH, lookup=marker.name, required=True, default=None)

    if isinstance(marker, RequestBody):
        if scalar_of(tp) in ((ScalarType.STR, False), (ScalarType.STR, True)):
            return ParameterSpec(
                name=name,
                kind=ParamKind.SCALAR,
                source=BindingSource.BODY,
                scalar_type=ScalarType.STR,
                nullable=True,
                body_shape=str,
                required=marker.required,
            )
        if scalar_of(tp) is not None:
            raise HandlerSpecError(f"{name}: request body binds only to str or a structure")
        structure = structures.register(tp) if is_structure_type(tp) else None
        return ParameterSpec(
            name=name,
            kind=ParamKind.STRUCTURE,
            source=BindingSource.BODY,
            structure=structure,
            body_shape=tp,
            required=marker.required,
        )

    if isinstance(marker, ModelAttribute) or (marker is None and is_structure_type(tp)):
        if not is_structure_type(tp):
            raise HandlerSpecError(f"{name}: model attribute needs a pydantic model or dataclass")
        structure = structures.register(tp)
        model_name = marker.name if isinstance(marker, ModelAttribute) and marker.name else None
        return ParameterSpec(
            name=name,
            kind=ParamKind.STRUCTURE,
            source=BindingSource.MODEL_ATTRIBUTE,
            structure=structure,
            body_shape=tp,
            lookup=model_name or _decapitalize(structure.name),
            explicit_lookup=model_name is not None,
        )

    mk = mapping_kind(tp)
    if mk is not None:
        return ParameterSpec(name=name, kind=mk, source=BindingSource.QUERY_MAP)

    if isinstance(marker, RequestParam):
        default = marker.default if marker.default is not None else py_default
        required = marker.required and not (has_default and py_default is None)
        return _scalar_param(name, tp, BindingSource.QUERY, lookup=marker.name, required=required, default=default)

    if scalar_of(tp) is not None:
        return _scalar_param(
            name,
            tp,
            BindingSource.QUERY,
            lookup=None,
            required=not has_default,
            default=py_default,
        )

    raise HandlerSpecError(f"{name}: cannot decide a binding source for {tp!r}")


def build_return_spec(hint: Any, response_body: bool, status: int) -> ReturnSpec:
    if hint is _EMPTY:
        return ReturnSpec(ReturnKind.TEXT if response_body else ReturnKind.VIEW, status=status)
    if hint is None or hint is type(None):
        return ReturnSpec(ReturnKind.VOID, status=status)
    if hint is ModelAndView:
        return ReturnSpec(ReturnKind.VIEW, status=status)
    if hint is ResponseEntity or get_origin(hint) is ResponseEntity:
        return ReturnSpec(ReturnKind.ENTITY, status=status)
    if hint is str:
        return ReturnSpec(ReturnKind.TEXT if response_body else ReturnKind.VIEW, status=status)
    return ReturnSpec(ReturnKind.OBJECT, status=status, shape=hint)


def build_handler_spec(
    func: Callable[..., Any],
    mapping: RouteMapping,
    structures: StructureRegistry,
    response_body: bool = False,
    name: Optional[str] = None,
) -> HandlerSpec:
    """Inspect a handler once, at registration, and freeze how each argument is bound."""
    handler_name = name or getattr(func, "__qualname__", getattr(func, "__name__", "handler"))
    sig = inspect.signature(func)
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except NameError as e:
        raise HandlerSpecError(f"{handler_name}: unresolvable annotation: {e}") from e

    params: list[ParameterSpec] = []
    for p in sig.parameters.values():
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise HandlerSpecError(f"{handler_name}: *args/**kwargs cannot be bound")
        hint = hints.get(p.name, str)
        try:
            params.append(build_parameter_spec(p, hint, structures))
        except HandlerSpecError as e:
            raise HandlerSpecError(f"{handler_name}: {e}") from e

    returns = build_return_spec(hints.get("return", _EMPTY), response_body, mapping.status_code)

    return HandlerSpec(
        name=handler_name,
        path=mapping.path,
        func=func,
        methods=mapping.methods,
        parameters=tuple(params),
        returns=returns,
        consumes=mapping.consumes,
        produces=mapping.produces,
        params=mapping.params,
        headers=mapping.headers,
    )
