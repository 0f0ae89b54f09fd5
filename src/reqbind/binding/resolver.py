from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import parse_qs

from reqbind.binding.body import BufferedBody
from reqbind.binding.convert import convert_scalar, is_blank
from reqbind.binding.mapper import ObjectMapper, PydanticObjectMapper
from reqbind.binding.media import (
    APPLICATION_FORM,
    APPLICATION_JSON,
    TEXT_HTML,
    TEXT_PLAIN,
    MediaType,
    consumes_matches,
    negotiate,
)
from reqbind.config import ReqbindSettings, get_settings
from reqbind.domain.errors import (
    BodyDeserializationError,
    MissingRequiredParameter,
    NotAcceptable,
    PathVariableMissing,
    UnsupportedMediaType,
    ViewNotFound,
)
from reqbind.domain.models import RequestDescriptor, Response
from reqbind.domain.specs import (
    BindingSource,
    HandlerSpec,
    ParameterSpec,
    ParamKind,
    ReturnKind,
    ScalarType,
)
from reqbind.logs import NULL_LOGGER
from reqbind.web.infra import Model, ModelAndView, RequestEntity, ResponseEntity, ResponseWriter
from reqbind.web.views import ViewRenderer

_PARAMETER_SOURCES = (BindingSource.QUERY, BindingSource.QUERY_MAP, BindingSource.MODEL_ATTRIBUTE)


@dataclass
class BindingOutcome:
    """Bound handler arguments plus the per-request model and response writer."""

    arguments: dict[str, Any]
    model: Model = field(default_factory=Model)
    response: ResponseWriter = field(default_factory=ResponseWriter)
    path_variables: dict[str, str] = field(default_factory=dict)

    def invoke(self, handler: HandlerSpec) -> Any:
        return handler.func(**self.arguments)


def _first(values: Optional[list[str]]) -> Optional[str]:
    if not values:
        return None
    return values[0]


class BindingResolver:
    """
    Decides, per handler parameter, where its value comes from and binds it.

    ``resolve`` is all-or-nothing: any failure raises a BindingError and the
    handler must not be invoked. ``render`` turns the handler's return value
    into a Response.
    """

    def __init__(
        self,
        object_mapper: Optional[ObjectMapper] = None,
        view_renderer: Optional[ViewRenderer] = None,
        settings: Optional[ReqbindSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.object_mapper = object_mapper or PydanticObjectMapper()
        self.view_renderer = view_renderer
        self.settings = settings or get_settings()
        self.log = logger or NULL_LOGGER

    # ----------------------------
    # Request side
    # ----------------------------

    def resolve(self, request: RequestDescriptor, handler: HandlerSpec) -> BindingOutcome:
        outcome = BindingOutcome(
            arguments={},
            response=ResponseWriter(charset=self.settings.default_charset),
            path_variables=handler.template.match(request.path) or {},
        )

        with BufferedBody(
            request,
            max_bytes=self.settings.max_body_bytes,
            default_charset=self.settings.default_charset,
        ) as body:
            if handler.consumes and not consumes_matches(request.content_type, handler.consumes):
                raise UnsupportedMediaType(
                    f"Content type {request.content_type!r} not supported; expected one of {list(handler.consumes)}"
                )

            params: dict[str, list[str]] = {}
            if any(p.source in _PARAMETER_SOURCES for p in handler.parameters):
                params = self._request_parameters(request, body)

            for p in handler.parameters:
                value = self._bind(p, request, handler, outcome, body, params)
                self.log.debug("%s: bound %s from %s", handler.name, p.name, p.source.value)
                outcome.arguments[p.name] = value

        return outcome

    def _request_parameters(self, request: RequestDescriptor, body: BufferedBody) -> dict[str, list[str]]:
        values = {k: list(v) for k, v in request.query.items()}
        if request.content_type:
            try:
                is_form = MediaType.parse(request.content_type).essence == APPLICATION_FORM
            except ValueError:
                is_form = False
            if is_form and request.method != "GET":
                for k, vs in parse_qs(body.text(), keep_blank_values=True).items():
                    values.setdefault(k, []).extend(vs)
        return values

    def _bind(
        self,
        p: ParameterSpec,
        request: RequestDescriptor,
        handler: HandlerSpec,
        outcome: BindingOutcome,
        body: BufferedBody,
        params: dict[str, list[str]],
    ) -> Any:
        if p.source is BindingSource.INFRASTRUCTURE:
            return self._bind_infrastructure(p, request, outcome, body)
        if p.source is BindingSource.PATH:
            return self._bind_path(p, handler, outcome.path_variables)
        if p.source is BindingSource.BODY:
            return self._bind_body(p, body)
        if p.source is BindingSource.QUERY:
            return self._bind_query(p, params)
        if p.source is BindingSource.QUERY_MAP:
            return self._bind_map(p, params)
        return self._bind_structure(p, params, outcome.model)

    def _bind_infrastructure(
        self,
        p: ParameterSpec,
        request: RequestDescriptor,
        outcome: BindingOutcome,
        body: BufferedBody,
    ) -> Any:
        if p.kind is ParamKind.RESPONSE:
            return outcome.response
        if p.kind is ParamKind.MODEL:
            return outcome.model
        if p.kind is ParamKind.RAW_STREAM:
            return body.open_stream()
        if p.kind is ParamKind.REQUEST:
            if request.stream is None:
                return request
            return request.model_copy(update={"body": body.read_bytes(), "stream": None})

        # request entity: body (text or mapped object) with request line and headers
        if p.body_shape is str:
            entity_body: Any = body.text()
        elif body.read_bytes().strip():
            entity_body = self.object_mapper.deserialize(body.read_bytes(), p.body_shape)
        else:
            entity_body = None
        return RequestEntity(
            body=entity_body,
            headers=dict(request.headers),
            method=request.method,
            path=request.path,
        )

    def _bind_path(self, p: ParameterSpec, handler: HandlerSpec, path_vars: dict[str, str]) -> Any:
        names = handler.template.names
        if p.lookup in path_vars:
            raw = path_vars[p.lookup]
        elif not p.explicit_lookup and len(names) == 1 and names[0] in path_vars:
            raw = path_vars[names[0]]
        else:
            raise PathVariableMissing(
                f"Missing path variable {p.lookup!r} for {handler.path}",
                parameter=p.name,
            )
        return convert_scalar(raw, p.scalar_type, p.lookup)

    def _bind_body(self, p: ParameterSpec, body: BufferedBody) -> Any:
        data = body.read_bytes()
        if not data.strip() and p.kind is ParamKind.STRUCTURE:
            if not p.required:
                return None
            raise BodyDeserializationError("Required request body is missing", parameter=p.name)

        if p.kind is ParamKind.SCALAR:
            if not data and p.required:
                raise BodyDeserializationError("Required request body is missing", parameter=p.name)
            return body.text() if data else None

        try:
            return self.object_mapper.deserialize(data, p.body_shape)
        except BodyDeserializationError as e:
            e.parameter = p.name
            raise

    def _bind_query(self, p: ParameterSpec, params: dict[str, list[str]]) -> Any:
        raw = _first(params.get(p.lookup))

        # blank counts as absent when a default exists, and always for non-string kinds
        absent = raw is None or (is_blank(raw) and (p.default is not None or p.scalar_type is not ScalarType.STR))
        if absent:
            if p.default is not None:
                return convert_scalar(p.default, p.scalar_type, p.lookup)
            if p.required:
                raise MissingRequiredParameter(
                    f"Required request parameter {p.lookup!r} for method parameter type "
                    f"{p.scalar_type.value} is not present",
                    parameter=p.lookup,
                )
            return None

        return convert_scalar(raw, p.scalar_type, p.lookup)

    def _bind_map(self, p: ParameterSpec, params: dict[str, list[str]]) -> dict[str, Any]:
        if p.kind is ParamKind.MULTI_MAPPING:
            return {k: list(v) for k, v in params.items()}
        return {k: v[0] for k, v in params.items() if v}

    def _bind_structure(self, p: ParameterSpec, params: dict[str, list[str]], model: Model) -> Any:
        structure = p.structure
        obj = structure.new_instance()
        strict = self.settings.strict_structure_binding

        for key, f in structure.fields.items():
            raw = _first(params.get(key))
            if raw is None or (is_blank(raw) and f.scalar_type is not ScalarType.STR):
                if strict and not f.has_default:
                    raise MissingRequiredParameter(
                        f"Field {key!r} of {structure.name} is not present",
                        parameter=f"{p.name}.{key}",
                    )
                continue
            f.setter(obj, convert_scalar(raw, f.scalar_type, f"{p.name}.{key}"))

        model.add_attribute(p.lookup, obj)
        return obj

    # ----------------------------
    # Response side
    # ----------------------------

    def render(
        self,
        request: RequestDescriptor,
        handler: HandlerSpec,
        outcome: BindingOutcome,
        value: Any,
    ) -> Response:
        """Write the handler's return value. Raises NotAcceptable before any serialization."""
        kind = handler.returns.kind

        if value is None and outcome.response.committed:
            return outcome.response.to_response()

        accept = request.header("accept")
        chosen: Optional[MediaType] = None
        if handler.produces:
            chosen = negotiate(accept, handler.produces)
            if chosen is None:
                raise NotAcceptable(f"Could not produce any of {list(handler.produces)} for Accept {accept!r}")

        if kind is ReturnKind.VOID:
            return self._render_view(request, handler, outcome, None, chosen)
        if kind is ReturnKind.VIEW:
            return self._render_view(request, handler, outcome, value, chosen)
        if kind is ReturnKind.ENTITY:
            return self._render_entity(handler, value, accept, chosen)
        if kind is ReturnKind.OBJECT:
            return self._render_object(value, handler.returns.status, {}, accept, chosen)
        return self._render_text(value, handler.returns.status, {}, chosen)

    def _content_type(self, media: str) -> str:
        return f"{media};charset={self.settings.default_charset}"

    def _render_text(
        self,
        value: Any,
        status: int,
        headers: dict[str, str],
        chosen: Optional[MediaType],
    ) -> Response:
        text = "" if value is None else str(value)
        out = {"Content-Type": self._content_type(chosen.essence if chosen else TEXT_PLAIN)}
        out.update(headers)
        return Response(
            status=status,
            headers=out,
            body=text.encode(self.settings.default_charset),
        )

    def _render_object(
        self,
        value: Any,
        status: int,
        headers: dict[str, str],
        accept: Optional[str],
        chosen: Optional[MediaType],
    ) -> Response:
        if chosen is None:
            chosen = negotiate(accept, [APPLICATION_JSON])
            if chosen is None:
                raise NotAcceptable(f"Could not produce {APPLICATION_JSON} for Accept {accept!r}")
        out = {"Content-Type": chosen.essence}
        out.update(headers)
        return Response(status=status, headers=out, body=self.object_mapper.serialize(value))

    def _render_entity(
        self,
        handler: HandlerSpec,
        value: Any,
        accept: Optional[str],
        chosen: Optional[MediaType],
    ) -> Response:
        if not isinstance(value, ResponseEntity):
            value = ResponseEntity(body=value, status=handler.returns.status)
        if value.body is None or isinstance(value.body, str):
            return self._render_text(value.body, value.status, dict(value.headers), chosen)
        return self._render_object(value.body, value.status, dict(value.headers), accept, chosen)

    def _render_view(
        self,
        request: RequestDescriptor,
        handler: HandlerSpec,
        outcome: BindingOutcome,
        value: Any,
        chosen: Optional[MediaType],
    ) -> Response:
        model = dict(outcome.model)
        if isinstance(value, ModelAndView):
            view_name = value.view_name
            model.update(value.model)
        elif isinstance(value, str) and value:
            view_name = value
        else:
            # no explicit view: the request path names it
            view_name = request.path.lstrip("/")

        if self.view_renderer is None:
            raise ViewNotFound(f"No view renderer configured for view {view_name!r}")

        self.log.debug("%s: rendering view %s", handler.name, view_name)
        return Response(
            status=handler.returns.status,
            headers={"Content-Type": self._content_type(chosen.essence if chosen else TEXT_HTML)},
            body=self.view_renderer.render(view_name, model),
            view_name=view_name,
            model=model,
        )
