from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from reqbind.binding.media import APPLICATION_JSON, consumes_matches
from reqbind.binding.resolver import BindingResolver
from reqbind.domain.errors import (
    BindingError,
    MethodNotAllowed,
    NoHandlerFound,
    RoutingError,
    ViewNotFound,
)
from reqbind.domain.models import RequestDescriptor, Response
from reqbind.domain.specs import HandlerSpec
from reqbind.web.registry import HandlerRegistry

logger = logging.getLogger(__name__)


def condition_met(expr: str, lookup: Callable[[str], Optional[str]]) -> bool:
    """
    Evaluate one mapping condition against request values:
    ``name``, ``!name``, ``name=value`` or ``name!=value``.
    """
    expr = expr.strip()
    if "!=" in expr:
        k, v = expr.split("!=", 1)
        return lookup(k.strip()) != v.strip()
    if "=" in expr:
        k, v = expr.split("=", 1)
        return lookup(k.strip()) == v.strip()
    if expr.startswith("!"):
        return lookup(expr[1:].strip()) is None
    return lookup(expr) is not None


def _specificity(h: HandlerSpec) -> tuple[int, int, int]:
    # static paths first, then fewer placeholders, then more conditions
    return (0 if h.template.is_static else 1, len(h.template.names), -(len(h.params) + len(h.headers)))


class Dispatcher:
    """
    Selects the handler for a request, binds its arguments, invokes it and
    renders the result. Binding failures never reach the handler.
    """

    def __init__(self, registry: HandlerRegistry, resolver: BindingResolver) -> None:
        self.registry = registry
        self.resolver = resolver

    def find_handler(self, request: RequestDescriptor) -> HandlerSpec:
        on_path = [h for h in self.registry if h.template.match(request.path) is not None]
        if not on_path:
            raise NoHandlerFound(f"No handler for {request.method} {request.path}")

        by_method = [h for h in on_path if not h.methods or request.method in h.methods]
        if not by_method:
            allowed = tuple(sorted({m for h in on_path for m in h.methods}))
            raise MethodNotAllowed(
                f"Request method {request.method!r} is not supported for {request.path}",
                allowed=allowed,
            )

        matched = [
            h
            for h in by_method
            if all(condition_met(c, request.parameter) for c in h.params)
            and all(condition_met(c, request.header) for c in h.headers)
        ]
        if not matched:
            raise NoHandlerFound(f"No handler for {request.method} {request.path} matching its parameters/headers")

        matched.sort(key=_specificity)
        for h in matched:
            if consumes_matches(request.content_type, h.consumes):
                return h
        # let the resolver report the media type mismatch
        return matched[0]

    def dispatch(self, request: RequestDescriptor) -> Response:
        try:
            handler = self.find_handler(request)
        except RoutingError as e:
            if request.stream is not None:
                request.stream.close()
            logger.info("%s %s -> %d: %s", request.method, request.path, e.status_code, e.message)
            resp = self._json_error(e.status_code, {"error": type(e).__name__, "message": e.message})
            if e.allowed:
                resp.headers["Allow"] = ", ".join(e.allowed)
            return resp

        try:
            outcome = self.resolver.resolve(request, handler)
        except BindingError as e:
            logger.info("%s: binding failed (%s) %s", handler.name, e.kind.value, e.message)
            return self._json_error(e.status_code, e.to_dict())

        try:
            value = outcome.invoke(handler)
            response = self.resolver.render(request, handler, outcome, value)
        except BindingError as e:
            logger.info("%s: %s %s", handler.name, e.kind.value, e.message)
            return self._json_error(e.status_code, e.to_dict())
        except ViewNotFound as e:
            logger.error("%s: %s", handler.name, e)
            return self._json_error(500, {"error": "view_not_found", "message": str(e)})

        logger.debug("%s %s -> %s %d", request.method, request.path, handler.name, response.status)
        return response

    def _json_error(self, status: int, payload: dict[str, Any]) -> Response:
        return Response(
            status=status,
            headers={"Content-Type": APPLICATION_JSON},
            body=self.resolver.object_mapper.serialize(payload),
        )
