from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterator, Optional

from reqbind.binding.structures import StructureRegistry
from reqbind.domain.errors import HandlerSpecError
from reqbind.domain.specs import HandlerSpec
from reqbind.web.handlers import build_handler_spec
from reqbind.web.mappings import (
    PREFIX_ATTR,
    RESPONSE_BODY_ATTR,
    mapping_of,
    with_prefix,
)

logger = logging.getLogger(__name__)


def _overlaps(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    # empty means "any method"
    return not a or not b or bool(set(a) & set(b))


class HandlerRegistry:
    """
    Table of registered handlers.

    Built once at startup; ``freeze()`` makes it read-only so that request
    threads can share it without locking.
    """

    def __init__(self, structures: Optional[StructureRegistry] = None) -> None:
        self.structures = structures or StructureRegistry()
        self._handlers: list[HandlerSpec] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "HandlerRegistry":
        self._frozen = True
        return self

    def add(self, spec: HandlerSpec) -> HandlerSpec:
        if self._frozen:
            raise RuntimeError("Handler registry is frozen")

        for h in self._handlers:
            if (
                h.template.raw == spec.template.raw
                and _overlaps(h.methods, spec.methods)
                and h.params == spec.params
                and h.headers == spec.headers
                and h.consumes == spec.consumes
                and h.produces == spec.produces
            ):
                raise HandlerSpecError(
                    f"Ambiguous mapping: {spec.name} and {h.name} both map {spec.template.raw}"
                )

        self._handlers.append(spec)
        logger.debug("mapped %s %s -> %s", ",".join(spec.methods) or "*", spec.template.raw, spec.name)
        return spec

    def register(
        self,
        func: Callable[..., Any],
        *,
        response_body: Optional[bool] = None,
        prefix: str = "",
    ) -> HandlerSpec:
        mapping = mapping_of(func)
        if mapping is None:
            raise HandlerSpecError(f"{func!r} has no route mapping")

        if response_body is None:
            response_body = bool(getattr(func, RESPONSE_BODY_ATTR, False))
        elif getattr(func, RESPONSE_BODY_ATTR, False):
            response_body = True

        spec = build_handler_spec(
            func,
            with_prefix(mapping, prefix),
            self.structures,
            response_body=response_body,
        )
        return self.add(spec)

    def register_controller(self, instance: Any) -> list[HandlerSpec]:
        cls = type(instance)
        prefix = getattr(cls, PREFIX_ATTR, "")
        class_body = getattr(cls, RESPONSE_BODY_ATTR, False)

        out: list[HandlerSpec] = []
        for attr, member in inspect.getmembers(cls, inspect.isfunction):
            if mapping_of(member) is None:
                continue
            out.append(
                self.register(
                    getattr(instance, attr),
                    response_body=class_body,
                    prefix=prefix,
                )
            )
        return out

    @property
    def handlers(self) -> tuple[HandlerSpec, ...]:
        return tuple(self._handlers)

    def __iter__(self) -> Iterator[HandlerSpec]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
