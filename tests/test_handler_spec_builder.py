from typing import Annotated, Optional

import pytest
from pydantic import BaseModel

from reqbind.domain.errors import HandlerSpecError
from reqbind.domain.specs import BindingSource, ParamKind, ReturnKind, ScalarType
from reqbind.web.infra import ModelAndView, ResponseEntity
from reqbind.web.mappings import (
    controller,
    get_mapping,
    post_mapping,
    request_mapping,
    response_body,
    rest_controller,
)
from reqbind.web.markers import PathVariable, RequestBody, RequestParam
from reqbind.web.registry import HandlerRegistry


class HelloData(BaseModel):
    username: Optional[str] = None
    age: int = 0


@request_mapping("/scalars")
def scalars(a: str, b: Optional[int] = None, c: int = 5, d: Annotated[bool, RequestParam(default="true")] = False):
    return "ok"


@request_mapping("/bad")
def optional_primitive(age: Annotated[int, RequestParam(required=False)]) -> str:
    return "ok"


@request_mapping("/unbindable")
def unbindable(things: list[int]) -> str:
    return "ok"


@post_mapping("/body")
def int_body(n: Annotated[int, RequestBody()]) -> str:
    return "ok"


def params_of(func, **kw):
    return {p.name: p for p in HandlerRegistry().register(func, **kw).parameters}


def test_scalar_parameters_from_signature():
    p = params_of(scalars)

    assert p["a"].source is BindingSource.QUERY
    assert p["a"].required and p["a"].default is None

    assert not p["b"].required and p["b"].nullable
    assert p["b"].scalar_type is ScalarType.INT

    assert p["c"].default == "5" and not p["c"].required

    # marker default wins over the Python default
    assert p["d"].default == "true"


def test_non_nullable_optional_without_default_is_rejected():
    with pytest.raises(HandlerSpecError):
        HandlerRegistry().register(optional_primitive)


def test_unbindable_type_is_rejected():
    with pytest.raises(HandlerSpecError):
        HandlerRegistry().register(unbindable)


def test_body_only_binds_text_or_structures():
    with pytest.raises(HandlerSpecError):
        HandlerRegistry().register(int_body)


def test_path_variable_marker():
    @get_mapping("/x/{xId}")
    def handler(x: Annotated[str, PathVariable("xId")], y: Annotated[int, PathVariable()]) -> str:
        return "ok"

    p = params_of(handler)
    assert p["x"].source is BindingSource.PATH and p["x"].lookup == "xId" and p["x"].explicit_lookup
    assert p["y"].lookup == "y" and not p["y"].explicit_lookup


@pytest.mark.parametrize(
    "annotation,body,expected",
    [
        (str, True, ReturnKind.TEXT),
        (str, False, ReturnKind.VIEW),
        (None, True, ReturnKind.VOID),
        (HelloData, True, ReturnKind.OBJECT),
        (ResponseEntity[str], False, ReturnKind.ENTITY),
        (ModelAndView, True, ReturnKind.VIEW),
    ],
)
def test_return_kinds(annotation, body, expected):
    def handler():
        return None

    handler.__annotations__["return"] = annotation
    handler = request_mapping("/r")(handler)
    assert HandlerRegistry().register(handler, response_body=body).returns.kind is expected


def test_unannotated_return_follows_response_body():
    assert HandlerRegistry().register(scalars, response_body=True).returns.kind is ReturnKind.TEXT
    assert HandlerRegistry().register(scalars, response_body=False).returns.kind is ReturnKind.VIEW


def test_controller_classes():
    @controller
    @request_mapping("/basic")
    class Basic:
        @get_mapping("/view")
        def view(self) -> str:
            return "some/view"

        @response_body
        @get_mapping("/body")
        def body(self) -> str:
            return "ok"

        def helper(self) -> str:
            return "not mapped"

    @rest_controller
    class Rest:
        @get_mapping("/rest")
        def rest(self) -> str:
            return "ok"

    registry = HandlerRegistry()
    specs = {s.template.raw: s for s in registry.register_controller(Basic()) + registry.register_controller(Rest())}

    assert set(specs) == {"/basic/view", "/basic/body", "/rest"}
    assert specs["/basic/view"].returns.kind is ReturnKind.VIEW
    assert specs["/basic/body"].returns.kind is ReturnKind.TEXT
    assert specs["/rest"].returns.kind is ReturnKind.TEXT
    assert specs["/basic/view"].methods == ("GET",)


def test_ambiguous_mapping_rejected():
    @get_mapping("/same")
    def one() -> str:
        return "1"

    @request_mapping("/same")
    def two() -> str:
        return "2"

    @get_mapping("/same", params="mode=debug")
    def three() -> str:
        return "3"

    registry = HandlerRegistry()
    registry.register(one)
    registry.register(three)
    with pytest.raises(HandlerSpecError):
        registry.register(two)


def test_frozen_registry_is_read_only():
    registry = HandlerRegistry().freeze()
    with pytest.raises(RuntimeError):
        registry.register(scalars)


def test_request_entity_and_stream_kinds():
    from typing import BinaryIO

    from reqbind.web.infra import RequestEntity

    @post_mapping("/e")
    def handler(entity: RequestEntity[HelloData], stream: BinaryIO) -> str:
        return "ok"

    p = params_of(handler)
    assert p["entity"].kind is ParamKind.REQUEST_ENTITY and p["entity"].body_shape is HelloData
    assert p["stream"].kind is ParamKind.RAW_STREAM
