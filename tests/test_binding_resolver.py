import io
from typing import Annotated, BinaryIO, Optional

import pytest
from pydantic import BaseModel

from reqbind.binding.resolver import BindingResolver
from reqbind.config import ReqbindSettings
from reqbind.domain.errors import (
    BindingErrorKind,
    BodyDeserializationError,
    MissingRequiredParameter,
    PathVariableMissing,
    PayloadTooLarge,
    TypeConversionError,
    UnsupportedMediaType,
)
from reqbind.domain.models import RequestDescriptor
from reqbind.web.infra import Model, RequestEntity, ResponseWriter
from reqbind.web.mappings import get_mapping, post_mapping, request_mapping
from reqbind.web.markers import PathVariable, RequestBody, RequestParam
from reqbind.web.registry import HandlerRegistry


class HelloData(BaseModel):
    username: Optional[str] = None
    age: int = 0


class TrackingStream(io.BytesIO):
    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        return super().read(size)


@request_mapping("/defaults")
def defaults(
    username: Annotated[str, RequestParam(default="guest")],
    age: Annotated[int, RequestParam(default="-1")],
) -> str:
    return "ok"


@request_mapping("/required")
def required(
    username: Annotated[str, RequestParam()],
    age: Annotated[Optional[int], RequestParam(required=False)],
) -> str:
    return "ok"


@request_mapping("/implicit")
def implicit(username: str, age: int) -> str:
    return "ok"


@request_mapping("/renamed")
def renamed(member_name: Annotated[str, RequestParam("username")]) -> str:
    return "ok"


@get_mapping("/users/{userId}/orders/{orderId}")
def orders(
    user_id: Annotated[str, PathVariable("userId")],
    order_id: Annotated[int, PathVariable("orderId")],
) -> str:
    return "ok"


@get_mapping("/items/{id}")
def single_item(item: Annotated[str, PathVariable()]) -> str:
    return "ok"


@get_mapping("/things/{id}")
def wrong_name(item: Annotated[str, PathVariable("thingId")]) -> str:
    return "ok"


@post_mapping("/json", consumes="application/json")
def json_body(data: Annotated[HelloData, RequestBody()]) -> HelloData:
    return data


@post_mapping("/text")
def text_body(body: Annotated[str, RequestBody()]) -> str:
    return body


@post_mapping("/optional-body")
def optional_body(data: Annotated[HelloData, RequestBody(required=False)]) -> str:
    return "ok"


@request_mapping("/map")
def as_map(params: dict[str, str]) -> str:
    return "ok"


@request_mapping("/multi")
def as_multi(params: dict[str, list[str]]) -> str:
    return "ok"


@post_mapping("/infra")
def infra(
    request: RequestDescriptor,
    response: ResponseWriter,
    model: Model,
    stream: BinaryIO,
    entity: RequestEntity[HelloData],
) -> None:
    return None


def spec(func):
    return HandlerRegistry().register(func, response_body=True)


def resolver(**settings):
    return BindingResolver(settings=ReqbindSettings(**settings))


def get(url, **kw):
    return RequestDescriptor.from_url("GET", url, **kw)


def post(url, body, content_type="application/json"):
    return RequestDescriptor.from_url("POST", url, headers={"Content-Type": content_type}, body=body)


def test_blank_triggers_default_but_explicit_value_wins():
    out = resolver().resolve(get("/defaults?username=guest&age="), spec(defaults))
    assert out.arguments == {"username": "guest", "age": -1}
    assert type(out.arguments["age"]) is int


def test_defaults_when_absent():
    out = resolver().resolve(get("/defaults"), spec(defaults))
    assert out.arguments == {"username": "guest", "age": -1}


def test_missing_required_parameter_is_named():
    with pytest.raises(MissingRequiredParameter) as ei:
        resolver().resolve(get("/required?age=3"), spec(required))
    assert ei.value.parameter == "username"
    assert ei.value.kind is BindingErrorKind.MISSING_REQUIRED_PARAMETER


def test_optional_nullable_absent_binds_none():
    out = resolver().resolve(get("/required?username=kim"), spec(required))
    assert out.arguments == {"username": "kim", "age": None}


def test_blank_string_without_default_is_a_value():
    out = resolver().resolve(get("/required?username="), spec(required))
    assert out.arguments["username"] == ""


def test_implicit_scalars_bind_from_query():
    out = resolver().resolve(get("/implicit?username=kim&age=20"), spec(implicit))
    assert out.arguments == {"username": "kim", "age": 20}


def test_first_value_wins_for_scalars():
    out = resolver().resolve(get("/implicit?username=a&username=b&age=1"), spec(implicit))
    assert out.arguments["username"] == "a"


def test_renamed_query_key():
    out = resolver().resolve(get("/renamed?username=kim"), spec(renamed))
    assert out.arguments == {"member_name": "kim"}


def test_conversion_failure():
    with pytest.raises(TypeConversionError) as ei:
        resolver().resolve(get("/implicit?username=kim&age=abc"), spec(implicit))
    assert ei.value.parameter == "age"


def test_blank_int_without_default_is_missing():
    with pytest.raises(MissingRequiredParameter) as ei:
        resolver().resolve(get("/implicit?username=kim&age="), spec(implicit))
    assert ei.value.parameter == "age"


def test_path_variables_by_name():
    out = resolver().resolve(get("/users/u1/orders/42"), spec(orders))
    assert out.arguments == {"user_id": "u1", "order_id": 42}
    assert out.path_variables == {"userId": "u1", "orderId": "42"}


def test_single_placeholder_binds_positionally():
    out = resolver().resolve(get("/items/abc"), spec(single_item))
    assert out.arguments == {"item": "abc"}


def test_path_variable_missing():
    with pytest.raises(PathVariableMissing) as ei:
        resolver().resolve(get("/things/abc"), spec(wrong_name))
    assert ei.value.parameter == "item"


def test_path_variable_conversion():
    with pytest.raises(TypeConversionError):
        resolver().resolve(get("/users/u1/orders/x"), spec(orders))


def test_json_body_binds_structure():
    out = resolver().resolve(post("/json", b'{"username":"kim","age":20}'), spec(json_body))
    assert out.arguments["data"] == HelloData(username="kim", age=20)


def test_consumes_mismatch_fails_before_reading_body():
    stream = TrackingStream(b'{"username":"kim","age":20}')
    request = RequestDescriptor(
        method="POST",
        path="/json",
        headers={"Content-Type": "text/plain"},
        stream=stream,
    )
    with pytest.raises(UnsupportedMediaType):
        resolver().resolve(request, spec(json_body))
    assert stream.reads == 0
    assert stream.closed


def test_malformed_json_names_parameter_and_closes_stream():
    stream = TrackingStream(b'{"username":"kim","age":"old"}')
    request = RequestDescriptor(
        method="POST",
        path="/json",
        headers={"Content-Type": "application/json"},
        stream=stream,
    )
    with pytest.raises(BodyDeserializationError) as ei:
        resolver().resolve(request, spec(json_body))
    assert ei.value.parameter == "data"
    assert stream.reads == 1
    assert stream.closed


def test_empty_body_for_required_structure():
    with pytest.raises(BodyDeserializationError):
        resolver().resolve(post("/json", b""), spec(json_body))


def test_optional_body_absent():
    out = resolver().resolve(post("/optional-body", b""), spec(optional_body))
    assert out.arguments == {"data": None}


def test_text_body_is_raw_text():
    out = resolver().resolve(post("/text", "héllo".encode("utf-8"), "text/plain"), spec(text_body))
    assert out.arguments == {"body": "héllo"}


def test_text_body_honours_charset():
    body = "héllo".encode("latin-1")
    out = resolver().resolve(post("/text", body, "text/plain;charset=latin-1"), spec(text_body))
    assert out.arguments == {"body": "héllo"}


def test_mapping_parameters():
    out = resolver().resolve(get("/map?a=1&a=2&b=3"), spec(as_map))
    assert out.arguments == {"params": {"a": "1", "b": "3"}}

    out = resolver().resolve(get("/multi?a=1&a=2&b=3"), spec(as_multi))
    assert out.arguments == {"params": {"a": ["1", "2"], "b": ["3"]}}


def test_form_body_feeds_parameters():
    request = post("/implicit", b"username=kim&age=20", "application/x-www-form-urlencoded")
    out = resolver().resolve(request, spec(implicit))
    assert out.arguments == {"username": "kim", "age": 20}


def test_body_larger_than_limit():
    with pytest.raises(PayloadTooLarge) as ei:
        resolver(max_body_bytes=4).resolve(post("/text", b"0123456789", "text/plain"), spec(text_body))
    assert ei.value.status_code == 413


def test_infrastructure_parameters_share_one_buffered_body():
    stream = TrackingStream(b'{"username":"kim","age":20}')
    request = RequestDescriptor(
        method="POST",
        path="/infra",
        headers={"Content-Type": "application/json"},
        stream=stream,
    )
    out = resolver().resolve(request, spec(infra))
    args = out.arguments

    assert args["response"] is out.response
    assert args["model"] is out.model
    assert args["request"].body == b'{"username":"kim","age":20}'
    assert args["stream"].read() == b'{"username":"kim","age":20}'
    assert args["entity"].body == HelloData(username="kim", age=20)
    assert args["entity"].headers["content-type"] == "application/json"
    assert stream.reads == 1
    assert stream.closed


def test_resolution_does_not_touch_handler():
    calls = []

    @request_mapping("/count")
    def count(n: int) -> str:
        calls.append(n)
        return "ok"

    with pytest.raises(MissingRequiredParameter):
        resolver().resolve(get("/count"), spec(count))
    assert calls == []

    out = resolver().resolve(get("/count?n=2"), spec(count))
    assert out.invoke(spec(count)) == "ok"
    assert calls == [2]
