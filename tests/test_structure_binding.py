from dataclasses import dataclass
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field

from reqbind.binding.resolver import BindingResolver
from reqbind.binding.structures import StructureRegistry
from reqbind.config import ReqbindSettings
from reqbind.domain.errors import HandlerSpecError, MissingRequiredParameter, TypeConversionError
from reqbind.domain.models import RequestDescriptor
from reqbind.domain.specs import BindingSource, ScalarType
from reqbind.web.mappings import request_mapping
from reqbind.web.markers import ModelAttribute
from reqbind.web.registry import HandlerRegistry


class HelloData(BaseModel):
    username: Optional[str] = None
    age: int = 0


@dataclass
class Point:
    x: int
    y: int
    label: str = "origin"


@dataclass(frozen=True)
class FrozenPoint:
    x: int = 0
    y: int = 0


class FrozenHello(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: Optional[str] = None
    age: int = 0


class LockedAge(BaseModel):
    username: Optional[str] = None
    age: int = Field(default=0, frozen=True)


@request_mapping("/hello")
def hello(hello_data: HelloData) -> str:
    return "ok"


@request_mapping("/named")
def named(data: Annotated[HelloData, ModelAttribute("data")]) -> str:
    return "ok"


@request_mapping("/point")
def point(point: Point) -> str:
    return "ok"


@request_mapping("/frozen")
def frozen(point: FrozenPoint) -> str:
    return "ok"


def spec(func):
    return HandlerRegistry().register(func, response_body=True)


def resolve(func, url, **settings):
    resolver = BindingResolver(settings=ReqbindSettings(**settings))
    return resolver.resolve(RequestDescriptor.from_url("GET", url), spec(func))


def test_field_table_built_from_model():
    s = StructureRegistry().register(HelloData)
    assert set(s.fields) == {"username", "age"}
    assert s.fields["age"].scalar_type is ScalarType.INT
    assert s.fields["username"].nullable


def test_registry_builds_each_table_once():
    registry = StructureRegistry()
    assert registry.register(HelloData) is registry.register(HelloData)
    assert HelloData in registry
    assert len(registry) == 1


def test_registry_rejects_plain_classes():
    class Plain:
        pass

    with pytest.raises(HandlerSpecError):
        StructureRegistry().register(Plain)


def test_structure_without_marker_is_model_attribute():
    p = spec(hello).parameters[0]
    assert p.source is BindingSource.MODEL_ATTRIBUTE
    assert p.lookup == "helloData"


def test_implicit_binding_sets_fields_and_model():
    out = resolve(hello, "/hello?username=kim&age=20")
    assert out.arguments["hello_data"] == HelloData(username="kim", age=20)
    assert out.model["helloData"] is out.arguments["hello_data"]


def test_missing_fields_keep_defaults():
    out = resolve(hello, "/hello?age=")
    assert out.arguments["hello_data"] == HelloData(username=None, age=0)


def test_bad_field_value_fails():
    with pytest.raises(TypeConversionError) as ei:
        resolve(hello, "/hello?username=kim&age=abc")
    assert ei.value.parameter == "hello_data.age"


def test_model_attribute_name():
    out = resolve(named, "/named?username=kim")
    assert out.model["data"].username == "kim"


def test_dataclass_fields_without_defaults_get_zero_values():
    out = resolve(point, "/point?x=1")
    assert out.arguments["point"] == Point(x=1, y=0, label="origin")


def test_strict_mode_fails_on_missing_required_field():
    with pytest.raises(MissingRequiredParameter) as ei:
        resolve(point, "/point?x=1", strict_structure_binding=True)
    assert ei.value.parameter == "point.y"


def test_strict_mode_allows_missing_defaulted_field():
    out = resolve(point, "/point?x=1&y=2", strict_structure_binding=True)
    assert out.arguments["point"] == Point(x=1, y=2)


def test_frozen_dataclass_fields_are_set():
    out = resolve(frozen, "/frozen?x=3&y=4")
    assert out.arguments["point"] == FrozenPoint(x=3, y=4)


@request_mapping("/frozen-model")
def frozen_model(hello: FrozenHello) -> str:
    return "ok"


@request_mapping("/locked-age")
def locked_age(hello: LockedAge) -> str:
    return "ok"


def test_frozen_pydantic_model_fields_are_set():
    out = resolve(frozen_model, "/frozen-model?username=kim&age=3")
    assert out.arguments["hello"] == FrozenHello(username="kim", age=3)
    assert out.model["frozenHello"] is out.arguments["hello"]


def test_frozen_pydantic_field_is_set():
    out = resolve(locked_age, "/locked-age?username=kim&age=3")
    assert out.arguments["hello"].age == 3
    assert out.arguments["hello"].username == "kim"
