import json
from typing import Optional

import pytest
from pydantic import BaseModel

from reqbind.binding.mapper import PydanticObjectMapper
from reqbind.binding.resolver import BindingResolver
from reqbind.config import ReqbindSettings
from reqbind.domain.errors import NotAcceptable, ViewNotFound
from reqbind.domain.models import RequestDescriptor
from reqbind.web.infra import Model, ModelAndView, ResponseEntity, ResponseWriter
from reqbind.web.mappings import request_mapping
from reqbind.web.registry import HandlerRegistry
from reqbind.web.views import TemplateViewRenderer


class HelloData(BaseModel):
    username: Optional[str] = None
    age: int = 0


@request_mapping("/text")
def text() -> str:
    return "ok"


@request_mapping("/html", produces="text/html")
def html() -> str:
    return "<b>ok</b>"


@request_mapping("/object")
def obj() -> HelloData:
    return HelloData(username="kim", age=20)


@request_mapping("/entity")
def entity() -> ResponseEntity[str]:
    return ResponseEntity("created", status=201, headers={"Location": "/entity/1"})


@request_mapping("/view")
def view(model: Model) -> str:
    model.add_attribute("data", "hello")
    return "response/hello"


@request_mapping("/mav")
def mav(model: Model) -> ModelAndView:
    model.add_attribute("extra", "x")
    return ModelAndView("response/hello").add_object("data", "hi")


@request_mapping("/response/hello")
def convention(model: Model) -> None:
    model.add_attribute("data", "by path")


@request_mapping("/writes")
def writes(response: ResponseWriter) -> None:
    response.set_status(202)
    response.write("written")


def run(func, url="/", accept=None, response_body=True, renderer=None):
    handler = HandlerRegistry().register(func, response_body=response_body)
    resolver = BindingResolver(
        view_renderer=renderer,
        settings=ReqbindSettings(),
    )
    headers = {"Accept": accept} if accept else {}
    request = RequestDescriptor.from_url("GET", url, headers=headers)
    outcome = resolver.resolve(request, handler)
    return resolver.render(request, handler, outcome, outcome.invoke(handler))


RENDERER = TemplateViewRenderer({"response/hello": "<p>{data}</p>{extra}"})


def test_text_return_is_raw_body():
    r = run(text, "/text")
    assert r.status == 200
    assert r.body == b"ok"
    assert r.headers["Content-Type"] == "text/plain;charset=utf-8"


def test_object_return_is_json():
    r = run(obj, "/object")
    assert r.headers["Content-Type"] == "application/json"
    assert json.loads(r.body) == {"username": "kim", "age": 20}


def test_object_refused_when_client_wants_html():
    with pytest.raises(NotAcceptable):
        run(obj, "/object", accept="text/html")


def test_produces_negotiation():
    assert run(html, "/html", accept="text/*").headers["Content-Type"] == "text/html;charset=utf-8"
    with pytest.raises(NotAcceptable) as ei:
        run(html, "/html", accept="application/json")
    assert ei.value.status_code == 406


def test_entity_status_and_headers():
    r = run(entity, "/entity")
    assert r.status == 201
    assert r.body == b"created"
    assert r.headers["Location"] == "/entity/1"


def test_view_name_and_model():
    r = run(view, "/view", response_body=False, renderer=RENDERER)
    assert r.view_name == "response/hello"
    assert r.model == {"data": "hello"}
    assert r.text() == "<p>hello</p>"
    assert r.headers["Content-Type"].startswith("text/html")


def test_model_and_view_merges_model():
    r = run(mav, "/mav", response_body=False, renderer=RENDERER)
    assert r.model == {"extra": "x", "data": "hi"}
    assert r.text() == "<p>hi</p>x"


def test_void_uses_request_path_as_view():
    r = run(convention, "/response/hello", renderer=RENDERER)
    assert r.view_name == "response/hello"
    assert r.text() == "<p>by path</p>"


def test_direct_writes_are_the_response():
    r = run(writes, "/writes", renderer=RENDERER)
    assert r.status == 202
    assert r.body == b"written"
    assert r.view_name is None


def test_missing_renderer_or_view():
    with pytest.raises(ViewNotFound):
        run(view, "/view", response_body=False)
    with pytest.raises(ViewNotFound):
        run(view, "/view", response_body=False, renderer=TemplateViewRenderer({}))


def test_object_mapper_round_trip():
    mapper = PydanticObjectMapper()
    original = HelloData(username="kim", age=20)
    assert mapper.deserialize(mapper.serialize(original), HelloData) == original

    items = [original, HelloData(age=3)]
    assert mapper.deserialize(mapper.serialize(items), list[HelloData]) == items
