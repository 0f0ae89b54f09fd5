from __future__ import annotations

import logging
from typing import Optional

from reqbind.binding.resolver import BindingResolver
from reqbind.config import ReqbindSettings, get_settings
from reqbind.demo.log_test import LogTestController
from reqbind.demo.mapping import MappingController
from reqbind.demo.request_body import RequestBodyJsonController, RequestBodyStringController
from reqbind.demo.request_param import RequestParamController
from reqbind.demo.response_view import ResponseViewController
from reqbind.web.dispatch import Dispatcher
from reqbind.web.registry import HandlerRegistry
from reqbind.web.views import TemplateViewRenderer

VIEW_TEMPLATES = {
    "response/hello": (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head><meta charset=\"UTF-8\"><title>Title</title></head>\n"
        "<body>\n"
        "<p>{data}</p>\n"
        "</body>\n"
        "</html>\n"
    ),
}

CONTROLLERS = (
    LogTestController,
    MappingController,
    RequestParamController,
    RequestBodyStringController,
    RequestBodyJsonController,
    ResponseViewController,
)


def build_registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    for cls in CONTROLLERS:
        registry.register_controller(cls())
    return registry.freeze()


def build_dispatcher(
    settings: Optional[ReqbindSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> Dispatcher:
    settings = settings or get_settings()
    resolver = BindingResolver(
        view_renderer=TemplateViewRenderer(VIEW_TEMPLATES, charset=settings.default_charset),
        settings=settings,
        logger=logger or logging.getLogger("reqbind.binding"),
    )
    return Dispatcher(build_registry(), resolver)
