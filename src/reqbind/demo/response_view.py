from __future__ import annotations

from reqbind.web.infra import Model, ModelAndView
from reqbind.web.mappings import controller, request_mapping


@controller
class ResponseViewController:
    @request_mapping("/response-view-v1")
    def response_view_v1(self) -> ModelAndView:
        return ModelAndView("response/hello").add_object("data", "hello!")

    @request_mapping("/response-view-v2")
    def response_view_v2(self, model: Model) -> str:
        model.add_attribute("data", "hello view!")
        return "response/hello"

    # no return value and no direct response writes: the view is named by the path
    @request_mapping("/response/hello")
    def response_view_v3(self, model: Model) -> None:
        model.add_attribute("data", "hello view!")
