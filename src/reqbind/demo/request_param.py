from __future__ import annotations

import logging
from typing import Annotated, Optional

from reqbind.demo.hello import HelloData
from reqbind.domain.models import RequestDescriptor
from reqbind.web.infra import ResponseWriter
from reqbind.web.mappings import controller, request_mapping, response_body
from reqbind.web.markers import ModelAttribute, RequestParam

logger = logging.getLogger(__name__)


@controller
class RequestParamController:
    @request_mapping("/request-param-v1")
    def request_param_v1(self, request: RequestDescriptor, response: ResponseWriter) -> None:
        username = request.parameter("username")
        age = int(request.parameter("age") or "0")

        logger.info("username = %s, age = %s", username, age)
        response.write("ok")

    @response_body
    @request_mapping("/request-param-v2")
    def request_param_v2(
        self,
        member_name: Annotated[str, RequestParam("username")],
        member_age: Annotated[int, RequestParam("age")],
    ) -> str:
        logger.info("memberName = %s, age = %s", member_name, member_age)
        return "ok"

    @response_body
    @request_mapping("/request-param-v3")
    def request_param_v3(
        self,
        username: Annotated[str, RequestParam()],
        age: Annotated[int, RequestParam()],
    ) -> str:
        logger.info("username = %s, age = %s", username, age)
        return "ok"

    # simple types bind from request parameters without a marker
    @response_body
    @request_mapping("/request-param-v4")
    def request_param_v4(self, username: str, age: int) -> str:
        logger.info("username = %s, age = %s", username, age)
        return "ok"

    @response_body
    @request_mapping("/request-param-required")
    def request_param_required(
        self,
        username: Annotated[str, RequestParam(required=True)],
        age: Annotated[Optional[int], RequestParam(required=False)],
    ) -> str:
        # "" is a value for username, so only a missing key fails
        logger.info("username = %s, age = %s", username, age)
        return "ok"

    @response_body
    @request_mapping("/request-param-default")
    def request_param_default(
        self,
        username: Annotated[str, RequestParam(default="guest")],
        age: Annotated[int, RequestParam(default="-1")],
    ) -> str:
        logger.info("username = %s, age = %s", username, age)
        return "ok"

    @response_body
    @request_mapping("/request-param-map")
    def request_param_map(self, param_map: Annotated[dict[str, str], RequestParam()]) -> str:
        logger.info("username = %s, age = %s", param_map.get("username"), param_map.get("age"))
        return "ok"

    @response_body
    @request_mapping("/request-param-multi-map")
    def request_param_multi_map(self, param_map: dict[str, list[str]]) -> str:
        logger.info("params = %s", param_map)
        return ",".join(f"{k}={'|'.join(v)}" for k, v in sorted(param_map.items()))

    @response_body
    @request_mapping("/model-attribute-v1")
    def model_attribute_v1(self, hello_data: Annotated[HelloData, ModelAttribute()]) -> str:
        logger.info("helloData = %s", hello_data)
        return "ok"

    # structures without a marker are model attributes
    @response_body
    @request_mapping("/model-attribute-v2")
    def model_attribute_v2(self, hello_data: HelloData) -> str:
        logger.info("helloData = %s", hello_data)
        return "ok"
