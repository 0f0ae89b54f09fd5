from __future__ import annotations

import logging
from typing import Annotated, BinaryIO

from reqbind.binding.mapper import PydanticObjectMapper
from reqbind.demo.hello import HelloData
from reqbind.domain.models import RequestDescriptor
from reqbind.web.infra import RequestEntity, ResponseEntity, ResponseWriter
from reqbind.web.mappings import controller, post_mapping, response_body
from reqbind.web.markers import RequestBody

logger = logging.getLogger(__name__)


@controller
class RequestBodyStringController:
    @post_mapping("/request-body-string-v1")
    def request_body_string(self, request: RequestDescriptor, response: ResponseWriter) -> None:
        message_body = (request.body or b"").decode("utf-8")
        logger.info("messageBody = %s", message_body)
        response.write("ok")

    @post_mapping("/request-body-string-v2")
    def request_body_string_v2(self, input_stream: BinaryIO, response_writer: ResponseWriter) -> None:
        message_body = input_stream.read().decode("utf-8")
        logger.info("messageBody = %s", message_body)
        response_writer.write("ok")

    @post_mapping("/request-body-string-v3")
    def request_body_string_v3(self, http_entity: RequestEntity[str]) -> ResponseEntity[str]:
        logger.info("body = %s", http_entity.body)
        return ResponseEntity("ok", status=201)

    @response_body
    @post_mapping("/request-body-string-v4")
    def request_body_string_v4(self, message_body: Annotated[str, RequestBody()]) -> str:
        logger.info("messageBody = %s", message_body)
        return "ok"


@controller
class RequestBodyJsonController:
    def __init__(self) -> None:
        self.object_mapper = PydanticObjectMapper()

    @post_mapping("/request-body-json-v1")
    def request_body_json_v1(self, request: RequestDescriptor, response: ResponseWriter) -> None:
        message_body = request.body or b""
        logger.info("messageBody = %s", message_body.decode("utf-8"))
        hello_data = self.object_mapper.deserialize(message_body, HelloData)
        logger.info("helloData = %s", hello_data)
        response.write("ok")

    @response_body
    @post_mapping("/request-body-json-v2")
    def request_body_json_v2(self, message_body: Annotated[str, RequestBody()]) -> str:
        logger.info("messageBody = %s", message_body)
        hello_data = self.object_mapper.deserialize(message_body.encode("utf-8"), HelloData)
        logger.info("helloData = %s", hello_data)
        return "ok"

    # without RequestBody the structure would bind from request parameters
    @response_body
    @post_mapping("/request-body-json-v3")
    def request_body_json_v3(self, hello_data: Annotated[HelloData, RequestBody()]) -> str:
        logger.info("helloData = %s", hello_data)
        return "ok"

    @response_body
    @post_mapping("/request-body-json-v4")
    def request_body_json_v4(self, http_entity: RequestEntity[HelloData]) -> str:
        logger.info("helloData = %s", http_entity.body)
        return "ok"

    @response_body
    @post_mapping("/request-body-json-v5")
    def request_body_json_v5(self, hello_data: Annotated[HelloData, RequestBody()]) -> HelloData:
        logger.info("helloData = %s", hello_data)
        return hello_data
