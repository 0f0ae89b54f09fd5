from __future__ import annotations

import logging
from typing import Annotated

from reqbind.binding.media import APPLICATION_JSON, TEXT_HTML
from reqbind.web.mappings import (
    get_mapping,
    post_mapping,
    request_mapping,
    rest_controller,
)
from reqbind.web.markers import PathVariable

logger = logging.getLogger(__name__)


@rest_controller
class MappingController:
    @request_mapping("/hello-basic")
    def hello_basic(self) -> str:
        logger.info("helloBasic")
        return "ok"

    @request_mapping("/mapping-get-v1", method="GET")
    def mapping_get_v1(self) -> str:
        logger.info("mappingGetV1")
        return "ok"

    @get_mapping("/mapping-get-v2")
    def mapping_get_v2(self) -> str:
        logger.info("mappingGetV2")
        return "ok"

    @get_mapping("/mapping/{userId}")
    def mapping_path(self, data: Annotated[str, PathVariable("userId")]) -> str:
        logger.info("mappingPath userId=%s", data)
        return "ok"

    @get_mapping("/mapping/users/{userId}/orders/{orderId}")
    def mapping_path_orders(
        self,
        user_id: Annotated[str, PathVariable("userId")],
        order_id: Annotated[int, PathVariable("orderId")],
    ) -> str:
        logger.info("mappingPath userId=%s, orderId=%s", user_id, order_id)
        return "ok"

    @get_mapping("/mapping-param", params="mode=debug")
    def mapping_param(self) -> str:
        logger.info("mappingParam")
        return "ok"

    @get_mapping("/mapping-header", headers="mode=debug")
    def mapping_header(self) -> str:
        logger.info("mappingHeader")
        return "ok"

    @post_mapping("/mapping-consume", consumes=APPLICATION_JSON)
    def mapping_consumes(self) -> str:
        logger.info("mappingConsumes")
        return "ok"

    @post_mapping("/mapping-produce", produces=TEXT_HTML)
    def mapping_produces(self) -> str:
        logger.info("mappingProduces")
        return "ok"
