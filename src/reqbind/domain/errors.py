from __future__ import annotations

from enum import Enum
from typing import Optional


class BindingErrorKind(str, Enum):
    MISSING_REQUIRED_PARAMETER = "missing_required_parameter"
    TYPE_CONVERSION = "type_conversion"
    PATH_VARIABLE_MISSING = "path_variable_missing"
    BODY_DESERIALIZATION = "body_deserialization"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    NOT_ACCEPTABLE = "not_acceptable"
    PAYLOAD_TOO_LARGE = "payload_too_large"


# Transport policy table: binding failure kind -> HTTP status.
STATUS_BY_KIND: dict[BindingErrorKind, int] = {
    BindingErrorKind.MISSING_REQUIRED_PARAMETER: 400,
    BindingErrorKind.TYPE_CONVERSION: 400,
    BindingErrorKind.PATH_VARIABLE_MISSING: 400,
    BindingErrorKind.BODY_DESERIALIZATION: 400,
    BindingErrorKind.UNSUPPORTED_MEDIA_TYPE: 415,
    BindingErrorKind.NOT_ACCEPTABLE: 406,
    BindingErrorKind.PAYLOAD_TOO_LARGE: 413,
}


class BindingError(Exception):
    """A request could not be bound to a handler. Never retried."""

    kind: BindingErrorKind = BindingErrorKind.TYPE_CONVERSION

    def __init__(self, message: str, parameter: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.parameter = parameter

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "error": self.kind.value,
            "parameter": self.parameter,
            "message": self.message,
        }


class MissingRequiredParameter(BindingError):
    kind = BindingErrorKind.MISSING_REQUIRED_PARAMETER


class TypeConversionError(BindingError):
    kind = BindingErrorKind.TYPE_CONVERSION


class PathVariableMissing(BindingError):
    kind = BindingErrorKind.PATH_VARIABLE_MISSING


class BodyDeserializationError(BindingError):
    kind = BindingErrorKind.BODY_DESERIALIZATION


class UnsupportedMediaType(BindingError):
    kind = BindingErrorKind.UNSUPPORTED_MEDIA_TYPE


class NotAcceptable(BindingError):
    kind = BindingErrorKind.NOT_ACCEPTABLE


class PayloadTooLarge(BindingError):
    kind = BindingErrorKind.PAYLOAD_TOO_LARGE


class HandlerSpecError(ValueError):
    """Raised at registration time for a handler declaration that cannot be bound."""


class ViewNotFound(LookupError):
    pass


class RoutingError(Exception):
    status_code = 404

    def __init__(self, message: str, allowed: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.allowed = allowed


class NoHandlerFound(RoutingError):
    status_code = 404


class MethodNotAllowed(RoutingError):
    status_code = 405
