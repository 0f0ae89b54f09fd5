from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from reqbind.domain.errors import HandlerSpecError
from reqbind.domain.paths import PathTemplate


class ScalarType(str, Enum):
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


class ParamKind(str, Enum):
    SCALAR = "scalar"
    STRUCTURE = "structure"
    RAW_STREAM = "raw_stream"
    REQUEST = "request"
    RESPONSE = "response"
    MODEL = "model"
    REQUEST_ENTITY = "request_entity"
    MAPPING = "mapping"
    MULTI_MAPPING = "multi_mapping"


# Kinds the resolver injects without reading any request field.
INFRASTRUCTURE_KINDS = frozenset(
    {
        ParamKind.RAW_STREAM,
        ParamKind.REQUEST,
        ParamKind.RESPONSE,
        ParamKind.MODEL,
        ParamKind.REQUEST_ENTITY,
    }
)


class BindingSource(str, Enum):
    INFRASTRUCTURE = "infrastructure"
    PATH = "path"
    BODY = "body"
    QUERY = "query"
    QUERY_MAP = "query_map"
    MODEL_ATTRIBUTE = "model_attribute"


class ReturnKind(str, Enum):
    TEXT = "text"        # raw string written to the body
    OBJECT = "object"    # serialized through the object mapper
    VIEW = "view"        # view name (or ModelAndView) handed to the renderer
    VOID = "void"        # handler wrote the response itself, or view by convention
    ENTITY = "entity"    # ResponseEntity: body + status + headers


@dataclass(frozen=True)
class FieldSpec:
    """One bindable field of a structure: name, scalar type and a typed setter."""

    name: str
    scalar_type: ScalarType
    nullable: bool = False
    has_default: bool = True
    setter: Callable[[Any, Any], None] = setattr


@dataclass(frozen=True)
class StructureSpec:
    """Field-registration table for a structured type, built once at startup."""

    name: str
    shape: type
    factory: Callable[[], Any]
    fields: Mapping[str, FieldSpec]

    def new_instance(self) -> Any:
        return self.factory()


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    kind: ParamKind
    source: BindingSource
    scalar_type: Optional[ScalarType] = None
    nullable: bool = False
    structure: Optional[StructureSpec] = None
    body_shape: Any = None
    lookup: str = ""
    explicit_lookup: bool = False
    required: bool = True
    default: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.lookup:
            object.__setattr__(self, "lookup", self.name)

        if self.kind in INFRASTRUCTURE_KINDS and self.source is not BindingSource.INFRASTRUCTURE:
            raise HandlerSpecError(f"{self.name}: {self.kind.value} cannot be bound from {self.source.value}")

        if self.kind is ParamKind.SCALAR and self.scalar_type is None:
            raise HandlerSpecError(f"{self.name}: scalar parameter without a scalar type")

        if self.source is BindingSource.BODY:
            ok = (self.kind is ParamKind.SCALAR and self.scalar_type is ScalarType.STR) or (
                self.kind is ParamKind.STRUCTURE
            )
            if not ok:
                raise HandlerSpecError(f"{self.name}: request body binds only to str or a structure")

        if self.source is BindingSource.MODEL_ATTRIBUTE and self.structure is None:
            raise HandlerSpecError(f"{self.name}: model attribute binding needs a registered structure")

        if self.source is BindingSource.QUERY_MAP and self.kind not in (
            ParamKind.MAPPING,
            ParamKind.MULTI_MAPPING,
        ):
            raise HandlerSpecError(f"{self.name}: query map binding needs a mapping type")

        if (
            self.source in (BindingSource.QUERY, BindingSource.PATH)
            and not self.required
            and self.default is None
            and not self.nullable
        ):
            raise HandlerSpecError(
                f"{self.name}: optional {self.scalar_type.value if self.scalar_type else 'value'} "
                "parameter must be nullable or declare a default"
            )


@dataclass(frozen=True)
class ReturnSpec:
    kind: ReturnKind
    status: int = 200
    shape: Any = None


@dataclass(frozen=True)
class HandlerSpec:
    """
    Static description of one endpoint. Immutable for the process lifetime.

    ``methods`` empty means any method; ``params`` and ``headers`` are
    mapping conditions such as ``mode=debug`` or ``!mode``.
    """

    name: str
    path: str
    func: Callable[..., Any]
    methods: tuple[str, ...] = ()
    parameters: tuple[ParameterSpec, ...] = ()
    returns: ReturnSpec = ReturnSpec(ReturnKind.TEXT)
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()
    params: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()
    template: PathTemplate = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "template", PathTemplate.compile(self.path))
        seen = set()
        for p in self.parameters:
            if p.name in seen:
                raise HandlerSpecError(f"{self.name}: duplicate parameter {p.name!r}")
            seen.add(p.name)
