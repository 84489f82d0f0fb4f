# File: specgen/models.py
"""
specgen - Core Data Models
===========================
Pydantic V2 models describing an API service: enums, objects, resources,
their fields and endpoints, plus the cross-cutting configuration (retry,
timeout, pagination, servers, security) that is carried through to emitters
untouched.

These models are the single source of truth for the whole pipeline:
Document Parsing → Validation → Elaboration → Export.

Literal vocabularies (modifiers, operations, HTTP methods) are exact-case.
``"nullable"`` is rejected, never normalised to ``"Nullable"``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from specgen.utils import path_placeholders, to_json_tag, to_kebab_case, to_plural

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.models")

# ---------------------------------------------------------------------------
# Enums: fixed vocabularies used across the entire project
# ---------------------------------------------------------------------------


class PrimitiveType(str, Enum):
    """Built-in scalar field types."""

    UUID = "UUID"
    DATE = "Date"
    TIMESTAMP = "Timestamp"
    STRING = "String"
    INT = "Int"
    BOOL = "Bool"


class Modifier(str, Enum):
    """Orthogonal field annotations composed with a base type."""

    NULLABLE = "Nullable"
    ARRAY = "Array"


class Operation(str, Enum):
    """Operations a resource can request and a field can be exposed in."""

    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"
    LIST = "List"
    SEARCH = "Search"


class HttpMethod(str, Enum):
    """HTTP methods an endpoint may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


PRIMITIVE_TYPE_NAMES: frozenset = frozenset(p.value for p in PrimitiveType)

DEFAULT_TIMEOUT_MS: int = 30000
DEFAULT_CONTENT_TYPE: str = "application/json"


def _literal(value: Any) -> Any:
    """Plain string value of an enum member; anything else unchanged."""
    return value.value if isinstance(value, Enum) else value


def _check_literals(
    values: Any,
    allowed: frozenset,
    kind: str,
) -> List[Any]:
    """Shared before-validator body for exact-case literal lists."""
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValueError(f"{kind}s must be a list, got {type(values).__name__}")
    plain: List[Any] = [_literal(v) for v in values]
    for item in plain:
        if item not in allowed:
            raise ValueError(f"invalid {kind} '{item}'")
    if len(set(plain)) != len(plain):
        dupes: List[Any] = sorted({x for x in plain if plain.count(x) > 1})
        raise ValueError(f"duplicate {kind}s: {dupes}")
    return plain


_MODIFIER_VALUES: frozenset = frozenset(m.value for m in Modifier)
_OPERATION_VALUES: frozenset = frozenset(o.value for o in Operation)
_METHOD_VALUES: frozenset = frozenset(m.value for m in HttpMethod)


# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


class FieldDefinition(BaseModel):
    """
    A named, typed value inside an object, a request or a response.

    ``type`` names a primitive, an enum or an object of the enclosing
    service.  Whether it resolves is checked by ``specgen.validators``.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Field name.")
    description: str = Field(default="", description="What the field is for.")
    type: str = Field(..., min_length=1, description="Primitive, enum or object name.")
    modifiers: List[Modifier] = Field(
        default_factory=list, description="Nullable and/or Array."
    )
    default: Optional[str] = Field(default=None, description="Default value.")
    example: Optional[str] = Field(default=None, description="Example value.")

    @field_validator("modifiers", mode="before")
    @classmethod
    def _exact_case_modifiers(cls, v: Any) -> List[Any]:
        return _check_literals(v, _MODIFIER_VALUES, "modifier")

    @field_validator("default", "example", mode="before")
    @classmethod
    def _scalar_to_string(cls, v: Any) -> Any:
        # YAML turns `default: 10` / `example: true` into int / bool
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    # -- Helpers ---------------------------------------------------------------

    def has_modifier(self, modifier: Modifier) -> bool:
        return _literal(modifier) in self.modifiers

    @property
    def is_array(self) -> bool:
        return self.has_modifier(Modifier.ARRAY)

    @property
    def is_nullable(self) -> bool:
        return self.has_modifier(Modifier.NULLABLE)

    @property
    def json_tag(self) -> str:
        return to_json_tag(self.name)

    def is_required(self, service: "Service") -> bool:
        """
        A field must be sent unless it is nullable, an array, carries a
        default, or is an object (objects are never null on the wire).
        """
        if self.is_nullable or self.is_array or self.default is not None:
            return False
        return not service.has_object(self.type)

    def __repr__(self) -> str:
        mods: str = f" [{', '.join(self.modifiers)}]" if self.modifiers else ""
        return f"<Field {self.name}: {self.type}{mods}>"


class ResourceField(FieldDefinition):
    """A resource field plus the operations it is exposed in."""

    operations: List[Operation] = Field(
        default_factory=list,
        description="Operations that carry this field.",
    )

    @field_validator("operations", mode="before")
    @classmethod
    def _exact_case_operations(cls, v: Any) -> List[Any]:
        return _check_literals(v, _OPERATION_VALUES, "operation")

    def supports(self, operation: Operation) -> bool:
        return _literal(operation) in self.operations

    def as_field(self) -> FieldDefinition:
        """Drop the operation tags, keeping a deep copy of everything else."""
        return FieldDefinition.model_validate(
            self.model_dump(exclude={"operations"})
        )


# ---------------------------------------------------------------------------
# Enums & objects
# ---------------------------------------------------------------------------


class EnumValue(BaseModel):
    """One member of an enum."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    description: str = Field(default="")


class EnumDefinition(BaseModel):
    """A named, ordered set of values."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Enum name.")
    description: str = Field(default="")
    values: List[EnumValue] = Field(
        ..., min_length=1, description="Allowed values, in declaration order."
    )

    @field_validator("values")
    @classmethod
    def _unique_values(cls, v: List[EnumValue]) -> List[EnumValue]:
        names: List[str] = [item.name for item in v]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({x for x in names if names.count(x) > 1})
            raise ValueError(f"Duplicate enum values detected: {dupes}")
        return v

    @property
    def value_names(self) -> List[str]:
        return [item.name for item in self.values]

    def __repr__(self) -> str:
        return f"<Enum {self.name} ({len(self.values)} values)>"


class ObjectDefinition(BaseModel):
    """A shared structure that fields, bodies and other objects can reference."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Object name.")
    description: str = Field(default="")
    fields: List[FieldDefinition] = Field(default_factory=list)

    def get_field(self, name: str) -> Optional[FieldDefinition]:
        for field_def in self.fields:
            if field_def.name == name:
                return field_def
        return None

    def __repr__(self) -> str:
        return f"<Object {self.name} ({len(self.fields)} fields)>"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class EndpointRequest(BaseModel):
    """Request shape of an endpoint."""

    model_config = _SHARED_CONFIG

    content_type: str = Field(default=DEFAULT_CONTENT_TYPE)
    headers: List[FieldDefinition] = Field(default_factory=list)
    path_params: List[FieldDefinition] = Field(default_factory=list)
    query_params: List[FieldDefinition] = Field(default_factory=list)
    body_params: List[FieldDefinition] = Field(default_factory=list)

    @property
    def has_body(self) -> bool:
        return bool(self.body_params)


class EndpointResponse(BaseModel):
    """Successful response shape of an endpoint."""

    model_config = _SHARED_CONFIG

    content_type: str = Field(default=DEFAULT_CONTENT_TYPE)
    status_code: int = Field(default=200, ge=100, le=599)
    headers: List[FieldDefinition] = Field(default_factory=list)
    body_fields: List[FieldDefinition] = Field(default_factory=list)
    body_object: Optional[str] = Field(
        default=None,
        description="Name of an object (or resource) returned as the whole body.",
    )

    @model_validator(mode="after")
    def _body_object_or_fields(self) -> "EndpointResponse":
        if self.body_object is not None and self.body_fields:
            raise ValueError(
                f"response cannot set both body_object '{self.body_object}' "
                f"and {len(self.body_fields)} body_fields"
            )
        return self


class Endpoint(BaseModel):
    """
    One HTTP operation of a resource.

    ``path`` is relative to the resource collection (``""``, ``"/{id}"``,
    ``"/_search"``); ``full_path`` prefixes the kebab-cased plural.
    ``error_status_codes`` is derived by the overlay.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Unique within the resource.")
    title: str = Field(default="")
    description: str = Field(default="")
    method: HttpMethod = Field(...)
    path: str = Field(default="")
    request: EndpointRequest = Field(default_factory=EndpointRequest)
    response: EndpointResponse = Field(default_factory=EndpointResponse)
    error_status_codes: List[int] = Field(default_factory=list)

    @field_validator("method", mode="before")
    @classmethod
    def _exact_case_method(cls, v: Any) -> Any:
        v = _literal(v)
        if v not in _METHOD_VALUES:
            raise ValueError(f"invalid method '{v}'")
        return v

    def full_path(self, resource_name: str) -> str:
        return f"/{to_kebab_case(to_plural(resource_name))}{self.path}"

    def path_placeholders(self) -> List[str]:
        return path_placeholders(self.path)

    def __repr__(self) -> str:
        return f"<Endpoint {self.name} {self.method} {self.path or '/'}>"


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class Resource(BaseModel):
    """
    A CRUD-style resource.

    ``endpoints`` starts with the authored custom endpoints; the overlay
    appends one endpoint per requested standard operation.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Resource name.")
    description: str = Field(default="")
    operations: List[Operation] = Field(default_factory=list)
    fields: List[ResourceField] = Field(default_factory=list)
    endpoints: List[Endpoint] = Field(default_factory=list)
    audited: bool = Field(
        default=False,
        description="Attach the Meta audit object to the entity.",
    )

    @field_validator("operations", mode="before")
    @classmethod
    def _exact_case_operations(cls, v: Any) -> List[Any]:
        return _check_literals(v, _OPERATION_VALUES, "operation")

    @property
    def plural_name(self) -> str:
        return to_plural(self.name)

    def has_operation(self, operation: Operation) -> bool:
        return _literal(operation) in self.operations

    def get_endpoint(self, name: str) -> Optional[Endpoint]:
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        return None

    def fields_for(self, operation: Operation) -> List[ResourceField]:
        return [f for f in self.fields if f.supports(operation)]

    def readable_fields(self) -> List[ResourceField]:
        return self.fields_for(Operation.READ)

    def create_fields(self) -> List[ResourceField]:
        return self.fields_for(Operation.CREATE)

    def update_fields(self) -> List[ResourceField]:
        return self.fields_for(Operation.UPDATE)

    def filterable_fields(self) -> List[ResourceField]:
        return [
            f for f in self.fields
            if f.supports(Operation.LIST) or f.supports(Operation.SEARCH)
        ]

    def __repr__(self) -> str:
        return (
            f"<Resource {self.name} ops={list(self.operations)} "
            f"({len(self.fields)} fields, {len(self.endpoints)} endpoints)>"
        )


# ---------------------------------------------------------------------------
# Cross-cutting configuration (carried verbatim to emitters)
# ---------------------------------------------------------------------------


class RetryBackoffConfiguration(BaseModel):
    """Exponential backoff parameters, in milliseconds."""

    model_config = _SHARED_CONFIG

    initial_interval: int = Field(default=500, ge=0)
    max_interval: int = Field(default=60000, ge=0)
    max_elapsed_time: int = Field(default=3600000, ge=0)
    exponent: float = Field(default=1.5, gt=0)


class RetryConfiguration(BaseModel):
    """Retry policy advertised to generated clients."""

    model_config = _SHARED_CONFIG

    strategy: str = Field(default="backoff")
    backoff: RetryBackoffConfiguration = Field(
        default_factory=RetryBackoffConfiguration
    )
    status_codes: List[str] = Field(default_factory=lambda: ["5XX"])
    retry_connection_errors: bool = Field(default=True)


class TimeoutConfiguration(BaseModel):
    """Client request timeout in milliseconds."""

    model_config = _SHARED_CONFIG

    timeout: int = Field(default=DEFAULT_TIMEOUT_MS)


class PaginationConfiguration(BaseModel):
    """Shape of the pagination extension emitted for List/Search endpoints."""

    model_config = _SHARED_CONFIG

    type: str = Field(default="offsetLimit")
    offset_param: str = Field(default="offset")
    limit_param: str = Field(default="limit")
    results_path: str = Field(default="$.data")


class ServerDefinition(BaseModel):
    """A base URL the service is reachable at."""

    model_config = _SHARED_CONFIG

    url: str = Field(..., min_length=1)
    description: str = Field(default="")
    id: Optional[str] = Field(default=None)


class SecurityScheme(BaseModel):
    """An authentication scheme (apiKey, http, mutualTLS, oauth2, ...)."""

    model_config = _SHARED_CONFIG

    type: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None, alias="in")
    scheme: Optional[str] = Field(default=None)
    bearer_format: Optional[str] = Field(default=None, alias="bearerFormat")
    description: str = Field(default="")


# ---------------------------------------------------------------------------
# Service (root aggregate)
# ---------------------------------------------------------------------------


class Service(BaseModel):
    """
    Root aggregate of a specification.

    Holds ordered collections of enums, objects and resources.  All lookup
    helpers are linear scans over those lists; ``specgen.resolver.TypeIndex``
    is the indexed view used by hot paths.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Service name.")
    version: str = Field(default="1.0.0")
    description: str = Field(default="")
    enums: List[EnumDefinition] = Field(default_factory=list)
    objects: List[ObjectDefinition] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)
    servers: List[ServerDefinition] = Field(default_factory=list)
    retry: Optional[RetryConfiguration] = Field(default=None)
    timeout: Optional[TimeoutConfiguration] = Field(default=None)
    security_schemes: Dict[str, SecurityScheme] = Field(default_factory=dict)
    security: List[List[str]] = Field(
        default_factory=list,
        description="Requirement sets; each inner list names schemes used together.",
    )
    response_headers: List[FieldDefinition] = Field(default_factory=list)
    pagination: Optional[PaginationConfiguration] = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _expand_grouped_security(cls, data: Any) -> Any:
        """
        Accept ``security: {Group: [scheme, ...]}``.

        Every entry becomes a scheme named ``<Group>_<name>`` and every group
        one requirement set.  The plain list-of-lists form passes through.
        """
        if not isinstance(data, dict):
            return data
        if "security" in data and data["security"] is None:
            data = {**data, "security": []}
        grouped: Any = data.get("security")
        if not isinstance(grouped, dict):
            return data

        expanded: Dict[str, Any] = dict(data)
        schemes: Dict[str, Any] = dict(expanded.get("security_schemes") or {})
        requirements: List[List[str]] = []

        for group, entries in grouped.items():
            if not isinstance(entries, list):
                raise ValueError(
                    f"security group '{group}' must be a list of schemes"
                )
            names: List[str] = []
            for idx, entry in enumerate(entries):
                if not isinstance(entry, dict) or not entry.get("name"):
                    raise ValueError(
                        f"security scheme {idx} in group '{group}' "
                        f"must have a 'name' field"
                    )
                scheme_key: str = f"{group}_{entry['name']}"
                schemes[scheme_key] = entry
                names.append(scheme_key)
            requirements.append(names)

        expanded["security_schemes"] = schemes
        expanded["security"] = requirements
        logger.debug(
            "Expanded %d grouped security requirement(s) into %d scheme(s).",
            len(requirements),
            len(schemes),
        )
        return expanded

    # -- Lookups ----------------------------------------------------------------

    def get_enum(self, name: str) -> Optional[EnumDefinition]:
        for enum_def in self.enums:
            if enum_def.name == name:
                return enum_def
        return None

    def get_object(self, name: str) -> Optional[ObjectDefinition]:
        for obj in self.objects:
            if obj.name == name:
                return obj
        return None

    def get_resource(self, name: str) -> Optional[Resource]:
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None

    def has_enum(self, name: str) -> bool:
        return self.get_enum(name) is not None

    def has_object(self, name: str) -> bool:
        return self.get_object(name) is not None

    def type_names(self) -> List[str]:
        """Every name a field type may refer to, primitives first."""
        return (
            [p.value for p in PrimitiveType]
            + [e.name for e in self.enums]
            + [o.name for o in self.objects]
        )

    # -- Cross-cutting configuration ----------------------------------------------

    @property
    def timeout_ms(self) -> int:
        if self.timeout is None or self.timeout.timeout <= 0:
            return DEFAULT_TIMEOUT_MS
        return self.timeout.timeout

    @property
    def retry_policy(self) -> RetryConfiguration:
        return self.retry if self.retry is not None else RetryConfiguration()

    def process_security(self) -> Optional[List[List[str]]]:
        """Security requirement sets, or ``None`` when the service has none."""
        if not self.security:
            return None
        return [list(req) for req in self.security]

    def __repr__(self) -> str:
        return (
            f"<Service {self.name} v{self.version}: {len(self.enums)} enums, "
            f"{len(self.objects)} objects, {len(self.resources)} resources>"
        )


# ---------------------------------------------------------------------------
# Field factories shared by the overlay and emitters
# ---------------------------------------------------------------------------

LIST_OFFSET_DEFAULT: str = "0"
LIST_LIMIT_DEFAULT: str = "50"


def create_id_param(description: str) -> FieldDefinition:
    return FieldDefinition(
        name="id", description=description, type=PrimitiveType.UUID.value
    )


def create_offset_param() -> FieldDefinition:
    return FieldDefinition(
        name="offset",
        description="Number of items to skip before returning results",
        type=PrimitiveType.INT.value,
        default=LIST_OFFSET_DEFAULT,
    )


def create_limit_param() -> FieldDefinition:
    return FieldDefinition(
        name="limit",
        description="Maximum number of items to return",
        type=PrimitiveType.INT.value,
        default=LIST_LIMIT_DEFAULT,
    )


def create_data_field(resource_name: str) -> FieldDefinition:
    return FieldDefinition(
        name="data",
        description=f"Array of {resource_name} objects",
        type=resource_name,
        modifiers=[Modifier.ARRAY.value],
    )


def create_pagination_field() -> FieldDefinition:
    return FieldDefinition(
        name="Pagination",
        description="Pagination information",
        type="Pagination",
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "PrimitiveType",
    "Modifier",
    "Operation",
    "HttpMethod",
    "PRIMITIVE_TYPE_NAMES",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_CONTENT_TYPE",
    "FieldDefinition",
    "ResourceField",
    "EnumValue",
    "EnumDefinition",
    "ObjectDefinition",
    "EndpointRequest",
    "EndpointResponse",
    "Endpoint",
    "Resource",
    "RetryBackoffConfiguration",
    "RetryConfiguration",
    "TimeoutConfiguration",
    "PaginationConfiguration",
    "ServerDefinition",
    "SecurityScheme",
    "Service",
    "LIST_OFFSET_DEFAULT",
    "LIST_LIMIT_DEFAULT",
    "create_id_param",
    "create_offset_param",
    "create_limit_param",
    "create_data_field",
    "create_pagination_field",
]

logger.debug("specgen.models loaded — %d public symbols.", len(__all__))
