# File: specgen/overlay.py
"""
specgen - Overlay Engine
=========================
Expands a minimally declared service into its elaborated form:

    1. standard enums      ErrorCode, ErrorFieldCode
    2. standard objects    Error, ErrorField, Meta, Pagination
    3. entity objects      one per resource that returns full entities
    4. filter families     <R>Filter plus its condition objects, recursively
    5. default endpoints   one per requested operation
    6. error responses     derived status codes for every endpoint

``elaborate`` works on a deep copy and never touches its input.  Every step
skips a name that already exists, so authored definitions win and running
the overlay over its own output changes nothing.  Iteration follows
declaration order only; no step depends on set or dict ordering.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Set, Tuple

from specgen.models import (
    Endpoint,
    EndpointRequest,
    EndpointResponse,
    EnumDefinition,
    EnumValue,
    FieldDefinition,
    HttpMethod,
    Modifier,
    ObjectDefinition,
    Operation,
    PrimitiveType,
    Resource,
    Service,
    create_data_field,
    create_id_param,
    create_limit_param,
    create_offset_param,
    create_pagination_field,
)
from specgen.resolver import (
    NESTED_FILTERS_FIELD,
    filter_condition_name,
    filter_family_root,
    filter_root_name,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.overlay")

# ---------------------------------------------------------------------------
# Standard names & status codes
# ---------------------------------------------------------------------------

ERROR_CODE_ENUM: str = "ErrorCode"
ERROR_FIELD_CODE_ENUM: str = "ErrorFieldCode"
ERROR_OBJECT: str = "Error"
ERROR_FIELD_OBJECT: str = "ErrorField"
META_OBJECT: str = "Meta"
PAGINATION_OBJECT: str = "Pagination"

STANDARD_ENUM_NAMES: Tuple[str, ...] = (ERROR_CODE_ENUM, ERROR_FIELD_CODE_ENUM)
STANDARD_OBJECT_NAMES: Tuple[str, ...] = (
    ERROR_OBJECT,
    ERROR_FIELD_OBJECT,
    META_OBJECT,
    PAGINATION_OBJECT,
)

ERROR_CODE_STATUS: Dict[str, int] = {
    "BadRequest": 400,
    "Unauthorized": 401,
    "Forbidden": 403,
    "NotFound": 404,
    "Conflict": 409,
    "UnprocessableEntity": 422,
    "RateLimited": 429,
    "Internal": 500,
}

STANDARD_ERROR_STATUS_CODES: Tuple[int, ...] = (400, 401, 403, 404, 409, 429, 500)
UNPROCESSABLE_ENTITY_STATUS: int = 422

# Operation -> synthesized endpoint name
ENDPOINT_NAMES: Dict[str, str] = {
    Operation.CREATE.value: "Create",
    Operation.READ.value: "Get",
    Operation.UPDATE.value: "Update",
    Operation.DELETE.value: "Delete",
    Operation.LIST.value: "List",
    Operation.SEARCH.value: "Search",
}

SEARCH_PATH: str = "/_search"
ID_PATH: str = "/{id}"

_RANGE_TYPES: frozenset = frozenset(
    {PrimitiveType.INT.value, PrimitiveType.DATE.value, PrimitiveType.TIMESTAMP.value}
)

_NULLABLE: List[str] = [Modifier.NULLABLE.value]
_ARRAY: List[str] = [Modifier.ARRAY.value]


# ---------------------------------------------------------------------------
# Standard definitions
# ---------------------------------------------------------------------------


def _error_code_enum() -> EnumDefinition:
    descriptions: Dict[str, str] = {
        "BadRequest": "The request was malformed or contained invalid parameters",
        "Unauthorized": "The request is missing valid authentication credentials",
        "Forbidden": "The request is authenticated, but the caller may not perform the operation",
        "NotFound": "The requested resource or endpoint does not exist",
        "Conflict": "The request conflicts with the current state of the resource",
        "UnprocessableEntity": "The request was well-formed but failed validation",
        "RateLimited": "The rate limit has been exceeded",
        "Internal": "An unexpected server-side error occurred",
    }
    return EnumDefinition(
        name=ERROR_CODE_ENUM,
        description="Standard error codes used in API responses",
        values=[
            EnumValue(name=code, description=f"{descriptions[code]}. {status} status code")
            for code, status in ERROR_CODE_STATUS.items()
        ],
    )


def _error_field_code_enum() -> EnumDefinition:
    return EnumDefinition(
        name=ERROR_FIELD_CODE_ENUM,
        description="Error codes for field-level validation errors",
        values=[
            EnumValue(
                name="AlreadyExists",
                description="The value violates a unique constraint",
            ),
            EnumValue(
                name="Required",
                description="The field is required but missing or empty",
            ),
            EnumValue(
                name="NotFound",
                description="A referenced resource or relation does not exist",
            ),
            EnumValue(
                name="InvalidValue",
                description="The value is malformed or outside the allowed range",
            ),
        ],
    )


def _error_object() -> ObjectDefinition:
    return ObjectDefinition(
        name=ERROR_OBJECT,
        description="Standard error response object containing error code and message",
        fields=[
            FieldDefinition(
                name="Code",
                description="The specific error code indicating the type of error",
                type=ERROR_CODE_ENUM,
            ),
            FieldDefinition(
                name="Message",
                description="Human-readable error message providing additional details",
                type=PrimitiveType.STRING.value,
            ),
            FieldDefinition(
                name="RequestID",
                description="Identifier of the request that produced the error",
                type=PrimitiveType.STRING.value,
            ),
            FieldDefinition(
                name="Fields",
                description="Field-level validation errors",
                type=ERROR_FIELD_OBJECT,
                modifiers=_ARRAY,
            ),
        ],
    )


def _error_field_object() -> ObjectDefinition:
    return ObjectDefinition(
        name=ERROR_FIELD_OBJECT,
        description="Field-specific error information for validation errors",
        fields=[
            FieldDefinition(
                name="Code",
                description="The specific error code for the field",
                type=ERROR_FIELD_CODE_ENUM,
            ),
            FieldDefinition(
                name="Message",
                description="Human-readable message about the field error",
                type=PrimitiveType.STRING.value,
            ),
        ],
    )


def _meta_object() -> ObjectDefinition:
    return ObjectDefinition(
        name=META_OBJECT,
        description="Audit metadata of an entity",
        fields=[
            FieldDefinition(
                name="createdAt",
                description="When the entity was created",
                type=PrimitiveType.TIMESTAMP.value,
            ),
            FieldDefinition(
                name="createdBy",
                description="Who created the entity",
                type=PrimitiveType.UUID.value,
                modifiers=_NULLABLE,
            ),
            FieldDefinition(
                name="updatedAt",
                description="When the entity was last updated",
                type=PrimitiveType.TIMESTAMP.value,
            ),
            FieldDefinition(
                name="updatedBy",
                description="Who last updated the entity",
                type=PrimitiveType.UUID.value,
                modifiers=_NULLABLE,
            ),
        ],
    )


def _pagination_object() -> ObjectDefinition:
    return ObjectDefinition(
        name=PAGINATION_OBJECT,
        description="Pagination information of a list response",
        fields=[
            FieldDefinition(
                name="offset",
                description="Number of items skipped",
                type=PrimitiveType.INT.value,
            ),
            FieldDefinition(
                name="limit",
                description="Maximum number of items returned",
                type=PrimitiveType.INT.value,
            ),
            FieldDefinition(
                name="total",
                description="Total number of matching items",
                type=PrimitiveType.INT.value,
            ),
        ],
    )


def _meta_field() -> FieldDefinition:
    return FieldDefinition(
        name=META_OBJECT,
        description="Audit metadata",
        type=META_OBJECT,
    )


# ---------------------------------------------------------------------------
# Filter families
# ---------------------------------------------------------------------------


def _condition_field(
    source: FieldDefinition,
    type_name: str,
    modifiers: List[str],
) -> FieldDefinition:
    return FieldDefinition(
        name=source.name,
        description=source.description,
        type=type_name,
        modifiers=list(modifiers),
    )


def _root_filter(base: str) -> ObjectDefinition:
    equals: str = filter_condition_name(base, "Equals")
    range_: str = filter_condition_name(base, "Range")
    contains: str = filter_condition_name(base, "Contains")
    like: str = filter_condition_name(base, "Like")
    null: str = filter_condition_name(base, "Null")

    conditions: List[Tuple[str, str, str]] = [
        ("Equals", "Equality filters for ", equals),
        ("NotEquals", "Inequality filters for ", equals),
        ("GreaterThan", "Greater than filters for ", range_),
        ("SmallerThan", "Smaller than filters for ", range_),
        ("GreaterOrEqual", "Greater than or equal filters for ", range_),
        ("SmallerOrEqual", "Smaller than or equal filters for ", range_),
        ("Contains", "Contains filters for ", contains),
        ("NotContains", "Not contains filters for ", contains),
        ("Like", "LIKE filters for ", like),
        ("NotLike", "NOT LIKE filters for ", like),
        ("Null", "Null filters for ", null),
        ("NotNull", "Not null filters for ", null),
    ]
    fields: List[FieldDefinition] = [
        FieldDefinition(
            name=name,
            description=prefix + base,
            type=type_name,
            modifiers=_NULLABLE,
        )
        for name, prefix, type_name in conditions
    ]
    fields.append(
        FieldDefinition(
            name="OrCondition",
            description=(
                "OrCondition decides if this filter is within an "
                "OR-condition or AND-condition"
            ),
            type=PrimitiveType.BOOL.value,
        )
    )
    fields.append(
        FieldDefinition(
            name=NESTED_FILTERS_FIELD,
            description=f"NestedFilters of the {base}, useful for more complex filters",
            type=filter_root_name(base),
            modifiers=_ARRAY,
        )
    )
    return ObjectDefinition(
        name=filter_root_name(base),
        description=f"Filter object for {base}",
        fields=fields,
    )


def build_filter_family(
    base: str,
    fields: List[FieldDefinition],
    is_object: Callable[[str], bool],
) -> List[ObjectDefinition]:
    """
    Filter root plus the five condition objects for *base*.

    *fields* are the filterable fields of the base; object-typed fields
    point at the matching condition object of their own family, which the
    caller is responsible for building.
    """
    equals: List[FieldDefinition] = []
    range_: List[FieldDefinition] = []
    contains: List[FieldDefinition] = []
    like: List[FieldDefinition] = []
    null: List[FieldDefinition] = []

    for f in fields:
        nested: bool = is_object(f.type)

        if nested:
            equals.append(_condition_field(f, filter_condition_name(f.type, "Equals"), _NULLABLE))
        else:
            equals.append(_condition_field(f, f.type, _NULLABLE))

        if nested:
            range_.append(_condition_field(f, filter_condition_name(f.type, "Range"), _NULLABLE))
        elif f.type in _RANGE_TYPES:
            range_.append(_condition_field(f, f.type, _NULLABLE))

        if nested:
            contains.append(
                _condition_field(f, filter_condition_name(f.type, "Contains"), _NULLABLE)
            )
        elif f.type != PrimitiveType.TIMESTAMP.value:
            contains.append(_condition_field(f, f.type, _ARRAY))

        if nested:
            like.append(_condition_field(f, filter_condition_name(f.type, "Like"), _NULLABLE))
        elif f.type == PrimitiveType.STRING.value:
            like.append(_condition_field(f, f.type, _NULLABLE))

        if f.is_nullable or f.is_array:
            null.append(_condition_field(f, PrimitiveType.BOOL.value, _NULLABLE))

    return [
        _root_filter(base),
        ObjectDefinition(
            name=filter_condition_name(base, "Equals"),
            description=f"Equality/Inequality filter fields for {base}",
            fields=equals,
        ),
        ObjectDefinition(
            name=filter_condition_name(base, "Range"),
            description=f"Range filter fields for {base}",
            fields=range_,
        ),
        ObjectDefinition(
            name=filter_condition_name(base, "Contains"),
            description=f"Contains filter fields for {base}",
            fields=contains,
        ),
        ObjectDefinition(
            name=filter_condition_name(base, "Like"),
            description=f"LIKE filter fields for {base}",
            fields=like,
        ),
        ObjectDefinition(
            name=filter_condition_name(base, "Null"),
            description=f"Null filter fields for {base}",
            fields=null,
        ),
    ]


def wants_filter(resource: Resource) -> bool:
    """Search always filters; List only when some field is filterable."""
    if resource.has_operation(Operation.SEARCH):
        return True
    return resource.has_operation(Operation.LIST) and bool(resource.filterable_fields())


# ---------------------------------------------------------------------------
# Default endpoints
# ---------------------------------------------------------------------------


def _list_filter_params(resource: Resource, service: Service) -> List[FieldDefinition]:
    params: List[FieldDefinition] = []
    for f in resource.fields_for(Operation.LIST):
        if f.is_array or service.has_object(f.type):
            continue
        param: FieldDefinition = f.as_field()
        param.modifiers = list(_NULLABLE)
        params.append(param)
    return params


def default_endpoint(
    resource: Resource,
    operation: Operation,
    service: Service,
) -> Endpoint:
    """The standard endpoint synthesized for *operation* on *resource*."""
    op: str = Operation(operation).value
    name: str = resource.name
    plural: str = resource.plural_name
    id_param: FieldDefinition = create_id_param(f"The unique identifier of the {name}")

    if op == Operation.CREATE.value:
        return Endpoint(
            name=ENDPOINT_NAMES[op],
            title=f"Create {name}",
            description=f"Create a new {name}",
            method=HttpMethod.POST,
            path="",
            request=EndpointRequest(
                body_params=[f.as_field() for f in resource.create_fields()]
            ),
            response=EndpointResponse(status_code=201, body_object=name),
        )

    if op == Operation.READ.value:
        return Endpoint(
            name=ENDPOINT_NAMES[op],
            title=f"Get {name}",
            description=f"Retrieve a single {name} by its ID",
            method=HttpMethod.GET,
            path=ID_PATH,
            request=EndpointRequest(path_params=[id_param]),
            response=EndpointResponse(status_code=200, body_object=name),
        )

    if op == Operation.UPDATE.value:
        return Endpoint(
            name=ENDPOINT_NAMES[op],
            title=f"Update {name}",
            description=f"Update an existing {name}",
            method=HttpMethod.PATCH,
            path=ID_PATH,
            request=EndpointRequest(
                path_params=[id_param],
                body_params=[f.as_field() for f in resource.update_fields()],
            ),
            response=EndpointResponse(status_code=200, body_object=name),
        )

    if op == Operation.DELETE.value:
        return Endpoint(
            name=ENDPOINT_NAMES[op],
            title=f"Delete {name}",
            description=f"Delete a {name}",
            method=HttpMethod.DELETE,
            path=ID_PATH,
            request=EndpointRequest(path_params=[id_param]),
            response=EndpointResponse(status_code=204),
        )

    list_response: EndpointResponse = EndpointResponse(
        status_code=200,
        body_fields=[create_data_field(name), create_pagination_field()],
    )

    if op == Operation.LIST.value:
        return Endpoint(
            name=ENDPOINT_NAMES[op],
            title=f"List {plural}",
            description=f"List {plural} with pagination",
            method=HttpMethod.GET,
            path="",
            request=EndpointRequest(
                query_params=[create_offset_param(), create_limit_param()]
                + _list_filter_params(resource, service),
            ),
            response=list_response,
        )

    return Endpoint(
        name=ENDPOINT_NAMES[op],
        title=f"Search {plural}",
        description=f"Search {plural} using structured filters",
        method=HttpMethod.POST,
        path=SEARCH_PATH,
        request=EndpointRequest(
            query_params=[create_offset_param(), create_limit_param()],
            body_params=[
                FieldDefinition(
                    name="Filter",
                    description=f"Filter criteria for {plural}",
                    type=filter_root_name(name),
                    modifiers=_NULLABLE,
                )
            ],
        ),
        response=list_response,
    )


def error_status_codes(endpoint: Endpoint) -> List[int]:
    """
    Standard error set; 422 only when the request carries a body, since an
    empty body cannot fail entity validation.
    """
    codes: List[int] = list(STANDARD_ERROR_STATUS_CODES)
    if endpoint.request.body_params:
        codes.append(UNPROCESSABLE_ENTITY_STATUS)
    return sorted(codes)


# ---------------------------------------------------------------------------
# Elaboration steps
# ---------------------------------------------------------------------------


def _add_enum(service: Service, enum_def: EnumDefinition) -> bool:
    if service.has_enum(enum_def.name):
        logger.debug("Enum '%s' already defined; keeping authored version.", enum_def.name)
        return False
    service.enums.append(enum_def)
    return True


def _add_object(service: Service, obj: ObjectDefinition) -> bool:
    if service.has_object(obj.name):
        logger.debug("Object '%s' already defined; keeping authored version.", obj.name)
        return False
    service.objects.append(obj)
    return True


def _add_standard_definitions(service: Service) -> None:
    _add_enum(service, _error_code_enum())
    _add_enum(service, _error_field_code_enum())
    _add_object(service, _error_object())
    _add_object(service, _error_field_object())
    _add_object(service, _meta_object())
    _add_object(service, _pagination_object())


def _add_entity_objects(service: Service) -> None:
    for resource in service.resources:
        returns_entity: bool = any(
            op != Operation.DELETE.value for op in resource.operations
        )
        if not returns_entity:
            continue
        fields: List[FieldDefinition] = [f.as_field() for f in resource.readable_fields()]
        if resource.audited:
            fields.append(_meta_field())
        _add_object(
            service,
            ObjectDefinition(
                name=resource.name,
                description=resource.description,
                fields=fields,
            ),
        )


def _add_filter_families(service: Service) -> None:
    # Roots of every filtering resource first, then nested object families
    # in discovery order.
    pending: List[Tuple[str, List[FieldDefinition]]] = []
    for resource in service.resources:
        if not wants_filter(resource):
            continue
        fields: List[FieldDefinition] = [f.as_field() for f in resource.filterable_fields()]
        if resource.audited:
            fields.append(_meta_field())
        pending.append((resource.name, fields))

    # A field typed as a filter-family member is filtered as a plain value;
    # families are never built over filter objects themselves.
    def filterable_object(type_name: str) -> bool:
        return service.has_object(type_name) and filter_family_root(type_name, service) is None

    built: Set[str] = set()
    cursor: int = 0
    while cursor < len(pending):
        base, fields = pending[cursor]
        cursor += 1
        if base in built:
            continue
        built.add(base)

        added: int = 0
        for member in build_filter_family(base, fields, filterable_object):
            if _add_object(service, member):
                added += 1
        logger.debug("Filter family '%s': %d object(s) added.", base, added)

        for f in fields:
            if not filterable_object(f.type):
                continue
            nested: Optional[ObjectDefinition] = service.get_object(f.type)
            if nested is not None and nested.name not in built:
                pending.append((nested.name, [n.model_copy(deep=True) for n in nested.fields]))


def _add_default_endpoints(service: Service) -> None:
    for resource in service.resources:
        seen: Set[str] = set()
        for op in resource.operations:
            if op in seen:
                continue
            seen.add(op)
            name: str = ENDPOINT_NAMES[op]
            if resource.get_endpoint(name) is not None:
                logger.debug(
                    "Resource '%s' already has endpoint '%s'; keeping authored version.",
                    resource.name,
                    name,
                )
                continue
            resource.endpoints.append(default_endpoint(resource, Operation(op), service))


def _assign_error_status_codes(service: Service) -> None:
    for resource in service.resources:
        for endpoint in resource.endpoints:
            endpoint.error_status_codes = error_status_codes(endpoint)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def elaborate(service: Service) -> Service:
    """
    Return the elaborated form of *service*.

    Pure and idempotent: the input is deep-copied first, and
    ``elaborate(elaborate(s)) == elaborate(s)``.
    """
    result: Service = service.model_copy(deep=True)

    _add_standard_definitions(result)
    _add_entity_objects(result)
    _add_filter_families(result)
    _add_default_endpoints(result)
    _assign_error_status_codes(result)

    logger.debug(
        "Elaborated '%s': %d enums, %d objects, %d endpoints.",
        result.name,
        len(result.enums),
        len(result.objects),
        sum(len(r.endpoints) for r in result.resources),
    )
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ERROR_CODE_ENUM",
    "ERROR_FIELD_CODE_ENUM",
    "ERROR_OBJECT",
    "ERROR_FIELD_OBJECT",
    "META_OBJECT",
    "PAGINATION_OBJECT",
    "STANDARD_ENUM_NAMES",
    "STANDARD_OBJECT_NAMES",
    "ERROR_CODE_STATUS",
    "STANDARD_ERROR_STATUS_CODES",
    "UNPROCESSABLE_ENTITY_STATUS",
    "ENDPOINT_NAMES",
    "SEARCH_PATH",
    "ID_PATH",
    "build_filter_family",
    "wants_filter",
    "default_endpoint",
    "error_status_codes",
    "elaborate",
]

logger.debug("specgen.overlay loaded — %d public symbols.", len(__all__))
