# File: specgen/validators.py
"""
specgen - Service Validators
=============================
Cross-entity semantic validation over the Pydantic models in
``specgen.models``.

Pydantic handles per-field structure (exact-case literals, unique enum
values, unknown keys).  This module checks what only the whole service can
answer: do type names resolve, are names unique, do path placeholders have
parameters, do security requirements name declared schemes.

Every message carries the path of the offending element so a user can find
it in a large document::

    resource 0 (User): field 2 (email): invalid field type 'Strng'

Usage:
    from specgen.validators import validate_service
    result = validate_service(service)
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from specgen.models import (
    PRIMITIVE_TYPE_NAMES,
    Endpoint,
    FieldDefinition,
    HttpMethod,
    Operation,
    Resource,
    Service,
)
from specgen.overlay import STANDARD_ENUM_NAMES, STANDARD_OBJECT_NAMES, elaborate

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    @property
    def is_info(self) -> bool:
        return self.level == "info"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def infos(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_info]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.is_info:
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


class SpecificationError(ValueError):
    """
    A service document that cannot be compiled.

    Raised for documents pydantic rejects and, via ``ensure_valid``, for
    services with semantic errors.  ``result`` is set in the second case.
    """

    def __init__(self, message: str, result: Optional[ValidationResult] = None) -> None:
        super().__init__(message)
        self.result: Optional[ValidationResult] = result


# ---------------------------------------------------------------------------
# Patterns & shared helpers
# ---------------------------------------------------------------------------

_PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_BODYLESS_METHODS: FrozenSet[str] = frozenset(
    {HttpMethod.GET.value, HttpMethod.DELETE.value}
)


def _label(kind: str, idx: int, name: str) -> str:
    return f"{kind} {idx} ({name})"


def known_type_names(service: Service) -> Set[str]:
    """
    Every type name a field may use before elaboration.

    Besides authored enums and objects this covers exactly what the overlay
    synthesizes for *service*: standard definitions, entity objects of
    resources that return one, and filter families of filtering resources
    and the objects they nest.  Names are taken from an elaborated copy so
    the two can never disagree.
    """
    names: Set[str] = set(PRIMITIVE_TYPE_NAMES)
    names.update(elaborate(service).type_names())
    return names


def _endpoint_field_lists(
    endpoint: Endpoint,
) -> Iterator[Tuple[str, List[FieldDefinition]]]:
    request = endpoint.request
    response = endpoint.response
    yield "request header", request.headers
    yield "request path param", request.path_params
    yield "request query param", request.query_params
    yield "request body param", request.body_params
    yield "response header", response.headers
    yield "response body field", response.body_fields


def _iter_field_lists(
    service: Service,
) -> Iterator[Tuple[str, str, List[FieldDefinition]]]:
    """
    Yield ``(owner path, field kind, fields)`` for every field list of the
    service, in declaration order.
    """
    for o_idx, obj in enumerate(service.objects):
        yield _label("object", o_idx, obj.name), "field", obj.fields
    for r_idx, resource in enumerate(service.resources):
        owner: str = _label("resource", r_idx, resource.name)
        yield owner, "field", resource.fields
        for e_idx, endpoint in enumerate(resource.endpoints):
            ep_owner: str = f"{owner}: {_label('endpoint', e_idx, endpoint.name)}"
            for kind, fields in _endpoint_field_lists(endpoint):
                yield ep_owner, kind, fields
    yield "service", "response header", service.response_headers


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_names(service: Service) -> ValidationResult:
    """
    Enum, object and resource names: duplicates, collisions, primitives
    shadowed, casing, and collisions with synthesized standard names.
    """
    result: ValidationResult = ValidationResult()

    groups: List[Tuple[str, List[str]]] = [
        ("enum", [e.name for e in service.enums]),
        ("object", [o.name for o in service.objects]),
        ("resource", [r.name for r in service.resources]),
    ]

    for kind, names in groups:
        seen: Set[str] = set()
        for idx, name in enumerate(names):
            ctx: Dict[str, Any] = {kind: name}
            if name in seen:
                result.add_error(
                    f"DUPLICATE_{kind.upper()}_NAME",
                    f"{_label(kind, idx, name)}: {kind} name '{name}' is defined more than once.",
                    ctx,
                )
            seen.add(name)

            if name in PRIMITIVE_TYPE_NAMES:
                result.add_error(
                    "NAME_SHADOWS_PRIMITIVE",
                    f"{_label(kind, idx, name)}: '{name}' is a primitive type name.",
                    ctx,
                )
                continue

            if not _IDENTIFIER_RE.match(name):
                result.add_error(
                    f"INVALID_{kind.upper()}_NAME",
                    f"{_label(kind, idx, name)}: '{name}' is not a valid identifier.",
                    ctx,
                )
                continue

            if not _PASCAL_CASE_RE.match(name):
                result.add_warning(
                    f"{kind.upper()}_NAME_NOT_PASCAL_CASE",
                    f"{_label(kind, idx, name)}: '{name}' is not PascalCase.",
                    ctx,
                )

    enum_names: Set[str] = {e.name for e in service.enums}
    for idx, obj in enumerate(service.objects):
        if obj.name in enum_names:
            result.add_error(
                "ENUM_OBJECT_NAME_COLLISION",
                f"{_label('object', idx, obj.name)}: name is also declared as an enum.",
                {"object": obj.name},
            )

    for idx, enum_def in enumerate(service.enums):
        if enum_def.name in STANDARD_ENUM_NAMES:
            result.add_info(
                "STANDARD_ENUM_OVERRIDDEN",
                f"{_label('enum', idx, enum_def.name)}: replaces the standard "
                f"'{enum_def.name}' enum.",
                {"enum": enum_def.name},
            )
    for idx, obj in enumerate(service.objects):
        if obj.name in STANDARD_OBJECT_NAMES:
            result.add_info(
                "STANDARD_OBJECT_OVERRIDDEN",
                f"{_label('object', idx, obj.name)}: replaces the standard "
                f"'{obj.name}' object.",
                {"object": obj.name},
            )

    object_names: Set[str] = {o.name for o in service.objects}
    for idx, resource in enumerate(service.resources):
        if resource.name in object_names:
            result.add_info(
                "ENTITY_OBJECT_AUTHORED",
                f"{_label('resource', idx, resource.name)}: an object with the same "
                f"name is declared; it is used instead of the generated entity.",
                {"resource": resource.name},
            )

    logger.debug("validate_names: %d issue(s).", len(result))
    return result


def validate_field_types(service: Service) -> ValidationResult:
    """Every field type resolves to a primitive, enum or object."""
    result: ValidationResult = ValidationResult()
    known: Set[str] = known_type_names(service)
    checked: int = 0

    for owner, kind, fields in _iter_field_lists(service):
        for f_idx, field_def in enumerate(fields):
            checked += 1
            if field_def.type in known:
                continue
            result.add_error(
                "UNKNOWN_FIELD_TYPE",
                f"{owner}: {_label(kind, f_idx, field_def.name)}: "
                f"invalid field type '{field_def.type}'",
                {"field": field_def.name, "type": field_def.type},
            )

    logger.debug("validate_field_types: checked %d fields, %d issue(s).", checked, len(result))
    return result


def validate_field_names(service: Service) -> ValidationResult:
    """No field name appears twice in one field list."""
    result: ValidationResult = ValidationResult()

    for owner, kind, fields in _iter_field_lists(service):
        seen: Set[str] = set()
        for f_idx, field_def in enumerate(fields):
            if field_def.name in seen:
                result.add_error(
                    "DUPLICATE_FIELD_NAME",
                    f"{owner}: {_label(kind, f_idx, field_def.name)}: "
                    f"name is used more than once.",
                    {"field": field_def.name},
                )
            seen.add(field_def.name)

    return result


def validate_resource_operations(service: Service) -> ValidationResult:
    """
    Fields tagged ``Create`` / ``Update`` on a resource that does not declare
    that operation are unused.
    """
    result: ValidationResult = ValidationResult()
    tracked: Tuple[Operation, ...] = (Operation.CREATE, Operation.UPDATE)

    for r_idx, resource in enumerate(service.resources):
        owner: str = _label("resource", r_idx, resource.name)
        for op in tracked:
            if resource.has_operation(op):
                continue
            for f_idx, field_def in enumerate(resource.fields):
                if field_def.supports(op):
                    result.add_warning(
                        "FIELD_OPERATION_UNUSED",
                        f"{owner}: {_label('field', f_idx, field_def.name)}: tagged "
                        f"'{op.value}' but the resource does not declare it.",
                        {"resource": resource.name, "operation": op.value},
                    )

        if not resource.operations and not resource.endpoints:
            result.add_warning(
                "RESOURCE_WITHOUT_ENDPOINTS",
                f"{owner}: declares no operations and no endpoints.",
                {"resource": resource.name},
            )

    return result


def _validate_endpoint(
    endpoint: Endpoint,
    owner: str,
    object_names: Set[str],
    resource: Resource,
    result: ValidationResult,
) -> None:
    ctx: Dict[str, Any] = {"resource": resource.name, "endpoint": endpoint.name}

    placeholders: List[str] = endpoint.path_placeholders()
    params: List[str] = [p.name for p in endpoint.request.path_params]
    for name in placeholders:
        if name not in params:
            result.add_error(
                "PATH_PARAM_MISSING",
                f"{owner}: path placeholder '{{{name}}}' has no path param.",
                ctx,
            )
    for name in params:
        if name not in placeholders:
            result.add_warning(
                "PATH_PARAM_UNUSED",
                f"{owner}: path param '{name}' does not appear in path "
                f"'{endpoint.path}'.",
                ctx,
            )

    body_object: Optional[str] = endpoint.response.body_object
    if body_object is not None and body_object not in object_names:
        result.add_error(
            "UNKNOWN_BODY_OBJECT",
            f"{owner}: response body object '{body_object}' is neither an "
            f"object nor a resource.",
            ctx,
        )

    if endpoint.method in _BODYLESS_METHODS and endpoint.request.body_params:
        result.add_warning(
            "BODY_ON_BODYLESS_METHOD",
            f"{owner}: {endpoint.method} endpoint declares "
            f"{len(endpoint.request.body_params)} body param(s).",
            ctx,
        )


def validate_endpoints(service: Service) -> ValidationResult:
    """Authored endpoints: unique names, path params, response bodies."""
    object_names: Set[str] = {o.name for o in elaborate(service).objects}
    result: ValidationResult = ValidationResult()

    for r_idx, resource in enumerate(service.resources):
        seen: Set[str] = set()
        for e_idx, endpoint in enumerate(resource.endpoints):
            owner: str = (
                f"{_label('resource', r_idx, resource.name)}: "
                f"{_label('endpoint', e_idx, endpoint.name)}"
            )
            if endpoint.name in seen:
                result.add_error(
                    "DUPLICATE_ENDPOINT_NAME",
                    f"{owner}: endpoint name is used more than once.",
                    {"resource": resource.name, "endpoint": endpoint.name},
                )
            seen.add(endpoint.name)
            _validate_endpoint(endpoint, owner, object_names, resource, result)

    return result


def validate_security(service: Service) -> ValidationResult:
    """Every requirement names a declared security scheme."""
    result: ValidationResult = ValidationResult()

    for idx, requirement in enumerate(service.security):
        if not requirement:
            result.add_warning(
                "EMPTY_SECURITY_REQUIREMENT",
                f"security requirement {idx} names no schemes.",
            )
        for name in requirement:
            if name not in service.security_schemes:
                result.add_error(
                    "UNKNOWN_SECURITY_SCHEME",
                    f"security requirement {idx}: unknown scheme '{name}'.",
                    {"scheme": name},
                )

    return result


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_service(service: Service) -> ValidationResult:
    """Run every check and return the merged result."""
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[Service], ValidationResult]] = [
        validate_names,
        validate_field_names,
        validate_field_types,
        validate_resource_operations,
        validate_endpoints,
        validate_security,
    ]

    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(service))

    if result.has_errors:
        logger.error(
            "Validation of '%s' FAILED with %d error(s).",
            service.name,
            result.error_count,
        )
    else:
        logger.info("Validation of '%s' PASSED. %s", service.name, result.summary())
    return result


def ensure_valid(service: Service) -> ValidationResult:
    """Return the validation result, raising ``SpecificationError`` on errors."""
    result: ValidationResult = validate_service(service)
    if result.has_errors:
        first: str = result.errors[0].message
        raise SpecificationError(
            f"service '{service.name}' has {result.error_count} error(s); first: {first}",
            result,
        )
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "SpecificationError",
    "known_type_names",
    "validate_names",
    "validate_field_types",
    "validate_field_names",
    "validate_resource_operations",
    "validate_endpoints",
    "validate_security",
    "validate_service",
    "ensure_valid",
]

logger.debug("specgen.validators loaded — %d public symbols.", len(__all__))
