# File: specgen/walker.py
"""
specgen - Graph Walker
=======================
Cycle-safe traversals over the object-reference graph of a service.

Two families of walks live here:

* **examples** — a representative instance of an object tree, built from
  declared examples, name-specific defaults and per-type defaults;
* **schemas** — JSON-schema fragments, either in reference mode (named types
  become ``$ref``s and are never duplicated inline) or fully expanded.

Filter families reference themselves (``NestedFilters: [<R>Filter]``) and
user objects may reference each other, so every recursive walk threads a
``visiting`` set of object names currently on the stack.  Entering a name
already in that set yields ``OMITTED`` and the branch is dropped.  This is a
termination rule, not an error.

``RequestBodyRegistry`` gives endpoints that share an identical body one
shared named schema (first writer names it).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple, Union

from specgen.models import (
    EnumDefinition,
    FieldDefinition,
    ObjectDefinition,
    PrimitiveType,
    Service,
)
from specgen.resolver import TypeIndex, TypeRef

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.walker")


# ---------------------------------------------------------------------------
# Omitted sentinel
# ---------------------------------------------------------------------------


class _Omitted:
    """Marker for a branch cut short by the cycle guard."""

    _instance: Optional["_Omitted"] = None

    def __new__(cls) -> "_Omitted":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "OMITTED"


OMITTED: _Omitted = _Omitted()

Example = Union[Dict[str, Any], _Omitted]
Schema = Union[Dict[str, Any], _Omitted]

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

SCHEMA_REF_PREFIX: str = "#/components/schemas/"

DEFAULT_EXAMPLES: Dict[str, Any] = {
    PrimitiveType.UUID.value: "123e4567-e89b-12d3-a456-426614174000",
    PrimitiveType.DATE.value: "2024-01-15",
    PrimitiveType.TIMESTAMP.value: "2024-01-15T10:30:00Z",
    PrimitiveType.STRING.value: "example",
    PrimitiveType.INT.value: 1,
    PrimitiveType.BOOL.value: True,
}

# Audit fields get distinguishable values
NAMED_EXAMPLES: Dict[str, Any] = {
    "createdAt": "2024-01-15T10:30:00Z",
    "updatedAt": "2024-01-15T14:45:00Z",
    "createdBy": "987fcdeb-51a2-43d1-b567-123456789abc",
    "updatedBy": "987fcdeb-51a2-43d1-b567-123456789abc",
}

UNKNOWN_TYPE_EXAMPLE: str = "example"

_PRIMITIVE_SCHEMAS: Dict[str, Dict[str, str]] = {
    PrimitiveType.UUID.value: {"type": "string", "format": "uuid"},
    PrimitiveType.DATE.value: {"type": "string", "format": "date"},
    PrimitiveType.TIMESTAMP.value: {"type": "string", "format": "date-time"},
    PrimitiveType.STRING.value: {"type": "string"},
    PrimitiveType.INT.value: {"type": "integer", "format": "int64"},
    PrimitiveType.BOOL.value: {"type": "boolean"},
}


def coerce_example(value: str, type_name: str) -> Any:
    """Turn a declared example string into the JSON value of its type."""
    if type_name == PrimitiveType.INT.value:
        try:
            return int(value)
        except ValueError:
            return value
    if type_name == PrimitiveType.BOOL.value:
        lowered: str = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    return value


def schema_ref(type_name: str) -> Dict[str, str]:
    return {"$ref": f"{SCHEMA_REF_PREFIX}{type_name}"}


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------


class GraphWalker:
    """
    All walks over one service, sharing one ``TypeIndex``.

    Usage::

        walker = GraphWalker(service)
        walker.example(service.get_object("User"))
        walker.object_schema(service.get_object("User"))
    """

    def __init__(self, service: Service) -> None:
        self._service: Service = service
        self._index: TypeIndex = TypeIndex(service)

    # -- helpers --------------------------------------------------------------

    def _object(self, ref: TypeRef) -> ObjectDefinition:
        return self._service.objects[ref.index]

    def _enum(self, ref: TypeRef) -> EnumDefinition:
        return self._service.enums[ref.index]

    # -- examples ---------------------------------------------------------------

    def _scalar_example(self, field_def: FieldDefinition, ref: TypeRef) -> Any:
        if field_def.example is not None:
            return coerce_example(field_def.example, ref.name)
        if field_def.default is not None:
            return coerce_example(field_def.default, ref.name)
        if ref.is_enum:
            return self._enum(ref).values[0].name
        if field_def.name in NAMED_EXAMPLES:
            return NAMED_EXAMPLES[field_def.name]
        if ref.primitive is not None:
            return DEFAULT_EXAMPLES[ref.primitive.value]
        return UNKNOWN_TYPE_EXAMPLE

    def field_example(
        self,
        field_def: FieldDefinition,
        visiting: FrozenSet[str] = frozenset(),
    ) -> Any:
        ref: TypeRef = self._index.lookup(field_def.type)
        if ref.is_object:
            value: Any = self.example(self._object(ref), visiting)
            if value is OMITTED:
                return OMITTED
        else:
            value = self._scalar_example(field_def, ref)
        return [value] if field_def.is_array else value

    def fields_example(
        self,
        fields: List[FieldDefinition],
        visiting: FrozenSet[str] = frozenset(),
    ) -> Dict[str, Any]:
        """Example of a flat field list (a request body, a response body)."""
        out: Dict[str, Any] = {}
        for field_def in fields:
            value: Any = self.field_example(field_def, visiting)
            if value is OMITTED:
                continue
            out[field_def.name] = value
        return out

    def example(
        self,
        obj: ObjectDefinition,
        visiting: FrozenSet[str] = frozenset(),
    ) -> Example:
        if obj.name in visiting:
            logger.debug("Example walk re-entered '%s'; branch omitted.", obj.name)
            return OMITTED
        return self.fields_example(obj.fields, visiting | {obj.name})

    # -- schemas: reference mode ------------------------------------------------

    def _primitive_schema(self, ref: TypeRef) -> Dict[str, Any]:
        return dict(_PRIMITIVE_SCHEMAS.get(ref.name, {"type": "string"}))

    def field_schema(self, field_def: FieldDefinition) -> Dict[str, Any]:
        """
        Schema of one field where enums and objects are always ``$ref``s.

        No recursion, so no cycle guard is needed.
        """
        ref: TypeRef = self._index.lookup(field_def.type)
        named: bool = ref.is_object or ref.is_enum
        item: Dict[str, Any] = schema_ref(ref.name) if named else self._primitive_schema(ref)
        return self._decorate(field_def, ref, item, named)

    def _decorate(
        self,
        field_def: FieldDefinition,
        ref: TypeRef,
        item: Dict[str, Any],
        named: bool,
    ) -> Dict[str, Any]:
        if field_def.is_array:
            schema: Dict[str, Any] = {"type": "array", "items": item}
        else:
            schema = item
            if field_def.is_nullable and not named:
                schema["nullable"] = True
        if field_def.description and "$ref" not in schema:
            schema["description"] = field_def.description
        if not named and not field_def.is_array:
            if field_def.default is not None:
                schema["default"] = coerce_example(field_def.default, ref.name)
            if field_def.example is not None:
                schema["example"] = coerce_example(field_def.example, ref.name)
        return schema

    def _required(self, fields: List[FieldDefinition]) -> List[str]:
        return [f.name for f in fields if f.is_required(self._service)]

    def fields_schema(
        self,
        fields: List[FieldDefinition],
        description: str = "",
    ) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "object"}
        if description:
            schema["description"] = description
        schema["properties"] = {f.name: self.field_schema(f) for f in fields}
        required: List[str] = self._required(fields)
        if required:
            schema["required"] = required
        return schema

    def object_schema(self, obj: ObjectDefinition) -> Dict[str, Any]:
        return self.fields_schema(obj.fields, obj.description)

    @staticmethod
    def enum_schema(enum_def: EnumDefinition) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "string", "enum": enum_def.value_names}
        if enum_def.description:
            schema["description"] = enum_def.description
        return schema

    # -- schemas: expanded --------------------------------------------------------

    def expand_schema(
        self,
        obj: ObjectDefinition,
        visiting: FrozenSet[str] = frozenset(),
    ) -> Schema:
        """Inline every nested type; re-entrant object branches are dropped."""
        if obj.name in visiting:
            logger.debug("Schema walk re-entered '%s'; branch omitted.", obj.name)
            return OMITTED
        inner: FrozenSet[str] = visiting | {obj.name}

        properties: Dict[str, Any] = {}
        kept: List[FieldDefinition] = []
        for field_def in obj.fields:
            ref: TypeRef = self._index.lookup(field_def.type)
            if ref.is_object:
                nested: Schema = self.expand_schema(self._object(ref), inner)
                if nested is OMITTED:
                    continue
                item: Dict[str, Any] = nested
            elif ref.is_enum:
                item = self.enum_schema(self._enum(ref))
            else:
                item = self._primitive_schema(ref)
            properties[field_def.name] = self._decorate(field_def, ref, item, ref.is_object)
            kept.append(field_def)

        schema: Dict[str, Any] = {"type": "object"}
        if obj.description:
            schema["description"] = obj.description
        schema["properties"] = properties
        required: List[str] = self._required(kept)
        if required:
            schema["required"] = required
        return schema

    # -- references -------------------------------------------------------------

    def collect_references(self, obj: ObjectDefinition) -> List[str]:
        """
        Named enums and objects reachable from *obj*, in depth-first
        pre-order, each once.  *obj* itself is not listed.
        """
        order: List[str] = []
        seen: Set[str] = {obj.name}
        stack: List[Iterator[FieldDefinition]] = [iter(obj.fields)]

        while stack:
            field_def: Optional[FieldDefinition] = next(stack[-1], None)
            if field_def is None:
                stack.pop()
                continue
            ref: TypeRef = self._index.lookup(field_def.type)
            if not (ref.is_object or ref.is_enum) or ref.name in seen:
                continue
            seen.add(ref.name)
            order.append(ref.name)
            if ref.is_object:
                stack.append(iter(self._object(ref).fields))
        return order


# ---------------------------------------------------------------------------
# Shared request bodies
# ---------------------------------------------------------------------------


class RequestBodyRegistry:
    """
    Named request-body schemas with structural de-duplication.

    The first endpoint to register a body shape names it; later endpoints
    with an identical field list get that name back.
    """

    __slots__ = ("_bodies", "_by_shape", "_assignments")

    def __init__(self) -> None:
        self._bodies: Dict[str, List[FieldDefinition]] = {}
        self._by_shape: Dict[str, str] = {}
        self._assignments: Dict[Tuple[str, str], str] = {}

    @staticmethod
    def shape_key(fields: List[FieldDefinition]) -> str:
        return json.dumps(
            [f.model_dump(mode="json") for f in fields],
            sort_keys=True,
        )

    def register(self, name: str, fields: List[FieldDefinition]) -> str:
        key: str = self.shape_key(fields)
        existing: Optional[str] = self._by_shape.get(key)
        if existing is not None:
            logger.debug("Request body '%s' reuses '%s'.", name, existing)
            return existing

        unique: str = name
        suffix: int = 2
        while unique in self._bodies:
            unique = f"{name}{suffix}"
            suffix += 1

        self._bodies[unique] = [f.model_copy(deep=True) for f in fields]
        self._by_shape[key] = unique
        return unique

    def assign(self, resource_name: str, endpoint_name: str, body_name: str) -> None:
        self._assignments[(resource_name, endpoint_name)] = body_name

    def body_for(self, resource_name: str, endpoint_name: str) -> Optional[str]:
        return self._assignments.get((resource_name, endpoint_name))

    @property
    def bodies(self) -> Dict[str, List[FieldDefinition]]:
        return dict(self._bodies)

    def __contains__(self, name: object) -> bool:
        return name in self._bodies

    def __len__(self) -> int:
        return len(self._bodies)

    def __repr__(self) -> str:
        return (
            f"<RequestBodyRegistry {len(self._bodies)} bodies, "
            f"{len(self._assignments)} endpoints>"
        )


def request_body_name(resource_name: str, endpoint_name: str) -> str:
    return f"{resource_name}{endpoint_name}"


def build_request_bodies(service: Service) -> RequestBodyRegistry:
    """Register the body of every endpoint that has one, in declaration order."""
    registry: RequestBodyRegistry = RequestBodyRegistry()
    for resource in service.resources:
        for endpoint in resource.endpoints:
            if not endpoint.request.body_params:
                continue
            body_name: str = registry.register(
                request_body_name(resource.name, endpoint.name),
                endpoint.request.body_params,
            )
            registry.assign(resource.name, endpoint.name, body_name)
    logger.debug("Collected %d shared request bodies.", len(registry))
    return registry


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


def build_example(
    obj: ObjectDefinition,
    service: Service,
    visiting: FrozenSet[str] = frozenset(),
) -> Example:
    return GraphWalker(service).example(obj, visiting)


def example_for_field(
    field_def: FieldDefinition,
    service: Service,
    visiting: FrozenSet[str] = frozenset(),
) -> Any:
    return GraphWalker(service).field_example(field_def, visiting)


def field_schema(field_def: FieldDefinition, service: Service) -> Dict[str, Any]:
    return GraphWalker(service).field_schema(field_def)


def object_schema(obj: ObjectDefinition, service: Service) -> Dict[str, Any]:
    return GraphWalker(service).object_schema(obj)


def expand_schema(
    obj: ObjectDefinition,
    service: Service,
    visiting: FrozenSet[str] = frozenset(),
) -> Schema:
    return GraphWalker(service).expand_schema(obj, visiting)


def collect_references(obj: ObjectDefinition, service: Service) -> List[str]:
    return GraphWalker(service).collect_references(obj)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "OMITTED",
    "SCHEMA_REF_PREFIX",
    "DEFAULT_EXAMPLES",
    "NAMED_EXAMPLES",
    "UNKNOWN_TYPE_EXAMPLE",
    "coerce_example",
    "schema_ref",
    "GraphWalker",
    "RequestBodyRegistry",
    "request_body_name",
    "build_request_bodies",
    "build_example",
    "example_for_field",
    "field_schema",
    "object_schema",
    "expand_schema",
    "collect_references",
]

logger.debug("specgen.walker loaded — %d public symbols.", len(__all__))
