# File: specgen/resolver.py
"""
specgen - Type Resolver
========================
Maps a field's type name and modifiers onto a target-language type
expression.  Every emitter shares these rules, so they live here once.

Classification happens once per service: ``TypeIndex`` turns the string
lookup against primitives / enums / objects into a ``TypeRef`` that callers
can match on by ``kind``.

Composition rules (Array outside, Nullable modifies the element):

    no modifiers          scalar wrapper (primitive, enum) or bare object name
    Array                 sequence of the element
    Nullable              unchanged; scalars carry null-ability themselves and
                          nested objects are never optional
    Array + Nullable      sequence only

Filter families add one exception, see ``TypeResolver.resolve_filter``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

from specgen.models import (
    FieldDefinition,
    ObjectDefinition,
    PrimitiveType,
    Service,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.resolver")

# ---------------------------------------------------------------------------
# Filter-family naming (shared with the overlay)
# ---------------------------------------------------------------------------

FILTER_SUFFIX: str = "Filter"
NESTED_FILTERS_FIELD: str = "NestedFilters"
FILTER_CONDITION_KINDS: Tuple[str, ...] = (
    "Equals",
    "Range",
    "Contains",
    "Like",
    "Null",
)


def filter_root_name(base: str) -> str:
    return f"{base}{FILTER_SUFFIX}"


def filter_condition_name(base: str, kind: str) -> str:
    return f"{base}{FILTER_SUFFIX}{kind}"


def is_filter_root(obj: ObjectDefinition) -> bool:
    """
    True for an object shaped like a built filter root: named
    ``<Base>Filter`` and carrying ``NestedFilters`` as a list of itself.
    The name suffix alone is not enough, since ``CoffeeFilter`` may be an
    ordinary authored object.
    """
    if not obj.name.endswith(FILTER_SUFFIX):
        return False
    nested: Optional[FieldDefinition] = obj.get_field(NESTED_FILTERS_FIELD)
    return nested is not None and nested.is_array and nested.type == obj.name


def filter_family_root(type_name: str, service: Service) -> Optional[str]:
    """
    Name of the filter root *type_name* belongs to (the root itself or one
    of its condition objects), or ``None`` for any other type.
    """
    candidates: List[str] = [type_name]
    for kind in FILTER_CONDITION_KINDS:
        if type_name.endswith(FILTER_SUFFIX + kind):
            candidates.append(type_name[: -len(kind)])
    for name in candidates:
        obj: Optional[ObjectDefinition] = service.get_object(name)
        if obj is not None and is_filter_root(obj):
            return name
    return None


# ---------------------------------------------------------------------------
# Closed sum type for type references
# ---------------------------------------------------------------------------


class TypeKind(str, Enum):
    """What a field's type name refers to."""

    PRIMITIVE = "primitive"
    ENUM = "enum"
    OBJECT = "object"


@dataclass(frozen=True)
class TypeRef:
    """
    A resolved type name.

    ``index`` points into ``service.enums`` or ``service.objects`` for
    ENUM / OBJECT refs.  A PRIMITIVE ref whose ``primitive`` is ``None`` is
    an unknown name kept as a scalar on purpose, because emitters may support
    primitives the model does not enumerate.
    """

    kind: TypeKind
    name: str
    index: int = -1
    primitive: Optional[PrimitiveType] = None

    @property
    def is_primitive(self) -> bool:
        return self.kind == TypeKind.PRIMITIVE

    @property
    def is_enum(self) -> bool:
        return self.kind == TypeKind.ENUM

    @property
    def is_object(self) -> bool:
        return self.kind == TypeKind.OBJECT

    @property
    def is_known(self) -> bool:
        return not self.is_primitive or self.primitive is not None


_PRIMITIVES: Dict[str, PrimitiveType] = {p.value: p for p in PrimitiveType}


class TypeIndex:
    """
    Name → ``TypeRef`` index over one service.

    Primitive keywords win over enums, enums over objects.  When a name is
    declared twice, the first declaration wins (duplicates are reported by
    the validators).
    """

    __slots__ = ("_refs", "_filter_roots")

    def __init__(self, service: Service) -> None:
        self._refs: Dict[str, TypeRef] = {}
        self._filter_roots: Set[str] = set()

        for idx, obj in enumerate(service.objects):
            if obj.name in self._refs:
                continue
            self._refs[obj.name] = TypeRef(TypeKind.OBJECT, obj.name, idx)
            if is_filter_root(obj):
                self._filter_roots.add(obj.name)
        for idx, enum_def in enumerate(service.enums):
            if enum_def.name in self._refs and self._refs[enum_def.name].is_enum:
                continue
            self._refs[enum_def.name] = TypeRef(TypeKind.ENUM, enum_def.name, idx)
        for name, primitive in _PRIMITIVES.items():
            self._refs[name] = TypeRef(TypeKind.PRIMITIVE, name, primitive=primitive)

        logger.debug(
            "TypeIndex built for '%s': %d named types.",
            service.name,
            len(self._refs),
        )

    def lookup(self, type_name: str) -> TypeRef:
        ref: Optional[TypeRef] = self._refs.get(type_name)
        if ref is None:
            return TypeRef(TypeKind.PRIMITIVE, type_name)
        return ref

    def is_filter_root(self, type_name: str) -> bool:
        return type_name in self._filter_roots

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._refs

    def __len__(self) -> int:
        return len(self._refs)


# ---------------------------------------------------------------------------
# Target configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TargetConfig:
    """
    How type expressions are spelled for one emission target.

    Each template takes a single ``{}`` placeholder.  Enums render as the
    ``enum_scalar`` wrapper because generated code stores enum values in the
    string scalar type.
    """

    name: str
    scalar_template: str = "types.{}"
    sequence_template: str = "List[{}]"
    optional_template: str = "Optional[{}]"
    enum_scalar: str = PrimitiveType.STRING.value

    def scalar(self, type_name: str) -> str:
        return self.scalar_template.format(type_name)

    def sequence(self, element: str) -> str:
        return self.sequence_template.format(element)

    def optional(self, inner: str) -> str:
        return self.optional_template.format(inner)


PYTHON_TARGET: TargetConfig = TargetConfig(name="python")
GO_TARGET: TargetConfig = TargetConfig(
    name="go",
    sequence_template="[]{}",
    optional_template="*{}",
)


@dataclass(frozen=True)
class TargetType:
    """A rendered type expression plus the facts it was built from."""

    expression: str
    ref: TypeRef
    is_sequence: bool = False
    is_optional: bool = False

    def __str__(self) -> str:
        return self.expression


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class TypeResolver:
    """
    Resolves fields of one service for one target.

    Usage::

        resolver = TypeResolver(service, GO_TARGET)
        resolver.resolve(field).expression          # "[]types.String"
        resolver.resolve_filter(field, "SchoolFilter").expression
    """

    def __init__(self, service: Service, config: TargetConfig = PYTHON_TARGET) -> None:
        self._config: TargetConfig = config
        self._index: TypeIndex = TypeIndex(service)

    @property
    def config(self) -> TargetConfig:
        return self._config

    @property
    def index(self) -> TypeIndex:
        return self._index

    def classify(self, type_name: str) -> TypeRef:
        return self._index.lookup(type_name)

    def _element_expression(self, ref: TypeRef) -> str:
        if ref.is_object:
            return ref.name
        if ref.is_enum:
            return self._config.scalar(self._config.enum_scalar)
        return self._config.scalar(ref.name)

    def resolve(self, field_def: FieldDefinition) -> TargetType:
        ref: TypeRef = self.classify(field_def.type)
        element: str = self._element_expression(ref)
        if field_def.is_array:
            return TargetType(self._config.sequence(element), ref, is_sequence=True)
        return TargetType(element, ref)

    def is_filter_condition(
        self,
        field_def: FieldDefinition,
        parent: Union[str, ObjectDefinition],
    ) -> bool:
        """
        True for a non-array field of a filter root whose type is one of that
        root's own condition objects (``SchoolFilter.Equals:
        SchoolFilterEquals``).
        """
        if isinstance(parent, ObjectDefinition):
            root: bool = is_filter_root(parent)
            parent = parent.name
        else:
            root = self._index.is_filter_root(parent)
        if field_def.is_array or not root:
            return False
        if not field_def.type.startswith(parent):
            return False
        return field_def.type[len(parent):] in FILTER_CONDITION_KINDS

    def resolve_filter(
        self,
        field_def: FieldDefinition,
        parent: Union[str, ObjectDefinition],
    ) -> TargetType:
        """
        Resolve a field that lives inside a filter-family object.

        Only the immediate condition children of a filter root become
        optional so that "unset" is distinguishable from "empty".  Deeper
        condition objects (``SchoolFilterEquals.Meta: MetaFilterEquals``) and
        the ``NestedFilters`` self-reference resolve like any other field.
        """
        resolved: TargetType = self.resolve(field_def)
        if not self.is_filter_condition(field_def, parent):
            return resolved
        return TargetType(
            self._config.optional(resolved.expression),
            resolved.ref,
            is_optional=True,
        )


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


def classify(type_name: str, service: Service) -> TypeRef:
    """Classify a single type name against *service*."""
    return TypeIndex(service).lookup(type_name)


def resolve_type(
    field_def: FieldDefinition,
    service: Service,
    config: TargetConfig = PYTHON_TARGET,
) -> TargetType:
    """Target type of *field_def*; build a ``TypeResolver`` for bulk use."""
    return TypeResolver(service, config).resolve(field_def)


def resolve_filter_type(
    field_def: FieldDefinition,
    service: Service,
    parent: Union[str, ObjectDefinition],
    config: TargetConfig = PYTHON_TARGET,
) -> TargetType:
    """Target type of a filter-family field, applying the two-tier rule."""
    return TypeResolver(service, config).resolve_filter(field_def, parent)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FILTER_SUFFIX",
    "FILTER_CONDITION_KINDS",
    "NESTED_FILTERS_FIELD",
    "filter_root_name",
    "filter_condition_name",
    "is_filter_root",
    "filter_family_root",
    "TypeKind",
    "TypeRef",
    "TypeIndex",
    "TargetConfig",
    "PYTHON_TARGET",
    "GO_TARGET",
    "TargetType",
    "TypeResolver",
    "classify",
    "resolve_type",
    "resolve_filter_type",
]

logger.debug("specgen.resolver loaded — %d public symbols.", len(__all__))
