# File: specgen/__init__.py
"""
specgen — Specification-Driven API Compiler
============================================

Turns a minimal declarative service description (JSON/YAML) into a fully
elaborated API model: standard error types, entity objects, recursive filter
families, CRUD endpoints and their error responses.  Emitters for OpenAPI
documents, JSON schemas or server stubs build on the elaborated model and on
the pure resolver / walker functions exported here.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌────────────────┐
    │  CLI / Entry │────▶│  SpecCompiler  │────▶│    overlay     │
    │   (cli.py)   │     │ (generator.py) │     │  (elaborate)   │
    └──────────────┘     └───────┬────────┘     └────────────────┘
                                 │
             ┌─────────────┬─────┴──────┬─────────────┐
             ▼             ▼            ▼             ▼
       ┌──────────┐  ┌──────────┐ ┌──────────┐  ┌───────────┐
       │validators│  │  models  │ │  walker  │  │ exporters │
       └──────────┘  └────┬─────┘ └──────────┘  └───────────┘
                          ▼
                    ┌──────────┐
                    │ resolver │
                    └──────────┘

Usage::

    # As a library
    from specgen import SpecCompiler
    report = SpecCompiler().compile_file(Path("service.yaml"))
    report.service.get_object("UserFilter")

    # From the command line
    python -m specgen --spec service.yaml --output build/service.yaml -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

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
    ResourceField,
    Service,
)
from specgen.resolver import (
    GO_TARGET,
    PYTHON_TARGET,
    TargetConfig,
    TargetType,
    TypeIndex,
    TypeKind,
    TypeRef,
    TypeResolver,
    classify,
    resolve_filter_type,
    resolve_type,
)
from specgen.overlay import elaborate
from specgen.walker import (
    OMITTED,
    GraphWalker,
    RequestBodyRegistry,
    build_example,
    build_request_bodies,
    collect_references,
    expand_schema,
    field_schema,
    object_schema,
)
from specgen.validators import (
    SpecificationError,
    ValidationIssue,
    ValidationResult,
    ensure_valid,
    validate_service,
)
from specgen.generator import (
    CompilationReport,
    SpecCompiler,
    load_service_file,
    parse_raw_service,
)
from specgen.exporters import ExportResult, ServiceExporter, render_service

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Models
    "Endpoint",
    "EndpointRequest",
    "EndpointResponse",
    "EnumDefinition",
    "EnumValue",
    "FieldDefinition",
    "HttpMethod",
    "Modifier",
    "ObjectDefinition",
    "Operation",
    "PrimitiveType",
    "Resource",
    "ResourceField",
    "Service",
    # Resolver
    "GO_TARGET",
    "PYTHON_TARGET",
    "TargetConfig",
    "TargetType",
    "TypeIndex",
    "TypeKind",
    "TypeRef",
    "TypeResolver",
    "classify",
    "resolve_filter_type",
    "resolve_type",
    # Overlay
    "elaborate",
    # Walker
    "OMITTED",
    "GraphWalker",
    "RequestBodyRegistry",
    "build_example",
    "build_request_bodies",
    "collect_references",
    "expand_schema",
    "field_schema",
    "object_schema",
    # Validation
    "SpecificationError",
    "ValidationIssue",
    "ValidationResult",
    "ensure_valid",
    "validate_service",
    # Pipeline & export
    "CompilationReport",
    "SpecCompiler",
    "load_service_file",
    "parse_raw_service",
    "ExportResult",
    "ServiceExporter",
    "render_service",
]
