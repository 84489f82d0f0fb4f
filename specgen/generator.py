# File: specgen/generator.py
"""
specgen - Compilation Pipeline (Orchestrator)
==============================================

Connects every phase together:

    Service document → Parsing → Validation → Elaboration → Request bodies

``SpecCompiler`` is both the programmatic API and the backend for the CLI.

Workflow::

    1. Load the service document from a JSON/YAML file (or accept a model).
    2. Parse it into a ``Service`` (models.py).
    3. Run the semantic validators (validators.py).
    4. Elaborate the service with the standard overlay (overlay.py).
    5. Collect shared request bodies (walker.py).
    6. Return a ``CompilationReport`` with metrics, status and the results.

Error handling strategy:
    - Parse errors are reported with the path of the offending key.
    - Validation errors are collected and surfaced, not swallowed.
    - With ``strict_validation`` the pipeline stops after a failed
      validation; otherwise it elaborates anyway and reports the errors.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from specgen.models import Service
from specgen.overlay import elaborate
from specgen.utils import Timer
from specgen.validators import SpecificationError, ValidationResult, validate_service
from specgen.walker import RequestBodyRegistry, build_request_bodies

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.generator")


# ---------------------------------------------------------------------------
# Compilation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class CompilationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class CompilationReport:
    """
    Report produced by ``SpecCompiler.compile()``.

    Carries the elaborated ``service`` and its ``request_bodies`` when the
    pipeline got that far.
    """

    success: bool = False
    service_name: str = ""
    source: str = ""

    # Metrics
    total_enums: int = 0
    total_objects: int = 0
    total_resources: int = 0
    total_endpoints: int = 0
    total_request_bodies: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[CompilationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    compilation_errors: List[str] = field(default_factory=list)
    validation_passed: bool = False

    # Results
    validation: Optional[ValidationResult] = None
    service: Optional[Service] = None
    request_bodies: Optional[RequestBodyRegistry] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  specgen — Compilation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Service:          {self.service_name}")
        if self.source:
            lines.append(f"  Source:           {self.source}")
        lines.append(f"  Enums:            {self.total_enums}")
        lines.append(f"  Objects:          {self.total_objects}")
        lines.append(f"  Resources:        {self.total_resources}")
        lines.append(f"  Endpoints:        {self.total_endpoints}")
        lines.append(f"  Request bodies:   {self.total_request_bodies}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.validation_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Errors ({len(self.validation_errors)}):")
            for err in self.validation_errors:
                lines.append(f"    ✗ {err}")

        if self.validation_warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Warnings ({len(self.validation_warnings)}):")
            for warn in self.validation_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.compilation_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Compilation Errors ({len(self.compilation_errors)}):")
            for err in self.compilation_errors:
                lines.append(f"    ✗ {err}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Document loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_service_file(path: Path) -> Dict[str, Any]:
    """
    Load a service document (JSON or YAML), dispatching on the extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Service file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Service path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    elif suffix == ".json":
        return _load_json_file(path)
    else:
        logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
        try:
            return _load_json_file(path)
        except ValueError:
            return _load_yaml_file(path)


def format_pydantic_errors(exc: PydanticValidationError) -> str:
    """``validation failed: resources.0.fields.2.modifiers: Value error, ...``"""
    parts: List[str] = []
    for err in exc.errors():
        loc: str = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', '')}" if loc else str(err.get("msg", "")))
    return "validation failed: " + "; ".join(parts)


def parse_raw_service(raw: Dict[str, Any]) -> Service:
    """
    Parse a raw dictionary (from JSON/YAML) into a ``Service``.

    The document is either the service itself or wraps it under a
    top-level ``service`` key.

    Raises:
        SpecificationError: If the document does not describe a valid service.
    """
    data: Any = raw.get("service", raw) if isinstance(raw, dict) else raw
    if not isinstance(data, dict):
        raise SpecificationError(
            f"Expected a mapping for the service, got {type(data).__name__}."
        )
    try:
        return Service.model_validate(data)
    except PydanticValidationError as exc:
        raise SpecificationError(format_pydantic_errors(exc)) from exc


# ---------------------------------------------------------------------------
# SpecCompiler: master orchestrator
# ---------------------------------------------------------------------------


class SpecCompiler:
    """
    Pipeline orchestrator.

    Usage::

        compiler = SpecCompiler()
        report = compiler.compile_file(Path("service.yaml"))
        print(report.summary())
        report.service          # elaborated Service

    The compiler holds no per-run state; reuse it freely.
    """

    def __init__(
        self,
        *,
        strict_validation: bool = True,
        fail_on_warnings: bool = False,
    ) -> None:
        """
        Args:
            strict_validation: If True, stop after a failed validation.
            fail_on_warnings: If True, treat validation warnings as errors.
        """
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings

        logger.debug(
            "SpecCompiler initialised: strict=%s, fail_on_warnings=%s.",
            strict_validation,
            fail_on_warnings,
        )

    # -----------------------------------------------------------------
    # Public: compile from file
    # -----------------------------------------------------------------

    def compile_file(self, path: Path) -> CompilationReport:
        """Full pipeline: load file → parse → validate → elaborate."""
        report: CompilationReport = CompilationReport(source=str(path))
        pipeline_start: float = time.perf_counter()

        with Timer("load_service") as t_load:
            try:
                raw: Dict[str, Any] = load_service_file(path)
            except (FileNotFoundError, ValueError) as exc:
                raw = {}
                report.compilation_errors.append(str(exc))
        report.step_metrics.append(CompilationStepMetric(
            step_name="Load Service File",
            success=not report.compilation_errors,
            elapsed_seconds=t_load.elapsed,
            detail=report.compilation_errors[-1] if report.compilation_errors else f"from {path.name}",
        ))
        if report.compilation_errors:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        with Timer("parse_service") as t_parse:
            try:
                service: Optional[Service] = parse_raw_service(raw)
            except SpecificationError as exc:
                service = None
                report.compilation_errors.append(str(exc))
        report.step_metrics.append(CompilationStepMetric(
            step_name="Parse Service",
            success=service is not None,
            elapsed_seconds=t_parse.elapsed,
            detail=(
                f"{len(service.resources)} resources parsed"
                if service is not None
                else report.compilation_errors[-1]
            ),
        ))
        if service is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        logger.info("Parsed service '%s' from %s.", service.name, path)
        return self._run_pipeline(service, report, pipeline_start)

    # -----------------------------------------------------------------
    # Public: compile an in-memory service
    # -----------------------------------------------------------------

    def compile(self, service: Service) -> CompilationReport:
        report: CompilationReport = CompilationReport()
        return self._run_pipeline(service, report, time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        service: Service,
        report: CompilationReport,
        pipeline_start: float,
    ) -> CompilationReport:
        report.service_name = service.name

        report.validation_passed = self._step_validate(service, report)
        if not report.validation_passed and self._strict_validation:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        elaborated: Optional[Service] = self._step_elaborate(service, report)
        if elaborated is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        self._step_request_bodies(elaborated, report)
        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, service: Service, report: CompilationReport) -> bool:
        """Returns True if validation passed (warnings allowed unless configured)."""
        with Timer("validation") as t:
            result: ValidationResult = validate_service(service)

        report.validation = result
        report.validation_errors.extend(e.message for e in result.errors)
        report.validation_warnings.extend(w.message for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(CompilationStepMetric(
            step_name="Validate Service",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        if result.has_errors:
            for err in result.errors:
                logger.error("  ✗ %s", err)
            return False

        if result.has_warnings:
            logger.warning(
                "Validation passed with %d warning(s) in %.3fs.",
                result.warning_count,
                t.elapsed,
            )
            for warn in result.warnings:
                logger.warning("  ⚠ %s", warn)
            if self._fail_on_warnings:
                return False

        return True

    # -----------------------------------------------------------------
    # Pipeline step: Elaboration
    # -----------------------------------------------------------------

    def _step_elaborate(
        self,
        service: Service,
        report: CompilationReport,
    ) -> Optional[Service]:
        with Timer("elaboration") as t:
            try:
                elaborated: Optional[Service] = elaborate(service)
            except ValueError as exc:
                elaborated = None
                error_msg: str = f"Elaboration failed: {type(exc).__name__}: {exc}"
                report.compilation_errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        if elaborated is not None:
            report.service = elaborated
            report.total_enums = len(elaborated.enums)
            report.total_objects = len(elaborated.objects)
            report.total_resources = len(elaborated.resources)
            report.total_endpoints = sum(len(r.endpoints) for r in elaborated.resources)
            detail: str = (
                f"{report.total_enums} enums, {report.total_objects} objects, "
                f"{report.total_endpoints} endpoints"
            )
        else:
            detail = report.compilation_errors[-1]

        report.step_metrics.append(CompilationStepMetric(
            step_name="Elaborate Service",
            success=elaborated is not None,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        return elaborated

    # -----------------------------------------------------------------
    # Pipeline step: Request bodies
    # -----------------------------------------------------------------

    def _step_request_bodies(self, service: Service, report: CompilationReport) -> None:
        with Timer("request_bodies") as t:
            registry: RequestBodyRegistry = build_request_bodies(service)

        report.request_bodies = registry
        report.total_request_bodies = len(registry)
        report.step_metrics.append(CompilationStepMetric(
            step_name="Collect Request Bodies",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(registry)} shared bodies",
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self,
        report: CompilationReport,
        total_elapsed: float,
    ) -> CompilationReport:
        report.total_elapsed_seconds = total_elapsed
        validation_failed: bool = self._strict_validation and not report.validation_passed
        report.success = (
            not report.compilation_errors
            and not validation_failed
            and report.service is not None
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SpecCompiler",
    "CompilationReport",
    "CompilationStepMetric",
    "load_service_file",
    "parse_raw_service",
    "format_pydantic_errors",
]

logger.debug("specgen.generator loaded — %d public symbols.", len(__all__))
