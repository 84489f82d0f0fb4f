# File: specgen/exporters.py
"""
specgen - Service Exporter
===========================

Responsible for:
    1. Rendering an elaborated service as a YAML or JSON document.
    2. Writing it atomically (write-to-temp then rename).
    3. Producing a manifest with a checksum next to the document.
    4. Checking an existing document for drift (``--check``).

Rendering is deterministic: the same service always produces the same
bytes, so the checksum in the manifest identifies the elaborated model.
"""

from __future__ import annotations

import difflib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from specgen.models import Service
from specgen.utils import Timer, count_lines, read_file, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen.exporters")

OUTPUT_FORMATS: Tuple[str, ...] = ("yaml", "json")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def service_to_dict(service: Service) -> Dict[str, Any]:
    """JSON-compatible dict using wire aliases, without unset optionals."""
    return service.model_dump(mode="json", by_alias=True, exclude_none=True)


def render_service(service: Service, fmt: str = "yaml") -> str:
    """Render *service* as a YAML or JSON document."""
    data: Dict[str, Any] = service_to_dict(service)
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unknown output format '{fmt}'. Expected one of {OUTPUT_FORMATS}.")


def format_for_path(path: Path, default: str = "yaml") -> str:
    """Pick the output format from the file extension."""
    suffix: str = path.suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    return default


def diff_against_file(service: Service, path: Path, fmt: str = "yaml") -> Optional[str]:
    """
    Unified diff between *path* and what would be written for *service*.

    Returns ``None`` when the file is up to date.  A missing file diffs
    against an empty document.
    """
    expected: str = render_service(service, fmt)
    current: str = read_file(path) if path.exists() else ""
    if current == expected:
        return None
    diff: List[str] = list(
        difflib.unified_diff(
            current.splitlines(keepends=True),
            expected.splitlines(keepends=True),
            fromfile=str(path),
            tofile=f"{path} (elaborated)",
        )
    )
    logger.info("%s is out of date (%d diff lines).", path, len(diff))
    return "".join(diff)


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Manifest of the exported document, serialisable to JSON."""

    service_name: str = ""
    service_version: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    output_format: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_format": self.output_format,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "absolute_path": f.absolute_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``ServiceExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ServiceExporter
# ---------------------------------------------------------------------------


def manifest_path_for(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.name}.manifest.json")


class ServiceExporter:
    """
    Writes an elaborated service document to disk.

    Usage::

        exporter = ServiceExporter(Path("build/service.yaml"))
        result = exporter.export(report.service)
        print(result.manifest.to_json())

    Not thread-safe.  Use one exporter per output file.
    """

    def __init__(
        self,
        output_path: Path,
        fmt: Optional[str] = None,
        *,
        atomic_writes: bool = True,
        write_manifest: bool = True,
    ) -> None:
        """
        Args:
            output_path: Target document path.
            fmt: ``"yaml"`` or ``"json"``; inferred from the extension when None.
            atomic_writes: If True, use the write-to-temp+rename pattern.
            write_manifest: If True, write ``<output>.manifest.json`` beside it.
        """
        self._output_path: Path = output_path.resolve()
        self._fmt: str = fmt or format_for_path(output_path)
        if self._fmt not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format '{self._fmt}'. Expected one of {OUTPUT_FORMATS}."
            )
        self._atomic_writes: bool = atomic_writes
        self._write_manifest: bool = write_manifest

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ServiceExporter initialised: output=%s, format=%s, atomic=%s.",
            self._output_path,
            self._fmt,
            self._atomic_writes,
        )

    @property
    def output_path(self) -> Path:
        return self._output_path

    @property
    def fmt(self) -> str:
        return self._fmt

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, service: Service) -> ExportResult:
        self._errors = []
        self._warnings = []
        self._file_records = []

        with Timer("export") as timer:
            try:
                content: str = render_service(service, self._fmt)
                self._file_records.append(
                    self._write_single_file(self._output_path, content)
                )
            except (OSError, ValueError) as exc:
                error_msg: str = f"Failed to write {self._output_path}: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)

            if self._write_manifest and not self._errors:
                self._write_manifest_file(service)

        manifest: ExportManifest = self._build_manifest(service)
        success: bool = not self._errors

        if success:
            logger.info(
                "Exported '%s' to %s (%d bytes) in %.3fs.",
                service.name,
                self._output_path,
                manifest.total_bytes,
                timer.elapsed,
            )

        return ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _write_single_file(self, full_path: Path, content: str) -> FileRecord:
        size_bytes: int = write_file(full_path, content, atomic=self._atomic_writes)
        return FileRecord(
            relative_path=full_path.name,
            absolute_path=str(full_path),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    def _build_manifest(self, service: Service) -> ExportManifest:
        import specgen

        return ExportManifest(
            service_name=service.name,
            service_version=service.version,
            generator_version=specgen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_format=self._fmt,
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self, service: Service) -> None:
        path: Path = manifest_path_for(self._output_path)
        try:
            write_file(path, self._build_manifest(service).to_json(), atomic=self._atomic_writes)
            logger.debug("Wrote manifest to %s.", path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "OUTPUT_FORMATS",
    "service_to_dict",
    "render_service",
    "format_for_path",
    "diff_against_file",
    "FileRecord",
    "ExportManifest",
    "ExportResult",
    "manifest_path_for",
    "ServiceExporter",
]

logger.debug("specgen.exporters loaded — %d public symbols.", len(__all__))
