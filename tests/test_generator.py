"""
tests/test_generator.py
Unit tests for specgen.generator: document loading, parsing and the
SpecCompiler pipeline.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict

import pytest
import yaml

from specgen.exporters import render_service
from specgen.generator import (
    CompilationReport,
    SpecCompiler,
    load_service_file,
    parse_raw_service,
)
from specgen.models import Service
from specgen.validators import SpecificationError

WriteYaml = Callable[..., pathlib.Path]


# ===========================================================================
# Loading
# ===========================================================================


class TestLoadServiceFile:
    """JSON/YAML dispatch on the file extension."""

    def test_yaml(self, service_yaml_path: pathlib.Path) -> None:
        data = load_service_file(service_yaml_path)
        assert data["name"] == "Campus"

    def test_json(self, service_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        path = tmp_path / "service.json"
        path.write_text(json.dumps(service_dict), encoding="utf-8")
        assert load_service_file(path) == service_dict

    def test_unknown_extension_falls_back_to_yaml(self, write_yaml: WriteYaml) -> None:
        path = write_yaml({"name": "S"}, "service.spec")
        assert load_service_file(path) == {"name": "S"}

    def test_unknown_extension_json_content(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "service.txt"
        path.write_text('{"name": "S"}', encoding="utf-8")
        assert load_service_file(path) == {"name": "S"}

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError, match="Service file not found"):
            load_service_file(tmp_path / "nope.yaml")

    def test_directory(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="not a file"):
            load_service_file(tmp_path)

    def test_broken_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_service_file(path)

    def test_broken_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_service_file(path)

    def test_top_level_must_be_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_service_file(path)


# ===========================================================================
# Parsing
# ===========================================================================


class TestParseRawService:
    """Raw dict → Service, with readable errors."""

    def test_plain_document(self, service_dict: Dict[str, Any]) -> None:
        assert parse_raw_service(service_dict).name == "Campus"

    def test_wrapped_document(self, service_dict: Dict[str, Any]) -> None:
        assert parse_raw_service({"service": service_dict}).name == "Campus"

    def test_lowercase_modifier_message(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"][0]["fields"][1]["modifiers"] = ["nullable"]
        with pytest.raises(SpecificationError) as exc_info:
            parse_raw_service(service_dict)
        message = str(exc_info.value)
        assert message.startswith("validation failed: ")
        assert "resources.0.fields.1.modifiers" in message
        assert "invalid modifier 'nullable'" in message
        assert exc_info.value.result is None

    def test_unknown_key(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"][0]["plural"] = "People"
        with pytest.raises(SpecificationError, match="resources.0.plural"):
            parse_raw_service(service_dict)

    def test_wrapped_value_must_be_mapping(self) -> None:
        with pytest.raises(SpecificationError, match="Expected a mapping"):
            parse_raw_service({"service": ["not", "a", "mapping"]})


# ===========================================================================
# SpecCompiler
# ===========================================================================


class TestSpecCompiler:
    """The load → parse → validate → elaborate → bodies pipeline."""

    def test_reference_service(self, service_yaml_path: pathlib.Path) -> None:
        report: CompilationReport = SpecCompiler().compile_file(service_yaml_path)

        assert report.success
        assert report.validation_passed
        assert report.service_name == "Campus"
        assert report.source == str(service_yaml_path)
        assert [s.step_name for s in report.step_metrics] == [
            "Load Service File",
            "Parse Service",
            "Validate Service",
            "Elaborate Service",
            "Collect Request Bodies",
        ]
        assert all(s.success for s in report.step_metrics)
        assert (
            report.total_enums,
            report.total_objects,
            report.total_resources,
            report.total_endpoints,
            report.total_request_bodies,
        ) == (3, 31, 2, 10, 4)
        assert report.service is not None
        assert report.service.get_object("MetaFilterRange") is not None
        assert report.request_bodies is not None
        assert report.request_bodies.body_for("User", "Create") == "UserCreate"

    def test_summary(self, service_yaml_path: pathlib.Path) -> None:
        summary = SpecCompiler().compile_file(service_yaml_path).summary()
        assert "specgen — Compilation Report" in summary
        assert "✅ SUCCESS" in summary
        assert "Campus" in summary
        assert "Collect Request Bodies" in summary

    def test_in_memory(self, service: Service) -> None:
        before = service.model_dump()
        report = SpecCompiler().compile(service)
        assert report.success
        assert len(report.step_metrics) == 3
        assert report.source == ""
        assert service.model_dump() == before

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        report = SpecCompiler().compile_file(tmp_path / "absent.yaml")
        assert not report.success
        assert report.validation is None
        assert len(report.step_metrics) == 1
        assert report.compilation_errors[0].startswith("Service file not found")

    def test_parse_failure(self, service_dict: Dict[str, Any], write_yaml: WriteYaml) -> None:
        service_dict["resources"][0]["operations"] = ["read"]
        report = SpecCompiler().compile_file(write_yaml(service_dict))
        assert not report.success
        assert report.step_metrics[-1].step_name == "Parse Service"
        assert "invalid operation 'read'" in report.compilation_errors[0]
        assert "❌ FAILED" in report.summary()

    def test_strict_stops_after_validation(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"][0]["fields"][1]["type"] = "Strng"
        report = SpecCompiler().compile(Service.model_validate(service_dict))
        assert not report.success
        assert report.service is None
        assert report.step_metrics[-1].step_name == "Validate Service"
        assert report.step_metrics[-1].detail == "1 error(s)"
        assert report.validation_errors == [
            "resource 0 (User): field 1 (email): invalid field type 'Strng'"
        ]

    def test_non_strict_elaborates_anyway(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"][0]["fields"][1]["type"] = "Strng"
        report = SpecCompiler(strict_validation=False).compile(Service.model_validate(service_dict))
        assert report.success
        assert not report.validation_passed
        assert report.service is not None
        assert len(report.validation_errors) == 1

    def test_warnings_pass_by_default(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"].append({"name": "Draft"})
        report = SpecCompiler().compile(Service.model_validate(service_dict))
        assert report.success
        assert len(report.validation_warnings) == 1
        assert report.step_metrics[0].detail == "1 warning(s)"

    def test_fail_on_warnings(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"].append({"name": "Draft"})
        report = SpecCompiler(fail_on_warnings=True).compile(Service.model_validate(service_dict))
        assert not report.success
        assert report.service is None

    def test_rendered_output_reparses_to_same_model(self, service: Service) -> None:
        elaborated = SpecCompiler().compile(service).service
        assert elaborated is not None
        for fmt in ("yaml", "json"):
            text = render_service(elaborated, fmt)
            reparsed = parse_raw_service(yaml.safe_load(text))
            assert reparsed.model_dump() == elaborated.model_dump()
