"""
tests/test_cli.py
End-to-end tests for the specgen command line (specgen.cli).

Each test runs ``cli_main`` in-process and checks the exit code and the
captured output.
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Callable, Dict, Iterator, List

import pytest
import yaml

from specgen.cli import (
    EXIT_COMPILATION_ERROR,
    EXIT_EXPORT_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_OUT_OF_DATE,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)
from specgen.exporters import manifest_path_for

WriteYaml = Callable[..., pathlib.Path]


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """cli_main reconfigures the package logger; undo it after each test."""
    yield
    logging.disable(logging.NOTSET)
    package_logger = logging.getLogger("specgen")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    code: Any = exc_info.value.code
    return 0 if code is None else int(code)


# ===========================================================================
# Compile mode
# ===========================================================================


class TestCompile:
    """Elaborate and write, or print to stdout."""

    def test_stdout(
        self,
        service_yaml_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["-s", str(service_yaml_path), "-q"]) == EXIT_SUCCESS
        out, err = capsys.readouterr()
        data = yaml.safe_load(out)
        assert data["name"] == "Campus"
        assert len(data["objects"]) == 31
        assert "Compilation Report" in err

    def test_stdout_json(
        self,
        service_yaml_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["-s", str(service_yaml_path), "--format", "json", "-q"]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert [e["name"] for e in data["enums"]] == ["UserRole", "ErrorCode", "ErrorFieldCode"]

    def test_output_file(
        self,
        service_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        out = tmp_path / "build" / "service.json"
        assert _run(["-s", str(service_yaml_path), "-o", str(out), "-q"]) == EXIT_SUCCESS
        assert json.loads(out.read_text(encoding="utf-8"))["name"] == "Campus"
        assert manifest_path_for(out).exists()
        assert "✅ SUCCESS" in capsys.readouterr().out

    def test_validation_error(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
        tmp_path: pathlib.Path,
    ) -> None:
        service_dict["resources"][0]["fields"][1]["type"] = "Strng"
        path = write_yaml(service_dict)
        out = tmp_path / "out.yaml"
        assert _run(["-s", str(path), "-o", str(out), "-q"]) == EXIT_VALIDATION_ERROR
        assert not out.exists()

    def test_no_strict(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
        tmp_path: pathlib.Path,
    ) -> None:
        service_dict["resources"][0]["fields"][1]["type"] = "Strng"
        path = write_yaml(service_dict)
        out = tmp_path / "out.yaml"
        assert _run(["-s", str(path), "-o", str(out), "--no-strict", "-q"]) == EXIT_SUCCESS
        assert out.exists()

    def test_fail_on_warnings(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
    ) -> None:
        service_dict["resources"].append({"name": "Draft"})
        path = write_yaml(service_dict)
        assert _run(["-s", str(path), "-q"]) == EXIT_SUCCESS
        assert _run(["-s", str(path), "--fail-on-warnings", "-q"]) == EXIT_VALIDATION_ERROR

    def test_parse_error(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
    ) -> None:
        service_dict["resources"][0]["fields"][1]["modifiers"] = ["nullable"]
        assert _run(["-s", str(write_yaml(service_dict)), "-q"]) == EXIT_INPUT_ERROR

    def test_export_error(
        self,
        service_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        taken = tmp_path / "taken"
        taken.mkdir()
        assert _run(["-s", str(service_yaml_path), "-o", str(taken), "-q"]) == EXIT_EXPORT_ERROR
        assert "Failed to write" in capsys.readouterr().err

    def test_exit_codes_are_distinct(self) -> None:
        codes = [
            EXIT_SUCCESS,
            EXIT_VALIDATION_ERROR,
            EXIT_COMPILATION_ERROR,
            EXIT_EXPORT_ERROR,
            EXIT_INPUT_ERROR,
            EXIT_OUT_OF_DATE,
        ]
        assert codes == [0, 1, 2, 3, 4, 5]


# ===========================================================================
# Check mode
# ===========================================================================


class TestCheck:
    """--check compares instead of writing."""

    def test_up_to_date(
        self,
        service_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        out = tmp_path / "service.yaml"
        assert _run(["-s", str(service_yaml_path), "-o", str(out), "-q"]) == EXIT_SUCCESS
        capsys.readouterr()
        assert _run(["-s", str(service_yaml_path), "-o", str(out), "--check", "-q"]) == EXIT_SUCCESS
        assert "is up to date." in capsys.readouterr().out

    def test_out_of_date(
        self,
        service_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        out = tmp_path / "service.yaml"
        out.write_text("name: Campus\n", encoding="utf-8")
        assert _run(["-s", str(service_yaml_path), "-o", str(out), "--check", "-q"]) == EXIT_OUT_OF_DATE
        assert "+++ " in capsys.readouterr().out
        assert out.read_text(encoding="utf-8") == "name: Campus\n"

    def test_requires_output(
        self,
        service_yaml_path: pathlib.Path,
    ) -> None:
        assert _run(["-s", str(service_yaml_path), "--check", "-q"]) == EXIT_INPUT_ERROR


# ===========================================================================
# Validate-only mode & arguments
# ===========================================================================


class TestValidateOnly:
    """--validate-only prints a report and never elaborates."""

    def test_clean(
        self,
        service_yaml_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["-s", str(service_yaml_path), "--validate-only", "-q"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Service Validation Report" in out
        assert "All validations passed!" in out

    def test_errors_listed(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        service_dict["resources"][0]["fields"][1]["type"] = "Strng"
        path = write_yaml(service_dict)
        assert _run(["-s", str(path), "--validate-only", "-q"]) == EXIT_VALIDATION_ERROR
        assert "resource 0 (User): field 1 (email): invalid field type 'Strng'" in capsys.readouterr().out

    def test_parse_error(
        self,
        service_dict: Dict[str, Any],
        write_yaml: WriteYaml,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        service_dict["resources"][0]["fields"][1]["modifiers"] = ["nullable"]
        path = write_yaml(service_dict)
        assert _run(["-s", str(path), "--validate-only", "-q"]) == EXIT_INPUT_ERROR
        assert "invalid modifier 'nullable'" in capsys.readouterr().err


class TestArguments:
    """Argument handling."""

    def test_missing_spec_file(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-s", str(tmp_path / "absent.yaml"), "-q"]) == EXIT_INPUT_ERROR

    def test_spec_is_directory(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-s", str(tmp_path), "-q"]) == EXIT_INPUT_ERROR

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["--version"]) == 0
        assert capsys.readouterr().out.strip() == "specgen v1.0.0"

    def test_spec_required(self) -> None:
        assert _run([]) == 2
