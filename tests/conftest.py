"""
tests/conftest.py
Shared fixtures for the specgen test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Callable, Dict

import pytest
import yaml

from specgen.models import Service
from specgen.overlay import elaborate


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SERVICE_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "service_example.yaml"


# ---------------------------------------------------------------------------
# Reference service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_service_dict() -> Dict[str, Any]:
    """Load the reference service_example.yaml once per session."""
    assert SERVICE_EXAMPLE_PATH.exists(), (
        f"Reference service not found at {SERVICE_EXAMPLE_PATH}. "
        "Make sure service_example.yaml is in the project root."
    )
    with open(SERVICE_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def service_dict(raw_service_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_service_dict)


@pytest.fixture()
def service(service_dict: Dict[str, Any]) -> Service:
    return Service.model_validate(service_dict)


@pytest.fixture()
def elaborated(service: Service) -> Service:
    return elaborate(service)


@pytest.fixture()
def service_yaml_path(service_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the service dict to a temporary YAML file and return its path."""
    path = tmp_path / "service.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(service_dict, fh, sort_keys=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Minimal / edge-case service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def user_create_read_dict() -> Dict[str, Any]:
    """User with Create and Read only: two endpoints, no filter family."""
    return {
        "name": "Accounts",
        "resources": [
            {
                "name": "User",
                "description": "A platform user",
                "operations": ["Create", "Read"],
                "fields": [
                    {"name": "id", "type": "UUID", "operations": ["Read"]},
                    {"name": "email", "type": "String", "operations": ["Create", "Read"]},
                ],
            }
        ],
    }


@pytest.fixture()
def user_search_dict() -> Dict[str, Any]:
    """User with Search and one filterable field."""
    return {
        "name": "Accounts",
        "resources": [
            {
                "name": "User",
                "operations": ["Search"],
                "fields": [
                    {"name": "email", "type": "String", "operations": ["Read", "Search"]},
                ],
            }
        ],
    }


@pytest.fixture()
def school_dict() -> Dict[str, Any]:
    """Audited School with List, so its family nests into Meta."""
    return {
        "name": "Campus",
        "resources": [
            {
                "name": "School",
                "audited": True,
                "operations": ["Read", "List"],
                "fields": [
                    {"name": "name", "type": "String", "operations": ["Read", "List"]},
                    {"name": "founded", "type": "Date", "operations": ["Read", "List"]},
                ],
            }
        ],
    }


@pytest.fixture()
def mutual_objects_dict() -> Dict[str, Any]:
    """Objects A and B that reference each other, plus a self-referencing Node."""
    return {
        "name": "Graph",
        "objects": [
            {
                "name": "A",
                "fields": [
                    {"name": "label", "type": "String"},
                    {"name": "b", "type": "B"},
                ],
            },
            {
                "name": "B",
                "fields": [
                    {"name": "count", "type": "Int"},
                    {"name": "a", "type": "A", "modifiers": ["Nullable"]},
                ],
            },
            {
                "name": "Node",
                "fields": [
                    {"name": "value", "type": "Int"},
                    {"name": "children", "type": "Node", "modifiers": ["Array"]},
                ],
            },
        ],
    }


@pytest.fixture()
def mutual_service(mutual_objects_dict: Dict[str, Any]) -> Service:
    return Service.model_validate(mutual_objects_dict)


@pytest.fixture()
def write_yaml(tmp_path: pathlib.Path) -> Callable[[Dict[str, Any], str], pathlib.Path]:
    """Factory: dump a dict to ``tmp_path/<name>`` and return the path."""

    def _write(data: Dict[str, Any], name: str = "input.yaml") -> pathlib.Path:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(data, fh, sort_keys=False)
        return path

    return _write
