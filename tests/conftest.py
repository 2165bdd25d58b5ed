"""
tests/conftest.py
Shared fixtures for the genco test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import json
import pathlib
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml

from genco.generator import load_schema_file
from genco.models import Project
from genco.validators import validate_project


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session and return as dict."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    data = load_schema_file(SCHEMA_EXAMPLE_PATH)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# The User entity used by the end-to-end scenarios
# ---------------------------------------------------------------------------


def _user_dict(
    dialect: str = "mysql",
    when: str = "NotEmpty",
    on: str = "email",
    extra_properties: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    properties: List[Dict[str, Any]] = [
        {"name": "Id", "column": "USER_ID", "primitive": "int", "isPrimaryKey": True},
        {
            "name": "Email",
            "column": "EMAIL",
            "primitive": "string",
            "validations": [{"type": "unique", "depends": {"on": on, "when": when}}],
        },
    ]
    properties.extend(extra_properties or [])
    return {
        "name": "Acme",
        "dialect": dialect,
        "entities": [{"name": "User", "properties": properties}],
    }


@pytest.fixture()
def user_dict() -> Dict[str, Any]:
    """``User(Id int pk, Email string unique when Email NotEmpty)`` on mysql."""
    return _user_dict()


@pytest.fixture()
def user_dict_factory() -> Callable[..., Dict[str, Any]]:
    return _user_dict


@pytest.fixture()
def user_project(user_dict: Dict[str, Any]) -> Project:
    return Project.model_validate(user_dict)


@pytest.fixture()
def project_factory() -> Callable[..., Project]:
    """Build a ``Project`` from the User template with overrides."""

    def _factory(**kwargs: Any) -> Project:
        return Project.model_validate(_user_dict(**kwargs))

    return _factory


@pytest.fixture()
def canonical_factory() -> Callable[[Dict[str, Any]], Project]:
    """Validate a raw dict and return the canonicalized project (asserts no errors)."""

    def _canonical(raw: Dict[str, Any]) -> Project:
        result = validate_project(Project.model_validate(raw))
        assert result.is_valid, result.format_report()
        assert result.project is not None
        return result.project

    return _canonical


@pytest.fixture()
def audited_user_dict() -> Dict[str, Any]:
    """User with timestamps, a flag and pre-actions (mixed-case references)."""
    return _user_dict(
        extra_properties=[
            {"name": "Name", "column": "NAME", "primitive": "string",
             "validations": [{"type": "required"}]},
            {"name": "Active", "column": "ACTIVE", "primitive": "bool"},
            {"name": "CreatedAt", "column": "CREATED_AT", "primitive": "datetime"},
            {"name": "UpdatedAt", "column": "UPDATED_AT", "primitive": "datetime"},
        ]
    )


@pytest.fixture()
def audited_user_project(
    audited_user_dict: Dict[str, Any],
    canonical_factory: Callable[[Dict[str, Any]], Project],
) -> Project:
    entity = audited_user_dict["entities"][0]
    entity["preInserts"] = [
        {"property": "createdAt", "set": "DateTime.Now"},
        {"property": "ACTIVE", "set": "true"},
    ]
    entity["preUpdates"] = [{"property": "updatedat", "set": "DateTime.Now"}]
    return canonical_factory(audited_user_dict)


@pytest.fixture()
def write_schema(tmp_path: pathlib.Path) -> Callable[[Dict[str, Any], str], pathlib.Path]:
    """Write a dict to ``tmp_path/<name>`` as YAML or JSON depending on suffix."""

    def _write(data: Dict[str, Any], name: str = "schema.yaml") -> pathlib.Path:
        path = tmp_path / name
        if name.endswith(".json"):
            path.write_text(json.dumps(data), encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write
