"""
tests/test_generator.py
Integration tests for genco.generator (ScaffoldGenerator pipeline).

Tests cover:
- Load stage: missing file, malformed YAML, wrong top-level shape,
  unknown keys, JSON input
- Validation gate: a failing schema produces no artifacts and no files
- Full run, dry run and validate-only modes
- Report bookkeeping (failed stage, metrics, summary)
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict

import pytest

from genco.exporters import MANIFEST_FILENAME
from genco.generator import (
    GenerationReport,
    ScaffoldGenerator,
    load_schema_file,
    parse_raw_schema,
)
from genco.models import GenerationConfig, Project


def _generator(out: pathlib.Path, **kwargs: Any) -> ScaffoldGenerator:
    config_keys = {"overwrite_existing", "generate_manifest", "synthesizers", "indent_size"}
    config = GenerationConfig(
        output_dir=str(out), **{k: v for k, v in kwargs.items() if k in config_keys}
    )
    return ScaffoldGenerator(
        config,
        dry_run=kwargs.get("dry_run", False),
        validate_only=kwargs.get("validate_only", False),
    )


def _written(out: pathlib.Path) -> list:
    if not out.exists():
        return []
    return sorted(p.relative_to(out).as_posix() for p in out.rglob("*") if p.is_file())


# ===========================================================================
# Loading
# ===========================================================================


class TestLoadSchema:
    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_directory_is_rejected(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="not a file"):
            load_schema_file(tmp_path)

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_schema_file(path)

    def test_top_level_list(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_schema_file(path)

    def test_invalid_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_schema_file(path)

    def test_unknown_extension_falls_back_to_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.txt"
        path.write_text("name: Acme\n", encoding="utf-8")
        assert load_schema_file(path) == {"name": "Acme"}

    def test_json_and_yaml_agree(
        self,
        user_dict: Dict[str, Any],
        write_schema: Callable[[Dict[str, Any], str], pathlib.Path],
    ) -> None:
        from_json = load_schema_file(write_schema(user_dict, "schema.json"))
        from_yaml = load_schema_file(write_schema(user_dict, "schema.yaml"))
        assert from_json == from_yaml == user_dict

    def test_unquoted_on_key_stays_a_string(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.yaml"
        path.write_text(
            "name: Acme\n"
            "dialect: mysql\n"
            "entities:\n"
            "  - name: User\n"
            "    properties:\n"
            "      - name: Id\n"
            "        column: USER_ID\n"
            "        primitive: int\n"
            "        isPrimaryKey: true\n"
            "      - name: Email\n"
            "        column: EMAIL\n"
            "        primitive: string\n"
            "        validations:\n"
            "          - type: unique\n"
            "            depends:\n"
            "              on: email\n"
            "              when: NotEmpty\n",
            encoding="utf-8",
        )
        raw = load_schema_file(path)
        depends = raw["entities"][0]["properties"][1]["validations"][0]["depends"]
        assert depends == {"on": "email", "when": "NotEmpty"}
        assert raw["entities"][0]["properties"][0]["isPrimaryKey"] is True

        project = parse_raw_schema(raw)
        parsed = project.entities[0].properties[1].validations[0].depends
        assert parsed is not None
        assert parsed.on == "email"
        assert parsed.when == "NotEmpty"

    def test_yaml11_words_are_not_booleans(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "words.yaml"
        path.write_text("a: yes\nb: no\nc: off\non: y\nd: True\ne: false\n", encoding="utf-8")
        assert load_schema_file(path) == {
            "a": "yes",
            "b": "no",
            "c": "off",
            "on": "y",
            "d": True,
            "e": False,
        }

    def test_parse_raw_schema_shape_error(self, user_dict: Dict[str, Any]) -> None:
        user_dict["owner"] = "someone"
        with pytest.raises(ValueError, match="Malformed schema document"):
            parse_raw_schema(user_dict)


# ===========================================================================
# Pipeline scenarios
# ===========================================================================


class TestValidationGate:
    def test_disallowed_state_stops_the_run(
        self,
        tmp_path: pathlib.Path,
        user_dict_factory: Callable[..., Dict[str, Any]],
        write_schema: Callable[[Dict[str, Any], str], pathlib.Path],
    ) -> None:
        out = tmp_path / "out"
        schema = write_schema(user_dict_factory(when="Positive"))
        report = _generator(out).generate_from_file(schema)

        assert report.success is False
        assert report.failed_stage == "validate"
        assert len(report.validation_errors) == 1
        assert "Allowed values: Null, NotNull, Empty, NotEmpty" in report.validation_errors[0]
        assert report.artifacts == []
        assert not out.exists()

    def test_all_errors_reported_together(
        self,
        tmp_path: pathlib.Path,
        user_dict: Dict[str, Any],
    ) -> None:
        user_dict["dialect"] = "postgres"
        user_dict["entities"][0]["properties"][1]["primitive"] = "text"
        user_dict["entities"][0]["properties"][1]["validations"] = []
        user_dict["entities"].append(dict(user_dict["entities"][0], name="user"))
        report = _generator(tmp_path / "out").generate(Project.model_validate(user_dict))
        assert report.failed_stage == "validate"
        assert report.validation is not None
        assert {"UNKNOWN_DIALECT", "DUPLICATE_ENTITY_NAME", "UNKNOWN_PRIMITIVE"} <= set(
            report.validation.codes
        )

    def test_depends_on_unknown_primitive_aborts(
        self,
        tmp_path: pathlib.Path,
        user_dict_factory: Callable[..., Dict[str, Any]],
    ) -> None:
        out = tmp_path / "out"
        raw = user_dict_factory(
            on="Age",
            when="Positive",
            extra_properties=[{"name": "Age", "column": "AGE", "primitive": "long"}],
        )
        report = _generator(out).generate(Project.model_validate(raw))
        assert report.success is False
        assert report.failed_stage == "synthesize"
        assert report.generation_errors == ['Configuration error: Primitive "long" not implemented']
        assert report.validation_errors == []
        assert report.artifacts == []
        assert not out.exists()

    def test_pagination_clash_stops_the_run(
        self,
        tmp_path: pathlib.Path,
        user_dict_factory: Callable[..., Dict[str, Any]],
    ) -> None:
        out = tmp_path / "out"
        raw = user_dict_factory(
            extra_properties=[{"name": "Offset", "column": "OFFSET", "primitive": "int"}]
        )
        report = _generator(out).generate(Project.model_validate(raw))
        assert report.failed_stage == "validate"
        assert report.validation is not None
        assert report.validation.codes == ["PAGINATION_PARAMETER_CLASH"]
        assert not out.exists()

    def test_input_project_not_modified(
        self, tmp_path: pathlib.Path, user_project: Project
    ) -> None:
        before = user_project.model_dump()
        report = _generator(tmp_path / "out", dry_run=True).generate(user_project)
        assert report.success
        assert user_project.model_dump() == before
        assert user_project.entities[0].properties[1].validations[0].depends.on == "email"


class TestFullRun:
    def test_writes_every_artifact(
        self,
        tmp_path: pathlib.Path,
        user_dict: Dict[str, Any],
        write_schema: Callable[[Dict[str, Any], str], pathlib.Path],
    ) -> None:
        out = tmp_path / "out"
        report = _generator(out).generate_from_file(write_schema(user_dict))

        assert report.success, report.summary()
        assert report.failed_stage is None
        assert report.project_name == "Acme"
        assert report.total_entities == 1
        assert report.total_files == 6
        assert _written(out) == sorted(
            [
                "Api/Controllers/UserController.cs",
                "Common/Domain/Entities/User.cs",
                "Common/Queries/UserQuery.cs",
                "Common/Repositories/UserRepository.cs",
                "Common/Services/UserService.cs",
                "Common/Validators/UserValidator.cs",
                MANIFEST_FILENAME,
            ]
        )
        repository = (out / "Common/Repositories/UserRepository.cs").read_text(encoding="utf-8")
        assert "ExistsByEmailAndDifferentThanIdAsync" in repository

    def test_manifest_lists_files(
        self, tmp_path: pathlib.Path, user_project: Project
    ) -> None:
        out = tmp_path / "out"
        report = _generator(out).generate(user_project)
        manifest = json.loads((out / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert manifest["project_name"] == "Acme"
        assert manifest["total_files"] == 6
        assert [f["relative_path"] for f in manifest["files"]] == [a.path for a in report.artifacts]
        assert manifest["files"][0]["sha256"] == report.artifacts[0].checksum

    def test_no_manifest(self, tmp_path: pathlib.Path, user_project: Project) -> None:
        out = tmp_path / "out"
        _generator(out, generate_manifest=False).generate(user_project)
        assert not (out / MANIFEST_FILENAME).exists()

    def test_reference_schema(
        self, tmp_path: pathlib.Path, schema_yaml_path: pathlib.Path
    ) -> None:
        out = tmp_path / "out"
        report = _generator(out).generate_from_file(schema_yaml_path)
        assert report.success, report.summary()
        assert len(report.artifacts) == 12
        service = (out / "Common/Services/CustomerService.cs").read_text(encoding="utf-8")
        assert "customer.CreatedAt = DateTime.Now;" in service
        assert "customer.Active = true;" in service
        assert "customer.UpdatedAt = DateTime.Now;" in service
        validator = (out / "Common/Validators/CustomerValidator.cs").read_text(encoding="utf-8")
        assert ".When(x => x.Active)" in validator

    def test_selected_synthesizers(self, tmp_path: pathlib.Path, user_project: Project) -> None:
        out = tmp_path / "out"
        report = _generator(out, synthesizers=["query"], generate_manifest=False).generate(user_project)
        assert [a.path for a in report.artifacts] == ["Common/Queries/UserQuery.cs"]
        assert _written(out) == ["Common/Queries/UserQuery.cs"]

    def test_refused_overwrite_is_a_persist_failure(
        self, tmp_path: pathlib.Path, user_project: Project
    ) -> None:
        out = tmp_path / "out"
        assert _generator(out).generate(user_project).success
        report = _generator(out, overwrite_existing=False).generate(user_project)
        assert report.failed_stage == "persist"
        assert any("Refusing to overwrite" in e for e in report.export_errors)
        assert report.artifacts == []
        assert report.total_files == 0


class TestModes:
    def test_dry_run_writes_nothing(self, tmp_path: pathlib.Path, user_project: Project) -> None:
        out = tmp_path / "out"
        report = _generator(out, dry_run=True).generate(user_project)
        assert report.success
        assert report.dry_run is True
        assert len(report.artifacts) == 6
        assert report.total_files == 0
        assert not out.exists()
        assert "dry run" in report.summary()

    def test_validate_only(self, tmp_path: pathlib.Path, user_project: Project) -> None:
        out = tmp_path / "out"
        report = _generator(out, validate_only=True).generate(user_project)
        assert report.success
        assert report.artifacts == []
        assert [m.step_name for m in report.step_metrics] == ["Validate Schema"]
        assert not out.exists()

    def test_load_failure_report(self, tmp_path: pathlib.Path) -> None:
        report = _generator(tmp_path / "out").generate_from_file(tmp_path / "missing.yaml")
        assert report.success is False
        assert report.failed_stage == "load"
        assert "Schema file not found" in report.load_errors[0]
        assert report.step_metrics[0].success is False

    def test_generator_is_reusable(self, tmp_path: pathlib.Path, user_project: Project) -> None:
        generator = _generator(tmp_path / "out", dry_run=True)
        first = generator.generate(user_project)
        second = generator.generate(user_project)
        assert [a.checksum for a in first.artifacts] == [a.checksum for a in second.artifacts]


class TestReport:
    def test_failed_stage_precedence(self) -> None:
        report = GenerationReport()
        assert report.failed_stage is None
        report.export_errors.append("x")
        assert report.failed_stage == "persist"
        report.generation_errors.append("x")
        assert report.failed_stage == "synthesize"
        report.validation_errors.append("x")
        assert report.failed_stage == "validate"
        report.load_errors.append("x")
        assert report.failed_stage == "load"

    def test_summary_lists_errors(self) -> None:
        report = GenerationReport(project_name="Acme")
        report.validation_errors.append("Project \"Acme\" must declare at least one entity")
        text = report.summary()
        assert "FAILED" in text
        assert "Validation Errors (1):" in text
        assert "must declare at least one entity" in text
