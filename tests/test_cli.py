"""
tests/test_cli.py
Tests for genco.cli, driven through ``run(argv)`` so exit codes can be
asserted without catching SystemExit.
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict

import pytest

from genco import __version__
from genco.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
    run,
)


@pytest.fixture()
def schema_file(
    user_dict: Dict[str, Any], write_schema: Callable[[Dict[str, Any], str], pathlib.Path]
) -> pathlib.Path:
    return write_schema(user_dict)


class TestValidateOnly:
    def test_valid_schema(self, schema_file: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
        assert run(["-s", str(schema_file), "--validate-only", "-q"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Schema Validation Report" in out
        assert "Entities:  1" in out

    def test_invalid_schema(
        self,
        user_dict_factory: Callable[..., Dict[str, Any]],
        write_schema: Callable[[Dict[str, Any], str], pathlib.Path],
        capsys: pytest.CaptureFixture,
    ) -> None:
        path = write_schema(user_dict_factory(when="Positive"))
        assert run(["-s", str(path), "--validate-only", "-q"]) == EXIT_VALIDATION_ERROR
        assert "DEPENDENCY_WHEN_NOT_ALLOWED" in capsys.readouterr().out

    def test_unparseable_schema(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("entities: {unclosed\n", encoding="utf-8")
        assert run(["-s", str(path), "--validate-only", "-q"]) == EXIT_INPUT_ERROR
        assert "Failed to load schema" in capsys.readouterr().err


class TestArguments:
    def test_missing_schema_file(self, tmp_path: pathlib.Path) -> None:
        assert run(["-s", str(tmp_path / "none.yaml"), "--validate-only", "-q"]) == EXIT_INPUT_ERROR

    def test_output_required_for_generation(self, schema_file: pathlib.Path) -> None:
        assert run(["-s", str(schema_file), "-q"]) == EXIT_INPUT_ERROR

    def test_bad_indent(self, schema_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
        argv = ["-s", str(schema_file), "-o", str(tmp_path / "out"), "--indent", "1", "-q"]
        assert run(argv) == EXIT_INPUT_ERROR
        assert not (tmp_path / "out").exists()

    def test_unknown_synthesizer_is_rejected_by_parser(self, schema_file: pathlib.Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run(["-s", str(schema_file), "--only", "migration", "--dry-run"])
        assert exc_info.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run(["--version"])
        assert exc_info.value.code == 0
        assert f"genco v{__version__}" in capsys.readouterr().out

    def test_cli_main_exits_with_code(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli_main(["-s", str(tmp_path / "none.yaml"), "-q"])
        assert exc_info.value.code == EXIT_INPUT_ERROR


class TestGeneration:
    def test_full_run(self, schema_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        assert run(["-s", str(schema_file), "-o", str(out), "-q"]) == EXIT_SUCCESS
        assert (out / "Common/Repositories/UserRepository.cs").is_file()
        assert (out / "Api/Controllers/UserController.cs").is_file()
        assert (out / "genco-manifest.json").is_file()

    def test_only_repository(self, schema_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        argv = ["-s", str(schema_file), "-o", str(out), "--only", "repository", "--no-manifest", "-q"]
        assert run(argv) == EXIT_SUCCESS
        files = [p.relative_to(out).as_posix() for p in out.rglob("*") if p.is_file()]
        assert files == ["Common/Repositories/UserRepository.cs"]

    def test_indent_option(self, schema_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        argv = ["-s", str(schema_file), "-o", str(out), "--only", "class", "--indent", "2", "-q"]
        assert run(argv) == EXIT_SUCCESS
        content = (out / "Common/Domain/Entities/User.cs").read_text(encoding="utf-8")
        assert "\n    public int Id { get; set; }\n" in content

    def test_no_overwrite_second_run(
        self, schema_file: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "out"
        assert run(["-s", str(schema_file), "-o", str(out), "-q"]) == EXIT_SUCCESS
        argv = ["-s", str(schema_file), "-o", str(out), "--no-overwrite", "-q"]
        assert run(argv) == EXIT_EXPORT_ERROR

    def test_dry_run_lists_artifacts(
        self,
        schema_file: pathlib.Path,
        tmp_path: pathlib.Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert run(["-s", str(schema_file), "--dry-run", "-q"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Common/Queries/UserQuery.cs" in out
        assert "dry run" in out
        assert not (tmp_path / "generated").exists()

    def test_generation_validation_failure(
        self,
        user_dict_factory: Callable[..., Dict[str, Any]],
        write_schema: Callable[[Dict[str, Any], str], pathlib.Path],
        tmp_path: pathlib.Path,
    ) -> None:
        path = write_schema(user_dict_factory(on="Phone"))
        out = tmp_path / "out"
        assert run(["-s", str(path), "-o", str(out), "-q"]) == EXIT_VALIDATION_ERROR
        assert not out.exists()
