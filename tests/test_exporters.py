"""
tests/test_exporters.py
Unit tests for genco.exporters (ProjectExporter).

Real files are written under pytest's tmp_path; nothing is mocked.  Staging
failures are provoked by placing a regular file where a directory is
needed, commit failures by placing a directory where a file goes.
"""

from __future__ import annotations

import json
import pathlib
from typing import List

from genco.exporters import MANIFEST_FILENAME, ProjectExporter
from genco.models import Artifact, GenerationConfig


def _artifacts() -> List[Artifact]:
    return [
        Artifact(path="Alpha/One.cs", content="class One {}\n"),
        Artifact(path="Beta/Two.cs", content="class Two {}\n"),
    ]


def _files(root: pathlib.Path) -> List[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


class TestExport:
    def test_writes_files_and_manifest(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        exporter = ProjectExporter(GenerationConfig(output_dir=str(out)), project_name="Acme")
        result = exporter.export(_artifacts())

        assert result.success
        assert result.errors == ()
        assert exporter.output_dir == out.resolve()
        assert (out / "Alpha/One.cs").read_text(encoding="utf-8") == "class One {}\n"
        assert not list(out.rglob("*.bak"))
        assert _files(out) == ["Alpha/One.cs", "Beta/Two.cs", MANIFEST_FILENAME]

        manifest = json.loads((out / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert manifest["project_name"] == "Acme"
        assert manifest["total_files"] == 2
        assert manifest["total_lines"] == 2
        assert result.manifest.total_bytes == len("class One {}\n") * 2

    def test_overwrite_allowed_by_default(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        (out / "Alpha").mkdir(parents=True)
        (out / "Alpha/One.cs").write_text("old", encoding="utf-8")
        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(_artifacts())
        assert result.success
        assert (out / "Alpha/One.cs").read_text(encoding="utf-8") == "class One {}\n"
        assert not list(out.rglob("*.bak"))

    def test_exporter_is_reusable(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(
            GenerationConfig(output_dir=str(tmp_path / "out"), generate_manifest=False)
        )
        assert exporter.export(_artifacts()).manifest.total_files == 2
        assert exporter.export(_artifacts()[:1]).manifest.total_files == 1


class TestAllOrNothing:
    def test_refuses_to_overwrite(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        (out / "Beta").mkdir(parents=True)
        (out / "Beta/Two.cs").write_text("keep me", encoding="utf-8")
        config = GenerationConfig(output_dir=str(out), overwrite_existing=False)

        result = ProjectExporter(config).export(_artifacts())

        assert not result.success
        assert result.errors == ("Refusing to overwrite existing file: Beta/Two.cs",)
        assert (out / "Beta/Two.cs").read_text(encoding="utf-8") == "keep me"
        assert _files(out) == ["Beta/Two.cs"]

    def test_staging_failure_leaves_nothing(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        out.mkdir()
        (out / "Beta").write_text("not a directory", encoding="utf-8")

        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(_artifacts())

        assert not result.success
        assert result.errors[0].startswith("Failed to stage Beta/Two.cs")
        assert _files(out) == ["Beta"]
        assert not list(out.rglob("*.tmp"))
        assert result.manifest.total_files == 0

    def test_path_escape_rejected(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        artifacts = [Artifact(path="../evil.cs", content="x")]
        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(artifacts)
        assert not result.success
        assert "escapes the output directory" in result.errors[0]
        assert not (tmp_path / "evil.cs").exists()

    def test_duplicate_paths_rejected(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        artifacts = [Artifact(path="A.cs", content="1"), Artifact(path="./A.cs", content="2")]
        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(artifacts)
        assert not result.success
        assert "Two artifacts map to the same file: ./A.cs" in result.errors
        assert not out.exists()

    def test_commit_failure_restores_replaced_file(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        (out / "Alpha").mkdir(parents=True)
        (out / "Alpha/One.cs").write_text("old", encoding="utf-8")
        (out / "Beta/Two.cs").mkdir(parents=True)
        (out / "Beta/Two.cs/inner.txt").write_text("x", encoding="utf-8")

        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(_artifacts())

        assert not result.success
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to write Beta/Two.cs")
        assert (out / "Alpha/One.cs").read_text(encoding="utf-8") == "old"
        assert _files(out) == ["Alpha/One.cs", "Beta/Two.cs/inner.txt"]
        assert result.manifest.total_files == 0

    def test_commit_failure_removes_new_files(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        (out / "Beta/Two.cs").mkdir(parents=True)
        (out / "Beta/Two.cs/inner.txt").write_text("x", encoding="utf-8")

        result = ProjectExporter(GenerationConfig(output_dir=str(out))).export(_artifacts())

        assert not result.success
        assert not (out / "Alpha/One.cs").exists()
        assert _files(out) == ["Beta/Two.cs/inner.txt"]
