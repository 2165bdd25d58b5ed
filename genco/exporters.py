# File: genco/exporters.py
"""
Genco - Project Exporter (File-System Manager)
==============================================

Responsible for:
    1. Refusing to clobber existing files when overwriting is disabled.
    2. Staging every generated artifact to a temporary sibling file.
    3. Renaming staged files into place only once *all* of them are staged.
    4. Writing ``genco-manifest.json`` with per-file checksums.

If any file fails to stage, every staged file is discarded and nothing is
visible under the output directory.  If a rename fails, the files already
renamed are removed and the files they replaced are restored from their
``.bak`` siblings: a run persists all artifacts or none.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from genco.models import Artifact, GenerationConfig
from genco.utils import (
    Timer,
    backup_file,
    commit_staged,
    count_lines,
    discard_staged,
    restore_backup,
    sha256_hex,
    stage_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.exporters")

MANIFEST_FILENAME: str = "genco-manifest.json"


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

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "absolute_path": self.absolute_path,
            "size_bytes": self.size_bytes,
            "line_count": self.line_count,
            "sha256": self.sha256,
        }


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Complete manifest of all exported files."""

    project_name: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_name": self.project_name,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [f.to_dict() for f in self.files],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``ProjectExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes an artifact sequence under ``config.output_dir``.

    Usage::

        exporter = ProjectExporter(config, project_name="Shop")
        result = exporter.export(artifacts)
        print(result.manifest.to_json())

    Thread-safety: NOT thread-safe.  Concurrent runs against the same output
    directory are not coordinated.
    """

    def __init__(self, config: GenerationConfig, project_name: str = "") -> None:
        self._config: GenerationConfig = config
        self._output_dir: Path = Path(config.output_dir).resolve()
        self._project_name: str = project_name

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, overwrite=%s.",
            self._output_dir,
            config.overwrite_existing,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, artifacts: Sequence[Artifact]) -> ExportResult:
        """
        Persist *artifacts* all-or-nothing.

        Returns:
            ExportResult with success flag, manifest, and error details.
        """
        self._errors = []
        self._warnings = []
        self._file_records = []

        with Timer("export") as timer:
            targets: List[Tuple[Artifact, Path]] = self._resolve_targets(artifacts)
            if not self._errors:
                self._check_overwrite(targets)
            if not self._errors:
                self._write_all(targets)
            if not self._errors and self._config.generate_manifest:
                self._write_manifest_file()

        manifest: ExportManifest = self._build_manifest()
        success: bool = len(self._errors) == 0

        result = ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

        if success:
            logger.info(
                "Export completed successfully: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )

        return result

    # -----------------------------------------------------------------
    # Internal: planning
    # -----------------------------------------------------------------

    def _resolve_targets(self, artifacts: Sequence[Artifact]) -> List[Tuple[Artifact, Path]]:
        """Map each artifact to an absolute path inside the output directory."""
        targets: List[Tuple[Artifact, Path]] = []
        seen: Dict[Path, str] = {}
        for artifact in artifacts:
            target: Path = (self._output_dir / artifact.path).resolve()
            if not target.is_relative_to(self._output_dir):
                self._errors.append(
                    f"Artifact path escapes the output directory: {artifact.path}"
                )
                continue
            if target in seen:
                self._errors.append(
                    f"Two artifacts map to the same file: {artifact.path}"
                )
                continue
            seen[target] = artifact.path
            targets.append((artifact, target))
        return targets

    def _check_overwrite(self, targets: Sequence[Tuple[Artifact, Path]]) -> None:
        existing: List[str] = [a.path for a, target in targets if target.exists()]
        if not existing:
            return
        if self._config.overwrite_existing:
            logger.debug("Overwriting %d existing file(s).", len(existing))
            return
        for rel_path in existing:
            self._errors.append(f"Refusing to overwrite existing file: {rel_path}")

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_all(self, targets: Sequence[Tuple[Artifact, Path]]) -> None:
        """Stage everything, then commit everything."""
        staged: List[Tuple[Path, Path, Artifact]] = []
        try:
            for artifact, target in targets:
                staged.append((stage_file(target, artifact.content), target, artifact))
        except OSError as exc:
            error_msg: str = f"Failed to stage {artifact.path}: {type(exc).__name__}: {exc}"
            self._errors.append(error_msg)
            logger.error(error_msg)
            for tmp, _target, _artifact in staged:
                discard_staged(tmp)
            return

        # (target, backup of the file it replaced or None)
        committed: List[Tuple[Path, Optional[Path]]] = []
        for index, (tmp, target, artifact) in enumerate(staged):
            backup: Optional[Path] = None
            try:
                backup = backup_file(target)
                commit_staged(tmp, target)
            except OSError as exc:
                error_msg = f"Failed to write {artifact.path}: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)
                if backup is not None:
                    committed.append((target, backup))
                for rest, _target, _artifact in staged[index:]:
                    discard_staged(rest)
                self._rollback(committed)
                return
            committed.append((target, backup))

        for _target, backup in committed:
            if backup is not None:
                discard_staged(backup)
        self._file_records = [self._record(t, a.path, a.content) for _tmp, t, a in staged]

        logger.info("Wrote %d generated files to %s.", len(self._file_records), self._output_dir)

    def _rollback(self, committed: Sequence[Tuple[Path, Optional[Path]]]) -> None:
        """Undo committed files newest first, restoring what they replaced."""
        for target, backup in reversed(committed):
            try:
                restore_backup(backup, target)
            except OSError as exc:
                error_msg: str = f"Failed to roll back {target}: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)
        logger.warning("Rolled back %d committed file(s).", len(committed))

    @staticmethod
    def _record(target: Path, rel_path: str, content: str) -> FileRecord:
        return FileRecord(
            relative_path=rel_path,
            absolute_path=str(target),
            size_bytes=len(content.encode("utf-8")),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        import genco

        return ExportManifest(
            project_name=self._project_name,
            generator_version=genco.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        content: str = self._build_manifest().to_json()
        try:
            commit_staged(stage_file(manifest_path, content), manifest_path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)
            return
        logger.debug("Wrote manifest to %s.", manifest_path)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("genco.exporters loaded.")
