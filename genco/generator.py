# File: genco/generator.py
"""
Genco - Master Generation Pipeline (Orchestrator)
=================================================

Connects every phase together:

    Load → Validate → Synthesize → Persist

Each stage gates the next.  A failing stage records its errors in the
``GenerationReport`` and the run stops there:

    - Load failure: nothing validated, nothing written.
    - Validation failure: the full diagnostic log is reported, no synthesis.
    - Synthesis failure (``ConfigurationError``): nothing persisted.
    - Persist failure: the exporter leaves no partial artifact set behind.

There is no retry at any stage.

Workflow::

    1. Load schema from JSON/YAML file (or accept an in-memory ``Project``).
    2. Run ``validate_project`` and keep its canonicalized copy.
    3. Feed the copy to ``TemplateGenerator``.
    4. Hand the artifact sequence to ``ProjectExporter``.
    5. Return a ``GenerationReport`` with metrics and status.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from genco.exporters import ExportManifest, ExportResult, ProjectExporter
from genco.models import Artifact, ConfigurationError, GenerationConfig, Project
from genco.templates import TemplateGenerator
from genco.utils import Timer
from genco.validators import ValidationResult, validate_project

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``ScaffoldGenerator``.

    ``artifacts`` holds the synthesized sequence (also in dry-run mode); it
    is emptied whenever any stage failed, persist included.
    """

    success: bool = False
    project_name: str = ""
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    total_entities: int = 0
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    load_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)

    artifacts: List[Artifact] = field(default_factory=list)
    validation: Optional[ValidationResult] = None
    manifest: Optional[ExportManifest] = None

    @property
    def failed_stage(self) -> Optional[str]:
        if self.load_errors:
            return "load"
        if self.validation_errors:
            return "validate"
        if self.generation_errors:
            return "synthesize"
        if self.export_errors:
            return "persist"
        return None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append("=" * 60)
        lines.append("  Genco - Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:            {status}")
        lines.append(f"  Project:           {self.project_name}")
        lines.append(f"  Output:            {self.output_directory}")
        if self.dry_run:
            lines.append("  Mode:              dry run (nothing written)")
        lines.append(f"  Entities:          {self.total_entities}")
        lines.append(f"  Artifacts:         {len(self.artifacts)}")
        lines.append(f"  Files written:     {self.total_files}")
        lines.append(f"  Total lines:       {self.total_lines:,}")
        lines.append(f"  Total time:        {self.total_elapsed_seconds:.3f}s")
        lines.append("-" * 60)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<22s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        for title, items, icon in (
            ("Load Errors", self.load_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
        ):
            if not items:
                continue
            lines.append("-" * 60)
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema loader helpers
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


_YAML_BOOL_TAG: str = "tag:yaml.org,2002:bool"


class SchemaLoader(yaml.SafeLoader):
    """
    ``SafeLoader`` with YAML 1.2 booleans.

    Only ``true``/``false`` resolve to bool, so ``on:`` (a Depends key) and
    ``yes``/``no``/``off`` stay strings.
    """


SchemaLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _YAML_BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
SchemaLoader.add_implicit_resolver(
    _YAML_BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.load(path.read_text(encoding="utf-8"), Loader=SchemaLoader)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema document (JSON or YAML), dispatching on file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be read or parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()

    try:
        if suffix in (".yaml", ".yml"):
            return _load_yaml_file(path)
        if suffix == ".json":
            return _load_json_file(path)

        logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
        try:
            return _load_json_file(path)
        except ValueError:
            return _load_yaml_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"Cannot read schema file {path}: {exc}") from exc


def parse_raw_schema(raw: Dict[str, Any]) -> Project:
    """
    Parse a raw mapping into a ``Project``.

    Only the *shape* is checked here; content problems are left for the
    validator so they are all reported together.

    Raises:
        ValueError: wrong types or unknown keys.
    """
    try:
        return Project.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValueError(f"Malformed schema document: {exc}") from exc


# ---------------------------------------------------------------------------
# ScaffoldGenerator - Master orchestrator
# ---------------------------------------------------------------------------


class ScaffoldGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = ScaffoldGenerator(GenerationConfig(output_dir="./out"))

        report = generator.generate_from_file(Path("schema.yaml"))
        # or
        report = generator.generate(project)

        print(report.summary())

    The generator is reusable; every call is a fresh, stateless run.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        dry_run: bool = False,
        validate_only: bool = False,
    ) -> None:
        """
        Args:
            config: Generation configuration (defaults if omitted).
            dry_run: Synthesize but do not persist.
            validate_only: Stop after the validation stage.
        """
        self._config: GenerationConfig = config or GenerationConfig()
        self._dry_run: bool = dry_run
        self._validate_only: bool = validate_only

        logger.debug(
            "ScaffoldGenerator initialised: output=%s, dry_run=%s, validate_only=%s.",
            self._config.output_dir,
            dry_run,
            validate_only,
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate_from_file(self, schema_path: Path) -> GenerationReport:
        """Full pipeline: load file → validate → synthesize → persist."""
        report: GenerationReport = self._new_report()
        start: float = time.perf_counter()

        project: Optional[Project] = None
        with Timer("load_schema") as t_load:
            try:
                project = parse_raw_schema(load_schema_file(schema_path))
            except (FileNotFoundError, ValueError) as exc:
                report.load_errors.append(str(exc))
                logger.error("%s", exc)

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Load Schema",
                success=project is not None,
                elapsed_seconds=t_load.elapsed,
                detail=f"from {schema_path.name}" if project is not None else "failed",
            )
        )
        if project is None:
            return self._finalise_report(report, time.perf_counter() - start)

        logger.info(
            "Loaded schema file: %s (%d entities).", schema_path, project.entity_count
        )
        return self._run_pipeline(project, report, start)

    def generate(self, project: Project) -> GenerationReport:
        """Full pipeline from an in-memory ``Project``.  *project* is not modified."""
        return self._run_pipeline(project, self._new_report(), time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _new_report(self) -> GenerationReport:
        report = GenerationReport(dry_run=self._dry_run)
        report.output_directory = str(Path(self._config.output_dir).resolve())
        return report

    def _run_pipeline(
        self, project: Project, report: GenerationReport, start: float
    ) -> GenerationReport:
        report.project_name = project.name
        report.total_entities = project.entity_count

        canonical: Optional[Project] = self._step_validate(project, report)
        if canonical is None or self._validate_only:
            return self._finalise_report(report, time.perf_counter() - start)

        artifacts: Optional[List[Artifact]] = self._step_synthesize(canonical, report)
        if artifacts is None:
            return self._finalise_report(report, time.perf_counter() - start)
        report.artifacts = artifacts

        if self._dry_run:
            logger.info("Dry run: %d artifacts not written.", len(artifacts))
        else:
            self._step_export(canonical, artifacts, report)

        return self._finalise_report(report, time.perf_counter() - start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, project: Project, report: GenerationReport) -> Optional[Project]:
        """Return the canonicalized project, or ``None`` when the stage failed."""
        with Timer("validation") as t:
            try:
                result: Optional[ValidationResult] = validate_project(project)
            except ConfigurationError as exc:
                report.generation_errors.append(f"Configuration error: {exc}")
                logger.error("Configuration error during validation: %s", exc)
                result = None

        if result is None:
            report.step_metrics.append(
                GenerationStepMetric("Validate Schema", False, t.elapsed, "configuration error")
            )
            return None

        report.validation = result
        report.validation_errors.extend(d.message for d in result.errors)
        report.validation_warnings.extend(d.message for d in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.warning_count:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(
            GenerationStepMetric("Validate Schema", result.is_valid, t.elapsed, detail)
        )

        if result.has_errors:
            logger.error(
                "Validation failed with %d error(s) in %.3fs; nothing generated.",
                result.error_count,
                t.elapsed,
            )
            return None

        return result.project

    # -----------------------------------------------------------------
    # Pipeline step: Synthesis
    # -----------------------------------------------------------------

    def _step_synthesize(
        self, project: Project, report: GenerationReport
    ) -> Optional[List[Artifact]]:
        with Timer("code_generation") as t:
            try:
                artifacts: Optional[List[Artifact]] = TemplateGenerator(
                    self._config
                ).generate_all(project)
            except ConfigurationError as exc:
                report.generation_errors.append(f"Configuration error: {exc}")
                logger.error("Generation aborted: %s", exc)
                artifacts = None

        if artifacts is None:
            report.step_metrics.append(
                GenerationStepMetric("Synthesize", False, t.elapsed, "aborted")
            )
            return None

        total_lines: int = sum(a.line_count for a in artifacts)
        report.step_metrics.append(
            GenerationStepMetric(
                "Synthesize",
                True,
                t.elapsed,
                f"{len(artifacts)} artifacts, ~{total_lines:,} lines",
            )
        )
        return artifacts

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self, project: Project, artifacts: List[Artifact], report: GenerationReport
    ) -> None:
        with Timer("export") as t:
            exporter = ProjectExporter(self._config, project_name=project.name)
            export_result: ExportResult = exporter.export(artifacts)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.manifest = export_result.manifest

        report.step_metrics.append(
            GenerationStepMetric(
                "Export to Filesystem",
                export_result.success,
                t.elapsed,
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes",
            )
        )

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    @staticmethod
    def _finalise_report(report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = report.failed_stage is None
        if not report.success:
            report.artifacts = []
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ScaffoldGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_schema_file",
    "SchemaLoader",
    "parse_raw_schema",
]

logger.debug("genco.generator loaded.")
