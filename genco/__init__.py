# File: genco/__init__.py
"""
Genco - Schema-Driven C# Scaffolding Generator
==============================================

Turns a declarative entity schema (JSON/YAML) into a consistent family of
C# source files per entity: entity class, SQL query constants, Dapper
repository, FluentValidation validators, service layer and ASP.NET Core
controller.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ ScaffoldGenerator│────▶│ TemplateGenerator│
    │   (cli.py)   │     │  (generator.py)  │     │  (templates.py)  │
    └──────────────┘     └────────┬─────────┘     └────────┬─────────┘
                                  │                        │
                    ┌─────────────┼────────────┐           ▼
                    ▼             ▼            ▼      ┌──────────┐
             ┌──────────┐  ┌───────────┐ ┌─────────┐  │ codegen  │
             │validators│  │  models   │ │exporters│  │  (.py)   │
             │  (.py)   │  │primitives │ │  (.py)  │  └──────────┘
             └──────────┘  └───────────┘ └─────────┘

Usage::

    # As a library
    from genco import GenerationConfig, ScaffoldGenerator
    report = ScaffoldGenerator(GenerationConfig(output_dir="./out")).generate(project)

    # From the command line
    python -m genco --schema schema.yaml --output ./Shop -v
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from genco.models import (
    Artifact,
    ConfigurationError,
    Depends,
    Dialect,
    Entity,
    GenerationConfig,
    PreAction,
    PrimitiveKind,
    Project,
    Property,
    Validation,
    ValidationKind,
)
from genco.validators import Diagnostic, ValidationResult, validate_project
from genco.codegen import CSharpRenderer, SourceUnit
from genco.templates import (
    ClassTemplate,
    ControllerTemplate,
    QueryTemplate,
    RepositoryTemplate,
    ServiceTemplate,
    TemplateGenerator,
    ValidatorTemplate,
)
from genco.exporters import ExportManifest, ExportResult, ProjectExporter
from genco.generator import (
    GenerationReport,
    ScaffoldGenerator,
    load_schema_file,
    parse_raw_schema,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Orchestrator
    "ScaffoldGenerator",
    "GenerationReport",
    "load_schema_file",
    "parse_raw_schema",
    # Models
    "Artifact",
    "ConfigurationError",
    "Depends",
    "Dialect",
    "Entity",
    "GenerationConfig",
    "PreAction",
    "PrimitiveKind",
    "Project",
    "Property",
    "Validation",
    "ValidationKind",
    # Validation
    "Diagnostic",
    "ValidationResult",
    "validate_project",
    # Synthesis
    "CSharpRenderer",
    "SourceUnit",
    "ClassTemplate",
    "QueryTemplate",
    "RepositoryTemplate",
    "ValidatorTemplate",
    "ServiceTemplate",
    "ControllerTemplate",
    "TemplateGenerator",
    # Export
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
]
