# File: genco/cli.py
"""
Genco - Command-Line Interface
==============================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Basic generation
    python -m genco --schema schema.yaml --output ./Shop

    # Only the data-access layer, verbose
    python -m genco -s schema.json -o ./out --only class query repository -v

    # Validate only (no file output)
    python -m genco -s schema.yaml --validate-only

    # Synthesize everything but write nothing
    python -m genco -s schema.yaml --dry-run

Exit codes:
    0 - success
    1 - validation error
    2 - generation error
    3 - export error
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from genco.models import SYNTHESIZER_NAMES, GenerationConfig

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4

_STAGE_EXIT_CODES: Dict[str, int] = {
    "load": EXIT_INPUT_ERROR,
    "validate": EXIT_VALIDATION_ERROR,
    "synthesize": EXIT_GENERATION_ERROR,
    "persist": EXIT_EXPORT_ERROR,
}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root genco logger based on verbosity level.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL + 1

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("genco")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    from genco import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="genco",
        description=(
            "Genco - schema-driven C# scaffolding generator.\n\n"
            "Validates an entity schema (JSON/YAML) and generates entity "
            "classes, SQL queries, Dapper repositories, FluentValidation "
            "validators, services and ASP.NET Core controllers."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./Shop\n"
            "  %(prog)s -s schema.json -o ./out --only repository -v\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
        ),
    )

    parser.add_argument("--version", action="version", version=f"genco v{__version__}")

    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema document (JSON or YAML).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory. Required unless --validate-only or --dry-run is set.",
    )

    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the schema without generating code.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate and synthesize, but don't write files to disk.",
    )

    config_group = parser.add_argument_group("generation options")
    config_group.add_argument(
        "--only",
        nargs="+",
        choices=list(SYNTHESIZER_NAMES),
        default=None,
        metavar="NAME",
        help=f"Run only these synthesizers ({', '.join(SYNTHESIZER_NAMES)}).",
    )
    config_group.add_argument(
        "--indent",
        type=int,
        default=4,
        metavar="N",
        help="Indentation width of the generated code (2-8, default 4).",
    )
    config_group.add_argument(
        "--no-manifest",
        action="store_true",
        default=False,
        help="Don't write genco-manifest.json.",
    )
    config_group.add_argument(
        "--no-overwrite",
        action="store_true",
        default=False,
        help="Fail instead of replacing files that already exist.",
    )

    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    return parser


def _build_config(args: argparse.Namespace) -> GenerationConfig:
    """Build a GenerationConfig from CLI arguments (raises on bad values)."""
    options: Dict[str, object] = {
        "overwrite_existing": not args.no_overwrite,
        "generate_manifest": not args.no_manifest,
        "indent_size": args.indent,
    }
    if args.output is not None:
        options["output_dir"] = args.output
    if args.only:
        # Keep the canonical order regardless of the order given
        options["synthesizers"] = [n for n in SYNTHESIZER_NAMES if n in args.only]
    return GenerationConfig.model_validate(options)


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema_path: Path, config: GenerationConfig) -> int:
    from genco.generator import GenerationReport, ScaffoldGenerator

    logger.info("Running validation-only mode for: %s", schema_path)
    report: GenerationReport = ScaffoldGenerator(
        config, validate_only=True
    ).generate_from_file(schema_path)

    if report.load_errors:
        for err in report.load_errors:
            print(f"Failed to load schema: {err}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    print(f"\n{'=' * 50}")
    print("  Schema Validation Report")
    print(f"{'=' * 50}")
    print(f"  File:      {schema_path.name}")
    print(f"  Entities:  {report.total_entities}")
    print(f"  Time:      {report.total_elapsed_seconds:.3f}s")
    if report.validation is not None:
        print("")
        print(report.validation.format_report())
    for err in report.generation_errors:
        print(f"    ✗ {err}")
    print(f"{'=' * 50}\n")

    if report.success:
        return EXIT_SUCCESS
    return _STAGE_EXIT_CODES.get(report.failed_stage or "", EXIT_GENERATION_ERROR)


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(schema_path: Path, config: GenerationConfig, dry_run: bool) -> int:
    from genco.generator import GenerationReport, ScaffoldGenerator

    if dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = ScaffoldGenerator(config, dry_run=dry_run).generate_from_file(
        schema_path
    )

    print(report.summary())
    if dry_run:
        for artifact in report.artifacts:
            print(f"  {artifact.path} ({artifact.line_count} lines)")

    if report.success:
        return EXIT_SUCCESS
    return _STAGE_EXIT_CODES.get(report.failed_stage or "", EXIT_GENERATION_ERROR)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run, and return the exit code (no ``sys.exit``)."""
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()
    if not schema_path.is_file():
        logger.error("Schema file not found: %s", schema_path)
        return EXIT_INPUT_ERROR

    if args.output is None and not (args.validate_only or args.dry_run):
        logger.error(
            "Output directory is required for generation. "
            "Use -o/--output, --dry-run or --validate-only."
        )
        parser.print_usage(sys.stderr)
        return EXIT_INPUT_ERROR

    try:
        config: GenerationConfig = _build_config(args)
    except PydanticValidationError as exc:
        logger.error("Invalid options: %s", exc)
        return EXIT_INPUT_ERROR

    if args.validate_only:
        return _run_validate_only(schema_path, config)

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", Path(config.output_dir).resolve())

    exit_code: int = _run_generation(schema_path, config, args.dry_run)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Console-script entry point."""
    sys.exit(run(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "run",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("genco.cli loaded.")
