# File: specgen/cli.py
"""
specgen - Command-Line Interface
=================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Elaborate a service and print it
    python -m specgen -s service.yaml

    # Write the elaborated service as JSON
    python -m specgen -s service.yaml -o build/service.json -v

    # Validate only (no output)
    python -m specgen -s service.yaml --validate-only

    # Fail when the committed elaborated document is stale
    python -m specgen -s service.yaml -o api/service.yaml --check

Exit codes:
    0 — success
    1 — validation error
    2 — compilation error
    3 — export error
    4 — input/argument error
    5 — output out of date (--check)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_COMPILATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4
EXIT_OUT_OF_DATE: int = 5


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the specgen package logger.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity < 0:
        logging.disable(logging.CRITICAL)
    else:
        logging.disable(logging.NOTSET)

    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("specgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    from specgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="specgen",
        description=(
            "specgen — specification-driven API compiler.\n\n"
            "Validates a declarative service description (JSON/YAML) and "
            "elaborates it into a complete API model: standard errors, "
            "entity objects, filter families and CRUD endpoints."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s service.yaml\n"
            "  %(prog)s -s service.yaml -o build/service.json -v\n"
            "  %(prog)s -s service.yaml --validate-only\n"
            "  %(prog)s -s service.yaml -o api/service.yaml --check\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"specgen v{__version__}",
    )

    parser.add_argument(
        "-s", "--spec",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the service description (JSON or YAML).",
    )

    # --- Output ---
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="FILE",
        help="Write the elaborated service here (stdout when omitted).",
    )
    output_group.add_argument(
        "--format",
        type=str,
        default=None,
        choices=["yaml", "json"],
        help="Output format (default: from the output extension, else yaml).",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the service and print the report.",
    )
    mode_group.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Compare with the existing output file instead of writing it.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Elaborate even if validation reports errors.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
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


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(spec_path: Path) -> int:
    from specgen.generator import load_service_file, parse_raw_service
    from specgen.utils import Timer
    from specgen.validators import SpecificationError, validate_service

    logger.info("Running validation-only mode for: %s", spec_path)

    try:
        raw_data = load_service_file(spec_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load service: %s", exc)
        return EXIT_INPUT_ERROR

    try:
        service = parse_raw_service(raw_data)
    except SpecificationError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = validate_service(service)

    print(f"\n{'='*50}")
    print("  Service Validation Report")
    print(f"{'='*50}")
    print(f"  File:       {spec_path.name}")
    print(f"  Service:    {service.name}")
    print(f"  Resources:  {len(service.resources)}")
    print(f"  Time:       {t.elapsed:.3f}s")
    print(f"  Valid:      {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err.message}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn.message}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Compile mode
# ---------------------------------------------------------------------------


def _run_compile(
    spec_path: Path,
    output_path: Optional[Path],
    args: argparse.Namespace,
) -> int:
    from specgen.exporters import (
        ExportResult,
        ServiceExporter,
        diff_against_file,
        format_for_path,
        render_service,
    )
    from specgen.generator import CompilationReport, SpecCompiler

    compiler: SpecCompiler = SpecCompiler(
        strict_validation=not args.no_strict,
        fail_on_warnings=args.fail_on_warnings,
    )
    report: CompilationReport = compiler.compile_file(spec_path)

    # The document itself may go to stdout, so the report goes to stderr then
    summary_stream = sys.stdout if output_path is not None else sys.stderr
    print(report.summary(), file=summary_stream)

    if not report.success or report.service is None:
        if report.validation is None:
            return EXIT_INPUT_ERROR
        if not report.validation_passed and not args.no_strict:
            return EXIT_VALIDATION_ERROR
        return EXIT_COMPILATION_ERROR

    fmt: str = args.format or (format_for_path(output_path) if output_path else "yaml")

    if output_path is None:
        sys.stdout.write(render_service(report.service, fmt))
        return EXIT_SUCCESS

    if args.check:
        diff: Optional[str] = diff_against_file(report.service, output_path, fmt)
        if diff is None:
            print(f"✅ {output_path} is up to date.")
            return EXIT_SUCCESS
        sys.stdout.write(diff)
        logger.error("%s is out of date; re-run without --check.", output_path)
        return EXIT_OUT_OF_DATE

    result: ExportResult = ServiceExporter(output_path, fmt).export(report.service)
    for warning in result.warnings:
        logger.warning(warning)
    if not result.success:
        for err in result.errors:
            print(f"✗ {err}", file=sys.stderr)
        return EXIT_EXPORT_ERROR
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    spec_path: Path = Path(args.spec).resolve()

    if not spec_path.exists():
        logger.error("Service file not found: %s", spec_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not spec_path.is_file():
        logger.error("Service path is not a file: %s", spec_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(spec_path))

    if args.check and args.output is None:
        logger.error("--check needs the file to compare against; use -o/--output.")
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    output_path: Optional[Path] = Path(args.output).resolve() if args.output else None

    logger.info("Service: %s", spec_path)
    logger.info("Output:  %s", output_path or "<stdout>")
    logger.info("Strict:  %s", not args.no_strict)

    exit_code: int = _run_compile(spec_path, output_path, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Compilation completed successfully.")
    else:
        logger.error("Compilation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_COMPILATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
    "EXIT_OUT_OF_DATE",
]

logger.debug("specgen.cli loaded.")
