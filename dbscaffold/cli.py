# File: dbscaffold/cli.py
"""
dbscaffold - Command-Line Interface
====================================

``argparse`` front end for the compiler and the HTTP service.

Usage examples::

    # Compile a request into a zip package
    python -m dbscaffold --schema shop.yaml --output shop.zip

    # Show what would be generated, write nothing
    python -m dbscaffold -s shop.json --dry-run -v

    # Diagnostics only
    python -m dbscaffold -s shop.yaml --validate-only

    # Run the job service
    python -m dbscaffold --serve --port 8000

Exit codes:
    0: success
    1: diagnostics reported errors (with --validate-only or --strict)
    2: generation error
    3: packaging error
    4: input/argument error
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
logger: logging.Logger = logging.getLogger("dbscaffold")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``dbscaffold`` logger.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s", datefmt="%H:%M:%S"
        )
    )

    root_logger: logging.Logger = logging.getLogger("dbscaffold")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    from dbscaffold import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="dbscaffold",
        description=(
            "dbscaffold: Entity Framework Core scaffolding generator.\n\n"
            "Compiles a relational schema description (JSON/YAML) into entity, "
            "DbContext, repository, service, test and DI source files."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s shop.yaml -o shop.zip\n"
            "  %(prog)s -s shop.json --dry-run -v\n"
            "  %(prog)s -s shop.yaml --validate-only\n"
            "  %(prog)s --serve --port 8000\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"dbscaffold v{__version__}")

    parser.add_argument(
        "-s", "--schema",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to the generation request file (JSON or YAML).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="ZIP",
        help="Destination of the zip package. Required unless --validate-only or --dry-run.",
    )

    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only run request diagnostics.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Compile and list the files without writing a package.",
    )
    mode_group.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Run the HTTP job service with uvicorn.",
    )

    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Refuse to package when diagnostics report errors.",
    )
    behaviour_group.add_argument("--host", type=str, default=None, help="Bind host for --serve.")
    behaviour_group.add_argument("--port", type=int, default=None, help="Bind port for --serve.")

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
        help="Only log errors.",
    )
    return parser


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _load_request(schema_path: Path):
    """Load and parse a request file; returns ``None`` after logging on failure."""
    from dbscaffold.exceptions import RequestValidationError
    from dbscaffold.generator import load_schema_file, parse_raw_request

    try:
        return parse_raw_request(load_schema_file(schema_path))
    except FileNotFoundError as exc:
        logger.error("%s", exc)
    except RequestValidationError as exc:
        logger.error("Failed to load request: %s", exc)
        for err in exc.field_errors:
            logger.error("  %s: %s", err.get("loc", ""), err.get("msg", ""))
    return None


def _run_validate_only(schema_path: Path) -> int:
    from dbscaffold.utils import Timer
    from dbscaffold.validators import validate_request

    request = _load_request(schema_path)
    if request is None:
        return EXIT_INPUT_ERROR

    with Timer("diagnostics") as t:
        result = validate_request(request)

    print(f"\n{'=' * 50}")
    print("  Request Diagnostics")
    print(f"{'=' * 50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Tables:   {len(request.valid_tables())} valid of {len(request.tables)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")
    print(result.format_report(include_info=True))
    print(f"{'=' * 50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


def _run_generation(schema_path: Path, output: Optional[Path], args: argparse.Namespace) -> int:
    from dbscaffold.generator import CompileReport, ScaffoldGenerator

    request = _load_request(schema_path)
    if request is None:
        return EXIT_INPUT_ERROR
    if not request.valid_tables():
        logger.error("No valid tables were provided.")
        return EXIT_INPUT_ERROR

    generator: ScaffoldGenerator = ScaffoldGenerator()

    if args.dry_run or output is None:
        logger.info("Dry-run mode: no package will be written.")
        report: CompileReport = generator.compile(request)
        print(report.summary())
        for rel_path in report.files:
            print(f"  {rel_path}")
        return EXIT_SUCCESS if report.success else EXIT_GENERATION_ERROR

    if args.strict:
        report = generator.compile(request)
        if report.diagnostics is not None and report.diagnostics.has_errors:
            print(report.summary())
            return EXIT_VALIDATION_ERROR

    try:
        report = generator.compile_to_package(request, output)
    except OSError as exc:
        logger.error("Could not write package %s: %s", output, exc)
        return EXIT_EXPORT_ERROR

    print(report.summary())
    return EXIT_SUCCESS if report.success else EXIT_GENERATION_ERROR


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from dbscaffold.api import create_app
    from dbscaffold.settings import get_settings

    settings = get_settings()
    host: str = args.host or settings.api_host
    port: int = args.port or settings.api_port
    logger.info("Serving on http://%s:%d", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    if args.serve:
        sys.exit(_run_serve(args))

    if args.schema is None:
        logger.error("A schema file is required unless --serve is set.")
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    schema_path: Path = Path(args.schema).resolve()
    if not schema_path.is_file():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(schema_path))

    if args.output is None and not args.dry_run:
        logger.error("An output path is required. Use -o/--output, --dry-run or --validate-only.")
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    output: Optional[Path] = Path(args.output).resolve() if args.output else None
    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output)

    exit_code: int = _run_generation(schema_path, output, args)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    sys.exit(exit_code)


__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]
