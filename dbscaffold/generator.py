# File: dbscaffold/generator.py
"""
dbscaffold - Compile Orchestrator
==================================

Connects the synchronous phases of a generation:

    Request Input → Diagnostics → Relationship Resolution → Templates → Files

The ``ScaffoldGenerator`` class is the programmatic API used by the CLI and
by the asynchronous job pipeline (``pipeline.py``), which consumes
``iter_artifacts`` one file at a time so that each write can yield to the
event loop.

Workflow::

    1. Load a request from JSON/YAML (or accept an in-memory model).
    2. Parse into a ``GenerationRequest`` (models.py).
    3. Run request diagnostics (validators.py); they never block.
    4. Resolve inverse relationships once for the valid tables.
    5. Feed each valid table, in request order, to ``TemplateGenerator``.
    6. Emit the once-only artifacts (context, generic repository, DI).
    7. Return a ``CompileReport`` with the ordered files and metrics.

Complexity: O(T × P) where T = tables, P = properties per table.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from dbscaffold.exceptions import GenerationError, RequestValidationError
from dbscaffold.exporters import PackageManifest, package_files
from dbscaffold.models import GenerationRequest, TableDefinition
from dbscaffold.relationships import RelationshipMap, resolve_inverse_relationships
from dbscaffold.templates import TemplateGenerator
from dbscaffold.utils import Timer, count_lines
from dbscaffold.validators import ValidationResult, validate_request

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.generator")


# ---------------------------------------------------------------------------
# Compile report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class CompileStepMetric:
    """Timing and outcome for a single compile step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class CompileReport:
    """Everything ``ScaffoldGenerator.compile()`` produced."""

    success: bool = False
    root_namespace: str = ""
    package_path: str = ""

    # Metrics
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    tables_compiled: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[CompileStepMetric] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    diagnostics: Optional[ValidationResult] = None

    # Ordered relative_path → content
    files: Dict[str, str] = field(default_factory=dict)
    manifest: Optional[PackageManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        status: str = "SUCCESS" if self.success else "FAILED"
        lines: List[str] = [
            "=" * 60,
            "  dbscaffold: Compile Report",
            "=" * 60,
            f"  Status:           {status}",
            f"  Namespace:        {self.root_namespace}",
            f"  Tables compiled:  {self.tables_compiled}",
            f"  Files generated:  {self.total_files}",
            f"  Total lines:      {self.total_lines:,}",
            f"  Total bytes:      {self.total_bytes:,}",
            f"  Total time:       {self.total_elapsed_seconds:.3f}s",
        ]
        if self.package_path:
            lines.append(f"  Package:          {self.package_path}")
        lines.append("─" * 60)

        if self.step_metrics:
            lines.append("  Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        if self.diagnostics is not None and len(self.diagnostics):
            lines.append("─" * 60)
            for item in self.diagnostics.errors + self.diagnostics.warnings:
                marker: str = "✗" if item.is_error else "⚠"
                lines.append(f"    {marker} {item.message}")

        if self.skipped_tables:
            lines.append("─" * 60)
            lines.append(f"  Skipped Tables ({len(self.skipped_tables)}):")
            for name in self.skipped_tables:
                lines.append(f"    ⊘ {name or '<blank>'}")

        if self.generation_errors:
            lines.append("─" * 60)
            for err in self.generation_errors:
                lines.append(f"    ✗ {err}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Request loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RequestValidationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RequestValidationError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RequestValidationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RequestValidationError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a request file (JSON or YAML), dispatching on the extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        RequestValidationError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise RequestValidationError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    # YAML is a superset of JSON
    logger.info("Unknown extension '%s'; parsing as YAML.", suffix)
    return _load_yaml_file(path)


def parse_raw_request(raw: Dict[str, Any]) -> GenerationRequest:
    """
    Parse a raw dictionary into a validated ``GenerationRequest``.

    The request may sit at the top level or under a ``request`` key.

    Raises:
        RequestValidationError: With pydantic's field errors attached.
    """
    data: Any = raw.get("request", raw) if isinstance(raw, dict) else raw
    try:
        return GenerationRequest.model_validate(data)
    except ValidationError as exc:
        field_errors: List[Dict[str, Any]] = [
            {
                "loc": ".".join(str(part) for part in err.get("loc", ())),
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        raise RequestValidationError(
            f"Request validation failed with {len(field_errors)} error(s).",
            field_errors=field_errors,
        ) from exc


# ---------------------------------------------------------------------------
# ScaffoldGenerator
# ---------------------------------------------------------------------------


class ScaffoldGenerator:
    """
    Compiles a ``GenerationRequest`` into source artifacts.

    Usage::

        generator = ScaffoldGenerator()
        report = generator.compile(request)
        for path, content in report.files.items():
            ...

    The generator is reusable and holds no per-request state.
    """

    def __init__(self, *, run_diagnostics: bool = True) -> None:
        self._run_diagnostics: bool = run_diagnostics

    # -----------------------------------------------------------------
    # Public: streaming API
    # -----------------------------------------------------------------

    @staticmethod
    def resolve(request: GenerationRequest) -> Tuple[List[TableDefinition], RelationshipMap]:
        """Valid tables in request order plus their relationship map."""
        tables: List[TableDefinition] = request.valid_tables()
        return tables, resolve_inverse_relationships(tables)

    def iter_artifacts(
        self,
        request: GenerationRequest,
        relationship_map: Optional[RelationshipMap] = None,
    ) -> Iterator[Tuple[str, str]]:
        """
        Yield ``(relative_path, content)`` for every requested artifact.

        Per-table artifacts come first, table by table in request order,
        followed by the once-only artifacts.
        """
        if relationship_map is None:
            tables, rel_map = self.resolve(request)
        else:
            tables, rel_map = request.valid_tables(), relationship_map
        templates: TemplateGenerator = TemplateGenerator(request)

        for table in tables:
            yield from templates.generate_all_for_table(table, rel_map).items()
        yield from templates.generate_shared(tables, rel_map).items()

    # -----------------------------------------------------------------
    # Public: whole-request compile
    # -----------------------------------------------------------------

    def compile(self, request: GenerationRequest) -> CompileReport:
        """Run every step and collect the files in memory."""
        report: CompileReport = CompileReport(root_namespace=request.root_namespace)
        pipeline_start: float = time.perf_counter()

        report.skipped_tables = [t.name for t in request.tables if not t.is_valid]

        with Timer("resolve") as t_resolve:
            tables, rel_map = self.resolve(request)
        report.tables_compiled = len(tables)
        report.step_metrics.append(
            CompileStepMetric(
                step_name="Resolve Relationships",
                elapsed_seconds=t_resolve.elapsed,
                detail=f"{sum(len(v) for v in rel_map.values())} inverse link(s)",
            )
        )

        if self._run_diagnostics:
            with Timer("diagnostics") as t_diag:
                report.diagnostics = validate_request(request, rel_map)
            report.step_metrics.append(
                CompileStepMetric(
                    step_name="Diagnostics",
                    success=report.diagnostics.is_valid,
                    elapsed_seconds=t_diag.elapsed,
                    detail=report.diagnostics.summary(),
                )
            )

        with Timer("code_generation") as t_gen:
            try:
                report.files = dict(self.iter_artifacts(request, rel_map))
            except GenerationError as exc:
                report.generation_errors.append(str(exc))
                logger.error("Code generation failed: %s", exc)

        report.total_files = len(report.files)
        report.total_lines = sum(count_lines(c) for c in report.files.values())
        report.total_bytes = sum(len(c.encode("utf-8")) for c in report.files.values())
        report.step_metrics.append(
            CompileStepMetric(
                step_name="Code Generation",
                success=not report.generation_errors,
                elapsed_seconds=t_gen.elapsed,
                detail=f"{report.total_files} files, ~{report.total_lines:,} lines",
            )
        )

        report.success = not report.generation_errors and report.tables_compiled > 0
        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        logger.info(
            "Compiled %d table(s) into %d file(s) in %.3fs.",
            report.tables_compiled,
            report.total_files,
            report.total_elapsed_seconds,
        )
        return report

    def compile_to_package(self, request: GenerationRequest, destination: Path) -> CompileReport:
        """Compile and write the files straight into a zip package."""
        report: CompileReport = self.compile(request)
        if not report.success:
            return report

        with Timer("package") as t_pkg:
            report.manifest = package_files(report.files, destination)
        report.package_path = str(destination)
        report.step_metrics.append(
            CompileStepMetric(
                step_name="Package",
                elapsed_seconds=t_pkg.elapsed,
                detail=f"{report.manifest.total_files} entries",
            )
        )
        report.total_elapsed_seconds += t_pkg.elapsed
        return report


__all__: List[str] = [
    "ScaffoldGenerator",
    "CompileReport",
    "CompileStepMetric",
    "load_schema_file",
    "parse_raw_request",
]

logger.debug("dbscaffold.generator loaded.")
