# File: dbscaffold/validators.py
"""
dbscaffold - Request Diagnostics
=================================
This module provides a **pure-function diagnostics pipeline** that operates
on the Pydantic V2 models defined in ``dbscaffold.models``.

Pydantic's built-in validators reject malformed shapes (unknown data types,
invalid namespaces, duplicate table names).  Everything here is advisory:
the compiler is permissive and will still emit code for a request that
carries warnings, and only a request without valid tables blocks a job.
Diagnostics surface problems the generated C# would otherwise reveal only
at build time: names that are not identifiers, member collisions, bounds
that contradict each other.

Usage by downstream modules:
    from dbscaffold.validators import validate_request
    result = validate_request(request)
    print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Set

from dbscaffold.models import DeleteBehavior, GenerationRequest, TableDefinition
from dbscaffold.relationships import (
    RelationshipMap,
    plan_inverse_collections,
    resolve_inverse_relationships,
)
from dbscaffold.utils import to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.validators")

# ---------------------------------------------------------------------------
# Diagnostic container
# ---------------------------------------------------------------------------


class Diagnostic:
    """Lightweight diagnostic record (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``Diagnostic`` records produced by the checks below."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []

    def _add(self, level: str, code: str, message: str, context: Optional[Dict[str, Any]]) -> None:
        self._items.append(Diagnostic(level, code, message, context))

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._add("error", code, message, context)

    def add_warning(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._add("warning", code, message, context)

    def add_info(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._add("info", code, message, context)

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self._items if d.is_error]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self._items if d.is_warning]

    @property
    def infos(self) -> List[Diagnostic]:
        return [d for d in self._items if d.level == "info"]

    @property
    def all_items(self) -> List[Diagnostic]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [d.code for d in self._items]

    def summary(self) -> str:
        return (
            f"Diagnostics: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            marker: str = {"error": "✗", "warning": "⚠", "info": "ℹ"}.get(item.level, "•")
            lines.append(f"  {marker} [{item.code}] {item.message}")
        return "\n".join(lines)


_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(
    result: ValidationResult, kind: str, name: str, context: Dict[str, Any]
) -> None:
    pascal: str = to_pascal_case(name)
    if not _IDENTIFIER_RE.match(pascal):
        result.add_warning(
            f"{kind.upper()}_NAME_NOT_IDENTIFIER",
            f"{kind.capitalize()} name '{name}' does not produce a valid C# identifier "
            f"('{pascal}').",
            context,
        )


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_table_names(request: GenerationRequest) -> ValidationResult:
    """Blank tables, empty tables and names that are not identifiers."""
    result: ValidationResult = ValidationResult()
    for index, table in enumerate(request.tables):
        if not table.name.strip():
            result.add_info(
                "TABLE_SKIPPED_BLANK_NAME",
                f"Table #{index + 1} has a blank name and will be skipped.",
                {"index": index},
            )
            continue
        if not table.properties:
            result.add_info(
                "TABLE_SKIPPED_NO_PROPERTIES",
                f"Table '{table.name}' has no properties and will be skipped.",
                {"table": table.name},
            )
            continue
        _check_identifier(result, "table", table.name, {"table": table.name})
    return result


def validate_property_names(request: GenerationRequest) -> ValidationResult:
    """Identifier checks and member-name collisions after PascalCase conversion."""
    result: ValidationResult = ValidationResult()
    for table in request.valid_tables():
        seen: Dict[str, str] = {}
        class_name: str = to_pascal_case(table.name)
        for prop in table.properties:
            ctx: Dict[str, Any] = {"table": table.name, "property": prop.name}
            _check_identifier(result, "property", prop.name, ctx)
            member: str = to_pascal_case(prop.name)
            if member in seen:
                result.add_error(
                    "DUPLICATE_PROPERTY_NAME",
                    f"Properties '{seen[member]}' and '{prop.name}' of table "
                    f"'{table.name}' both map to member '{member}'.",
                    ctx,
                )
            else:
                seen[member] = prop.name
            if member == class_name:
                result.add_warning(
                    "PROPERTY_NAMED_LIKE_CLASS",
                    f"Property '{prop.name}' has the same name as its class '{class_name}'.",
                    ctx,
                )
    return result


def validate_primary_keys(request: GenerationRequest) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for table in request.valid_tables():
        if not table.primary_keys:
            result.add_warning(
                "NO_PRIMARY_KEY",
                f"Table '{table.name}' declares no primary key; EF Core will "
                f"refuse to track it until one is configured.",
                {"table": table.name},
            )
    return result


def validate_foreign_keys(request: GenerationRequest) -> ValidationResult:
    """
    Foreign-key declarations.

    A dangling target (a table absent from the request) is informational
    only: the generators emit it as declared.
    """
    result: ValidationResult = ValidationResult()
    known: Set[str] = {t.name for t in request.valid_tables()}

    for table in request.valid_tables():
        for prop in table.foreign_keys:
            ctx: Dict[str, Any] = {"table": table.name, "property": prop.name}
            if not prop.referenced_table_name:
                result.add_warning(
                    "FK_WITHOUT_REFERENCED_TABLE",
                    f"'{table.name}.{prop.name}' is marked as a foreign key but names "
                    f"no referenced table; no association is generated.",
                    ctx,
                )
                continue
            if prop.referenced_table_name not in known:
                result.add_info(
                    "FK_TARGET_NOT_IN_REQUEST",
                    f"'{table.name}.{prop.name}' references '{prop.referenced_table_name}', "
                    f"which is not part of this request.",
                    ctx,
                )
            if prop.delete_behavior and DeleteBehavior.parse(prop.delete_behavior) is None:
                result.add_warning(
                    "UNKNOWN_DELETE_BEHAVIOR",
                    f"Delete behavior '{prop.delete_behavior}' on '{table.name}.{prop.name}' "
                    f"is not recognised; the default for its nullability applies.",
                    ctx,
                )
    return result


def validate_inverse_collections(
    request: GenerationRequest, relationship_map: Optional[RelationshipMap] = None
) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    tables: List[TableDefinition] = request.valid_tables()
    rel_map: RelationshipMap = (
        relationship_map if relationship_map is not None else resolve_inverse_relationships(tables)
    )
    for table in tables:
        for plan in plan_inverse_collections(table, rel_map):
            if plan.emitted:
                continue
            result.add_warning(
                "INVERSE_COLLECTION_CONFLICT",
                f"Inverse collection '{plan.info.collection_name}' on '{table.name}' "
                f"(from {plan.info.referencing_table}.{plan.info.foreign_key_property}) "
                f"is skipped: {plan.skip_reason}.",
                {"table": table.name, "collection": plan.info.collection_name},
            )
    return result


def validate_property_constraints(request: GenerationRequest) -> ValidationResult:
    """Contradicting bounds and constraints that do not fit the data type."""
    result: ValidationResult = ValidationResult()
    for table in request.valid_tables():
        for prop in table.properties:
            ctx: Dict[str, Any] = {"table": table.name, "property": prop.name}
            if (
                prop.range_min is not None
                and prop.range_max is not None
                and prop.range_min > prop.range_max
            ):
                result.add_error(
                    "RANGE_MIN_EXCEEDS_MAX",
                    f"'{table.name}.{prop.name}': range minimum {prop.range_min} "
                    f"exceeds maximum {prop.range_max}.",
                    ctx,
                )
            if (
                prop.min_length is not None
                and prop.max_length is not None
                and prop.min_length > prop.max_length
            ):
                result.add_error(
                    "MIN_LENGTH_EXCEEDS_MAX",
                    f"'{table.name}.{prop.name}': minimum length {prop.min_length} "
                    f"exceeds maximum length {prop.max_length}.",
                    ctx,
                )
            if prop.is_timestamp and prop.logical_type != "byte-sequence":
                result.add_warning(
                    "TIMESTAMP_NOT_BYTES",
                    f"'{table.name}.{prop.name}' is a row-version column but is not a "
                    f"byte sequence.",
                    ctx,
                )
    return result


# ---------------------------------------------------------------------------
# Composite orchestrator
# ---------------------------------------------------------------------------

_RequestValidator = Callable[[GenerationRequest], ValidationResult]

_REQUEST_VALIDATORS: List[_RequestValidator] = [
    validate_table_names,
    validate_property_names,
    validate_primary_keys,
    validate_foreign_keys,
    validate_property_constraints,
]


def validate_request(
    request: GenerationRequest, relationship_map: Optional[RelationshipMap] = None
) -> ValidationResult:
    """
    **Diagnostics entry point.**

    Runs every check and merges the results.  Used by the CLI
    (``--validate-only``) and by ``ScaffoldGenerator.compile``.
    """
    logger.info("Starting request diagnostics: %d table(s).", len(request.tables))

    result: ValidationResult = ValidationResult()
    for validator in _REQUEST_VALIDATORS:
        result.merge(validator(request))
    result.merge(validate_inverse_collections(request, relationship_map))

    if result.has_errors:
        logger.warning("Diagnostics found %d error(s). %s", len(result.errors), result.summary())
    else:
        logger.info("Diagnostics passed. %s", result.summary())
    return result


__all__: List[str] = [
    "Diagnostic",
    "ValidationResult",
    "validate_table_names",
    "validate_property_names",
    "validate_primary_keys",
    "validate_foreign_keys",
    "validate_inverse_collections",
    "validate_property_constraints",
    "validate_request",
]

logger.debug("dbscaffold.validators loaded — %d public symbols.", len(__all__))
