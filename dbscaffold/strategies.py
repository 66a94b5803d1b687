# File: dbscaffold/strategies.py
"""
dbscaffold - Emission Strategies
=================================
Decides *which* textual constructs express the metadata of a property:
data annotations on the entity, fluent calls in ``OnModelCreating``, or both.

The generators in ``templates.py`` never branch on the configuration style
themselves; they ask the strategy selected by ``get_emission_strategy``.
Keys, associations and the soft-delete query filter have no annotation
equivalent that covers every case, so the context generator emits them
unconditionally and they are not part of this contract.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Type

from dbscaffold.models import ConfigurationStyle, PropertyDefinition, TableDefinition
from dbscaffold.utils import (
    csharp_string_literal,
    csharp_verbatim_literal,
    format_csharp_number,
    to_pascal_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.strategies")


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------


def _is_required_text(prop: PropertyDefinition) -> bool:
    return not prop.is_nullable and not prop.is_primary_key and prop.logical_type == "text"


def _range_bounds(prop: PropertyDefinition) -> tuple:
    low: str = (
        format_csharp_number(prop.range_min) if prop.range_min is not None else "double.MinValue"
    )
    high: str = (
        format_csharp_number(prop.range_max) if prop.range_max is not None else "double.MaxValue"
    )
    return low, high


def _annotation_lines(prop: PropertyDefinition, table: TableDefinition) -> List[str]:
    """Every data annotation that applies to *prop*, in a fixed order."""
    lines: List[str] = []
    if prop.is_primary_key and len(table.primary_keys) == 1:
        lines.append("[Key]")
    if prop.max_length is not None:
        lines.append(f"[MaxLength({prop.max_length})]")
    if prop.min_length is not None:
        lines.append(f"[MinLength({prop.min_length})]")
    if _is_required_text(prop):
        lines.append("[Required]")
    if prop.range_min is not None or prop.range_max is not None:
        low, high = _range_bounds(prop)
        lines.append(f"[Range({low}, {high})]")
    if prop.is_email_address:
        lines.append("[EmailAddress]")
    if prop.is_phone_number:
        lines.append("[Phone]")
    if prop.is_url:
        lines.append("[Url]")
    if prop.regex_pattern:
        lines.append(f"[RegularExpression({csharp_verbatim_literal(prop.regex_pattern)})]")
    if prop.column_type_name:
        lines.append(f"[Column(TypeName = {csharp_string_literal(prop.column_type_name)})]")
    if prop.is_timestamp:
        lines.append("[Timestamp]")
    if prop.is_concurrency_token:
        lines.append("[ConcurrencyCheck]")
    return lines


def _fluent_storage_chain(prop: PropertyDefinition) -> List[str]:
    """Fluent calls for the storage facets of one property."""
    calls: List[str] = []
    if prop.max_length is not None:
        calls.append(f"HasMaxLength({prop.max_length})")
    if _is_required_text(prop):
        calls.append("IsRequired()")
    if prop.column_type_name:
        calls.append(f"HasColumnType({csharp_string_literal(prop.column_type_name)})")
    if prop.is_timestamp:
        calls.append("IsRowVersion()")
    if prop.is_concurrency_token:
        calls.append("IsConcurrencyToken()")
    return calls


def _fluent_validation_lines(prop: PropertyDefinition, table: TableDefinition) -> List[str]:
    """Check constraints and notes for validation rules, fluent-only mode."""
    lines: List[str] = []
    member: str = to_pascal_case(prop.name)
    entity: str = to_pascal_case(table.name)

    if prop.range_min is not None or prop.range_max is not None:
        clauses: List[str] = []
        if prop.range_min is not None:
            clauses.append(f"[{member}] >= {format_csharp_number(prop.range_min)}")
        if prop.range_max is not None:
            clauses.append(f"[{member}] <= {format_csharp_number(prop.range_max)}")
        sql: str = " AND ".join(clauses)
        lines.append(
            f"entity.ToTable(t => t.HasCheckConstraint("
            f'"CK_{entity}_{member}_Range", {csharp_string_literal(sql)}));'
        )
    if prop.min_length is not None:
        sql = f"LEN([{member}]) >= {prop.min_length}"
        lines.append(
            f"entity.ToTable(t => t.HasCheckConstraint("
            f'"CK_{entity}_{member}_MinLength", {csharp_string_literal(sql)}));'
        )

    unmapped: List[str] = []
    if prop.is_email_address:
        unmapped.append("email address")
    if prop.is_phone_number:
        unmapped.append("phone number")
    if prop.is_url:
        unmapped.append("url")
    if prop.regex_pattern:
        unmapped.append("regular expression")
    for rule in unmapped:
        lines.append(f"// {member}: {rule} validation has no fluent equivalent.")
    return lines


# ---------------------------------------------------------------------------
# Strategy contract
# ---------------------------------------------------------------------------


class EmissionStrategy(ABC):
    """One configuration style, expressed over the same resolved schema."""

    style: ConfigurationStyle
    emits_annotations: bool = False

    @abstractmethod
    def property_annotations(
        self, prop: PropertyDefinition, table: TableDefinition
    ) -> List[str]:
        """Attribute lines placed above the entity property."""

    @abstractmethod
    def navigation_annotations(self, prop: PropertyDefinition) -> List[str]:
        """Attribute lines placed above a reference navigation."""

    @abstractmethod
    def fluent_property_lines(self, table: TableDefinition) -> List[str]:
        """Statements on ``entity`` inside the table's ``OnModelCreating`` block."""

    def model_usings(self) -> List[str]:
        usings: List[str] = ["System", "System.Collections.Generic"]
        if self.emits_annotations:
            usings.extend(
                [
                    "System.ComponentModel.DataAnnotations",
                    "System.ComponentModel.DataAnnotations.Schema",
                ]
            )
        return usings

    def __repr__(self) -> str:
        return f"<{type(self).__name__} style={self.style.value}>"


class _AnnotatingStrategy(EmissionStrategy):
    emits_annotations = True

    def property_annotations(
        self, prop: PropertyDefinition, table: TableDefinition
    ) -> List[str]:
        return _annotation_lines(prop, table)

    def navigation_annotations(self, prop: PropertyDefinition) -> List[str]:
        fk_member: str = to_pascal_case(prop.name)
        conventional: str = f"{to_pascal_case(prop.referenced_table_name or '')}Id"
        if fk_member != conventional:
            return [f"[ForeignKey({csharp_string_literal(fk_member)})]"]
        return []


class AnnotationsAndFluentStrategy(_AnnotatingStrategy):
    """Annotations on the entity plus fluent storage facets in the context."""

    style = ConfigurationStyle.ANNOTATIONS_AND_FLUENT_API

    def fluent_property_lines(self, table: TableDefinition) -> List[str]:
        lines: List[str] = []
        for prop in table.properties:
            calls: List[str] = _fluent_storage_chain(prop)
            if calls:
                lines.append(
                    f"entity.Property(e => e.{to_pascal_case(prop.name)})."
                    + ".".join(calls)
                    + ";"
                )
        return lines


class AnnotationsOnlyStrategy(_AnnotatingStrategy):
    """Annotations only; the context keeps just keys, associations and filters."""

    style = ConfigurationStyle.ANNOTATIONS_ONLY

    def fluent_property_lines(self, table: TableDefinition) -> List[str]:
        return []


class FluentApiOnlyStrategy(EmissionStrategy):
    """No annotations at all; everything expressible goes to the context."""

    style = ConfigurationStyle.FLUENT_API_ONLY

    def property_annotations(
        self, prop: PropertyDefinition, table: TableDefinition
    ) -> List[str]:
        return []

    def navigation_annotations(self, prop: PropertyDefinition) -> List[str]:
        return []

    def fluent_property_lines(self, table: TableDefinition) -> List[str]:
        lines: List[str] = []
        for prop in table.properties:
            calls: List[str] = _fluent_storage_chain(prop)
            if calls:
                lines.append(
                    f"entity.Property(e => e.{to_pascal_case(prop.name)})."
                    + ".".join(calls)
                    + ";"
                )
            lines.extend(_fluent_validation_lines(prop, table))
        return lines


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_STRATEGIES: Dict[str, Type[EmissionStrategy]] = {
    ConfigurationStyle.ANNOTATIONS_AND_FLUENT_API.value: AnnotationsAndFluentStrategy,
    ConfigurationStyle.ANNOTATIONS_ONLY.value: AnnotationsOnlyStrategy,
    ConfigurationStyle.FLUENT_API_ONLY.value: FluentApiOnlyStrategy,
}


def get_emission_strategy(style: ConfigurationStyle | str) -> EmissionStrategy:
    """Instantiate the strategy for a configuration style value."""
    key: str = ConfigurationStyle(style).value
    strategy: EmissionStrategy = _STRATEGIES[key]()
    logger.debug("Selected emission strategy %r.", strategy)
    return strategy


__all__: List[str] = [
    "EmissionStrategy",
    "AnnotationsAndFluentStrategy",
    "AnnotationsOnlyStrategy",
    "FluentApiOnlyStrategy",
    "get_emission_strategy",
]
