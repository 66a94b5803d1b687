# File: dbscaffold/relationships.py
"""
dbscaffold - Relationship Resolver
===================================
Derives the inverse side of every declared foreign key.

Each dependent table declares ``FK → principal`` on one of its properties;
the principal never declares anything.  ``resolve_inverse_relationships``
turns the dependent-side declarations into a map keyed by principal table
name, which the model and context generators then consume read-only to emit
bidirectional associations.

Complexity: O(T × P) where T = tables, P = properties per table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Set

from dbscaffold.models import InverseRelationshipInfo, TableDefinition
from dbscaffold.utils import pluralize, to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.relationships")

RelationshipMap = Dict[str, List[InverseRelationshipInfo]]


def resolve_inverse_relationships(
    tables: Sequence[TableDefinition],
) -> RelationshipMap:
    """
    Build ``principal table name → [InverseRelationshipInfo, ...]``.

    One entry per referencing foreign-key property; a table that references
    the same principal twice contributes two entries.  Principals without any
    incoming foreign key get no key at all (not an empty list).  Referenced
    tables are recorded as declared, whether or not they are in *tables*.
    """
    result: RelationshipMap = {}

    for table in tables:
        if not table.name.strip():
            continue
        collection_name: str = pluralize(to_pascal_case(table.name))
        for prop in table.properties:
            if not prop.references_table:
                continue
            principal: str = prop.referenced_table_name or ""
            result.setdefault(principal, []).append(
                InverseRelationshipInfo(
                    referencing_table=table.name,
                    foreign_key_property=prop.name,
                    navigation_property=prop.navigation_property_name,
                    collection_name=collection_name,
                )
            )

    logger.debug(
        "Resolved inverse relationships: %d principal table(s), %d entr(ies).",
        len(result),
        sum(len(v) for v in result.values()),
    )
    return result


# ---------------------------------------------------------------------------
# Collection planning (shared by the model and context generators)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class InverseCollectionPlan:
    """Decision for one inverse entry on a principal table."""

    info: InverseRelationshipInfo
    emitted: bool
    skip_reason: str = ""

    @property
    def element_type(self) -> str:
        return to_pascal_case(self.info.referencing_table)


def plan_inverse_collections(
    table: TableDefinition,
    relationship_map: Mapping[str, List[InverseRelationshipInfo]],
) -> List[InverseCollectionPlan]:
    """
    Decide which inverse collections *table* receives.

    An entry is skipped when its collection name collides with the class name, an
    existing property, an explicit navigation name or a collection emitted
    for an earlier entry.  Order follows the relationship map.
    """
    entries: List[InverseRelationshipInfo] = list(relationship_map.get(table.name, []))
    if not entries:
        return []

    # C# members may not share the enclosing class name.
    taken: Set[str] = {to_pascal_case(table.name)}
    taken |= {to_pascal_case(p.name) for p in table.properties}
    taken |= {
        to_pascal_case(p.navigation_property_name)
        for p in table.properties
        if p.navigation_property_name
    }

    plans: List[InverseCollectionPlan] = []
    for info in entries:
        name: str = info.collection_name
        if name in taken:
            plans.append(
                InverseCollectionPlan(
                    info=info,
                    emitted=False,
                    skip_reason="name conflicts with an existing member",
                )
            )
            logger.debug(
                "Skipping inverse collection '%s' on '%s' (from %s.%s).",
                name,
                table.name,
                info.referencing_table,
                info.foreign_key_property,
            )
            continue
        taken.add(name)
        plans.append(InverseCollectionPlan(info=info, emitted=True))
    return plans


def find_inverse_collection(
    principal_table_name: str,
    dependent_table_name: str,
    foreign_key_property: str,
    tables_by_name: Mapping[str, TableDefinition],
    relationship_map: Mapping[str, List[InverseRelationshipInfo]],
) -> Optional[str]:
    """
    Return the collection emitted on the principal for one dependent FK.

    ``None`` when the principal is not part of the compiled tables (dangling
    reference) or when its collection for that FK was skipped.
    """
    principal: Optional[TableDefinition] = tables_by_name.get(principal_table_name)
    if principal is None:
        return None
    for plan in plan_inverse_collections(principal, relationship_map):
        if (
            plan.emitted
            and plan.info.referencing_table == dependent_table_name
            and plan.info.foreign_key_property == foreign_key_property
        ):
            return plan.info.collection_name
    return None


__all__: List[str] = [
    "RelationshipMap",
    "InverseCollectionPlan",
    "resolve_inverse_relationships",
    "plan_inverse_collections",
    "find_inverse_collection",
]
