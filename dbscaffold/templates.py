# File: dbscaffold/templates.py
"""
dbscaffold - Code Template Engine
==================================
Pure-Python code generation engine for Entity Framework Core solutions.

This module transforms ``TableDefinition`` objects and the options of a
``GenerationRequest`` into C# source strings for:
    1. Entity classes (one per table)
    2. The ``DbContext`` with ``OnModelCreating`` wiring
    3. A generic repository pair (interface + implementation)
    4. Per-table repository pairs
    5. Per-table service pairs
    6. xUnit test scaffolds
    7. ``IServiceCollection`` registration extensions

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()`` pattern.
    - Template methods are stateless; the relationship map is passed in and
      only ever read.

**Determinism contract:**
    - Same request and relationship map in, byte-identical text out.
    - Member order follows declared property order; collections follow the
      relationship map order; tables follow request order.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from dbscaffold.models import (
    DeleteBehavior,
    GenerationRequest,
    InverseRelationshipInfo,
    PropertyDefinition,
    TableDefinition,
)
from dbscaffold.relationships import (
    InverseCollectionPlan,
    find_inverse_collection,
    plan_inverse_collections,
)
from dbscaffold.strategies import EmissionStrategy, get_emission_strategy
from dbscaffold.utils import (
    CSHARP_SAMPLE_VALUES,
    csharp_string_literal,
    csharp_type,
    pluralize,
    to_camel_case,
    to_pascal_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_I1: str = "    "
_I2: str = _I1 * 2
_I3: str = _I1 * 3

SOFT_DELETE_MEMBER: str = "IsDeleted"

_HEADER: str = "// <auto-generated>Generated by dbscaffold.</auto-generated>"

# Artifact kind → logical subdirectory of the staging area
ARTIFACT_DIRECTORIES: Dict[str, str] = {
    "entity": "Entities",
    "context": "Data",
    "repository_interface": "Repositories/Interfaces",
    "repository": "Repositories/Implementations",
    "service_interface": "Services/Interfaces",
    "service": "Services/Implementations",
    "repository_tests": "Tests/Repositories",
    "service_tests": "Tests/Services",
    "extensions": "Extensions",
}

RelationshipMapping = Mapping[str, List[InverseRelationshipInfo]]


# ---------------------------------------------------------------------------
# Helper functions (module-private)
# ---------------------------------------------------------------------------


def _file_prologue(usings: Sequence[str], namespace: str) -> List[str]:
    lines: List[str] = [_HEADER]
    for using in usings:
        lines.append(f"using {using};")
    lines.append("")
    lines.append(f"namespace {namespace};")
    lines.append("")
    return lines


def _finish(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"


def _soft_delete_member(table: TableDefinition) -> Optional[str]:
    """Member name of a declared soft-delete flag, if the table declares one."""
    for prop in table.properties:
        if prop.name.replace("_", "").lower() == SOFT_DELETE_MEMBER.lower():
            return to_pascal_case(prop.name)
    return None


def _resolve_delete_behavior(prop: PropertyDefinition) -> DeleteBehavior:
    parsed: Optional[DeleteBehavior] = DeleteBehavior.parse(prop.delete_behavior)
    if parsed is not None:
        return parsed
    return DeleteBehavior.CLIENT_SET_NULL if prop.is_nullable else DeleteBehavior.CASCADE


def _key_parameter_type(table: TableDefinition) -> str:
    keys: List[PropertyDefinition] = table.primary_keys
    if len(keys) == 1:
        return csharp_type(keys[0].logical_type, False)
    if len(keys) > 1:
        return "object[]"
    return "object"


# ---------------------------------------------------------------------------
# TemplateGenerator class
# ---------------------------------------------------------------------------


class TemplateGenerator:
    """
    Stateless code-generation engine.

    Accepts a ``GenerationRequest`` for its global options and produces C#
    source strings.  Each ``generate_*`` method returns a complete file.

    Thread-safe: no mutable instance state.
    """

    def __init__(self, request: GenerationRequest) -> None:
        self._request: GenerationRequest = request
        self._strategy: EmissionStrategy = get_emission_strategy(request.style)
        self._ns: str = request.root_namespace
        self._ctx: str = request.db_context_name

        naming = request.naming_conventions
        self._repo_prefix: str = naming.repository_interface_prefix
        self._repo_suffix: str = naming.repository_class_suffix
        self._service_prefix: str = naming.service_interface_prefix
        self._service_suffix: str = naming.service_class_suffix
        self._generic_repo: str = naming.repository_class_suffix or "Repository"
        self._generic_repo_interface: str = f"{self._repo_prefix}{self._generic_repo}"

        logger.debug(
            "TemplateGenerator initialised (namespace=%s, context=%s, style=%s).",
            self._ns,
            self._ctx,
            request.style.value,
        )

    # -- Naming -------------------------------------------------------------

    @property
    def strategy(self) -> EmissionStrategy:
        return self._strategy

    def _namespace(self, kind: str) -> str:
        return f"{self._ns}.{ARTIFACT_DIRECTORIES[kind].replace('/', '.')}"

    @staticmethod
    def class_name(table: TableDefinition) -> str:
        return to_pascal_case(table.name)

    def repository_interface_name(self, table: TableDefinition) -> str:
        return f"{self._repo_prefix}{self.class_name(table)}{self._repo_suffix}"

    def repository_class_name(self, table: TableDefinition) -> str:
        return f"{self.class_name(table)}{self._repo_suffix}"

    def service_interface_name(self, table: TableDefinition) -> str:
        return f"{self._service_prefix}{self.class_name(table)}{self._service_suffix}"

    def service_class_name(self, table: TableDefinition) -> str:
        return f"{self.class_name(table)}{self._service_suffix}"

    def _emits_service_interfaces(self) -> bool:
        return self._request.generate_services and self._request.generate_service_interfaces

    # ===================================================================
    # 1. Entity class
    # ===================================================================

    def generate_model(
        self, table: TableDefinition, relationship_map: RelationshipMapping
    ) -> str:
        """
        Generate the entity class for one table.

        Scalar properties come first in declared order, then reference
        navigations, inverse collections and finally the soft-delete flag.
        """
        class_name: str = self.class_name(table)
        lines: List[str] = _file_prologue(
            self._strategy.model_usings(), self._namespace("entity")
        )

        lines.append("/// <summary>")
        lines.append(f"/// Entity mapped to table '{table.name}'.")
        lines.append("/// </summary>")
        lines.append(f"public class {class_name}")
        lines.append("{")

        members: List[List[str]] = []

        for prop in table.properties:
            block: List[str] = [
                f"{_I1}{a}" for a in self._strategy.property_annotations(prop, table)
            ]
            ctype: str = csharp_type(prop.logical_type, prop.is_nullable)
            block.append(f"{_I1}public {ctype} {to_pascal_case(prop.name)} {{ get; set; }}")
            members.append(block)

        for prop in table.properties:
            if not (prop.references_table and prop.navigation_property_name):
                continue
            block = [f"{_I1}{a}" for a in self._strategy.navigation_annotations(prop)]
            principal: str = to_pascal_case(prop.referenced_table_name or "")
            nav: str = to_pascal_case(prop.navigation_property_name)
            block.append(f"{_I1}public virtual {principal}? {nav} {{ get; set; }}")
            members.append(block)

        plans: List[InverseCollectionPlan] = plan_inverse_collections(table, relationship_map)
        for plan in plans:
            info: InverseRelationshipInfo = plan.info
            if not plan.emitted:
                members.append(
                    [
                        f"{_I1}// Inverse navigation '{info.collection_name}' from "
                        f"{info.referencing_table}.{info.foreign_key_property} skipped: "
                        f"{plan.skip_reason}."
                    ]
                )
                continue
            element: str = plan.element_type
            members.append(
                [
                    f"{_I1}public virtual ICollection<{element}> {info.collection_name} "
                    f"{{ get; set; }} = new List<{element}>();"
                ]
            )

        if self._request.soft_delete_enabled(table) and _soft_delete_member(table) is None:
            members.append([f"{_I1}public bool {SOFT_DELETE_MEMBER} {{ get; set; }}"])

        for index, block in enumerate(members):
            if index:
                lines.append("")
            lines.extend(block)

        lines.append("}")
        return _finish(lines)

    # ===================================================================
    # 2. DbContext
    # ===================================================================

    def generate_db_context(
        self,
        tables: Sequence[TableDefinition],
        relationship_map: RelationshipMapping,
    ) -> str:
        """
        Generate the persistence context for all compiled tables.

        Keys, associations and query filters are written for every style;
        per-property configuration depends on the emission strategy.
        """
        tables_by_name: Dict[str, TableDefinition] = {t.name: t for t in tables}
        lines: List[str] = _file_prologue(
            ["Microsoft.EntityFrameworkCore", self._namespace("entity")],
            self._namespace("context"),
        )

        lines.append(f"public class {self._ctx} : DbContext")
        lines.append("{")
        lines.append(f"{_I1}public {self._ctx}(DbContextOptions<{self._ctx}> options)")
        lines.append(f"{_I2}: base(options)")
        lines.append(f"{_I1}{{")
        lines.append(f"{_I1}}}")
        lines.append("")

        for table in tables:
            cls: str = self.class_name(table)
            lines.append(f"{_I1}public DbSet<{cls}> {pluralize(cls)} {{ get; set; }} = null!;")
        if tables:
            lines.append("")

        lines.append(f"{_I1}protected override void OnModelCreating(ModelBuilder modelBuilder)")
        lines.append(f"{_I1}{{")
        lines.append(f"{_I2}base.OnModelCreating(modelBuilder);")

        for table in tables:
            body: List[str] = self._entity_configuration(table, tables_by_name, relationship_map)
            lines.append("")
            lines.append(f"{_I2}modelBuilder.Entity<{self.class_name(table)}>(entity =>")
            lines.append(f"{_I2}{{")
            lines.extend(f"{_I3}{line}" if line else "" for line in body)
            lines.append(f"{_I2}}});")

        lines.append(f"{_I1}}}")
        lines.append("}")
        return _finish(lines)

    def _entity_configuration(
        self,
        table: TableDefinition,
        tables_by_name: Mapping[str, TableDefinition],
        relationship_map: RelationshipMapping,
    ) -> List[str]:
        body: List[str] = []

        keys: List[PropertyDefinition] = table.primary_keys
        if len(keys) == 1:
            body.append(f"entity.HasKey(e => e.{to_pascal_case(keys[0].name)});")
        elif keys:
            members: str = ", ".join(f"e.{to_pascal_case(k.name)}" for k in keys)
            body.append(f"entity.HasKey(e => new {{ {members} }});")

        body.extend(self._strategy.fluent_property_lines(table))

        for prop in table.properties:
            if prop.references_table:
                body.extend(
                    self._association_lines(table, prop, tables_by_name, relationship_map)
                )

        if self._request.soft_delete_enabled(table):
            member: str = _soft_delete_member(table) or SOFT_DELETE_MEMBER
            body.append(f"entity.HasQueryFilter(e => !e.{member});")

        return body

    def _association_lines(
        self,
        table: TableDefinition,
        prop: PropertyDefinition,
        tables_by_name: Mapping[str, TableDefinition],
        relationship_map: RelationshipMapping,
    ) -> List[str]:
        principal_name: str = prop.referenced_table_name or ""
        principal_cls: str = to_pascal_case(principal_name)

        if prop.navigation_property_name:
            first: str = f"entity.HasOne(e => e.{to_pascal_case(prop.navigation_property_name)})"
        else:
            first = f"entity.HasOne<{principal_cls}>()"

        chain: List[str] = [first]
        collection: Optional[str] = find_inverse_collection(
            principal_name, table.name, prop.name, tables_by_name, relationship_map
        )
        chain.append(f".WithMany(p => p.{collection})" if collection else ".WithMany()")
        chain.append(f".HasForeignKey(e => e.{to_pascal_case(prop.name)})")

        if prop.referenced_property_name:
            principal: Optional[TableDefinition] = tables_by_name.get(principal_name)
            principal_keys: List[PropertyDefinition] = principal.primary_keys if principal else []
            is_key: bool = (
                len(principal_keys) == 1
                and principal_keys[0].name == prop.referenced_property_name
            )
            if not is_key:
                chain.append(
                    f".HasPrincipalKey(p => p.{to_pascal_case(prop.referenced_property_name)})"
                )

        chain.append(f".OnDelete(DeleteBehavior.{_resolve_delete_behavior(prop).value})")
        if prop.custom_fk_constraint_name:
            chain.append(
                f".HasConstraintName({csharp_string_literal(prop.custom_fk_constraint_name)})"
            )

        chain[-1] += ";"
        return [chain[0]] + [f"{_I1}{c}" for c in chain[1:]]

    # ===================================================================
    # 3. Generic repository
    # ===================================================================

    def generate_generic_repository_interface(self) -> str:
        """Generate ``IRepository<TEntity>``."""
        name: str = self._generic_repo_interface
        lines: List[str] = _file_prologue(
            [
                "System",
                "System.Collections.Generic",
                "System.Linq.Expressions",
                "System.Threading",
                "System.Threading.Tasks",
            ],
            self._namespace("repository_interface"),
        )
        ct: str = "CancellationToken cancellationToken = default"
        predicate: str = "Expression<Func<TEntity, bool>>"

        lines.append(f"public interface {name}<TEntity> where TEntity : class")
        lines.append("{")
        lines.append(
            f"{_I1}Task<TEntity?> GetByIdAsync(object id, bool includeSoftDeleted = false, {ct});"
        )
        lines.append(
            f"{_I1}Task<IReadOnlyList<TEntity>> GetAllAsync("
            f"bool includeSoftDeleted = false, {ct});"
        )
        lines.append(
            f"{_I1}Task<IReadOnlyList<TEntity>> FindAsync({predicate} predicate, "
            f"bool includeSoftDeleted = false, {ct});"
        )
        lines.append(f"{_I1}Task AddAsync(TEntity entity, {ct});")
        lines.append(f"{_I1}Task AddRangeAsync(IEnumerable<TEntity> entities, {ct});")
        lines.append(f"{_I1}void Update(TEntity entity);")
        lines.append(f"{_I1}void Remove(TEntity entity, bool hardDelete = false);")
        lines.append(
            f"{_I1}void RemoveRange(IEnumerable<TEntity> entities, bool hardDelete = false);"
        )
        lines.append(
            f"{_I1}Task<int> CountAsync({predicate}? predicate = null, "
            f"bool includeSoftDeleted = false, {ct});"
        )
        lines.append(
            f"{_I1}Task<bool> ExistsAsync({predicate} predicate, "
            f"bool includeSoftDeleted = false, {ct});"
        )
        lines.append("}")
        return _finish(lines)

    def generate_generic_repository(self) -> str:
        """
        Generate ``Repository<TEntity>``.

        Soft removal applies to any entity exposing an ``IsDeleted`` property
        (looked up once per closed generic type); other entities are always
        removed physically.
        """
        name: str = self._generic_repo
        iface: str = self._generic_repo_interface
        ctx: str = self._ctx
        ct: str = "CancellationToken cancellationToken = default"
        predicate: str = "Expression<Func<TEntity, bool>>"

        lines: List[str] = _file_prologue(
            [
                "System",
                "System.Collections.Generic",
                "System.Linq",
                "System.Linq.Expressions",
                "System.Reflection",
                "System.Threading",
                "System.Threading.Tasks",
                "Microsoft.EntityFrameworkCore",
                self._namespace("context"),
                self._namespace("repository_interface"),
            ],
            self._namespace("repository"),
        )

        lines += [
            f"public class {name}<TEntity> : {iface}<TEntity> where TEntity : class",
            "{",
            f"{_I1}private static readonly PropertyInfo? SoftDeleteProperty =",
            f"{_I2}typeof(TEntity).GetProperty(",
            f'{_I3}"{SOFT_DELETE_MEMBER}",',
            f"{_I3}BindingFlags.Public | BindingFlags.Instance | BindingFlags.IgnoreCase);",
            "",
            f"{_I1}protected readonly {ctx} Context;",
            f"{_I1}protected readonly DbSet<TEntity> DbSet;",
            "",
            f"{_I1}public {name}({ctx} context)",
            f"{_I1}{{",
            f"{_I2}Context = context;",
            f"{_I2}DbSet = context.Set<TEntity>();",
            f"{_I1}}}",
            "",
            f"{_I1}protected IQueryable<TEntity> Query(bool includeSoftDeleted)",
            f"{_I1}{{",
            f"{_I2}return includeSoftDeleted ? DbSet.IgnoreQueryFilters() : DbSet;",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task<TEntity?> GetByIdAsync("
            f"object id, bool includeSoftDeleted = false, {ct})",
            f"{_I1}{{",
            f"{_I2}var keyValues = id as object[] ?? new[] {{ id }};",
            f"{_I2}if (!includeSoftDeleted)",
            f"{_I2}{{",
            f"{_I3}return await DbSet.FindAsync(keyValues, cancellationToken);",
            f"{_I2}}}",
            "",
            f"{_I2}var key = Context.Model.FindEntityType(typeof(TEntity))?.FindPrimaryKey()",
            f"{_I3}?? throw new InvalidOperationException("
            f'$"{{typeof(TEntity).Name}} has no primary key.");',
            f"{_I2}var query = DbSet.IgnoreQueryFilters();",
            f"{_I2}for (var i = 0; i < key.Properties.Count; i++)",
            f"{_I2}{{",
            f"{_I3}var propertyName = key.Properties[i].Name;",
            f"{_I3}var value = keyValues[i];",
            f"{_I3}query = query.Where(e => Equals(EF.Property<object>(e, propertyName), value));",
            f"{_I2}}}",
            f"{_I2}return await query.FirstOrDefaultAsync(cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task<IReadOnlyList<TEntity>> GetAllAsync("
            f"bool includeSoftDeleted = false, {ct})",
            f"{_I1}{{",
            f"{_I2}return await Query(includeSoftDeleted).ToListAsync(cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task<IReadOnlyList<TEntity>> FindAsync("
            f"{predicate} predicate, bool includeSoftDeleted = false, {ct})",
            f"{_I1}{{",
            f"{_I2}return await Query(includeSoftDeleted).Where(predicate)"
            f".ToListAsync(cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task AddAsync(TEntity entity, {ct})",
            f"{_I1}{{",
            f"{_I2}await DbSet.AddAsync(entity, cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task AddRangeAsync(IEnumerable<TEntity> entities, {ct})",
            f"{_I1}{{",
            f"{_I2}await DbSet.AddRangeAsync(entities, cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual void Update(TEntity entity)",
            f"{_I1}{{",
            f"{_I2}DbSet.Update(entity);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual void Remove(TEntity entity, bool hardDelete = false)",
            f"{_I1}{{",
            f"{_I2}if (!hardDelete && SoftDeleteProperty != null)",
            f"{_I2}{{",
            f"{_I3}SoftDeleteProperty.SetValue(entity, true);",
            f"{_I3}DbSet.Update(entity);",
            f"{_I3}return;",
            f"{_I2}}}",
            f"{_I2}DbSet.Remove(entity);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual void RemoveRange("
            f"IEnumerable<TEntity> entities, bool hardDelete = false)",
            f"{_I1}{{",
            f"{_I2}foreach (var entity in entities)",
            f"{_I2}{{",
            f"{_I3}Remove(entity, hardDelete);",
            f"{_I2}}}",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task<int> CountAsync("
            f"{predicate}? predicate = null, bool includeSoftDeleted = false, {ct})",
            f"{_I1}{{",
            f"{_I2}var query = Query(includeSoftDeleted);",
            f"{_I2}return predicate == null",
            f"{_I3}? await query.CountAsync(cancellationToken)",
            f"{_I3}: await query.CountAsync(predicate, cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public virtual async Task<bool> ExistsAsync("
            f"{predicate} predicate, bool includeSoftDeleted = false, {ct})",
            f"{_I1}{{",
            f"{_I2}return await Query(includeSoftDeleted).AnyAsync(predicate, cancellationToken);",
            f"{_I1}}}",
            "}",
        ]
        return _finish(lines)

    # ===================================================================
    # 4. Per-table repository
    # ===================================================================

    def generate_specific_repository_interface(self, table: TableDefinition) -> str:
        cls: str = self.class_name(table)
        lines: List[str] = _file_prologue(
            [self._namespace("entity")], self._namespace("repository_interface")
        )
        lines.append(
            f"public interface {self.repository_interface_name(table)} "
            f": {self._generic_repo_interface}<{cls}>"
        )
        lines.append("{")
        lines.append(f"{_I1}// Add custom queries for {cls} here.")
        lines.append("}")
        return _finish(lines)

    def generate_specific_repository(self, table: TableDefinition) -> str:
        cls: str = self.class_name(table)
        name: str = self.repository_class_name(table)
        lines: List[str] = _file_prologue(
            [
                self._namespace("context"),
                self._namespace("entity"),
                self._namespace("repository_interface"),
            ],
            self._namespace("repository"),
        )
        lines.append(
            f"public class {name} : {self._generic_repo}<{cls}>, "
            f"{self.repository_interface_name(table)}"
        )
        lines.append("{")
        lines.append(f"{_I1}public {name}({self._ctx} context)")
        lines.append(f"{_I2}: base(context)")
        lines.append(f"{_I1}{{")
        lines.append(f"{_I1}}}")
        lines.append("")
        lines.append(f"{_I1}// Implement custom queries for {cls} here.")
        lines.append("}")
        return _finish(lines)

    # ===================================================================
    # 5. Services
    # ===================================================================

    def _service_signatures(self, table: TableDefinition) -> List[str]:
        cls: str = self.class_name(table)
        key: str = _key_parameter_type(table)
        ct: str = "CancellationToken cancellationToken = default"
        signatures: List[str] = [
            f"Task<{cls}?> GetByIdAsync({key} id, bool includeSoftDeleted = false, {ct})",
            f"Task<IReadOnlyList<{cls}>> GetAllAsync(bool includeSoftDeleted = false, {ct})",
            f"Task<{cls}> CreateAsync({cls} entity, {ct})",
            f"Task UpdateAsync({key} id, {cls} entity, {ct})",
            f"Task DeleteAsync({key} id, bool hardDelete = false, {ct})",
        ]
        if not self._request.async_service_only:
            signatures += [
                f"{cls}? GetById({key} id, bool includeSoftDeleted = false)",
                f"IReadOnlyList<{cls}> GetAll(bool includeSoftDeleted = false)",
                f"{cls} Create({cls} entity)",
                f"void Update({key} id, {cls} entity)",
                f"void Delete({key} id, bool hardDelete = false)",
            ]
        return signatures

    def generate_service_interface(self, table: TableDefinition) -> str:
        lines: List[str] = _file_prologue(
            [
                "System.Collections.Generic",
                "System.Threading",
                "System.Threading.Tasks",
                self._namespace("entity"),
            ],
            self._namespace("service_interface"),
        )
        lines.append(f"public interface {self.service_interface_name(table)}")
        lines.append("{")
        lines.extend(f"{_I1}{sig};" for sig in self._service_signatures(table))
        lines.append("}")
        return _finish(lines)

    def generate_service(self, table: TableDefinition) -> str:
        """
        Generate the service class for one table.

        Update and delete look the record up first and throw
        ``KeyNotFoundException`` when it does not exist.
        """
        cls: str = self.class_name(table)
        name: str = self.service_class_name(table)
        repo_iface: str = self.repository_interface_name(table)
        key_display: str = (
            'string.Join(", ", id)' if _key_parameter_type(table) == "object[]" else "id"
        )
        not_found: str = (
            f'throw new KeyNotFoundException($"{cls} with key \'{{{key_display}}}\' '
            f'was not found.");'
        )

        usings: List[str] = [
            "System.Collections.Generic",
            "System.Threading",
            "System.Threading.Tasks",
            self._namespace("context"),
            self._namespace("entity"),
            self._namespace("repository_interface"),
        ]
        declaration: str = f"public class {name}"
        if self._emits_service_interfaces():
            usings.append(self._namespace("service_interface"))
            declaration += f" : {self.service_interface_name(table)}"

        sigs: List[str] = self._service_signatures(table)
        lines: List[str] = _file_prologue(usings, self._namespace("service"))
        lines += [
            declaration,
            "{",
            f"{_I1}private readonly {repo_iface} _repository;",
            f"{_I1}private readonly {self._ctx} _context;",
            "",
            f"{_I1}public {name}({repo_iface} repository, {self._ctx} context)",
            f"{_I1}{{",
            f"{_I2}_repository = repository;",
            f"{_I2}_context = context;",
            f"{_I1}}}",
            "",
            f"{_I1}public async {sigs[0]}",
            f"{_I1}{{",
            f"{_I2}return await _repository.GetByIdAsync(id, includeSoftDeleted, cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public async {sigs[1]}",
            f"{_I1}{{",
            f"{_I2}return await _repository.GetAllAsync(includeSoftDeleted, cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public async {sigs[2]}",
            f"{_I1}{{",
            f"{_I2}await _repository.AddAsync(entity, cancellationToken);",
            f"{_I2}await _context.SaveChangesAsync(cancellationToken);",
            f"{_I2}return entity;",
            f"{_I1}}}",
            "",
            f"{_I1}public async {sigs[3]}",
            f"{_I1}{{",
            f"{_I2}var existing = await _repository.GetByIdAsync("
            f"id, cancellationToken: cancellationToken);",
            f"{_I2}if (existing == null)",
            f"{_I2}{{",
            f"{_I3}{not_found}",
            f"{_I2}}}",
            "",
            f"{_I2}_context.Entry(existing).CurrentValues.SetValues(entity);",
            f"{_I2}await _context.SaveChangesAsync(cancellationToken);",
            f"{_I1}}}",
            "",
            f"{_I1}public async {sigs[4]}",
            f"{_I1}{{",
            f"{_I2}var existing = await _repository.GetByIdAsync("
            f"id, cancellationToken: cancellationToken);",
            f"{_I2}if (existing == null)",
            f"{_I2}{{",
            f"{_I3}{not_found}",
            f"{_I2}}}",
            "",
            f"{_I2}_repository.Remove(existing, hardDelete);",
            f"{_I2}await _context.SaveChangesAsync(cancellationToken);",
            f"{_I1}}}",
        ]

        if not self._request.async_service_only:
            mirrors: List[str] = [
                "GetByIdAsync(id, includeSoftDeleted).GetAwaiter().GetResult()",
                "GetAllAsync(includeSoftDeleted).GetAwaiter().GetResult()",
                "CreateAsync(entity).GetAwaiter().GetResult()",
                "UpdateAsync(id, entity).GetAwaiter().GetResult()",
                "DeleteAsync(id, hardDelete).GetAwaiter().GetResult()",
            ]
            for sig, call in zip(sigs[5:], mirrors):
                lines.append("")
                lines.append(f"{_I1}public {sig}")
                lines.append(f"{_I1}{{")
                if sig.startswith("void "):
                    lines.append(f"{_I2}{call};")
                else:
                    lines.append(f"{_I2}return {call};")
                lines.append(f"{_I1}}}")

        lines.append("}")
        return _finish(lines)

    # ===================================================================
    # 6. Test scaffolds
    # ===================================================================

    def _sample_assignments(self, table: TableDefinition) -> List[str]:
        """Initializer lines for every property an insert must populate."""
        keys: List[PropertyDefinition] = table.primary_keys
        generated_key: Optional[str] = None
        if len(keys) == 1 and keys[0].logical_type in ("integer32", "integer64"):
            generated_key = keys[0].name

        assignments: List[str] = []
        for prop in table.properties:
            if prop.name == generated_key:
                continue
            if prop.is_nullable and not prop.is_primary_key:
                continue
            value: str = CSHARP_SAMPLE_VALUES.get(prop.logical_type, "default")
            if prop.logical_type == "text" and prop.max_length is not None:
                value = csharp_string_literal("sample"[: prop.max_length])
            assignments.append(f"{to_pascal_case(prop.name)} = {value},")
        return assignments

    def generate_repository_tests(self, table: TableDefinition) -> str:
        """xUnit add-then-read round trip against an EF Core in-memory database."""
        cls: str = self.class_name(table)
        repo: str = self.repository_class_name(table)
        lines: List[str] = _file_prologue(
            [
                "System",
                "System.Threading.Tasks",
                "Microsoft.EntityFrameworkCore",
                "Xunit",
                self._namespace("context"),
                self._namespace("entity"),
                self._namespace("repository"),
            ],
            self._namespace("repository_tests"),
        )
        lines += [
            f"public class {repo}Tests",
            "{",
            f"{_I1}private static {self._ctx} CreateContext()",
            f"{_I1}{{",
            f"{_I2}var options = new DbContextOptionsBuilder<{self._ctx}>()",
            f"{_I3}.UseInMemoryDatabase(Guid.NewGuid().ToString())",
            f"{_I3}.Options;",
            f"{_I2}return new {self._ctx}(options);",
            f"{_I1}}}",
            "",
            f"{_I1}[Fact]",
            f"{_I1}public async Task AddAsync_ThenGetAllAsync_ReturnsEntity()",
            f"{_I1}{{",
            f"{_I2}using var context = CreateContext();",
            f"{_I2}var repository = new {repo}(context);",
            f"{_I2}var entity = new {cls}",
            f"{_I2}{{",
        ]
        lines.extend(f"{_I3}{a}" for a in self._sample_assignments(table))
        lines += [
            f"{_I2}}};",
            "",
            f"{_I2}await repository.AddAsync(entity);",
            f"{_I2}await context.SaveChangesAsync();",
            "",
            f"{_I2}var all = await repository.GetAllAsync();",
            f"{_I2}Assert.Single(all);",
            f"{_I2}Assert.Equal(1, await repository.CountAsync());",
            f"{_I1}}}",
            "}",
        ]
        return _finish(lines)

    def generate_service_tests(self, table: TableDefinition) -> str:
        """Moq-based test: create calls through to the repository and saves once."""
        cls: str = self.class_name(table)
        service: str = self.service_class_name(table)
        repo_iface: str = self.repository_interface_name(table)
        variable: str = to_camel_case(cls) or "entity"
        lines: List[str] = _file_prologue(
            [
                "System.Threading",
                "System.Threading.Tasks",
                "Microsoft.EntityFrameworkCore",
                "Moq",
                "Xunit",
                self._namespace("context"),
                self._namespace("entity"),
                self._namespace("repository_interface"),
                self._namespace("service"),
            ],
            self._namespace("service_tests"),
        )
        lines += [
            f"public class {service}Tests",
            "{",
            f"{_I1}[Fact]",
            f"{_I1}public async Task CreateAsync_AddsEntityAndSavesOnce()",
            f"{_I1}{{",
            f"{_I2}var repository = new Mock<{repo_iface}>();",
            f"{_I2}var context = new Mock<{self._ctx}>("
            f"new DbContextOptions<{self._ctx}>());",
            f"{_I2}context",
            f"{_I3}.Setup(c => c.SaveChangesAsync(It.IsAny<CancellationToken>()))",
            f"{_I3}.ReturnsAsync(1);",
            f"{_I2}var service = new {service}(repository.Object, context.Object);",
            f"{_I2}var {variable} = new {cls}();",
            "",
            f"{_I2}var result = await service.CreateAsync({variable});",
            "",
            f"{_I2}Assert.Same({variable}, result);",
            f"{_I2}repository.Verify(",
            f"{_I3}r => r.AddAsync({variable}, It.IsAny<CancellationToken>()), Times.Once);",
            f"{_I2}context.Verify(",
            f"{_I3}c => c.SaveChangesAsync(It.IsAny<CancellationToken>()), Times.Once);",
            f"{_I1}}}",
            "}",
        ]
        return _finish(lines)

    # ===================================================================
    # 7. Dependency-injection wiring
    # ===================================================================

    def generate_di_extensions(self, tables: Sequence[TableDefinition]) -> str:
        """Generate ``AddGeneratedServices`` for ``IServiceCollection``."""
        usings: List[str] = [
            "System",
            "Microsoft.EntityFrameworkCore",
            "Microsoft.Extensions.DependencyInjection",
            self._namespace("context"),
            self._namespace("repository_interface"),
            self._namespace("repository"),
        ]
        if self._emits_service_interfaces():
            usings.append(self._namespace("service_interface"))
        if self._request.generate_services:
            usings.append(self._namespace("service"))

        lines: List[str] = _file_prologue(usings, self._namespace("extensions"))
        lines += [
            "public static class ServiceCollectionExtensions",
            "{",
            f"{_I1}public static IServiceCollection AddGeneratedServices(",
            f"{_I2}this IServiceCollection services,",
            f"{_I2}Action<DbContextOptionsBuilder> configureDbContext)",
            f"{_I1}{{",
            f"{_I2}services.AddDbContext<{self._ctx}>(configureDbContext);",
            f"{_I2}services.AddScoped(typeof({self._generic_repo_interface}<>), "
            f"typeof({self._generic_repo}<>));",
        ]

        for table in tables:
            lines.append(
                f"{_I2}services.AddScoped<{self.repository_interface_name(table)}, "
                f"{self.repository_class_name(table)}>();"
            )
        if self._request.generate_services:
            for table in tables:
                if self._emits_service_interfaces():
                    lines.append(
                        f"{_I2}services.AddScoped<{self.service_interface_name(table)}, "
                        f"{self.service_class_name(table)}>();"
                    )
                else:
                    lines.append(f"{_I2}services.AddScoped<{self.service_class_name(table)}>();")

        lines += [
            "",
            f"{_I2}return services;",
            f"{_I1}}}",
            "}",
        ]
        return _finish(lines)

    # ===================================================================
    # 8. Aggregate generation
    # ===================================================================

    def generate_all_for_table(
        self, table: TableDefinition, relationship_map: RelationshipMapping
    ) -> Dict[str, str]:
        """
        Generate every per-table artifact the request asks for.

        Returns an ordered dict of relative_path → file_content.
        """
        cls: str = self.class_name(table)
        d: Dict[str, str] = ARTIFACT_DIRECTORIES
        result: Dict[str, str] = {}

        result[f"{d['entity']}/{cls}.cs"] = self.generate_model(table, relationship_map)
        result[f"{d['repository_interface']}/{self.repository_interface_name(table)}.cs"] = (
            self.generate_specific_repository_interface(table)
        )
        result[f"{d['repository']}/{self.repository_class_name(table)}.cs"] = (
            self.generate_specific_repository(table)
        )

        if self._request.generate_services:
            if self._emits_service_interfaces():
                result[f"{d['service_interface']}/{self.service_interface_name(table)}.cs"] = (
                    self.generate_service_interface(table)
                )
            result[f"{d['service']}/{self.service_class_name(table)}.cs"] = (
                self.generate_service(table)
            )

        if self._request.generate_unit_tests:
            result[f"{d['repository_tests']}/{self.repository_class_name(table)}Tests.cs"] = (
                self.generate_repository_tests(table)
            )
            if self._request.generate_services:
                result[f"{d['service_tests']}/{self.service_class_name(table)}Tests.cs"] = (
                    self.generate_service_tests(table)
                )

        logger.debug(
            "Generated all files for table '%s': %d files.", table.name, len(result)
        )
        return result

    def generate_shared(
        self,
        tables: Sequence[TableDefinition],
        relationship_map: RelationshipMapping,
    ) -> Dict[str, str]:
        """Generate the once-only artifacts (context, generic repository, DI)."""
        d: Dict[str, str] = ARTIFACT_DIRECTORIES
        result: Dict[str, str] = {}

        result[f"{d['context']}/{self._ctx}.cs"] = self.generate_db_context(
            tables, relationship_map
        )
        result[f"{d['repository_interface']}/{self._generic_repo_interface}.cs"] = (
            self.generate_generic_repository_interface()
        )
        result[f"{d['repository']}/{self._generic_repo}.cs"] = (
            self.generate_generic_repository()
        )
        if self._request.generate_di_extensions:
            result[f"{d['extensions']}/ServiceCollectionExtensions.cs"] = (
                self.generate_di_extensions(tables)
            )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ARTIFACT_DIRECTORIES",
    "SOFT_DELETE_MEMBER",
    "TemplateGenerator",
]

logger.debug("dbscaffold.templates loaded.")
