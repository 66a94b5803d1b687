# File: dbscaffold/models.py
"""
dbscaffold - Core Data Models
==============================
Pydantic V2 models representing the schema description submitted for
generation, the derived relationship records, and the job records tracked by
the pipeline.  These models are the single source of truth for the whole
flow: Request → Relationship Resolution → Code Generation → Packaging.

Every request model accepts both snake_case field names and their camelCase
aliases (``rootNamespace``, ``isPrimaryKey`` ...), so payloads produced by a
browser form and by a YAML file validate the same way.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DataType(str, Enum):
    """Logical column types understood by the generators."""

    INTEGER32 = "integer32"
    INTEGER64 = "integer64"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DECIMAL = "decimal"
    DOUBLE = "double"
    FLOAT32 = "float32"
    GUID = "guid"
    BYTE_SEQUENCE = "byte-sequence"


# Tokens accepted on input besides the canonical enum values (lower-cased).
_DATA_TYPE_ALIASES: Dict[str, str] = {
    "int": "integer32",
    "int32": "integer32",
    "integer": "integer32",
    "long": "integer64",
    "int64": "integer64",
    "string": "text",
    "str": "text",
    "bool": "boolean",
    "float": "float32",
    "single": "float32",
    "byte[]": "byte-sequence",
    "bytes": "byte-sequence",
    "binary": "byte-sequence",
    "uuid": "guid",
}


class DeleteBehavior(str, Enum):
    """Referential action applied when a principal row is removed."""

    CASCADE = "Cascade"
    CLIENT_SET_NULL = "ClientSetNull"
    RESTRICT = "Restrict"
    SET_NULL = "SetNull"
    NO_ACTION = "NoAction"
    CLIENT_CASCADE = "ClientCascade"
    CLIENT_NO_ACTION = "ClientNoAction"

    @classmethod
    def parse(cls, token: Optional[str]) -> Optional["DeleteBehavior"]:
        """Case-insensitive lookup; ``None`` when the token is blank or unknown."""
        if not token or not token.strip():
            return None
        wanted: str = token.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


class ConfigurationStyle(str, Enum):
    """Where relational and validation metadata is expressed."""

    ANNOTATIONS_AND_FLUENT_API = "AnnotationsAndFluentApi"
    ANNOTATIONS_ONLY = "AnnotationsOnly"
    FLUENT_API_ONLY = "FluentApiOnly"


class JobStatus(str, Enum):
    """Lifecycle states of a generation job.

    ``NOT_FOUND`` is never stored; it is what a lookup of an unknown id reports.
    """

    QUEUED = "Queued"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    ERROR = "Error"
    NOT_FOUND = "NotFound"


# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
    alias_generator=to_camel,
)

_NAMESPACE_RE: re.Pattern[str] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$"
)
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ---------------------------------------------------------------------------
# Schema description
# ---------------------------------------------------------------------------


class PropertyDefinition(BaseModel):
    """
    Full description of a single entity property / column.

    Foreign-key, validation and storage facets all live on the property,
    mirroring how a schema designer fills in one row per column.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Property name.")
    data_type: DataType = Field(default=DataType.TEXT, description="Logical type.")
    is_nullable: bool = Field(default=True, description="Whether NULL is allowed.")
    is_primary_key: bool = Field(default=False, description="Part of the primary key?")

    # -- Foreign key --------------------------------------------------------
    is_foreign_key: bool = Field(default=False, description="Is this a foreign key?")
    referenced_table_name: Optional[str] = Field(
        default=None, description="Principal table name."
    )
    referenced_property_name: Optional[str] = Field(
        default=None, description="Principal property (usually its key)."
    )
    navigation_property_name: Optional[str] = Field(
        default=None, description="Reference navigation emitted on the dependent."
    )
    delete_behavior: Optional[str] = Field(
        default=None,
        description="Free-form token, checked against DeleteBehavior at emission.",
    )
    custom_fk_constraint_name: Optional[str] = Field(
        default=None, description="Database constraint name for the FK."
    )

    # -- Validation ---------------------------------------------------------
    max_length: Optional[int] = Field(default=None, ge=1, description="Max length.")
    min_length: Optional[int] = Field(default=None, ge=0, description="Min length.")
    range_min: Optional[float] = Field(default=None, description="Lower numeric bound.")
    range_max: Optional[float] = Field(default=None, description="Upper numeric bound.")
    is_email_address: bool = Field(default=False)
    is_phone_number: bool = Field(default=False)
    is_url: bool = Field(default=False)
    regex_pattern: Optional[str] = Field(default=None, description="Regex the value must match.")

    # -- Storage ------------------------------------------------------------
    column_type_name: Optional[str] = Field(
        default=None, description="Explicit store type, e.g. 'decimal(18,2)'."
    )
    is_timestamp: bool = Field(default=False, description="Row-version column?")
    is_concurrency_token: bool = Field(default=False, description="Concurrency token?")

    @field_validator("data_type", mode="before")
    @classmethod
    def _normalise_data_type(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, DataType):
            token: str = v.strip().lower()
            return _DATA_TYPE_ALIASES.get(token, token)
        return v

    @field_validator(
        "referenced_table_name",
        "referenced_property_name",
        "navigation_property_name",
        "delete_behavior",
        "custom_fk_constraint_name",
        "regex_pattern",
        "column_type_name",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # -- Derived helpers ------------------------------------------------------

    @property
    def logical_type(self) -> str:
        """Canonical data-type token, whether stored as enum or plain value."""
        return DataType(self.data_type).value

    @property
    def references_table(self) -> bool:
        """True for a foreign key that names its principal table."""
        return self.is_foreign_key and bool(self.referenced_table_name)

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.is_primary_key else ""
        fk_flag: str = f" FK→{self.referenced_table_name}" if self.references_table else ""
        null_flag: str = " NULL" if self.is_nullable else " NOT NULL"
        return f"<Property {self.name} {self.logical_type}{pk_flag}{fk_flag}{null_flag}>"


class TableDefinition(BaseModel):
    """
    One entity / table of the request.

    A blank name or an empty property list is tolerated here; such tables are
    simply left out of compilation (see ``is_valid``).
    """

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Table name.")
    properties: List[PropertyDefinition] = Field(
        default_factory=list, description="Ordered property list."
    )
    enable_soft_delete: Optional[bool] = Field(
        default=None,
        description="Per-table soft delete; None inherits the global default.",
    )

    @property
    def is_valid(self) -> bool:
        return bool(self.name.strip()) and len(self.properties) > 0

    @property
    def primary_keys(self) -> List[PropertyDefinition]:
        return [p for p in self.properties if p.is_primary_key]

    @property
    def foreign_keys(self) -> List[PropertyDefinition]:
        return [p for p in self.properties if p.is_foreign_key]

    def get_property(self, name: str) -> Optional[PropertyDefinition]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def __repr__(self) -> str:
        return (
            f"<Table {self.name!r} ({len(self.properties)} props, "
            f"{len(self.foreign_keys)} FKs)>"
        )


class NamingConventionOptions(BaseModel):
    """Prefixes and suffixes for the data-access and service layers."""

    model_config = _SHARED_CONFIG

    repository_interface_prefix: str = Field(default="I")
    repository_class_suffix: str = Field(default="Repository")
    service_interface_prefix: str = Field(default="I")
    service_class_suffix: str = Field(default="Service")

    @field_validator("*")
    @classmethod
    def _identifier_fragment(cls, v: str) -> str:
        if v and not re.match(r"^[A-Za-z0-9_]*$", v):
            raise ValueError(f"'{v}' may only contain letters, digits and underscores.")
        return v


class GenerationRequest(BaseModel):
    """
    The root model: a whole schema plus every generation option.

    Invariant: non-blank table names are unique within one request.
    """

    model_config = _SHARED_CONFIG

    root_namespace: str = Field(default="MyProject.Generated", min_length=1)
    db_context_name: str = Field(default="ApplicationDbContext", min_length=1)
    tables: List[TableDefinition] = Field(default_factory=list)

    generate_service_interfaces: bool = Field(default=True)
    generate_services: bool = Field(default=True)
    async_service_only: bool = Field(default=True)
    generate_unit_tests: bool = Field(default=False)
    generate_di_extensions: bool = Field(default=True)
    enable_soft_delete_globally: bool = Field(default=False)

    configuration_style: ConfigurationStyle = Field(
        default=ConfigurationStyle.ANNOTATIONS_AND_FLUENT_API
    )
    naming_conventions: NamingConventionOptions = Field(
        default_factory=NamingConventionOptions
    )

    @field_validator("root_namespace")
    @classmethod
    def _valid_namespace(cls, v: str) -> str:
        if not _NAMESPACE_RE.match(v):
            raise ValueError(f"'{v}' is not a valid dotted namespace.")
        return v

    @field_validator("db_context_name")
    @classmethod
    def _valid_context_name(cls, v: str) -> str:
        if not _IDENTIFIER_RE.match(v):
            raise ValueError(f"'{v}' is not a valid class name.")
        return v

    @model_validator(mode="after")
    def _unique_table_names(self) -> "GenerationRequest":
        names: List[str] = [t.name for t in self.tables if t.name.strip()]
        if len(names) != len(set(names)):
            dupes: Set[str] = {n for n in names if names.count(n) > 1}
            raise ValueError(f"Duplicate table names: {sorted(dupes)}")
        return self

    # -- Helpers ------------------------------------------------------------

    @property
    def style(self) -> ConfigurationStyle:
        return ConfigurationStyle(self.configuration_style)

    def valid_tables(self) -> List[TableDefinition]:
        """Tables that participate in compilation, in request order."""
        return [t for t in self.tables if t.is_valid]

    def soft_delete_enabled(self, table: TableDefinition) -> bool:
        if table.enable_soft_delete is not None:
            return table.enable_soft_delete
        return self.enable_soft_delete_globally

    def __repr__(self) -> str:
        return (
            f"<GenerationRequest {self.root_namespace} "
            f"{len(self.tables)} tables, style={self.style.value}>"
        )


# ---------------------------------------------------------------------------
# Derived relationship records
# ---------------------------------------------------------------------------


class InverseRelationshipInfo(BaseModel):
    """One dependent FK pointing at a principal table (never user-supplied)."""

    model_config = ConfigDict(frozen=True)

    referencing_table: str
    foreign_key_property: str
    navigation_property: Optional[str] = None
    collection_name: str


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationJob(BaseModel):
    """Status record for one submitted request (process lifetime only)."""

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    message: str = ""
    download_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


_RESPONSE_CONFIG: ConfigDict = ConfigDict(
    populate_by_name=True,
    use_enum_values=True,
    alias_generator=to_camel,
)


class SubmitResult(BaseModel):
    """Answer to a submission; ``job_id`` is ``None`` when no job was created."""

    model_config = _RESPONSE_CONFIG

    success: bool
    job_id: Optional[str] = None
    message: str = ""


class JobStatusResult(BaseModel):
    """Answer to a status poll."""

    model_config = _RESPONSE_CONFIG

    status: JobStatus
    message: str = ""
    download_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DataType",
    "DeleteBehavior",
    "ConfigurationStyle",
    "JobStatus",
    "PropertyDefinition",
    "TableDefinition",
    "NamingConventionOptions",
    "GenerationRequest",
    "InverseRelationshipInfo",
    "GenerationJob",
    "SubmitResult",
    "JobStatusResult",
]

logger.debug("dbscaffold.models loaded — %d public symbols.", len(__all__))
