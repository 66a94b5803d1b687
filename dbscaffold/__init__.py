# File: dbscaffold/__init__.py
"""
dbscaffold: Entity Framework Core Scaffolding Generator
========================================================

Compiles a declarative relational schema (tables, typed properties, keys,
foreign keys, naming and style options) into the source files of a data
access layer: entities, a ``DbContext``, generic and per-table repositories,
services, xUnit tests and DI registrations.  A job pipeline runs the
compiler in the background and packages each result as a zip.

Architecture overview::

    ┌──────────────┐   ┌────────────────┐   ┌──────────────────┐
    │ CLI / API    │──▶│ScaffoldGenerator│──▶│ TemplateGenerator│
    │(cli.py,api.py)│  │ (generator.py) │   │  (templates.py)  │
    └──────┬───────┘   └───────┬────────┘   └────────┬─────────┘
           │                   │                     │
           ▼                   ▼                     ▼
    ┌─────────────┐   ┌──────────────┐      ┌──────────────┐
    │ JobPipeline │   │relationships │      │  strategies  │
    │(pipeline.py)│   │ validators   │      │   utils      │
    └──────┬──────┘   └──────────────┘      └──────────────┘
           ▼
    ┌─────────────┐
    │ exporters   │
    └─────────────┘

Usage::

    from dbscaffold import GenerationRequest, ScaffoldGenerator
    report = ScaffoldGenerator().compile(GenerationRequest.model_validate(data))

    python -m dbscaffold --schema shop.yaml --output shop.zip
"""

from __future__ import annotations

__version__: str = "0.1.0"

from dbscaffold.exceptions import (
    DbScaffoldError,
    GenerationError,
    InvalidFileNameError,
    JobNotFoundError,
    JobStateError,
    NotFoundError,
    PackageNotFoundError,
    RequestValidationError,
)
from dbscaffold.generator import (
    CompileReport,
    ScaffoldGenerator,
    load_schema_file,
    parse_raw_request,
)
from dbscaffold.models import (
    ConfigurationStyle,
    DataType,
    DeleteBehavior,
    GenerationJob,
    GenerationRequest,
    InverseRelationshipInfo,
    JobStatus,
    JobStatusResult,
    NamingConventionOptions,
    PropertyDefinition,
    SubmitResult,
    TableDefinition,
)
from dbscaffold.pipeline import JobPipeline, JobRegistry
from dbscaffold.relationships import resolve_inverse_relationships
from dbscaffold.settings import PipelineSettings
from dbscaffold.templates import TemplateGenerator
from dbscaffold.utils import pluralize, to_camel_case, to_pascal_case
from dbscaffold.validators import ValidationResult, validate_request

__all__: list[str] = [
    "__version__",
    # Orchestration
    "ScaffoldGenerator",
    "CompileReport",
    "load_schema_file",
    "parse_raw_request",
    "JobPipeline",
    "JobRegistry",
    "PipelineSettings",
    # Models
    "ConfigurationStyle",
    "DataType",
    "DeleteBehavior",
    "GenerationJob",
    "GenerationRequest",
    "InverseRelationshipInfo",
    "JobStatus",
    "JobStatusResult",
    "NamingConventionOptions",
    "PropertyDefinition",
    "SubmitResult",
    "TableDefinition",
    # Compiler pieces
    "resolve_inverse_relationships",
    "TemplateGenerator",
    "validate_request",
    "ValidationResult",
    "pluralize",
    "to_camel_case",
    "to_pascal_case",
    # Errors
    "DbScaffoldError",
    "RequestValidationError",
    "InvalidFileNameError",
    "GenerationError",
    "JobStateError",
    "NotFoundError",
    "JobNotFoundError",
    "PackageNotFoundError",
]
