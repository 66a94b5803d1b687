"""
tests/conftest.py
Shared fixtures for the dbscaffold test suite.

Requests are built from plain dicts (camelCase, as an HTTP client or a YAML
file would send them) so every test goes through the same pydantic parsing
as production input.  File I/O is real and happens under pytest's tmp_path.
"""

from __future__ import annotations

import copy
import json
import pathlib
from typing import Any, Dict, List

import pytest
import yaml

from dbscaffold.models import GenerationRequest, PropertyDefinition, TableDefinition
from dbscaffold.settings import PipelineSettings


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Builders used directly by test modules
# ---------------------------------------------------------------------------


def prop(name: str, data_type: str = "text", **kwargs: Any) -> PropertyDefinition:
    """Shorthand for a PropertyDefinition; non-nullable unless told otherwise."""
    kwargs.setdefault("is_nullable", False)
    return PropertyDefinition(name=name, data_type=data_type, **kwargs)


def pk(name: str = "id", data_type: str = "integer32") -> PropertyDefinition:
    return prop(name, data_type, is_primary_key=True)


def fk(
    name: str,
    principal: str,
    navigation: str | None = None,
    data_type: str = "integer32",
    **kwargs: Any,
) -> PropertyDefinition:
    return prop(
        name,
        data_type,
        is_foreign_key=True,
        referenced_table_name=principal,
        navigation_property_name=navigation,
        **kwargs,
    )


def table(name: str, *properties: PropertyDefinition, **kwargs: Any) -> TableDefinition:
    return TableDefinition(name=name, properties=list(properties), **kwargs)


def build_request(tables: List[TableDefinition], **options: Any) -> GenerationRequest:
    options.setdefault("root_namespace", "Library")
    options.setdefault("db_context_name", "LibraryDbContext")
    return GenerationRequest(tables=tables, **options)


# ---------------------------------------------------------------------------
# Raw request fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_request_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference request not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def request_dict(raw_request_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_request_dict)


@pytest.fixture()
def shop_request(request_dict: Dict[str, Any]) -> GenerationRequest:
    return GenerationRequest.model_validate(request_dict)


@pytest.fixture()
def request_yaml_path(request_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "shop.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(request_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def request_json_path(request_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "shop.json"
    path.write_text(json.dumps(request_dict, indent=2), encoding="utf-8")
    return path


@pytest.fixture()
def minimal_request_dict() -> Dict[str, Any]:
    """Smallest useful request: one table with a key and one required column."""
    return {
        "rootNamespace": "Minimal",
        "dbContextName": "MinimalDbContext",
        "tables": [
            {
                "name": "Item",
                "properties": [
                    {"name": "id", "dataType": "int", "isPrimaryKey": True, "isNullable": False},
                    {"name": "title", "dataType": "string", "isNullable": False, "maxLength": 100},
                ],
            }
        ],
    }


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def author_table() -> TableDefinition:
    return table("Author", pk(), prop("name", max_length=120))


@pytest.fixture()
def book_table() -> TableDefinition:
    return table(
        "Book",
        pk(),
        prop("title", max_length=3),
        prop("stock", "integer32", is_nullable=True),
        fk("author_id", "Author", "author"),
    )


@pytest.fixture()
def library_request(author_table: TableDefinition, book_table: TableDefinition) -> GenerationRequest:
    return build_request([author_table, book_table])


# ---------------------------------------------------------------------------
# Pipeline settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def pipeline_settings(tmp_path: pathlib.Path) -> PipelineSettings:
    return PipelineSettings(
        staging_root=tmp_path / "staging",
        package_dir=tmp_path / "packages",
    )
