"""
tests/test_cli.py
Tests for the dbscaffold command-line interface (dbscaffold.cli).
"""

from __future__ import annotations

import logging
import pathlib
import zipfile
from typing import Any, Dict, List

import pytest
import yaml

from dbscaffold.cli import (
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)


@pytest.fixture(autouse=True)
def _restore_logger():
    """cli_main reconfigures the package logger; put it back afterwards."""
    package_logger = logging.getLogger("dbscaffold")
    handlers = list(package_logger.handlers)
    level, propagate = package_logger.level, package_logger.propagate
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli_main(argv)
    return excinfo.value.code


@pytest.fixture()
def broken_request_path(request_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Example request with an inverted range (a diagnostics error)."""
    request_dict["tables"][0]["properties"].append(
        {"name": "rank", "dataType": "int", "rangeMin": 10, "rangeMax": 1}
    )
    path = tmp_path / "broken.yaml"
    path.write_text(yaml.safe_dump(request_dict), encoding="utf-8")
    return path


class TestValidateOnly:
    def test_clean_request(self, request_yaml_path: pathlib.Path, capsys) -> None:
        assert _run(["-s", str(request_yaml_path), "--validate-only"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Request Diagnostics" in out
        assert "Valid:    Yes" in out

    def test_request_with_errors(self, broken_request_path: pathlib.Path, capsys) -> None:
        assert _run(["-s", str(broken_request_path), "--validate-only"]) == EXIT_VALIDATION_ERROR
        assert "RANGE_MIN_EXCEEDS_MAX" in capsys.readouterr().out

    def test_unparseable_request(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("rootNamespace: '1 bad'\n", encoding="utf-8")
        assert _run(["-s", str(path), "--validate-only"]) == EXIT_INPUT_ERROR


class TestGeneration:
    def test_writes_package(self, request_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        output = tmp_path / "out" / "shop.zip"
        assert _run(["-s", str(request_yaml_path), "-o", str(output)]) == EXIT_SUCCESS
        with zipfile.ZipFile(output) as archive:
            assert "Entities/Product.cs" in archive.namelist()

    def test_dry_run_lists_files(self, request_json_path: pathlib.Path, capsys) -> None:
        assert _run(["-s", str(request_json_path), "--dry-run"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Entities/Category.cs" in out
        assert "Extensions/ServiceCollectionExtensions.cs" in out

    def test_strict_refuses_errors(
        self, broken_request_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        output = tmp_path / "strict.zip"
        code = _run(["-s", str(broken_request_path), "-o", str(output), "--strict"])
        assert code == EXIT_VALIDATION_ERROR
        assert not output.exists()

    def test_errors_do_not_block_without_strict(
        self, broken_request_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        output = tmp_path / "lenient.zip"
        assert _run(["-s", str(broken_request_path), "-o", str(output)]) == EXIT_SUCCESS
        assert output.is_file()

    def test_no_valid_tables(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("tables: []\n", encoding="utf-8")
        assert _run(["-s", str(path), "--dry-run"]) == EXIT_INPUT_ERROR


class TestArguments:
    def test_missing_schema_argument(self) -> None:
        assert _run([]) == EXIT_INPUT_ERROR

    def test_schema_file_not_found(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-s", str(tmp_path / "nope.yaml"), "--dry-run"]) == EXIT_INPUT_ERROR

    def test_output_required(self, request_yaml_path: pathlib.Path) -> None:
        assert _run(["-s", str(request_yaml_path)]) == EXIT_INPUT_ERROR

    def test_quiet_still_logs_errors(self, tmp_path: pathlib.Path, capsys) -> None:
        assert _run(["-q", "-s", str(tmp_path / "nope.yaml"), "--dry-run"]) == EXIT_INPUT_ERROR
        assert logging.getLogger("dbscaffold").level == logging.ERROR
        assert "Schema file not found" in capsys.readouterr().err

    def test_version(self, capsys) -> None:
        assert _run(["--version"]) == 0
        assert "dbscaffold v" in capsys.readouterr().out
