# File: dbscaffold/exporters.py
"""
dbscaffold - Staging & Packaging
=================================

Responsible for:
    1. Creating a per-job staging directory that no other job can touch.
    2. Writing generated files atomically (write-to-temp then rename).
    3. Archiving a staging directory (or an in-memory file set) into a
       deterministic zip package.
    4. Recording a manifest with checksums for every staged file.
    5. Deleting the staging tree once the package exists.

Packages are byte-reproducible: entries are sorted by path and carry a fixed
timestamp, so two jobs compiling the same request produce identical archives
apart from their names.

Complexity: O(F) where F = total number of output files.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from dbscaffold.exceptions import GenerationError
from dbscaffold.utils import count_lines, ensure_directory, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.exporters")

STAGING_PREFIX: str = "GeneratedCode_"
PACKAGE_SUFFIX: str = ".zip"

# Fixed timestamp for every archive entry (earliest date a zip can carry)
_ZIP_EPOCH: Tuple[int, int, int, int, int, int] = (1980, 1, 1, 0, 0, 0)


def staging_name_for(job_id: str) -> str:
    return f"{STAGING_PREFIX}{job_id}"


def package_name_for(job_id: str) -> str:
    return f"{STAGING_PREFIX}{job_id}{PACKAGE_SUFFIX}"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single staged file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class PackageManifest:
    """Every file of one package, in archive order."""

    package_name: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_name": self.package_name,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


def _safe_relative_path(rel_path: str) -> PurePosixPath:
    """Reject artifact paths that would leave their staging directory."""
    pure: PurePosixPath = PurePosixPath(rel_path)
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        raise GenerationError(f"Refusing to stage unsafe artifact path: {rel_path!r}")
    return pure


def _record_for(rel_path: str, content: str) -> FileRecord:
    return FileRecord(
        relative_path=rel_path,
        size_bytes=len(content.encode("utf-8")),
        line_count=count_lines(content),
        sha256=sha256_hex(content),
    )


# ---------------------------------------------------------------------------
# StagingArea
# ---------------------------------------------------------------------------


class StagingArea:
    """
    Isolated directory holding one job's generated files.

    Usage::

        staging = StagingArea(Path("/tmp"), job_id)
        staging.create()
        staging.write("Entities/Product.cs", source)
        package_directory(staging.path, package_dir / package_name_for(job_id))
        staging.remove()

    Thread-safety: one staging area per job; never shared.
    """

    def __init__(self, root: Path, job_id: str) -> None:
        self._path: Path = (root / staging_name_for(job_id)).resolve()
        self._records: List[FileRecord] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def records(self) -> List[FileRecord]:
        return list(self._records)

    def create(self) -> Path:
        ensure_directory(self._path)
        logger.debug("Created staging area %s", self._path)
        return self._path

    def write(self, rel_path: str, content: str) -> FileRecord:
        """Write one artifact under the staging directory and record it."""
        pure: PurePosixPath = _safe_relative_path(rel_path)
        target: Path = self._path.joinpath(*pure.parts)
        write_file(target, content, atomic=True)
        record: FileRecord = _record_for(pure.as_posix(), content)
        self._records.append(record)
        return record

    def manifest(self, package_name: str = "") -> PackageManifest:
        files: List[FileRecord] = sorted(self._records, key=lambda r: r.relative_path)
        return PackageManifest(
            package_name=package_name,
            total_files=len(files),
            total_bytes=sum(r.size_bytes for r in files),
            total_lines=sum(r.line_count for r in files),
            files=files,
        )

    def remove(self) -> None:
        """Delete the staging tree; a missing tree is not an error."""
        if self._path.exists():
            shutil.rmtree(self._path)
            logger.debug("Removed staging area %s", self._path)

    def __repr__(self) -> str:
        return f"<StagingArea {self._path} ({len(self._records)} files)>"


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------


def _write_zip(entries: Iterable[Tuple[str, bytes]], destination: Path) -> int:
    """
    Write *entries* to *destination* atomically; returns the entry count.

    The archive is built in a temporary file next to the destination and
    renamed into place, so a reader never sees a partial package.
    """
    ensure_directory(destination.parent)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(destination.parent), prefix=f".{destination.name}.", suffix=".tmp"
    )
    count: int = 0
    try:
        with os.fdopen(fd, "wb") as fh:
            with zipfile.ZipFile(fh, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for name, data in entries:
                    info: zipfile.ZipInfo = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, data)
                    count += 1
        os.replace(tmp_path, destination)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.info("Wrote package %s (%d entries).", destination, count)
    return count


def package_directory(source_dir: Path, destination: Path) -> Path:
    """Archive every file below *source_dir* into *destination*."""
    if not source_dir.is_dir():
        raise GenerationError(f"Staging directory does not exist: {source_dir}")

    files: List[Path] = sorted(
        (p for p in source_dir.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(source_dir).as_posix(),
    )
    _write_zip(
        ((p.relative_to(source_dir).as_posix(), p.read_bytes()) for p in files),
        destination,
    )
    return destination


def package_files(files: Mapping[str, str], destination: Path) -> PackageManifest:
    """Archive an in-memory ``{relative_path: content}`` mapping directly."""
    ordered: List[str] = sorted(files)
    for rel_path in ordered:
        _safe_relative_path(rel_path)
    _write_zip(((p, files[p].encode("utf-8")) for p in ordered), destination)
    records: List[FileRecord] = [_record_for(p, files[p]) for p in ordered]
    return PackageManifest(
        package_name=destination.name,
        total_files=len(records),
        total_bytes=sum(r.size_bytes for r in records),
        total_lines=sum(r.line_count for r in records),
        files=records,
    )


__all__: List[str] = [
    "STAGING_PREFIX",
    "PACKAGE_SUFFIX",
    "staging_name_for",
    "package_name_for",
    "FileRecord",
    "PackageManifest",
    "StagingArea",
    "package_directory",
    "package_files",
]

logger.debug("dbscaffold.exporters loaded.")
