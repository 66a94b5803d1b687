# File: dbscaffold/exceptions.py
"""
dbscaffold - Error Taxonomy
============================
Every error raised on purpose by dbscaffold derives from ``DbScaffoldError``
so that the CLI and the HTTP layer can map them to exit codes and status
codes without catching unrelated exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

logger: logging.Logger = logging.getLogger("dbscaffold.exceptions")


class DbScaffoldError(Exception):
    """Base class for all dbscaffold errors."""


class RequestValidationError(DbScaffoldError):
    """A generation request could not be parsed into a valid shape."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.field_errors: List[Dict[str, Any]] = field_errors or []


class InvalidFileNameError(DbScaffoldError):
    """A download name contains path separators or other unsafe characters."""

    def __init__(self, file_name: str) -> None:
        super().__init__(f"Invalid file name: {file_name!r}")
        self.file_name: str = file_name


class GenerationError(DbScaffoldError):
    """Artifact generation or packaging failed."""


class JobStateError(DbScaffoldError):
    """A job status change that would move a job backwards or out of a terminal state."""


class NotFoundError(DbScaffoldError):
    pass


class JobNotFoundError(NotFoundError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id: str = job_id


class PackageNotFoundError(NotFoundError):
    def __init__(self, file_name: str) -> None:
        super().__init__(f"Package not found: {file_name}")
        self.file_name: str = file_name


__all__: List[str] = [
    "DbScaffoldError",
    "RequestValidationError",
    "InvalidFileNameError",
    "GenerationError",
    "JobStateError",
    "NotFoundError",
    "JobNotFoundError",
    "PackageNotFoundError",
]

logger.debug("dbscaffold.exceptions loaded — %d public symbols.", len(__all__))
