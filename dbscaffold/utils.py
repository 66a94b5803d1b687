# File: dbscaffold/utils.py
"""
dbscaffold - Utility Functions & Helpers
=========================================
Identifier normalisation, C# literal formatting, and file I/O utilities used
throughout the generation pipeline.

The name converters are memoised with ``functools.lru_cache``: every
artifact generator re-derives the same class and member names per table.
File writes go through a temp file and ``os.replace``.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.utils")

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_WORD_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[_\- ]+")
_SAFE_FILENAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

_VOWELS: str = "aeiou"


# ---------------------------------------------------------------------------
# Cached identifier transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert an identifier to PascalCase.

    Splits on ``_``, ``-`` and spaces; every segment keeps its first
    character upper-cased and the rest lower-cased.

    Examples:
        >>> to_pascal_case("order_item")
        'OrderItem'
        >>> to_pascal_case("ORDER-ITEM")
        'OrderItem'
        >>> to_pascal_case("OrderItem")
        'Orderitem'
    """
    if not name:
        return ""
    segments: List[str] = [s for s in _WORD_SEPARATOR_RE.split(name) if s]
    return "".join(s[0].upper() + s[1:].lower() for s in segments)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert an identifier to camelCase (``to_pascal_case`` with a lower first char).

    Examples:
        >>> to_camel_case("order_item")
        'orderItem'
    """
    pascal: str = to_pascal_case(name)
    if not pascal:
        return ""
    return pascal[0].lower() + pascal[1:]


@functools.lru_cache(maxsize=None)
def pluralize(name: str) -> str:
    """
    Heuristic English pluralisation.

    Rules, in order:
        - consonant + ``y`` → drop ``y``, add ``ies``  (Category → Categories)
        - ends with ``s``, ``x``, ``z``, ``ch``, ``sh`` → add ``es``  (Box → Boxes)
        - otherwise → add ``s``  (Order → Orders)

    There is no irregular-noun table: ``Person`` becomes ``Persons``.
    """
    if not name:
        return ""

    lower: str = name.lower()

    if lower.endswith("y") and len(name) > 1 and lower[-2] not in _VOWELS:
        return name[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


# ---------------------------------------------------------------------------
# C# type & literal helpers
# ---------------------------------------------------------------------------

# Logical data type → C# type keyword
CSHARP_TYPE_MAP: Dict[str, str] = {
    "integer32": "int",
    "integer64": "long",
    "text": "string",
    "boolean": "bool",
    "datetime": "DateTime",
    "decimal": "decimal",
    "double": "double",
    "float32": "float",
    "guid": "Guid",
    "byte-sequence": "byte[]",
}

# Reference types never get a nullable '?' suffix
_REFERENCE_TYPES: frozenset = frozenset({"string", "byte[]"})

# Sample literals used by generated tests to satisfy required properties
CSHARP_SAMPLE_VALUES: Dict[str, str] = {
    "integer32": "1",
    "integer64": "1L",
    "text": '"sample"',
    "boolean": "true",
    "datetime": "new DateTime(2024, 1, 1)",
    "decimal": "1m",
    "double": "1d",
    "float32": "1f",
    "guid": "Guid.NewGuid()",
    "byte-sequence": "new byte[] { 1 }",
}


@functools.lru_cache(maxsize=None)
def csharp_type(logical_type: str, nullable: bool) -> str:
    """
    Return the C# type for a logical data type.

    Examples:
        >>> csharp_type("integer32", True)
        'int?'
        >>> csharp_type("text", True)
        'string'
    """
    base: str = CSHARP_TYPE_MAP.get(logical_type, "object")
    if nullable and base not in _REFERENCE_TYPES and base != "object":
        return f"{base}?"
    return base


def csharp_string_literal(value: str) -> str:
    """Regular C# string literal with backslashes and quotes escaped."""
    escaped: str = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def csharp_verbatim_literal(value: str) -> str:
    """Verbatim (``@"..."``) C# literal, used for regex patterns."""
    return '@"' + value.replace('"', '""') + '"'


def format_csharp_number(value: float) -> str:
    """Format a bound for ``[Range]``: integral values without a fraction."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


# ---------------------------------------------------------------------------
# File-name safety
# ---------------------------------------------------------------------------


def is_safe_filename(name: str) -> bool:
    """
    True when *name* is a bare file name that cannot escape its directory.

    Rejects empty names, path separators, ``..`` sequences, leading dots and
    any character outside ``[A-Za-z0-9._-]``.
    """
    if not name or len(name) > 255:
        return False
    if ".." in name or "/" in name or "\\" in name:
        return False
    return bool(_SAFE_FILENAME_RE.match(name))


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file first then renames it
    into place.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string. O(n)."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("compile") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_pascal_case",
    "to_camel_case",
    "pluralize",
    "CSHARP_TYPE_MAP",
    "CSHARP_SAMPLE_VALUES",
    "csharp_type",
    "csharp_string_literal",
    "csharp_verbatim_literal",
    "format_csharp_number",
    "is_safe_filename",
    "ensure_directory",
    "write_file",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("dbscaffold.utils loaded — %d public symbols.", len(__all__))
