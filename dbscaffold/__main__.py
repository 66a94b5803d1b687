# File: dbscaffold/__main__.py
"""
dbscaffold: module entry point.

Allows running the generator directly via::

    python -m dbscaffold --schema shop.yaml --output shop.zip
"""

from __future__ import annotations


def main() -> None:
    from dbscaffold.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
