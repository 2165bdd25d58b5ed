# File: genco/__main__.py
"""
Genco - Module entry point.

Allows running the generator directly via::

    python -m genco --schema schema.yaml --output ./Shop
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from genco.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
