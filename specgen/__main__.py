# File: specgen/__main__.py
"""
specgen — Module entry point.

Allows running the compiler directly via::

    python -m specgen --spec service.yaml --output build/service.yaml

This module simply delegates to ``specgen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from specgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
