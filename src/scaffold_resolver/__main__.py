"""Allow ``python -m scaffold_resolver`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m scaffold_resolver`` behaves identically to the
``scaffold-resolve`` console script.
"""

from __future__ import annotations

from scaffold_resolver.cli.app import cli

if __name__ == "__main__":
    cli()
