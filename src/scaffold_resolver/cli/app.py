"""CLI application entry point and command routing for scaffold-resolve.

:func:`cli` is the only place exceptions are turned into messages: a
:class:`~scaffold_resolver.exceptions.ScaffoldResolverError` prints its
message and hint, Ctrl+C and unexpected failures get their own exit
codes (see :mod:`scaffold_resolver.cli.exit_codes`).

Notes
-----
* Commands only wire collaborators together; classification, caching
  and cloning live in ``core`` and ``infra``.
* The resolved template path is the only thing written to stdout, so the
  command composes with shell scripts; everything else goes to stderr.
"""

from __future__ import annotations

import argparse
import logging
import sys

from scaffold_resolver.cli import exit_codes
from scaffold_resolver.cli.console import console, escape_markup
from scaffold_resolver.exceptions import ScaffoldResolverError
from scaffold_resolver.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    The CLI supports:
    * ``scaffold-resolve <ref>``   — resolve a template reference
    * ``scaffold-resolve clean``   — evict expired/corrupt cache entries
    * ``scaffold-resolve doctor``  — environment diagnostics
    * ``scaffold-resolve --version``
    """
    parser = argparse.ArgumentParser(
        prog="scaffold-resolve",
        description="Resolve a template reference to a local directory.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Template reference (./path, user/repo[#branch], URL, registry/name), "
        "or 'clean' / 'doctor'.",
    )
    parser.add_argument("-b", "--branch", default=None, help="Branch for remote references.")
    parser.add_argument("--cache-dir", default=None, help="Cache root (default ~/.m5nv/cache).")
    parser.add_argument("--config", default=None, help="JSON file with template aliases.")
    parser.add_argument(
        "--ttl",
        type=float,
        default=None,
        metavar="HOURS",
        help="TTL for newly cached repositories (default 24).",
    )
    parser.add_argument("--no-cache", action="store_true", help="Always re-clone.")
    parser.add_argument("--log-file", default=None, help="Append JSON-lines operation log.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_resolve(args: argparse.Namespace) -> int:
    """Resolve ``args.target`` and print the template directory."""
    from scaffold_resolver.core.resolver import TemplateResolver
    from scaffold_resolver.infra.cache_manager import CacheManager
    from scaffold_resolver.infra.config_loader import load_config
    from scaffold_resolver.infra.git_cloner import GitCloner
    from scaffold_resolver.infra.logger import StructuredLogger

    operation_logger = StructuredLogger(args.log_file)
    resolver = TemplateResolver(
        CacheManager(args.cache_dir, GitCloner()),
        load_config(args.config),
        ttl_hours=args.ttl,
        no_cache=args.no_cache,
        operation_logger=operation_logger,
    )

    try:
        result = resolver.resolve_template(args.target, branch=args.branch)
    except ScaffoldResolverError as exc:
        operation_logger.log_error(exc, {"target": args.target, "branch": args.branch})
        raise

    rows = [
        ("Path", result.template_path),
        ("Id", str(result.metadata.get("id", ""))),
        ("Name", str(result.metadata.get("name", ""))),
        ("Version", str(result.metadata.get("version", ""))),
    ]
    rows.extend((f"param:{key}", value) for key, value in sorted(result.parameters.items()))
    console.table(
        "Resolved template",
        ("Field", "Value"),
        [(escape_markup(field), escape_markup(value)) for field, value in rows],
    )

    print(result.template_path)
    return exit_codes.SUCCESS


def _handle_clean(args: argparse.Namespace) -> int:
    """Dispatch the ``clean`` cache sweep."""
    from scaffold_resolver.infra.cache_manager import CacheManager

    cache = CacheManager(args.cache_dir)
    removed = cache.clear_expired_entries()
    console.print(
        f"[bold]Removed {removed} cache entries[/bold] from {escape_markup(cache.cache_dir)}"
    )

    if cache.last_sweep_failures:
        console.print(
            f"[yellow]Could not remove {len(cache.last_sweep_failures)} entries:[/yellow]"
        )
        for repo_hash in cache.last_sweep_failures:
            console.print(f"  {escape_markup(repo_hash)}")
        return exit_codes.GENERAL_ERROR
    return exit_codes.SUCCESS


def _handle_doctor(args: argparse.Namespace) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from scaffold_resolver.cli.doctor import run_doctor
    from scaffold_resolver.infra.cache_manager import CacheManager

    return run_doctor(CacheManager(args.cache_dir).cache_dir)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the scaffold-resolve CLI.

    Parameters
    ----------
    argv:
        Arguments to parse; ``None`` reads ``sys.argv[1:]``.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.target is None:
        parser.print_help()
        return exit_codes.SUCCESS

    command = args.target.lower()
    if command == "doctor":
        return _handle_doctor(args)
    if command == "clean":
        return _handle_clean(args)

    return _handle_resolve(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: run :func:`main` and map failures to exit codes."""
    try:
        code = main()
        sys.exit(code)
    except ScaffoldResolverError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape_markup(str(exc))}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {escape_markup(exc.hint)}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape_markup(str(exc))}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
