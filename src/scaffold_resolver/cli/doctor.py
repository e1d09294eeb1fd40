"""``scaffold-resolve doctor`` — environment diagnostics command.

Gathers system information and renders a table summarising whether the
runtime environment can resolve remote templates: a usable Python, git
on PATH, and a writable cache root.

This module lives in the CLI layer — it may import from ``infra`` and
``core``.  It only collects and displays diagnostic data.
"""

from __future__ import annotations

import os
import platform
import sys

from scaffold_resolver.cli import exit_codes
from scaffold_resolver.cli.console import console, escape_markup
from scaffold_resolver.infra.git_detector import detect_git
from scaffold_resolver.version import __version__

OK = "[green]OK[/green]"
WARN = "[yellow]WARN[/yellow]"
FAIL = "[red]FAIL[/red]"


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _version_check() -> tuple[str, str, str]:
    return "scaffold-resolver", __version__, OK


def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = OK if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _git_check() -> tuple[str, str, str]:
    """Git is required for every remote reference."""
    status_obj = detect_git()
    if status_obj.found:
        path_str = str(status_obj.path) if status_obj.path else "found"
        return "git", escape_markup(path_str), OK
    return "git", "not found", FAIL


def _cache_dir_check(cache_dir: str) -> tuple[str, str, str]:
    """A missing cache root is fine as long as it can be created."""
    candidate = cache_dir
    while not os.path.exists(candidate):
        parent = os.path.dirname(candidate)
        if parent == candidate:
            break
        candidate = parent
    if os.path.isdir(candidate) and os.access(candidate, os.W_OK):
        return "Cache dir", escape_markup(cache_dir), OK
    return "Cache dir", escape_markup(cache_dir), WARN


def _os_check() -> tuple[str, str, str]:
    system_raw = platform.system()
    system_display = {"Darwin": "macOS"}.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, OK


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(cache_dir: str) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check fails,
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    checks = [
        _version_check(),
        _python_version_check(),
        _git_check(),
        _cache_dir_check(cache_dir),
        _os_check(),
    ]

    console.table("scaffold-resolver doctor", ("Component", "Value", "Status"), checks)

    git_status = detect_git()
    if not git_status.found:
        console.print("[yellow]git is not installed.[/yellow]")
        console.print("Install using one of the following commands:\n")
        for cmd in git_status.install_commands:
            console.print(f"  [bold]{cmd}[/bold]")
        console.print()

    if any("FAIL" in status for _, _, status in checks):
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
