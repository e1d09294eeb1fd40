"""Infrastructure: git detection and platform guidance.

This module is responsible for locating git on the system PATH and
providing platform-specific installation guidance when it is missing.

Rules
-----
* Detection via :func:`shutil.which` only — no subprocess.
* No automatic installation.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Result of looking up git on PATH."""

    found: bool
    path: Path | None
    version_hint: str
    install_commands: tuple[str, ...]
    """Suggested install commands; empty when git is present."""


def detect_git() -> GitStatus:
    """Look up the git binary on PATH.

    Returns a :class:`GitStatus` regardless of whether git is present —
    the caller decides whether to abort or merely warn.
    """
    result = shutil.which("git")

    if result is not None:
        resolved = Path(result).resolve()
        return GitStatus(
            found=True,
            path=resolved,
            version_hint=f"found at {resolved}",
            install_commands=(),
        )

    return GitStatus(
        found=False,
        path=None,
        version_hint="not found",
        install_commands=_platform_install_commands(),
    )


def _platform_install_commands() -> tuple[str, ...]:
    system = platform.system().lower()
    if system == "windows":
        return (
            "winget install Git.Git",
            "choco install git",
        )
    if system == "linux":
        return (
            "sudo apt install git",
            "sudo dnf install git",
            "sudo pacman -S git",
        )
    if system == "darwin":
        return ("brew install git", "xcode-select --install")
    return ("Please install git from https://git-scm.com/downloads",)
