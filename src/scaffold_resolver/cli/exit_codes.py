"""Process exit codes returned by ``scaffold-resolve``.

Shell scripts branch on these values, so every command path returns one
of the names below instead of a literal integer.
"""

from __future__ import annotations

SUCCESS: int = 0
"""The reference resolved (or the subcommand finished) cleanly."""

GENERAL_ERROR: int = 1
"""A ScaffoldResolverError was reported, or doctor/clean found a problem."""

UNEXPECTED_ERROR: int = 2
"""Something other than a ScaffoldResolverError escaped ``main``."""

KEYBOARD_INTERRUPT: int = 130
"""Interrupted with Ctrl+C (128 + SIGINT)."""
