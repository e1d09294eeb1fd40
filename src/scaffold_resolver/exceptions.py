"""Custom exception hierarchy for scaffold-resolver.

All exceptions that cross layer boundaries must inherit from
:class:`ScaffoldResolverError`.  Raw third-party and OS exceptions (e.g.
from ``subprocess`` or ``filelock``) must NEVER propagate beyond the
infrastructure layer — they must be caught and re-raised as a typed
subclass defined here.

Hierarchy
---------
ScaffoldResolverError
├── ValidationError
├── BoundaryViolationError
├── UnsupportedFormatError
├── RegistryLookupError
├── UpstreamFetchError
├── CacheError
├── ConfigError
└── EnvironmentError
"""

from __future__ import annotations


class ScaffoldResolverError(Exception):
    """Base exception for all scaffold-resolver errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Input validation ------------------------------------------------------

class ValidationError(ScaffoldResolverError):
    """Raised when a template reference is unsafe or malformed.

    Always raised before any filesystem or network access.
    """

    def __init__(
        self,
        message: str,
        *,
        value: object = None,
        reason: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.value: object = value
        self.reason: str = reason or message


class BoundaryViolationError(ScaffoldResolverError):
    """Raised when a path resolves outside its allowed root."""

    def __init__(
        self,
        message: str,
        *,
        user_path: object = None,
        resolved_path: str | None = None,
        allowed_root: str | None = None,
        operation: str = "unknown",
    ) -> None:
        super().__init__(message)
        self.user_path: object = user_path
        self.resolved_path: str | None = resolved_path
        self.allowed_root: str | None = allowed_root
        self.operation: str = operation


# --- Classification --------------------------------------------------------

class UnsupportedFormatError(ScaffoldResolverError):
    """Raised for unrecognised references or recognised-but-unimplemented kinds."""


class RegistryLookupError(ScaffoldResolverError):
    """Raised when a registry namespace or template is not known."""


# --- Fetching / cache ------------------------------------------------------

class UpstreamFetchError(ScaffoldResolverError):
    """Raised when cloning or fetching a repository fails."""

    def __init__(
        self,
        message: str,
        *,
        repo_url: str,
        branch: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.repo_url: str = repo_url
        self.branch: str | None = branch


class CacheError(ScaffoldResolverError):
    """Raised when the cache root itself cannot be used (lock timeout, I/O)."""


class ConfigError(ScaffoldResolverError):
    """Raised when a resolver configuration file cannot be loaded."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(ScaffoldResolverError):
    """Raised when a required runtime dependency is not available."""
