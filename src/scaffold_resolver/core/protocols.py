"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from typing import Any, Protocol


class RepositoryCloner(Protocol):
    """Contract for clone/fetch backends.

    Any object that implements :meth:`clone` with the correct signature
    satisfies this protocol structurally (no explicit inheritance
    required).  Tests substitute a fake that writes files into
    *dest_dir* instead of touching the network.
    """

    def clone(self, url: str, branch: str | None, dest_dir: str) -> None:
        """Materialise *url* at *branch* into *dest_dir*.

        *dest_dir* does not exist when this is called; implementations
        create it.  ``branch=None`` means the remote's default branch.

        Raises
        ------
        UpstreamFetchError
            When the clone fails for any reason.
        """
        ...  # pragma: no cover


class OperationLogger(Protocol):
    """Contract for the structured operation logger."""

    def log_operation(self, name: str, payload: dict[str, Any]) -> None:
        """Record a named operation (e.g. ``cache_hit``) with details."""
        ...  # pragma: no cover

    def warn(self, message: str) -> None:
        """Record a non-fatal warning."""
        ...  # pragma: no cover


class RepositoryCache(Protocol):
    """The slice of the cache manager the resolver depends on."""

    def ensure_repository_cached(
        self,
        repo_url: str,
        branch: str | None,
        *,
        ttl_hours: float | None = None,
        no_cache: bool = False,
        logger: OperationLogger | None = None,
    ) -> str:
        """Return a local directory holding *repo_url* at *branch*."""
        ...  # pragma: no cover
