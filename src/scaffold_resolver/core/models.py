"""Domain models for scaffold-resolver.

Parsed references are **frozen** dataclasses — immutable value objects
produced fresh for every classification call.  Each variant exposes a
``type`` tag matching the reference kind, so callers can dispatch on
either the class or the tag.

Cache records (:class:`CacheMetadata`, :class:`CacheEntry`) live here as
well; they own the serialization boundary for the ``metadata.json``
sidecar and refuse to load data that fails the minimal shape check.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


# ---------------------------------------------------------------------------
# Parsed references
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class LocalReference:
    """A filesystem path, left unresolved until path resolution."""

    type: ClassVar[str] = "local"

    path: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GithubShorthand:
    """Compact ``owner/repo[/subpath][#branch[/subpath]]`` reference."""

    type: ClassVar[str] = "github-shorthand"

    owner: str
    repo: str
    subpath: str = ""
    branch: str | None = None
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GithubRepo:
    """``https://github.com/owner/repo[/subpath]``."""

    type: ClassVar[str] = "github-repo"

    owner: str
    repo: str
    subpath: str = ""
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GithubBranch:
    """``https://github.com/owner/repo/tree/<branch>[/subpath]``."""

    type: ClassVar[str] = "github-branch"

    owner: str
    repo: str
    branch: str
    subpath: str = ""
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GithubArchive:
    """A GitHub tag archive or release download.  Recognised, not resolvable."""

    type: ClassVar[str] = "github-archive"

    owner: str
    repo: str
    archive_url: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RegistryReference:
    """``registry/<template>`` or ``<keyword>/<namespace>/<template>``."""

    type: ClassVar[str] = "registry"

    namespace: str
    template: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TarballReference:
    """A direct archive URL.  Recognised, not resolvable."""

    type: ClassVar[str] = "tarball"

    url: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GenericUrl:
    """Any other ``scheme://`` URL.  Recognised, not resolvable."""

    type: ClassVar[str] = "url"

    protocol: str
    hostname: str
    pathname: str
    search_params: dict[str, str] = field(default_factory=dict)
    parameters: dict[str, str] = field(default_factory=dict)


ParsedReference = Union[
    LocalReference,
    GithubShorthand,
    GithubRepo,
    GithubBranch,
    GithubArchive,
    RegistryReference,
    TarballReference,
    GenericUrl,
]


# ---------------------------------------------------------------------------
# Cache records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RepoLocation:
    """Deterministic cache slot for a ``(repo_url, branch)`` pair."""

    repo_hash: str
    """``<protocol>/<repoName>[-<branch>]``."""

    repo_dir: str
    """Absolute path of the slot under the cache root."""


@dataclass(frozen=True, slots=True)
class CacheMetadata:
    """Contents of a cache entry's ``metadata.json`` sidecar."""

    repo_url: str
    branch_name: str | None
    last_updated: str
    """ISO-8601 timestamp of the last successful population."""

    ttl_hours: float = 24
    repo_hash: str | None = None
    cache_version: str = "1.0"

    REQUIRED_KEYS: ClassVar[tuple[str, ...]] = ("repoUrl", "branchName", "lastUpdated")

    @staticmethod
    def is_valid_shape(data: object) -> bool:
        """Minimal shape check applied to every sidecar read from disk."""
        if not isinstance(data, Mapping):
            return False
        if any(key not in data for key in CacheMetadata.REQUIRED_KEYS):
            return False
        if not isinstance(data["repoUrl"], str) or not data["repoUrl"]:
            return False
        if not isinstance(data["lastUpdated"], str) or not data["lastUpdated"]:
            return False
        return data["branchName"] is None or isinstance(data["branchName"], str)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repoUrl": self.repo_url,
            "branchName": self.branch_name,
            "repoHash": self.repo_hash,
            "lastUpdated": self.last_updated,
            "ttlHours": self.ttl_hours,
            "cacheVersion": self.cache_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CacheMetadata:
        """Build from a raw sidecar dict.

        Raises
        ------
        ValueError
            If *data* fails :meth:`is_valid_shape`.
        """
        if not cls.is_valid_shape(data):
            raise ValueError("cache metadata is missing required keys")
        ttl = data.get("ttlHours", 24)
        return cls(
            repo_url=data["repoUrl"],
            branch_name=data["branchName"],
            last_updated=data["lastUpdated"],
            ttl_hours=ttl if isinstance(ttl, (int, float)) else 24,
            repo_hash=data.get("repoHash"),
            cache_version=str(data.get("cacheVersion", "1.0")),
        )


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One slot found while walking the cache root."""

    repo_hash: str
    repo_dir: str
    metadata: CacheMetadata | None
    """``None`` when the sidecar is missing or corrupt."""

    expired: bool


# ---------------------------------------------------------------------------
# Resolution result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ResolvedTemplate:
    """Final output of :meth:`TemplateResolver.resolve_template`."""

    template_path: str
    parameters: dict[str, str]
    metadata: dict[str, Any]
