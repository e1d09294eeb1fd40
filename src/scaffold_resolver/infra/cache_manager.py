"""On-disk cache of cloned template repositories.

Layout::

    <cache_dir>/<protocol>/<repoName[-branch]>/                # clone content
    <cache_dir>/<protocol>/<repoName[-branch]>/metadata.json   # sidecar
    <cache_dir>/.locks/<protocol>__<repoName[-branch]>.lock    # per-entry lock

An entry directory is either absent or complete.  Population clones into
a hidden staging directory next to the entry, writes the sidecar there,
and only then renames it into place while holding the entry's file lock.
Hidden names (leading ``.``) are never treated as entries, so staging
and trash directories are invisible to readers and to the sweeper.

Lock files are permanent.  They are empty, one per entry ever
populated, and are never deleted: unlinking a lock file while another
process waits on it would let two holders lock different inodes.  They
live under the hidden ``.locks`` directory, so the sweeper ignores them.

Missing, expired and corrupt entries are reported as cache misses; they
never raise.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlsplit

from filelock import FileLock, Timeout

from scaffold_resolver.core.boundary import BoundaryValidator
from scaffold_resolver.core.models import CacheEntry, CacheMetadata, RepoLocation
from scaffold_resolver.core.protocols import OperationLogger, RepositoryCloner
from scaffold_resolver.exceptions import CacheError, ScaffoldResolverError, UpstreamFetchError

log = logging.getLogger(__name__)

DEFAULT_CACHE_DIR: str = os.path.join("~", ".m5nv", "cache")
DEFAULT_TTL_HOURS: float = 24
METADATA_FILE: str = "metadata.json"
LOCKS_DIR: str = ".locks"
CACHE_VERSION: str = "1.0"

DEFAULT_BRANCHES: frozenset[str] = frozenset({"main", "master"})

_LOCAL_PREFIXES: tuple[str, ...] = ("/", ".", "~")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
_SSH_URL_RE = re.compile(r"^git@[^:]+:(.+?)(?:\.git)?$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _strip_git_suffix(name: str) -> str:
    return name[: -len(".git")] if name.endswith(".git") else name


def _sanitize_component(name: str) -> str:
    """Make *name* usable as a single, non-hidden path segment."""
    cleaned = _UNSAFE_NAME_CHARS.sub("-", name).lstrip(".")
    return cleaned or "repo"


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds").replace(
        "+00:00", "Z"
    )


def _atomic_write_json(path: str, data: Mapping[str, Any]) -> None:
    """Write *data* as JSON via a temp file and rename; no partial files."""
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    temp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=directory,
            prefix=".",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as handle:
            temp_path = handle.name
            json.dump(dict(data), handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path is not None and os.path.exists(temp_path):
            os.unlink(temp_path)


class CacheManager:
    """Own the lifecycle of cached repository clones under *cache_dir*.

    Parameters
    ----------
    cache_dir:
        Cache root; ``~/.m5nv/cache`` when omitted.  ``~`` is expanded
        and the path made absolute.
    cloner:
        Any object satisfying :class:`RepositoryCloner`.  Defaults to
        :class:`~scaffold_resolver.infra.git_cloner.GitCloner`.
    clock:
        Returns the current aware UTC time.  Injected by tests to pin
        TTL arithmetic.
    lock_timeout:
        Seconds to wait for another process populating the same entry.
    """

    LOCK_TIMEOUT: float = 300.0

    def __init__(
        self,
        cache_dir: str | os.PathLike[str] | None = None,
        cloner: RepositoryCloner | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        root = os.fspath(cache_dir) if cache_dir is not None else DEFAULT_CACHE_DIR
        self.cache_dir: str = os.path.abspath(os.path.expanduser(root))
        if cloner is None:
            from scaffold_resolver.infra.git_cloner import GitCloner

            cloner = GitCloner()
        self._cloner: RepositoryCloner = cloner
        self._clock: Callable[[], datetime] = clock if clock is not None else _utcnow
        self._lock_timeout: float = (
            lock_timeout if lock_timeout is not None else self.LOCK_TIMEOUT
        )
        self._boundary = BoundaryValidator(self.cache_dir)
        self.last_sweep_failures: list[str] = []
        """Hashes :meth:`clear_expired_entries` failed to remove last run."""

    # ------------------------------------------------------------------
    # Key derivation (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_repo_url(repo_url: str) -> str:
        """Return a URL ``git clone`` accepts.

        Local paths, ``scheme://`` URLs and ``git@`` SSH URLs pass through;
        ``user/repo[.git]`` becomes ``https://github.com/user/repo.git``.
        """
        if repo_url.startswith(_LOCAL_PREFIXES):
            return repo_url
        if "://" in repo_url or repo_url.startswith("git@"):
            return repo_url
        if "/" in repo_url:
            return f"https://github.com/{_strip_git_suffix(repo_url)}.git"
        return f"git@github.com:{_strip_git_suffix(repo_url)}.git"

    @staticmethod
    def get_protocol_from_url(normalized_url: str) -> str:
        if normalized_url.startswith(_LOCAL_PREFIXES):
            return "local"
        if normalized_url.startswith("git@"):
            return "git"
        if "://" in normalized_url:
            try:
                scheme = urlsplit(normalized_url).scheme.lower()
            except ValueError:
                scheme = ""
            return _sanitize_component(scheme) if scheme else "unknown"
        return "unknown"

    @staticmethod
    def get_repo_name_from_url(normalized_url: str) -> str:
        """Derive the directory name for *normalized_url*.

        ``https://github.com/user/repo.git`` → ``user-repo``; local paths
        use their final segment.
        """
        if normalized_url.startswith(_LOCAL_PREFIXES):
            name = _strip_git_suffix(os.path.basename(os.path.normpath(normalized_url)))
            return _sanitize_component(name)

        match = _SSH_URL_RE.match(normalized_url)
        if match:
            return _sanitize_component(match.group(1).replace("/", "-"))

        if "://" in normalized_url:
            try:
                path = urlsplit(normalized_url).path
            except ValueError:
                path = ""
            name = _strip_git_suffix(path.strip("/"))
            if name:
                return _sanitize_component(name.replace("/", "-"))

        return _sanitize_component(normalized_url)

    def resolve_repo_directory(self, repo_url: str, branch: str | None = None) -> RepoLocation:
        """Map ``(repo_url, branch)`` to its cache slot.

        Default branches (``None``, empty, ``main``, ``master``) add no
        suffix, so they share one slot.
        """
        normalized = self.normalize_repo_url(repo_url)
        protocol = self.get_protocol_from_url(normalized)
        name = self.get_repo_name_from_url(normalized)
        if branch and branch not in DEFAULT_BRANCHES:
            name = f"{name}-{_sanitize_component(branch)}"
        return RepoLocation(
            repo_hash=f"{protocol}/{name}",
            repo_dir=os.path.join(self.cache_dir, protocol, name),
        )

    def generate_repo_hash(self, repo_url: str, branch: str | None = None) -> str:
        return self.resolve_repo_directory(repo_url, branch).repo_hash

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    def ensure_cache_directory(self) -> None:
        os.makedirs(self.cache_dir, mode=0o755, exist_ok=True)

    def ensure_repo_directory(self, repo_hash: str) -> None:
        self.ensure_cache_directory()
        os.makedirs(self._entry_dir(repo_hash), mode=0o755, exist_ok=True)

    def _entry_dir(self, repo_hash: str) -> str:
        return self._boundary.validate_path(repo_hash, "cache_entry")

    # ------------------------------------------------------------------
    # Metadata sidecar
    # ------------------------------------------------------------------

    def get_cache_metadata(self, repo_hash: str) -> dict[str, Any] | None:
        """Return the raw sidecar dict, or ``None`` if missing or unreadable."""
        path = os.path.join(self._entry_dir(repo_hash), METADATA_FILE)
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            log.warning("Unreadable cache metadata for %s: %s", repo_hash, exc)
            return None
        return data if isinstance(data, dict) else None

    def update_cache_metadata(
        self,
        repo_hash: str,
        metadata: CacheMetadata | Mapping[str, Any],
    ) -> None:
        data = metadata.to_dict() if isinstance(metadata, CacheMetadata) else metadata
        self.ensure_repo_directory(repo_hash)
        _atomic_write_json(os.path.join(self._entry_dir(repo_hash), METADATA_FILE), data)

    # ------------------------------------------------------------------
    # Freshness and integrity
    # ------------------------------------------------------------------

    def is_expired(
        self,
        metadata: CacheMetadata | Mapping[str, Any] | None,
        ttl_override: float | None = None,
    ) -> bool:
        """Return ``True`` once an entry's age reaches its TTL.

        The boundary is inclusive: an entry exactly ``ttl`` hours old is
        expired.  Missing or unparseable ``lastUpdated`` is expired.
        """
        if metadata is None:
            return True
        if isinstance(metadata, CacheMetadata):
            last_updated: object = metadata.last_updated
            stored_ttl: object = metadata.ttl_hours
        else:
            last_updated = metadata.get("lastUpdated")
            stored_ttl = metadata.get("ttlHours")

        updated_at = _parse_timestamp(last_updated)
        if updated_at is None:
            return True

        if ttl_override is not None:
            ttl = ttl_override
        elif isinstance(stored_ttl, (int, float)) and not isinstance(stored_ttl, bool):
            ttl = stored_ttl
        else:
            ttl = DEFAULT_TTL_HOURS

        age_hours = (self._clock() - updated_at).total_seconds() / 3600
        return age_hours >= ttl

    def detect_cache_corruption(self, repo_hash: str) -> bool:
        """Return ``True`` if the entry is absent or its sidecar is unusable."""
        if not os.path.isdir(self._entry_dir(repo_hash)):
            return True
        return not CacheMetadata.is_valid_shape(self.get_cache_metadata(repo_hash))

    def handle_cache_corruption(self, repo_hash: str) -> None:
        """Remove the entry directory for *repo_hash*, if any."""
        entry_dir = self._entry_dir(repo_hash)
        try:
            shutil.rmtree(entry_dir)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheError(f"Could not remove cache entry {repo_hash}: {exc}") from exc

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_cached_repo(
        self,
        repo_url: str,
        branch: str | None = None,
        *,
        no_cache: bool = False,
    ) -> str | None:
        """Return the entry directory if present, fresh and intact; else ``None``."""
        if no_cache:
            return None
        location = self.resolve_repo_directory(repo_url, branch)
        if self._is_usable(location):
            return location.repo_dir
        return None

    def _is_usable(self, location: RepoLocation) -> bool:
        metadata = self.get_cache_metadata(location.repo_hash)
        if not CacheMetadata.is_valid_shape(metadata):
            return False
        if self.is_expired(metadata):
            return False
        return os.path.isdir(location.repo_dir)

    def ensure_repository_cached(
        self,
        repo_url: str,
        branch: str | None,
        *,
        ttl_hours: float | None = None,
        no_cache: bool = False,
        logger: OperationLogger | None = None,
    ) -> str:
        """Return a usable entry for ``(repo_url, branch)``, populating on miss."""
        cached = self.get_cached_repo(repo_url, branch, no_cache=no_cache)
        if cached is not None:
            if logger is not None:
                logger.log_operation(
                    "cache_hit",
                    {"repoUrl": repo_url, "branchName": branch, "path": cached},
                )
            return cached

        if logger is not None:
            logger.log_operation("cache_miss", {"repoUrl": repo_url, "branchName": branch})
        return self._populate(repo_url, branch, ttl_hours=ttl_hours, reuse_fresh=not no_cache)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def populate_cache(
        self,
        repo_url: str,
        branch: str | None = None,
        *,
        ttl_hours: float | None = None,
    ) -> str:
        """Clone ``(repo_url, branch)`` into its slot and return the slot path.

        The TTL defaults to the replaced entry's ``ttlHours``, else 24.

        Raises
        ------
        UpstreamFetchError
            When the clone fails.  The slot is left as it was.
        CacheError
            When the entry lock cannot be acquired or the entry cannot be
            moved into place.
        """
        return self._populate(repo_url, branch, ttl_hours=ttl_hours, reuse_fresh=False)

    def refresh_cache(self, repo_url: str, branch: str | None = None) -> str:
        """Re-populate an entry, keeping its ``ttlHours``."""
        location = self.resolve_repo_directory(repo_url, branch)
        existing = self.get_cache_metadata(location.repo_hash) or {}
        ttl = existing.get("ttlHours")
        if not isinstance(ttl, (int, float)) or isinstance(ttl, bool):
            ttl = None
        return self.populate_cache(repo_url, branch, ttl_hours=ttl)

    def _populate(
        self,
        repo_url: str,
        branch: str | None,
        *,
        ttl_hours: float | None,
        reuse_fresh: bool,
    ) -> str:
        location = self.resolve_repo_directory(repo_url, branch)
        parent = os.path.dirname(location.repo_dir)
        target_branch = branch or None

        self.ensure_cache_directory()
        os.makedirs(parent, exist_ok=True)

        with self._entry_lock(location.repo_hash):
            # Another caller may have finished populating while we waited.
            if reuse_fresh and self._is_usable(location):
                return location.repo_dir

            existing = self.get_cache_metadata(location.repo_hash)
            staging = os.path.join(
                parent,
                f".staging-{os.path.basename(location.repo_dir)}-{uuid.uuid4().hex}",
            )
            try:
                self._clone(repo_url, target_branch, staging)
                metadata = CacheMetadata(
                    repo_url=repo_url,
                    branch_name=target_branch,
                    last_updated=self._next_timestamp(existing),
                    ttl_hours=self._effective_ttl(ttl_hours, existing),
                    repo_hash=location.repo_hash,
                    cache_version=CACHE_VERSION,
                )
                _atomic_write_json(os.path.join(staging, METADATA_FILE), metadata.to_dict())
                self._swap_into_place(staging, location)
            finally:
                if os.path.lexists(staging):
                    shutil.rmtree(staging, ignore_errors=True)

        log.debug("Populated cache entry %s from %s", location.repo_hash, repo_url)
        return location.repo_dir

    def _clone(self, repo_url: str, branch: str | None, staging: str) -> None:
        """Call the cloner; only our exceptions escape."""
        normalized = self.normalize_repo_url(repo_url)
        try:
            self._cloner.clone(normalized, branch, staging)
        except ScaffoldResolverError:
            raise
        except Exception as exc:
            raise UpstreamFetchError(
                f"Failed to clone {repo_url}: {exc}",
                repo_url=repo_url,
                branch=branch,
            ) from exc

        if not os.path.isdir(staging):
            raise UpstreamFetchError(
                f"Clone of {repo_url} produced no directory",
                repo_url=repo_url,
                branch=branch,
            )

    @staticmethod
    def _effective_ttl(ttl_hours: float | None, existing: Mapping[str, Any] | None) -> float:
        if ttl_hours is not None:
            return ttl_hours
        previous = existing.get("ttlHours") if existing else None
        if isinstance(previous, (int, float)) and not isinstance(previous, bool):
            return previous
        return DEFAULT_TTL_HOURS

    def _next_timestamp(self, existing: Mapping[str, Any] | None) -> str:
        """Current time, forced strictly past the replaced entry's stamp."""
        now = self._clock()
        previous = _parse_timestamp(existing.get("lastUpdated")) if existing else None
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return _format_timestamp(now)

    def _swap_into_place(self, staging: str, location: RepoLocation) -> None:
        parent = os.path.dirname(location.repo_dir)
        trash: str | None = None
        try:
            if os.path.lexists(location.repo_dir):
                trash = os.path.join(
                    parent,
                    f".trash-{os.path.basename(location.repo_dir)}-{uuid.uuid4().hex}",
                )
                os.replace(location.repo_dir, trash)
            os.replace(staging, location.repo_dir)
        except OSError as exc:
            raise CacheError(
                f"Could not install cache entry {location.repo_hash}: {exc}",
            ) from exc
        finally:
            if trash is not None:
                shutil.rmtree(trash, ignore_errors=True)

    @contextmanager
    def _entry_lock(self, repo_hash: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock file for *repo_hash*; the file itself is never removed."""
        locks_dir = os.path.join(self.cache_dir, LOCKS_DIR)
        os.makedirs(locks_dir, exist_ok=True)
        lock_path = os.path.join(locks_dir, repo_hash.replace("/", "__") + ".lock")
        lock = FileLock(lock_path, timeout=self._lock_timeout if timeout is None else timeout)
        try:
            lock.acquire()
        except Timeout as exc:
            raise CacheError(
                f"Timed out waiting for cache entry lock: {repo_hash}",
                hint=f"Another process may be populating it. Lock file: {lock_path}",
            ) from exc
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # Enumeration and eviction
    # ------------------------------------------------------------------

    def _iter_entry_hashes(self) -> Iterator[str]:
        """Walk ``<protocol>/<name>`` pairs, skipping hidden names."""
        try:
            protocols = sorted(os.listdir(self.cache_dir))
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheError(f"Could not read cache directory {self.cache_dir}: {exc}") from exc

        for protocol in protocols:
            protocol_dir = os.path.join(self.cache_dir, protocol)
            if protocol.startswith(".") or not os.path.isdir(protocol_dir):
                continue
            try:
                names = sorted(os.listdir(protocol_dir))
            except OSError as exc:
                log.warning("Skipping unreadable cache directory %s: %s", protocol_dir, exc)
                continue
            for name in names:
                if name.startswith(".") or not os.path.isdir(os.path.join(protocol_dir, name)):
                    continue
                yield f"{protocol}/{name}"

    def list_entries(self) -> list[CacheEntry]:
        """Describe every entry currently under the cache root."""
        entries: list[CacheEntry] = []
        for repo_hash in self._iter_entry_hashes():
            raw = self.get_cache_metadata(repo_hash)
            metadata = CacheMetadata.from_dict(raw) if CacheMetadata.is_valid_shape(raw) else None
            entries.append(
                CacheEntry(
                    repo_hash=repo_hash,
                    repo_dir=self._entry_dir(repo_hash),
                    metadata=metadata,
                    expired=self.is_expired(metadata),
                )
            )
        return entries

    def clear_expired_entries(self) -> int:
        """Remove every expired or corrupt entry and return how many went.

        Entries whose lock is held by a running population are skipped.
        Lock files under ``.locks`` are left in place.
        A failure to remove one entry is logged and recorded in
        :attr:`last_sweep_failures`; the sweep carries on.
        """
        self.ensure_cache_directory()
        removed = 0
        failures: list[str] = []

        for repo_hash in self._iter_entry_hashes():
            try:
                with self._entry_lock(repo_hash, timeout=0):
                    stale = self.detect_cache_corruption(repo_hash) or self.is_expired(
                        self.get_cache_metadata(repo_hash)
                    )
                    if not stale:
                        continue
                    self.handle_cache_corruption(repo_hash)
            except CacheError as exc:
                log.warning("Could not evict cache entry %s: %s", repo_hash, exc)
                failures.append(repo_hash)
                continue
            removed += 1

        self.last_sweep_failures = failures
        if removed or failures:
            log.info("Cache sweep removed %d entries (%d failed)", removed, len(failures))
        return removed
