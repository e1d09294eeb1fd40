"""Template resolution pipeline.

:class:`TemplateResolver` turns a raw template reference into a local
directory::

    alias resolution → security validation → classification
        → path resolution → metadata load → resolved

Any stage may reject the reference by raising a
:class:`~scaffold_resolver.exceptions.ScaffoldResolverError` subclass.
Validation and classification never touch disk or network; remote
references are materialised through an injected
:class:`~scaffold_resolver.core.protocols.RepositoryCache`.
"""

from __future__ import annotations

import json
import os
from typing import Any

from scaffold_resolver.core.boundary import BoundaryValidator
from scaffold_resolver.core.config import OFFICIAL_REGISTRY, ResolverConfig
from scaffold_resolver.core.models import (
    GenericUrl,
    GithubArchive,
    GithubBranch,
    GithubRepo,
    GithubShorthand,
    LocalReference,
    ParsedReference,
    RegistryReference,
    ResolvedTemplate,
    TarballReference,
)
from scaffold_resolver.core.protocols import OperationLogger, RepositoryCache
from scaffold_resolver.core.security import validate_template_url
from scaffold_resolver.core.url_parser import extract_parameters, parse_template_url
from scaffold_resolver.exceptions import RegistryLookupError, UnsupportedFormatError

TEMPLATE_METADATA_FILE: str = "template.json"


class TemplateResolver:
    """Resolve template references to local template directories.

    Parameters
    ----------
    cache:
        Any object satisfying :class:`RepositoryCache` — normally a
        :class:`~scaffold_resolver.infra.cache_manager.CacheManager`.
    config:
        Alias tables; an empty :class:`ResolverConfig` when omitted.
    safe_root:
        Root relative local references must stay inside (defaults to the
        current working directory at validation time).
    default_branch:
        Branch used for GitHub references that name none.  ``None``
        means the remote's default branch.
    ttl_hours:
        TTL forwarded to the cache for newly populated entries.
    no_cache:
        Always re-populate remote references.
    operation_logger:
        Receives ``cache_hit`` / ``cache_miss`` events unless a call
        passes its own logger.
    """

    def __init__(
        self,
        cache: RepositoryCache,
        config: ResolverConfig | None = None,
        *,
        safe_root: str | os.PathLike[str] | None = None,
        default_branch: str | None = None,
        ttl_hours: float | None = None,
        no_cache: bool = False,
        operation_logger: OperationLogger | None = None,
    ) -> None:
        self._cache: RepositoryCache = cache
        self._config: ResolverConfig = config if config is not None else ResolverConfig()
        self._safe_root = safe_root
        self._default_branch = default_branch
        self._ttl_hours = ttl_hours
        self._no_cache = no_cache
        self._operation_logger = operation_logger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_template(
        self,
        raw_url: str,
        *,
        branch: str | None = None,
        logger: OperationLogger | None = None,
    ) -> ResolvedTemplate:
        """Run the full pipeline for *raw_url*.

        Raises
        ------
        ValidationError
            If *raw_url* (or the alias it expands to) is unsafe.
        UnsupportedFormatError
            If the reference kind is unknown or not yet supported.
        RegistryLookupError
            If a registry namespace or template is unknown.
        UpstreamFetchError
            If cloning a remote reference fails.
        """
        validate_template_url(raw_url, safe_root=self._safe_root)
        resolved_url = self.resolve_registry_alias(raw_url)
        if resolved_url != raw_url:
            validate_template_url(resolved_url, safe_root=self._safe_root)

        parsed = parse_template_url(resolved_url)
        template_path = self.resolve_to_path(parsed, branch=branch, logger=logger)

        return ResolvedTemplate(
            template_path=template_path,
            parameters=extract_parameters(parsed),
            metadata=self.load_template_metadata(template_path),
        )

    def resolve_registry_alias(self, url: str) -> str:
        """Expand ``<namespace>/<name>`` through the configured alias tables.

        Returns the trimmed alias, or *url* unchanged when nothing matches.
        """
        namespace, sep, name = url.partition("/")
        if not sep or not name:
            return url
        alias = self._config.lookup(namespace, name)
        return alias if alias is not None else url

    def resolve_to_path(
        self,
        parsed: ParsedReference,
        *,
        branch: str | None = None,
        logger: OperationLogger | None = None,
    ) -> str:
        """Map a classified reference to an absolute local directory."""
        if isinstance(parsed, LocalReference):
            return os.path.abspath(os.path.expanduser(parsed.path))

        if isinstance(parsed, (GithubShorthand, GithubRepo, GithubBranch)):
            return self._resolve_github(parsed, branch=branch, logger=logger)

        if isinstance(parsed, RegistryReference):
            return self._resolve_registry(parsed, branch=branch, logger=logger)

        if isinstance(parsed, GithubArchive):
            raise UnsupportedFormatError(
                "GitHub archive URLs not yet supported",
                hint="Use repository URLs instead: https://github.com/owner/repo",
            )

        if isinstance(parsed, TarballReference):
            raise UnsupportedFormatError(
                "Tarball URLs not yet supported",
                hint="Use repository URLs or extract the archive to a local path",
            )

        if isinstance(parsed, GenericUrl):
            raise UnsupportedFormatError(
                "Generic repository URLs not yet supported",
                hint="Use GitHub URLs, user/repo shorthand, or local paths",
            )

        kind = getattr(parsed, "type", type(parsed).__name__)
        raise UnsupportedFormatError(f"Unsupported URL type: {kind}")

    @staticmethod
    def load_template_metadata(template_path: str) -> dict[str, Any]:
        """Best-effort read of ``template.json``; never raises."""
        metadata_path = os.path.join(template_path, TEMPLATE_METADATA_FILE)
        try:
            with open(metadata_path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError):
            data = None

        if isinstance(data, dict):
            return data

        name = os.path.basename(os.path.normpath(template_path))
        return {"id": name, "name": name, "version": "1.0.0"}

    # ------------------------------------------------------------------
    # Remote references
    # ------------------------------------------------------------------

    def _resolve_github(
        self,
        parsed: GithubShorthand | GithubRepo | GithubBranch,
        *,
        branch: str | None,
        logger: OperationLogger | None,
    ) -> str:
        repo_url = f"https://github.com/{parsed.owner}/{parsed.repo}.git"
        target_branch = getattr(parsed, "branch", None) or branch or self._default_branch

        repo_dir = self._cache.ensure_repository_cached(
            repo_url,
            target_branch,
            ttl_hours=self._ttl_hours,
            no_cache=self._no_cache,
            logger=logger if logger is not None else self._operation_logger,
        )

        if not parsed.subpath:
            return repo_dir
        return BoundaryValidator(repo_dir).validate_path(parsed.subpath, "template_subpath")

    def _resolve_registry(
        self,
        parsed: RegistryReference,
        *,
        branch: str | None,
        logger: OperationLogger | None,
    ) -> str:
        templates = OFFICIAL_REGISTRY.get(parsed.namespace)
        if templates is None:
            raise RegistryLookupError(
                f"Unknown registry namespace: {parsed.namespace}",
                hint=f"Available namespaces: {', '.join(sorted(OFFICIAL_REGISTRY))}",
            )

        source = templates.get(parsed.template)
        if source is None:
            raise RegistryLookupError(
                f"Unknown template in {parsed.namespace} namespace: {parsed.template}",
                hint=f"Available templates in {parsed.namespace}: "
                f"{', '.join(sorted(templates))}",
            )

        target = parse_template_url(source)
        if not isinstance(target, GithubShorthand):
            raise RegistryLookupError(
                f"Registry entry for {parsed.namespace}/{parsed.template} "
                f"is not a GitHub source: {source}",
            )

        event_logger = logger if logger is not None else self._operation_logger
        if event_logger is not None:
            event_logger.log_operation(
                "registry_resolved",
                {"namespace": parsed.namespace, "template": parsed.template, "source": source},
            )
        return self._resolve_github(target, branch=branch, logger=logger)
