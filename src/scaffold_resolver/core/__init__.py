"""Core / service layer — classification, validation and resolution logic.

Rules
-----
* No ``print()`` calls.
* No network access and no writes; the only filesystem read is the
  best-effort ``template.json`` load in the resolver.
* No imports from ``cli`` or ``infra``.
* Collaborators (cache, cloner, logger) arrive through the protocols in
  :mod:`scaffold_resolver.core.protocols`.
"""

from scaffold_resolver.core.boundary import BoundaryValidator
from scaffold_resolver.core.config import ResolverConfig
from scaffold_resolver.core.models import (
    CacheEntry,
    CacheMetadata,
    GenericUrl,
    GithubArchive,
    GithubBranch,
    GithubRepo,
    GithubShorthand,
    LocalReference,
    ParsedReference,
    RegistryReference,
    RepoLocation,
    ResolvedTemplate,
    TarballReference,
)
from scaffold_resolver.core.protocols import OperationLogger, RepositoryCache, RepositoryCloner
from scaffold_resolver.core.resolver import TemplateResolver
from scaffold_resolver.core.security import validate_template_url
from scaffold_resolver.core.url_parser import (
    extract_parameters,
    parse_full_url,
    parse_github_url,
    parse_template_url,
)

__all__: list[str] = [
    "BoundaryValidator",
    "CacheEntry",
    "CacheMetadata",
    "GenericUrl",
    "GithubArchive",
    "GithubBranch",
    "GithubRepo",
    "GithubShorthand",
    "LocalReference",
    "OperationLogger",
    "ParsedReference",
    "RegistryReference",
    "RepoLocation",
    "RepositoryCache",
    "RepositoryCloner",
    "ResolvedTemplate",
    "ResolverConfig",
    "TarballReference",
    "TemplateResolver",
    "extract_parameters",
    "parse_full_url",
    "parse_github_url",
    "parse_template_url",
    "validate_template_url",
]
