"""Template reference classification.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic.

Classification order (enforced by :func:`parse_template_url`):

1. **Local** — ``./``, ``../``, ``~/`` prefixes or absolute paths.
2. **Full URL** — anything carrying a ``scheme://`` prefix.
3. **Registry** — first segment is a reserved registry keyword.
4. **GitHub shorthand** — ``owner/repo[/subpath][#branch[/subpath]]``.

Anything else is rejected with
:class:`~scaffold_resolver.exceptions.UnsupportedFormatError`.
"""

from __future__ import annotations

import os
import re
from urllib.parse import SplitResult, parse_qsl, urlsplit

from scaffold_resolver.core.models import (
    GenericUrl,
    GithubArchive,
    GithubBranch,
    GithubRepo,
    GithubShorthand,
    LocalReference,
    ParsedReference,
    RegistryReference,
    TarballReference,
)
from scaffold_resolver.exceptions import UnsupportedFormatError

REGISTRY_KEYWORDS: frozenset[str] = frozenset({"registry", "official"})
DEFAULT_REGISTRY_NAMESPACE: str = "official"

ARCHIVE_EXTENSIONS: tuple[str, ...] = (
    ".tar.gz",
    ".tgz",
    ".tar.bz2",
    ".tar.xz",
    ".zip",
)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_LOCAL_PREFIXES: tuple[str, ...] = ("./", "../", "~/")

_FORMAT_HINT = "\n".join(
    (
        "Use user/repo for GitHub repositories",
        "Use user/repo#branch for specific branches",
        "Use https://github.com/user/repo for full URLs",
        "Use ./path/to/local/template for local templates",
    )
)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def is_local_reference(text: str) -> bool:
    """Return ``True`` when *text* names a filesystem location."""
    return text.startswith(_LOCAL_PREFIXES) or text == "~" or os.path.isabs(text)


def has_scheme(text: str) -> bool:
    return _SCHEME_RE.match(text) is not None


def _strip_git_suffix(name: str) -> str:
    return name[: -len(".git")] if name.endswith(".git") else name


def _query_parameters(parts: SplitResult) -> dict[str, str]:
    return dict(parse_qsl(parts.query, keep_blank_values=True))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def parse_template_url(text: str) -> ParsedReference:
    """Classify *text* into one of the :data:`ParsedReference` variants.

    Raises
    ------
    UnsupportedFormatError
        If *text* matches none of the supported grammars.
    """
    if is_local_reference(text):
        return LocalReference(path=text)

    if has_scheme(text):
        return parse_full_url(text)

    segments = text.split("/")
    if segments[0] in REGISTRY_KEYWORDS:
        return _parse_registry(text, segments)

    shorthand = _parse_shorthand(text)
    if shorthand is not None:
        return shorthand

    raise UnsupportedFormatError(
        f"Unsupported template URL format: {text} "
        "(checked local, full URL, registry and GitHub shorthand)",
        hint=_FORMAT_HINT,
    )


# ---------------------------------------------------------------------------
# Full URLs
# ---------------------------------------------------------------------------

def parse_full_url(text: str) -> ParsedReference:
    """Classify a ``scheme://`` URL."""
    try:
        parts = urlsplit(text)
        hostname = (parts.hostname or "").lower()
    except ValueError as exc:
        raise UnsupportedFormatError(f"Malformed URL: {text}") from exc

    if hostname == "github.com":
        return parse_github_url(text)

    params = _query_parameters(parts)

    if parts.path.lower().endswith(ARCHIVE_EXTENSIONS):
        return TarballReference(url=text, parameters=params)

    return GenericUrl(
        protocol=parts.scheme.lower(),
        hostname=hostname,
        pathname=parts.path or "/",
        search_params=params,
        parameters=dict(params),
    )


def parse_github_url(text: str) -> ParsedReference:
    """Classify a ``https://github.com/...`` URL.

    Recognised shapes::

        /owner/repo[.git][/subpath]
        /owner/repo/tree/<branch>[/subpath]
        /owner/repo/archive/...
        /owner/repo/releases/download/...
    """
    parts = urlsplit(text)
    segments = [segment for segment in parts.path.split("/") if segment]

    if len(segments) < 2:
        raise UnsupportedFormatError(
            "Invalid GitHub URL format",
            hint=f"Expected: https://github.com/owner/repo[/path], got: {text}",
        )

    owner = segments[0]
    repo = _strip_git_suffix(segments[1])
    remaining = segments[2:]
    params = _query_parameters(parts)

    if remaining[:1] == ["archive"] or remaining[:2] == ["releases", "download"]:
        return GithubArchive(
            owner=owner,
            repo=repo,
            archive_url=text,
            parameters=params,
        )

    if remaining[:1] == ["tree"] and len(remaining) >= 2:
        return GithubBranch(
            owner=owner,
            repo=repo,
            branch=remaining[1],
            subpath="/".join(remaining[2:]),
            parameters=params,
        )

    return GithubRepo(
        owner=owner,
        repo=repo,
        subpath="/".join(remaining),
        parameters=params,
    )


# ---------------------------------------------------------------------------
# Registry and shorthand
# ---------------------------------------------------------------------------

def _parse_registry(text: str, segments: list[str]) -> RegistryReference:
    if len(segments) == 2 and segments[1]:
        return RegistryReference(
            namespace=DEFAULT_REGISTRY_NAMESPACE,
            template=segments[1],
        )
    if len(segments) == 3 and segments[1] and segments[2]:
        return RegistryReference(namespace=segments[1], template=segments[2])
    raise UnsupportedFormatError(
        f"Invalid registry reference: {text}",
        hint="Use registry/<template> or registry/<namespace>/<template>",
    )


def _parse_shorthand(text: str) -> GithubShorthand | None:
    repo_part, sep, branch_part = text.partition("#")

    branch: str | None = None
    branch_subpath = ""
    if sep:
        branch_name, _, branch_subpath = branch_part.partition("/")
        branch = branch_name or None

    segments = repo_part.split("/")
    if len(segments) < 2 or not segments[0] or not segments[1]:
        return None

    subpath = "/".join(segment for segment in segments[2:] if segment)
    if branch_subpath:
        subpath = f"{subpath}/{branch_subpath}" if subpath else branch_subpath

    return GithubShorthand(
        owner=segments[0],
        repo=_strip_git_suffix(segments[1]),
        subpath=subpath.strip("/"),
        branch=branch,
    )


def extract_parameters(parsed: ParsedReference) -> dict[str, str]:
    """Return the query-string parameters carried by *parsed* (a copy)."""
    search_params = getattr(parsed, "search_params", None)
    if search_params:
        return dict(search_params)
    return dict(parsed.parameters)
