"""Pre-classification safety guard for raw template references.

:func:`validate_template_url` runs before any parsing, filesystem or
network access.  It never normalises its input: a reference either
passes through unchanged or is rejected with a
:class:`~scaffold_resolver.exceptions.ValidationError`.
"""

from __future__ import annotations

import os
import re
from urllib.parse import urlsplit

from scaffold_resolver.core.boundary import BoundaryValidator
from scaffold_resolver.core.url_parser import has_scheme, is_local_reference
from scaffold_resolver.exceptions import BoundaryViolationError, ValidationError

INJECTION_TOKENS: tuple[str, ...] = (";", "|", "&", "`", "$(", "${")
CONTROL_CHARACTERS: tuple[str, ...] = ("\n", "\r", "\t")
ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https", "git", "ssh", "file"})

_SCHEME_NAME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*)://")


def validate_template_url(
    url: object,
    *,
    safe_root: str | os.PathLike[str] | None = None,
) -> str:
    """Return *url* unchanged if it is safe to classify.

    Parameters
    ----------
    url:
        The raw, user-supplied template reference.
    safe_root:
        Directory relative local paths must stay inside.  Defaults to the
        current working directory.

    Raises
    ------
    ValidationError
        On non-string or blank input, null bytes, shell metacharacters,
        control characters, disallowed URL schemes, or ``..`` traversal
        in a local path or a remote subpath.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError(
            "Template URL must be a non-empty string",
            value=url,
            hint="Provide a valid template URL or name",
        )

    if "\0" in url:
        raise ValidationError(
            "Template contains null bytes",
            value=url,
            reason="null byte",
        )

    found = [token for token in INJECTION_TOKENS if token in url]
    if found:
        raise ValidationError(
            "Template not accessible",
            value=url,
            reason=f"shell metacharacters {found!r}",
            hint="Avoid shell metacharacters in template URLs",
        )

    if any(char in url for char in CONTROL_CHARACTERS):
        raise ValidationError(
            "Template URL contains invalid characters",
            value=url,
            reason="control character",
        )

    if is_local_reference(url):
        _validate_local_path(url, safe_root)
    elif has_scheme(url):
        _validate_scheme(url)
        _validate_remote_segments(url, _url_path(url))
    else:
        _validate_remote_segments(url, url.replace("#", "/"))

    return url


def _validate_local_path(
    url: str,
    safe_root: str | os.PathLike[str] | None,
) -> None:
    if url.startswith(("./", "../")):
        validator = BoundaryValidator(safe_root if safe_root is not None else os.getcwd())
        try:
            validator.validate_path(url, "validate_template_url")
        except BoundaryViolationError as exc:
            raise ValidationError(
                f"Invalid template path: {exc}",
                value=url,
                reason="path traversal",
                hint="Use paths within the current directory or absolute paths",
            ) from exc
        return

    # Absolute and home-relative paths have no base to resolve against.
    if ".." in url.replace("\\", "/").split("/"):
        raise ValidationError(
            "Invalid template path: path traversal attempts are not allowed",
            value=url,
            reason="path traversal",
            hint='Avoid using ".." in template paths',
        )


def _validate_scheme(url: str) -> None:
    match = _SCHEME_NAME_RE.match(url)
    scheme = match.group(1).lower() if match else ""
    if scheme not in ALLOWED_SCHEMES:
        raise ValidationError(
            f"Unsupported protocol: {scheme}",
            value=url,
            reason="scheme not allowed",
            hint=f"Allowed protocols: {', '.join(sorted(ALLOWED_SCHEMES))}",
        )


def _validate_remote_segments(url: str, path: str) -> None:
    # Subpaths of remote references are joined onto the clone directory
    # later; ``..`` must never reach the cache.
    if ".." in path.replace("\\", "/").split("/"):
        raise ValidationError(
            "Invalid template path: path traversal attempts are not allowed",
            value=url,
            reason="path traversal",
            hint='Remove ".." segments from the repository subpath',
        )


def _url_path(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        # Malformed URLs are rejected by the classifier.
        return ""
