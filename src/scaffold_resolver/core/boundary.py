"""Path containment checks.

A :class:`BoundaryValidator` confines user-supplied paths to a single
allowed root.  It is purely lexical: paths are joined onto the root and
normalised, symlinks are not followed, and nothing on disk is touched.

Every violation is reported on the module logger as an audit record
before the :class:`~scaffold_resolver.exceptions.BoundaryViolationError`
is raised.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from scaffold_resolver.exceptions import BoundaryViolationError

logger = logging.getLogger(__name__)


class BoundaryValidator:
    """Validate that paths stay inside *allowed_root*.

    Parameters
    ----------
    allowed_root:
        Directory every validated path must resolve under.  Made
        absolute immediately, relative to the current working directory.
    """

    def __init__(self, allowed_root: str | os.PathLike[str]) -> None:
        self._allowed_root: str = os.path.abspath(os.fspath(allowed_root))

    @property
    def allowed_root(self) -> str:
        return self._allowed_root

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_path(self, user_path: object, operation: str = "unknown") -> str:
        """Return the absolute, normalised form of *user_path*.

        Relative paths are resolved against the allowed root; ``..``
        segments are permitted as long as the result stays inside it.

        Raises
        ------
        BoundaryViolationError
            If *user_path* is not a string, contains a null byte, or
            resolves outside the allowed root.
        """
        if not isinstance(user_path, str):
            raise BoundaryViolationError(
                "Path must be a string",
                user_path=user_path,
                allowed_root=self._allowed_root,
                operation=operation,
            )

        if "\0" in user_path:
            self._log_violation(user_path, "null_byte", operation)
            raise BoundaryViolationError(
                "Path contains null bytes",
                user_path=user_path,
                allowed_root=self._allowed_root,
                operation=operation,
            )

        resolved = os.path.normpath(os.path.join(self._allowed_root, user_path))

        if not self._contains(resolved):
            self._log_violation(user_path, "path_traversal", operation, resolved)
            raise BoundaryViolationError(
                "Path escapes allowed directory boundaries",
                user_path=user_path,
                resolved_path=resolved,
                allowed_root=self._allowed_root,
                operation=operation,
            )

        return resolved

    def validate_paths(
        self,
        paths: Iterable[object],
        operation: str = "unknown",
    ) -> list[str]:
        """Validate *paths* in order, stopping at the first violation."""
        return [self.validate_path(path, operation) for path in paths]

    def get_basename(self, user_path: str) -> str:
        """Validate *user_path*, then return its final segment."""
        self.validate_path(user_path, "basename")
        return os.path.basename(os.path.normpath(user_path))

    def is_within_boundaries(self, user_path: object) -> bool:
        """Non-raising variant of :meth:`validate_path`."""
        try:
            self.validate_path(user_path, "boundary_check")
        except BoundaryViolationError:
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _contains(self, resolved: str) -> bool:
        if resolved == self._allowed_root:
            return True
        # A filesystem root already ends with the separator.
        prefix = self._allowed_root.rstrip(os.sep) + os.sep
        return resolved.startswith(prefix)

    def _log_violation(
        self,
        user_path: str,
        violation_type: str,
        operation: str,
        resolved_path: str | None = None,
    ) -> None:
        logger.warning(
            "Boundary violation (%s) during %s: attempted=%r resolved=%r root=%r",
            violation_type,
            operation,
            user_path,
            resolved_path,
            self._allowed_root,
        )
