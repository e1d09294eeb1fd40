"""``git`` CLI backed implementation of :class:`~scaffold_resolver.core.protocols.RepositoryCloner`.

This module is the **only** place in the codebase that spawns ``git``.
All ``subprocess`` failures are caught here and re-raised as typed
:class:`~scaffold_resolver.exceptions.ScaffoldResolverError` subclasses —
nothing raw escapes the infrastructure boundary.
"""

from __future__ import annotations

import os
import subprocess

from scaffold_resolver.exceptions import EnvironmentError, UpstreamFetchError


class GitCloner:
    """Concrete :class:`RepositoryCloner` running ``git clone``.

    Usage::

        cloner = GitCloner(timeout=120)
        cloner.clone("https://github.com/user/repo.git", "main", "/tmp/dest")

    This class satisfies the protocol structurally — no explicit
    inheritance required.
    """

    # Substrings in git's stderr that point at credentials or permissions
    # rather than a transient network problem.
    _AUTH_SIGNALS: tuple[str, ...] = (
        "authentication failed",
        "permission denied",
        "repository not found",
        "could not read username",
        "terminal prompts disabled",
    )

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        depth: int | None = 1,
        git_executable: str = "git",
    ) -> None:
        self._timeout = timeout
        self._depth = depth
        self._git = git_executable

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def clone(self, url: str, branch: str | None, dest_dir: str) -> None:
        """Shallow-clone *url* into *dest_dir*.

        Access is checked with :meth:`check_repository_access` first so
        credential problems are reported as such instead of as a generic
        clone failure.

        Raises
        ------
        UpstreamFetchError
            When access is denied, or git exits non-zero or exceeds the
            timeout.
        EnvironmentError
            When the git executable cannot be found.
        """
        if not self.check_repository_access(url):
            raise UpstreamFetchError(
                f"Unable to access repository: {url}",
                repo_url=url,
                branch=branch,
                hint="Check your authentication credentials and repository permissions.",
            )

        args = [self._git, "clone"]
        if self._depth:
            args += ["--depth", str(self._depth)]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, dest_dir]

        try:
            self._run(args)
        except subprocess.TimeoutExpired as exc:
            raise UpstreamFetchError(
                f"git clone timed out after {self._timeout:g}s: {url}",
                repo_url=url,
                branch=branch,
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise UpstreamFetchError(
                f"git clone failed for {url}" + (f" (branch {branch})" if branch else ""),
                repo_url=url,
                branch=branch,
                hint=self._failure_hint(exc.stderr),
            ) from exc

    # ------------------------------------------------------------------
    # Access check
    # ------------------------------------------------------------------

    def check_repository_access(self, url: str) -> bool:
        """Return ``False`` only when ``git ls-remote`` reports an auth failure.

        Network errors and timeouts return ``True``; the clone itself is
        left to report those.
        """
        try:
            self._run([self._git, "ls-remote", "--heads", url])
        except subprocess.CalledProcessError as exc:
            return not self._is_auth_failure(exc.stderr)
        except subprocess.TimeoutExpired:
            return True
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
        try:
            return subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=env,
            )
        except FileNotFoundError as exc:
            raise EnvironmentError(
                f"{self._git} is not installed or not on PATH.",
                hint="Install git from https://git-scm.com/downloads",
            ) from exc

    @classmethod
    def _is_auth_failure(cls, stderr: str | None) -> bool:
        text = (stderr or "").lower()
        return any(signal in text for signal in cls._AUTH_SIGNALS)

    @classmethod
    def _failure_hint(cls, stderr: str | None) -> str | None:
        lines = [line for line in (stderr or "").strip().splitlines() if line.strip()]
        detail = lines[-1] if lines else None
        if cls._is_auth_failure(stderr):
            advice = "Check that the repository exists and that you have access to it."
            return f"{detail}\n{advice}" if detail else advice
        return detail
