"""Tests for the git-backed cloner (infra/git_cloner.py).

``subprocess.run`` is always mocked — git is never executed.
"""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from scaffold_resolver.exceptions import EnvironmentError, UpstreamFetchError
from scaffold_resolver.infra.git_cloner import GitCloner

URL = "https://github.com/user/repo.git"


def _called_process_error(stderr: str) -> subprocess.CalledProcessError:
    return subprocess.CalledProcessError(128, ["git", "clone"], output="", stderr=stderr)


# ---------------------------------------------------------------------------
# clone
# ---------------------------------------------------------------------------

class TestClone:
    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_shallow_clone_command(self, mock_run: MagicMock) -> None:
        GitCloner().clone(URL, None, "/tmp/dest")

        args = mock_run.call_args.args[0]
        assert args == ["git", "clone", "--depth", "1", "--", URL, "/tmp/dest"]

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_branch_flag(self, mock_run: MagicMock) -> None:
        GitCloner().clone(URL, "develop", "/tmp/dest")

        args = mock_run.call_args.args[0]
        assert args[args.index("--branch") + 1] == "develop"

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_full_clone_when_depth_disabled(self, mock_run: MagicMock) -> None:
        GitCloner(depth=None).clone(URL, None, "/tmp/dest")
        assert "--depth" not in mock_run.call_args.args[0]

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_run_options(self, mock_run: MagicMock) -> None:
        GitCloner(timeout=12).clone(URL, None, "/tmp/dest")

        kwargs = mock_run.call_args.kwargs
        assert kwargs["check"] is True
        assert kwargs["capture_output"] is True
        assert kwargs["timeout"] == 12
        assert kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0"

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_failure_wrapped(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = _called_process_error(
            "Cloning into 'dest'...\nfatal: Remote branch nope not found in upstream origin\n"
        )

        with pytest.raises(UpstreamFetchError, match="branch nope") as exc_info:
            GitCloner().clone(URL, "nope", "/tmp/dest")

        err = exc_info.value
        assert err.repo_url == URL
        assert err.branch == "nope"
        assert err.hint == "fatal: Remote branch nope not found in upstream origin"

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_access_checked_before_clone(self, mock_run: MagicMock) -> None:
        GitCloner().clone(URL, None, "/tmp/dest")

        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands[0] == ["git", "ls-remote", "--heads", URL]
        assert commands[1][:2] == ["git", "clone"]

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_access_denied_skips_clone(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = _called_process_error(
            "fatal: could not read Username for 'https://github.com': terminal prompts disabled"
        )

        with pytest.raises(UpstreamFetchError, match="Unable to access repository") as exc_info:
            GitCloner().clone(URL, "dev", "/tmp/dest")

        assert mock_run.call_count == 1
        assert exc_info.value.branch == "dev"
        assert "credentials" in (exc_info.value.hint or "")

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_auth_failure_during_clone_hint(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = [
            MagicMock(),
            _called_process_error("remote: Repository not found.\nfatal: repository not found"),
        ]

        with pytest.raises(UpstreamFetchError) as exc_info:
            GitCloner().clone(URL, None, "/tmp/dest")
        assert "have access" in (exc_info.value.hint or "")

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_timeout_wrapped(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(["git"], 5)

        with pytest.raises(UpstreamFetchError, match="timed out after 5s"):
            GitCloner(timeout=5).clone(URL, None, "/tmp/dest")

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_missing_git(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(EnvironmentError, match="not installed"):
            GitCloner().clone(URL, None, "/tmp/dest")


# ---------------------------------------------------------------------------
# check_repository_access
# ---------------------------------------------------------------------------

class TestCheckRepositoryAccess:
    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_accessible(self, mock_run: MagicMock) -> None:
        assert GitCloner().check_repository_access(URL) is True
        assert mock_run.call_args.args[0] == ["git", "ls-remote", "--heads", URL]

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_auth_failure(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = _called_process_error("remote: Repository not found.")
        assert GitCloner().check_repository_access(URL) is False

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_network_failure_is_not_an_auth_failure(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = _called_process_error("fatal: unable to access: Could not resolve host")
        assert GitCloner().check_repository_access(URL) is True

    @patch("scaffold_resolver.infra.git_cloner.subprocess.run")
    def test_timeout(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(["git"], 5)
        assert GitCloner().check_repository_access(URL) is True
