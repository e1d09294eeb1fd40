"""Tests for the pre-classification guard (core/security.py).

Coverage:
* Accepted reference shapes pass through unchanged.
* Type, null-byte, injection and control-character rejection.
* Relative traversal checked against ``safe_root``.
* URL scheme allow-list.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from scaffold_resolver.core.security import validate_template_url
from scaffold_resolver.exceptions import ValidationError


# ---------------------------------------------------------------------------
# Accepted input
# ---------------------------------------------------------------------------

class TestAccepted:
    @pytest.mark.parametrize(
        "url",
        [
            "user/repo",
            "user/repo#develop",
            "user/repo/templates/basic",
            "registry/nextjs-app",
            "https://github.com/user/repo",
            "git://example.com/repo.git",
            "ssh://git@example.com/repo.git",
            "file:///srv/templates/basic",
            "https://example.com/tpl?name=demo",
            "/opt/templates/basic",
            "~/templates/basic",
        ],
    )
    def test_returns_input_unchanged(self, url: str, tmp_path: Path) -> None:
        assert validate_template_url(url, safe_root=tmp_path) == url

    def test_relative_path_inside_root(self, tmp_path: Path) -> None:
        assert validate_template_url("./templates/basic", safe_root=tmp_path) == (
            "./templates/basic"
        )

    def test_dotdot_that_stays_inside_root(self, tmp_path: Path) -> None:
        url = "./templates/../other"
        assert validate_template_url(url, safe_root=tmp_path) == url


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class TestRejected:
    @pytest.mark.parametrize("bad", [None, 123, "", "   ", ["user/repo"]])
    def test_non_string_or_blank(self, bad: object) -> None:
        with pytest.raises(ValidationError, match="non-empty string"):
            validate_template_url(bad)

    def test_null_byte(self) -> None:
        with pytest.raises(ValidationError, match="null bytes"):
            validate_template_url("user/repo\0")

    def test_injection_even_when_prefix_is_valid_shorthand(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_template_url("template;rm -rf /")
        err = exc_info.value
        assert str(err) == "Template not accessible"
        assert ";" in err.reason
        assert err.value == "template;rm -rf /"

    @pytest.mark.parametrize(
        "url",
        ["user/repo|cat", "user/repo&&ls", "user/`id`", "user/$(id)", "user/${HOME}"],
    )
    def test_shell_metacharacters(self, url: str) -> None:
        with pytest.raises(ValidationError, match="Template not accessible"):
            validate_template_url(url)

    @pytest.mark.parametrize("url", ["user/repo\n", "user/\rrepo", "user/\trepo"])
    def test_control_characters(self, url: str) -> None:
        with pytest.raises(ValidationError, match="invalid characters"):
            validate_template_url(url)

    def test_relative_traversal_rejected_before_filesystem_access(
        self, tmp_path: Path,
    ) -> None:
        with patch("os.path.exists") as mock_exists, patch("os.listdir") as mock_listdir:
            with pytest.raises(ValidationError, match="Invalid template path") as exc_info:
                validate_template_url("../../../etc/passwd", safe_root=tmp_path / "a")
            mock_exists.assert_not_called()
            mock_listdir.assert_not_called()
        assert exc_info.value.reason == "path traversal"

    def test_relative_traversal_defaults_to_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValidationError, match="Invalid template path"):
            validate_template_url("../sibling")

    @pytest.mark.parametrize("url", ["/opt/../etc/passwd", "~/../root"])
    def test_dotdot_in_absolute_or_home_path(self, url: str) -> None:
        with pytest.raises(ValidationError, match="path traversal"):
            validate_template_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "user/repo/../../../etc",
            "user/repo#main/../../etc",
            "user/repo/templates/..",
            "https://github.com/user/repo/tree/main/../../etc",
            "https://github.com/user/repo/../x",
        ],
    )
    def test_dotdot_in_remote_subpath(self, url: str) -> None:
        with pytest.raises(ValidationError, match="path traversal") as exc_info:
            validate_template_url(url)
        assert exc_info.value.reason == "path traversal"

    def test_dotted_names_are_not_traversal(self) -> None:
        assert validate_template_url("user/repo..v2/a..b") == "user/repo..v2/a..b"

    @pytest.mark.parametrize(
        "url",
        ["javascript://alert", "ftp://example.com/t", "data://text", "custom+x://h/p"],
    )
    def test_disallowed_scheme(self, url: str) -> None:
        with pytest.raises(ValidationError, match="Unsupported protocol") as exc_info:
            validate_template_url(url)
        assert "https" in (exc_info.value.hint or "")
