"""Regression tests for the optional Rich dependency.

Every command must keep working, with plain stderr output, when Rich is
not installed.  stdout stays reserved for the resolved path.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from scaffold_resolver.cli import exit_codes
from scaffold_resolver.cli.app import main
from scaffold_resolver.cli.console import console, escape_markup, get_rich_console, strip_markup
from scaffold_resolver.exceptions import EnvironmentError
from tests.conftest import FakeCloner


def _hide_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "rich", None)
    monkeypatch.setitem(sys.modules, "rich.console", None)
    monkeypatch.setitem(sys.modules, "rich.table", None)
    monkeypatch.setitem(sys.modules, "rich.markup", None)


def test_help_works_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)

    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_doctor_works_without_rich(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _hide_rich(monkeypatch)

    code = main(["doctor", "--cache-dir", str(tmp_path)])
    assert code in (exit_codes.SUCCESS, exit_codes.GENERAL_ERROR)


def test_resolve_works_without_rich(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _hide_rich(monkeypatch)

    with patch("scaffold_resolver.infra.git_cloner.GitCloner", return_value=FakeCloner()):
        code = main(["user/repo", "--cache-dir", str(tmp_path)])

    captured = capsys.readouterr()
    assert code == exit_codes.SUCCESS
    assert captured.out.strip().endswith("user-repo")
    assert "Resolved template" in captured.err
    assert "[bold" not in captured.err


def test_get_rich_console_raises_typed_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)

    with pytest.raises(EnvironmentError, match="rich is not installed"):
        get_rich_console()


def test_plain_table_alignment(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str],
) -> None:
    _hide_rich(monkeypatch)

    console.table("Title", ("A", "Longer"), [("[green]x[/green]", "y")])

    lines = capsys.readouterr().err.splitlines()
    assert "Title" in lines
    assert "A  Longer" in lines
    assert "x  y     " in lines


def test_strip_markup() -> None:
    assert strip_markup("[bold red]Error:[/bold red] boom") == "Error: boom"


def test_escape_markup_with_rich() -> None:
    pytest.importorskip("rich")
    assert escape_markup("[bold]x") == "\\[bold]x"


def test_escape_markup_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)
    assert escape_markup("[bold]x") == "[bold]x"
