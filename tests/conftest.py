"""Shared pytest fixtures and configuration for the scaffold-resolver test suite.

Guidelines
----------
* No internet access in any test.
* git must be mocked at the infra boundary (``FakeCloner`` or a patched
  ``subprocess.run``).
* Core tests must be pure — no side effects.
* Every cache lives under ``tmp_path``; the user's real cache is never
  touched.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from scaffold_resolver.infra.cache_manager import CacheManager

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeCloner:
    """Records clone calls and writes a tiny template tree into *dest_dir*."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.calls: list[tuple[str, str | None, str]] = []
        self.files: dict[str, str] = files if files is not None else {"README.md": "hello\n"}

    def clone(self, url: str, branch: str | None, dest_dir: str) -> None:
        self.calls.append((url, branch, dest_dir))
        os.makedirs(dest_dir)
        for relative, content in self.files.items():
            path = os.path.join(dest_dir, relative)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(content)


class RecordingLogger:
    """In-memory :class:`OperationLogger`."""

    def __init__(self) -> None:
        self.operations: list[tuple[str, dict[str, Any]]] = []
        self.warnings: list[str] = []

    def log_operation(self, name: str, payload: dict[str, Any]) -> None:
        self.operations.append((name, payload))

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def names(self) -> list[str]:
        return [name for name, _ in self.operations]


class MutableClock:
    """Callable clock tests can move forward explicitly."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def fake_cloner() -> FakeCloner:
    return FakeCloner()


@pytest.fixture()
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture()
def cache_dir(tmp_path: Any) -> str:
    return str(tmp_path / "cache")


@pytest.fixture()
def cache(cache_dir: str, fake_cloner: FakeCloner, clock: MutableClock) -> CacheManager:
    return CacheManager(cache_dir, fake_cloner, clock=clock, lock_timeout=5)
