"""Structured operation logging.

:class:`StructuredLogger` satisfies
:class:`~scaffold_resolver.core.protocols.OperationLogger`.  Every
operation goes to a stdlib :mod:`logging` logger; when a log file is
configured it is also appended there as one JSON object per line::

    {"timestamp": "...", "operation": "cache_hit", "details": {...}}

Details are redacted before they leave the process: values under
credential-like keys are replaced and userinfo is stripped from URLs.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from typing import Any

from scaffold_resolver.exceptions import ScaffoldResolverError

REDACTED: str = "[REDACTED]"

SENSITIVE_FIELDS: tuple[str, ...] = (
    "password",
    "token",
    "apikey",
    "api_key",
    "authorization",
    "secret",
    "auth",
    "credential",
    "pass",
)

_URL_USERINFO_RE = re.compile(r"(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*://)[^/@\s]+@")


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    if lowered == "key" or lowered.endswith("key"):
        return True
    return any(field in lowered for field in SENSITIVE_FIELDS)


def sanitize_log_data(data: Any) -> Any:
    """Return a copy of *data* with sensitive values redacted."""
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive_key(str(key)) else sanitize_log_data(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [sanitize_log_data(item) for item in data]
    if isinstance(data, str):
        return _URL_USERINFO_RE.sub(rf"\g<scheme>{REDACTED}@", data)
    return data


class StructuredLogger:
    """Operation logger backed by :mod:`logging` and an optional JSONL file.

    Parameters
    ----------
    log_file:
        Path of a JSON-lines file to append to.  Parent directories are
        created on first write.
    name:
        Name of the stdlib logger operations are emitted on.
    """

    def __init__(
        self,
        log_file: str | os.PathLike[str] | None = None,
        *,
        name: str = "scaffold_resolver.operations",
    ) -> None:
        self._log_file: str | None = os.fspath(log_file) if log_file is not None else None
        self._logger = logging.getLogger(name)
        self._write_lock = threading.Lock()

    @property
    def log_file(self) -> str | None:
        return self._log_file

    def log_operation(self, name: str, payload: dict[str, Any]) -> None:
        details = sanitize_log_data(payload)
        self._logger.info("%s %s", name, json.dumps(details, default=str, sort_keys=True))
        self._write_entry(name, details)

    def warn(self, message: str) -> None:
        self._logger.warning(message)
        self._write_entry("warning", {"message": message})

    def log_error(self, error: BaseException, context: dict[str, Any] | None = None) -> None:
        """Record *error* with optional context as an ``error`` operation."""
        self.log_operation(
            "error",
            {
                "type": type(error).__name__,
                "message": str(error),
                "context": context or {},
            },
        )

    def _write_entry(self, operation: str, details: Any) -> None:
        if self._log_file is None:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "operation": operation,
            "details": details,
        }
        line = json.dumps(entry, default=str) + "\n"
        with self._write_lock:
            try:
                directory = os.path.dirname(os.path.abspath(self._log_file))
                os.makedirs(directory, exist_ok=True)
                with open(self._log_file, "a", encoding="utf-8") as handle:
                    handle.write(line)
            except OSError as exc:
                raise ScaffoldResolverError(
                    f"Failed to write log entry: {exc}",
                    hint=f"Check permissions on {self._log_file}",
                ) from exc
