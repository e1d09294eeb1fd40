"""Load resolver alias configuration from a JSON file.

The file holds the same ``{"defaults": {"templates": ..., "registries":
...}}`` shape :meth:`ResolverConfig.from_mapping` accepts.  Discovery of
*which* file to load is the caller's business.
"""

from __future__ import annotations

import json
import os

from scaffold_resolver.core.config import ResolverConfig
from scaffold_resolver.exceptions import ConfigError


def load_config(path: str | os.PathLike[str] | None) -> ResolverConfig:
    """Read *path* into a :class:`ResolverConfig`.

    ``None`` yields an empty configuration.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid JSON, or is not a JSON
        object.
    """
    if path is None:
        return ResolverConfig()

    try:
        with open(path, encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {os.fspath(path)}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read config file {os.fspath(path)}: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(
            f"Config file is not valid JSON: {os.fspath(path)}",
            hint=str(exc),
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a JSON object: {os.fspath(path)}")

    return ResolverConfig.from_mapping(raw)
