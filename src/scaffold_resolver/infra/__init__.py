"""Infrastructure layer — filesystem, git and logging integration.

This layer owns the cache root on disk, spawns ``git`` and writes log
files.  Every raw third-party or OS exception must be caught here and
re-raised as a :class:`~scaffold_resolver.exceptions.ScaffoldResolverError`
subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from scaffold_resolver.infra.cache_manager import CacheManager
from scaffold_resolver.infra.config_loader import load_config
from scaffold_resolver.infra.git_cloner import GitCloner
from scaffold_resolver.infra.git_detector import GitStatus, detect_git
from scaffold_resolver.infra.logger import StructuredLogger, sanitize_log_data

__all__: list[str] = [
    "CacheManager",
    "GitCloner",
    "GitStatus",
    "StructuredLogger",
    "detect_git",
    "load_config",
    "sanitize_log_data",
]
