"""scaffold-resolver — turn template references into trusted local directories.

Classifies local paths, GitHub shorthand, git URLs and registry aliases,
guards them against unsafe input, and keeps cloned repositories in a
TTL-managed on-disk cache.
"""

from scaffold_resolver.version import __version__

__all__: list[str] = ["__version__"]
