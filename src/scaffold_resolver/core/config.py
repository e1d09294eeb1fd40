"""Typed view over the resolver's alias configuration.

The raw configuration is a nested, untyped mapping::

    {
        "defaults": {
            "templates":  {"<namespace>": {"<name>": "<url>"}},
            "registries": {"<namespace>": {"<name>": "<url>"}}
        }
    }

``templates`` is the current alias table; ``registries`` is the legacy
one.  A legacy namespace whose value carries a ``type`` key is a
registry *descriptor* owned by the registry discovery layer, not an
alias table, and is ignored here.  Only non-blank string leaves count
as aliases.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

AliasTable = dict[str, dict[str, str]]

OFFICIAL_REGISTRY: dict[str, dict[str, str]] = {
    "official": {
        "nextjs-app": "million-views/packages/nextjs-app",
    },
}
"""Built-in registry table: ``namespace -> template -> GitHub shorthand``."""


def _alias_table(raw: object, *, skip_descriptors: bool) -> AliasTable:
    if not isinstance(raw, Mapping):
        return {}
    table: AliasTable = {}
    for namespace, entries in raw.items():
        if not isinstance(namespace, str) or not isinstance(entries, Mapping):
            continue
        if skip_descriptors and "type" in entries:
            continue
        aliases = {
            name: url.strip()
            for name, url in entries.items()
            if isinstance(name, str) and isinstance(url, str) and url.strip()
        }
        if aliases:
            table[namespace] = aliases
    return table


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Alias tables extracted from a raw configuration mapping."""

    templates: AliasTable = field(default_factory=dict)
    registries: AliasTable = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> ResolverConfig:
        """Build from the raw ``{"defaults": {...}}`` shape.

        Malformed branches are dropped rather than rejected.
        """
        defaults = raw.get("defaults") if isinstance(raw, Mapping) else None
        if not isinstance(defaults, Mapping):
            return cls()
        return cls(
            templates=_alias_table(defaults.get("templates"), skip_descriptors=False),
            registries=_alias_table(defaults.get("registries"), skip_descriptors=True),
        )

    def template_alias(self, namespace: str, name: str) -> str | None:
        return self.templates.get(namespace, {}).get(name)

    def registry_alias(self, namespace: str, name: str) -> str | None:
        return self.registries.get(namespace, {}).get(name)

    def lookup(self, namespace: str, name: str) -> str | None:
        """Current table first, then the legacy one."""
        return self.template_alias(namespace, name) or self.registry_alias(namespace, name)
