"""Tests for alias configuration (core/config.py, infra/config_loader.py)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scaffold_resolver.core.config import OFFICIAL_REGISTRY, ResolverConfig
from scaffold_resolver.exceptions import ConfigError
from scaffold_resolver.infra.config_loader import load_config


RAW = {
    "defaults": {
        "templates": {
            "work": {"api": "  acme/templates/api  ", "blank": "   ", "num": 7},
        },
        "registries": {
            "work": {"api": "legacy/api", "web": "legacy/web"},
            "remote": {"type": "http", "url": "https://registry.example.com"},
        },
    },
}


# ---------------------------------------------------------------------------
# ResolverConfig
# ---------------------------------------------------------------------------

class TestResolverConfig:
    def test_string_leaves_are_trimmed(self) -> None:
        config = ResolverConfig.from_mapping(RAW)
        assert config.template_alias("work", "api") == "acme/templates/api"

    def test_blank_and_non_string_leaves_dropped(self) -> None:
        config = ResolverConfig.from_mapping(RAW)
        assert config.template_alias("work", "blank") is None
        assert config.template_alias("work", "num") is None

    def test_descriptor_namespace_is_not_an_alias_table(self) -> None:
        config = ResolverConfig.from_mapping(RAW)
        assert "remote" not in config.registries
        assert config.registry_alias("remote", "url") is None

    def test_lookup_prefers_current_table(self) -> None:
        config = ResolverConfig.from_mapping(RAW)
        assert config.lookup("work", "api") == "acme/templates/api"

    def test_lookup_falls_back_to_legacy_table(self) -> None:
        config = ResolverConfig.from_mapping(RAW)
        assert config.lookup("work", "web") == "legacy/web"

    def test_lookup_miss(self) -> None:
        assert ResolverConfig.from_mapping(RAW).lookup("work", "nope") is None

    @pytest.mark.parametrize(
        "raw",
        [None, {}, {"defaults": []}, {"defaults": {"templates": "x"}}, "not a mapping"],
    )
    def test_malformed_shapes_give_empty_config(self, raw: object) -> None:
        config = ResolverConfig.from_mapping(raw)  # type: ignore[arg-type]
        assert config.templates == {}
        assert config.registries == {}

    def test_official_registry_table(self) -> None:
        assert OFFICIAL_REGISTRY["official"]["nextjs-app"] == "million-views/packages/nextjs-app"


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_none_gives_empty_config(self) -> None:
        assert load_config(None) == ResolverConfig()

    def test_reads_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(RAW), encoding="utf-8")

        config = load_config(path)
        assert config.lookup("work", "api") == "acme/templates/api"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid JSON") as exc_info:
            load_config(path)
        assert exc_info.value.hint

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(path)
