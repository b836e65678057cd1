"""Tests for plugin helpers and the plugin config service."""

import json

import pytest

from reconf.plugins.config import PluginConfigService
from reconf.plugins.manifest import PluginManifest
from reconf.plugins.utils import compare_versions, deep_merge, is_valid_plugin_name, is_valid_semver, validate_config


class TestVersions:
    """Semantic version helpers."""

    @pytest.mark.parametrize("version", ["1.0.0", "10.20.30", "1.0.0-beta", "1.0.0-rc-1+build-7"])
    def test_valid_semver(self, version):
        assert is_valid_semver(version)

    @pytest.mark.parametrize("version", ["1.0", "v1.0.0", "1.0.0.0", "1.0.0\n", "", None, 100])
    def test_invalid_semver(self, version):
        assert not is_valid_semver(version)

    def test_compare_versions(self):
        assert compare_versions("1.2.0", "1.10.0") == -1
        assert compare_versions("2.0.0", "1.99.99") == 1
        assert compare_versions("1.0.0-beta", "1.0.0") == 0
        assert compare_versions("1.0", "1.0.0") == 0


class TestPluginNames:
    """Plugin name rule."""

    def test_name_rules(self):
        assert is_valid_plugin_name("dark-theme")
        assert is_valid_plugin_name("my_plugin2")
        assert not is_valid_plugin_name("x")
        assert not is_valid_plugin_name("a" * 51)
        assert not is_valid_plugin_name("Dark-Theme")
        assert not is_valid_plugin_name("dark theme")
        assert not is_valid_plugin_name("dark-theme\n")


class TestDeepMerge:
    """deep_merge returns a merged copy."""

    def test_nested_merge_does_not_mutate(self):
        target = {"colors": {"primary": "#000", "text": "#fff"}, "size": 1}
        source = {"colors": {"primary": "#111"}, "extra": [1]}
        merged = deep_merge(target, source)

        assert merged == {"colors": {"primary": "#111", "text": "#fff"}, "size": 1, "extra": [1]}
        assert target["colors"]["primary"] == "#000"
        assert "extra" not in target

    def test_scalar_replaces_mapping(self):
        assert deep_merge({"a": {"b": 1}}, {"a": 2}) == {"a": 2}


class TestValidateConfig:
    """Config schema checks."""

    SCHEMA = {
        "mode": {"required": True, "type": "string", "enum": ["fast", "safe"]},
        "count": {"type": "integer"},
        "color": {"type": "string", "pattern": r"^#[0-9a-f]{6}$"},
    }

    def test_valid(self):
        assert validate_config({"mode": "fast", "count": 2, "color": "#a0b0c0"}, self.SCHEMA) == []

    def test_errors(self):
        errors = validate_config({"count": True, "color": "red"}, self.SCHEMA)
        assert "Missing required field: mode" in errors
        assert "Invalid type for count: expected integer, got boolean" in errors
        assert any(e.startswith("Invalid format for color") for e in errors)

    def test_enum(self):
        assert validate_config({"mode": "slow"}, self.SCHEMA) == [
            "Invalid value for mode: must be one of fast, safe"
        ]


class TestPluginConfigService:
    """User-level overrides file."""

    def test_missing_file_is_empty(self, tmp_path):
        service = PluginConfigService(tmp_path / "none.json")
        assert service.get_plugin_config("anything") == {}
        assert service.configured_plugins() == []

    def test_update_persists(self, tmp_path):
        path = tmp_path / "conf" / "plugin-config.json"
        PluginConfigService(path).update_plugin_config("dark-theme", {"primary_color": "#101010"})

        assert json.loads(path.read_text()) == {"plugins": {"dark-theme": {"primary_color": "#101010"}}}
        reread = PluginConfigService(path)
        assert reread.get_plugin_config("dark-theme") == {"primary_color": "#101010"}
        assert reread.configured_plugins() == ["dark-theme"]

    def test_merged_config(self, tmp_path):
        service = PluginConfigService(tmp_path / "plugin-config.json")
        service.update_plugin_config("themed", {"colors": {"text": "#eee"}})
        manifest = PluginManifest(
            name="themed", version="1.0.0", type="theme", main="plugin.py",
            config={"colors": {"text": "#fff", "primary": "#000"}},
        )
        assert service.merged_config(manifest) == {"colors": {"text": "#eee", "primary": "#000"}}
        assert manifest.config["colors"]["text"] == "#fff"

    def test_broken_file_falls_back(self, tmp_path):
        path = tmp_path / "plugin-config.json"
        path.write_text("{broken")
        assert PluginConfigService(path).get_plugin_config("x") == {}

    def test_reload_picks_up_changes(self, tmp_path):
        path = tmp_path / "plugin-config.json"
        service = PluginConfigService(path)
        path.write_text(json.dumps({"plugins": {"late": {"k": 1}}}))
        assert service.get_plugin_config("late") == {}
        service.reload()
        assert service.get_plugin_config("late") == {"k": 1}
