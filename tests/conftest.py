"""Shared fixtures: throwaway plugin roots with real manifests and modules."""

import json
import textwrap
from pathlib import Path

import pytest

from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery
from reconf.plugins.registry import PluginRegistry

# Minimal exporter that records its lifecycle on the instance
EXPORTER_CODE = """
from reconf.plugins.contracts import ExporterPlugin


class Plugin(ExporterPlugin):
    def __init__(self, api):
        super().__init__(api)
        self.init_calls = 0
        self.cleanup_calls = 0
        self.deps_active_at_init = {}

    async def initialize(self, api):
        self.init_calls += 1
        for dep in api.manifest.dependency_names:
            self.deps_active_at_init[dep] = api.registry.is_active(dep)

    async def cleanup(self):
        self.cleanup_calls += 1

    def export(self, config, format):
        return f"{self.name}:{format}"

    def get_supported_formats(self):
        return ["txt"]


plugin = Plugin
"""

THEME_CODE = """
from reconf.plugins.contracts import ThemePlugin


class Plugin(ThemePlugin):
    def get_theme(self):
        return {"name": self.name, "colors": dict(self.config)}

    def apply_theme(self, target):
        target.append(self.name)


plugin = Plugin
"""


def write_plugin(root: Path, name: str, code: str = EXPORTER_CODE, **fields) -> Path:
    """Write ``root/<name>/<name>.reconf`` plus ``plugin.py``.

    Returns:
        Path of the manifest file
    """
    plugin_dir = root / name
    plugin_dir.mkdir(parents=True, exist_ok=True)

    manifest = {"name": name, "version": "1.0.0", "type": "exporter", "main": "plugin.py"}
    manifest.update(fields)
    manifest_file = plugin_dir / f"{name}.reconf"
    manifest_file.write_text(json.dumps(manifest), encoding="utf-8")

    if code is not None:
        (plugin_dir / manifest["main"]).write_text(textwrap.dedent(code), encoding="utf-8")
    return manifest_file


@pytest.fixture
def plugin_root(tmp_path):
    root = tmp_path / "plugins"
    root.mkdir()
    return root


@pytest.fixture
def config_service(tmp_path):
    return PluginConfigService(tmp_path / "plugin-config.json")


@pytest.fixture
def make_registry(plugin_root, config_service):
    """Factory for a registry over the temporary plugin root only."""

    def factory(**kwargs):
        kwargs.setdefault("config_service", config_service)
        return PluginRegistry(discovery=PluginDiscovery([plugin_root]), **kwargs)

    return factory
