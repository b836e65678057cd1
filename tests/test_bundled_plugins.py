"""Tests for the plugins shipped in reconf/bundled_plugins."""

import json
import logging
from types import SimpleNamespace

import pytest
import pytest_asyncio
import yaml
from rich.console import Console

from reconf.bootconf import parse_refind_config
from reconf.constants import BUNDLED_PLUGINS_DIR
from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery
from reconf.plugins.registry import PluginRegistry
from reconf.plugins.validator import ValidationResult, validate

SAMPLE_REFIND_CONF = """
# rEFInd configuration
timeout 20
hideui singleuser,hints
scanfor internal,external,optical
resolution 1920x1080
icons_dir themes/icons

menuentry "Arch Linux" {
    icon /EFI/refind/icons/os_arch.png
    volume 904404F8-B481-440C-A1E3-11A5A954E601
    loader /boot/vmlinuz-linux
    initrd /boot/initramfs-linux.img
    options "root=PARTUUID=5028fa50 rw"
}
"""


@pytest_asyncio.fixture
async def registry(tmp_path):
    registry = PluginRegistry(
        discovery=PluginDiscovery([BUNDLED_PLUGINS_DIR]),
        config_service=PluginConfigService(tmp_path / "plugin-config.json"),
    )
    await registry.initialize()
    yield registry
    await registry.shutdown()


def validator_of(registry):
    return registry.get_active_plugins()["refind-validator"].instance


class TestBundledManifests:
    """Bundled manifests pass full validation."""

    @pytest.mark.parametrize("name", ["dark-theme", "refind-validator", "config-exporter"])
    def test_manifest_is_valid(self, name):
        manifest_file = BUNDLED_PLUGINS_DIR / name / f"{name}.reconf"
        result = validate(json.loads(manifest_file.read_text(encoding="utf-8")), str(manifest_file))
        assert result.valid, result.errors


class TestStartup:
    """Auto-activation of the bundled set."""

    @pytest.mark.asyncio
    async def test_theme_and_validator_auto_activate(self, registry):
        assert registry.is_active("dark-theme")
        assert registry.is_active("refind-validator")
        assert not registry.is_active("config-exporter")

    @pytest.mark.asyncio
    async def test_exporter_activates_on_demand(self, registry):
        assert await registry.activate_plugin("config-exporter")
        assert registry.is_active("config-exporter")


class TestDarkTheme:
    """dark-theme plugin."""

    @pytest.mark.asyncio
    async def test_theme_hook(self, registry):
        theme = await registry.execute_hooks("ui:theme")
        assert theme["name"] == "dark-theme"
        assert theme["colors"]["primary"] == "#1e1e2e"

    @pytest.mark.asyncio
    async def test_render_pushes_rich_theme(self, registry):
        console = Console(record=True, force_terminal=True)
        await registry.execute_hooks("ui:render", console)
        style = console.get_style("reconf.accent")
        assert style.bold
        assert style.color is not None

    @pytest.mark.asyncio
    async def test_apply_to_element_tree(self, registry):
        button = SimpleNamespace(type="button", style={"padding": 1})
        root = SimpleNamespace(type="box", style=None, children=[button])
        registry.get_active_plugins()["dark-theme"].instance.apply_theme(root)

        assert root.style["bg"] == "#1e1e2e"
        assert button.style["bg"] == "#89b4fa"
        assert button.style["padding"] == 1

    @pytest.mark.asyncio
    async def test_user_override(self, tmp_path):
        config_service = PluginConfigService(tmp_path / "plugin-config.json")
        config_service.update_plugin_config("dark-theme", {"primary_color": "#000000"})
        registry = PluginRegistry(PluginDiscovery([BUNDLED_PLUGINS_DIR]), config_service)
        await registry.initialize()
        try:
            theme = await registry.execute_hooks("ui:theme")
            assert theme["colors"]["primary"] == "#000000"
        finally:
            await registry.shutdown()

    @pytest.mark.asyncio
    async def test_bad_color_override_warns(self, tmp_path, caplog):
        config_service = PluginConfigService(tmp_path / "plugin-config.json")
        config_service.update_plugin_config("dark-theme", {"accent_color": "blue"})
        registry = PluginRegistry(PluginDiscovery([BUNDLED_PLUGINS_DIR]), config_service)
        with caplog.at_level(logging.WARNING, logger="plugin.dark-theme"):
            await registry.initialize()
        try:
            assert registry.is_active("dark-theme")
            warnings = [r.getMessage() for r in caplog.records if r.name == "plugin.dark-theme"]
            assert len(warnings) == 1
            assert warnings[0].startswith("[dark-theme] Invalid format for accent_color")
        finally:
            await registry.shutdown()


class TestRefindValidator:
    """refind-validator plugin."""

    @pytest.mark.asyncio
    async def test_clean_config(self, registry):
        result = await registry.execute_hooks("validation:config", SAMPLE_REFIND_CONF)
        assert isinstance(result, ValidationResult)
        assert result.valid, result.errors
        assert any("GUID volume" in i for i in result.info)
        assert any("root= parameter" in i for i in result.info)

    @pytest.mark.asyncio
    async def test_bad_global_options(self, registry):
        result = validator_of(registry).validate(
            "timeout -5\nresolution big\nhideui everything\nfoo bar\n"
        )
        assert "Timeout cannot be negative: -5" in result.errors
        assert any(e.startswith("Invalid resolution format: big") for e in result.errors)
        assert "Invalid hideui option: everything" in result.errors
        assert "Unknown global option: foo" in result.errors

    @pytest.mark.asyncio
    async def test_timeout_edges(self, registry):
        plugin = validator_of(registry)
        assert "Invalid timeout value: soon (must be a number)" in plugin.validate("timeout soon\n").errors
        assert any("Very long timeout" in w for w in plugin.validate("timeout 4000\n").warnings)
        assert any("Timeout set to 0" in i for i in plugin.validate("timeout 0\n").info)

    @pytest.mark.asyncio
    async def test_menu_entry_problems(self, registry):
        conf = (
            'timeout 5\n'
            'menuentry "Broken" {\n'
            '    icon ..\\icons\\x.png\n'
            '}\n'
            'menuentry "Rescue" {\n'
            '    loader /vmlinuz\n'
            '    options "init=/bin/sh nokaslr"\n'
            '}\n'
        )
        result = validator_of(registry).validate(conf)
        assert "Menu entry 1 (Broken): Missing loader or volume specification" in result.errors
        assert any("uses backslashes" in w for w in result.warnings)
        assert any("parent directory references" in w for w in result.warnings)
        assert any("dangerous boot option: init=/bin/sh" in w for w in result.warnings)
        assert any('"Rescue" disables KASLR' in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_common_issues(self, registry):
        conf = "timeout 10\nhideui all\ntextonly\nresolution 1024x768\nscan_delay 9\ncsr_values 10,77\n"
        result = validator_of(registry).validate(conf)
        assert "No menu entries defined - rEFInd will auto-detect boot options" in result.warnings
        assert "textonly and resolution options may conflict" in result.warnings
        assert 'hideui "all" with timeout > 0 may not show timeout countdown' in result.warnings
        assert "High scan_delay (9s) may slow boot process" in result.warnings
        assert any(w.startswith("CSR values specified") for w in result.warnings)

    @pytest.mark.asyncio
    async def test_deprecated_option(self, registry):
        result = validator_of(registry).validate("scan_all_linux_kernels true\n")
        assert "Deprecated option found: scan_all_linux_kernels" in result.warnings

    @pytest.mark.asyncio
    async def test_parsed_input_and_rules(self, registry):
        plugin = validator_of(registry)
        parsed = parse_refind_config(SAMPLE_REFIND_CONF)
        assert plugin.validate(parsed).valid
        assert "timeout" in plugin.get_rules()["valid_boot_options"]
        assert not plugin.validate(42).valid


class TestConfigExporter:
    """config-exporter plugin."""

    @pytest.mark.asyncio
    async def test_json_and_yaml(self, registry):
        await registry.activate_plugin("config-exporter")
        config = parse_refind_config(SAMPLE_REFIND_CONF)

        as_json = await registry.execute_hooks("export:config", {"config": config, "format": "json"})
        as_yaml = await registry.execute_hooks("export:config", {"config": config, "format": "yaml"})

        assert json.loads(as_json) == config
        assert yaml.safe_load(as_yaml) == config

    @pytest.mark.asyncio
    async def test_unknown_format_is_left_alone(self, registry):
        await registry.activate_plugin("config-exporter")
        request = {"config": {}, "format": "xml"}
        assert await registry.execute_hooks("export:config", request) is request


class TestBootConf:
    """refind.conf reader."""

    def test_parse(self):
        parsed = parse_refind_config(SAMPLE_REFIND_CONF)
        assert parsed["global"]["timeout"] == "20"
        assert parsed["global"]["hideui"] == "singleuser,hints"
        assert len(parsed["menuentry"]) == 1
        entry = parsed["menuentry"][0]
        assert entry["title"] == "Arch Linux"
        assert entry["options"]["loader"] == "/boot/vmlinuz-linux"
        assert entry["options"]["options"] == '"root=PARTUUID=5028fa50 rw"'

    def test_unterminated_entry(self):
        parsed = parse_refind_config('menuentry "Open" {\n loader /x.efi\n')
        assert [e["title"] for e in parsed["menuentry"]] == ["Open"]
