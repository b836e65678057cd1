"""Tests for the REPL command handler and the plugin management script."""

import json

import pytest
import pytest_asyncio
from rich.console import Console

import manage_plugins
from conftest import write_plugin
from reconf.cli.command_handler import CommandHandler
from reconf.cli.main import parse_args
from reconf.cli.repl import DEFAULT_THEME, REPLRunner
from reconf.constants import BUNDLED_PLUGINS_DIR
from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery
from reconf.plugins.registry import PluginRegistry

REFIND_CONF = 'timeout 5\nmenuentry "Linux" {\n    loader /vmlinuz\n}\n'


@pytest_asyncio.fixture
async def registry(tmp_path):
    registry = PluginRegistry(
        discovery=PluginDiscovery([BUNDLED_PLUGINS_DIR]),
        config_service=PluginConfigService(tmp_path / "plugin-config.json"),
    )
    await registry.initialize()
    yield registry
    await registry.shutdown()


@pytest.fixture
def console():
    return Console(record=True, theme=DEFAULT_THEME, width=200, force_terminal=False)


@pytest.fixture
def handler(registry, console):
    return CommandHandler(registry, console)


def output(console):
    return console.export_text()


class TestCommandHandler:
    """Slash commands."""

    @pytest.mark.asyncio
    async def test_quit(self, handler):
        assert await handler.handle("/q") is False
        assert await handler.handle("/exit") is False

    @pytest.mark.asyncio
    async def test_unknown_command(self, handler, console):
        assert await handler.handle("/frobnicate") is True
        assert "Unknown command" in output(console)

    @pytest.mark.asyncio
    async def test_plugins_table(self, handler, console):
        await handler.handle("/plugins")
        text = output(console)
        assert "dark-theme" in text
        assert "config-exporter" in text
        assert "discovered" in text

    @pytest.mark.asyncio
    async def test_activate_and_deactivate(self, handler, registry, console):
        await handler.handle("/activate config-exporter")
        assert registry.is_active("config-exporter")
        await handler.handle("/deactivate config-exporter")
        assert not registry.is_active("config-exporter")
        assert "is inactive" in output(console)

    @pytest.mark.asyncio
    async def test_activate_unknown_prints_error(self, handler, console):
        assert await handler.handle("/activate ghost") is True
        assert "Plugin not found: ghost" in output(console)

    @pytest.mark.asyncio
    async def test_usage(self, handler, console):
        await handler.handle("/activate")
        assert "Usage: /activate <plugin>" in output(console)

    @pytest.mark.asyncio
    async def test_stats_and_hooks(self, handler, console):
        await handler.handle("/stats")
        await handler.handle("/hooks")
        text = output(console)
        assert "Loaded:" in text
        assert "validation:config" in text
        assert "refind-validator" in text

    @pytest.mark.asyncio
    async def test_check(self, handler, console, tmp_path):
        conf = tmp_path / "refind.conf"
        conf.write_text(REFIND_CONF)
        await handler.handle(f"/check {conf}")
        text = output(console)
        assert "VALID" in text
        assert "INVALID" not in text

    @pytest.mark.asyncio
    async def test_check_missing_file(self, handler, console, tmp_path):
        await handler.handle(f"/check {tmp_path / 'missing.conf'}")
        assert "Cannot read" in output(console)

    @pytest.mark.asyncio
    async def test_export_needs_active_exporter(self, handler, console, tmp_path):
        conf = tmp_path / "refind.conf"
        conf.write_text(REFIND_CONF)
        await handler.handle(f"/export {conf} json")
        text = output(console)
        assert "No active exporter handles format 'json'" in text
        assert "config-exporter" in text

    @pytest.mark.asyncio
    async def test_export_to_file(self, handler, tmp_path):
        conf = tmp_path / "refind.conf"
        conf.write_text(REFIND_CONF)
        out = tmp_path / "refind.json"
        await handler.handle("/activate config-exporter")

        await handler.handle(f"/export {conf} json {out}")

        exported = json.loads(out.read_text())
        assert exported["global"] == {"timeout": "5"}
        assert exported["menuentry"][0]["title"] == "Linux"

    @pytest.mark.asyncio
    async def test_validate_manifest(self, handler, console):
        manifest = BUNDLED_PLUGINS_DIR / "dark-theme" / "dark-theme.reconf"
        await handler.handle(f"/validate {manifest}")
        text = output(console)
        assert "VALID" in text
        assert "INVALID" not in text

    @pytest.mark.asyncio
    async def test_non_utf8_files_fail_cleanly(self, handler, console, tmp_path):
        binary = tmp_path / "latin1.reconf"
        binary.write_bytes(b'{"name": "caf\xe9"}')

        assert await handler.handle(f"/validate {binary}") is True
        assert await handler.handle(f"/check {binary}") is True

        assert output(console).count("Cannot read") == 2

    @pytest.mark.asyncio
    async def test_config_override(self, handler, registry, console):
        await handler.handle('/config dark-theme primary_color "#000000"')
        assert registry.config_service.get_plugin_config("dark-theme") == {"primary_color": "#000000"}

        await handler.handle("/config dark-theme")
        assert "#000000" in output(console)

    @pytest.mark.asyncio
    async def test_reload(self, handler, registry, console):
        await handler.handle("/activate config-exporter")
        await handler.handle("/reload")
        assert registry.is_active("dark-theme")
        assert not registry.is_active("config-exporter")
        assert "Reloaded" in output(console)


class TestREPLRunner:
    """Startup and shutdown around the loop."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path, console):
        registry = PluginRegistry(
            PluginDiscovery([BUNDLED_PLUGINS_DIR]),
            PluginConfigService(tmp_path / "plugin-config.json"),
        )
        runner = REPLRunner(registry=registry, console=console)

        await runner.start()
        assert registry.is_active("dark-theme")
        assert console.get_style("reconf.accent").color is not None

        await runner.stop()
        assert registry.get_active_plugins() == {}

    def test_parse_args(self, tmp_path):
        args = parse_args(["-p", str(tmp_path), "--no-plugins"])
        assert args.plugin_path == [tmp_path]
        assert args.no_plugins


class TestManagePlugins:
    """manage_plugins.py commands."""

    def test_validate_ok(self, plugin_root, capsys):
        write_plugin(plugin_root, "good-one", config={"export_formats": ["txt"]})
        manage_plugins.main(["validate", str(plugin_root)])
        assert "1 valid, 0 invalid" in capsys.readouterr().out

    def test_validate_failure_exits(self, tmp_path, capsys):
        bad = tmp_path / "bad.reconf"
        bad.write_text(json.dumps({"name": "bad", "version": "one", "type": "theme", "main": "x.py"}))
        with pytest.raises(SystemExit) as exc_info:
            manage_plugins.main(["validate", str(bad)])
        assert exc_info.value.code == 1
        assert "Status: INVALID" in capsys.readouterr().out

    def test_list_and_info(self, plugin_root, capsys):
        write_plugin(plugin_root, "listed-one", description="listed")
        manage_plugins.main(["-p", str(plugin_root), "list"])
        assert "listed-one" in capsys.readouterr().out

        manage_plugins.main(["-p", str(plugin_root), "info", "listed-one"])
        assert "Description:  listed" in capsys.readouterr().out

    def test_doctor_reports_missing_main(self, plugin_root, capsys):
        write_plugin(plugin_root, "no-code", code=None)
        with pytest.raises(SystemExit):
            manage_plugins.main(["-p", str(plugin_root), "doctor"])
        assert "main file missing" in capsys.readouterr().out
