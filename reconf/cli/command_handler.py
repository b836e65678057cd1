"""Command handler with command pattern."""

import json
import shlex
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from reconf.bootconf import parse_refind_config
from reconf.plugins.errors import PluginError
from reconf.plugins.manifest import PluginType
from reconf.plugins.registry import PluginRegistry
from reconf.plugins.validator import ValidationResult, validate

Command = Callable[[List[str]], Awaitable[bool]]


class CommandHandler:
    """Dispatches slash commands to the plugin registry.

    Every handler returns whether the REPL loop should continue.
    """

    def __init__(self, registry: PluginRegistry, console: Console):
        self.registry = registry
        self.console = console
        self.commands = self._register_commands()

    def _register_commands(self) -> Dict[str, Command]:
        return {
            "/q": self._cmd_quit,
            "/quit": self._cmd_quit,
            "/exit": self._cmd_quit,
            "/plugins": self._cmd_plugins,
            "/activate": self._cmd_activate,
            "/deactivate": self._cmd_deactivate,
            "/reload": self._cmd_reload,
            "/stats": self._cmd_stats,
            "/hooks": self._cmd_hooks,
            "/config": self._cmd_config,
            "/validate": self._cmd_validate,
            "/check": self._cmd_check,
            "/export": self._cmd_export,
            "/help": self._cmd_help,
        }

    async def handle(self, cmd: str) -> bool:
        """Handle one command line.

        Args:
            cmd: Input starting with '/'

        Returns:
            Whether the REPL loop should continue
        """
        try:
            parts = shlex.split(cmd)
        except ValueError as e:
            self._fail(f"Cannot parse command: {e}")
            return True

        handler = self.commands.get(parts[0]) if parts else None
        if handler is None:
            self._fail(f"Unknown command: {cmd}")
            self.console.print("[dim]Type /help for available commands[/dim]\n")
            return True

        return await handler(parts[1:])

    def _ok(self, message: str) -> None:
        self.console.print(f"[reconf.success]✓ {escape(message)}[/]\n")

    def _fail(self, message: str) -> None:
        self.console.print(f"[reconf.error]✗ {escape(message)}[/]\n")

    def _usage(self, usage: str) -> bool:
        self.console.print(f"[reconf.error]Usage: {escape(usage)}[/]\n")
        return True

    async def _cmd_quit(self, args: List[str]) -> bool:
        self.console.print("[reconf.warning]bye bye![/]")
        return False

    async def _cmd_plugins(self, args: List[str]) -> bool:
        rows = self.registry.list_plugins()
        if not rows:
            self.console.print("[reconf.warning]No plugins found[/]\n")
            return True

        table = Table(title="Plugins", border_style="reconf.border")
        table.add_column("Name", style="reconf.accent")
        table.add_column("Version")
        table.add_column("Type")
        table.add_column("State")
        table.add_column("Description")
        for row in rows:
            state_style = "reconf.success" if row["state"] == "active" else "dim"
            table.add_row(
                row["name"],
                row["version"],
                row["type"],
                f"[{state_style}]{row['state']}[/]",
                escape(row["description"]),
            )
        self.console.print(table)
        self.console.print()
        return True

    async def _cmd_activate(self, args: List[str]) -> bool:
        if len(args) != 1:
            return self._usage("/activate <plugin>")
        try:
            await self.registry.activate_plugin(args[0])
        except PluginError as e:
            self._fail(str(e))
        else:
            self._ok(f"Plugin {args[0]} is active")
        return True

    async def _cmd_deactivate(self, args: List[str]) -> bool:
        if len(args) != 1:
            return self._usage("/deactivate <plugin>")
        try:
            await self.registry.deactivate_plugin(args[0])
        except PluginError as e:
            self._fail(str(e))
        else:
            self._ok(f"Plugin {args[0]} is inactive")
        return True

    async def _cmd_reload(self, args: List[str]) -> bool:
        try:
            await self.registry.reload()
        except PluginError as e:
            self._fail(f"Reload failed: {e}")
            return True

        await self.registry.execute_hooks("ui:render", self.console)
        stats = self.registry.get_stats()
        self._ok(f"Reloaded: {stats['active']['total']} active / {stats['loaded']['total']} loaded")
        return True

    async def _cmd_stats(self, args: List[str]) -> bool:
        stats = self.registry.get_stats()
        loaded_by_type = ", ".join(f"{t}: {n}" for t, n in sorted(stats["loaded"]["by_type"].items())) or "-"
        active_by_type = ", ".join(f"{t}: {n}" for t, n in sorted(stats["active"]["by_type"].items())) or "-"
        busy_hooks = sum(1 for n in stats["hooks"].values() if n)

        self.console.print(Panel(
            f"[reconf.accent]Loaded:[/] {stats['loaded']['total']} ({loaded_by_type})\n"
            f"[reconf.accent]Active:[/] {stats['active']['total']} ({active_by_type})\n"
            f"[reconf.accent]Hooks:[/] {len(stats['hooks'])} ({busy_hooks} with handlers)",
            title="Plugin stats",
            border_style="reconf.border",
        ))
        self.console.print()
        return True

    async def _cmd_hooks(self, args: List[str]) -> bool:
        table = Table(title="Hooks", border_style="reconf.border")
        table.add_column("Hook", style="reconf.accent")
        table.add_column("Handlers (run order)")
        for hook_name, entries in sorted(self.registry.get_hooks().items()):
            handlers = ", ".join(f"{e.plugin} ({e.priority})" for e in entries)
            table.add_row(hook_name, handlers or "[dim]-[/dim]")
        self.console.print(table)
        self.console.print()
        return True

    async def _cmd_config(self, args: List[str]) -> bool:
        """/config <plugin> shows the effective config, /config <plugin> <key> <value> sets an override."""
        if len(args) not in (1, 3):
            return self._usage("/config <plugin> [<key> <json-value>]")

        manifest = self.registry.get_plugin(args[0])
        if manifest is None:
            self._fail(f"Plugin not found: {args[0]}")
            return True

        config_service = self.registry.config_service
        if len(args) == 3:
            if config_service is None:
                self._fail("No plugin config file configured")
                return True
            overrides = config_service.get_plugin_config(manifest.name)
            overrides[args[1]] = _parse_value(args[2])
            config_service.update_plugin_config(manifest.name, overrides)
            self._ok(f"{manifest.name}.{args[1]} updated (takes effect on next activation)")
            return True

        if config_service is not None:
            effective = config_service.merged_config(manifest)
        else:
            effective = dict(manifest.config)
        self.console.print(Panel(
            escape(json.dumps(effective, indent=2, ensure_ascii=False)),
            title=f"{manifest.name} config",
            border_style="reconf.border",
        ))
        self.console.print()
        return True

    async def _cmd_validate(self, args: List[str]) -> bool:
        if len(args) != 1:
            return self._usage("/validate <manifest.reconf>")

        path = Path(args[0]).expanduser()
        try:
            manifest = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._fail(f"Cannot read {path}: {e}")
            return True

        self._print_result(validate(manifest, str(path)), f"Manifest {path.name}")
        return True

    async def _cmd_check(self, args: List[str]) -> bool:
        if len(args) != 1:
            return self._usage("/check <boot-config>")

        path = Path(args[0]).expanduser()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._fail(f"Cannot read {path}: {e}")
            return True

        result = await self.registry.execute_hooks("validation:config", content)
        if not isinstance(result, ValidationResult):
            self._fail("No active validator handled the config")
            return True

        result.plugin_path = str(path)
        self._print_result(result, f"Config {path.name}")
        return True

    async def _cmd_export(self, args: List[str]) -> bool:
        if len(args) not in (2, 3):
            return self._usage("/export <boot-config> <format> [<output>]")

        path = Path(args[0]).expanduser()
        export_format = args[1]
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._fail(f"Cannot read {path}: {e}")
            return True

        config = await self._parse(content, str(path))
        exported = await self.registry.execute_hooks(
            "export:config", {"config": config, "format": export_format}
        )
        if not isinstance(exported, str):
            hint = ", ".join(
                m.name for m in self.registry.get_plugins_by_type(PluginType.EXPORTER)
                if not self.registry.is_active(m.name)
            )
            self._fail(f"No active exporter handles format '{export_format}'")
            if hint:
                self.console.print(f"[dim]Inactive exporters: {escape(hint)}[/dim]\n")
            return True

        if len(args) == 3:
            output = Path(args[2]).expanduser()
            try:
                output.write_text(exported, encoding="utf-8")
            except OSError as e:
                self._fail(f"Cannot write {output}: {e}")
                return True
            self._ok(f"Exported {path.name} as {export_format} to {output}")
        else:
            self.console.print(exported, markup=False, highlight=False)
        return True

    async def _parse(self, content: str, source_path: str) -> Any:
        """Parse through config:parse handlers, falling back to the refind.conf reader."""
        request = {"content": content, "source_path": source_path}
        parsed = await self.registry.execute_hooks("config:parse", request)
        if parsed is request or not isinstance(parsed, Mapping):
            return parse_refind_config(content)
        return parsed

    def _print_result(self, result: ValidationResult, title: str) -> None:
        status = "[reconf.success]VALID[/]" if result.valid else "[reconf.error]INVALID[/]"
        lines = [f"Status: {status}"]
        for label, style, items in (
            ("Errors", "reconf.error", result.errors),
            ("Warnings", "reconf.warning", result.warnings),
            ("Info", "dim", result.info),
        ):
            if items:
                lines.append(f"\n[{style}]{label} ({len(items)}):[/]")
                lines.extend(f"  {i}. {escape(item)}" for i, item in enumerate(items, 1))
        if result.valid and not result.warnings:
            lines.append("\nNo issues found.")

        self.console.print(Panel("\n".join(lines), title=escape(title), border_style="reconf.border"))
        self.console.print()

    async def _cmd_help(self, args: List[str]) -> bool:
        help_text = """[bold]Commands:[/bold]
  /q, /quit, /exit                  Quit
  /plugins                          List discovered plugins and their state
  /activate <plugin>                Activate a plugin (and its dependencies)
  /deactivate <plugin>              Deactivate a plugin
  /reload                           Deactivate everything and rediscover plugins
  /stats                            Plugin and hook counts
  /hooks                            Hook handlers in run order
  /config <plugin> [<key> <value>]  Show or override plugin config
  /validate <manifest>              Validate a .reconf plugin manifest
  /check <boot-config>              Validate a boot-manager config with active validators
  /export <boot-config> <fmt> [out] Export a boot-manager config through active exporters
  /help                             Show this help"""
        self.console.print(Panel(help_text, title="Help", border_style="reconf.border"))
        self.console.print()
        return True


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw
