"""REPL core loop."""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.panel import Panel
from rich.theme import Theme

from reconf import __version__
from reconf.cli.command_handler import CommandHandler
from reconf.constants import LOG_DIR, PLUGIN_CALL_TIMEOUT, PLUGIN_CONFIG_FILE
from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery, default_search_paths
from reconf.plugins.errors import PluginError
from reconf.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

# Styles used by the CLI; theme plugins push their own on top
DEFAULT_THEME = Theme({
    "reconf.text": "default",
    "reconf.primary": "bold",
    "reconf.accent": "bold cyan",
    "reconf.border": "blue",
    "reconf.error": "bold red",
    "reconf.warning": "yellow",
    "reconf.success": "green",
    "reconf.selected": "reverse",
})


def create_console() -> Console:
    return Console(
        theme=DEFAULT_THEME,
        legacy_windows=False,
        force_terminal=True,
        force_interactive=False,
        tab_size=4,
    )


def create_registry(extra_paths: Iterable[Path] = (), load_plugins: bool = True) -> PluginRegistry:
    """Build the registry the CLI works with.

    Args:
        extra_paths: Plugin roots searched after the default ones
        load_plugins: False starts with no plugin roots at all
    """
    search_paths = [*default_search_paths(), *extra_paths] if load_plugins else []
    return PluginRegistry(
        discovery=PluginDiscovery(search_paths),
        config_service=PluginConfigService(PLUGIN_CONFIG_FILE),
        call_timeout=PLUGIN_CALL_TIMEOUT,
    )


class REPLRunner:
    """Runs the interactive loop around one PluginRegistry."""

    def __init__(
        self,
        registry: Optional[PluginRegistry] = None,
        console: Optional[Console] = None,
        extra_paths: Iterable[Path] = (),
        load_plugins: bool = True,
    ):
        self.console = console or create_console()
        self.registry = registry or create_registry(extra_paths, load_plugins)
        self.command_handler = CommandHandler(self.registry, self.console)

    async def start(self) -> None:
        """Initialize plugins and let them hook into startup and rendering."""
        try:
            await self.registry.initialize()
        except PluginError as e:
            logger.error(f"Plugin initialization failed: {e}")
            self.console.print(f"[reconf.error]Plugin initialization failed:[/] {e}")

        await self.registry.execute_hooks("app:init", {"version": __version__})
        await self.registry.execute_hooks("ui:render", self.console)

    async def stop(self) -> None:
        await self.registry.execute_hooks("app:shutdown")
        await self.registry.shutdown()

    def _show_welcome(self):
        stats = self.registry.get_stats()
        self.console.print(Panel.fit(
            f"[reconf.accent]reconf {__version__}[/]\n"
            f"[reconf.success]Plugins:[/] {stats['active']['total']} active / "
            f"{stats['loaded']['total']} loaded\n"
            "Type /help for commands, /q to quit",
            border_style="reconf.border",
        ))
        self.console.print()

    def _build_prompt(self) -> HTML:
        return HTML("<b>reconf></b> ")

    async def run(self):
        """Main loop."""
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        session = PromptSession(history=FileHistory(str(LOG_DIR / ".cli_history")))

        await self.start()
        self._show_welcome()

        try:
            while True:
                try:
                    user_input = await session.prompt_async(self._build_prompt())

                    if not user_input.strip():
                        continue

                    if not user_input.startswith("/"):
                        self.console.print("[reconf.warning]Commands start with '/', try /help[/]\n")
                        continue

                    should_continue = await self.command_handler.handle(user_input.strip())
                    if not should_continue:
                        break

                except asyncio.CancelledError:
                    print()
                    continue

                except KeyboardInterrupt:
                    self.console.print("\n[reconf.warning](use /q to quit)[/]\n")
                    continue

                except EOFError:
                    self.console.print("\n[reconf.warning]bye bye![/]")
                    break

                except Exception as e:
                    self.console.print(f"[reconf.error]Error: {e}[/]\n")
                    logger.exception("REPL error")
        finally:
            await self.stop()
