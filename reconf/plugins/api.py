"""PluginAPI - the context object handed to each plugin."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from reconf.plugins.hooks import HookHandler, HookTable
from reconf.plugins.manifest import PluginManifest

HookExecutor = Callable[[str, Any], Awaitable[Any]]


class PluginAPI:
    """Context provided to a plugin at activation and on every hook call.

    Plugins use it to read their config, log, run hooks and register extra
    hook handlers. Handlers registered while the plugin is still activating
    are held back until the activation commits.
    """

    def __init__(
        self,
        manifest: PluginManifest,
        config: Dict[str, Any],
        hook_table: HookTable,
        executor: HookExecutor,
        registry: Any = None,
        staged: bool = False,
    ):
        self.manifest = manifest
        self.config = config
        self.registry = registry
        self._hook_table = hook_table
        self._executor = executor
        self._pending: Optional[List[Tuple[str, HookHandler, Optional[int]]]] = [] if staged else None
        self._logger = logging.getLogger(f"plugin.{manifest.name}")

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def version(self) -> str:
        return self.manifest.version

    def log(self, message: str) -> None:
        self._logger.info(f"[{self.name}] {message}")

    def error(self, message: str) -> None:
        self._logger.error(f"[{self.name}] {message}")

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger for this plugin.

        Args:
            name: Optional sub-logger name (appended to plugin.{name})
        """
        if name:
            return logging.getLogger(f"plugin.{self.name}.{name}")
        return self._logger

    async def execute(self, hook_name: str, data: Any = None) -> Any:
        """Run a hook through the registry and return the resulting data."""
        return await self._executor(hook_name, data)

    def register(self, hook_name: str, handler: HookHandler, priority: Optional[int] = None) -> None:
        """Register a hook handler owned by this plugin.

        Args:
            hook_name: Hook name (e.g. 'ui:render', 'config:load')
            handler: Callable taking (data, api), sync or async
            priority: Higher runs first; defaults to handler.priority or 0
        """
        if not callable(handler):
            raise TypeError(f"Hook handler for {hook_name} is not callable")
        if self._pending is not None:
            self._pending.append((hook_name, handler, priority))
        else:
            self._hook_table.add(hook_name, self.name, handler, priority)
        self._logger.debug(f"Registered hook: {hook_name}")

    @property
    def staged(self) -> bool:
        return self._pending is not None

    def commit(self) -> None:
        """Publish held-back registrations and switch to live registration."""
        pending, self._pending = self._pending or [], None
        for hook_name, handler, priority in pending:
            self._hook_table.add(hook_name, self.name, handler, priority)

    def discard(self) -> None:
        """Drop held-back registrations of a failed activation."""
        if self._pending is not None:
            self._pending.clear()
