"""Plugin registry - owns manifests, active plugins and the hook table."""

import logging
from collections import Counter
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from reconf.plugins.api import PluginAPI
from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery, get_stats
from reconf.plugins.errors import DeactivationError, PluginError, PluginNotFoundError
from reconf.plugins.hooks import WELL_KNOWN_HOOKS, HookEntry, HookTable
from reconf.plugins.lifecycle import ActivePlugin, PluginLifecycle
from reconf.plugins.manifest import PluginManifest, PluginType
from reconf.plugins.resolver import find_dependents, resolve_activation_order
from reconf.plugins.utils import deep_merge

logger = logging.getLogger(__name__)

# Plugin types activated without user action at startup
AUTO_ACTIVATE_TYPES = (PluginType.THEME, PluginType.VALIDATOR)


class PluginState(str, Enum):
    """Plugin lifecycle states."""

    DISCOVERED = "discovered"
    ACTIVE = "active"


class PluginRegistry:
    """Central registry for all plugins.

    Holds the loaded manifests, the active plugins and the hook table, and
    drives activation/deactivation. All mutation goes through this object;
    query methods return copies.
    """

    def __init__(
        self,
        discovery: Optional[PluginDiscovery] = None,
        config_service: Optional[PluginConfigService] = None,
        call_timeout: Optional[float] = None,
    ):
        self.discovery = discovery or PluginDiscovery()
        self.config_service = config_service
        self.lifecycle = PluginLifecycle(call_timeout)

        self._plugins: Dict[str, PluginManifest] = {}
        self._active: Dict[str, ActivePlugin] = {}
        self._hooks = HookTable()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load manifests, seed well-known hooks and auto-activate themes/validators.

        Idempotent. Raises DiscoveryError if a plugin root cannot be scanned.
        """
        if self._initialized:
            return

        logger.info("Initializing plugin registry...")
        self._plugins = self.discovery.load_all()
        self._hooks.seed(WELL_KNOWN_HOOKS)
        await self._auto_activate()
        self._initialized = True

        logger.info(
            f"Plugin registry initialized, "
            f"{len(self._active)}/{len(self._plugins)} plugins active"
        )

    async def _auto_activate(self) -> None:
        for name, manifest in list(self._plugins.items()):
            if manifest.type not in AUTO_ACTIVATE_TYPES:
                continue
            try:
                await self.activate_plugin(name)
            except PluginError as e:
                logger.warning(f"Failed to auto-activate plugin {name}: {e}")

    async def activate_plugin(self, name: str) -> bool:
        """Activate a plugin, activating its inactive dependencies first.

        Returns:
            True (already active counts as success)

        Raises:
            PluginNotFoundError: No manifest named ``name``
            MissingDependencyError: A dependency has no manifest or is too old
            CyclicDependencyError: The dependency closure has a cycle
            ActivationError: A plugin in the chain failed to activate
        """
        if name not in self._plugins:
            raise PluginNotFoundError(name)

        if name in self._active:
            logger.info(f"Plugin {name} is already active")
            return True

        for plugin_name in resolve_activation_order(name, self._plugins, self.is_active):
            await self._activate_one(self._plugins[plugin_name])

        return True

    async def _activate_one(self, manifest: PluginManifest) -> None:
        api = self._create_api(manifest, staged=True)
        staged = await self.lifecycle.build(manifest, api)

        # Commit point: nothing below calls plugin code
        self._hooks.add_many(
            (hook_name, manifest.name, handler, prio) for hook_name, handler, prio in staged.hooks
        )
        api.commit()
        self._active[manifest.name] = ActivePlugin(
            manifest=manifest,
            module=staged.module,
            instance=staged.instance,
            api=api,
        )
        logger.info(f"Activated plugin: {manifest.name} v{manifest.version} ({manifest.type.value})")

    async def deactivate_plugin(self, name: str) -> bool:
        """Deactivate a plugin: cleanup, drop its hooks, forget the instance.

        The plugin is removed even when its cleanup fails; the failure is
        then raised as DeactivationError.

        Returns:
            True (inactive counts as success)
        """
        active = self._active.get(name)
        if active is None:
            logger.info(f"Plugin {name} is not active")
            return True

        dependents = find_dependents(name, self._plugins, list(self._active))
        if dependents:
            logger.warning(f"Deactivating {name} while active plugins depend on it: {', '.join(dependents)}")

        error: Optional[DeactivationError] = None
        try:
            await self.lifecycle.teardown(active)
        except DeactivationError as e:
            error = e

        removed = self._hooks.remove_plugin(name)
        del self._active[name]

        if error is not None:
            logger.error(f"Plugin {name} removed after failed cleanup: {error.cause}")
            raise error

        logger.info(f"Deactivated plugin: {name} ({removed} hook handler(s) removed)")
        return True

    async def execute_hooks(self, hook_name: str, data: Any = None) -> Any:
        """Run the handlers of a hook in priority order.

        Each handler gets the current data and a fresh PluginAPI for its
        plugin; a non-None return value replaces the data. Handler failures
        are logged and skipped.

        Returns:
            The data after the last handler
        """
        result = data
        for entry in self._hooks.handlers(hook_name):
            try:
                api = self._create_api(self._manifest_for(entry.plugin))
                hook_result = await self.lifecycle.call(entry.handler, result, api)
            except Exception as e:
                logger.exception(f"Hook error in plugin {entry.plugin} for {hook_name}: {e}")
                continue

            if hook_result is not None:
                result = hook_result

        return result

    async def shutdown(self) -> None:
        """Deactivate every active plugin, dependents first; failures are logged."""
        for name in reversed(list(self._active)):
            try:
                await self.deactivate_plugin(name)
            except PluginError as e:
                logger.warning(f"Error while deactivating {name}: {e}")

    async def reload(self) -> None:
        """Deactivate everything, forget all state and initialize again."""
        logger.info("Reloading plugin registry...")
        await self.shutdown()

        self._plugins.clear()
        self._active.clear()
        self._hooks.clear()
        self._initialized = False
        if self.config_service is not None:
            self.config_service.reload()

        await self.initialize()

    def _create_api(self, manifest: PluginManifest, staged: bool = False) -> PluginAPI:
        if self.config_service is not None:
            config = self.config_service.merged_config(manifest)
        else:
            config = deep_merge(manifest.config, {})
        return PluginAPI(
            manifest=manifest,
            config=config,
            hook_table=self._hooks,
            executor=self.execute_hooks,
            registry=self,
            staged=staged,
        )

    def _manifest_for(self, name: str) -> PluginManifest:
        if name in self._active:
            return self._active[name].manifest
        if name in self._plugins:
            return self._plugins[name]
        raise PluginNotFoundError(name)

    # Queries - all return copies

    def get_plugin(self, name: str) -> Optional[PluginManifest]:
        return self._plugins.get(name)

    def get_all_plugins(self) -> Dict[str, PluginManifest]:
        return dict(self._plugins)

    def get_active_plugins(self) -> Dict[str, ActivePlugin]:
        return {name: replace(active) for name, active in self._active.items()}

    def get_plugins_by_type(self, plugin_type: Union[PluginType, str]) -> List[PluginManifest]:
        plugin_type = PluginType(plugin_type)
        return [m for m in self._plugins.values() if m.type == plugin_type]

    def get_active_plugins_by_type(self, plugin_type: Union[PluginType, str]) -> List[ActivePlugin]:
        plugin_type = PluginType(plugin_type)
        return [replace(a) for a in self._active.values() if a.manifest.type == plugin_type]

    def is_active(self, name: str) -> bool:
        return name in self._active

    def get_state(self, name: str) -> Optional[PluginState]:
        if name in self._active:
            return PluginState.ACTIVE
        if name in self._plugins:
            return PluginState.DISCOVERED
        return None

    def get_hooks(self) -> Dict[str, List[HookEntry]]:
        return self._hooks.snapshot()

    def get_stats(self) -> dict:
        """Counts of loaded and active plugins (total and per type) and handlers per hook."""
        active_by_type = Counter(a.manifest.type.value for a in self._active.values())
        return {
            "loaded": get_stats(self._plugins),
            "active": {"total": len(self._active), "by_type": dict(active_by_type)},
            "hooks": self._hooks.counts(),
        }

    def list_plugins(self) -> List[dict]:
        """Plugins as dicts for display."""
        rows = []
        for name, manifest in self._plugins.items():
            active = self._active.get(name)
            rows.append({
                "name": name,
                "version": manifest.version,
                "type": manifest.type.value,
                "state": self.get_state(name).value,
                "description": manifest.description,
                "author": manifest.author,
                "path": str(manifest.source_path) if manifest.source_path else None,
                "dependencies": manifest.dependency_names,
                "permissions": list(manifest.permissions),
                "activated_at": active.activated_at.isoformat() if active else None,
            })
        return rows
