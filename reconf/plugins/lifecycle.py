"""Plugin lifecycle - loads implementation code and stages activations."""

import asyncio
import importlib.util
import inspect
import logging
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from types import ModuleType
from typing import Any, Callable, List, Mapping, Optional, Tuple

from reconf.plugins.api import PluginAPI
from reconf.plugins.contracts import instantiate
from reconf.plugins.errors import ActivationError, DeactivationError
from reconf.plugins.hooks import HookHandler, unpack_hook
from reconf.plugins.manifest import PluginManifest

logger = logging.getLogger(__name__)


@dataclass
class StagedActivation:
    """Everything an activation built, not yet visible to the registry."""

    manifest: PluginManifest
    api: PluginAPI
    module: Optional[ModuleType] = None
    instance: Any = None
    initialized: bool = False
    hooks: List[Tuple[str, HookHandler, int]] = field(default_factory=list)


@dataclass
class ActivePlugin:
    """A committed activation."""

    manifest: PluginManifest
    module: ModuleType
    instance: Any
    api: PluginAPI
    activated_at: datetime = field(default_factory=datetime.now)

    @property
    def name(self) -> str:
        return self.manifest.name


class PluginLifecycle:
    """Loads plugin modules, builds activations and tears them down.

    Plugin-authored coroutines are awaited with ``call_timeout`` seconds as
    an upper bound when it is set.
    """

    def __init__(self, call_timeout: Optional[float] = None):
        self.call_timeout = call_timeout or None

    def load_module(self, manifest: PluginManifest) -> ModuleType:
        """Import the implementation file named by the manifest's ``main``.

        Raises:
            ImportError: If the file is missing or cannot be imported
        """
        main_path = manifest.main_path
        if not main_path.is_file():
            raise ImportError(f"Cannot find plugin module {main_path}")

        module_name = "reconf_plugin_" + re.sub(r"\W", "_", manifest.name)

        # Add plugin directory to sys.path temporarily so the module can import siblings
        plugin_dir = str(main_path.parent)
        added = plugin_dir not in sys.path
        if added:
            sys.path.insert(0, plugin_dir)

        try:
            spec = importlib.util.spec_from_file_location(module_name, main_path)
            if spec is None or spec.loader is None:
                raise ImportError(f"Cannot load plugin module {main_path}")

            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
        finally:
            if added and plugin_dir in sys.path:
                sys.path.remove(plugin_dir)

        logger.debug(f"Loaded module for plugin {manifest.name}: {main_path}")
        return module

    async def call(self, func: Callable[..., Any], *args: Any) -> Any:
        """Call a plugin-authored function, awaiting its result if needed."""
        result = func(*args)
        if inspect.isawaitable(result):
            if self.call_timeout:
                return await asyncio.wait_for(result, self.call_timeout)
            return await result
        return result

    async def build(self, manifest: PluginManifest, api: PluginAPI) -> StagedActivation:
        """Run every activation step without publishing anything.

        Steps: load module, instantiate, initialize, collect hooks. If a step
        after ``initialize`` fails, the instance is cleaned up again.

        Raises:
            ActivationError: Naming the plugin and the failing step's cause
        """
        staged = StagedActivation(manifest=manifest, api=api)
        try:
            staged.module = self.load_module(manifest)
            staged.instance = instantiate(manifest, staged.module, api)

            initialize = getattr(staged.instance, "initialize", None)
            if callable(initialize):
                await self.call(initialize, api)
            staged.initialized = True

            staged.hooks = self._collect_hooks(staged.instance)
        except Exception as e:
            api.discard()
            if staged.initialized:
                await self._rollback(staged)
            raise ActivationError(manifest.name, e) from e

        return staged

    async def teardown(self, active: ActivePlugin) -> None:
        """Call the plugin's cleanup (instance first, then module-level).

        Raises:
            DeactivationError: If cleanup raises or times out
        """
        cleanup = getattr(active.instance, "cleanup", None)
        if not callable(cleanup):
            cleanup = getattr(active.module, "cleanup", None)
        if not callable(cleanup):
            return

        try:
            await self.call(cleanup)
        except Exception as e:
            raise DeactivationError(active.name, e) from e

    def _collect_hooks(self, instance: Any) -> List[Tuple[str, HookHandler, int]]:
        hooks = getattr(instance, "hooks", None) or {}
        if not isinstance(hooks, Mapping):
            raise TypeError(f"hooks must be a mapping, got {type(hooks).__name__}")

        collected = []
        for hook_name, value in hooks.items():
            handler, prio = unpack_hook(value)
            collected.append((hook_name, handler, prio))
        return collected

    async def _rollback(self, staged: StagedActivation) -> None:
        cleanup = getattr(staged.instance, "cleanup", None)
        if not callable(cleanup):
            return
        try:
            await self.call(cleanup)
        except Exception as e:
            logger.warning(f"Cleanup after failed activation of {staged.manifest.name} failed: {e}")
