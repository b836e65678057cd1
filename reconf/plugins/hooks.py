"""Hook table - named extension points and the handlers plugins attach to them."""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Application lifecycle points seeded by the registry
WELL_KNOWN_HOOKS = (
    "app:init",
    "app:shutdown",
    "config:load",
    "config:save",
    "ui:render",
    "ui:theme",
    "validation:config",
    "export:config",
)

# Handlers receive (data, api) and may return a replacement for data
HookHandler = Callable[[Any, Any], Any]
HookValue = Union[HookHandler, Tuple[HookHandler, int]]


def priority(value: int) -> Callable[[HookHandler], HookHandler]:
    """Decorator that sets the priority of a hook handler.

    Higher priorities run first. Works on plain functions and on methods
    (bound methods expose the function's attributes).
    """

    def decorator(func: HookHandler) -> HookHandler:
        func.priority = value
        return func

    return decorator


def unpack_hook(value: HookValue) -> Tuple[HookHandler, int]:
    """Split a hooks-mapping value into (handler, priority)."""
    if isinstance(value, tuple):
        handler, prio = value
    else:
        handler, prio = value, getattr(value, "priority", 0)
    if not callable(handler):
        raise TypeError(f"Hook handler {handler!r} is not callable")
    return handler, int(prio or 0)


@dataclass(frozen=True)
class HookEntry:
    """One handler registered for a hook."""

    plugin: str
    handler: HookHandler
    priority: int = 0
    sequence: int = 0


class HookTable:
    """Mapping of hook name to handlers sorted by descending priority.

    Ties keep registration order.
    """

    def __init__(self):
        self._hooks: Dict[str, List[HookEntry]] = {}
        self._counter = itertools.count()

    def seed(self, names: Iterable[str]) -> None:
        """Make sure each hook name exists, with no handlers."""
        for name in names:
            self._hooks.setdefault(name, [])

    def add(self, hook_name: str, plugin: str, handler: HookHandler, prio: Optional[int] = None) -> HookEntry:
        """Register a handler for a hook on behalf of a plugin."""
        if prio is None:
            prio = getattr(handler, "priority", 0) or 0
        entry = HookEntry(plugin=plugin, handler=handler, priority=int(prio), sequence=next(self._counter))
        entries = self._hooks.setdefault(hook_name, [])
        entries.append(entry)
        entries.sort(key=lambda e: (-e.priority, e.sequence))
        logger.debug(f"Registered hook {hook_name} for plugin {plugin} (priority={entry.priority})")
        return entry

    def add_many(self, entries: Iterable[Tuple[str, str, HookHandler, int]]) -> None:
        for hook_name, plugin, handler, prio in entries:
            self.add(hook_name, plugin, handler, prio)

    def remove_plugin(self, plugin: str) -> int:
        """Remove every entry owned by a plugin.

        Returns:
            Number of entries removed
        """
        removed = 0
        for hook_name, entries in self._hooks.items():
            kept = [e for e in entries if e.plugin != plugin]
            removed += len(entries) - len(kept)
            self._hooks[hook_name] = kept
        return removed

    def handlers(self, hook_name: str) -> List[HookEntry]:
        """Snapshot of the entries for a hook, in execution order."""
        return list(self._hooks.get(hook_name, ()))

    def names(self) -> List[str]:
        return list(self._hooks)

    def counts(self) -> Dict[str, int]:
        return {name: len(entries) for name, entries in self._hooks.items()}

    def snapshot(self) -> Dict[str, List[HookEntry]]:
        return {name: list(entries) for name, entries in self._hooks.items()}

    def clear(self) -> None:
        self._hooks.clear()

    def __contains__(self, hook_name: str) -> bool:
        return hook_name in self._hooks

    def __len__(self) -> int:
        return len(self._hooks)
