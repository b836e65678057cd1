"""Plugin system exceptions."""

from pathlib import Path
from typing import Optional, Sequence


class PluginError(Exception):
    """Base exception for plugin errors."""

    pass


class DiscoveryError(PluginError):
    """A plugin root could not be scanned."""

    pass


class ManifestError(PluginError):
    """Base exception for a single manifest file that cannot be used."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class ManifestParseError(ManifestError):
    """Manifest file is unreadable or not a JSON object."""

    pass


class ManifestValidationError(ManifestError):
    """Manifest parsed but failed structural or schema validation."""

    def __init__(self, path: Path, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(path, "; ".join(self.errors))


class PluginNotFoundError(PluginError):
    """Operation referenced a plugin name with no manifest."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Plugin not found: {name}")


class InterfaceMismatchError(PluginError):
    """Instantiated plugin does not satisfy the contract of its declared type."""

    pass


class ActivationError(PluginError):
    """Activation of a plugin failed."""

    def __init__(self, plugin: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.plugin = plugin
        self.cause = cause
        if message is None:
            message = f"Failed to activate plugin {plugin}: {cause}"
        super().__init__(message)


class MissingDependencyError(ActivationError):
    """A declared dependency has no manifest, or its version is too old."""

    def __init__(self, plugin: str, dependency: str, reason: str = "no manifest found"):
        self.dependency = dependency
        super().__init__(plugin, message=f"Plugin {plugin} has missing dependency {dependency}: {reason}")


class CyclicDependencyError(ActivationError):
    """The dependency graph reachable from a plugin contains a cycle."""

    def __init__(self, plugin: str, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(
            plugin,
            message=f"Cyclic dependency while activating {plugin}: {' -> '.join(self.cycle)}",
        )


class DeactivationError(PluginError):
    """Cleanup of a plugin failed during deactivation."""

    def __init__(self, plugin: str, cause: Optional[BaseException] = None):
        self.plugin = plugin
        self.cause = cause
        super().__init__(f"Failed to deactivate plugin {plugin}: {cause}")
