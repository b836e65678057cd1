"""Plugin role contracts and the factory that instantiates plugin classes."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from types import ModuleType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from reconf.plugins.errors import InterfaceMismatchError
from reconf.plugins.hooks import HookValue
from reconf.plugins.manifest import PluginManifest, PluginType

if TYPE_CHECKING:
    from reconf.plugins.api import PluginAPI
    from reconf.plugins.validator import ValidationResult


class BasePlugin(ABC):
    """Base class for every plugin.

    Subclasses are constructed with the plugin's PluginAPI. ``initialize`` runs
    once after construction, ``cleanup`` once at deactivation, and ``hooks``
    maps hook names to handlers taking ``(data, api)``.
    """

    def __init__(self, api: PluginAPI):
        self.api = api
        self.config = api.config
        self.name = api.name
        self.version = api.version

    async def initialize(self, api: PluginAPI) -> None:
        """Called once at activation. Override for setup."""
        pass

    async def cleanup(self) -> None:
        """Called once at deactivation. Override to release resources."""
        pass

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {}


class ThemePlugin(BasePlugin):
    """Theme plugins describe colors/styles and apply them to a presentation surface."""

    @abstractmethod
    def get_theme(self) -> Dict[str, Any]:
        """Return the theme description (colors and styles)."""
        ...

    @abstractmethod
    def apply_theme(self, target: Any) -> None:
        """Apply the theme to a presentation surface, mutating it.

        Args:
            target: Surface to style (e.g. a rich Console or an element tree)
        """
        ...

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {
            "ui:theme": self._theme_hook,
            "ui:render": self._render_hook,
        }

    def _theme_hook(self, data: Any, api: PluginAPI) -> Dict[str, Any]:
        return self.get_theme()

    def _render_hook(self, data: Any, api: PluginAPI) -> None:
        self.apply_theme(data)


class ConfigParserPlugin(BasePlugin):
    """Config parser plugins convert between file content and structured config."""

    @abstractmethod
    def parse(self, content: str, source_path: Optional[str] = None) -> Dict[str, Any]:
        """Parse file content.

        Args:
            content: File content
            source_path: Path the content was read from, if any

        Returns:
            Structured configuration
        """
        ...

    @abstractmethod
    def serialize(self, config: Mapping[str, Any]) -> str:
        """Serialize structured configuration back to file content."""
        ...

    def get_supported_extensions(self) -> List[str]:
        return []

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {
            "config:parse": self._parse_hook,
            "config:serialize": self._serialize_hook,
        }

    def _parse_hook(self, data: Any, api: PluginAPI) -> Any:
        if isinstance(data, str):
            return self.parse(data)
        # Anything other than a request is an earlier parser's result; pass it through
        if not isinstance(data, Mapping) or "content" not in data:
            return None
        source_path = data.get("source_path")
        extensions = self.get_supported_extensions()
        if source_path and extensions and not str(source_path).endswith(tuple(extensions)):
            return None
        return self.parse(data.get("content", ""), source_path)

    def _serialize_hook(self, data: Any, api: PluginAPI) -> str:
        return self.serialize(data)


class UIComponentPlugin(BasePlugin):
    """UI component plugins create widgets inside a parent element."""

    @abstractmethod
    def create_component(self, parent: Any, options: Optional[Mapping[str, Any]] = None) -> Any:
        """Create a component.

        Args:
            parent: Parent element
            options: Component options

        Returns:
            Component handle
        """
        ...

    @abstractmethod
    def get_component_type(self) -> str:
        """Return the component type identifier."""
        ...

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {"ui:component:create": self._create_hook}

    def _create_hook(self, data: Any, api: PluginAPI) -> Any:
        """Handle ``{"parent", "type", "options"}`` requests.

        Any other value is a component another plugin already created and
        is passed through untouched.
        """
        if not isinstance(data, Mapping) or not ("parent" in data or "type" in data):
            return None
        wanted = data.get("type")
        if wanted and wanted != self.get_component_type():
            return None
        return self.create_component(data.get("parent"), data.get("options") or {})


class ValidatorPlugin(BasePlugin):
    """Validator plugins check a boot-manager configuration."""

    @abstractmethod
    def validate(self, config: Any) -> ValidationResult:
        """Validate a configuration (structured or raw text)."""
        ...

    def get_rules(self) -> Dict[str, Any]:
        return {}

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {"validation:config": self._validate_hook}

    def _validate_hook(self, data: Any, api: PluginAPI) -> ValidationResult:
        return self.validate(data)


class ExporterPlugin(BasePlugin):
    """Exporter plugins render a configuration in another format."""

    @abstractmethod
    def export(self, config: Any, format: str) -> str:
        """Export a configuration.

        Args:
            config: Configuration to export
            format: Target format name

        Returns:
            Exported content
        """
        ...

    def get_supported_formats(self) -> List[str]:
        return []

    @property
    def hooks(self) -> Dict[str, HookValue]:
        return {"export:config": self._export_hook}

    def _export_hook(self, data: Any, api: PluginAPI) -> Any:
        if not isinstance(data, Mapping) or "format" not in data:
            return None
        formats = self.get_supported_formats()
        if formats and data["format"] not in formats:
            return None
        return self.export(data.get("config"), data["format"])


# Contract class and the signature methods a duck-typed plugin must expose
ROLE_CONTRACTS: Dict[PluginType, Tuple[Type[BasePlugin], Sequence[str]]] = {
    PluginType.THEME: (ThemePlugin, ("get_theme", "apply_theme")),
    PluginType.CONFIG_PARSER: (ConfigParserPlugin, ("parse", "serialize", "get_supported_extensions")),
    PluginType.UI_COMPONENT: (UIComponentPlugin, ("create_component", "get_component_type")),
    PluginType.VALIDATOR: (ValidatorPlugin, ("validate", "get_rules")),
    PluginType.EXPORTER: (ExporterPlugin, ("export", "get_supported_formats")),
}


def resolve_plugin_class(module: ModuleType, plugin_name: str) -> Any:
    """Find the plugin class a module exports.

    The module-level ``plugin`` attribute wins; otherwise the module must
    define exactly one concrete BasePlugin subclass.
    """
    exported = getattr(module, "plugin", None)
    if exported is not None:
        return exported

    candidates = [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and issubclass(obj, BasePlugin)
        and obj.__module__ == module.__name__
        and not inspect.isabstract(obj)
    ]
    if len(candidates) != 1:
        raise InterfaceMismatchError(
            f"Plugin {plugin_name} must export a 'plugin' class or define exactly one "
            f"plugin class (found {len(candidates)})"
        )
    return candidates[0]


def satisfies_contract(instance: Any, plugin_type: PluginType) -> bool:
    """True if instance derives from the role contract or exposes its signature methods."""
    contract, methods = ROLE_CONTRACTS[plugin_type]
    if isinstance(instance, contract):
        return True
    return all(callable(getattr(instance, method, None)) for method in methods)


def instantiate(manifest: PluginManifest, module: ModuleType, api: PluginAPI) -> Any:
    """Construct the plugin a module exports and check it against its declared type.

    Args:
        manifest: Manifest of the plugin
        module: Loaded implementation module
        api: Context passed to the plugin constructor

    Returns:
        Plugin instance

    Raises:
        InterfaceMismatchError: Export is not a class, is abstract, or the
                                instance does not satisfy the role contract
    """
    plugin_class = resolve_plugin_class(module, manifest.name)

    if not inspect.isclass(plugin_class):
        raise InterfaceMismatchError(f"Plugin {manifest.name} does not export a valid class")
    if inspect.isabstract(plugin_class):
        missing = ", ".join(sorted(plugin_class.__abstractmethods__))
        raise InterfaceMismatchError(f"Plugin {manifest.name} does not implement: {missing}")

    instance = plugin_class(api)

    if not satisfies_contract(instance, manifest.type):
        contract, _ = ROLE_CONTRACTS[manifest.type]
        raise InterfaceMismatchError(
            f"{manifest.type.value} plugin {manifest.name} must implement {contract.__name__} interface"
        )
    return instance
