"""Plugin system for reconf.

Imports are lazy so lightweight tools (e.g. manage_plugins.py validate) only
pull in the pieces they use.
"""

__all__ = [
    "PluginManifest",
    "PluginType",
    "Permission",
    "PluginValidator",
    "ValidationResult",
    "ValidationSummary",
    "PluginDiscovery",
    "PluginAPI",
    "BasePlugin",
    "ThemePlugin",
    "ConfigParserPlugin",
    "UIComponentPlugin",
    "ValidatorPlugin",
    "ExporterPlugin",
    "HookTable",
    "priority",
    "PluginLifecycle",
    "ActivePlugin",
    "PluginRegistry",
    "PluginState",
    "PluginConfigService",
]

_LOCATIONS = {
    "PluginManifest": "reconf.plugins.manifest",
    "PluginType": "reconf.plugins.manifest",
    "Permission": "reconf.plugins.manifest",
    "PluginValidator": "reconf.plugins.validator",
    "ValidationResult": "reconf.plugins.validator",
    "ValidationSummary": "reconf.plugins.validator",
    "PluginDiscovery": "reconf.plugins.discovery",
    "PluginAPI": "reconf.plugins.api",
    "BasePlugin": "reconf.plugins.contracts",
    "ThemePlugin": "reconf.plugins.contracts",
    "ConfigParserPlugin": "reconf.plugins.contracts",
    "UIComponentPlugin": "reconf.plugins.contracts",
    "ValidatorPlugin": "reconf.plugins.contracts",
    "ExporterPlugin": "reconf.plugins.contracts",
    "HookTable": "reconf.plugins.hooks",
    "priority": "reconf.plugins.hooks",
    "PluginLifecycle": "reconf.plugins.lifecycle",
    "ActivePlugin": "reconf.plugins.lifecycle",
    "PluginRegistry": "reconf.plugins.registry",
    "PluginState": "reconf.plugins.registry",
    "PluginConfigService": "reconf.plugins.config",
}


def __getattr__(name):
    if name in _LOCATIONS:
        import importlib

        module = importlib.import_module(_LOCATIONS[name])
        return getattr(module, name)
    raise AttributeError(f"module 'reconf.plugins' has no attribute {name!r}")
