"""Plugin configuration service - user overrides for plugin config."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from reconf.plugins.manifest import PluginManifest
from reconf.plugins.utils import deep_merge

logger = logging.getLogger(__name__)


class PluginConfigService:
    """Manages the user-level plugin configuration file.

    Config format:
    {
        "plugins": {
            "dark-theme": {
                "primary_color": "#101010"
            }
        }
    }

    Overrides are deep-merged over the ``config`` of the plugin's manifest.
    """

    def __init__(self, config_file: Path):
        self.config_file = Path(config_file)
        self._config: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        """Load config from file, falling back to defaults."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.error(f"Plugin config {self.config_file} is not a JSON object, ignoring")
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading plugin config: {e}")

        return {"plugins": {}}

    def _save(self) -> None:
        """Save config to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)
        logger.debug(f"Saved plugin config to {self.config_file}")

    def get_plugin_config(self, plugin_name: str) -> Dict[str, Any]:
        """Get the user overrides for a plugin."""
        return dict(self._config.get("plugins", {}).get(plugin_name, {}))

    def update_plugin_config(self, plugin_name: str, config: Dict[str, Any]) -> None:
        """Replace the user overrides for a plugin."""
        plugins = self._config.setdefault("plugins", {})
        plugins[plugin_name] = config
        self._save()
        logger.info(f"Updated config for plugin: {plugin_name}")

    def configured_plugins(self) -> List[str]:
        """Names of plugins that have user overrides."""
        return list(self._config.get("plugins", {}))

    def merged_config(self, manifest: PluginManifest) -> Dict[str, Any]:
        """Manifest config with the user overrides merged over it."""
        return deep_merge(manifest.config, self.get_plugin_config(manifest.name))

    def reload(self) -> None:
        """Reload config from disk."""
        self._config = self._load()
