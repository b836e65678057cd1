"""Config exporter plugin - renders a parsed configuration as JSON or YAML."""

import json
from typing import Any, List

import yaml

from reconf.plugins.api import PluginAPI
from reconf.plugins.contracts import ExporterPlugin


class ConfigExporterPlugin(ExporterPlugin):

    def __init__(self, api: PluginAPI):
        super().__init__(api)
        self.formats = list(self.config.get("export_formats", ["json", "yaml"]))
        self.indent = int(self.config.get("indent", 2))

    async def initialize(self, api: PluginAPI) -> None:
        api.log(f"Config exporter ready ({', '.join(self.formats)})")

    def export(self, config: Any, format: str) -> str:
        if format not in self.formats:
            raise ValueError(f"Unsupported export format: {format}")

        if format == "json":
            return json.dumps(config, indent=self.indent, ensure_ascii=False, default=str)
        if format == "yaml":
            return yaml.safe_dump(config, indent=self.indent, sort_keys=False, allow_unicode=True)
        raise ValueError(f"No writer for export format: {format}")

    def get_supported_formats(self) -> List[str]:
        return list(self.formats)


plugin = ConfigExporterPlugin
