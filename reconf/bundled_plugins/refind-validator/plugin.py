"""rEFInd configuration validator plugin."""

import re
from typing import Any, Dict, List, Mapping

from reconf.bootconf import parse_refind_config
from reconf.plugins.api import PluginAPI
from reconf.plugins.contracts import ValidatorPlugin
from reconf.plugins.validator import ValidationResult

RESOLUTION_RE = re.compile(r"^\d+x\d+(@\d+)?\Z")
GUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\Z", re.IGNORECASE)

DEPRECATED_OPTIONS = ("legacy", "scan_all_linux_kernels")
DANGEROUS_BOOT_OPTIONS = ("init=/bin/sh", "single", "emergency")
MAX_TIMEOUT = 3600
MAX_SCAN_DELAY = 5
MAX_MENU_ENTRIES = 20


class RefindValidatorPlugin(ValidatorPlugin):
    """Validates refind.conf content (raw text or parsed)."""

    def __init__(self, api: PluginAPI):
        super().__init__(api)
        rules = self.config.get("validation_rules") or {}
        self.rules = {
            "required_sections": list(rules.get("required_sections", ["global"])),
            "valid_boot_options": list(rules.get("valid_boot_options", [])),
            "valid_hideui_options": list(rules.get("valid_hideui_options", [])),
            "valid_scanfor_options": list(rules.get("valid_scanfor_options", [])),
        }
        self.severity_levels = self.config.get("severity_levels", [])

    async def initialize(self, api: PluginAPI) -> None:
        api.log("rEFInd validator plugin initialized")

    def validate(self, config: Any) -> ValidationResult:
        result = ValidationResult(plugin_path=self.name)
        try:
            if isinstance(config, str):
                config = parse_refind_config(config)
            if not isinstance(config, Mapping):
                result.errors.append(f"Cannot validate {type(config).__name__}: expected text or parsed config")
                return result

            self._validate_global(config, result)
            self._validate_menu_entries(config, result)
            self._check_common_issues(config, result)
            self._performance_checks(config, result)
            self._security_checks(config, result)
        except Exception as e:
            result.errors.append(f"Validation error: {e}")

        return result

    def get_rules(self) -> Dict[str, Any]:
        return self.rules

    async def cleanup(self) -> None:
        self.api.log("rEFInd validator plugin cleaned up")

    @property
    def hooks(self):
        return {
            "validation:config": self._validate_hook,
            "validation:refind": self._validate_hook,
        }

    def _validate_global(self, config: Mapping[str, Any], result: ValidationResult) -> None:
        options = config.get("global") or {}

        if "global" in self.rules["required_sections"] and not options:
            result.warnings.append("No global configuration options found")

        for key, value in options.items():
            if self.rules["valid_boot_options"] and key not in self.rules["valid_boot_options"]:
                result.errors.append(f"Unknown global option: {key}")
                continue

            if key == "timeout":
                self._validate_timeout(value, result)
            elif key == "hideui":
                self._validate_choices("hideui", value, self.rules["valid_hideui_options"], result)
                if "all" in _split_options(value):
                    result.warnings.append('hideui "all" hides all UI elements - ensure this is intended')
            elif key == "scanfor":
                self._validate_choices("scanfor", value, self.rules["valid_scanfor_options"], result)
                chosen = _split_options(value)
                if "hdbios" in chosen and "internal" in chosen:
                    result.warnings.append('Both "hdbios" and "internal" specified - may cause conflicts')
            elif key == "resolution":
                if not RESOLUTION_RE.match(value):
                    result.errors.append(
                        f"Invalid resolution format: {value} "
                        f"(expected format: WIDTHxHEIGHT or WIDTHxHEIGHT@REFRESH)"
                    )
            elif key in ("icons_dir", "banner"):
                self._validate_path(key, value, result)

    def _validate_timeout(self, value: str, result: ValidationResult) -> None:
        try:
            timeout = int(value)
        except (TypeError, ValueError):
            result.errors.append(f"Invalid timeout value: {value} (must be a number)")
            return

        if timeout < 0:
            # -1 skips the menu in rEFInd, anything lower is an error
            if timeout == -1:
                result.info.append("Timeout set to -1 - boot menu is skipped")
            else:
                result.errors.append(f"Timeout cannot be negative: {timeout}")
        elif timeout > MAX_TIMEOUT:
            result.warnings.append(f"Very long timeout: {timeout} seconds (consider reducing)")
        elif timeout == 0:
            result.info.append("Timeout set to 0 - menu waits for user input")

    def _validate_choices(self, option: str, value: str, valid: List[str], result: ValidationResult) -> None:
        for choice in _split_options(value):
            if valid and choice not in valid:
                result.errors.append(f"Invalid {option} option: {choice}")

    def _validate_path(self, option: str, path: str, result: ValidationResult) -> None:
        if not path:
            result.warnings.append(f"Empty path for {option}")
            return
        if "\\" in path:
            result.warnings.append(f"{option} uses backslashes - use forward slashes for better compatibility")
        if path.startswith("/"):
            result.info.append(f"{option} uses absolute path: {path}")
        if ".." in path:
            result.warnings.append(f"{option} contains parent directory references: {path}")

    def _validate_menu_entries(self, config: Mapping[str, Any], result: ValidationResult) -> None:
        entries = config.get("menuentry") or []
        if not entries:
            result.warnings.append("No menu entries defined - rEFInd will auto-detect boot options")
            return

        for index, entry in enumerate(entries, 1):
            prefix = f"Menu entry {index} ({entry.get('title', 'Untitled')})"
            options = entry.get("options") or {}

            if "loader" not in options and "volume" not in options:
                result.errors.append(f"{prefix}: Missing loader or volume specification")

            for key, value in options.items():
                if key in ("loader", "icon", "initrd"):
                    self._validate_path(f"{prefix} {key}", value, result)
                elif key == "volume":
                    if not value:
                        result.errors.append(f"{prefix}: Empty volume specification")
                    elif GUID_RE.match(value):
                        result.info.append(f"{prefix}: Using GUID volume specification")
                elif key == "options":
                    if "root=" in value:
                        result.info.append(f"{prefix}: Contains root= parameter")
                    tokens = value.strip('"').split()
                    for dangerous in DANGEROUS_BOOT_OPTIONS:
                        if dangerous in tokens:
                            result.warnings.append(
                                f"{prefix}: Contains potentially dangerous boot option: {dangerous}"
                            )

    def _check_common_issues(self, config: Mapping[str, Any], result: ValidationResult) -> None:
        options = config.get("global") or {}

        for deprecated in DEPRECATED_OPTIONS:
            if deprecated in options:
                result.warnings.append(f"Deprecated option found: {deprecated}")

        if "textonly" in options and "resolution" in options:
            result.warnings.append("textonly and resolution options may conflict")

        timeout = _to_int(options.get("timeout"))
        if "all" in _split_options(options.get("hideui", "")) and timeout and timeout > 0:
            result.warnings.append('hideui "all" with timeout > 0 may not show timeout countdown')

    def _performance_checks(self, config: Mapping[str, Any], result: ValidationResult) -> None:
        delay = _to_int((config.get("global") or {}).get("scan_delay"))
        if delay is not None and delay > MAX_SCAN_DELAY:
            result.warnings.append(f"High scan_delay ({delay}s) may slow boot process")

        entries = config.get("menuentry") or []
        if len(entries) > MAX_MENU_ENTRIES:
            result.warnings.append(f"Many menu entries ({len(entries)}) may clutter interface")

    def _security_checks(self, config: Mapping[str, Any], result: ValidationResult) -> None:
        options = config.get("global") or {}

        if options.get("enable_and_lock_vmx") == "false":
            result.info.append("VMX support is disabled")
        if "csr_values" in options:
            result.warnings.append("CSR values specified - ensure this is necessary for your setup")

        for entry in config.get("menuentry") or []:
            if "nokaslr" in (entry.get("options") or {}).get("options", ""):
                result.warnings.append(f'Menu entry "{entry.get("title")}" disables KASLR - security risk')


def _split_options(value: str) -> List[str]:
    return [opt for opt in re.split(r"[,\s]+", value or "") if opt]


def _to_int(value: Any):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


plugin = RefindValidatorPlugin
