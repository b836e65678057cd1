"""Plugin manifest schema validation.

Validation never raises: every rule contributes to the ``errors`` or
``warnings`` of a :class:`ValidationResult`. Errors make a manifest unusable,
warnings are advisory.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from reconf.plugins.manifest import DANGEROUS_PERMISSIONS, Permission, PluginManifest, PluginType
from reconf.plugins.utils import (
    PLUGIN_NAME_PATTERN,
    SEMVER_PATTERN,
    is_valid_plugin_name,
    is_valid_semver,
    json_type_name,
)

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "secret", "key", "token", "api_key")
MAX_CONFIG_SIZE = 10000
NATIVE_MODULE_DIRS = ("site-packages", "dist-packages", "__pycache__")

# Advisory config keys per plugin type
RECOMMENDED_CONFIG = {
    PluginType.THEME.value: (
        ("primary_color", "Theme plugin should define primary_color in config"),
        ("secondary_color", "Theme plugin should define secondary_color in config"),
    ),
    PluginType.CONFIG_PARSER.value: (
        ("supported_extensions", "Config parser should specify supported_extensions in config"),
    ),
    PluginType.UI_COMPONENT.value: (
        ("component_type", "UI component should specify component_type in config"),
    ),
    PluginType.VALIDATOR.value: (
        ("validation_rules", "Validator plugin should define validation_rules in config"),
    ),
    PluginType.EXPORTER.value: (
        ("export_formats", "Exporter plugin should specify export_formats in config"),
    ),
}

ManifestLike = Union[PluginManifest, Mapping[str, Any]]


@dataclass
class ValidationResult:
    """Outcome of validating a manifest or a configuration."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: List[str] = field(default_factory=list)
    plugin_path: str = "unknown"

    @property
    def valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
            "plugin_path": self.plugin_path,
        }


@dataclass
class ValidationSummary:
    """Aggregate of validating a batch of manifests."""

    results: List[ValidationResult] = field(default_factory=list)
    total: int = 0
    valid: int = 0
    invalid: int = 0
    with_warnings: int = 0
    duplicate_names: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "total": self.total,
                "valid": self.valid,
                "invalid": self.invalid,
                "warnings": self.with_warnings,
                "duplicate_names": list(self.duplicate_names),
            },
        }


class PluginValidator:
    """Validates plugin manifests against field, security, dependency and config rules."""

    RULES: Dict[str, Dict[str, Any]] = {
        "name": {
            "required": True,
            "type": "string",
            "pattern": PLUGIN_NAME_PATTERN,
            "min_length": 2,
            "max_length": 50,
            "description": "Plugin name must be lowercase alphanumeric with hyphens/underscores",
        },
        "version": {
            "required": True,
            "type": "string",
            "pattern": SEMVER_PATTERN,
            "description": "Version must follow semantic versioning (x.y.z)",
        },
        "type": {
            "required": True,
            "type": "string",
            "enum": [t.value for t in PluginType],
        },
        "main": {
            "required": True,
            "type": "string",
        },
        "description": {"type": "string", "max_length": 200},
        "author": {"type": "string", "max_length": 100},
        "dependencies": {"type": ("array", "object")},
        "config": {"type": "object"},
        "permissions": {"type": "array"},
    }

    def validate(self, manifest: Any, plugin_path: Optional[str] = None) -> ValidationResult:
        """Validate a manifest.

        Args:
            manifest: Raw manifest mapping or a PluginManifest
            plugin_path: Label used in reports (defaults to the manifest's source path)

        Returns:
            ValidationResult; never raises
        """
        if isinstance(manifest, PluginManifest):
            if plugin_path is None and manifest.source_path is not None:
                plugin_path = str(manifest.source_path)
            manifest = manifest.to_dict()

        result = ValidationResult(plugin_path=plugin_path or "unknown")

        if not isinstance(manifest, Mapping):
            result.errors.append("Plugin configuration must be a valid object")
            return result

        try:
            result.merge(self._validate_schema(manifest))
            result.merge(self._validate_type(manifest))
            result.merge(self._validate_security(manifest))
            result.merge(self._validate_dependencies(manifest))
            result.merge(self._validate_configuration(manifest))
        except Exception as e:
            logger.exception(f"Validator failed on {result.plugin_path}")
            result.errors.append(f"Validation error: {e}")

        return result

    def validate_many(self, manifests: Iterable[ManifestLike]) -> ValidationSummary:
        """Validate a batch and flag names used more than once."""
        summary = ValidationSummary()
        names_seen = set()

        for index, manifest in enumerate(manifests):
            label = None
            if not (isinstance(manifest, PluginManifest) and manifest.source_path is not None):
                label = f"plugin-{index}"
            result = self.validate(manifest, label)
            summary.results.append(result)
            summary.total += 1
            if result.valid:
                summary.valid += 1
            else:
                summary.invalid += 1
            if result.warnings:
                summary.with_warnings += 1

            name = manifest.name if isinstance(manifest, PluginManifest) else _get(manifest, "name")
            if name:
                if name in names_seen:
                    if name not in summary.duplicate_names:
                        summary.duplicate_names.append(name)
                else:
                    names_seen.add(name)

        return summary

    def _validate_schema(self, manifest: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()

        for name, rules in self.RULES.items():
            value = manifest.get(name)

            if rules.get("required") and (value is None or value == ""):
                result.errors.append(f"Missing required field: {name}")
                continue
            if value is None:
                continue

            expected = rules.get("type")
            allowed = expected if isinstance(expected, tuple) else (expected,)
            actual = json_type_name(value)
            if expected and actual not in allowed and not (actual == "integer" and "number" in allowed):
                result.errors.append(
                    f"Invalid type for {name}: expected {' or '.join(allowed)}, got {actual}"
                )
                continue

            if "enum" in rules and value not in rules["enum"]:
                result.errors.append(
                    f"Invalid value for {name}: must be one of [{', '.join(rules['enum'])}]"
                )
                continue

            pattern = rules.get("pattern")
            if pattern and isinstance(value, str) and not re.search(pattern, value):
                result.errors.append(
                    f"Invalid format for {name}: {rules.get('description', 'pattern mismatch')}"
                )
                continue

            if isinstance(value, str):
                if "min_length" in rules and len(value) < rules["min_length"]:
                    result.errors.append(f"{name} is too short: minimum {rules['min_length']} characters")
                if "max_length" in rules and len(value) > rules["max_length"]:
                    result.errors.append(f"{name} is too long: maximum {rules['max_length']} characters")

        for name in manifest:
            if name not in self.RULES:
                result.warnings.append(f"Unknown field: {name}")

        main = manifest.get("main")
        if isinstance(main, str) and main and not main.endswith(".py"):
            result.warnings.append("Main file should be a Python module (.py)")

        return result

    def _validate_type(self, manifest: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()
        config = manifest.get("config")
        if not isinstance(config, Mapping):
            config = {}

        plugin_type = manifest.get("type")
        if not isinstance(plugin_type, str):
            return result

        for key, message in RECOMMENDED_CONFIG.get(plugin_type, ()):
            if not config.get(key):
                result.warnings.append(message)

        return result

    def _validate_security(self, manifest: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()

        main = manifest.get("main")
        if isinstance(main, str) and main:
            normalized = main.replace("\\", "/")
            if ".." in main:
                result.errors.append("Main file path cannot contain parent directory references (..)")
            if normalized.startswith("/") or re.match(r"^[A-Za-z]:", normalized):
                result.errors.append("Main file path cannot be absolute")
            for native_dir in NATIVE_MODULE_DIRS:
                if native_dir in normalized:
                    result.warnings.append(f"Main file should not reference {native_dir} directly")

        permissions = manifest.get("permissions")
        if permissions is not None:
            if not isinstance(permissions, list):
                result.errors.append("Permissions must be an array")
            else:
                allowed = {p.value for p in Permission}
                for permission in permissions:
                    if permission not in allowed:
                        result.errors.append(f"Unknown permission: {permission}")

                dangerous = [p.value for p in DANGEROUS_PERMISSIONS if p.value in permissions]
                if dangerous:
                    result.warnings.append(
                        f"Plugin requests potentially dangerous permissions: {', '.join(dangerous)}"
                    )

        return result

    def _validate_dependencies(self, manifest: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()
        dependencies = manifest.get("dependencies")
        if not dependencies:
            return result

        if isinstance(dependencies, list):
            names = []
            for dep in dependencies:
                if not isinstance(dep, str):
                    result.errors.append("Dependencies array must contain strings")
                    continue
                if not is_valid_plugin_name(dep):
                    result.errors.append(f"Invalid dependency name: {dep}")
                names.append(dep)
        elif isinstance(dependencies, Mapping):
            names = list(dependencies)
            for dep, version in dependencies.items():
                if not is_valid_plugin_name(dep):
                    result.errors.append(f"Invalid dependency name: {dep}")
                if isinstance(version, str) and not is_valid_semver(version):
                    result.errors.append(f"Invalid version for dependency {dep}: {version}")
        else:
            result.errors.append("Dependencies must be an array or object")
            return result

        if manifest.get("name") in names:
            result.errors.append("Plugin cannot depend on itself")

        return result

    def _validate_configuration(self, manifest: Mapping[str, Any]) -> ValidationResult:
        result = ValidationResult()
        config = manifest.get("config")
        if config is None:
            return result

        if not isinstance(config, Mapping):
            result.errors.append("Plugin config must be an object")
            return result

        for key in config:
            lowered = str(key).lower()
            if any(sensitive in lowered for sensitive in SENSITIVE_KEYS):
                result.warnings.append(f"Configuration contains potentially sensitive key: {key}")

        serialized = json.dumps(config, default=str)
        if len(serialized) > MAX_CONFIG_SIZE:
            result.warnings.append("Plugin configuration is very large, consider external config files")

        return result


def _get(manifest: Any, key: str) -> Any:
    if isinstance(manifest, Mapping):
        return manifest.get(key)
    return None


_default_validator = PluginValidator()


def validate(manifest: Any, plugin_path: Optional[str] = None) -> ValidationResult:
    """Validate one manifest with the default validator."""
    return _default_validator.validate(manifest, plugin_path)


def validate_many(manifests: Iterable[ManifestLike]) -> ValidationSummary:
    """Validate a batch of manifests with the default validator."""
    return _default_validator.validate_many(manifests)


def generate_report(result: ValidationResult) -> str:
    """Render a ValidationResult as a plain text report."""
    lines = [
        f"Plugin Validation Report: {result.plugin_path}",
        f"Status: {'VALID' if result.valid else 'INVALID'}",
        "",
    ]

    for title, items in (("Errors", result.errors), ("Warnings", result.warnings), ("Info", result.info)):
        if items:
            lines.append(f"{title} ({len(items)}):")
            lines.extend(f"  {i}. {item}" for i, item in enumerate(items, 1))
            lines.append("")

    if result.valid and not result.warnings and not result.info:
        lines.append("No issues found. Plugin is ready for use.")

    return "\n".join(lines).rstrip("\n") + "\n"
