"""Helpers shared by the plugin system and by plugins themselves."""

import re
from typing import Any, Dict, List, Mapping

SEMVER_PATTERN = r"^\d+\.\d+\.\d+(-[a-zA-Z0-9-]+)?(\+[a-zA-Z0-9-]+)?\Z"
PLUGIN_NAME_PATTERN = r"^[a-z0-9-_]+\Z"

_SEMVER_RE = re.compile(SEMVER_PATTERN)
_PLUGIN_NAME_RE = re.compile(PLUGIN_NAME_PATTERN)

# JSON type names used by config schemas, mapped to python types
JSON_TYPES = {
    "string": str,
    "number": (int, float),
    "integer": int,
    "boolean": bool,
    "object": dict,
    "array": list,
}


def is_valid_semver(version: Any) -> bool:
    """Check ``major.minor.patch[-pre][+build]`` syntax."""
    return isinstance(version, str) and bool(_SEMVER_RE.match(version))


def is_valid_plugin_name(name: Any) -> bool:
    """Plugin names are lowercase alphanumeric with hyphens/underscores, 2-50 chars."""
    return (
        isinstance(name, str)
        and bool(_PLUGIN_NAME_RE.match(name))
        and 2 <= len(name) <= 50
    )


def _release_parts(version: str) -> List[int]:
    release = re.split(r"[-+]", version, maxsplit=1)[0]
    parts = []
    for piece in release.split("."):
        try:
            parts.append(int(piece))
        except ValueError:
            parts.append(0)
    return parts


def compare_versions(v1: str, v2: str) -> int:
    """Compare the numeric release parts of two versions.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2
    """
    parts1 = _release_parts(v1)
    parts2 = _release_parts(v2)

    for i in range(max(len(parts1), len(parts2))):
        part1 = parts1[i] if i < len(parts1) else 0
        part2 = parts2[i] if i < len(parts2) else 0
        if part1 < part2:
            return -1
        if part1 > part2:
            return 1
    return 0


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``. Neither input is mutated."""
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        elif isinstance(value, Mapping):
            result[key] = deep_merge({}, value)
        else:
            result[key] = value
    return result


def validate_config(config: Mapping[str, Any], schema: Mapping[str, Mapping[str, Any]]) -> List[str]:
    """Check a plugin config against a small field schema.

    Schema entries may declare ``required``, ``type`` (JSON type name),
    ``enum`` and ``pattern``.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    for key, rules in schema.items():
        value = config.get(key)

        if rules.get("required") and value is None:
            errors.append(f"Missing required field: {key}")
            continue
        if value is None:
            continue

        expected = rules.get("type")
        if expected and not _is_json_type(value, expected):
            errors.append(f"Invalid type for {key}: expected {expected}, got {json_type_name(value)}")
            continue

        if "enum" in rules and value not in rules["enum"]:
            errors.append(f"Invalid value for {key}: must be one of {', '.join(map(str, rules['enum']))}")

        pattern = rules.get("pattern")
        if pattern and isinstance(value, str) and not re.search(pattern, value):
            errors.append(f"Invalid format for {key}: must match pattern {pattern}")

    return errors


def _is_json_type(value: Any, expected: str) -> bool:
    py_type = JSON_TYPES.get(expected)
    if py_type is None:
        return True
    # bool is an int subclass but never a JSON number
    if isinstance(value, bool) and expected in ("number", "integer"):
        return False
    return isinstance(value, py_type)


def json_type_name(value: Any) -> str:
    """Name the JSON type of a parsed value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
