#!/usr/bin/env python3
"""Plugin management CLI tool."""

import argparse
import json
import sys
from pathlib import Path
from typing import List

from reconf.constants import PLUGIN_CONFIG_FILE
from reconf.plugins.config import PluginConfigService
from reconf.plugins.discovery import PluginDiscovery, default_search_paths, get_stats
from reconf.plugins.errors import ManifestError, PluginError
from reconf.plugins.resolver import resolve_activation_order
from reconf.plugins.validator import ValidationResult, generate_report, validate_many


def get_discovery(extra_paths: List[Path] = ()) -> PluginDiscovery:
    """Create a PluginDiscovery over the default roots plus extra ones."""
    return PluginDiscovery([*default_search_paths(), *extra_paths])


def get_config() -> PluginConfigService:
    """Create a PluginConfigService instance."""
    return PluginConfigService(PLUGIN_CONFIG_FILE)


def cmd_list(args):
    """List all discovered plugins."""
    plugins = get_discovery(args.plugin_path).load_all()

    if not plugins:
        print("No plugins found.")
        return

    print(f"{'Name':<24} {'Type':<14} {'Version':<10} {'Path'}")
    print("-" * 100)

    for manifest in plugins.values():
        print(f"{manifest.name:<24} {manifest.type.value:<14} {manifest.version:<10} {manifest.directory}")

    stats = get_stats(plugins)
    by_type = ", ".join(f"{t}: {n}" for t, n in sorted(stats["by_type"].items()))
    print(f"\n{stats['total']} plugin(s) ({by_type})")


def cmd_info(args):
    """Show detailed plugin information."""
    plugins = get_discovery(args.plugin_path).load_all()
    manifest = plugins.get(args.name)
    if manifest is None:
        print(f"Plugin '{args.name}' not found.")
        sys.exit(1)

    overrides = get_config().get_plugin_config(manifest.name)

    print(f"Plugin: {manifest.name}")
    print(f"  Version:      {manifest.version}")
    print(f"  Type:         {manifest.type.value}")
    print(f"  Description:  {manifest.description}")
    print(f"  Author:       {manifest.author}")
    print(f"  Manifest:     {manifest.source_path}")
    print(f"  Main:         {manifest.main_path}")
    print(f"  Dependencies: {', '.join(manifest.dependency_names) or '-'}")
    print(f"  Permissions:  {', '.join(manifest.permissions) or '-'}")
    if manifest.config:
        print(f"  Config:       {json.dumps(manifest.config, indent=4, ensure_ascii=False)}")
    if overrides:
        print(f"  Overrides:    {json.dumps(overrides, indent=4, ensure_ascii=False)}")


def _collect_manifest_files(paths: List[Path]) -> List[Path]:
    files = []
    for path in paths:
        if path.is_dir():
            files.extend(PluginDiscovery([path]).discover())
        else:
            files.append(path)
    return files


def cmd_validate(args):
    """Validate manifest files (or every manifest under directories)."""
    files = _collect_manifest_files(args.paths)
    if not files:
        print("No manifest files found.")
        sys.exit(1)

    manifests = []
    unreadable = []
    for manifest_file in files:
        try:
            manifests.append((manifest_file, json.loads(manifest_file.read_text(encoding="utf-8"))))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            unreadable.append(ValidationResult(errors=[f"Cannot parse manifest: {e}"], plugin_path=str(manifest_file)))

    summary = validate_many(data for _, data in manifests)
    for (manifest_file, _), result in zip(manifests, summary.results):
        result.plugin_path = str(manifest_file)

    for result in [*summary.results, *unreadable]:
        print(generate_report(result))

    invalid = summary.invalid + len(unreadable)
    print(f"Validated {summary.total + len(unreadable)} manifest(s): "
          f"{summary.valid} valid, {invalid} invalid, {summary.with_warnings} with warnings")
    if summary.duplicate_names:
        print(f"Duplicate plugin names: {', '.join(summary.duplicate_names)}")

    if invalid or summary.duplicate_names:
        sys.exit(1)


def cmd_doctor(args):
    """Run health checks on the plugin system."""
    issues = []
    discovery = get_discovery(args.plugin_path)

    # Check plugin roots
    existing_roots = [p for p in discovery.search_paths if p.is_dir()]
    if not existing_roots:
        issues.append("No plugin search path exists")

    # Check config file
    if PLUGIN_CONFIG_FILE.exists():
        try:
            with open(PLUGIN_CONFIG_FILE, encoding="utf-8") as f:
                json.load(f)
        except json.JSONDecodeError as e:
            issues.append(f"Plugin config file has invalid JSON: {e}")

    # Check every manifest loads
    plugins = {}
    try:
        manifest_files = discovery.discover()
    except PluginError as e:
        issues.append(str(e))
        manifest_files = []

    for manifest_file in manifest_files:
        try:
            manifest = discovery.load_one(manifest_file)
        except ManifestError as e:
            issues.append(str(e))
            continue
        if manifest.name in plugins:
            issues.append(f"Duplicate plugin name '{manifest.name}' at {manifest_file}")
            continue
        plugins[manifest.name] = manifest

    # Check implementation files and dependency graphs
    for manifest in plugins.values():
        if not manifest.main_path.is_file():
            issues.append(f"Plugin '{manifest.name}': main file missing: {manifest.main_path}")
        try:
            resolve_activation_order(manifest.name, plugins, lambda name: False)
        except PluginError as e:
            issues.append(f"Plugin '{manifest.name}': {e}")

    # Check overrides point at known plugins
    for name in get_config().configured_plugins():
        if name not in plugins:
            issues.append(f"Config overrides for unknown plugin '{name}'")

    if issues:
        print(f"Found {len(issues)} issue(s):")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        sys.exit(1)
    else:
        print(f"All checks passed. {len(plugins)} plugin(s) found in {len(existing_roots)} search path(s).")


def main(argv=None):
    parser = argparse.ArgumentParser(description="reconf plugin manager")
    parser.add_argument(
        "-p", "--plugin-path",
        action="append",
        default=[],
        type=Path,
        help="Additional plugin directory (repeatable)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    subparsers.add_parser("list", help="List all plugins")

    # info
    info_parser = subparsers.add_parser("info", help="Show plugin details")
    info_parser.add_argument("name", help="Plugin name")

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate plugin manifests")
    validate_parser.add_argument("paths", nargs="+", type=Path, help="Manifest files or plugin directories")

    # doctor
    subparsers.add_parser("doctor", help="Run health checks")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "list": cmd_list,
        "info": cmd_info,
        "validate": cmd_validate,
        "doctor": cmd_doctor,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
