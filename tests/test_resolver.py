"""Tests for dependency resolution."""

import pytest

from reconf.plugins.errors import ActivationError, CyclicDependencyError, MissingDependencyError
from reconf.plugins.manifest import PluginManifest
from reconf.plugins.resolver import find_dependents, resolve_activation_order


def manifests(*specs):
    """Build {name: manifest} from (name, version, dependencies) tuples."""
    return {
        name: PluginManifest(name=name, version=version, type="exporter", main="plugin.py", dependencies=deps)
        for name, version, deps in specs
    }


def never_active(name):
    return False


class TestResolveActivationOrder:
    """Topological order of the inactive dependency closure."""

    def test_dependencies_first(self):
        known = manifests(("app", "1.0.0", ["lib"]), ("lib", "1.0.0", ["core"]), ("core", "1.0.0", []))
        assert resolve_activation_order("app", known, never_active) == ["core", "lib", "app"]

    def test_shared_dependency_once(self):
        known = manifests(
            ("app", "1.0.0", ["left", "right"]),
            ("left", "1.0.0", ["base"]),
            ("right", "1.0.0", ["base"]),
            ("base", "1.0.0", []),
        )
        assert resolve_activation_order("app", known, never_active) == ["base", "left", "right", "app"]

    def test_active_dependencies_are_skipped(self):
        known = manifests(("app", "1.0.0", ["lib"]), ("lib", "1.0.0", []))
        assert resolve_activation_order("app", known, lambda name: name == "lib") == ["app"]

    def test_cycle(self):
        known = manifests(("aa", "1.0.0", ["bb"]), ("bb", "1.0.0", ["cc"]), ("cc", "1.0.0", ["aa"]))
        with pytest.raises(CyclicDependencyError) as exc_info:
            resolve_activation_order("aa", known, never_active)
        assert exc_info.value.cycle == ["aa", "bb", "cc", "aa"]
        assert isinstance(exc_info.value, ActivationError)

    def test_missing_dependency(self):
        known = manifests(("app", "1.0.0", ["ghost"]))
        with pytest.raises(MissingDependencyError) as exc_info:
            resolve_activation_order("app", known, never_active)
        assert exc_info.value.dependency == "ghost"

    def test_minimum_version(self):
        known = manifests(("app", "1.0.0", {"lib": "2.0.0"}), ("lib", "1.9.9", []))
        with pytest.raises(MissingDependencyError, match="requires version >= 2.0.0"):
            resolve_activation_order("app", known, never_active)

    def test_version_satisfied(self):
        known = manifests(("app", "1.0.0", {"lib": "2.0.0", "other": None}), ("lib", "2.1.0", []), ("other", "0.1.0", []))
        assert resolve_activation_order("app", known, never_active) == ["lib", "other", "app"]


class TestFindDependents:
    """Reverse dependency lookup."""

    def test_only_listed_plugins(self):
        known = manifests(("app", "1.0.0", ["lib"]), ("tool", "1.0.0", ["lib"]), ("lib", "1.0.0", []))
        assert find_dependents("lib", known, ["lib", "app"]) == ["app"]
