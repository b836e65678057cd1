"""Dependency resolution for plugin activation."""

import logging
from typing import Callable, Dict, List, Mapping

from reconf.plugins.errors import CyclicDependencyError, MissingDependencyError
from reconf.plugins.manifest import PluginManifest
from reconf.plugins.utils import compare_versions

logger = logging.getLogger(__name__)


def resolve_activation_order(
    target: str,
    manifests: Mapping[str, PluginManifest],
    is_active: Callable[[str], bool],
) -> List[str]:
    """Order the inactive dependency closure of a plugin, dependencies first.

    Active plugins are treated as satisfied and not traversed further.
    Dependencies are visited in declaration order, so the result is
    deterministic.

    Args:
        target: Plugin to activate (must be in manifests)
        manifests: All known manifests
        is_active: Predicate telling whether a plugin is already active

    Returns:
        Plugin names to activate in order; target is last

    Raises:
        MissingDependencyError: A dependency has no manifest or is too old
        CyclicDependencyError: The closure contains a cycle
    """
    order: List[str] = []
    # 1 = on the current path, 2 = done
    marks: Dict[str, int] = {}
    path: List[str] = []

    def visit(name: str) -> None:
        if marks.get(name) == 2:
            return
        if marks.get(name) == 1:
            cycle = path[path.index(name):] + [name]
            raise CyclicDependencyError(target, cycle)

        marks[name] = 1
        path.append(name)

        manifest = manifests[name]
        for dep, constraint in manifest.dependency_constraints.items():
            dep_manifest = manifests.get(dep)
            if dep_manifest is None:
                raise MissingDependencyError(name, dep)
            if constraint and compare_versions(dep_manifest.version, constraint) < 0:
                raise MissingDependencyError(
                    name, dep, f"requires version >= {constraint}, found {dep_manifest.version}"
                )
            if not is_active(dep):
                visit(dep)

        path.pop()
        marks[name] = 2
        order.append(name)

    visit(target)
    logger.debug(f"Activation order for {target}: {order}")
    return order


def find_dependents(name: str, manifests: Mapping[str, PluginManifest], among: List[str]) -> List[str]:
    """Names in ``among`` whose manifests list ``name`` as a dependency."""
    return [
        other
        for other in among
        if other != name and other in manifests and name in manifests[other].dependency_names
    ]
