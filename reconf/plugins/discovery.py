"""Plugin discovery - scans plugin roots for ``*.reconf`` manifests."""

import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from reconf.constants import (
    BUNDLED_PLUGINS_DIR,
    EXTRA_PLUGIN_PATHS,
    MANIFEST_EXTENSION,
    PROJECT_PLUGINS_DIRNAME,
    USER_PLUGINS_DIRNAME,
)
from reconf.plugins.errors import DiscoveryError, ManifestError, ManifestParseError, ManifestValidationError
from reconf.plugins.manifest import LOAD_FIELDS, PluginManifest
from reconf.plugins.validator import PluginValidator

logger = logging.getLogger(__name__)


def default_search_paths(cwd: Optional[Path] = None) -> List[Path]:
    """Built-in, project-level and user-level plugin roots, then RECONF_PLUGIN_PATHS."""
    cwd = cwd or Path.cwd()
    return [
        BUNDLED_PLUGINS_DIR,
        cwd / PROJECT_PLUGINS_DIRNAME,
        cwd / USER_PLUGINS_DIRNAME,
        *EXTRA_PLUGIN_PATHS,
    ]


class PluginDiscovery:
    """Discovers plugin manifests by walking plugin roots recursively."""

    def __init__(
        self,
        search_paths: Optional[Iterable[Path]] = None,
        validator: Optional[PluginValidator] = None,
    ):
        """Initialize discovery with search paths.

        Args:
            search_paths: Plugin roots, searched in order. Defaults to
                          default_search_paths().
            validator: Schema validator applied to every manifest
        """
        self.search_paths = [Path(p) for p in search_paths] if search_paths is not None else default_search_paths()
        self.validator = validator or PluginValidator()

    def discover(self) -> List[Path]:
        """Collect manifest files from every existing plugin root.

        Returns:
            Manifest paths, roots in order and files sorted within each root

        Raises:
            DiscoveryError: If an existing root cannot be walked
        """
        manifest_files = []

        for search_path in self.search_paths:
            if not search_path.is_dir():
                logger.debug(f"Plugin search path does not exist: {search_path}")
                continue
            manifest_files.extend(self._scan_directory(search_path))

        return manifest_files

    def load_one(self, manifest_file: Path) -> PluginManifest:
        """Load and validate one manifest file.

        Args:
            manifest_file: Path to a ``*.reconf`` file

        Returns:
            PluginManifest with source_path, directory and loaded_at attached

        Raises:
            ManifestParseError: File is unreadable or not a JSON object
            ManifestValidationError: Manifest fails structural or schema validation
        """
        manifest_file = Path(manifest_file)
        try:
            content = manifest_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestParseError(manifest_file, f"cannot read file: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ManifestParseError(manifest_file, f"invalid JSON ({e}): {content[:200]!r}") from e

        if not isinstance(data, dict):
            raise ManifestParseError(manifest_file, f"expected a JSON object, got {type(data).__name__}")

        result = self.validator.validate(data, str(manifest_file))
        if not result.valid:
            raise ManifestValidationError(manifest_file, result.errors)
        for warning in result.warnings:
            logger.debug(f"{manifest_file}: {warning}")

        fields = {k: v for k, v in data.items() if k not in LOAD_FIELDS}
        try:
            manifest = PluginManifest(
                **fields,
                source_path=manifest_file,
                directory=manifest_file.parent,
                loaded_at=datetime.now(),
            )
        except ValidationError as e:
            errors = [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
            raise ManifestValidationError(manifest_file, errors) from e

        logger.debug(f"Discovered plugin: {manifest.name} at {manifest.directory}")
        return manifest

    def load_all(self) -> Dict[str, PluginManifest]:
        """Discover and load every manifest; per-file failures are skipped.

        Returns:
            Mapping of plugin name to manifest, first-seen name wins

        Raises:
            DiscoveryError: If a plugin root cannot be walked
        """
        loaded: Dict[str, PluginManifest] = {}
        failures = 0

        for manifest_file in self.discover():
            try:
                manifest = self.load_one(manifest_file)
            except ManifestError as e:
                failures += 1
                logger.warning(f"Failed to load plugin {manifest_file}: {e}")
                continue

            if manifest.name in loaded:
                logger.warning(
                    f"Duplicate plugin name '{manifest.name}' found at {manifest_file}, "
                    f"skipping (first-found wins)"
                )
                continue

            loaded[manifest.name] = manifest
            logger.info(f"Loaded plugin: {manifest.name} v{manifest.version}")

        if failures:
            logger.warning(f"{failures} plugin(s) failed to load")
        logger.info(f"Discovered {len(loaded)} plugin(s)")
        return loaded

    def _scan_directory(self, directory: Path) -> List[Path]:
        """Recursively collect manifest files under a directory."""
        files = []
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise DiscoveryError(f"Failed to scan directory {directory}: {e}") from e

        for entry in entries:
            if entry.is_symlink() and entry.is_dir():
                logger.debug(f"Skipping symlinked directory: {entry}")
                continue
            if entry.is_dir():
                files.extend(self._scan_directory(entry))
            elif entry.suffix == MANIFEST_EXTENSION:
                files.append(entry)

        return files


def get_stats(manifests: Mapping[str, PluginManifest]) -> dict:
    """Count manifests in total and per type."""
    by_type = Counter(m.type.value for m in manifests.values())
    return {"total": len(manifests), "by_type": dict(by_type)}
