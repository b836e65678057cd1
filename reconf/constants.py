"""Global constants for reconf."""

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent  # .../reconf

# Built-in plugins shipped with the package
BUNDLED_PLUGINS_DIR = PACKAGE_ROOT / "bundled_plugins"

# Project-level and user-level plugin roots are resolved against the cwd at call time
PROJECT_PLUGINS_DIRNAME = "plugins"
USER_PLUGINS_DIRNAME = ".reconf-plugins"

MANIFEST_EXTENSION = ".reconf"

# reconf home (supports RECONF_HOME env var, defaults to ~/.reconf)
_home_env = os.getenv("RECONF_HOME", "")
RECONF_HOME = Path(_home_env).expanduser() if _home_env else Path.home() / ".reconf"

LOG_DIR = RECONF_HOME / "log"
PLUGIN_CONFIG_FILE = RECONF_HOME / "plugin-config.json"

# Extra plugin roots, os.pathsep separated
EXTRA_PLUGIN_PATHS = [
    Path(p).expanduser() for p in os.getenv("RECONF_PLUGIN_PATHS", "").split(os.pathsep) if p
]

# Upper bound (seconds) for plugin-authored coroutines, 0 disables it
PLUGIN_CALL_TIMEOUT = float(os.getenv("RECONF_PLUGIN_TIMEOUT", "0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
