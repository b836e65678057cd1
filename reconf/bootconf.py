"""Minimal refind.conf reader: global options plus ``menuentry`` blocks."""

import re
from typing import Any, Dict

MENUENTRY_TITLE_RE = re.compile(r'menuentry\s+"([^"]+)"')


def parse_refind_config(text: str) -> Dict[str, Any]:
    """Parse refind.conf text into global options and menu entries.

    Comments and blank lines are skipped; each option line is split at the
    first space into name and value.

    Returns:
        {"global": {option: value}, "menuentry": [{"line", "title", "options"}]}
    """
    config: Dict[str, Any] = {"global": {}, "menuentry": []}
    entry = None

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("menuentry"):
            if entry is not None:
                config["menuentry"].append(entry)
            match = MENUENTRY_TITLE_RE.search(line)
            entry = {"line": lineno, "title": match.group(1) if match else "Untitled", "options": {}}
            continue

        if line == "}" and entry is not None:
            config["menuentry"].append(entry)
            entry = None
            continue

        key, _, value = line.partition(" ")
        value = value.strip()
        if entry is not None:
            entry["options"][key] = value
        else:
            config["global"][key] = value

    # Unterminated block at end of file
    if entry is not None:
        config["menuentry"].append(entry)

    return config
