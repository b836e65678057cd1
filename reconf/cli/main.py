#!/usr/bin/env python
"""
reconf - interactive configuration editor

Usage:
    reconf
    python -m reconf.cli.main
    python -m reconf.cli.main --no-plugins
    python -m reconf.cli.main -p ./my-plugins -p ~/shared-plugins
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables FIRST (reconf.constants reads them at import)
load_dotenv(".env")

from reconf import __version__
from reconf.cli.repl import REPLRunner
from reconf.constants import LOG_DIR, LOG_LEVEL


def setup_logging(log_dir: Path = LOG_DIR) -> None:
    """File handler for everything at LOG_LEVEL, console only for warnings."""
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)

    file_handler = logging.FileHandler(log_dir / "reconf.log", encoding="utf-8")
    file_handler.setLevel(LOG_LEVEL)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    # Keep INFO out of the interactive output
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="reconf - interactive boot-manager configuration editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-p", "--plugin-path",
        action="append",
        default=[],
        type=Path,
        help="Additional plugin directory (repeatable)",
    )
    parser.add_argument(
        "--no-plugins",
        action="store_true",
        help="Start without loading any plugins",
    )
    parser.add_argument("--version", action="version", version=f"reconf {__version__}")
    return parser.parse_args(argv)


def main(argv=None):
    try:
        args = parse_args(argv)
        setup_logging()
        repl = REPLRunner(extra_paths=args.plugin_path, load_plugins=not args.no_plugins)
        asyncio.run(repl.run())
    except KeyboardInterrupt:
        print("\n\033[33minterrupted\033[0m")
        sys.exit(0)


if __name__ == "__main__":
    main()
