"""Shared constants for pycommander."""

import os
from pathlib import Path

__all__ = [
    "ALIAS_REGEX",
    "ALIAS_SPEC",
    "BIN_NAME",
    "CONFIG_PATH_ENV",
    "GLOBAL_CONFIG_FILE",
    "PROJECT_CONFIG_FILES",
    "SUGGESTION_THRESHOLD",
]

BIN_NAME = "pycommander"

# Config file paths - use XDG_CONFIG_HOME with fallback to ~/.config
CONFIG_PATH_ENV = "PYCOMMANDER_CONFIG_PATH"
_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
GLOBAL_CONFIG_FILE = _xdg_config_home / "pycommander" / "config.toml"
PROJECT_CONFIG_FILES = ("pycommander.local.toml", "pycommander.toml")  # searched upward, first wins

# Aliases: "@name" keys holding a bundle of these keys, or a list of other aliases
ALIAS_REGEX = r"^@[A-Za-z0-9_.-]+$"
ALIAS_SPEC = ("user", "url", "path", "ssh", "http", "proxyjump", "key")

# Maximum edit distance for "Did you mean" suggestions
SUGGESTION_THRESHOLD = 2
