"""Configuration defaults for the code scanner."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODE_SCANNER_HOME", str(Path.home() / ".code_scanner"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_FILE_PATTERNS = [
    "**/*.py",
    "**/*.js",
    "**/*.jsx",
    "**/*.mjs",
    "**/*.ts",
    "**/*.tsx",
    "**/*.cs",
    "**/*.php",
]

# Always skipped, whatever .gitignore says.
ALWAYS_IGNORED = ["node_modules/", ".git/"]

DEFAULT_OUTPUT_FORMAT = "markdown"
DEFAULT_DETAIL_LEVEL = "standard"


def _parse_int(value: str | None, fallback: int) -> int:
    try:
        return int(value) if value is not None else fallback
    except ValueError:
        return fallback


# Files above this size are reported as read failures instead of parsed.
MAX_FILE_SIZE = _parse_int(os.environ.get("CODE_SCANNER_MAX_FILE_SIZE"), 5_000_000)
