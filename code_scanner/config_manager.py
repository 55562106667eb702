"""Load user defaults for scans from the TOML config file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config
from .models import DETAIL_LEVELS, OUTPUT_FORMATS

logger = logging.getLogger(__name__)


DEFAULT_SCAN_CONFIG: Dict[str, Any] = {
    "format": config.DEFAULT_OUTPUT_FORMAT,
    "detail": config.DEFAULT_DETAIL_LEVEL,
    "patterns": list(config.DEFAULT_FILE_PATTERNS),
}


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = config_file or config.CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read config file %s: %s", path, exc)
        return {}


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Return the ``[scan]`` section merged over built-in defaults.

    Unknown keys are ignored and values of the wrong shape are dropped with a
    warning, so a bad config file never prevents a scan.
    """
    merged = {key: (list(val) if isinstance(val, list) else val) for key, val in DEFAULT_SCAN_CONFIG.items()}
    section = load_full_config(config_file).get("scan", {})
    if not isinstance(section, dict):
        logger.warning("Ignoring malformed [scan] section in config file")
        return merged

    fmt = section.get("format")
    if fmt is not None:
        if fmt in OUTPUT_FORMATS:
            merged["format"] = fmt
        else:
            logger.warning("Ignoring unknown output format in config: %r", fmt)

    detail = section.get("detail")
    if detail is not None:
        if detail in DETAIL_LEVELS:
            merged["detail"] = detail
        else:
            logger.warning("Ignoring unknown detail level in config: %r", detail)

    patterns = section.get("patterns")
    if patterns is not None:
        if isinstance(patterns, list) and all(isinstance(p, str) for p in patterns) and patterns:
            merged["patterns"] = list(patterns)
        else:
            logger.warning("Ignoring invalid file patterns in config: %r", patterns)

    return merged
