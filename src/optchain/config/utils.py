# src/optchain/config/utils.py

"""Configuration utilities shared by the resolver and the loaders.

Pure helpers only: importing this module never reads the environment or the
filesystem.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

# --- Constants ---

ENV_PREFIX = "OPTCHAIN_"
PYPROJECT_PATH_VAR = f"{ENV_PREFIX}PYPROJECT_PATH"
CONFIG_TOOL_NAME = "optchain"


# --- Path Utilities ---


def get_pyproject_path() -> Path:
    """Return the project ``pyproject.toml`` path, honoring the env override."""
    if override := os.environ.get(PYPROJECT_PATH_VAR):
        return Path(override)
    return Path.cwd() / "pyproject.toml"


# --- Value normalization ---


def normalize_log_level(v: Any) -> Any:
    """Map level names (``"warning"``, ``"DEBUG"``) and numeric strings to ints.

    Unknown values are returned untouched so the schema can reject them with a
    precise message.
    """
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        s = v.strip()
        if s.isdigit():
            return int(s)
        level = logging.getLevelNamesMapping().get(s.upper())
        if level is not None:
            return level
    return v
