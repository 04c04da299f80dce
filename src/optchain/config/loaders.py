# src/optchain/config/loaders.py

"""Configuration loaders for environment and project files.

Each loader returns a plain dictionary that the core resolver merges. No
validation happens here: string values are handed to the ``Settings`` schema,
which performs the type coercion.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import tomllib

from . import utils

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

# Meta/control variables that steer resolution but aren't config fields
META_ENV_FIELDS = {"pyproject_path"}


def load_env() -> Mapping[str, Any]:
    """Load configuration from ``OPTCHAIN_*`` environment variables.

    ``OPTCHAIN_FAN_OUT_CONCURRENCY=4`` becomes ``{"fan_out_concurrency": "4"}``.
    ``.env`` loading happens in the resolver; this function only reads
    ``os.environ``.
    """
    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(utils.ENV_PREFIX):
            continue
        field_name = key[len(utils.ENV_PREFIX) :].lower()
        if not field_name or field_name in META_ENV_FIELDS:
            continue
        config[field_name] = value
    return config


def load_pyproject() -> Mapping[str, Any]:
    """Load the ``[tool.optchain]`` table from the project ``pyproject.toml``."""
    data = _read_toml(utils.get_pyproject_path())
    section = data.get("tool", {}).get(utils.CONFIG_TOOL_NAME, {})
    return dict(section) if isinstance(section, dict) else {}


def _read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file, treating a missing file as empty."""
    if not path.is_file():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)
