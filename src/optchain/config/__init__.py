"""Configuration for optchain.

Resolution layers, lowest to highest precedence:
    defaults < ``[tool.optchain]`` in pyproject.toml < ``OPTCHAIN_*`` env < overrides

Combinators read the active configuration through ``current_config()``; use
``config_scope`` to change it for a block of code.
"""

from __future__ import annotations

from .core import (
    ConfigScope,
    FanOutPolicy,
    FieldOrigin,
    FrozenConfig,
    LogErrorsMode,
    Origin,
    Settings,
    SourceMap,
    audit_lines,
    config_scope,
    current_config,
    reset_config_cache,
    resolve_config,
)

__all__ = [
    "ConfigScope",
    "FanOutPolicy",
    "FieldOrigin",
    "FrozenConfig",
    "LogErrorsMode",
    "Origin",
    "Settings",
    "SourceMap",
    "audit_lines",
    "config_scope",
    "current_config",
    "reset_config_cache",
    "resolve_config",
]
