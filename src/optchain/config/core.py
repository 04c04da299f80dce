# src/optchain/config/core.py

"""Core configuration schema and resolution for optchain.

This module follows a two-layer design:
- Single source of truth for configuration schema (Settings)
- Immutable runtime payload (FrozenConfig)
- Pure data resolution with audit tracking (SourceMap)
- Guarded ambient scope for call-site convenience
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass
from enum import Enum
from functools import cache
import logging
import tomllib
from typing import TYPE_CHECKING, Any, Literal, overload
import warnings

from pydantic import BaseModel, Field, ValidationError, field_validator

from optchain.errors import ConfigurationError

from .utils import normalize_log_level

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping
    from types import TracebackType

logger = logging.getLogger(__name__)


class FanOutPolicy(str, Enum):
    """How ``with_async_each`` reports failures of its fanned-out operations."""

    #: Re-raise the first failure as soon as it happens.
    FAIL_FAST = "fail_fast"
    #: Await every operation, then raise an ExceptionGroup of all failures.
    COLLECT = "collect"


LogErrorsMode = Literal["propagate", "suppress"]

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic schema for configuration validation and defaults.

    All configuration resolution flows through this schema so runtime code
    only ever sees validated values.
    """

    fan_out_policy: FanOutPolicy = Field(default=FanOutPolicy.FAIL_FAST)
    # Client-side fan-out bound; 0 means one in-flight operation per element
    fan_out_concurrency: int = Field(default=0, ge=0)
    handle_log_level: int = Field(default=logging.WARNING, ge=0)
    log_errors: LogErrorsMode = Field(default="propagate")

    # Unknown keys are stripped (with a warning) before validation
    model_config = {"extra": "ignore"}

    @field_validator("fan_out_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        """Accept enum members, values ("fail_fast") or names ("FAIL_FAST")."""
        if isinstance(v, str) and not isinstance(v, FanOutPolicy):
            s = v.strip().lower().replace("-", "_")
            return s or v
        return v

    @field_validator("handle_log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept level names as well as numeric levels."""
        return normalize_log_level(v)

    @field_validator("log_errors", mode="before")
    @classmethod
    def normalize_log_errors(cls, v: Any) -> Any:
        """Trim and lowercase the mode name."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


# Cache default settings to avoid repeated Pydantic instantiation per resolution.
@cache
def _default_settings() -> dict[str, Any]:
    return Settings().model_dump()


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consulted by the combinators at call time."""

    fan_out_policy: FanOutPolicy = FanOutPolicy.FAIL_FAST
    fan_out_concurrency: int = 0
    handle_log_level: int = logging.WARNING
    log_errors: LogErrorsMode = "propagate"


# --- Audit types ---


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    env_key: str | None = None  # e.g., "OPTCHAIN_FAN_OUT_POLICY"
    file: str | None = None  # e.g., "/work/pyproject.toml"


SourceMap = dict[str, FieldOrigin]


# --- Ambient scope (guarded) ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "optchain_ambient_config", default=None
)

_DOTENV_LOADED: bool = False


class ConfigScope:
    """Context manager for temporarily setting ambient configuration."""

    def __init__(self, cfg: FrozenConfig):
        """Initialize the context manager with a configuration."""
        self._token: contextvars.Token[FrozenConfig | None] | None = None
        self._cfg = cfg

    def __enter__(self) -> FrozenConfig:
        """Enter the context and set ambient configuration."""
        self._token = _AMBIENT.set(self._cfg)
        return self._cfg

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> Literal[False]:
        """Exit the context and restore previous ambient configuration."""
        if self._token is not None:
            _AMBIENT.reset(self._token)
        return False


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    **overrides: object,
) -> Generator[FrozenConfig]:
    """Run a block with a specific configuration without touching global state.

    The scope lives in a ``ContextVar``, so it is safe across threads and
    asyncio tasks.

    Example:
        with config_scope(fan_out_policy="collect", fan_out_concurrency=4):
            results = await with_async_each(users, fetch_profile)
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        cfg = cfg_or_overrides
    else:
        combined_overrides = {**(cfg_or_overrides or {}), **overrides}
        cfg = resolve_config(overrides=combined_overrides)

    with ConfigScope(cfg):
        yield cfg


@cache
def _process_default() -> FrozenConfig:
    return resolve_config()


def current_config() -> FrozenConfig:
    """Return the innermost scoped config, else the process-wide default.

    The default is resolved once per process; call ``reset_config_cache`` after
    changing the environment or ``pyproject.toml``.
    """
    cfg = _AMBIENT.get()
    return cfg if cfg is not None else _process_default()


def reset_config_cache() -> None:
    """Forget the cached process-wide default configuration."""
    _process_default.cache_clear()


def _load_dotenv_once() -> None:
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


# --- Public resolution API ---


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[True],
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[False] = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    explain: bool = False,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve configuration from all sources into a FrozenConfig.

    Precedence: defaults < ``[tool.optchain]`` in pyproject < env < overrides.

    Args:
        overrides: Programmatic configuration overrides.
        explain: If True, return tuple of (config, source_map) for audit.

    Returns:
        FrozenConfig instance, or tuple of (FrozenConfig, SourceMap) if explain=True.

    Raises:
        ConfigurationError: If a config file cannot be parsed or validation fails.
    """
    _load_dotenv_once()

    from .loaders import load_env, load_pyproject

    try:
        project = load_pyproject()
    except tomllib.TOMLDecodeError as e:
        from .utils import get_pyproject_path

        raise ConfigurationError(
            f"Could not parse {get_pyproject_path()}: {e}",
            hint="Fix the TOML syntax or point OPTCHAIN_PYPROJECT_PATH elsewhere.",
        ) from e

    merged, sources = _resolve_layers(
        overrides=overrides or {},
        env=load_env(),
        project=project,
    )

    known_fields = set(Settings.model_fields)
    extra = {k: v for k, v in merged.items() if k not in known_fields}
    _warn_extra_fields(extra, sources)

    try:
        settings = Settings.model_validate(
            {k: v for k, v in merged.items() if k in known_fields}
        )
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or "config"
        msg = err.get("msg") or "invalid value"
        if msg.startswith("Value error, "):
            msg = msg[13:]
        origin = sources.get(field)
        raise ConfigurationError(
            f"Configuration validation failed for {field!r}: {msg}",
            hint=_origin_label(field, origin) if origin else None,
        ) from e

    frozen = FrozenConfig(
        fan_out_policy=settings.fan_out_policy,
        fan_out_concurrency=settings.fan_out_concurrency,
        handle_log_level=settings.handle_log_level,
        log_errors=settings.log_errors,
    )
    logger.debug("Resolved config: %s", frozen)
    return (frozen, sources) if explain else frozen


def _warn_extra_fields(extra: Mapping[str, Any], sources: SourceMap) -> None:
    """Warn about keys the schema does not know; they never fail resolution."""
    for name in sorted(extra):
        where = sources.get(name)
        origin = f" (from {_origin_label(name, where)})" if where else ""
        warnings.warn(
            f"Configuration: ignoring unknown field {name!r}{origin}",
            UserWarning,
            stacklevel=4,
        )


def _resolve_layers(
    *,
    overrides: Mapping[str, Any],
    env: Mapping[str, Any],
    project: Mapping[str, Any],
) -> tuple[dict[str, Any], SourceMap]:
    """Merge layers with last-wins precedence while recording each field's origin."""
    from .utils import ENV_PREFIX, get_pyproject_path

    layers = [
        (Origin.PROJECT, project),
        (Origin.ENV, env),
        (Origin.OVERRIDES, overrides),
    ]

    out: dict[str, Any] = {}
    src: SourceMap = {}

    for k, v in _default_settings().items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.DEFAULT)

    for origin, payload in layers:
        for k, v in payload.items():
            out[k] = v
            if origin is Origin.ENV:
                src[k] = FieldOrigin(origin=origin, env_key=f"{ENV_PREFIX}{k.upper()}")
            elif origin is Origin.PROJECT:
                src[k] = FieldOrigin(origin=origin, file=str(get_pyproject_path()))
            else:
                src[k] = FieldOrigin(origin=origin)

    return out, src


# --- Minimal audit helpers ---


def _origin_label(field: str, where: FieldOrigin) -> str:
    match where.origin:
        case Origin.ENV:
            from .utils import ENV_PREFIX

            key = where.env_key or f"{ENV_PREFIX}{field.upper()}"
            return f"env:{key}"
        case Origin.PROJECT:
            return f"file:{where.file or 'pyproject.toml'}"
        case _:
            return str(where.origin.value)


def audit_lines(sources: SourceMap) -> list[str]:
    """Produce human-readable ``field: origin`` lines in schema order."""
    return [
        f"{field}: {_origin_label(field, sources[field])}"
        for field in Settings.model_fields
        if field in sources
    ]
