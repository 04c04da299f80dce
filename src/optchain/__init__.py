"""optchain: null-safe and exception-capturing combinators for chained lookups.

Public API:
    - if_/unless: presence tests
    - with_/with_key/with_each, return_/return_key, let: safe projection
    - recover/recover_with: fallbacks
    - do/do_each/if_do: safe side effects
    - try_do/try_let + handle/ignore: exception capture
    - with_async/with_async_each, try_do_async/try_let_async: asyncio variants
    - chain(): builder-style wrapper over all of the above
"""

from __future__ import annotations

import logging

from optchain.aio import (
    try_do_async,
    try_let_async,
    with_async,
    with_async_each,
)
from optchain.chain import Chain, chain
from optchain.combinators import (
    do,
    do_each,
    if_,
    if_do,
    let,
    recover,
    recover_with,
    return_,
    return_key,
    try_do,
    try_let,
    unless,
    with_,
    with_each,
    with_key,
)
from optchain.config import FanOutPolicy, config_scope, current_config, resolve_config
from optchain.errors import ConfigurationError, OptchainError
from optchain.outcome import Outcome, handle, ignore

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("optchain")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("optchain").addHandler(logging.NullHandler())

__all__ = [
    "Chain",
    "ConfigurationError",
    "FanOutPolicy",
    "OptchainError",
    "Outcome",
    "chain",
    "config_scope",
    "current_config",
    "do",
    "do_each",
    "handle",
    "if_",
    "if_do",
    "ignore",
    "let",
    "recover",
    "recover_with",
    "resolve_config",
    "return_",
    "return_key",
    "try_do",
    "try_do_async",
    "try_let",
    "try_let_async",
    "unless",
    "with_",
    "with_async",
    "with_async_each",
    "with_each",
    "with_key",
]
