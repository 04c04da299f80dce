"""Outcome pair for exception-capturing combinators.

``try_do``/``try_let`` never raise on callback failure; they return an
``Outcome`` and leave the decision to the caller:

- ``handle(outcome, log)`` reports a captured error, then keeps the chain going.
- ``ignore(outcome)`` drops the error on purpose.

There is no implicit default: an error sitting in an Outcome surfaces only
through one of those two calls.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Literal, overload

from optchain.config import current_config

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class Outcome[T]:
    """An immutable ``(value, error)`` pair with three reachable states.

    1. empty: ``(None, None)`` with ``ran=False``; the callback never ran.
    2. ok: ``(value, None)``; the callback ran and succeeded.
    3. error: ``(value-or-None, error)``; the callback ran and raised.

    ``ran`` tells state 1 apart from a successful projection that returned
    ``None``. The pair unpacks like a tuple: ``value, error = outcome``.
    Equality is between Outcomes only (``ran`` included): compare against a
    plain tuple with ``tuple(outcome) == (value, None)``.
    """

    value: T | None = None
    error: Exception | None = None
    ran: bool = dataclasses.field(default=True, kw_only=True)

    def __post_init__(self) -> None:
        """Reject pairs that claim an error without having run."""
        if self.error is not None and not self.ran:
            raise ValueError("Outcome with an error must have ran=True")
        if not self.ran and self.value is not None:
            raise ValueError("Outcome that never ran cannot carry a value")

    @classmethod
    def empty(cls) -> Outcome[T]:
        return cls(None, None, ran=False)

    @classmethod
    def ok(cls, value: T | None) -> Outcome[T]:
        return cls(value, None)

    @classmethod
    def failed(cls, value: T | None, error: Exception) -> Outcome[T]:
        return cls(value, error)

    @property
    def is_empty(self) -> bool:
        return not self.ran

    @property
    def is_ok(self) -> bool:
        return self.ran and self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def __iter__(self) -> Iterator[Any]:
        yield self.value
        yield self.error

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int) -> Any:
        return (self.value, self.error)[index]


@overload
def handle[T](
    outcome: Outcome[T] | tuple[T | None, Exception | None],
    log: Callable[[Exception], object] | None = ...,
    *,
    with_value: Literal[False] = ...,
) -> T | None: ...


@overload
def handle[T](
    outcome: Outcome[T] | tuple[T | None, Exception | None],
    log: Callable[[Exception, T | None], object],
    *,
    with_value: Literal[True],
) -> T | None: ...


def handle(outcome: Any, log: Any = None, *, with_value: bool = False) -> Any:
    """Report a captured error, if any, and return the value slot.

    Args:
        outcome: An ``Outcome`` or any ``(value, error)`` pair.
        log: Called as ``log(error)``, or ``log(error, value)`` when
            ``with_value`` is true. When omitted, the error is logged to the
            ``optchain`` logger at the configured ``handle_log_level``.
        with_value: Pass the value slot to ``log`` as a second argument.

    Returns:
        The value slot, unchanged, whether or not an error was reported.

    Raises:
        Exception: Whatever ``log`` raised, unless the active configuration
            sets ``log_errors="suppress"``.
    """
    value, error = outcome
    if error is not None:
        _report(error, value, log, with_value=with_value)
    return value


def ignore[T](outcome: Outcome[T] | tuple[T | None, Exception | None]) -> T | None:
    """Return the value slot and discard any captured error."""
    value, _ = outcome
    return value


def _report(
    error: Exception,
    value: object,
    log: Callable[..., object] | None,
    *,
    with_value: bool,
) -> None:
    if log is None:
        logger.log(
            current_config().handle_log_level,
            "Captured %s: %s",
            type(error).__name__,
            error,
            exc_info=error,
        )
        return
    try:
        if with_value:
            log(error, value)
        else:
            log(error)
    except Exception as exc:
        if current_config().log_errors == "propagate":
            raise
        logger.warning(
            "Error callback %r raised %s while reporting %s; suppressed",
            log,
            type(exc).__name__,
            type(error).__name__,
            exc_info=exc,
        )
