"""Null-safe combinators for chaining dependent lookups.

Every function treats ``None`` as "absent": it short-circuits without calling
the supplied callback and hands back ``None`` (or the caller's fallback).

Two tiers:
- Unguarded (``if_``, ``unless``, ``with_``, ``return_``, ``let``, ``do``,
  ``recover``, ``if_do`` and their keyed/sequence forms) add null-safety only.
  A callback exception propagates exactly as if the callback were called
  inline.
- Guarded (``try_do``, ``try_let``) capture any ``Exception`` into an
  ``Outcome`` instead of raising.

Example:
    city = with_(with_(order, lambda o: o.customer), lambda c: c.address)
    label = return_(city, lambda a: a.city.upper(), "UNKNOWN")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from optchain.outcome import Outcome

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)


# --- Presence ---


def if_[T](value: T | None, predicate: Callable[[T], object]) -> T | None:
    """Return ``value`` when present and ``predicate(value)`` is truthy, else None."""
    if value is None:
        return None
    return value if predicate(value) else None


def unless[T](value: T | None, predicate: Callable[[T], object]) -> T | None:
    """Return ``value`` when present and ``predicate(value)`` is falsy, else None."""
    if value is None:
        return None
    return None if predicate(value) else value


# --- Transformation ---


def with_[T, R](value: T | None, project: Callable[[T], R]) -> R | None:
    """Project a present value; ``None`` short-circuits to ``None``."""
    if value is None:
        return None
    return project(value)


def with_key[K, V](mapping: Mapping[K, V] | None, key: K) -> V | None:
    """Look up ``key`` totally: a missing mapping or key yields None, never KeyError."""
    if mapping is None or key not in mapping:
        return None
    return mapping[key]


def with_each[T, R](
    values: Iterable[T] | None, project: Callable[[T], R]
) -> list[R] | None:
    """Project every element in order.

    A ``None`` container yields ``None``; an empty one yields ``[]``. Elements
    are handed to ``project`` as-is.
    """
    if values is None:
        return None
    return [project(v) for v in values]


def return_[T, R](value: T | None, project: Callable[[T], R], fallback: R) -> R:
    """Project a present value, or return ``fallback`` without calling ``project``."""
    if value is None:
        return fallback
    return project(value)


def return_key[K, V](mapping: Mapping[K, V] | None, key: K, fallback: V) -> V:
    """Total lookup with a fallback for a missing mapping or key.

    A key that is present with a stored ``None`` returns that ``None``.
    """
    if mapping is None or key not in mapping:
        return fallback
    return mapping[key]


def let[T, R](value: T | None, project: Callable[[T], R], fallback: R) -> R:
    """Same behavior as ``return_``; reads better at some call sites."""
    return return_(value, project, fallback)


# --- Recovery ---


def recover[T](value: T | None, fallback: T) -> T:
    """Return ``value`` if present, else the already-computed ``fallback``."""
    return fallback if value is None else value


def recover_with[T](value: T | None, supplier: Callable[[], T]) -> T:
    """Return ``value`` if present, else ``supplier()``.

    The supplier only runs when ``value`` is None; use this form when the
    fallback is expensive or has side effects.
    """
    return supplier() if value is None else value


# --- Actions ---


def do[T](value: T | None, action: Callable[[T], object]) -> T | None:
    """Run ``action(value)`` for its side effect and return the same ``value``."""
    if value is None:
        return None
    action(value)
    return value


def do_each[S: Iterable](values: S | None, action: Callable[..., object]) -> S | None:
    """Run ``action`` on each element in order and return the original container."""
    if values is None:
        return None
    for v in values:
        action(v)
    return values


def if_do[T](
    value: T | None,
    predicate: Callable[[T], object],
    action: Callable[[T], object],
) -> T | None:
    """Run ``action(value)`` only when present and ``predicate(value)`` holds.

    Always returns ``value`` unchanged so the chain is never interrupted.
    """
    if value is not None and predicate(value):
        action(value)
    return value


# --- Guarded ---


def try_do[T](value: T | None, action: Callable[[T], object]) -> Outcome[T]:
    """Run ``action(value)`` and capture any exception.

    Returns:
        ``Outcome.empty()`` for None input, ``(value, None)`` on success and
        ``(value, error)`` on failure. The value is kept on failure since the
        action may have partially applied.
    """
    if value is None:
        return Outcome.empty()
    try:
        action(value)
    except Exception as exc:
        logger.debug("try_do captured %s: %s", type(exc).__name__, exc)
        return Outcome.failed(value, exc)
    return Outcome.ok(value)


def try_let[T, R](value: T | None, project: Callable[[T], R]) -> Outcome[R]:
    """Project ``value`` and capture any exception.

    Returns:
        ``Outcome.empty()`` for None input, ``(result, None)`` on success and
        ``(None, error)`` on failure.
    """
    if value is None:
        return Outcome.empty()
    try:
        result = project(value)
    except Exception as exc:
        logger.debug("try_let captured %s: %s", type(exc).__name__, exc)
        return Outcome.failed(None, exc)
    return Outcome.ok(result)
