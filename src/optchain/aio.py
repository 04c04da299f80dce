"""Asynchronous combinators.

``with_async`` is the awaitable counterpart of ``with_``. ``with_async_each``
fans a projection out over a sequence and joins on all of it; the failure
policy is explicit (see ``FanOutPolicy``) and no operation is ever cancelled
by the library.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from optchain.config import FanOutPolicy, FrozenConfig, current_config
from optchain.outcome import Outcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)


async def with_async[T, R](
    value: T | None, project: Callable[[T], Awaitable[R]]
) -> R | None:
    """Await ``project(value)`` when present; return None right away otherwise."""
    if value is None:
        return None
    return await project(value)


def resolve_concurrency(
    *, n_items: int, requested: int | None, cfg: FrozenConfig
) -> int:
    """Resolve the effective in-flight bound for a fan-out.

    Priority:
    1) Explicit per-call ``requested`` when > 0.
    2) ``cfg.fan_out_concurrency`` when > 0.
    3) Unbounded, i.e. ``n_items``.

    ``n_items`` must be positive; ``with_async_each`` returns early for an
    empty sequence.
    """
    if requested is not None and requested < 0:
        raise ValueError(f"concurrency must be >= 0, got {requested}")
    if requested:
        return min(requested, n_items)
    if cfg.fan_out_concurrency > 0:
        return min(cfg.fan_out_concurrency, n_items)
    return n_items


async def with_async_each[T, R](
    values: Iterable[T] | None,
    project: Callable[[T], Awaitable[R]],
    *,
    concurrency: int | None = None,
    policy: FanOutPolicy | str | None = None,
) -> list[R] | None:
    """Run ``project`` over every element concurrently and join on all of them.

    Args:
        values: Elements to project; ``None`` yields ``None`` and ``[]``
            yields ``[]``.
        project: Async projection applied to each element as-is.
        concurrency: Max in-flight operations; defaults to the configured
            ``fan_out_concurrency`` (0 means one per element).
        policy: ``FanOutPolicy`` or its value; defaults to the configured
            ``fan_out_policy``.

    Returns:
        Results in input order, whatever order the operations finished in.

    Raises:
        Exception: Under ``FAIL_FAST``, the first failure, unwrapped.
        ExceptionGroup: Under ``COLLECT``, every failure in input order.
    """
    if values is None:
        return None
    items = list(values)
    if not items:
        return []

    cfg = current_config()
    effective_policy = cfg.fan_out_policy if policy is None else FanOutPolicy(policy)
    limit = resolve_concurrency(n_items=len(items), requested=concurrency, cfg=cfg)
    semaphore = asyncio.Semaphore(limit) if limit < len(items) else None

    async def _one(item: T) -> R:
        if semaphore is None:
            return await project(item)
        async with semaphore:
            return await project(item)

    logger.debug(
        "Fanning out %d operations (limit=%d, policy=%s)",
        len(items),
        limit,
        effective_policy.value,
    )

    if effective_policy is FanOutPolicy.FAIL_FAST:
        return list(await asyncio.gather(*(_one(v) for v in items)))

    results = await asyncio.gather(*(_one(v) for v in items), return_exceptions=True)
    errors: list[Exception] = []
    for item in results:
        if isinstance(item, Exception):
            errors.append(item)
        elif isinstance(item, BaseException):
            # Cancellation and interpreter exits are never collected.
            raise item
    if errors:
        raise ExceptionGroup(
            f"{len(errors)} of {len(items)} fan-out operations failed", errors
        )
    return list(results)  # type: ignore[arg-type]


async def try_do_async[T](
    value: T | None, action: Callable[[T], Awaitable[object]]
) -> Outcome[T]:
    """Awaitable ``try_do``: ``(value, error)`` with the value kept on failure."""
    if value is None:
        return Outcome.empty()
    try:
        await action(value)
    except Exception as exc:
        logger.debug("try_do_async captured %s: %s", type(exc).__name__, exc)
        return Outcome.failed(value, exc)
    return Outcome.ok(value)


async def try_let_async[T, R](
    value: T | None, project: Callable[[T], Awaitable[R]]
) -> Outcome[R]:
    """Awaitable ``try_let``: ``(result, None)`` or ``(None, error)``."""
    if value is None:
        return Outcome.empty()
    try:
        result = await project(value)
    except Exception as exc:
        logger.debug("try_let_async captured %s: %s", type(exc).__name__, exc)
        return Outcome.failed(None, exc)
    return Outcome.ok(result)
