from __future__ import annotations

import asyncio

import pytest

from optchain import (
    FanOutPolicy,
    config_scope,
    handle,
    try_do_async,
    try_let_async,
    with_async,
    with_async_each,
)
from optchain.aio import resolve_concurrency
from optchain.config import resolve_config
from tests.conftest import Dummy, Recorder

pytestmark = pytest.mark.unit


async def _never_awaited(*args):
    pytest.fail(f"async callback should not have been invoked (args={args!r})")


async def _double(x: int) -> int:
    await asyncio.sleep(0)
    return x * 2


@pytest.mark.asyncio
async def test_with_async_awaits_projection() -> None:
    assert await with_async(21, _double) == 42


@pytest.mark.asyncio
async def test_with_async_none_short_circuits() -> None:
    assert await with_async(None, _never_awaited) is None


@pytest.mark.asyncio
async def test_with_async_each_preserves_input_order_despite_completion_order() -> None:
    finished: list[int] = []

    async def slow_first(x: int) -> str:
        # Earlier elements sleep longer, so completion order is reversed.
        await asyncio.sleep(0.01 * (5 - x))
        finished.append(x)
        return f"r{x}"

    result = await with_async_each([0, 1, 2, 3, 4], slow_first)
    assert result == ["r0", "r1", "r2", "r3", "r4"]
    assert finished == [4, 3, 2, 1, 0]


@pytest.mark.asyncio
async def test_with_async_each_missing_and_empty_containers() -> None:
    assert await with_async_each(None, _never_awaited) is None
    assert await with_async_each([], _never_awaited) == []


@pytest.mark.asyncio
async def test_with_async_each_runs_operations_concurrently() -> None:
    gate = asyncio.Event()
    started = 0

    async def wait_for_all(x: int) -> int:
        nonlocal started
        started += 1
        if started == 3:
            gate.set()
        await asyncio.wait_for(gate.wait(), timeout=1)
        return x

    assert await with_async_each([1, 2, 3], wait_for_all) == [1, 2, 3]


@pytest.mark.asyncio
async def test_with_async_each_fail_fast_propagates_the_failure() -> None:
    boom = LookupError("element 2")

    async def fail_on_two(x: int) -> int:
        if x == 2:
            raise boom
        return x

    with pytest.raises(LookupError) as exc:
        await with_async_each([1, 2, 3], fail_on_two)
    assert exc.value is boom


@pytest.mark.asyncio
async def test_with_async_each_collect_raises_group_with_all_failures() -> None:
    async def fail_on_even(x: int) -> int:
        await asyncio.sleep(0)
        if x % 2 == 0:
            raise ValueError(f"bad {x}")
        return x

    with pytest.raises(ExceptionGroup) as exc:
        await with_async_each([1, 2, 3, 4], fail_on_even, policy="collect")
    assert [str(e) for e in exc.value.exceptions] == ["bad 2", "bad 4"]
    assert "2 of 4" in str(exc.value)


@pytest.mark.asyncio
async def test_with_async_each_policy_defaults_to_config() -> None:
    async def always_fail(x: int) -> int:
        raise RuntimeError(str(x))

    with config_scope(fan_out_policy=FanOutPolicy.COLLECT):
        with pytest.raises(ExceptionGroup):
            await with_async_each([1, 2], always_fail)


@pytest.mark.asyncio
async def test_with_async_each_respects_concurrency_limit() -> None:
    in_flight = 0
    peak = 0

    async def tracked(x: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        return x

    assert await with_async_each(range(10), tracked, concurrency=2) == list(range(10))
    assert peak == 2

    peak = 0
    with config_scope(fan_out_concurrency=3):
        await with_async_each(range(10), tracked)
    assert peak == 3


@pytest.mark.asyncio
async def test_with_async_each_rejects_negative_concurrency() -> None:
    with pytest.raises(ValueError, match="concurrency"):
        await with_async_each([1], _double, concurrency=-1)


@pytest.mark.asyncio
async def test_with_async_each_rejects_unknown_policy() -> None:
    with pytest.raises(ValueError):
        await with_async_each([1], _double, policy="sometimes")


def test_resolve_concurrency_priority() -> None:
    cfg = resolve_config(overrides={"fan_out_concurrency": 4})
    assert resolve_concurrency(n_items=10, requested=3, cfg=cfg) == 3
    assert resolve_concurrency(n_items=10, requested=None, cfg=cfg) == 4
    assert resolve_concurrency(n_items=10, requested=0, cfg=cfg) == 4
    assert resolve_concurrency(n_items=2, requested=None, cfg=cfg) == 2
    unbounded = resolve_config()
    assert resolve_concurrency(n_items=7, requested=None, cfg=unbounded) == 7


# --- guarded async ---


@pytest.mark.asyncio
async def test_try_let_async_three_states() -> None:
    assert (await try_let_async(None, _never_awaited)).is_empty
    ok = await try_let_async(4, _double)
    assert tuple(ok) == (8, None)

    async def broken(_: int) -> int:
        raise ConnectionError("down")

    failed = await try_let_async(4, broken)
    assert failed.value is None
    assert isinstance(failed.error, ConnectionError)


@pytest.mark.asyncio
async def test_try_do_async_keeps_value_on_failure() -> None:
    d = Dummy()

    async def broken(_: Dummy) -> None:
        raise ConnectionError("down")

    assert (await try_do_async(None, _never_awaited)).is_empty
    assert tuple(await try_do_async(d, _double_noop)) == (d, None)
    failed = await try_do_async(d, broken)
    assert failed.value is d
    assert isinstance(failed.error, ConnectionError)


async def _double_noop(_: object) -> None:
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_guarded_fan_out_composes_with_handle() -> None:
    async def fail_on_two(x: int) -> int:
        if x == 2:
            raise LookupError("element 2")
        return x

    async def fan_out(xs: list[int]) -> list[int] | None:
        return await with_async_each(xs, fail_on_two)

    log = Recorder()
    assert handle(await try_let_async([1, 2, 3], fan_out), log) is None
    assert isinstance(log.calls[0][0], LookupError)


@pytest.mark.asyncio
async def test_cancellation_is_not_captured() -> None:
    async def cancelled(_: int) -> int:
        raise asyncio.CancelledError

    with pytest.raises(asyncio.CancelledError):
        await try_let_async(1, cancelled)


@pytest.mark.asyncio
async def test_with_async_each_ignores_unrelated_env_variables(monkeypatch) -> None:
    monkeypatch.setenv("OPTCHAIN_TYPO", "1")
    with pytest.warns(UserWarning, match="typo"):
        assert await with_async_each([1, 2], _double) == [2, 4]
