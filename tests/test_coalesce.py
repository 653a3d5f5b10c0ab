"""Tests for the short-TTL computation cache with in-flight sharing."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from sap_flow.coalesce import ComputationCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestGetOrCompute:
    """Caching within the TTL."""

    def test_computes_once_within_ttl(self) -> None:
        clock = FakeClock()
        cache: ComputationCache[str] = ComputationCache(ttl=90.0, clock=clock)
        calls: list[int] = []

        async def compute() -> str:
            calls.append(1)
            return "result"

        async def scenario() -> None:
            assert await cache.get_or_compute("k", compute) == "result"
            clock.now += 89.0
            assert await cache.get_or_compute("k", compute) == "result"

        asyncio.run(scenario())
        assert len(calls) == 1

    def test_recomputes_after_ttl(self) -> None:
        clock = FakeClock()
        cache: ComputationCache[int] = ComputationCache(ttl=90.0, clock=clock)
        calls: list[int] = []

        async def compute() -> int:
            calls.append(1)
            return len(calls)

        async def scenario() -> None:
            assert await cache.get_or_compute("k", compute) == 1
            clock.now += 90.0
            assert await cache.get_or_compute("k", compute) == 2

        asyncio.run(scenario())

    def test_keys_are_independent(self) -> None:
        cache: ComputationCache[str] = ComputationCache()

        async def scenario() -> tuple[str, str]:
            a = await cache.get_or_compute(("2026", 44.48, -73.21, "fahrenheit"), _value("f"))
            b = await cache.get_or_compute(("2026", 44.48, -73.21, "celsius"), _value("c"))
            return a, b

        assert asyncio.run(scenario()) == ("f", "c")


def _value(result: str) -> Callable[[], Awaitable[str]]:
    async def compute() -> str:
        return result

    return compute


class TestInFlightSharing:
    """Concurrent identical requests share one computation."""

    def test_concurrent_callers_share_result(self) -> None:
        cache: ComputationCache[dict[str, int]] = ComputationCache()
        calls: list[int] = []

        async def compute() -> dict[str, int]:
            calls.append(1)
            await asyncio.sleep(0.01)
            return {"total_days": 12}

        async def scenario() -> list[dict[str, int]]:
            return list(
                await asyncio.gather(*(cache.get_or_compute("k", compute) for _ in range(5)))
            )

        results = asyncio.run(scenario())
        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_cancelled_caller_does_not_cancel_shared_computation(self) -> None:
        """A joined caller still gets the result when the first caller is cancelled."""
        cache: ComputationCache[str] = ComputationCache()
        calls: list[int] = []

        async def scenario() -> str:
            release = asyncio.Event()

            async def compute() -> str:
                calls.append(1)
                await release.wait()
                return "shared"

            first = asyncio.create_task(cache.get_or_compute("k", compute))
            await asyncio.sleep(0)
            second = asyncio.create_task(cache.get_or_compute("k", compute))
            await asyncio.sleep(0)

            first.cancel()
            with pytest.raises(asyncio.CancelledError):
                await first

            release.set()
            return await second

        assert asyncio.run(scenario()) == "shared"
        assert len(calls) == 1

    def test_cancelled_caller_result_still_cached(self) -> None:
        """The shared result is cached even if its only caller was cancelled."""
        cache: ComputationCache[str] = ComputationCache()
        calls: list[int] = []

        async def scenario() -> str:
            release = asyncio.Event()

            async def compute() -> str:
                calls.append(1)
                await release.wait()
                return "kept"

            first = asyncio.create_task(cache.get_or_compute("k", compute))
            await asyncio.sleep(0)
            first.cancel()
            with pytest.raises(asyncio.CancelledError):
                await first

            release.set()
            await asyncio.sleep(0.01)
            return await cache.get_or_compute("k", compute)

        assert asyncio.run(scenario()) == "kept"
        assert len(calls) == 1


class TestFailures:
    """Failures propagate and are never cached."""

    def test_failure_propagates_to_all_waiters(self) -> None:
        cache: ComputationCache[str] = ComputationCache()
        calls: list[int] = []

        async def compute() -> str:
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("upstream down")

        async def scenario() -> list[object]:
            return list(
                await asyncio.gather(
                    *(cache.get_or_compute("k", compute) for _ in range(3)),
                    return_exceptions=True,
                )
            )

        results = asyncio.run(scenario())
        assert len(calls) == 1
        assert all(isinstance(r, RuntimeError) for r in results)

    def test_failure_not_cached_and_retried(self) -> None:
        cache: ComputationCache[str] = ComputationCache()
        attempts: list[int] = []

        async def flaky() -> str:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first attempt fails")
            return "ok"

        with pytest.raises(RuntimeError):
            asyncio.run(cache.get_or_compute("k", flaky))

        assert asyncio.run(cache.get_or_compute("k", flaky)) == "ok"
        assert len(attempts) == 2


class TestExpiry:
    def test_expired_entries_purged_on_store(self) -> None:
        clock = FakeClock()
        cache: ComputationCache[str] = ComputationCache(ttl=10.0, clock=clock)
        asyncio.run(cache.get_or_compute("old", _value("1")))
        clock.now += 11.0
        asyncio.run(cache.get_or_compute("new", _value("2")))
        assert list(cache._entries) == ["new"]
