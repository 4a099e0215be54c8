"""Tests for the expiring registry, its sweeper and the token revocation set."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from learnhub.auth.revocation import TokenRevocationRegistry
from learnhub.core.registry import PeriodicSweeper, TTLRegistry


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> TTLRegistry:
    return TTLRegistry(clock=clock)


class TestTTLRegistry:
    """Tests for TTLRegistry."""

    def test_lookup_before_and_after_expiry(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        registry.add("key", clock.now + timedelta(seconds=10), value="v")
        assert registry.lookup("key") == "v"

        clock.advance(10)
        assert registry.lookup("key") is None
        assert registry.contains("key") is False

    def test_missing_key(self, registry: TTLRegistry) -> None:
        assert registry.lookup("missing") is None

    def test_sweep_removes_only_expired(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        registry.add("short", clock.now + timedelta(seconds=1))
        registry.add("long", clock.now + timedelta(hours=1))
        clock.advance(5)

        assert registry.sweep() == 1
        assert len(registry) == 1
        assert registry.contains("long")

    def test_increment_fixed_window(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        assert registry.increment("ip", window_seconds=60) == 1
        assert registry.increment("ip", window_seconds=60) == 2
        clock.advance(30)
        assert registry.increment("ip", window_seconds=60) == 3

        clock.advance(31)
        assert registry.increment("ip", window_seconds=60) == 1


class TestTokenRevocationRegistry:
    """Tests for TokenRevocationRegistry."""

    def test_revoke_until_expiry(self, clock: FakeClock) -> None:
        revocations = TokenRevocationRegistry(TTLRegistry(clock=clock))
        revocations.revoke("token-a", clock.now + timedelta(minutes=5))

        assert revocations.is_revoked("token-a")
        assert not revocations.is_revoked("token-b")

        clock.advance(301)
        assert revocations.sweep() == 1
        assert not revocations.is_revoked("token-a")

    def test_keeps_injected_empty_registry(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        """An empty registry is falsy but must still be used as given."""
        revocations = TokenRevocationRegistry(registry)
        assert revocations.registry is registry

        revocations.revoke("token-a", clock.now + timedelta(minutes=5))
        assert len(registry) == 1


class TestPeriodicSweeper:
    """Tests for PeriodicSweeper."""

    @pytest.mark.asyncio
    async def test_sweeps_in_background(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        registry.add("old", clock.now - timedelta(seconds=1))
        sweeper = PeriodicSweeper(registry, interval_seconds=0.01, name="test")

        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if len(registry) == 0:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert len(registry) == 0
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_keeps_running_after_failed_sweep(
        self, registry: TTLRegistry, clock: FakeClock
    ) -> None:
        """A sweep that raises is logged and the next tick sweeps again."""
        registry.add("old", clock.now - timedelta(seconds=1))
        real_sweep = registry.sweep
        calls = 0

        def flaky_sweep() -> int:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("sweep failed")
            return real_sweep()

        registry.sweep = flaky_sweep  # type: ignore[method-assign]
        sweeper = PeriodicSweeper(registry, interval_seconds=0.01, name="test")

        sweeper.start()
        for _ in range(100):
            if len(registry) == 0:
                break
            await asyncio.sleep(0.01)
        assert sweeper.running
        await sweeper.stop()

        assert calls >= 2
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_stop_without_start(self, registry: TTLRegistry) -> None:
        sweeper = PeriodicSweeper(registry, interval_seconds=1)
        await sweeper.stop()
        assert not sweeper.running
