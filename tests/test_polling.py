"""Tests for bounded polling and the polling coordinator."""

import asyncio

import pytest

from issuance.journey.polling import PollingCoordinator, PollLoop, PollState, PollStatus


class Counter:
    """Fetch stub returning an incrementing count; terminal at ``done_at``."""

    def __init__(self, done_at=None):
        self.calls = 0
        self.done_at = done_at

    async def __call__(self):
        self.calls += 1
        return self.calls

    def is_terminal(self, value):
        return self.done_at is not None and value >= self.done_at


@pytest.mark.asyncio
async def test_terminal_on_first_attempt_does_not_sleep(clock):
    fetch = Counter(done_at=1)
    loop = PollLoop(PollState("underwriting"), fetch, fetch.is_terminal, sleep=clock.sleep)

    result = await loop.run()

    assert result.status is PollStatus.TERMINAL
    assert result.value == 1
    assert result.attempts == 1
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_terminal_after_several_attempts(clock):
    fetch = Counter(done_at=4)
    loop = PollLoop(PollState("issuance", max_attempts=15, interval_seconds=2.0), fetch, fetch.is_terminal, clock.sleep)

    result = await loop.run()

    assert result.terminal
    assert result.value == 4
    assert clock.sleeps == [2.0, 2.0, 2.0]


@pytest.mark.asyncio
async def test_times_out_after_max_attempts(clock):
    """Default cap: 15 attempts two seconds apart."""
    fetch = Counter()
    loop = PollLoop(PollState("underwriting"), fetch, fetch.is_terminal, sleep=clock.sleep)

    result = await loop.run()

    assert result.timed_out
    assert result.attempts == 15
    assert result.value is None
    assert fetch.calls == 15
    assert len(clock.sleeps) == 14
    assert clock.elapsed == pytest.approx(28.0)


@pytest.mark.asyncio
async def test_timeout_is_reported_once_and_never_fetches_again(clock):
    fetch = Counter()
    loop = PollLoop(PollState("underwriting", max_attempts=3), fetch, fetch.is_terminal, sleep=clock.sleep)

    first = await loop.run()
    second = await loop.tick()

    assert first.timed_out
    assert second is first
    assert loop.result is first
    assert fetch.calls == 3
    assert loop.state.finished


@pytest.mark.asyncio
async def test_tick_returns_none_while_attempts_remain():
    fetch = Counter()
    loop = PollLoop(PollState("underwriting", max_attempts=2), fetch, fetch.is_terminal)

    assert await loop.tick() is None
    assert loop.state.attempts == 1
    result = await loop.tick()
    assert result.timed_out


@pytest.mark.asyncio
async def test_cancel_before_tick_skips_fetch():
    fetch = Counter()
    loop = PollLoop(PollState("underwriting"), fetch, fetch.is_terminal)

    loop.cancel()
    result = await loop.tick()

    assert result.cancelled
    assert fetch.calls == 0


@pytest.mark.asyncio
async def test_cancel_during_sleep_stops_the_loop():
    fetch = Counter()

    async def sleep(_seconds):
        loop.cancel()

    loop = PollLoop(PollState("underwriting"), fetch, fetch.is_terminal, sleep=sleep)
    result = await loop.run()

    assert result.cancelled
    assert result.attempts == 1
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_cancel_while_fetch_in_flight_discards_value():
    loop = None

    async def fetch():
        loop.cancel()
        return "decided"

    loop = PollLoop(PollState("underwriting"), fetch, lambda value: True)
    result = await loop.tick()

    assert result.cancelled
    assert result.value is None


@pytest.mark.asyncio
async def test_fetch_failure_ends_the_wait_and_propagates():
    calls = []

    async def fetch():
        calls.append(1)
        raise RuntimeError("boom")

    loop = PollLoop(PollState("issuance"), fetch, lambda value: True)

    with pytest.raises(RuntimeError):
        await loop.run()
    assert loop.state.finished
    assert len(calls) == 1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        PollLoop(PollState("issuance", max_attempts=0), Counter(), lambda value: True)


@pytest.mark.asyncio
async def test_coordinator_poll_unregisters_finished_loop(clock):
    coordinator = PollingCoordinator(interval_seconds=0.5, max_attempts=4, sleep=clock.sleep)
    fetch = Counter(done_at=2)

    result = await coordinator.poll("underwriting", fetch, fetch.is_terminal)

    assert result.terminal
    assert clock.sleeps == [0.5]
    assert coordinator.active("underwriting") is None


def test_coordinator_start_supersedes_loop_with_same_name():
    coordinator = PollingCoordinator()
    first = coordinator.start("underwriting", Counter(), lambda value: False)
    second = coordinator.start("underwriting", Counter(), lambda value: False)

    assert first.state.cancelled
    assert not second.state.cancelled
    assert coordinator.active("underwriting") is second


def test_coordinator_keeps_distinct_waits_apart():
    coordinator = PollingCoordinator()
    underwriting = coordinator.start("underwriting", Counter(), lambda value: False)
    issuance = coordinator.start("issuance", Counter(), lambda value: False)

    coordinator.cancel("underwriting")

    assert underwriting.state.cancelled
    assert not issuance.state.cancelled
    assert coordinator.active("issuance") is issuance


def test_coordinator_cancel_all():
    coordinator = PollingCoordinator()
    loops = [coordinator.start(name, Counter(), lambda value: False) for name in ("underwriting", "issuance")]

    coordinator.cancel_all()

    assert all(loop.state.cancelled for loop in loops)
    assert coordinator.active("underwriting") is None
    assert coordinator.active("issuance") is None


@pytest.mark.asyncio
async def test_cancel_all_stops_a_running_poll():
    coordinator = PollingCoordinator(interval_seconds=0.01, max_attempts=1000)
    fetch = Counter()

    task = asyncio.create_task(coordinator.poll("issuance", fetch, fetch.is_terminal))
    while fetch.calls < 2:
        await asyncio.sleep(0)
    coordinator.cancel_all()
    result = await task

    assert result.cancelled
    assert result.attempts < 1000


def test_coordinator_from_config():
    from issuance.utils.config_loader import PollingConfig

    coordinator = PollingCoordinator.from_config(PollingConfig(interval_ms=250, max_attempts=3))

    assert coordinator.interval_seconds == 0.25
    assert coordinator.max_attempts == 3
