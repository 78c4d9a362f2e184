"""
Bounded polling for server-side transitions that finish outside the HTTP call
that triggered them (underwriting decisions, policy issuance).

A wait is an explicit ``PollState`` (attempts, cap, interval, cancel flag)
advanced one ``tick`` at a time. ``PollLoop.run`` is the default driver and
sleeps through an injected coroutine, so tests can drive it with a virtual
clock. Timeouts count attempts, never wall time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_ATTEMPTS = 15

Sleep = Callable[[float], Awaitable[None]]


class PollStatus(str, Enum):
    TERMINAL = "terminal"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class PollState:
    wait_name: str
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    attempts: int = 0
    cancelled: bool = False
    finished: bool = False

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


@dataclass(frozen=True)
class PollResult(Generic[T]):
    status: PollStatus
    attempts: int
    value: Optional[T] = None

    @property
    def terminal(self) -> bool:
        return self.status is PollStatus.TERMINAL

    @property
    def timed_out(self) -> bool:
        return self.status is PollStatus.TIMED_OUT

    @property
    def cancelled(self) -> bool:
        return self.status is PollStatus.CANCELLED


class PollLoop(Generic[T]):
    def __init__(
        self,
        state: PollState,
        fetch: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
        sleep: Optional[Sleep] = None,
    ) -> None:
        if state.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.state = state
        self._fetch = fetch
        self._is_terminal = is_terminal
        self._sleep = sleep or asyncio.sleep
        self._result: Optional[PollResult[T]] = None

    @property
    def result(self) -> Optional[PollResult[T]]:
        return self._result

    def cancel(self) -> None:
        if not self.state.finished and not self.state.cancelled:
            logger.info("[Polling] %s cancelled after %d attempt(s)", self.state.wait_name, self.state.attempts)
        self.state.cancelled = True

    async def tick(self) -> Optional[PollResult[T]]:
        """Fetch once and evaluate the terminal predicate.

        Returns the final result once the wait is over, ``None`` while attempts
        remain. A fetch failure ends the wait and propagates.
        """
        if self._result is not None:
            return self._result
        if self.state.cancelled:
            return self._finish(PollStatus.CANCELLED)

        self.state.attempts += 1
        try:
            value = await self._fetch()
        except Exception:
            self.state.finished = True
            logger.warning(
                "[Polling] %s fetch failed on attempt %d/%d; stopping",
                self.state.wait_name, self.state.attempts, self.state.max_attempts,
            )
            raise

        if self.state.cancelled:
            return self._finish(PollStatus.CANCELLED)
        if self._is_terminal(value):
            return self._finish(PollStatus.TERMINAL, value)
        if self.state.exhausted:
            return self._finish(PollStatus.TIMED_OUT)

        logger.debug(
            "[Polling] %s not terminal after attempt %d/%d",
            self.state.wait_name, self.state.attempts, self.state.max_attempts,
        )
        return None

    async def run(self) -> PollResult[T]:
        while True:
            result = await self.tick()
            if result is not None:
                return result
            await self._sleep(self.state.interval_seconds)

    def _finish(self, status: PollStatus, value: Optional[T] = None) -> PollResult[T]:
        self.state.finished = True
        self._result = PollResult(status=status, attempts=self.state.attempts, value=value)
        log = logger.warning if status is PollStatus.TIMED_OUT else logger.info
        log("[Polling] %s finished: %s after %d attempt(s)", self.state.wait_name, status.value, self.state.attempts)
        return self._result


class PollingCoordinator:
    """Runs at most one poll loop per logical wait."""

    def __init__(
        self,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._active: Dict[str, PollLoop] = {}

    @classmethod
    def from_config(cls, config, sleep: Optional[Sleep] = None) -> "PollingCoordinator":
        """Build from a ``PollingConfig``."""
        return cls(interval_seconds=config.interval_seconds, max_attempts=config.max_attempts, sleep=sleep)

    def start(
        self,
        wait_name: str,
        fetch: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
    ) -> PollLoop[T]:
        """Register a new loop for ``wait_name``, cancelling any loop it supersedes."""
        self.cancel(wait_name)
        loop: PollLoop[T] = PollLoop(
            PollState(wait_name=wait_name, max_attempts=self.max_attempts, interval_seconds=self.interval_seconds),
            fetch,
            is_terminal,
            sleep=self._sleep,
        )
        self._active[wait_name] = loop
        return loop

    async def poll(
        self,
        wait_name: str,
        fetch: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
    ) -> PollResult[T]:
        loop = self.start(wait_name, fetch, is_terminal)
        try:
            return await loop.run()
        finally:
            if self._active.get(wait_name) is loop:
                del self._active[wait_name]

    def active(self, wait_name: str) -> Optional[PollLoop]:
        return self._active.get(wait_name)

    def cancel(self, wait_name: str) -> None:
        loop = self._active.pop(wait_name, None)
        if loop is not None:
            loop.cancel()

    def cancel_all(self) -> None:
        for wait_name in list(self._active):
            self.cancel(wait_name)
