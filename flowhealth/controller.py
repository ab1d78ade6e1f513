"""Retry/poll controller driving an extractor until it finds enough data.

One state machine, two event sources: timer expiry and navigation resets.

    IDLE --start()--> ATTEMPTING --signal found--> SUCCEEDED
                          |  ^ +--30 misses-----> EXHAUSTED
                          |  |
                          reset() (from any state)

The first attempt runs as soon as start() is called. Every miss schedules
the next attempt after a delay that starts at 0.5s and grows by 1.5x up to
3s. There is never more than one scheduled attempt: reset() cancels the
pending timer and bumps a generation token, so a timer that fires anyway
after being superseded does nothing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from flowhealth.config import PollConfig
from flowhealth.metrics import MetricSet

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class PollOutcome(str, Enum):
    SUCCESS = "success"
    NO_DATA = "no_data"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    attempts: int
    metric_set: MetricSet | None = None


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's call_later signature."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class PollController:
    def __init__(
        self,
        extract: Callable[[], MetricSet],
        on_outcome: Callable[[PollResult], None] | None = None,
        scheduler: Scheduler | None = None,
        config: PollConfig | None = None,
        name: str = "poll",
    ):
        self._extract = extract
        self._on_outcome = on_outcome
        self._scheduler = scheduler
        self.config = config or PollConfig()
        self.name = name

        self.state = PollState.IDLE
        self.attempts = 0
        self._delay = self.config.initial_delay_seconds
        self._generation = 0
        self._pending: TimerHandle | None = None

    @property
    def has_pending_attempt(self) -> bool:
        return self._pending is not None

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def start(self) -> None:
        """Leave IDLE and run the first attempt immediately."""
        if self.state is not PollState.IDLE:
            logger.debug("%s: start() ignored in state %s", self.name, self.state.value)
            return
        self.state = PollState.ATTEMPTING
        self._run_attempt()

    def reset(self) -> None:
        """Restart the sequence after a client-side navigation."""
        self._cancel_pending()
        self._generation += 1
        self.attempts = 0
        self._delay = self.config.initial_delay_seconds
        self.state = PollState.ATTEMPTING
        logger.info("%s: navigation detected, re-extracting in %.1fs", self.name, self.config.settle_delay_seconds)
        self._schedule(self.config.settle_delay_seconds)

    def stop(self) -> None:
        self._cancel_pending()
        self._generation += 1
        self.state = PollState.IDLE

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule(self, delay: float) -> None:
        self._cancel_pending()
        generation = self._generation
        self._pending = self._get_scheduler().call_later(delay, lambda: self._on_timer(generation))

    def _on_timer(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("%s: dropping superseded attempt (generation %d)", self.name, generation)
            return
        self._pending = None
        if self.state is not PollState.ATTEMPTING:
            return
        self._run_attempt()

    def _run_attempt(self) -> None:
        self.attempts += 1
        try:
            metric_set = self._extract()
        except Exception:
            logger.exception("%s: extraction attempt %d raised", self.name, self.attempts)
            metric_set = None

        if metric_set is not None and metric_set.has_signal:
            self.state = PollState.SUCCEEDED
            logger.info("%s: metrics found on attempt %d", self.name, self.attempts)
            self._emit(PollResult(PollOutcome.SUCCESS, self.attempts, metric_set))
            return

        if self.attempts >= self.config.max_attempts:
            self.state = PollState.EXHAUSTED
            logger.warning("%s: could not extract metrics after %d attempts", self.name, self.attempts)
            self._emit(PollResult(PollOutcome.NO_DATA, self.attempts, metric_set))
            return

        delay = self._delay
        self._delay = self.config.next_delay(self._delay)
        logger.debug("%s: attempt %d found nothing, retrying in %.3fs", self.name, self.attempts, delay)
        self._schedule(delay)

    def _emit(self, result: PollResult) -> None:
        if self._on_outcome is None:
            return
        try:
            self._on_outcome(result)
        except Exception:
            logger.exception("%s: outcome handler failed", self.name)
