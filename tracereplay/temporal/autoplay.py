"""
Auto-play
=========

Timed playback as a self-rescheduling deferred call on the event loop.

CONCURRENCY MODEL:
- Single-threaded and cooperative: every tick runs on the loop thread
- At most one timer is pending at any time
- A tick re-checks is_playing before acting and before rescheduling,
  so pause() is honored on the next tick even if cancellation raced
- Cancellation is "clear the pending timer"; a step in progress is
  never interrupted
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Optional

from ..contracts.base import ErrorCode
from .cursor import NavigationResult

logger = logging.getLogger(__name__)

# Advance callback: (reverse, stepwise) -> result of one navigation call.
Advance = Callable[[bool, bool], NavigationResult]

DEFAULT_SPEED_MS = 800
DEFAULT_INITIAL_DELAY_MS = 500


class Scheduler:
    """
    Deferred-call interface.

    call_later returns a handle exposing cancel(). Implementations can
    use an event loop or a manual clock.
    """

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> Any:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    """Schedules on the given loop, or on the running loop at call time."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_seconds, callback)


class AutoPlayer:
    """
    Drives repeated navigation calls at a fixed pace.

    Direction (reverse) and granularity (stepwise) select which of the
    four navigation calls the advance callback performs. Reaching a
    boundary pauses playback.
    """

    def __init__(
        self,
        advance: Advance,
        scheduler: Optional[Scheduler] = None,
        speed_ms: int = DEFAULT_SPEED_MS,
        initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
        stepwise: bool = False,
        on_change: Optional[Callable[[], None]] = None
    ):
        if speed_ms <= 0:
            raise ValueError("speed_ms must be positive")
        self._advance = advance
        self._scheduler = scheduler or AsyncioScheduler()
        self._speed_ms = speed_ms
        self._initial_delay_ms = initial_delay_ms
        self._stepwise = stepwise
        self._reverse = False
        self._is_playing = False
        self._timer: Optional[Any] = None
        self._on_change = on_change

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def reverse(self) -> bool:
        return self._reverse

    @property
    def stepwise(self) -> bool:
        return self._stepwise

    @property
    def speed_ms(self) -> int:
        return self._speed_ms

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    # =========================================================================
    # CONTROL
    # =========================================================================

    def play(self, reverse: Optional[bool] = None) -> None:
        """Start playback; the first tick fires after the initial delay."""
        if reverse is not None and reverse != self._reverse:
            self.pause()
            self._reverse = reverse
        if self._is_playing:
            return
        self._is_playing = True
        self._schedule(self._initial_delay_ms)
        self._notify()

    def pause(self) -> None:
        was_playing = self._is_playing
        self._is_playing = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if was_playing:
            self._notify()

    def set_speed(self, speed_ms: int) -> None:
        """Takes effect when the next tick is scheduled."""
        if speed_ms <= 0:
            raise ValueError("speed_ms must be positive")
        self._speed_ms = speed_ms

    def set_stepwise(self, stepwise: bool) -> None:
        self._restart_with(stepwise=stepwise)

    def set_reverse(self, reverse: bool) -> None:
        self._restart_with(reverse=reverse)

    def reset(self) -> None:
        self.pause()
        self._reverse = False

    # =========================================================================
    # TIMER LOOP
    # =========================================================================

    def _tick(self) -> None:
        self._timer = None
        if not self._is_playing:
            return
        try:
            result = self._advance(self._reverse, self._stepwise)
        except Exception:
            logger.exception("Auto-play step failed, pausing")
            self.pause()
            raise
        reentrant = result.error is not None and result.error.code is ErrorCode.REENTRANT_CALL
        if result.at_boundary or (not result.success and not reentrant):
            logger.debug("Auto-play reached boundary at step %d", result.step_count)
            self.pause()
            return
        if self._is_playing and self._timer is None:
            self._schedule(self._speed_ms)

    def _schedule(self, delay_ms: int) -> None:
        self._timer = self._scheduler.call_later(delay_ms / 1000.0, self._tick)

    def _restart_with(self, **changes: bool) -> None:
        was_playing = self._is_playing
        self.pause()
        if 'stepwise' in changes:
            self._stepwise = changes['stepwise']
        if 'reverse' in changes:
            self._reverse = changes['reverse']
        if was_playing:
            self.play()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
