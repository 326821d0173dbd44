# transport.py
"""
Tick sources for the sequencer.

A ticker calls one callback every `interval` seconds until cancelled. The
next tick is only armed once the current callback has returned, so ticks of
one ticker never overlap, and cancel() is safe from inside the callback.

ThreadTicker runs on threading.Timer against the monotonic clock and keeps a
running deadline, so a slow callback shortens the following wait instead of
pushing every later tick back. ManualTicker fires only when told to; given an
engine it renders one interval of audio before each tick, which is how tests
and offline runs move the engine clock forward.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from hue_sequencer.synth.engine import AudioEngine

_LOGGER = logging.getLogger("hue_sequencer.transport")

TickCallback = Callable[[], None]


class Ticker:
    def start(self, interval: float, callback: TickCallback) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        raise NotImplementedError


class ThreadTicker(Ticker):
    def __init__(self):
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._interval = 0.0
        self._callback: Optional[TickCallback] = None
        self._deadline = 0.0

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    def start(self, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("tick interval must be positive")
        with self._lock:
            self._cancel_locked()
            self._interval = interval
            self._callback = callback
            self._deadline = time.monotonic() + interval
            self._arm(self._generation)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        self._generation += 1
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _arm(self, generation: int) -> None:
        delay = max(0.0, self._deadline - time.monotonic())
        timer = threading.Timer(delay, self._fire, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            callback = self._callback
        callback()
        with self._lock:
            if generation != self._generation:
                return
            now = time.monotonic()
            self._deadline += self._interval
            if self._deadline < now - self._interval:
                _LOGGER.warning("Ticker fell behind by %.3fs; resyncing", now - self._deadline)
                self._deadline = now
            self._arm(generation)


class ManualTicker(Ticker):
    """Fires only on fire(); optionally advances `engine` by one interval first."""

    def __init__(self, engine: Optional[AudioEngine] = None):
        self.engine = engine
        self.interval = 0.0
        self.ticks = 0
        self._callback: Optional[TickCallback] = None

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def start(self, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("tick interval must be positive")
        self.interval = interval
        self._callback = callback

    def cancel(self) -> None:
        self._callback = None

    def fire(self) -> Optional[np.ndarray]:
        """Run one tick; returns the audio rendered before it (None without an engine)."""
        if self._callback is None:
            return None
        block = None
        if self.engine is not None:
            block = self.engine.render_seconds(self.interval)
        if self._callback is not None:
            self.ticks += 1
            self._callback()
        return block

    def run(self, max_ticks: int = 100_000) -> int:
        """Fire until cancelled; returns how many ticks ran."""
        fired = 0
        while self.is_running and fired < max_ticks:
            self.fire()
            fired += 1
        return fired
