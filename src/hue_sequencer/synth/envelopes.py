# envelopes.py
"""
Parameter envelopes: automation timelines for node parameters.

Envelopes here are not baked into sample arrays up front. Each AudioParam
keeps a timeline of events on the engine clock and is evaluated one render
quantum at a time:

- set:     jump to `value` at `time`
- linear:  straight line from the previous event to `value` at `time`
- target:  exponential approach toward `value` from `time` on (time constant `tau`)

Events that have already elapsed are folded into an anchor (time, value,
optional target) so the pending list stays short.

Gain is evaluated per sample ("a-rate"); filter parameters read only the first
sample of each quantum ("k-rate").
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import numpy as np

if TYPE_CHECKING:
    from hue_sequencer.synth.engine import AudioEngine, RenderQuantum
    from hue_sequencer.synth.nodes import AudioNode

# ===== ENVELOPE DEFAULTS (EDIT HERE) =====
SILENCE = 0.0001           # release floor; never ramp gain to exactly zero
SETTLE_TIME_CONSTANTS = 20  # a target curve is treated as settled after this many tau


@dataclass(frozen=True)
class _Event:
    kind: str       # "set" | "linear" | "target"
    time: float
    value: float
    tau: float = 0.0


@dataclass(frozen=True)
class _Anchor:
    time: float
    value: float
    target: Optional[float] = None
    tau: float = 0.0


def _hold(t: np.ndarray, anchor: _Anchor) -> np.ndarray:
    if anchor.target is None:
        return np.full(t.shape, anchor.value, dtype=np.float64)
    if anchor.tau <= 0.0:
        return np.full(t.shape, anchor.target, dtype=np.float64)
    elapsed = np.maximum(t - anchor.time, 0.0)
    return anchor.target + (anchor.value - anchor.target) * np.exp(-elapsed / anchor.tau)


def _hold_scalar(t: float, anchor: _Anchor) -> float:
    return float(_hold(np.array([t], dtype=np.float64), anchor)[0])


def _step(anchor: _Anchor, event: _Event) -> _Anchor:
    """Anchor in effect once `event` has been reached."""
    if event.kind == "target":
        start = _hold_scalar(event.time, anchor)
        return _Anchor(event.time, start, event.value, event.tau)
    return _Anchor(event.time, event.value)


class AudioParam:
    """A node parameter driven by scheduled automation plus optional audio-rate inputs."""

    def __init__(
        self,
        engine: "AudioEngine",
        value: float,
        *,
        min_value: float = -math.inf,
        max_value: float = math.inf,
        k_rate: bool = False,
    ):
        self.engine = engine
        self.default_value = float(value)
        self.min_value = min_value
        self.max_value = max_value
        self.k_rate = k_rate
        self._anchor = _Anchor(0.0, float(value))
        self._events: List[_Event] = []
        self._inputs: List["AudioNode"] = []

    def __repr__(self):
        return f"AudioParam(value={self.value:.4g}, pending={len(self._events)})"

    # ----- scheduling -----
    def _insert(self, event: _Event) -> None:
        if event.time < self._anchor.time:
            event = _Event(event.kind, self._anchor.time, event.value, event.tau)
        times = [e.time for e in self._events]
        self._events.insert(bisect.bisect_right(times, event.time), event)

    def _event_before(self, when: float):
        prior = [e for e in self._events if e.time <= when]
        return prior[-1] if prior else None

    def set_value_at_time(self, value: float, when: float) -> "AudioParam":
        with self.engine.lock:
            self._insert(_Event("set", float(when), float(value)))
        return self

    def linear_ramp_to_value_at_time(self, value: float, end_time: float) -> "AudioParam":
        with self.engine.lock:
            prev = self._event_before(end_time)
            # A ramp following a target curve starts from wherever that curve is now.
            if (prev is None and self._anchor.target is not None) or (prev is not None and prev.kind == "target"):
                start = max(prev.time if prev is not None else self._anchor.time, self.engine.current_time)
                self._insert(_Event("set", start, self.value_at(start)))
            self._insert(_Event("linear", float(end_time), float(value)))
        return self

    def set_target_at_time(self, target: float, start_time: float, time_constant: float) -> "AudioParam":
        with self.engine.lock:
            self._insert(_Event("target", float(start_time), float(target), max(0.0, float(time_constant))))
        return self

    def cancel_scheduled_values(self, cancel_time: float) -> "AudioParam":
        with self.engine.lock:
            self._events = [e for e in self._events if e.time < cancel_time]
        return self

    # ----- evaluation -----
    def _curve(self, t: np.ndarray) -> np.ndarray:
        out = np.empty(t.shape, dtype=np.float64)
        anchor = self._anchor
        lo = 0
        for event in self._events:
            hi = max(lo, int(np.searchsorted(t, event.time, side="left")))
            if hi > lo:
                if event.kind == "linear":
                    span = event.time - anchor.time
                    if span <= 0.0:
                        out[lo:hi] = event.value
                    else:
                        frac = (t[lo:hi] - anchor.time) / span
                        out[lo:hi] = anchor.value + (event.value - anchor.value) * frac
                else:
                    out[lo:hi] = _hold(t[lo:hi], anchor)
            if hi == len(t):
                return out
            anchor = _step(anchor, event)
            lo = hi
        out[lo:] = _hold(t[lo:], anchor)
        return out

    def _commit(self, until: float) -> None:
        while self._events and self._events[0].time <= until:
            self._anchor = _step(self._anchor, self._events.pop(0))
        anchor = self._anchor
        if (
            anchor.target is not None
            and not self._events
            and until - anchor.time > SETTLE_TIME_CONSTANTS * anchor.tau
        ):
            self._anchor = _Anchor(until, anchor.target)

    def value_at(self, when: float) -> float:
        with self.engine.lock:
            value = float(self._curve(np.array([when], dtype=np.float64))[0])
        return min(self.max_value, max(self.min_value, value))

    @property
    def value(self) -> float:
        return self.value_at(self.engine.current_time)

    @value.setter
    def value(self, v: float) -> None:
        self.set_value_at_time(v, self.engine.current_time)

    @property
    def has_pending(self) -> bool:
        return bool(self._events)

    def render(self, quantum: "RenderQuantum") -> np.ndarray:
        """Values for one quantum (length 1 when k-rate)."""
        self._commit(quantum.start_time)
        times = quantum.times[:1] if self.k_rate else quantum.times
        if not self._events and self._anchor.target is None:
            values = np.full(times.shape, self._anchor.value, dtype=np.float64)
        else:
            values = self._curve(times)
        for node in list(self._inputs):
            modulation = node.pull(quantum)
            values = values + (modulation[:1] if self.k_rate else modulation)
        return np.clip(values, self.min_value, self.max_value)
