# oscillators.py
"""
Scheduled sound sources: oscillators (sine, square, saw, triangle) and
one-shot sample buffers.

A source is silent until start(when), silent again from stop(when), and
reports itself to the engine once it has finished so `on_ended` can tear the
voice down.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Optional

import numpy as np

from hue_sequencer.errors import HueSequencerError
from hue_sequencer.synth.envelopes import AudioParam
from hue_sequencer.synth.nodes import AudioNode

FREQUENCY = 440.0   # Hz (A4 default)


# ===== WAVEFORMS (phase in cycles, any real value) =====
def sine_wave(phase: np.ndarray) -> np.ndarray:
    return np.sin(2.0 * math.pi * phase)


def square_wave(phase: np.ndarray) -> np.ndarray:
    return np.where((phase % 1.0) < 0.5, 1.0, -1.0)


def saw_wave(phase: np.ndarray) -> np.ndarray:
    return 2.0 * (phase % 1.0) - 1.0


def triangle_wave(phase: np.ndarray) -> np.ndarray:
    return 2.0 * np.abs(2.0 * (phase - np.floor(phase + 0.5))) - 1.0


WAVEFORMS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "sine": sine_wave,
    "square": square_wave,
    "sawtooth": saw_wave,
    "triangle": triangle_wave,
}


class ScheduledSourceNode(AudioNode):
    def __init__(self, engine):
        super().__init__(engine)
        self.on_ended: Optional[Callable[["ScheduledSourceNode"], None]] = None
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None
        self._ended = False

    @property
    def ended(self) -> bool:
        return self._ended

    def start(self, when: float = 0.0) -> None:
        with self.engine.lock:
            if self._start_time is not None:
                raise HueSequencerError(f"{type(self).__name__} can only be started once")
            self._start_time = max(float(when), 0.0)

    def stop(self, when: float = 0.0) -> None:
        """Schedule the end of playback; an earlier stop time wins."""
        with self.engine.lock:
            if self._start_time is None:
                raise HueSequencerError(f"{type(self).__name__} stopped before it was started")
            if self._ended:
                return
            when = max(float(when), self._start_time)
            self._stop_time = when if self._stop_time is None else min(self._stop_time, when)

    def _active_mask(self, quantum) -> np.ndarray:
        if self._start_time is None or self._ended:
            return np.zeros(quantum.frames, dtype=bool)
        mask = quantum.times >= self._start_time
        if self._stop_time is not None:
            mask &= quantum.times < self._stop_time
        return mask

    def _finish(self) -> None:
        self._ended = True
        self.engine._source_ended(self)

    def _check_stop(self, quantum) -> None:
        if not self._ended and self._stop_time is not None and quantum.end_time >= self._stop_time:
            self._finish()


class OscillatorNode(ScheduledSourceNode):
    def __init__(self, engine, waveform: str = "sine", frequency: float = FREQUENCY):
        super().__init__(engine)
        if waveform not in WAVEFORMS:
            raise ValueError(f"Unknown oscillator: {waveform!r} (valid: {list(WAVEFORMS)})")
        self.waveform = waveform
        self.frequency = AudioParam(engine, frequency, min_value=0.0, max_value=engine.sample_rate / 2.0)
        self._phase = 0.0

    def process(self, samples, quantum):
        out = np.zeros(quantum.frames, dtype=np.float64)
        mask = self._active_mask(quantum)
        if mask.any():
            increments = self.frequency.render(quantum)[mask] / self.engine.sample_rate
            phase = self._phase + np.cumsum(increments) - increments
            out[mask] = WAVEFORMS[self.waveform](phase)
            self._phase = float((phase[-1] + increments[-1]) % 1.0)
        self._check_stop(quantum)
        return out


class BufferSourceNode(ScheduledSourceNode):
    """Plays a pre-rendered mono buffer once."""

    def __init__(self, engine, buffer: np.ndarray):
        super().__init__(engine)
        self.buffer = np.asarray(buffer, dtype=np.float64).reshape(-1)
        self._position = 0

    def process(self, samples, quantum):
        out = np.zeros(quantum.frames, dtype=np.float64)
        mask = self._active_mask(quantum)
        count = int(mask.sum())
        if count:
            chunk = self.buffer[self._position:self._position + count]
            first = int(np.argmax(mask))
            out[first:first + len(chunk)] = chunk
            self._position += count
            if self._position >= len(self.buffer):
                self._finish()
                return out
        self._check_stop(quantum)
        return out
