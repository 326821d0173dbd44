# amplifiers.py
"""
Amplifier stages: a gain node driven by its envelope, and a wave shaper for
distortion.

Distortion curve:
- amount 0      -> identity (straight line, no coloration)
- amount 1..100 -> (3 + k) * x * 20deg / (pi + k|x|), monotonic and bounded
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from hue_sequencer.synth.envelopes import AudioParam
from hue_sequencer.synth.nodes import AudioNode

CURVE_SAMPLES = 44_100
DEGREE = math.pi / 180.0


def make_distortion_curve(amount: float, n_samples: int = CURVE_SAMPLES) -> np.ndarray:
    """Transfer curve sampled evenly over the input range [-1, 1]."""
    x = np.linspace(-1.0, 1.0, n_samples)
    if amount <= 0:
        return x
    k = float(amount)
    return (3.0 + k) * x * 20.0 * DEGREE / (math.pi + k * np.abs(x))


class GainNode(AudioNode):
    def __init__(self, engine, gain: float = 1.0):
        super().__init__(engine)
        self.gain = AudioParam(engine, gain)

    def process(self, samples, quantum):
        return samples * self.gain.render(quantum)


class WaveShaperNode(AudioNode):
    """Maps each input sample through `curve`; inputs outside [-1, 1] are clamped."""

    def __init__(self, engine, curve: Optional[np.ndarray] = None):
        super().__init__(engine)
        self._curve: Optional[np.ndarray] = None
        self._grid: Optional[np.ndarray] = None
        self.curve = curve

    @property
    def curve(self) -> Optional[np.ndarray]:
        return self._curve

    @curve.setter
    def curve(self, curve: Optional[np.ndarray]) -> None:
        with self.engine.lock:
            if curve is None:
                self._curve = self._grid = None
                return
            curve = np.asarray(curve, dtype=np.float64).reshape(-1)
            if curve.size < 2:
                raise ValueError("wave shaper curve needs at least two points")
            self._curve = curve
            self._grid = np.linspace(-1.0, 1.0, curve.size)

    def shape(self, samples: np.ndarray) -> np.ndarray:
        if self._curve is None:
            return np.asarray(samples, dtype=np.float64)
        return np.interp(np.clip(samples, -1.0, 1.0), self._grid, self._curve)

    def process(self, samples, quantum):
        return self.shape(samples)
