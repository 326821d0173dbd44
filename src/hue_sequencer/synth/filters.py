# filters.py
"""
Biquad filters (low-pass, high-pass, band-pass) with state carried across
render quanta.

Coefficients follow the RBJ audio-EQ cookbook and are recomputed once per
quantum from the k-rate `frequency` and `q` parameters, so an LFO connected
to `frequency` sweeps the filter smoothly.

Band-pass uses the constant 0 dB peak form; as Q goes to zero it opens up to
a flat response, and at or below BYPASS_Q it is an exact pass-through.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from scipy.signal import lfilter  # type: ignore[import]

from hue_sequencer.synth.envelopes import AudioParam
from hue_sequencer.synth.nodes import AudioNode

Coefficients = Tuple[np.ndarray, np.ndarray]

MIN_CUTOFF_HZ = 10.0
MAX_CUTOFF_RATIO = 0.49      # of the sample rate
BYPASS_Q = 1e-3
DEFAULT_Q = 1.0 / math.sqrt(2.0)

FILTER_TYPES = ("lowpass", "highpass", "bandpass")
_PASS_THROUGH: Coefficients = (np.array([1.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]))


def biquad_coefficients(kind: str, cutoff_hz: float, q: float, sample_rate: int) -> Coefficients:
    """Normalized (b, a) for one biquad section."""
    if kind == "bandpass" and q <= BYPASS_Q:
        return _PASS_THROUGH
    cutoff = min(max(cutoff_hz, MIN_CUTOFF_HZ), sample_rate * MAX_CUTOFF_RATIO)
    q = max(q, BYPASS_Q)
    w0 = 2.0 * math.pi * cutoff / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)

    if kind == "lowpass":
        b = [(1.0 - cos_w0) / 2.0, 1.0 - cos_w0, (1.0 - cos_w0) / 2.0]
    elif kind == "highpass":
        b = [(1.0 + cos_w0) / 2.0, -(1.0 + cos_w0), (1.0 + cos_w0) / 2.0]
    elif kind == "bandpass":
        b = [alpha, 0.0, -alpha]
    else:
        raise ValueError(f"Unknown filter type: {kind!r} (valid: {list(FILTER_TYPES)})")
    a0 = 1.0 + alpha
    a = [a0, -2.0 * cos_w0, 1.0 - alpha]
    return np.array(b) / a0, np.array(a) / a0


class BiquadFilterNode(AudioNode):
    def __init__(self, engine, kind: str = "lowpass", frequency: float = 350.0, q: float = DEFAULT_Q):
        super().__init__(engine)
        if kind not in FILTER_TYPES:
            raise ValueError(f"Unknown filter type: {kind!r} (valid: {list(FILTER_TYPES)})")
        self.kind = kind
        self.frequency = AudioParam(engine, frequency, min_value=0.0, k_rate=True)
        self.q = AudioParam(engine, q, min_value=0.0, k_rate=True)
        self._zi = np.zeros(2, dtype=np.float64)

    def coefficients(self, quantum) -> Coefficients:
        cutoff = float(self.frequency.render(quantum)[0])
        q = float(self.q.render(quantum)[0])
        return biquad_coefficients(self.kind, cutoff, q, self.engine.sample_rate)

    def process(self, samples, quantum):
        b, a = self.coefficients(quantum)
        out, self._zi = lfilter(b, a, samples, zi=self._zi)
        return out
