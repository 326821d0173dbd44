# samples.py
"""
Pre-rendered percussion one-shots.

Both buffers are rendered once per PercussionVoice and replayed through a
BufferSourceNode for every hit, so a drum trigger costs no synthesis time on
the sequencer thread.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

# ===== PERCUSSION DEFAULTS (EDIT HERE) =====
KICK_DURATION_S = 0.3
KICK_FREQ_HZ = 67.0
KICK_PITCH_DECAY = 0.1     # frequency falls to 10% of KICK_FREQ_HZ
KICK_AMP_DECAY = 0.01      # amplitude falls to 1%
HIHAT_DURATION_S = 0.3
HIHAT_RELEASE_S = 0.05


# ===== UTILITIES =====
def _frames_for_duration(duration_s: float, sample_rate: int) -> int:
    if duration_s <= 0:
        return 0
    return int(math.floor(duration_s * sample_rate))


def _log_sweep(n: int, end_level: float) -> np.ndarray:
    """1 -> end_level, evenly spaced in log10; the endpoint itself is never reached."""
    return 10.0 ** (np.log10(end_level) * (np.arange(n) / max(n, 1)))


# ===== KICK =====
def render_kick(
    sample_rate: int,
    duration_s: float = KICK_DURATION_S,
    freq_hz: float = KICK_FREQ_HZ,
    pitch_decay: float = KICK_PITCH_DECAY,
) -> np.ndarray:
    """Sine with a logarithmic pitch drop and a logarithmic amplitude decay."""
    n = _frames_for_duration(duration_s, sample_rate)
    if n == 0:
        return np.zeros(0, dtype=np.float64)
    freq = freq_hz * _log_sweep(n, pitch_decay)
    amp = _log_sweep(n, KICK_AMP_DECAY)
    # phase accumulates before the first sample is written
    phase = np.cumsum(2.0 * math.pi * freq / sample_rate)
    return np.sin(phase) * amp


# ===== HI-HAT =====
def render_hihat(
    sample_rate: int,
    duration_s: float = HIHAT_DURATION_S,
    release_s: float = HIHAT_RELEASE_S,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """White noise with a linear fade over the last `release_s`; high-passed at play time."""
    n = _frames_for_duration(duration_s, sample_rate)
    if n == 0:
        return np.zeros(0, dtype=np.float64)
    rng = rng if rng is not None else np.random.default_rng()
    noise = rng.uniform(-1.0, 1.0, n)

    release = _frames_for_duration(release_s, sample_rate)
    if release > 0:
        i = np.arange(n)
        tail = i > n - release
        noise[tail] *= (n - i[tail]) / release
    return noise
