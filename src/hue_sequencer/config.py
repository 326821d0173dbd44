# config.py
"""
Musical constants and runtime settings.

Constants in the EDIT HERE blocks are the tuning knobs; EffectSettings and
VisualMetrics are what callers hand to the signal chain at run time. Both
models clamp out-of-range input instead of rejecting it, so a slider that
overshoots or a NaN from upstream never stops playback.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, field_validator

# ===== EXTRACTION (EDIT HERE) =====
DEFAULT_STEPS = 128            # notes per channel
PEAK_THRESHOLD = 70            # channel intensity must be strictly above this
REST_VELOCITY = 0.01           # quieter notes count as rests

# ===== TRANSPORT (EDIT HERE) =====
MIN_BPM = 1.0
STEPS_PER_BEAT = 2             # eighth-note grid

# ===== SIGNAL CHAIN (EDIT HERE) =====
WAH_BASE_HZ = 1000.0
WAH_Q = 5.0
WAH_LFO_HZ = 2.5
WAH_MAX_SWEEP_HZ = 2000.0      # LFO depth at wah_depth == 100
TONE_BASE_HZ = 1000.0
TONE_SATURATION_SPAN_HZ = 19000.0
BRIGHTNESS_FLOOR = 0.1         # master gain never drops below 10% of volume
PARAM_SMOOTHING_S = 0.1        # time constant for every chain update


class MusicStyle(str, Enum):
    CALM = "calm"
    ENERGETIC = "energetic"
    MELANCHOLIC = "melancholic"
    LOFI = "lofi"


class Channel(str, Enum):
    MELODY = "melody"          # red plane
    PLUCK = "pluck"            # green plane
    PERCUSSION = "percussion"  # blue plane


@dataclass(frozen=True)
class ChannelRange:
    min_pitch: int
    max_pitch: int

    @property
    def span(self) -> int:
        return self.max_pitch - self.min_pitch


# MIDI note ranges, in R, G, B order
CHANNEL_RANGES: Dict[Channel, ChannelRange] = {
    Channel.MELODY: ChannelRange(60, 72),
    Channel.PLUCK: ChannelRange(48, 60),
    Channel.PERCUSSION: ChannelRange(48, 60),
}
PERCUSSION_SPLIT = 42          # pitch <= split -> kick, above -> hi-hat


def _clamp(value: Any, lo: float, hi: float, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(v):
        return default
    return min(hi, max(lo, v))


class EffectSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    volume: float = 0.7
    distortion_amount: float = 0.0
    wah_depth: float = 0.0
    tone_frequency: float = 20000.0
    vinyl_noise: bool = False
    rain_noise: bool = False
    style: MusicStyle = MusicStyle.CALM

    @field_validator("volume", mode="before")
    @classmethod
    def _clamp_volume(cls, value: Any) -> float:
        return _clamp(value, 0.0, 1.0, 0.7)

    @field_validator("distortion_amount", mode="before")
    @classmethod
    def _clamp_distortion(cls, value: Any) -> float:
        return _clamp(value, 0.0, 100.0, 0.0)

    @field_validator("wah_depth", mode="before")
    @classmethod
    def _clamp_wah(cls, value: Any) -> float:
        return _clamp(value, 0.0, 100.0, 0.0)

    @field_validator("tone_frequency", mode="before")
    @classmethod
    def _clamp_tone(cls, value: Any) -> float:
        return _clamp(value, 20.0, 20000.0, 20000.0)


class VisualMetrics(BaseModel):
    """Overall image mood: mean HSV saturation and brightness of non-black pixels."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    saturation: float = 0.0
    brightness: float = 0.0

    @field_validator("saturation", "brightness", mode="before")
    @classmethod
    def _clamp_unit(cls, value: Any) -> float:
        return _clamp(value, 0.0, 1.0, 0.0)
