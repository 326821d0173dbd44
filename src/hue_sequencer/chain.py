# chain.py
"""
The shared effects bus every voice plays into.

    input -> distortion -> wah (band-pass, LFO on its centre) -> tone (low-pass) -> master -> destination

Two independent inputs shape the chain:
- EffectSettings from the user (volume, distortion, wah, tone ceiling)
- VisualMetrics from the image (saturation opens the tone filter, brightness scales the master)

The chain keeps the latest of both and recomputes every derived target from
the pair, so applying the same settings twice lands on the same steady state
regardless of what was applied in between.
"""

from __future__ import annotations

import logging
from typing import Optional

from hue_sequencer.config import (
    BRIGHTNESS_FLOOR,
    PARAM_SMOOTHING_S,
    TONE_BASE_HZ,
    TONE_SATURATION_SPAN_HZ,
    WAH_BASE_HZ,
    WAH_LFO_HZ,
    WAH_MAX_SWEEP_HZ,
    WAH_Q,
    EffectSettings,
    VisualMetrics,
)
from hue_sequencer.synth.amplifiers import make_distortion_curve
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.synth.nodes import AudioNode

_LOGGER = logging.getLogger("hue_sequencer.chain")

TONE_Q = 1.0
INITIAL_METRICS = VisualMetrics(saturation=0.5, brightness=0.5)


# ===== DERIVED TARGETS =====
def master_level(settings: EffectSettings, metrics: VisualMetrics) -> float:
    return settings.volume * (BRIGHTNESS_FLOOR + (1.0 - BRIGHTNESS_FLOOR) * metrics.brightness)


def tone_cutoff(settings: EffectSettings, metrics: VisualMetrics) -> float:
    """Saturation opens the filter from 1 kHz to 20 kHz; tone_frequency caps it."""
    return min(settings.tone_frequency, TONE_BASE_HZ + metrics.saturation * TONE_SATURATION_SPAN_HZ)


def wah_sweep(settings: EffectSettings) -> float:
    return settings.wah_depth / 100.0 * WAH_MAX_SWEEP_HZ


def wah_q(settings: EffectSettings) -> float:
    return WAH_Q if settings.wah_depth > 0 else 0.0


class SignalChain:
    def __init__(
        self,
        engine: AudioEngine,
        settings: Optional[EffectSettings] = None,
        metrics: Optional[VisualMetrics] = None,
    ):
        self.engine = engine
        self._settings = settings if settings is not None else EffectSettings()
        self._metrics = metrics if metrics is not None else INITIAL_METRICS

        with engine.lock:
            self._distortion_amount = self._settings.distortion_amount
            self.input = engine.create_gain(1.0)
            self.distortion = engine.create_wave_shaper(make_distortion_curve(self._distortion_amount))
            self.wah = engine.create_biquad_filter("bandpass", WAH_BASE_HZ, wah_q(self._settings))
            self.wah_lfo = engine.create_oscillator("sine", WAH_LFO_HZ)
            self.wah_depth = engine.create_gain(wah_sweep(self._settings))
            self.tone = engine.create_biquad_filter("lowpass", tone_cutoff(self._settings, self._metrics), TONE_Q)
            self.master = engine.create_gain(master_level(self._settings, self._metrics))

            self.wah_lfo.connect(self.wah_depth)
            self.wah_depth.connect(self.wah.frequency)
            self.wah_lfo.start(engine.current_time)

            self.input.connect(self.distortion)
            self.distortion.connect(self.wah)
            self.wah.connect(self.tone)
            self.tone.connect(self.master)
            self.master.connect(engine.destination)

    def __repr__(self):
        return f"SignalChain(settings={self._settings!r}, metrics={self._metrics!r})"

    @property
    def settings(self) -> EffectSettings:
        return self._settings

    @property
    def metrics(self) -> VisualMetrics:
        return self._metrics

    def connect_source(self, node: AudioNode) -> AudioNode:
        """Attach any node (a voice, an ambience layer) to the input bus."""
        return node.connect(self.input)

    # ===== UPDATES =====
    def apply_settings(self, settings: EffectSettings) -> None:
        with self.engine.lock:
            now = self.engine.current_time
            self._settings = settings
            if settings.distortion_amount != self._distortion_amount:
                self.distortion.curve = make_distortion_curve(settings.distortion_amount)
                self._distortion_amount = settings.distortion_amount
            self.wah_depth.gain.set_target_at_time(wah_sweep(settings), now, PARAM_SMOOTHING_S)
            self.wah.q.set_target_at_time(wah_q(settings), now, PARAM_SMOOTHING_S)
            self._apply_shared(now)
        _LOGGER.debug("Applied %r", settings)

    def apply_visual_metrics(self, metrics: VisualMetrics) -> None:
        with self.engine.lock:
            self._metrics = metrics
            self._apply_shared(self.engine.current_time)
        _LOGGER.debug("Applied %r", metrics)

    def _apply_shared(self, now: float) -> None:
        self.master.gain.set_target_at_time(master_level(self._settings, self._metrics), now, PARAM_SMOOTHING_S)
        self.tone.frequency.set_target_at_time(tone_cutoff(self._settings, self._metrics), now, PARAM_SMOOTHING_S)

    def close(self) -> None:
        with self.engine.lock:
            self.wah_lfo.stop(self.engine.current_time)
            self.master.disconnect()
