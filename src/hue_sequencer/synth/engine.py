# engine.py
"""
The audio engine: one sample clock, one node graph, one output.

Nodes are created through the engine's factory methods and wired with
connect(); rendering pulls from `destination` one 128-frame quantum at a time.
Everything that touches the graph (scheduling, connecting, rendering) holds
`engine.lock`, so a sequencer thread and the output callback can share it.

Without start() the engine is an offline renderer: call render(frames) to
advance the clock. start() opens a sounddevice output stream whose callback
does the rendering in real time.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from hue_sequencer.errors import PlaybackError
from hue_sequencer.synth.amplifiers import GainNode, WaveShaperNode
from hue_sequencer.synth.filters import DEFAULT_Q, BiquadFilterNode
from hue_sequencer.synth.nodes import DestinationNode
from hue_sequencer.synth.oscillators import FREQUENCY, BufferSourceNode, OscillatorNode, ScheduledSourceNode

_LOGGER = logging.getLogger("hue_sequencer.synth.engine")

SAMPLE_RATE = 44_100
RENDER_QUANTUM = 128
STREAM_QUANTA = 4          # quanta per output-callback block


@dataclass(frozen=True)
class RenderQuantum:
    index: int
    start_frame: int
    frames: int
    sample_rate: int
    times: np.ndarray = field(repr=False)

    @property
    def start_time(self) -> float:
        return self.start_frame / self.sample_rate

    @property
    def end_time(self) -> float:
        return (self.start_frame + self.frames) / self.sample_rate


def _load_sounddevice() -> Any:
    try:
        import sounddevice as sd  # type: ignore[import]
    except (ImportError, OSError) as exc:
        raise PlaybackError("Real-time playback requires sounddevice and a working PortAudio install") from exc
    return sd


class AudioEngine:
    def __init__(self, sample_rate: int = SAMPLE_RATE, *, quantum: int = RENDER_QUANTUM):
        if sample_rate <= 0 or quantum <= 0:
            raise ValueError("sample_rate and quantum must be positive")
        self.sample_rate = int(sample_rate)
        self.quantum = int(quantum)
        self.lock = threading.RLock()
        self.destination = DestinationNode(self)
        self._frame = 0
        self._quantum_index = 0
        self._ended: List[ScheduledSourceNode] = []
        self._stream: Any = None

    def __repr__(self):
        return f"AudioEngine(sample_rate={self.sample_rate}, time={self.current_time:.3f}s)"

    @property
    def current_time(self) -> float:
        return self._frame / self.sample_rate

    # ===== FACTORIES =====
    def create_gain(self, gain: float = 1.0) -> GainNode:
        return GainNode(self, gain)

    def create_oscillator(self, waveform: str = "sine", frequency: float = FREQUENCY) -> OscillatorNode:
        return OscillatorNode(self, waveform, frequency)

    def create_buffer_source(self, buffer: np.ndarray) -> BufferSourceNode:
        return BufferSourceNode(self, buffer)

    def create_biquad_filter(self, kind: str = "lowpass", frequency: float = 350.0, q: float = DEFAULT_Q) -> BiquadFilterNode:
        return BiquadFilterNode(self, kind, frequency, q)

    def create_wave_shaper(self, curve: Optional[np.ndarray] = None) -> WaveShaperNode:
        return WaveShaperNode(self, curve)

    # ===== SOURCE LIFECYCLE =====
    def _source_ended(self, node: ScheduledSourceNode) -> None:
        self._ended.append(node)

    def _dispatch_ended(self) -> None:
        ended, self._ended = self._ended, []
        for node in ended:
            if node.on_ended is None:
                continue
            try:
                node.on_ended(node)
            except Exception:
                _LOGGER.exception("on_ended callback failed for %r", node)

    # ===== RENDERING =====
    def render(self, frames: int) -> np.ndarray:
        """Render `frames` samples of the destination and advance the clock."""
        out = np.zeros(max(0, int(frames)), dtype=np.float32)
        pos = 0
        with self.lock:
            while pos < len(out):
                n = min(self.quantum, len(out) - pos)
                times = (self._frame + np.arange(n, dtype=np.float64)) / self.sample_rate
                quantum = RenderQuantum(self._quantum_index, self._frame, n, self.sample_rate, times)
                out[pos:pos + n] = self.destination.pull(quantum)
                self._frame += n
                self._quantum_index += 1
                self._dispatch_ended()
                pos += n
        return out

    def render_seconds(self, seconds: float) -> np.ndarray:
        return self.render(int(round(seconds * self.sample_rate)))

    # ===== REAL-TIME OUTPUT =====
    def start(self) -> None:
        if self._stream is not None:
            return
        sd = _load_sounddevice()

        def _callback(outdata, frames, time_info, status) -> None:
            if status:
                _LOGGER.warning("Output stream status: %s", status)
            outdata[:, 0] = self.render(frames)

        stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            blocksize=self.quantum * STREAM_QUANTA,
            callback=_callback,
        )
        stream.start()
        self._stream = stream
        _LOGGER.info("Audio output started at %d Hz", self.sample_rate)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
        _LOGGER.info("Audio output closed")
