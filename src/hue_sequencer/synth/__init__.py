"""Block-rendered synthesis graph: engine, sources, filters, amplifiers and parameter envelopes."""

from hue_sequencer.synth.amplifiers import GainNode, WaveShaperNode, make_distortion_curve
from hue_sequencer.synth.engine import SAMPLE_RATE, AudioEngine, RenderQuantum
from hue_sequencer.synth.envelopes import SILENCE, AudioParam
from hue_sequencer.synth.filters import BiquadFilterNode, biquad_coefficients
from hue_sequencer.synth.nodes import AudioNode
from hue_sequencer.synth.oscillators import BufferSourceNode, OscillatorNode

__all__ = [
    "SAMPLE_RATE",
    "SILENCE",
    "AudioEngine",
    "AudioNode",
    "AudioParam",
    "BiquadFilterNode",
    "BufferSourceNode",
    "GainNode",
    "OscillatorNode",
    "RenderQuantum",
    "WaveShaperNode",
    "biquad_coefficients",
    "make_distortion_curve",
]
