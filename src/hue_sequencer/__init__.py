"""Turn an image into three note streams and play them through a shared effects chain."""

from hue_sequencer.chain import SignalChain
from hue_sequencer.config import Channel, ChannelRange, EffectSettings, MusicStyle, VisualMetrics
from hue_sequencer.conversion import image_metrics, read_image_rgb
from hue_sequencer.errors import HueSequencerError, NotConnectedError, PlaybackError
from hue_sequencer.extractor import extract
from hue_sequencer.notes import ChannelNotes, Note
from hue_sequencer.presets import STYLE_PRESETS, StylePreset
from hue_sequencer.sequencer import PlaybackState, Sequencer, Trigger, advance, tick_interval_ms
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.transport import ManualTicker, ThreadTicker, Ticker
from hue_sequencer.voices import MelodyVoice, PercussionVoice, PluckVoice, VoiceEvent

__all__ = [
    "STYLE_PRESETS",
    "AudioEngine",
    "Channel",
    "ChannelNotes",
    "ChannelRange",
    "EffectSettings",
    "HueSequencerError",
    "ManualTicker",
    "MelodyVoice",
    "MusicStyle",
    "Note",
    "NotConnectedError",
    "PercussionVoice",
    "PlaybackError",
    "PlaybackState",
    "PluckVoice",
    "Sequencer",
    "SignalChain",
    "StylePreset",
    "ThreadTicker",
    "Ticker",
    "Trigger",
    "VisualMetrics",
    "VoiceEvent",
    "advance",
    "extract",
    "image_metrics",
    "read_image_rgb",
    "tick_interval_ms",
]
