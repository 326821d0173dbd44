# voices.py
"""
The three instruments, one per colour channel.

- MelodyVoice (R): sawtooth, legato. A repeated pitch keeps sounding, a rest
  or a new pitch releases it first.
- PluckVoice (G): square, one short envelope per note, overlapping freely.
- PercussionVoice (B): pre-rendered kick or hi-hat picked by pitch.

Every voice builds a fresh source -> gain pair per note, plugs the gain into
the chain input and tears both down once the source has ended. trigger() and
stop() return VoiceEvents describing what was scheduled, which is all the
sequencer and the tests need to know about a voice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from hue_sequencer.chain import SignalChain
from hue_sequencer.config import PERCUSSION_SPLIT, Channel
from hue_sequencer.errors import NotConnectedError
from hue_sequencer.notes import Note, midi_to_freq
from hue_sequencer.samples import render_hihat, render_kick
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.synth.envelopes import SILENCE
from hue_sequencer.synth.nodes import AudioNode
from hue_sequencer.synth.oscillators import ScheduledSourceNode

_LOGGER = logging.getLogger("hue_sequencer.voices")

# ===== ENVELOPES (EDIT HERE) =====
ATTACK_FLOOR = 0.001           # every envelope starts here, never at zero
TONE_LEVEL = 0.3               # melody/pluck peak gain at velocity 1

MELODY_WAVEFORM = "sawtooth"
MELODY_ATTACK_S = 0.05
MELODY_RELEASE_S = 0.05

PLUCK_WAVEFORM = "square"
PLUCK_ATTACK_S = 0.02
PLUCK_DECAY_S = 0.15
PLUCK_STOP_S = 0.2

KICK_LEVEL = 0.6
HIHAT_LEVEL = 0.2
HIHAT_HIGHPASS_HZ = 6000.0
DRUM_ATTACK_S = 0.005
DRUM_DECAY_S = 0.2
DRUM_STOP_S = 0.25


@dataclass(frozen=True)
class VoiceEvent:
    kind: str                  # "note_on" | "extend" | "release"
    channel: Channel
    pitch: int
    time: float
    timbre: Optional[str] = None


@dataclass(eq=False)
class Sounding:
    """One playing note: its source, its envelope gain and anything in between."""

    source: ScheduledSourceNode
    gain: AudioNode
    pitch: int
    nodes: List[AudioNode] = field(default_factory=list)
    timbre: Optional[str] = None
    released: bool = False
    torn_down: bool = False


@dataclass
class LegatoState:
    current_pitch: int = 0
    current_duration: float = 0.0
    handle: Optional[Sounding] = None


class Voice:
    channel: Channel

    def __init__(self, engine: AudioEngine, chain: SignalChain):
        self.engine = engine
        self.chain = chain
        self._active: List[Sounding] = []

    @property
    def active_count(self) -> int:
        return len(self._active)

    def trigger(self, note: Note, when: float, step_duration: float) -> List[VoiceEvent]:
        raise NotImplementedError

    def stop(self, when: float) -> List[VoiceEvent]:
        """Silence and detach everything sounding. Notes already fading out are not reported again."""
        with self.engine.lock:
            events = [self._event("release", s.pitch, when, s.timbre) for s in self._active if not s.released]
            for sounding in list(self._active):
                self._cut(sounding, when)
        return events

    # ----- plumbing -----
    def _event(self, kind: str, pitch: int, when: float, timbre: Optional[str] = None) -> VoiceEvent:
        return VoiceEvent(kind, self.channel, pitch, when, timbre)

    def _open(self, source: ScheduledSourceNode, pitch: int, when: float,
              chain_in: Optional[AudioNode] = None, timbre: Optional[str] = None) -> Sounding:
        """Wire source -> [chain_in] -> gain -> chain input and start the source at `when`."""
        gain = self.engine.create_gain(ATTACK_FLOOR)
        gain.gain.set_value_at_time(ATTACK_FLOOR, when)
        nodes: List[AudioNode] = [source]
        if chain_in is not None:
            source.connect(chain_in)
            chain_in.connect(gain)
            nodes.append(chain_in)
        else:
            source.connect(gain)
        self.chain.connect_source(gain)

        sounding = Sounding(source, gain, pitch, nodes, timbre)
        source.on_ended = lambda _node: self._teardown(sounding)
        source.start(when)
        self._active.append(sounding)
        return sounding

    def _cut(self, sounding: Sounding, when: float) -> None:
        param = sounding.gain.gain
        param.cancel_scheduled_values(when)
        param.set_value_at_time(SILENCE, when)
        sounding.source.stop(when)
        self._teardown(sounding)

    def _teardown(self, sounding: Sounding) -> None:
        with self.engine.lock:
            if sounding.torn_down:
                return
            sounding.torn_down = True
            if sounding in self._active:
                self._active.remove(sounding)
            for node in sounding.nodes:
                node.disconnect()
            _safe_disconnect(sounding.gain, self.chain.input)


def _safe_disconnect(node: AudioNode, destination: AudioNode) -> None:
    try:
        node.disconnect(destination)
    except NotConnectedError:
        _LOGGER.warning("%s was already detached from %s", type(node).__name__, type(destination).__name__)


class MelodyVoice(Voice):
    channel = Channel.MELODY

    def __init__(self, engine: AudioEngine, chain: SignalChain):
        super().__init__(engine, chain)
        self.legato = LegatoState()

    def trigger(self, note: Note, when: float, step_duration: float) -> List[VoiceEvent]:
        with self.engine.lock:
            state = self.legato
            if not note.is_rest and note.pitch == state.current_pitch and state.handle is not None:
                state.current_duration += step_duration
                return [self._event("extend", note.pitch, when)]

            events = []
            if state.handle is not None:
                events.append(self._release(state.handle, when))
            self.legato = LegatoState()
            if note.is_rest:
                return events

            osc = self.engine.create_oscillator(MELODY_WAVEFORM, midi_to_freq(note.pitch))
            sounding = self._open(osc, note.pitch, when)
            sounding.gain.gain.linear_ramp_to_value_at_time(TONE_LEVEL * note.velocity, when + MELODY_ATTACK_S)
            self.legato = LegatoState(note.pitch, step_duration, sounding)
            events.append(self._event("note_on", note.pitch, when))
            return events

    def _release(self, sounding: Sounding, when: float) -> VoiceEvent:
        """Fade to SILENCE over MELODY_RELEASE_S from the current level, then end the source."""
        param = sounding.gain.gain
        level = param.value_at(when)
        param.cancel_scheduled_values(when)
        param.set_value_at_time(level, when)
        param.linear_ramp_to_value_at_time(SILENCE, when + MELODY_RELEASE_S)
        sounding.source.stop(when + MELODY_RELEASE_S)
        sounding.released = True
        return self._event("release", sounding.pitch, when)

    def stop(self, when: float) -> List[VoiceEvent]:
        with self.engine.lock:
            events = super().stop(when)
            self.legato = LegatoState()
        return events


class PluckVoice(Voice):
    channel = Channel.PLUCK

    def trigger(self, note: Note, when: float, step_duration: float) -> List[VoiceEvent]:
        if note.is_rest:
            return []
        with self.engine.lock:
            osc = self.engine.create_oscillator(PLUCK_WAVEFORM, midi_to_freq(note.pitch))
            sounding = self._open(osc, note.pitch, when)
            param = sounding.gain.gain
            param.linear_ramp_to_value_at_time(TONE_LEVEL * note.velocity, when + PLUCK_ATTACK_S)
            param.linear_ramp_to_value_at_time(SILENCE, when + PLUCK_DECAY_S)
            osc.stop(when + PLUCK_STOP_S)
        return [self._event("note_on", note.pitch, when)]


class PercussionVoice(Voice):
    channel = Channel.PERCUSSION

    def __init__(self, engine: AudioEngine, chain: SignalChain, rng=None):
        super().__init__(engine, chain)
        self.kick = render_kick(engine.sample_rate)
        self.hihat = render_hihat(engine.sample_rate, rng=rng)

    @staticmethod
    def timbre_for(pitch: int) -> str:
        return "low" if pitch <= PERCUSSION_SPLIT else "high"

    def trigger(self, note: Note, when: float, step_duration: float) -> List[VoiceEvent]:
        if note.is_rest:
            return []
        timbre = self.timbre_for(note.pitch)
        with self.engine.lock:
            if timbre == "low":
                source = self.engine.create_buffer_source(self.kick)
                level, highpass = KICK_LEVEL * note.velocity, None
            else:
                source = self.engine.create_buffer_source(self.hihat)
                level = HIHAT_LEVEL * note.velocity
                highpass = self.engine.create_biquad_filter("highpass", HIHAT_HIGHPASS_HZ)
            sounding = self._open(source, note.pitch, when, chain_in=highpass, timbre=timbre)
            param = sounding.gain.gain
            param.linear_ramp_to_value_at_time(level, when + DRUM_ATTACK_S)
            param.linear_ramp_to_value_at_time(SILENCE, when + DRUM_DECAY_S)
            source.stop(when + DRUM_STOP_S)
        return [self._event("note_on", note.pitch, when, timbre)]
