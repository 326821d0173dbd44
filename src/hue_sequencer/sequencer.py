# sequencer.py
"""
Transport: walks the three note sequences once, front to back.

What to play is decided by advance(), a pure function of the playback state
and the sequences. When to play is up to the Ticker. The Sequencer only glues
the two together and dispatches the resulting Triggers to the voices.

Per tick:
1. read the note at `index` in every channel
2. trigger melody, pluck, percussion, in that order
3. index += downsample_rate
4. index past the end -> stop (single pass, no looping)
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from hue_sequencer.chain import SignalChain
from hue_sequencer.config import MIN_BPM, STEPS_PER_BEAT, Channel, EffectSettings, VisualMetrics
from hue_sequencer.notes import ChannelNotes, Note
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.transport import ThreadTicker, Ticker
from hue_sequencer.voices import MelodyVoice, PercussionVoice, PluckVoice, Voice, VoiceEvent

_LOGGER = logging.getLogger("hue_sequencer.sequencer")

Listener = Callable[[VoiceEvent], None]


@dataclass(frozen=True)
class PlaybackState:
    index: int = 0
    is_playing: bool = True
    tempo_bpm: float = 120.0
    downsample_rate: int = 1


@dataclass(frozen=True)
class Trigger:
    channel: Channel
    note: Note
    effective_duration: float  # seconds


def clamp_bpm(bpm: float) -> float:
    try:
        bpm = float(bpm)
    except (TypeError, ValueError):
        return MIN_BPM
    if not math.isfinite(bpm) or bpm < MIN_BPM:
        return MIN_BPM
    return bpm


def clamp_downsample(downsample_rate: int) -> int:
    try:
        return max(1, int(downsample_rate))
    except (TypeError, ValueError, OverflowError):
        return 1


def tick_interval_ms(bpm: float) -> float:
    """One eighth note at `bpm`."""
    return (60.0 / bpm) * 1000.0 / STEPS_PER_BEAT


def advance(state: PlaybackState, sequences: ChannelNotes) -> Tuple[PlaybackState, List[Trigger]]:
    """One tick: the triggers at `state.index` and the state after stepping past them."""
    length = len(sequences)
    if not state.is_playing or state.index >= length:
        return PlaybackState(state.index, False, state.tempo_bpm, state.downsample_rate), []

    effective = tick_interval_ms(state.tempo_bpm) / 1000.0 * state.downsample_rate
    triggers = [Trigger(channel, notes[state.index], effective) for channel, notes in sequences.channels()]
    index = state.index + state.downsample_rate
    return PlaybackState(index, index < length, state.tempo_bpm, state.downsample_rate), triggers


class Sequencer:
    def __init__(
        self,
        engine: AudioEngine,
        chain: Optional[SignalChain] = None,
        ticker: Optional[Ticker] = None,
        listener: Optional[Listener] = None,
        rng=None,
    ):
        self.engine = engine
        self.chain = chain if chain is not None else SignalChain(engine)
        self.ticker = ticker if ticker is not None else ThreadTicker()
        self.listener = listener
        self.voices: Dict[Channel, Voice] = {
            Channel.MELODY: MelodyVoice(engine, self.chain),
            Channel.PLUCK: PluckVoice(engine, self.chain),
            Channel.PERCUSSION: PercussionVoice(engine, self.chain, rng=rng),
        }
        self._lock = threading.RLock()
        self._state: Optional[PlaybackState] = None
        self._sequences: Optional[ChannelNotes] = None
        self._session = 0

    @property
    def state(self) -> Optional[PlaybackState]:
        return self._state

    @property
    def is_playing(self) -> bool:
        state = self._state
        return state is not None and state.is_playing

    @property
    def active_voices(self) -> int:
        return sum(voice.active_count for voice in self.voices.values())

    # ===== TRANSPORT =====
    def play(self, sequences: ChannelNotes, bpm: float = 120.0, downsample_rate: int = 2) -> None:
        with self._lock:
            self.stop()
            if sequences.is_empty or len(sequences) == 0:
                _LOGGER.debug("Nothing to play")
                return
            if not sequences.is_aligned:
                _LOGGER.warning(
                    "Channel lengths differ (%s); not playing",
                    {channel.value: len(notes) for channel, notes in sequences.channels()},
                )
                return

            bpm = clamp_bpm(bpm)
            downsample_rate = clamp_downsample(downsample_rate)
            self._sequences = sequences
            self._state = PlaybackState(0, True, bpm, downsample_rate)
            self._session += 1
            session = self._session
            self.ticker.start(tick_interval_ms(bpm) / 1000.0, lambda: self._on_tick(session))
        _LOGGER.info("Playing %d steps at %.1f BPM, downsample %d", len(sequences), bpm, downsample_rate)

    def stop(self) -> None:
        with self._lock:
            self.ticker.cancel()
            self._session += 1
            was_playing = self._state is not None
            self._state = None
            self._sequences = None
            when = self.engine.current_time
            for voice in self.voices.values():
                self._emit(voice.stop(when))
        if was_playing:
            _LOGGER.info("Playback stopped")

    def _on_tick(self, session: int) -> None:
        with self._lock:
            if session != self._session or self._state is None or self._sequences is None:
                return
            try:
                state, triggers = advance(self._state, self._sequences)
                self._state = state
                when = self.engine.current_time
                for trigger in triggers:
                    # a listener may have stopped or restarted playback
                    if session != self._session:
                        return
                    voice = self.voices[trigger.channel]
                    self._emit(voice.trigger(trigger.note, when, trigger.effective_duration))
                if session == self._session and not state.is_playing:
                    self.stop()
            except Exception:
                _LOGGER.exception("Tick failed; stopping playback")
                self.stop()

    def _emit(self, events: List[VoiceEvent]) -> None:
        if self.listener is None:
            return
        for event in events:
            self.listener(event)

    # ===== LIVE CONTROLS =====
    def update_audio_settings(self, settings: EffectSettings) -> None:
        self.chain.apply_settings(settings)

    def update_visual_metrics(self, saturation: float, brightness: float) -> None:
        self.chain.apply_visual_metrics(VisualMetrics(saturation=saturation, brightness=brightness))
