import logging

import numpy as np
import pytest

from hue_sequencer.chain import SignalChain
from hue_sequencer.config import Channel
from hue_sequencer.notes import Note
from hue_sequencer.samples import render_hihat, render_kick
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.voices import MelodyVoice, PercussionVoice, PluckVoice, _safe_disconnect

STEP_S = 0.25


@pytest.fixture
def engine():
    return AudioEngine()


@pytest.fixture
def chain(engine):
    return SignalChain(engine)


def _play(engine, voice, pitches, velocity=0.8):
    events = []
    for pitch in pitches:
        note = Note(pitch, velocity if pitch else 0.0)
        events += voice.trigger(note, engine.current_time, STEP_S)
        engine.render_seconds(STEP_S)
    return events


# ===== MELODY =====
def test_legato_sustains_repeated_pitch(engine, chain):
    melody = MelodyVoice(engine, chain)
    events = _play(engine, melody, [60, 60, 60, 0, 64])

    note_ons = [e for e in events if e.kind == "note_on"]
    assert [e.pitch for e in note_ons] == [60, 64]
    assert [e.kind for e in events].count("extend") == 2

    release_60 = next(e for e in events if e.kind == "release" and e.pitch == 60)
    onset_64 = next(e for e in note_ons if e.pitch == 64)
    assert release_60.time < onset_64.time


def test_legato_accumulates_duration(engine, chain):
    melody = MelodyVoice(engine, chain)
    _play(engine, melody, [62, 62, 62])
    assert melody.legato.current_pitch == 62
    assert melody.legato.current_duration == pytest.approx(3 * STEP_S)


def test_pitch_change_releases_before_new_note(engine, chain):
    melody = MelodyVoice(engine, chain)
    events = _play(engine, melody, [60, 67])
    assert [(e.kind, e.pitch) for e in events] == [("note_on", 60), ("release", 60), ("note_on", 67)]
    # the released note has ended and been detached by now
    assert melody.active_count == 1


def test_melody_is_audible(engine, chain):
    melody = MelodyVoice(engine, chain)
    melody.trigger(Note(69, 1.0), 0.0, STEP_S)
    assert np.abs(engine.render_seconds(0.2)).max() > 0.01


def test_melody_stop_force_releases(engine, chain):
    melody = MelodyVoice(engine, chain)
    _play(engine, melody, [60, 60])
    events = melody.stop(engine.current_time)
    assert [(e.kind, e.pitch) for e in events] == [("release", 60)]
    assert melody.active_count == 0
    assert melody.legato.handle is None and melody.legato.current_pitch == 0
    assert melody.stop(engine.current_time) == []


def test_same_pitch_after_stop_retriggers(engine, chain):
    melody = MelodyVoice(engine, chain)
    _play(engine, melody, [60])
    melody.stop(engine.current_time)
    events = _play(engine, melody, [60])
    assert [e.kind for e in events] == ["note_on"]


# ===== PLUCK =====
def test_pluck_voices_overlap_then_end(engine, chain):
    pluck = PluckVoice(engine, chain)
    a = pluck.trigger(Note(50, 1.0), 0.0, STEP_S)
    b = pluck.trigger(Note(55, 1.0), 0.0, STEP_S)
    assert [e.kind for e in a + b] == ["note_on", "note_on"]
    assert all(e.channel is Channel.PLUCK for e in a + b)
    assert pluck.active_count == 2

    out = engine.render_seconds(0.3)
    assert np.abs(out).max() > 0.01
    assert pluck.active_count == 0
    assert not chain.input._inputs


def test_pluck_rest_is_silent(engine, chain):
    pluck = PluckVoice(engine, chain)
    assert pluck.trigger(Note(50, 0.005), 0.0, STEP_S) == []
    assert pluck.trigger(Note(0, 1.0), 0.0, STEP_S) == []
    assert pluck.active_count == 0


# ===== PERCUSSION =====
@pytest.mark.parametrize("pitch,timbre", [(36, "low"), (42, "low"), (43, "high"), (48, "high")])
def test_percussion_timbre_split(pitch, timbre):
    assert PercussionVoice.timbre_for(pitch) == timbre


def test_percussion_trigger_reports_timbre(engine, chain):
    drums = PercussionVoice(engine, chain, rng=np.random.default_rng(0))
    low = drums.trigger(Note(42, 1.0), 0.0, STEP_S)
    high = drums.trigger(Note(43, 1.0), 0.0, STEP_S)
    assert [e.timbre for e in low + high] == ["low", "high"]
    assert drums.active_count == 2

    out = engine.render_seconds(0.3)
    assert np.abs(out).max() > 0.01
    assert drums.active_count == 0


def test_percussion_stop_tears_down(engine, chain):
    drums = PercussionVoice(engine, chain, rng=np.random.default_rng(0))
    drums.trigger(Note(40, 1.0), 0.0, STEP_S)
    events = drums.stop(0.0)
    assert [(e.kind, e.timbre) for e in events] == [("release", "low")]
    assert drums.active_count == 0
    assert not chain.input._inputs


def test_double_detach_is_logged_not_raised(engine, chain, caplog):
    g = engine.create_gain()
    with caplog.at_level(logging.WARNING):
        _safe_disconnect(g, chain.input)
    assert "already detached" in caplog.text


# ===== SAMPLES =====
def test_kick_buffer_shape():
    kick = render_kick(44_100)
    assert len(kick) == int(0.3 * 44_100)
    assert np.abs(kick).max() <= 1.0
    # amplitude decays toward 1%
    assert np.abs(kick[-500:]).max() < 0.02


def test_hihat_is_seeded_and_fades_out():
    a = render_hihat(44_100, rng=np.random.default_rng(7))
    b = render_hihat(44_100, rng=np.random.default_rng(7))
    assert np.array_equal(a, b)
    assert np.abs(a).max() <= 1.0
    assert abs(a[-1]) <= 1.0 / (0.05 * 44_100) + 1e-12


def test_stop_during_release_fade_reports_each_release_once(engine, chain):
    melody = MelodyVoice(engine, chain)
    melody.trigger(Note(60, 1.0), 0.0, STEP_S)
    engine.render_seconds(STEP_S)
    changed = melody.trigger(Note(67, 1.0), engine.current_time, STEP_S)
    assert melody.active_count == 2     # 60 is still fading out

    events = melody.stop(engine.current_time)
    released = [e.pitch for e in changed + events if e.kind == "release"]
    assert released == [60, 67]
    assert melody.active_count == 0
    assert not chain.input._inputs
