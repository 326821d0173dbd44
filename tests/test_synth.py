import logging
import math

import numpy as np
import pytest

from hue_sequencer.errors import HueSequencerError, NotConnectedError
from hue_sequencer.synth.amplifiers import CURVE_SAMPLES, make_distortion_curve
from hue_sequencer.synth.engine import AudioEngine
from hue_sequencer.synth.filters import BYPASS_Q, biquad_coefficients
from hue_sequencer.synth.oscillators import sine_wave, square_wave, saw_wave, triangle_wave

SR = 44_100


@pytest.fixture
def engine():
    return AudioEngine(SR)


# ===== WAVEFORMS =====
def test_waveform_shapes():
    phase = np.array([0.0, 0.25, 0.5, 0.75])
    assert np.allclose(sine_wave(phase), [0.0, 1.0, 0.0, -1.0], atol=1e-12)
    assert list(square_wave(np.array([0.1, 0.6]))) == [1.0, -1.0]
    assert np.allclose(saw_wave(phase), [-1.0, -0.5, 0.0, 0.5])
    assert np.allclose(triangle_wave(phase), [-1.0, 0.0, 1.0, 0.0])


# ===== SOURCES =====
def test_oscillator_sine_period(engine):
    osc = engine.create_oscillator("sine", 441.0)   # 100 samples per cycle
    osc.connect(engine.destination)
    osc.start(0.0)
    out = engine.render(400)
    assert out[0] == pytest.approx(0.0, abs=1e-6)
    assert out[25] == pytest.approx(1.0, abs=1e-4)
    assert out[75] == pytest.approx(-1.0, abs=1e-4)
    assert out[325] == pytest.approx(1.0, abs=1e-4)


def test_oscillator_start_stop_and_on_ended(engine):
    osc = engine.create_oscillator("square", 220.0)
    osc.connect(engine.destination)
    ended = []
    osc.on_ended = ended.append
    osc.start(0.01)
    osc.stop(0.02)

    out = engine.render(4410)
    assert not out[:441].any()
    assert out[441:882].any()
    assert not out[882:].any()
    assert ended == [osc]
    assert osc.ended


def test_source_cannot_start_twice(engine):
    osc = engine.create_oscillator()
    osc.start(0.0)
    with pytest.raises(HueSequencerError):
        osc.start(0.1)


def test_stop_before_start_raises(engine):
    with pytest.raises(HueSequencerError):
        engine.create_oscillator().stop(0.0)


def test_unknown_waveform(engine):
    with pytest.raises(ValueError):
        engine.create_oscillator("noise")


def test_buffer_source_plays_once(engine):
    src = engine.create_buffer_source(np.full(200, 0.5))
    src.connect(engine.destination)
    ended = []
    src.on_ended = ended.append
    src.start(0.0)
    out = engine.render(512)
    assert np.allclose(out[:200], 0.5)
    assert not out[200:].any()
    assert ended == [src]


def test_shared_node_renders_once_per_quantum(engine):
    osc = engine.create_oscillator("sine", 441.0)
    a = engine.create_gain(0.25)
    b = engine.create_gain(0.25)
    osc.connect(a)
    osc.connect(b)
    a.connect(engine.destination)
    b.connect(engine.destination)
    osc.start(0.0)
    out = engine.render(256)
    # both branches see the same phase: 0.25 + 0.25 at the crest
    assert out[25] == pytest.approx(0.5, abs=1e-4)
    assert out[225] == pytest.approx(0.5, abs=1e-4)


def test_destination_clips(engine):
    src = engine.create_buffer_source(np.full(10, 2.0))
    src.connect(engine.destination)
    src.start(0.0)
    assert engine.render(10).max() == pytest.approx(1.0)


# ===== CONNECTIONS =====
def test_connect_is_idempotent(engine):
    g = engine.create_gain()
    g.connect(engine.destination)
    g.connect(engine.destination)
    assert g.is_connected_to(engine.destination)
    assert len(engine.destination._inputs) == 1


def test_disconnect_unknown_destination_raises(engine):
    g = engine.create_gain()
    other = engine.create_gain()
    with pytest.raises(NotConnectedError):
        g.disconnect(other)


def test_disconnect_all_never_raises(engine):
    g = engine.create_gain()
    g.connect(engine.destination)
    g.disconnect()
    g.disconnect()
    assert not g.is_connected
    assert engine.destination._inputs == []


# ===== CLOCK & CALLBACKS =====
def test_render_advances_clock(engine):
    engine.render(SR // 2)
    assert engine.current_time == pytest.approx(0.5)
    assert engine.render(0).shape == (0,)


def test_failing_on_ended_is_logged_and_rendering_continues(engine, caplog):
    def boom(_node):
        raise RuntimeError("boom")

    src = engine.create_buffer_source(np.ones(64))
    src.connect(engine.destination)
    src.on_ended = boom
    src.start(0.0)
    with caplog.at_level(logging.ERROR):
        engine.render(512)
    assert "on_ended callback failed" in caplog.text
    assert src.ended
    assert engine.current_time == pytest.approx(512 / SR)


# ===== FILTERS =====
def test_lowpass_and_highpass_dc_gain():
    b, a = biquad_coefficients("lowpass", 1000.0, 0.707, SR)
    assert sum(b) / sum(a) == pytest.approx(1.0)
    b, a = biquad_coefficients("highpass", 1000.0, 0.707, SR)
    assert sum(b) / sum(a) == pytest.approx(0.0, abs=1e-12)


def test_bandpass_bypass_at_zero_q(engine):
    b, a = biquad_coefficients("bandpass", 1000.0, 0.0, SR)
    assert list(b) == [1.0, 0.0, 0.0] and list(a) == [1.0, 0.0, 0.0]

    signal = np.random.default_rng(1).uniform(-0.5, 0.5, 1024)
    src = engine.create_buffer_source(signal)
    bp = engine.create_biquad_filter("bandpass", 1000.0, q=BYPASS_Q / 2)
    src.connect(bp)
    bp.connect(engine.destination)
    src.start(0.0)
    assert np.allclose(engine.render(1024), signal, atol=1e-6)


def test_lowpass_attenuates_high_tone(engine):
    osc = engine.create_oscillator("sine", 10_000.0)
    lp = engine.create_biquad_filter("lowpass", 200.0)
    osc.connect(lp)
    lp.connect(engine.destination)
    osc.start(0.0)
    out = engine.render(SR // 10)
    assert np.abs(out[-1000:]).max() < 0.01


def test_unknown_filter_type(engine):
    with pytest.raises(ValueError):
        engine.create_biquad_filter("notch")


# ===== DISTORTION =====
def test_distortion_curve_identity_at_zero():
    curve = make_distortion_curve(0)
    assert len(curve) == CURVE_SAMPLES
    assert np.allclose(curve, np.linspace(-1.0, 1.0, CURVE_SAMPLES))


def test_identity_shaper_passes_input(engine):
    shaper = engine.create_wave_shaper(make_distortion_curve(0))
    x = np.linspace(-1.0, 1.0, 17)
    assert np.allclose(shaper.shape(x), x, atol=1e-9)


@pytest.mark.parametrize("amount", [1, 20, 50, 100])
def test_distortion_curve_monotonic_and_bounded(amount):
    curve = make_distortion_curve(amount)
    assert np.all(np.diff(curve) > 0)
    assert np.abs(curve).max() <= 1.0
    assert curve[-1] == pytest.approx((3 + amount) * 20 * math.pi / 180 / (math.pi + amount))


def test_shaper_curve_needs_two_points(engine):
    with pytest.raises(ValueError):
        engine.create_wave_shaper(np.array([0.5]))
