import numpy as np
import pytest

from drum_trainer.analyzer import FrameAnalyzer, make_frame
from drum_trainer.audio import hihat, kick, snare
from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import AudioFrame, Instrument
from drum_trainer.onset import OnsetDetector
from drum_trainer.profiles import detect_instrument

SR = 44100
N = 2048


@pytest.fixture
def analyzer():
    return FrameAnalyzer(TrainerConfig())


def test_silence(analyzer):
    m = analyzer.analyze(AudioFrame(np.zeros(N), np.zeros(N // 2), SR))
    assert m.rms == 0.0
    assert m.high_freq_ratio == 0.0 and m.mid_freq_ratio == 0.0
    assert m.dominant_frequency_hz == 0.0


def test_rms_of_constant_signal(analyzer):
    m = analyzer.analyze(AudioFrame(np.full(N, -0.5), np.zeros(N // 2), SR))
    assert m.rms == pytest.approx(0.5)


def test_dominant_bin_and_first_max_wins(analyzer):
    spectrum = np.zeros(N // 2)
    spectrum[100] = 1.0
    spectrum[300] = 1.0
    m = analyzer.analyze(AudioFrame(np.zeros(N), spectrum, SR))
    assert m.dominant_frequency_hz == pytest.approx(100 * SR / N)


def test_band_ratios(analyzer):
    bin_hz = SR / N
    spectrum = np.zeros(N // 2)
    spectrum[int(6000 / bin_hz)] = 3.0   # high band
    spectrum[int(2000 / bin_hz)] = 1.0   # mid band
    spectrum[int(200 / bin_hz)] = 4.0    # neither
    m = analyzer.analyze(AudioFrame(np.zeros(N), spectrum, SR))
    assert m.high_freq_ratio == pytest.approx(0.375)
    assert m.mid_freq_ratio == pytest.approx(0.125)


def test_custom_bands():
    analyzer = FrameAnalyzer(TrainerConfig(high_band=(8000.0, 12000.0)))
    spectrum = np.zeros(N // 2)
    spectrum[int(6000 / (SR / N))] = 1.0
    m = analyzer.analyze(AudioFrame(np.zeros(N), spectrum, SR))
    assert m.high_freq_ratio == 0.0


def test_make_frame_pads_and_trims():
    short = make_frame(np.ones(100), SR, N)
    assert short.samples.shape == (N,)
    assert short.spectrum.shape == (N // 2,)
    assert short.samples[:N - 100].sum() == 0

    long = make_frame(np.arange(3 * N, dtype=float), SR, N)
    assert long.samples[-1] == 3 * N - 1
    assert long.samples[0] == 2 * N


def test_sine_dominant_frequency(analyzer):
    bin_hz = SR / N
    f = 50 * bin_hz
    t = np.arange(N) / SR
    m = analyzer.analyze(make_frame(0.5 * np.sin(2 * np.pi * f * t), SR, N))
    assert m.dominant_frequency_hz == pytest.approx(f)
    assert m.rms == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)


@pytest.mark.parametrize("sound, expected", [
    (kick(), Instrument.KICK),
    (snare(), Instrument.SNARE),
    (hihat(), Instrument.HIHAT),
    (hihat(open_=True), Instrument.OPENHAT),
])
def test_synthetic_drums_are_recognised(sound, expected):
    config = TrainerConfig()
    frame = make_frame(sound[:N], SR, N)
    hit = OnsetDetector(config).push(FrameAnalyzer(config).analyze(frame), 1.0)
    assert hit is not None
    assert detect_instrument(hit, config) == expected
