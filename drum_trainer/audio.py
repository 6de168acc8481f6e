import numpy as np

from drum_trainer.config import SR, MASTER_GAIN, CLICK_HZ, CLICK_MS
from drum_trainer.dt_types import Instrument

SOUND_MS = 120


def _t(duration_ms: float, sr: int) -> np.ndarray:
    n = int(sr * (duration_ms / 1000.0))
    return np.arange(n) / sr


def sine_click(duration_ms=CLICK_MS, freq=CLICK_HZ, sr=SR):
    t = _t(duration_ms, sr)
    wave = np.sin(2 * np.pi * freq * t)
    env = np.linspace(1.0, 0.0, len(t))
    return (wave * env * 0.6).astype(np.float32)


def kick(duration_ms=SOUND_MS, sr=SR):
    t = _t(duration_ms, sr)
    return (0.95 * np.sin(2 * np.pi * 60.0 * t) * np.exp(-t / 0.3)).astype(np.float32)


def snare(duration_ms=SOUND_MS, sr=SR):
    t = _t(duration_ms, sr)
    body = np.sin(2 * np.pi * 200.0 * t) + 0.5 * np.sin(2 * np.pi * 330.0 * t)
    return (0.4 * body * np.exp(-t / 0.08)).astype(np.float32)


def hihat(duration_ms=SOUND_MS, sr=SR, open_=False, seed=0):
    """Metallic partials over a little high-passed noise. Open hats ring higher and longer."""
    t = _t(duration_ms, sr)
    rng = np.random.default_rng(seed)
    partials = (10000.0, 12500.0) if open_ else (6000.0, 7400.0)
    tone = sum(np.sin(2 * np.pi * f * t) for f in partials) / len(partials)
    noise = np.diff(rng.standard_normal(len(t) + 1))
    decay = 0.25 if open_ else 0.05
    return ((0.3 * tone + 0.03 * noise) * np.exp(-t / decay)).astype(np.float32)


def drum_sound(instrument: Instrument, sr=SR) -> np.ndarray:
    if instrument == Instrument.KICK:
        return kick(sr=sr)
    if instrument == Instrument.SNARE:
        return snare(sr=sr)
    if instrument == Instrument.OPENHAT:
        return hihat(sr=sr, open_=True)
    return hihat(sr=sr)


def play_mono(mono: np.ndarray, sr=SR):
    # simpleaudio needs a sound device; only load it when something is played
    import simpleaudio as sa
    stereo = np.stack([mono, mono], axis=1)
    audio = (stereo * 32767 * MASTER_GAIN).astype(np.int16)
    return sa.play_buffer(audio, 2, 2, sr)


CLICK = sine_click()
