"""
Per-frame signal metrics: loudness, dominant frequency and band ratios.
"""

import numpy as np

from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import AudioFrame, FrameMetrics


def make_frame(samples, sample_rate: int, frame_size: int) -> AudioFrame:
    """
    Build an AudioFrame from raw samples.

    Longer input keeps its last ``frame_size`` samples, shorter input is
    zero-padded on the left. The spectrum holds ``frame_size // 2`` magnitude
    bins scaled so a full-scale sine peaks near its amplitude.
    """
    chunk = np.asarray(samples, dtype=np.float64).ravel()
    if len(chunk) >= frame_size:
        frame = chunk[-frame_size:]
    else:
        frame = np.zeros(frame_size, dtype=np.float64)
        if len(chunk):
            frame[-len(chunk):] = chunk
    spectrum = np.abs(np.fft.rfft(frame))[: frame_size // 2] / (frame_size / 2)
    return AudioFrame(samples=frame, spectrum=spectrum, sample_rate=sample_rate)


class FrameAnalyzer:
    """Pure function of one frame; holds only the band configuration."""

    def __init__(self, config: TrainerConfig):
        self.high_band = config.high_band
        self.mid_band = config.mid_band

    def analyze(self, frame: AudioFrame) -> FrameMetrics:
        samples = np.asarray(frame.samples, dtype=np.float64)
        rms = float(np.sqrt(np.mean(samples ** 2))) if samples.size else 0.0

        spectrum = np.asarray(frame.spectrum, dtype=np.float64)
        n_bins = spectrum.size
        if n_bins == 0:
            return FrameMetrics(rms=rms, dominant_frequency_hz=0.0,
                                high_freq_ratio=0.0, mid_freq_ratio=0.0)

        bin_hz = frame.sample_rate / (2 * n_bins)
        # argmax returns the first maximum
        dominant = float(np.argmax(spectrum)) * bin_hz

        total = float(spectrum.sum())
        if total <= 0:
            return FrameMetrics(rms=rms, dominant_frequency_hz=dominant,
                                high_freq_ratio=0.0, mid_freq_ratio=0.0)

        freqs = np.arange(n_bins) * bin_hz
        high = _band_sum(spectrum, freqs, self.high_band)
        mid = _band_sum(spectrum, freqs, self.mid_band)
        return FrameMetrics(
            rms=rms,
            dominant_frequency_hz=dominant,
            high_freq_ratio=high / total,
            mid_freq_ratio=mid / total,
        )


def _band_sum(spectrum: np.ndarray, freqs: np.ndarray, band) -> float:
    lo, hi = band
    mask = (freqs >= lo) & (freqs <= hi)
    return float(spectrum[mask].sum())
