import logging
import math
from typing import Optional

from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import DetectedHit, FrameMetrics

logger = logging.getLogger(__name__)


def classify_hihat(metrics: FrameMetrics, config: TrainerConfig) -> bool:
    """
    Coarse cymbal test on band ratios.

    Approximate only: a bright snare can pass and a dark hat can fail. This is
    not instrument recognition.
    """
    high = metrics.high_freq_ratio
    mid = metrics.mid_freq_ratio
    return high > config.hihat_high_ratio or (
        high > config.hihat_high_ratio_with_mid and mid > config.hihat_mid_ratio)


class OnsetDetector:
    """Amplitude threshold plus debounce over a stream of frame metrics."""

    def __init__(self, config: TrainerConfig):
        self.config = config
        self.threshold = config.amplitude_threshold
        self.debounce = config.debounce
        self.last_hit_time = -math.inf

    def reset(self):
        self.last_hit_time = -math.inf

    def push(self, metrics: FrameMetrics, at_time: float) -> Optional[DetectedHit]:
        if metrics.rms <= self.threshold:
            return None
        # decay tail of the previous hit
        if at_time - self.last_hit_time <= self.debounce:
            return None

        self.last_hit_time = at_time
        hit = DetectedHit(
            time=at_time,
            frequency=metrics.dominant_frequency_hz,
            amplitude=metrics.rms,
            is_hihat=classify_hihat(metrics, self.config),
        )
        logger.debug("onset t=%.3f rms=%.3f f=%.0fHz hihat=%s",
                     hit.time, hit.amplitude, hit.frequency, hit.is_hihat)
        return hit
