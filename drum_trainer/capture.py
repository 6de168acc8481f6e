"""
Frame sources for the analysis tick: a live microphone and a synthetic
drummer that renders scheduled drum sounds.
"""

import bisect
import logging
import threading
from collections import deque
from typing import Iterable, Optional

import numpy as np

from drum_trainer.analyzer import make_frame
from drum_trainer.audio import drum_sound
from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import AudioFrame, Instrument
from drum_trainer.errors import NoInputSignal

logger = logging.getLogger(__name__)


class MicrophoneSource:
    """
    Mono float32 capture through sounddevice.

    The stream callback appends blocks to a ring buffer of one frame; the
    analysis tick reads the newest ``frame_size`` samples.
    """

    def __init__(self, config: TrainerConfig, device=None, blocksize: int = 512):
        self.sample_rate = config.sample_rate
        self.frame_size = config.frame_size
        self.device = device
        self.blocksize = blocksize
        self._buffer = deque(maxlen=config.frame_size)
        self._lock = threading.Lock()
        self._stream = None
        self._fresh = False

    def start(self):
        try:
            import sounddevice as sd
            self._stream = sd.InputStream(
                device=self.device,
                channels=1,
                samplerate=self.sample_rate,
                blocksize=self.blocksize,
                dtype="float32",
                callback=self._callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            raise NoInputSignal(f"Could not open microphone: {e}") from e
        logger.info("Microphone open (%s Hz, device=%s)", self.sample_rate, self.device)

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.warning("Input stream status: %s", status)
        with self._lock:
            self._buffer.extend(indata[:, 0])
            self._fresh = True

    def read_frame(self, at_time: float) -> Optional[AudioFrame]:
        with self._lock:
            if not self._fresh:
                return None
            self._fresh = False
            samples = np.fromiter(self._buffer, dtype=np.float32, count=len(self._buffer))
        return make_frame(samples, self.sample_rate, self.frame_size)

    def stop(self):
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None


class SyntheticSource:
    """
    Plays a list of ``(time, instrument)`` hits into analysis frames.

    A hit is audible for one frame length: while it is younger than that,
    frames start at the hit so every tick sees the whole attack (the debounce
    folds them into one onset). Between hits the frames hold only the noise
    floor.
    """

    def __init__(self, hits: Iterable[tuple[float, str]], config: TrainerConfig,
                 noise_floor: float = 0.0, seed: int = 0):
        self.sample_rate = config.sample_rate
        self.frame_size = config.frame_size
        self.frame_dur = config.frame_size / config.sample_rate
        pairs = sorted((float(t), Instrument(i)) for t, i in hits)
        self.times = [t for t, _ in pairs]
        self.kinds = [i for _, i in pairs]
        self.sounds = {i: drum_sound(i, sr=self.sample_rate) for i in set(self.kinds)}
        self.noise_floor = noise_floor
        self.rng = np.random.default_rng(seed)

    def start(self):
        pass

    def stop(self):
        pass

    def read_frame(self, at_time: float) -> Optional[AudioFrame]:
        i = bisect.bisect_right(self.times, at_time) - 1
        buf = np.zeros(self.frame_size, dtype=np.float64)
        if i >= 0 and at_time - self.times[i] < self.frame_dur:
            self._mix(buf, self.times[i])
        if self.noise_floor:
            buf += self.noise_floor * self.rng.standard_normal(self.frame_size)
        return make_frame(buf, self.sample_rate, self.frame_size)

    def _mix(self, buf: np.ndarray, start: float):
        lo = bisect.bisect_left(self.times, start)
        hi = bisect.bisect_right(self.times, start + self.frame_dur)
        for t, kind in zip(self.times[lo:hi], self.kinds[lo:hi]):
            sound = self.sounds[kind]
            offset = int(round((t - start) * self.sample_rate))
            n = min(len(sound), self.frame_size - offset)
            if n > 0:
                buf[offset:offset + n] += sound[:n]
