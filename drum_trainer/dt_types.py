from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

import numpy as np


class Instrument(str, Enum):
    KICK = "kick"
    SNARE = "snare"
    HIHAT = "hihat"
    OPENHAT = "openhat"
    UNKNOWN = "unknown"   # detection only, never scheduled


# Enumeration order; breaks ties between simultaneous notes
SCHEDULED_INSTRUMENTS = (Instrument.KICK, Instrument.SNARE, Instrument.HIHAT, Instrument.OPENHAT)


class Outcome(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    SLIGHTLY_OFF = "slightly_off"
    WRONG_INSTRUMENT = "wrong_instrument"
    MISSED = "missed"
    STRAY = "stray"       # hit with no note in its window, counted as a miss

    @property
    def is_hit(self) -> bool:
        return self in (Outcome.PERFECT, Outcome.GOOD)


@dataclass(frozen=True)
class AudioFrame:
    samples: np.ndarray    # time domain, frame_size long
    spectrum: np.ndarray   # magnitudes, frame_size // 2 bins
    sample_rate: int


@dataclass(frozen=True)
class FrameMetrics:
    rms: float
    dominant_frequency_hz: float
    high_freq_ratio: float
    mid_freq_ratio: float


@dataclass(frozen=True)
class DetectedHit:
    time: float            # seconds from session start
    frequency: float       # dominant frequency, Hz
    amplitude: float       # RMS
    is_hihat: bool


@dataclass
class ScheduledNote:
    time: float            # seconds from session start
    instrument: Instrument
    sequence_index: int
    step: Optional[int] = None
    # result fields, written once by the judge
    hit: bool = False
    correct: bool = False
    wrong_instrument: bool = False
    slightly_off: bool = False
    outcome: Optional[Outcome] = None
    dt_ms: Optional[float] = None

    @property
    def pending(self) -> bool:
        return not self.hit

    @property
    def identity(self) -> tuple:
        return (self.time, self.instrument, self.sequence_index)


@dataclass(frozen=True)
class OutcomeEvent:
    outcome: Outcome
    note: Optional[ScheduledNote] = None        # None for stray hits
    dt_ms: Optional[float] = None               # signed, hit minus note; None for sweep misses
    detected: Optional[Instrument] = None


@dataclass
class TimingStats:
    perfect_hits: int = 0
    good_hits: int = 0
    missed_hits: int = 0
    total_hits: int = 0
    current_streak: int = 0
    best_streak: int = 0

    @property
    def accuracy(self) -> int:
        if self.total_hits <= 0:
            return 0
        return round(100 * (self.perfect_hits + self.good_hits) / self.total_hits)


@dataclass
class SessionState:
    start_at: Optional[float] = None      # monotonic anchor
    running: bool = False
    completed: bool = False
    end_reason: Optional[str] = None
    loop: int = 1
    loop_length: float = 0.0
    input_error: Optional[str] = None
    hits_seen: int = 0
    last_event: Optional[OutcomeEvent] = field(default=None, repr=False)


class Notifier(Protocol):
    def send_outcome(self, event: OutcomeEvent) -> None: ...
    def close(self) -> None: ...


class FrameSource(Protocol):
    def start(self) -> None: ...
    def read_frame(self, at_time: float) -> Optional[AudioFrame]: ...
    def stop(self) -> None: ...
