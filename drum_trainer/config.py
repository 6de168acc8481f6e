import math
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

import yaml

from drum_trainer.errors import ConfigurationError

SR = 44100
FRAME_SIZE = 2048           # samples per analysis frame (1024 spectrum bins)
MASTER_GAIN = 0.8

# Metronome click
CLICK_HZ = 1000
CLICK_MS = 35

# Onset detection
AMPLITUDE_THRESHOLD = 0.01  # RMS
DEBOUNCE_S = 0.08

# Spectral bands (Hz)
HIGH_BAND = (4000.0, 15000.0)
MID_BAND = (1000.0, 4000.0)

# Hi-hat heuristic
HIHAT_HIGH_RATIO = 0.25
HIHAT_HIGH_RATIO_WITH_MID = 0.15
HIHAT_MID_RATIO = 0.3

# Banded instrument guess
OPENHAT_MIN_HZ = 8000.0
KICK_MAX_HZ = 100.0
KICK_MIN_AMPLITUDE = 0.5
SNARE_MAX_HZ = 1000.0

# Grading windows (s)
PERFECT_S = 0.025
GOOD_S = 0.05
# Match window for accepting a hit at all (s)
ACCEPTABLE_S = 0.1
# Pending note is declared missed this long after its time (s)
GRACE_S = 0.1

# Ticks
ANALYSIS_HZ = 60
SWEEP_INTERVAL_S = 0.05

DEFAULT_BPM = 60
PATTERN_STEPS = 16
NOTE_LIMIT = 8
SESSION_SECONDS = 60.0

MODES = ("notes", "timed", "continuous")
MATCHING = ("scan", "sequential")
STRICTNESS = ("lenient", "count_as_miss")

# Fixed-length loops follow one expected note at a time
DEFAULT_MATCHING = {
    "notes": "sequential",
    "timed": "sequential",
    "continuous": "scan",
}

# GM drum mapping, reduced to the four judged instruments
GM = {
    35: "kick", 36: "kick",
    37: "snare", 38: "snare", 40: "snare",
    42: "hihat", 44: "hihat",
    46: "openhat",
}

JUDGED_KINDS = ("kick", "snare", "hihat", "openhat")


@dataclass(frozen=True)
class TrainerConfig:
    """Every tunable of a practice session.

    Defaults mirror the module constants. Call ``validate()`` before a session
    starts; a session never discovers bad numbers halfway through.
    """
    sample_rate: int = SR
    frame_size: int = FRAME_SIZE

    amplitude_threshold: float = AMPLITUDE_THRESHOLD
    debounce: float = DEBOUNCE_S
    high_band: tuple = HIGH_BAND
    mid_band: tuple = MID_BAND
    hihat_high_ratio: float = HIHAT_HIGH_RATIO
    hihat_high_ratio_with_mid: float = HIHAT_HIGH_RATIO_WITH_MID
    hihat_mid_ratio: float = HIHAT_MID_RATIO

    openhat_min_hz: float = OPENHAT_MIN_HZ
    kick_max_hz: float = KICK_MAX_HZ
    kick_min_amplitude: float = KICK_MIN_AMPLITUDE
    snare_max_hz: float = SNARE_MAX_HZ

    perfect_window: float = PERFECT_S
    good_window: float = GOOD_S
    acceptable_window: float = ACCEPTABLE_S
    grace_window: float = GRACE_S

    analysis_hz: float = ANALYSIS_HZ
    sweep_interval: float = SWEEP_INTERVAL_S

    mode: str = "notes"
    matching: Optional[str] = None
    strictness: str = "lenient"
    note_limit: int = NOTE_LIMIT
    duration: float = SESSION_SECONDS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrainerConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        values = dict(data)
        for band in ("high_band", "mid_band"):
            if band in values:
                try:
                    values[band] = tuple(values[band])
                except TypeError:
                    raise ConfigurationError(f"{band} must be a (low, high) pair, got {values[band]!r}")
        return cls(**values)

    @classmethod
    def load(cls, path: str) -> "TrainerConfig":
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must hold a mapping")
        return cls.from_dict(data or {})

    def with_overrides(self, **overrides) -> "TrainerConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def matching_strategy(self) -> str:
        return self.matching or DEFAULT_MATCHING.get(self.mode, "scan")

    def validate(self) -> "TrainerConfig":
        positive = (
            "sample_rate", "frame_size", "amplitude_threshold", "debounce",
            "hihat_high_ratio", "hihat_high_ratio_with_mid", "hihat_mid_ratio",
            "openhat_min_hz", "kick_max_hz", "kick_min_amplitude", "snare_max_hz",
            "perfect_window", "good_window", "acceptable_window", "grace_window",
            "analysis_hz", "sweep_interval", "note_limit", "duration",
        )
        for name in positive:
            _require_positive(name, getattr(self, name))

        if self.frame_size % 2:
            raise ConfigurationError(f"frame_size must be even, got {self.frame_size}")

        for name in ("high_band", "mid_band"):
            band = getattr(self, name)
            if not isinstance(band, (tuple, list)) or len(band) != 2:
                raise ConfigurationError(f"{name} must be a (low, high) pair, got {band!r}")
            lo, hi = band
            _require_positive(f"{name}[1]", hi)
            if not _is_number(lo) or not math.isfinite(lo) or lo < 0 or lo >= hi:
                raise ConfigurationError(f"{name} must satisfy 0 <= low < high, got {band!r}")

        if not (self.perfect_window < self.good_window <= self.acceptable_window):
            raise ConfigurationError(
                "Windows must satisfy perfect < good <= acceptable "
                f"(got {self.perfect_window}, {self.good_window}, {self.acceptable_window})")
        if self.grace_window < self.acceptable_window:
            raise ConfigurationError(
                f"grace_window ({self.grace_window}) must be >= acceptable_window "
                f"({self.acceptable_window})")
        if self.kick_max_hz >= self.snare_max_hz:
            raise ConfigurationError("kick_max_hz must be below snare_max_hz")

        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown mode {self.mode!r}; expected one of {MODES}")
        if self.matching is not None and self.matching not in MATCHING:
            raise ConfigurationError(f"Unknown matching {self.matching!r}; expected one of {MATCHING}")
        if self.strictness not in STRICTNESS:
            raise ConfigurationError(f"Unknown strictness {self.strictness!r}; expected one of {STRICTNESS}")
        return self


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_positive(name: str, value) -> None:
    if not _is_number(value):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be positive and finite, got {value!r}")


def validate_bpm(bpm) -> float:
    _require_positive("bpm", bpm)
    return float(bpm)
