class TrainerError(Exception):
    """Base exception for the drum trainer."""


class ConfigurationError(TrainerError):
    """Bad tunable, BPM, pattern or schedule, rejected before a session starts."""


class NoInputSignal(TrainerError):
    """Audio or MIDI input could not be opened (permission denied, no device)."""


class InvariantViolation(TrainerError, AssertionError):
    """A scheduled note was evaluated twice. Always a programming error."""
