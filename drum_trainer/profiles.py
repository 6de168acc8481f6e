# Instrument profiles: banded guess from a detected hit, and per-device
# translations for e-drum MIDI input.

from typing import Callable, Optional

from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import DetectedHit, Instrument

ALESIS_NITRO_PRO = {
    # device note -> GM note
    39: 38,   # hand clap -> snare
    26: 46,   # hi-hat edge -> open hat
    22: 42,   # hi-hat closed edge -> closed hat
}

# Spectral signature a MIDI hit is given so it runs through the same judge
# path as a microphone hit: (frequency Hz, amplitude, is_hihat)
HIT_SIGNATURES = {
    Instrument.KICK: (60.0, 0.8, False),
    Instrument.SNARE: (200.0, 0.4, False),
    Instrument.HIHAT: (6000.0, 0.2, True),
    Instrument.OPENHAT: (10000.0, 0.3, True),
}


def detect_instrument(hit: DetectedHit, config: Optional[TrainerConfig] = None) -> Instrument:
    cfg = config or TrainerConfig()
    if hit.is_hihat:
        return Instrument.OPENHAT if hit.frequency > cfg.openhat_min_hz else Instrument.HIHAT
    if hit.frequency < cfg.kick_max_hz and hit.amplitude > cfg.kick_min_amplitude:
        return Instrument.KICK
    if cfg.kick_max_hz < hit.frequency < cfg.snare_max_hz:
        return Instrument.SNARE
    return Instrument.UNKNOWN


def signature_hit(instrument: Instrument, t: float, velocity: int = 127) -> DetectedHit:
    freq, amp, is_hihat = HIT_SIGNATURES[instrument]
    # velocity scales loudness but never pushes a kick below the kick floor
    amplitude = amp if instrument == Instrument.KICK else amp * max(velocity, 1) / 127.0
    return DetectedHit(time=t, frequency=freq, amplitude=amplitude, is_hihat=is_hihat)


def build_active_map(gm_map: dict[int, str], device_overrides: Optional[dict[int, int]]
                     ) -> Callable[[int], Optional[Instrument]]:
    """
    Returns a function that translates device note -> Instrument or None.
    If an override maps a note to another note, the kind is resolved via gm_map[new_note].
    """
    def note_to_kind(note: int) -> Optional[Instrument]:
        if device_overrides and note in device_overrides:
            note = device_overrides[note]
        kind = gm_map.get(note)
        return Instrument(kind) if kind else None
    return note_to_kind
