"""
Expected-note schedules: step patterns, curated lists and GM drum MIDI files.
"""

import logging
import math
from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from mido import MidiFile

from drum_trainer.config import GM, PATTERN_STEPS, validate_bpm
from drum_trainer.dt_types import Instrument, SCHEDULED_INSTRUMENTS, ScheduledNote
from drum_trainer.errors import ConfigurationError
from drum_trainer.midi_time import build_tempo_map, ticks_to_seconds

logger = logging.getLogger(__name__)

Pattern = Mapping[str, Sequence[bool]]

# Hi-hat on every eighth note: 8 notes per bar
DEFAULT_PATTERN = {
    "kick": [False] * PATTERN_STEPS,
    "snare": [False] * PATTERN_STEPS,
    "hihat": [i % 2 == 0 for i in range(PATTERN_STEPS)],
    "openhat": [False] * PATTERN_STEPS,
}


def to_instrument(name) -> Instrument:
    try:
        inst = Instrument(name)
    except ValueError:
        raise ConfigurationError(f"Unknown instrument: {name!r}")
    if inst not in SCHEDULED_INSTRUMENTS:
        raise ConfigurationError(f"Instrument {name!r} cannot be scheduled")
    return inst


def step_duration(bpm: float) -> float:
    """Sixteenth-note length in seconds."""
    return 60.0 / validate_bpm(bpm) / 4


def _finish(notes: list[ScheduledNote]) -> list[ScheduledNote]:
    order = {inst: i for i, inst in enumerate(SCHEDULED_INSTRUMENTS)}
    # stable sort: time first, then instrument enumeration, then insertion
    notes.sort(key=lambda n: (n.time, order[n.instrument]))
    for i, n in enumerate(notes):
        n.sequence_index = i
    return notes


def generate_schedule(pattern: Pattern, bpm: float) -> list[ScheduledNote]:
    step = step_duration(bpm)
    notes: list[ScheduledNote] = []
    for name, steps in pattern.items():
        inst = to_instrument(name)
        for step_index, active in enumerate(steps):
            if active:
                notes.append(ScheduledNote(time=step_index * step, instrument=inst,
                                           sequence_index=-1, step=step_index))
    return _finish(notes)


def schedule_from_list(events: Iterable[tuple[float, str]]) -> list[ScheduledNote]:
    notes = []
    for t, name in events:
        t = float(t)
        if not math.isfinite(t) or t < 0:
            raise ConfigurationError(f"Note time must be a non-negative number, got {t!r}")
        notes.append(ScheduledNote(time=t, instrument=to_instrument(name), sequence_index=-1))
    return _finish(notes)


def pattern_from_schedule(notes: Iterable[ScheduledNote], steps: int = PATTERN_STEPS) -> dict[str, list[bool]]:
    pattern = {inst.value: [False] * steps for inst in SCHEDULED_INSTRUMENTS}
    for n in notes:
        if n.step is None:
            raise ConfigurationError("Note has no grid step; it did not come from a pattern")
        pattern[n.instrument.value][n.step] = True
    return pattern


def parse_pattern(specs: Iterable[str], steps: int = PATTERN_STEPS) -> dict[str, list[bool]]:
    """
    Parse grid strings like ``"hihat:x.x.x.x.x.x.x.x."``.

    ``x`` (or ``X``) marks an active sixteenth, anything else a rest. Tracks
    not mentioned are empty.
    """
    pattern = {inst.value: [False] * steps for inst in SCHEDULED_INSTRUMENTS}
    for spec in specs:
        name, sep, grid = spec.partition(":")
        if not sep:
            raise ConfigurationError(f"Pattern track must look like 'name:x..x', got {spec!r}")
        inst = to_instrument(name.strip())
        grid = grid.strip()
        if len(grid) > steps:
            raise ConfigurationError(f"Track {name!r} has {len(grid)} steps, max is {steps}")
        pattern[inst.value] = [c in "xX" for c in grid.ljust(steps, ".")]
    return pattern


def shift_schedule(notes: Iterable[ScheduledNote], offset: float) -> list[ScheduledNote]:
    """Pending copy of ``notes`` moved ``offset`` seconds later."""
    return [
        replace(n, time=n.time + offset, hit=False, correct=False, wrong_instrument=False,
                slightly_off=False, outcome=None, dt_ms=None)
        for n in notes
    ]


def extract_chart(mid: MidiFile) -> tuple[list[ScheduledNote], list[tuple[int, int]]]:
    tpq = mid.ticks_per_beat
    tempo_map = build_tempo_map(mid)
    notes: list[ScheduledNote] = []
    skipped = 0

    for track in mid.tracks:
        abs_ticks = 0
        for msg in track:
            abs_ticks += msg.time
            if msg.is_meta:
                continue
            if getattr(msg, "channel", None) != 9:  # GM drums = ch 10 -> index 9
                continue
            if msg.type == "note_on" and msg.velocity > 0:
                kind = GM.get(msg.note)
                if kind is None:
                    skipped += 1
                    continue
                t = ticks_to_seconds(abs_ticks, tpq, tempo_map)
                notes.append(ScheduledNote(time=t, instrument=Instrument(kind), sequence_index=-1))
    if skipped:
        logger.info("Skipped %d drum notes outside kick/snare/hihat/openhat", skipped)
    return _finish(notes), tempo_map
