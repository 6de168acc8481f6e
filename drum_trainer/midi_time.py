"""Tempo map handling: absolute MIDI ticks to song seconds."""

import bisect

import mido
from mido import MidiFile

DEFAULT_TEMPO_USPQN = 500_000  # 120 BPM, the MIDI default

TempoMap = list[tuple[int, int]]


def build_tempo_map(mid: MidiFile) -> TempoMap:
    """
    ``(abs_tick, microseconds per quarter)`` change points, sorted by tick.

    Tempo changes are collected from every track, since some files keep them
    outside the conductor track. A change at tick 0 replaces the default.
    """
    changes = {0: DEFAULT_TEMPO_USPQN}
    for track in mid.tracks:
        at = 0
        for msg in track:
            at += msg.time
            if msg.type == "set_tempo":
                changes[at] = msg.tempo
    return sorted(changes.items())


def ticks_to_seconds(abs_ticks: int, tpq: int, tempo_map: TempoMap) -> float:
    starts = [tick for tick, _ in tempo_map]
    last = max(bisect.bisect_right(starts, abs_ticks) - 1, 0)
    secs = 0.0
    for (tick, tempo), (next_tick, _) in zip(tempo_map[:last], tempo_map[1:last + 1]):
        secs += mido.tick2second(next_tick - tick, tpq, tempo)
    tick, tempo = tempo_map[last]
    return secs + mido.tick2second(abs_ticks - tick, tpq, tempo)


def estimate_bpm(tempo_map: TempoMap) -> float:
    """Opening tempo of the song in BPM."""
    return mido.tempo2bpm(tempo_map[0][1] if tempo_map else DEFAULT_TEMPO_USPQN)
