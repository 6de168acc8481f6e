import pytest

from drum_trainer.config import GM, JUDGED_KINDS
from drum_trainer.dt_types import Instrument, SCHEDULED_INSTRUMENTS
from drum_trainer.midi_time import estimate_bpm, ticks_to_seconds


def test_gm_includes_core_drums():
    assert GM[36] == "kick"
    assert GM[38] == "snare"
    assert GM[42] == "hihat"
    assert GM[46] == "openhat"
    assert 49 not in GM  # crash is not judged


def test_judged_kinds_consistency():
    for note, kind in GM.items():
        assert kind in JUDGED_KINDS, f"{note} maps to {kind} not in JUDGED_KINDS"
    assert tuple(i.value for i in SCHEDULED_INSTRUMENTS) == JUDGED_KINDS
    assert Instrument.UNKNOWN.value not in JUDGED_KINDS


def test_ticks_to_seconds_across_tempo_change():
    # 120 BPM for the first beat, then 60 BPM
    tempo_map = [(0, 500000), (480, 1000000)]
    assert ticks_to_seconds(480, 480, tempo_map) == pytest.approx(0.5)
    assert ticks_to_seconds(960, 480, tempo_map) == pytest.approx(1.5)
    assert estimate_bpm(tempo_map) == 120.0
