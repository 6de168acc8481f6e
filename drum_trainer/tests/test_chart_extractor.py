import pytest
from mido import MidiFile

from drum_trainer.chart import extract_chart
from drum_trainer.dt_types import Instrument


def test_extract_chart_filters_to_judged_kinds_and_sorts(simple_drum_midi):
    path, events = simple_drum_midi
    notes, tempo_map = extract_chart(MidiFile(path))

    kinds = [n.instrument for n in notes]
    assert kinds == [Instrument.KICK, Instrument.SNARE, Instrument.HIHAT, Instrument.OPENHAT]
    # crash (49) is not judged
    assert len(notes) == len(events) - 1

    times = [n.time for n in notes]
    assert times == sorted(times)
    assert [n.sequence_index for n in notes] == [0, 1, 2, 3]


def test_extract_chart_converts_ticks_with_tempo(simple_drum_midi):
    path, _ = simple_drum_midi
    notes, tempo_map = extract_chart(MidiFile(path))
    # 120 BPM: one beat is half a second
    assert [n.time for n in notes] == pytest.approx([0.5, 0.75, 1.0, 1.25])
    assert tempo_map[0] == (0, 500000)
    assert all(n.step is None and n.pending for n in notes)
