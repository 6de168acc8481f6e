import threading

import mido
import pytest

from drum_trainer.dt_types import Instrument
from drum_trainer.errors import NoInputSignal
from drum_trainer.midi_io import MidiInputLoop
from drum_trainer.profiles import detect_instrument


class FakePort:
    def __init__(self, batches, stop):
        self.batches = list(batches)
        self.stop = stop

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def iter_pending(self):
        if not self.batches:
            self.stop.set()
            return []
        return self.batches.pop(0)


def test_pad_hits_carry_instrument_signature():
    loop = MidiInputLoop("Nitro")
    snare = loop.to_hit(mido.Message("note_on", note=38, velocity=100), 1.5)
    kick = loop.to_hit(mido.Message("note_on", note=36, velocity=10), 2.0)

    assert snare.time == 1.5
    assert detect_instrument(snare) == Instrument.SNARE
    assert snare.amplitude == pytest.approx(0.4 * 100 / 127)
    # soft kicks still read as kicks
    assert detect_instrument(kick) == Instrument.KICK


def test_kit_specific_notes_are_remapped():
    loop = MidiInputLoop("Nitro")
    rim = loop.to_hit(mido.Message("note_on", note=39, velocity=90), 0.0)
    edge = loop.to_hit(mido.Message("note_on", note=26, velocity=90), 0.0)
    assert detect_instrument(rim) == Instrument.SNARE
    assert detect_instrument(edge) == Instrument.OPENHAT


def test_releases_and_unmapped_pads_are_ignored():
    loop = MidiInputLoop("Nitro")
    assert loop.to_hit(mido.Message("note_on", note=38, velocity=0), 0.0) is None
    assert loop.to_hit(mido.Message("note_off", note=38), 0.0) is None
    assert loop.to_hit(mido.Message("note_on", note=49, velocity=100), 0.0) is None


def test_run_forwards_hits_with_song_time(monkeypatch):
    stop = threading.Event()
    batches = [[mido.Message("note_on", note=42, velocity=127),
                mido.Message("note_on", note=49, velocity=127)]]
    monkeypatch.setattr(mido, "open_input", lambda name: FakePort(batches, stop))
    got = []

    MidiInputLoop("Nitro").run(start_at=10.0, on_hit=got.append, stop=stop, clock=lambda: 12.5)

    assert len(got) == 1
    assert got[0].time == 2.5
    assert detect_instrument(got[0]) == Instrument.HIHAT


def test_missing_port_raises_no_input(monkeypatch):
    def refuse(name):
        raise OSError("unknown port")

    monkeypatch.setattr(mido, "open_input", refuse)
    with pytest.raises(NoInputSignal, match="Nitro"):
        MidiInputLoop("Nitro").run(0.0, lambda h: None, threading.Event())
