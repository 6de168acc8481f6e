import pytest
from mido import Message, MetaMessage, MidiFile, MidiTrack

from drum_trainer.chart import schedule_from_list
from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import DetectedHit

# (beat, GM note) for the test song; crash is on the kit but never judged
SONG = [(1.0, 36), (1.5, 38), (2.0, 42), (2.5, 46), (3.0, 49)]


def write_drum_track(path, hits, bpm=120, tpq=480, hold=10):
    """Save a one-track MIDI with ``hits`` as short channel-10 notes."""
    timeline = [(0, MetaMessage("set_tempo", tempo=int(60_000_000 / bpm)))]
    for beat, note in hits:
        at = int(beat * tpq)
        timeline.append((at, Message("note_on", channel=9, note=note, velocity=100)))
        timeline.append((at + hold, Message("note_off", channel=9, note=note, velocity=0)))
    timeline.sort(key=lambda item: item[0])

    mid = MidiFile(ticks_per_beat=tpq)
    track = MidiTrack()
    mid.tracks.append(track)
    prev = 0
    for at, msg in timeline:
        track.append(msg.copy(time=at - prev))
        prev = at
    mid.save(str(path))
    return str(path)


@pytest.fixture
def simple_drum_midi(tmp_path):
    """Kick, snare, closed and open hat, crash on beats 1 to 3 at 120 BPM."""
    return write_drum_track(tmp_path / "mini.mid", SONG), SONG


@pytest.fixture
def config():
    """Scan matching, lenient strays, 0.1s acceptance."""
    return TrainerConfig(perfect_window=0.025, good_window=0.05, acceptable_window=0.1,
                         grace_window=0.1, mode="continuous").validate()


@pytest.fixture
def hihat_notes():
    return schedule_from_list([(0.25, "hihat"), (0.73, "hihat"), (1.22, "hihat"), (1.70, "hihat")])


def hihat_hit(t, frequency=6000.0):
    return DetectedHit(time=t, frequency=frequency, amplitude=0.2, is_hihat=True)


def kick_hit(t):
    return DetectedHit(time=t, frequency=60.0, amplitude=0.8, is_hihat=False)


def snare_hit(t):
    return DetectedHit(time=t, frequency=200.0, amplitude=0.4, is_hihat=False)
