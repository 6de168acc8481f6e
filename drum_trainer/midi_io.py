import logging
import threading
import time
from typing import Callable, Optional

import mido

from drum_trainer.config import GM
from drum_trainer.dt_types import DetectedHit, Instrument
from drum_trainer.errors import NoInputSignal
from drum_trainer.profiles import ALESIS_NITRO_PRO, build_active_map, signature_hit

logger = logging.getLogger(__name__)


class MidiInputLoop:
    """E-drum pads as a hit source: each note_on becomes a DetectedHit with the pad's signature."""

    def __init__(self, input_name: str,
                 note_to_kind: Optional[Callable[[int], Optional[Instrument]]] = None):
        self.input_name = input_name
        self.note_to_kind = note_to_kind or build_active_map(GM, ALESIS_NITRO_PRO)

    def to_hit(self, msg, t_song: float) -> Optional[DetectedHit]:
        if msg.type != "note_on" or msg.velocity <= 0:
            return None
        kind = self.note_to_kind(msg.note)
        if kind is None:
            logger.debug("Ignoring unmapped pad note %d", msg.note)
            return None
        return signature_hit(kind, t_song, msg.velocity)

    def run(self, start_at: float, on_hit: Callable[[DetectedHit], None],
            stop: threading.Event, clock=time.monotonic):
        try:
            port = mido.open_input(self.input_name)
        except (OSError, ImportError) as e:
            raise NoInputSignal(f"Could not open MIDI input '{self.input_name}': {e}") from e
        with port:
            logger.info("Listening to: %s", self.input_name)
            while not stop.is_set():
                for msg in port.iter_pending():
                    hit = self.to_hit(msg, clock() - start_at)
                    if hit is not None:
                        on_hit(hit)
                time.sleep(0.001)
