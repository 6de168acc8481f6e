import logging
import time
from typing import Optional

from drum_trainer.dt_types import Notifier as NotifierProtocol, Outcome, OutcomeEvent

logger = logging.getLogger(__name__)

# One byte per outcome: green / yellow / red LED
OUTCOME_BYTES = {
    Outcome.PERFECT: b"G",
    Outcome.GOOD: b"Y",
    Outcome.SLIGHTLY_OFF: b"Y",
}
MISS_BYTE = b"R"


def find_serial(name_like: Optional[str]) -> Optional[str]:
    if not name_like:
        return None
    import serial.tools.list_ports
    s = name_like.lower()
    for p in serial.tools.list_ports.comports():
        combo = (p.device + " " + (p.description or "")).lower()
        if s in combo:
            return p.device
    if name_like.startswith("/dev/") or name_like.upper().startswith("COM"):
        return name_like
    return None


class ArduinoNotifier(NotifierProtocol):
    def __init__(self, port: Optional[str], baud: int = 115200, ser=None):
        self.ser = ser
        if port and ser is None:
            try:
                import serial
                self.ser = serial.Serial(port, baudrate=baud, timeout=0)
                time.sleep(2.0)  # board resets when the port opens
                logger.info("Arduino connected on %s @ %d baud", port, baud)
            except Exception as e:
                logger.warning("Could not open Arduino serial '%s': %s", port, e)

    def send_outcome(self, event: OutcomeEvent):
        if not self.ser:
            return
        try:
            self.ser.write(OUTCOME_BYTES.get(event.outcome, MISS_BYTE))
        except Exception as e:
            logger.warning("Serial write failed: %s", e)

    def close(self):
        if self.ser:
            try:
                self.ser.close()
            except Exception as e:
                logger.warning("Serial close failed: %s", e)
            self.ser = None


class PrintNotifier(NotifierProtocol):
    """One feedback line per outcome on stdout."""

    LABELS = {
        Outcome.PERFECT: "Perfect",
        Outcome.GOOD: "Good",
        Outcome.SLIGHTLY_OFF: "Close",
        Outcome.WRONG_INSTRUMENT: "Wrong drum",
        Outcome.MISSED: "Miss",
        Outcome.STRAY: "Off beat",
    }

    def send_outcome(self, event: OutcomeEvent):
        label = self.LABELS[event.outcome]
        if event.note is None:
            print(f"[{'--':7s}] {label:10s}  no beat near this hit")
            return
        line = f"[{event.note.instrument.value:7s}] {label:10s}"
        if event.dt_ms is not None:
            when = "early" if event.dt_ms < 0 else "late"
            line += f"  {abs(event.dt_ms):5.1f} ms {when}"
        if event.outcome == Outcome.WRONG_INSTRUMENT and event.detected is not None:
            line += f"  (heard {event.detected.value})"
        print(line)

    def close(self):
        pass


class FanoutNotifier(NotifierProtocol):
    def __init__(self, *notifiers: NotifierProtocol):
        self.notifiers = [n for n in notifiers if n is not None]

    def send_outcome(self, event: OutcomeEvent):
        for n in self.notifiers:
            n.send_outcome(event)

    def close(self):
        for n in self.notifiers:
            n.close()
